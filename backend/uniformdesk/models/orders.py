from __future__ import annotations

from ..extensions import db
from uniformdesk.time_utils import to_utc_z

# Lifecycle states, in order (must match services/lifecycle_service.py)
STATUS_AWAITING_APPROVAL = "Awaiting approval"
STATUS_AWAITING_FULFILMENT = "Awaiting fulfilment"
STATUS_DISPATCHED = "Dispatched"
STATUS_DELIVERED = "Delivered"

ORDER_STATUSES = (
    STATUS_AWAITING_APPROVAL,
    STATUS_AWAITING_FULFILMENT,
    STATUS_DISPATCHED,
    STATUS_DELIVERED,
)

class Order(db.Model):
    """
    Uniform order: the unit of commitment and fulfilment.

    WHY: One order per employee per submission. Line items, prices and the
    total are snapshotted at creation; later catalog changes never alter a
    committed order.

    IMMUTABLE LINES: Items are never edited after creation. Corrections
    require a new order. Only status (and approval audit) changes.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_employee_company", "employee_id", "company_id"),
        db.Index("ix_orders_company_status", "company_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable order number (e.g., "ORD-1734430000000-K3J9X2QPL")
    order_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    employee_name = db.Column(db.String(255), nullable=False)

    status = db.Column(db.String(32), nullable=False, default=STATUS_AWAITING_APPROVAL, index=True)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    dispatch_location = db.Column(db.String(32), nullable=False)
    delivery_address = db.Column(db.Text, nullable=False)
    estimated_delivery_time = db.Column(db.String(64), nullable=False)

    # Approval audit trail
    approved_by_email = db.Column(db.String(255), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    status_updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    employee = db.relationship("Employee", backref=db.backref("orders", lazy=True))
    company = db.relationship("Company", backref=db.backref("orders", lazy=True))
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Order {self.order_number} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.order_number,
            "employee_id": self.employee.employee_id if self.employee else None,
            "employee_name": self.employee_name,
            "company_id": self.company.code if self.company else None,
            "items": [item.to_dict() for item in self.items],
            "total_cents": self.total_cents,
            "total": self.total_cents / 100,
            "status": self.status,
            "order_date": to_utc_z(self.order_date),
            "dispatch_location": self.dispatch_location,
            "delivery_address": self.delivery_address,
            "estimated_delivery_time": self.estimated_delivery_time,
            "approved_by_email": self.approved_by_email,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "status_updated_at": to_utc_z(self.status_updated_at) if self.status_updated_at else None,
            "version_id": self.version_id,
        }

class OrderItem(db.Model):
    """Individual line item on an order (snapshot of product, size and price)."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_name = db.Column(db.String(255), nullable=False)
    # Category at order time; consumption is summed over this column
    category = db.Column(db.String(32), nullable=False, index=True)
    size = db.Column(db.String(32), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "uniform_id": self.product_id,
            "uniform_name": self.product_name,
            "sku": self.product.sku if self.product else None,
            "category": self.category,
            "size": self.size,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "price": self.unit_price_cents / 100,
            "line_total_cents": self.line_total_cents,
        }
