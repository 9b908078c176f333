from __future__ import annotations

from ..extensions import db
from uniformdesk.time_utils import to_utc_z

class Company(db.Model):
    """
    Multi-tenant root: every client company is a tenant.

    WHY: Employees, orders and product availability are all scoped to exactly
    one company. No order may cross company boundaries.

    DESIGN:
    - `code` is the external company identifier used by callers (e.g. "COMP-ACME")
    - `id` is the internal storage key and never leaves the service layer
    - Admins are a separate roster (CompanyAdmin), not a role on Employee
    """
    __tablename__ = "companies"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)

    # Branding (display only)
    logo = db.Column(db.String(512), nullable=True)
    website = db.Column(db.String(255), nullable=True)
    primary_color = db.Column(db.String(16), nullable=True)
    show_prices = db.Column(db.Boolean, nullable=False, default=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Company id={self.id} code={self.code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.code,
            "name": self.name,
            "logo": self.logo,
            "website": self.website,
            "primary_color": self.primary_color,
            "show_prices": self.show_prices,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

class CompanyAdmin(db.Model):
    """
    Company admin roster entry.

    An employee listed here may act on behalf of the company. Order approval
    is a separate capability flag so read-only company contacts can sit on
    the roster without being able to approve.
    """
    __tablename__ = "company_admins"
    __table_args__ = (
        db.UniqueConstraint("company_id", "employee_id", name="uq_company_admins_company_employee"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    can_approve_orders = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    company = db.relationship("Company", backref=db.backref("admins", lazy=True))
    employee = db.relationship("Employee", backref=db.backref("admin_roles", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        employee = self.employee
        return {
            "company_id": self.company.code if self.company else None,
            "employee_id": employee.employee_id if employee else None,
            "employee": {
                "employee_id": employee.employee_id,
                "first_name": employee.first_name,
                "last_name": employee.last_name,
                "email": employee.email,
            } if employee else None,
            "can_approve_orders": self.can_approve_orders,
            "created_at": to_utc_z(self.created_at),
        }
