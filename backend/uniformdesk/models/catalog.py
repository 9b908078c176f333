from __future__ import annotations

from ..extensions import db
from uniformdesk.time_utils import to_utc_z

PRODUCT_CATEGORIES = ("shirt", "pant", "shoe", "jacket", "accessory")

class Product(db.Model):
    """
    Sellable uniform item.

    Availability is never implied: a product is orderable by a company only
    through an explicit ProductCompany link.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_gender", "category", "gender"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False, index=True)
    gender = db.Column(db.String(16), nullable=False, default="unisex")

    # Valid size labels, in display order: ["S", "M", "L"]
    sizes = db.Column(db.JSON, nullable=False, default=list)

    # Money stored as integer cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    image = db.Column(db.String(512), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} category={self.category!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category": self.category,
            "gender": self.gender,
            "sizes": list(self.sizes or []),
            "price_cents": self.price_cents,
            "stock": self.stock,
            "image": self.image,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }

class Vendor(db.Model):
    """Supplier that fulfils orders for one or more companies."""
    __tablename__ = "vendors"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False, unique=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.code,
            "name": self.name,
            "email": self.email,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }

class ProductCompany(db.Model):
    """Product <-> Company availability link (many-to-many)."""
    __tablename__ = "product_companies"
    __table_args__ = (
        db.UniqueConstraint("product_id", "company_id", name="uq_product_companies_pair"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("company_links", lazy=True))
    company = db.relationship("Company", backref=db.backref("product_links", lazy=True))

class ProductVendor(db.Model):
    """Product <-> Vendor supply link (many-to-many)."""
    __tablename__ = "product_vendors"
    __table_args__ = (
        db.UniqueConstraint("product_id", "vendor_id", name="uq_product_vendors_pair"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("vendor_links", lazy=True))
    vendor = db.relationship("Vendor", backref=db.backref("product_links", lazy=True))

class VendorCompany(db.Model):
    """Vendor <-> Company service link (many-to-many)."""
    __tablename__ = "vendor_companies"
    __table_args__ = (
        db.UniqueConstraint("vendor_id", "company_id", name="uq_vendor_companies_pair"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    vendor = db.relationship("Vendor", backref=db.backref("company_links", lazy=True))
    company = db.relationship("Company", backref=db.backref("vendor_links", lazy=True))
