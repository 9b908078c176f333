# Overview: Service-layer operations for catalog availability; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Company, Product, ProductCompany, ProductVendor, Vendor, VendorCompany


class CatalogError(ValueError):
    """Raised when a catalog link references a missing product, company or vendor."""


def get_products_by_company(company_id: int) -> list[Product]:
    """Products directly linked to the company. Vendor links do not imply availability."""
    return (
        db.session.query(Product)
        .join(ProductCompany, ProductCompany.product_id == Product.id)
        .filter(ProductCompany.company_id == company_id)
        .order_by(Product.sku.asc())
        .all()
    )


def get_company_products_by_sku(company_id: int) -> dict[str, Product]:
    return {p.sku: p for p in get_products_by_company(company_id)}


def get_product_by_sku(sku: str | None) -> Product | None:
    if not sku:
        return None
    return db.session.query(Product).filter_by(sku=str(sku).strip()).first()


def is_product_linked_to_company(product_id: int, company_id: int) -> bool:
    return (
        db.session.query(ProductCompany.id)
        .filter_by(product_id=product_id, company_id=company_id)
        .first()
        is not None
    )


def link_product_to_company(product_id: int, company_id: int) -> ProductCompany:
    """Idempotent: returns the existing link when the pair is already linked."""
    if db.session.get(Product, product_id) is None:
        raise CatalogError(f"Product not found: {product_id}")
    if db.session.get(Company, company_id) is None:
        raise CatalogError(f"Company not found: {company_id}")

    link = db.session.query(ProductCompany).filter_by(product_id=product_id, company_id=company_id).first()
    if link:
        return link
    link = ProductCompany(product_id=product_id, company_id=company_id)
    db.session.add(link)
    db.session.commit()
    return link


def unlink_product_from_company(product_id: int, company_id: int) -> None:
    db.session.query(ProductCompany).filter_by(product_id=product_id, company_id=company_id).delete()
    db.session.commit()


def link_product_to_vendor(product_id: int, vendor_id: int) -> ProductVendor:
    if db.session.get(Product, product_id) is None or db.session.get(Vendor, vendor_id) is None:
        raise CatalogError("Product or Vendor not found")

    link = db.session.query(ProductVendor).filter_by(product_id=product_id, vendor_id=vendor_id).first()
    if link:
        return link
    link = ProductVendor(product_id=product_id, vendor_id=vendor_id)
    db.session.add(link)
    db.session.commit()
    return link


def link_vendor_to_company(vendor_id: int, company_id: int) -> VendorCompany:
    if db.session.get(Vendor, vendor_id) is None or db.session.get(Company, company_id) is None:
        raise CatalogError("Vendor or Company not found")

    link = db.session.query(VendorCompany).filter_by(vendor_id=vendor_id, company_id=company_id).first()
    if link:
        return link
    link = VendorCompany(vendor_id=vendor_id, company_id=company_id)
    db.session.add(link)
    db.session.commit()
    return link


def get_vendors_for_product(product_id: int) -> list[Vendor]:
    return (
        db.session.query(Vendor)
        .join(ProductVendor, ProductVendor.vendor_id == Vendor.id)
        .filter(ProductVendor.product_id == product_id)
        .order_by(Vendor.code.asc())
        .all()
    )


def get_vendors_for_company(company_id: int) -> list[Vendor]:
    return (
        db.session.query(Vendor)
        .join(VendorCompany, VendorCompany.vendor_id == Vendor.id)
        .filter(VendorCompany.company_id == company_id)
        .order_by(Vendor.code.asc())
        .all()
    )
