"""
Catalog availability tests.

A product is orderable by a company only through an explicit ProductCompany
link; vendor links never imply availability.
"""

import pytest

from uniformdesk.models import ProductCompany, Vendor
from uniformdesk.services import catalog_service
from uniformdesk.services.catalog_service import CatalogError


@pytest.fixture
def vendor(db_session):
    vendor = Vendor(code="VEN-1", name="Threadworks", email="orders@threadworks.example")
    db_session.add(vendor)
    db_session.commit()
    return vendor


class TestProductLinks:

    def test_company_products(self, catalog, company_a, company_b):
        skus = [p.sku for p in catalog_service.get_products_by_company(company_a.id)]
        assert skus == ["BELT-001", "JACKET-001", "PANT-001", "SHIRT-001"]
        assert list(catalog_service.get_company_products_by_sku(company_b.id)) == ["SHIRT-B01"]

    def test_link_is_idempotent(self, db_session, catalog, company_b):
        shirt = catalog["SHIRT-001"]
        first = catalog_service.link_product_to_company(shirt.id, company_b.id)
        second = catalog_service.link_product_to_company(shirt.id, company_b.id)

        assert first.id == second.id
        assert db_session.query(ProductCompany).filter_by(product_id=shirt.id).count() == 2
        assert catalog_service.is_product_linked_to_company(shirt.id, company_b.id)

    def test_unlink(self, catalog, company_a):
        shirt = catalog["SHIRT-001"]
        catalog_service.unlink_product_from_company(shirt.id, company_a.id)
        assert not catalog_service.is_product_linked_to_company(shirt.id, company_a.id)

    def test_link_unknown_references(self, catalog, company_a):
        with pytest.raises(CatalogError, match="Product not found"):
            catalog_service.link_product_to_company(999999, company_a.id)
        with pytest.raises(CatalogError, match="Company not found"):
            catalog_service.link_product_to_company(catalog["SHIRT-001"].id, 999999)

    def test_lookup_by_sku(self, catalog):
        assert catalog_service.get_product_by_sku(" PANT-001 ").category == "pant"
        assert catalog_service.get_product_by_sku("NOPE") is None
        assert catalog_service.get_product_by_sku(None) is None

    def test_sizes_persist_as_list(self, db_session, catalog):
        pant_id = catalog["PANT-001"].id
        db_session.expire_all()

        pant = catalog_service.get_product_by_sku("PANT-001")
        assert pant.id == pant_id
        assert pant.sizes == ["30", "32", "34"]
        assert pant.to_dict()["sizes"] == ["30", "32", "34"]


class TestVendorLinks:

    def test_vendor_links(self, catalog, company_a, vendor):
        shirt = catalog["SHIRT-001"]
        catalog_service.link_product_to_vendor(shirt.id, vendor.id)
        catalog_service.link_vendor_to_company(vendor.id, company_a.id)

        assert [v.code for v in catalog_service.get_vendors_for_product(shirt.id)] == ["VEN-1"]
        assert [v.code for v in catalog_service.get_vendors_for_company(company_a.id)] == ["VEN-1"]

    def test_vendor_link_does_not_imply_availability(self, catalog, company_b, vendor):
        jacket = catalog["JACKET-001"]
        catalog_service.link_product_to_vendor(jacket.id, vendor.id)
        catalog_service.link_vendor_to_company(vendor.id, company_b.id)

        assert not catalog_service.is_product_linked_to_company(jacket.id, company_b.id)

    def test_vendor_link_unknown_references(self, catalog, vendor):
        with pytest.raises(CatalogError):
            catalog_service.link_product_to_vendor(catalog["SHIRT-001"].id, 999999)
        with pytest.raises(CatalogError):
            catalog_service.link_vendor_to_company(vendor.id, 999999)

    def test_company_routes(self, client, catalog, company_a, vendor):
        catalog_service.link_vendor_to_company(vendor.id, company_a.id)

        products = client.get("/api/companies/COMP-A/products").get_json()
        assert [p["sku"] for p in products] == ["BELT-001", "JACKET-001", "PANT-001", "SHIRT-001"]
        assert client.get("/api/companies/COMP-A/vendors").get_json()[0]["id"] == "VEN-1"
        assert client.get("/api/companies/NOPE/products").status_code == 404
