"""
Pytest fixtures for uniformdesk backend tests.

Provides test database setup, two tenant companies with employees and a
linked catalog, admin roster entries, and a test client.
"""

from datetime import datetime

import pytest
from uniformdesk import create_app
from uniformdesk.extensions import db
from uniformdesk.models import Company, CompanyAdmin, Employee, Product, ProductCompany


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ELIGIBILITY_CYCLE_WINDOWING': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def company_a(db_session):
    """Create Company A (first tenant)."""
    company = Company(code="COMP-A", name="Acme Logistics", is_active=True)
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def company_b(db_session):
    """Create Company B (second tenant)."""
    company = Company(code="COMP-B", name="Beta Airlines", is_active=True)
    db_session.add(company)
    db_session.commit()
    return company


def make_employee(db_session, company, employee_id, email, *, eligibility=None, **kwargs):
    employee = Employee(
        employee_id=employee_id,
        company_id=company.id,
        first_name=kwargs.pop("first_name", "Test"),
        last_name=kwargs.pop("last_name", employee_id),
        email=email,
        date_of_joining=kwargs.pop("date_of_joining", datetime(2025, 10, 1)),
        **kwargs,
    )
    employee.set_eligibility(eligibility or {"shirt": 4, "pant": 2, "shoe": 1, "jacket": 1})
    db_session.add(employee)
    db_session.commit()
    return employee


def make_product(db_session, sku, category, *, sizes=("S", "M", "L"), price_cents=2500, companies=()):
    product = Product(
        sku=sku, name=f"{category.title()} {sku}", category=category,
        sizes=list(sizes), price_cents=price_cents,
    )
    db_session.add(product)
    db_session.flush()
    for company in companies:
        db_session.add(ProductCompany(product_id=product.id, company_id=company.id))
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def employee_a(db_session, company_a):
    """Employee of Company A with a direct dispatch preference and an address."""
    return make_employee(
        db_session, company_a, "EMP-A1", "anita@acme.com",
        first_name="Anita", last_name="Rao",
        address="12 Dock Road", dispatch_preference="direct",
    )


@pytest.fixture(scope='function')
def employee_a2(db_session, company_a):
    """Employee of Company A without address or dispatch preference."""
    return make_employee(db_session, company_a, "EMP-A2", "bala@acme.com", first_name="Bala", last_name="K")


@pytest.fixture(scope='function')
def employee_b(db_session, company_b):
    """Employee of Company B."""
    return make_employee(db_session, company_b, "EMP-B1", "carol@beta.com", first_name="Carol", last_name="Lim")


@pytest.fixture(scope='function')
def catalog(db_session, company_a, company_b):
    """
    Products keyed by sku.

    SHIRT-001, PANT-001, JACKET-001, BELT-001 are linked to Company A;
    SHIRT-B01 only to Company B.
    """
    products = {
        "SHIRT-001": make_product(db_session, "SHIRT-001", "shirt", companies=[company_a]),
        "PANT-001": make_product(db_session, "PANT-001", "pant", sizes=("30", "32", "34"), price_cents=3000, companies=[company_a]),
        "JACKET-001": make_product(db_session, "JACKET-001", "jacket", sizes=("M", "L", "XL"), price_cents=8000, companies=[company_a]),
        "BELT-001": make_product(db_session, "BELT-001", "accessory", sizes=("Free",), price_cents=500, companies=[company_a]),
        "SHIRT-B01": make_product(db_session, "SHIRT-B01", "shirt", companies=[company_b]),
    }
    return products


@pytest.fixture(scope='function')
def approver_a(db_session, company_a):
    """Company A admin holding the order approval capability."""
    employee = make_employee(db_session, company_a, "ADM-A1", "approver@acme.com", first_name="Priya", last_name="Admin")
    db_session.add(CompanyAdmin(company_id=company_a.id, employee_id=employee.id, can_approve_orders=True))
    db_session.commit()
    return employee


@pytest.fixture(scope='function')
def viewer_a(db_session, company_a):
    """Company A admin WITHOUT the approval capability."""
    employee = make_employee(db_session, company_a, "ADM-A2", "viewer@acme.com", first_name="Victor", last_name="Admin")
    db_session.add(CompanyAdmin(company_id=company_a.id, employee_id=employee.id, can_approve_orders=False))
    db_session.commit()
    return employee


@pytest.fixture(scope='function')
def approver_b(db_session, company_b):
    """Company B admin with approval capability (must have no power over Company A)."""
    employee = make_employee(db_session, company_b, "ADM-B1", "approver@beta.com", first_name="Ben", last_name="Admin")
    db_session.add(CompanyAdmin(company_id=company_b.id, employee_id=employee.id, can_approve_orders=True))
    db_session.commit()
    return employee
