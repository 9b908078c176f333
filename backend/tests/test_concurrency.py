"""
Concurrency tests for the per-employee commit guard.

Verifies:
- Two simultaneous orders that each fit the allowance but not together leave one order
- Every committed order bumps the employee's version_id
- A write from a stale copy of the employee fails with StaleDataError
"""

import os
import tempfile
import threading
import unittest
from datetime import datetime

import pytest
from sqlalchemy import text
from sqlalchemy.orm.exc import StaleDataError

from uniformdesk import create_app
from uniformdesk.extensions import db
from uniformdesk.models import Company, Employee, Order, Product, ProductCompany
from uniformdesk.services import order_service
from uniformdesk.services.concurrency import EMPLOYEE_LOCK_STRIPES, _lock_for_employee
from uniformdesk.services.order_service import EligibilityError, OrderLineInput


class ConcurrentOrderTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "ELIGIBILITY_CYCLE_WINDOWING": False,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            company = Company(code="COMP-C", name="Concurrent Co", is_active=True)
            db.session.add(company)
            db.session.commit()

            employee = Employee(
                employee_id="EMP-C1",
                company_id=company.id,
                first_name="Chen",
                last_name="Wu",
                email="chen@concurrent.example",
                date_of_joining=datetime(2025, 10, 1),
            )
            employee.set_eligibility({"shirt": 4, "pant": 2, "shoe": 1, "jacket": 1})
            db.session.add(employee)

            product = Product(sku="SHIRT-C01", name="Shirt", category="shirt", sizes=["M"], price_cents=2500)
            db.session.add(product)
            db.session.flush()
            db.session.add(ProductCompany(product_id=product.id, company_id=company.id))
            db.session.commit()
            self.product_id = product.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def test_simultaneous_orders_cannot_both_spend_allowance(self):
        results = []
        lock = threading.Lock()
        start = threading.Barrier(2)

        def worker():
            with self.app.app_context():
                try:
                    start.wait()
                    order = order_service.create_order(
                        employee_id="EMP-C1",
                        items=[OrderLineInput(self.product_id, "M", 3, "Shirt")],
                    )
                    with lock:
                        results.append(order.order_number)
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        placed = [r for r in results if isinstance(r, str)]
        refused = [r for r in results if isinstance(r, EligibilityError)]
        self.assertEqual(len(placed), 1)
        self.assertEqual(len(refused), 1)

        with self.app.app_context():
            self.assertEqual(db.session.query(Order).count(), 1)


def _shirt(catalog, quantity=1):
    return [OrderLineInput(catalog["SHIRT-001"].id, "M", quantity, "Oxford Shirt")]


class TestEmployeeVersioning:

    def test_each_order_bumps_version(self, db_session, employee_a, catalog):
        versions = [employee_a.version_id]
        for _ in range(2):
            order_service.create_order(employee_id="EMP-A1", items=_shirt(catalog))
            db_session.refresh(employee_a)
            versions.append(employee_a.version_id)

        assert versions[0] < versions[1] < versions[2]

    def test_stale_employee_write_is_rejected(self, db_session, employee_a):
        db_session.execute(
            text("UPDATE employees SET version_id = version_id + 1 WHERE id = :id"),
            {"id": employee_a.id},
        )
        employee_a.address = "99 Stale Street"

        with pytest.raises(StaleDataError):
            db_session.commit()
        db_session.rollback()


class TestEmployeeLocks:

    def test_lock_pool_is_fixed_and_stable(self):
        assert _lock_for_employee(7) is _lock_for_employee(7)
        assert _lock_for_employee(7) is _lock_for_employee(7 + EMPLOYEE_LOCK_STRIPES)
