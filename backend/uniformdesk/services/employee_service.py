# Overview: Service-layer operations for employees and companies; lookups only.

"""
Directory lookups for companies and employees.

Read paths return None (or an empty list) when nothing matches; they never
raise for "not found".
"""

from __future__ import annotations

from ..extensions import db
from ..models import Company, Employee


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def get_company_by_code(company_code: str | None) -> Company | None:
    if not company_code:
        return None
    return db.session.query(Company).filter_by(code=str(company_code).strip()).first()


def get_employee_by_employee_id(employee_id: str | None) -> Employee | None:
    if not employee_id:
        return None
    return db.session.query(Employee).filter_by(employee_id=str(employee_id).strip()).first()


def get_employee_by_email(email: str | None) -> Employee | None:
    """Case-insensitive, whitespace-tolerant email lookup."""
    normalized = normalize_email(email)
    if not normalized:
        return None
    return (
        db.session.query(Employee)
        .filter(db.func.lower(Employee.email) == normalized)
        .first()
    )


def get_employees_by_company(company_code: str) -> list[Employee]:
    company = get_company_by_code(company_code)
    if not company:
        return []
    return (
        db.session.query(Employee)
        .filter_by(company_id=company.id)
        .order_by(Employee.employee_id.asc())
        .all()
    )
