# Overview: Service-layer operations for company admin authorization; encapsulates business logic and database work.

"""
Company Admin Authorization and Security Event Logging

WHY: Decide whether a principal (identified by email) may act for a company,
and keep an audit trail of denied decisions.

ROSTER MODEL:
- Each company keeps a roster of admin employees (CompanyAdmin rows)
- Each roster entry carries an independent can_approve_orders flag
- is_company_admin answers "on the roster at all"
- can_approve_orders answers "on the roster AND allowed to approve"

DESIGN PRINCIPLES:
- Fail closed: unknown email, unknown company or no roster entry -> False
- Not on the roster is an answer, not an error
- Emails are compared trimmed and case-insensitively
- Log denials only: granted checks are not logged
"""

from __future__ import annotations

from ..extensions import db
from ..models import Company, CompanyAdmin, Employee, SecurityEvent
from uniformdesk.time_utils import utcnow
from .concurrency import commit_with_retry
from .employee_service import get_company_by_code, get_employee_by_email, get_employee_by_employee_id


class PermissionDeniedError(Exception):
    """Raised when a principal lacks the capability for an action."""
    pass


class AdminRosterError(ValueError):
    """Raised when a roster change references a missing or foreign employee/company."""


def log_security_event(
    event_type: str,
    success: bool,
    *,
    company_id: int | None = None,
    actor_email: str | None = None,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail with tenant context.

    event_type examples:
    - ORDER_APPROVAL_DENIED
    - ADMIN_ADDED
    - ADMIN_REMOVED
    - ADMIN_PRIVILEGES_UPDATED
    """
    event = SecurityEvent(
        company_id=company_id,
        actor_email=actor_email,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def _roster_entry(email: str, company: Company | None) -> CompanyAdmin | None:
    if company is None:
        return None
    employee = get_employee_by_email(email)
    if employee is None:
        return None
    return (
        db.session.query(CompanyAdmin)
        .filter_by(company_id=company.id, employee_id=employee.id)
        .first()
    )


def is_company_admin(email: str, company_code: str) -> bool:
    """True when the email belongs to an employee on the company's admin roster."""
    return _roster_entry(email, get_company_by_code(company_code)) is not None


def can_approve_orders(email: str, company_code: str) -> bool:
    """True only for roster entries carrying the approval capability."""
    entry = _roster_entry(email, get_company_by_code(company_code))
    return bool(entry and entry.can_approve_orders)


def require_order_approver(
    email: str,
    company: Company,
    *,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require the email to hold the approval capability for the company.

    Denials are written to security_events before PermissionDeniedError is
    raised, so the audit row survives even though the caller aborts.
    """
    entry = _roster_entry(email, company)
    if entry and entry.can_approve_orders:
        return

    reason = "Not a company admin" if entry is None else "Admin lacks order approval capability"
    log_security_event(
        event_type="ORDER_APPROVAL_DENIED",
        success=False,
        company_id=company.id,
        actor_email=(email or "").strip() or None,
        resource=resource,
        action="APPROVE_ORDER",
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise PermissionDeniedError(f"User {email} does not have permission to approve orders")


def _resolve_company_and_employee(company_code: str, employee_id: str) -> tuple[Company, Employee]:
    company = get_company_by_code(company_code)
    if not company:
        raise AdminRosterError(f"Company not found: {company_code}")
    employee = get_employee_by_employee_id(employee_id)
    if not employee:
        raise AdminRosterError(f"Employee not found: {employee_id}")
    return company, employee


def add_company_admin(company_code: str, employee_id: str, can_approve: bool = False) -> CompanyAdmin:
    """
    Put an employee on the company's admin roster (upsert).

    The employee must belong to the company. Re-adding an existing admin only
    updates the approval flag.
    """
    company, employee = _resolve_company_and_employee(company_code, employee_id)
    if employee.company_id != company.id:
        raise AdminRosterError(f"Employee {employee_id} does not belong to company {company_code}")

    entry = db.session.query(CompanyAdmin).filter_by(company_id=company.id, employee_id=employee.id).first()
    if entry is None:
        entry = CompanyAdmin(company_id=company.id, employee_id=employee.id, can_approve_orders=bool(can_approve))
        db.session.add(entry)
    else:
        entry.can_approve_orders = bool(can_approve)
    db.session.commit()
    return entry


def remove_company_admin(company_code: str, employee_id: str) -> bool:
    """Remove a roster entry. Returns False when there was nothing to remove."""
    company, employee = _resolve_company_and_employee(company_code, employee_id)
    deleted = (
        db.session.query(CompanyAdmin)
        .filter_by(company_id=company.id, employee_id=employee.id)
        .delete()
    )
    db.session.commit()
    return bool(deleted)


def update_company_admin_privileges(company_code: str, employee_id: str, can_approve: bool) -> CompanyAdmin:
    company, employee = _resolve_company_and_employee(company_code, employee_id)
    entry = db.session.query(CompanyAdmin).filter_by(company_id=company.id, employee_id=employee.id).first()
    if entry is None:
        raise AdminRosterError(f"Employee {employee_id} is not an admin of company {company_code}")
    entry.can_approve_orders = bool(can_approve)
    commit_with_retry()
    return entry


def get_company_admins(company_code: str) -> list[CompanyAdmin]:
    company = get_company_by_code(company_code)
    if not company:
        return []
    return (
        db.session.query(CompanyAdmin)
        .filter_by(company_id=company.id)
        .order_by(CompanyAdmin.id.asc())
        .all()
    )


def get_company_by_admin_email(email: str) -> Company | None:
    """First company whose roster lists this email, or None."""
    employee = get_employee_by_email(email)
    if employee is None:
        return None
    entry = (
        db.session.query(CompanyAdmin)
        .filter_by(employee_id=employee.id)
        .order_by(CompanyAdmin.id.asc())
        .first()
    )
    return entry.company if entry else None
