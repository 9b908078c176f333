# Overview: Service-layer operations for order lifecycle; encapsulates business logic and database work.

"""
Order Lifecycle Service

================================================================================
PURPOSE: Enforce Awaiting approval -> Awaiting fulfilment -> Dispatched -> Delivered
================================================================================

STATE MACHINE:
    Awaiting approval -> Awaiting fulfilment -> Dispatched -> Delivered

    Awaiting approval:   created, counts toward eligibility, waits for an admin
    Awaiting fulfilment: approved by an admin holding the approval capability
    Dispatched:          handed to the carrier
    Delivered:           terminal

RULES:
1. Cannot skip states (Awaiting approval -> Dispatched is forbidden)
2. Cannot reverse states (Delivered is terminal)
3. Awaiting approval -> Awaiting fulfilment only through approve_order
4. Setting the current status again is a no-op
5. Every status counts toward eligibility consumption; approval changes nothing there
================================================================================
"""

from __future__ import annotations

from ..extensions import db
from ..models import Order
from ..models.orders import (
    ORDER_STATUSES,
    STATUS_AWAITING_APPROVAL,
    STATUS_AWAITING_FULFILMENT,
    STATUS_DELIVERED,
    STATUS_DISPATCHED,
)
from uniformdesk.time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .employee_service import get_company_by_code
from .permission_service import require_order_approver


VALID_STATUSES = set(ORDER_STATUSES)

# The only forward edges
ORDER_TRANSITIONS = {
    STATUS_AWAITING_APPROVAL: {STATUS_AWAITING_FULFILMENT},
    STATUS_AWAITING_FULFILMENT: {STATUS_DISPATCHED},
    STATUS_DISPATCHED: {STATUS_DELIVERED},
    STATUS_DELIVERED: set(),
}

# Reserved for approve_order (needs the approval capability)
APPROVAL_TRANSITION = (STATUS_AWAITING_APPROVAL, STATUS_AWAITING_FULFILMENT)


class LifecycleError(ValueError):
    """
    Raised when an invalid lifecycle transition is attempted.

    This is a domain error, not a technical error. It indicates
    that the caller attempted an operation that violates business rules.
    """
    pass


class OrderNotFoundError(LookupError):
    """Raised when an order number does not resolve."""


def validate_status(status: str) -> None:
    """
    Raises:
        LifecycleError: If status is not in VALID_STATUSES
    """
    if status not in VALID_STATUSES:
        raise LifecycleError(
            f"Invalid status '{status}'. Must be one of: {', '.join(ORDER_STATUSES)}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    validate_status(from_status)
    validate_status(to_status)

    if from_status == to_status:
        return True
    return to_status in ORDER_TRANSITIONS[from_status]


def allowed_next_statuses(status: str) -> list[str]:
    validate_status(status)
    return [s for s in ORDER_STATUSES if s in ORDER_TRANSITIONS[status]]


def _load_for_update(order_number: str) -> Order:
    order = lock_for_update(db.session.query(Order).filter_by(order_number=order_number)).first()
    if order is None:
        raise OrderNotFoundError(f"Order not found: {order_number}")
    return order


def approve_order(
    order_number: str,
    admin_email: str,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> Order:
    """
    Approve an order (Awaiting approval -> Awaiting fulfilment).

    Checks, in order:
    - the order exists (OrderNotFoundError)
    - it is awaiting approval (LifecycleError)
    - admin_email may approve for the order's company (PermissionDeniedError,
      with an ORDER_APPROVAL_DENIED security event)

    Approval records who approved and when. Eligibility consumption is
    unaffected: the order already counted from creation.
    """
    order = _load_for_update(order_number)

    if order.status != STATUS_AWAITING_APPROVAL:
        raise LifecycleError(
            f"Order {order_number} is not in 'Awaiting approval' status "
            f"(current status: '{order.status}')"
        )

    require_order_approver(
        admin_email,
        order.company,
        resource=f"/api/orders/{order_number}",
        ip_address=ip_address,
        user_agent=user_agent,
    )

    def _approve():
        current = _load_for_update(order_number)
        if current.status != STATUS_AWAITING_APPROVAL:
            raise LifecycleError(
                f"Order {order_number} is not in 'Awaiting approval' status "
                f"(current status: '{current.status}')"
            )
        now = utcnow()
        current.status = STATUS_AWAITING_FULFILMENT
        current.approved_by_email = (admin_email or "").strip()
        current.approved_at = now
        current.status_updated_at = now
        db.session.commit()
        return current

    return run_with_retry(_approve)


def update_order_status(order_number: str, status: str) -> Order:
    """
    Move an order along the fulfilment edges.

    Raises:
        OrderNotFoundError: unknown order number
        LifecycleError: unknown status, illegal edge, or an attempt to
            approve through this path
    """
    validate_status(status)

    def _update():
        order = _load_for_update(order_number)
        if order.status == status:
            return order
        if (order.status, status) == APPROVAL_TRANSITION:
            raise LifecycleError(
                f"Order {order_number} must be approved by a company admin before fulfilment"
            )
        if not can_transition(order.status, status):
            raise LifecycleError(
                f"Cannot move order {order_number} from '{order.status}' to '{status}'"
            )
        order.status = status
        order.status_updated_at = utcnow()
        db.session.commit()
        return order

    return run_with_retry(_update)


def get_pending_approvals(company_code: str, *, limit: int = 200) -> list[Order]:
    """
    Orders of a company still waiting for an admin, newest first.

    USAGE: admin approval queue.
    """
    company = get_company_by_code(company_code)
    if not company:
        return []
    return (
        db.session.query(Order)
        .filter_by(company_id=company.id, status=STATUS_AWAITING_APPROVAL)
        .order_by(Order.order_date.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )


def get_pending_approval_count(company_code: str) -> int:
    company = get_company_by_code(company_code)
    if not company:
        return 0
    return (
        db.session.query(Order)
        .filter_by(company_id=company.id, status=STATUS_AWAITING_APPROVAL)
        .count()
    )
