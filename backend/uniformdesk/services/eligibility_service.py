# Overview: Service-layer operations for eligibility; encapsulates business logic and database work.

"""
Eligibility Ledger

================================================================================
PURPOSE: How much of each uniform category an employee may still order
================================================================================

MODEL:
    total[category]      stored on the Employee (allowance per renewal cycle)
    consumed[category]   DERIVED: sum of order item quantities in that category
    remaining[category]  total - consumed (may be negative; never clamped)

Consumption is not persisted anywhere. It is recomputed from order history on
every check so there is no second source of truth to drift. Callers that
check-then-commit must hold services.concurrency.employee_commit_guard.

RENEWAL CYCLES:
    A category's cycles start at the employee's date of joining and repeat
    every cycle_duration[category] months. With ELIGIBILITY_CYCLE_WINDOWING
    enabled only orders dated inside the current cycle count as consumed.
    Disabled (default), every order the employee ever placed counts.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Employee, Order, OrderItem, ELIGIBILITY_CATEGORIES
from uniformdesk.time_utils import add_months, to_utc_naive, to_utc_z, utcnow


# Programme start used for employees without a recorded joining date
DEFAULT_DATE_OF_JOINING = datetime(2025, 10, 1)


def zero_consumption() -> dict[str, int]:
    return {category: 0 for category in ELIGIBILITY_CATEGORIES}


def _cycle_windowing_enabled(cycle_windowing: bool | None) -> bool:
    if cycle_windowing is not None:
        return cycle_windowing
    return bool(current_app.config.get("ELIGIBILITY_CYCLE_WINDOWING", False))


def current_cycle_dates(
    date_of_joining: datetime | None,
    cycle_months: int,
    *,
    as_of: datetime | None = None,
) -> tuple[datetime, datetime]:
    """
    Return (start, end) of the cycle containing as_of; end is exclusive.

    Cycle boundaries are always computed from the joining date, never from the
    previous boundary, so month-end clamping does not drift (joined Jan 31 ->
    Jul 31, Jan 31, ... rather than Jul 31, Jan 28, ...).

    Before the joining date the first cycle is returned.
    """
    # Columns may come back tz-aware (Postgres); compare everything UTC-naive
    start = to_utc_naive(date_of_joining) or DEFAULT_DATE_OF_JOINING
    months = max(1, int(cycle_months or 1))
    as_of = to_utc_naive(as_of) or utcnow()

    if as_of < start:
        return start, add_months(start, months)

    elapsed = (as_of.year - start.year) * 12 + (as_of.month - start.month)
    index = elapsed // months
    cycle_start = add_months(start, index * months)
    if cycle_start > as_of:
        index -= 1
        cycle_start = add_months(start, index * months)
    cycle_end = add_months(start, (index + 1) * months)
    return cycle_start, cycle_end


def next_cycle_start(date_of_joining: datetime | None, cycle_months: int, *, as_of: datetime | None = None) -> datetime:
    return current_cycle_dates(date_of_joining, cycle_months, as_of=as_of)[1]


def days_remaining_in_cycle(date_of_joining: datetime | None, cycle_months: int, *, as_of: datetime | None = None) -> int:
    as_of = to_utc_naive(as_of) or utcnow()
    _, cycle_end = current_cycle_dates(date_of_joining, cycle_months, as_of=as_of)
    return max(0, (cycle_end.date() - as_of.date()).days)


def is_in_current_cycle(
    moment: datetime,
    date_of_joining: datetime | None,
    cycle_months: int,
    *,
    as_of: datetime | None = None,
) -> bool:
    cycle_start, cycle_end = current_cycle_dates(date_of_joining, cycle_months, as_of=as_of)
    return cycle_start <= to_utc_naive(moment) < cycle_end


def consumed_for_employee(
    employee: Employee,
    *,
    as_of: datetime | None = None,
    cycle_windowing: bool | None = None,
) -> dict[str, int]:
    """
    Sum ordered quantities per category across the employee's orders.

    All order statuses count. Items in categories without an allowance
    (accessory) are ignored. Always returns every eligibility category.
    """
    consumed = zero_consumption()

    if not _cycle_windowing_enabled(cycle_windowing):
        totals = (
            db.session.query(OrderItem.category, func.sum(OrderItem.quantity))
            .join(Order, OrderItem.order_id == Order.id)
            .filter(Order.employee_id == employee.id)
            .group_by(OrderItem.category)
            .all()
        )
        for category, quantity in totals:
            if category in consumed:
                consumed[category] = int(quantity or 0)
        return consumed

    cycle_duration = employee.cycle_duration
    rows = (
        db.session.query(OrderItem.category, OrderItem.quantity, Order.order_date)
        .join(Order, OrderItem.order_id == Order.id)
        .filter(Order.employee_id == employee.id)
        .all()
    )
    for category, quantity, order_date in rows:
        if category not in consumed or order_date is None:
            continue
        if is_in_current_cycle(order_date, employee.date_of_joining, cycle_duration[category], as_of=as_of):
            consumed[category] += int(quantity or 0)
    return consumed


def get_consumed_eligibility(
    employee_id: str,
    *,
    as_of: datetime | None = None,
    cycle_windowing: bool | None = None,
) -> dict[str, int]:
    """
    Consumed quantity per category for the employee with this business id.

    An unknown employee yields all zeros rather than an error: callers treat
    "no history" and "no such employee" the same for consumption purposes.
    """
    employee = db.session.query(Employee).filter_by(employee_id=employee_id).first()
    if employee is None:
        return zero_consumption()
    return consumed_for_employee(employee, as_of=as_of, cycle_windowing=cycle_windowing)


def get_remaining_eligibility(employee: Employee, consumed: dict[str, int] | None = None) -> dict[str, int]:
    """total - consumed per category. Negative means already over; not clamped."""
    if consumed is None:
        consumed = consumed_for_employee(employee)
    totals = employee.eligibility
    return {
        category: totals[category] - consumed.get(category, 0)
        for category in ELIGIBILITY_CATEGORIES
    }


def get_eligibility_summary(employee_id: str, *, as_of: datetime | None = None) -> dict | None:
    """Per-category total / consumed / remaining plus the current cycle window."""
    employee = db.session.query(Employee).filter_by(employee_id=employee_id).first()
    if employee is None:
        return None

    as_of = as_of or utcnow()
    consumed = consumed_for_employee(employee, as_of=as_of)
    remaining = get_remaining_eligibility(employee, consumed)
    totals = employee.eligibility
    durations = employee.cycle_duration

    categories = {}
    for category in ELIGIBILITY_CATEGORIES:
        cycle_start, cycle_end = current_cycle_dates(employee.date_of_joining, durations[category], as_of=as_of)
        categories[category] = {
            "total": totals[category],
            "consumed": consumed[category],
            "remaining": remaining[category],
            "cycle_months": durations[category],
            "cycle_start": to_utc_z(cycle_start),
            "cycle_end": to_utc_z(cycle_end),
            "days_remaining": days_remaining_in_cycle(employee.date_of_joining, durations[category], as_of=as_of),
        }

    return {
        "employee_id": employee.employee_id,
        "cycle_windowing": _cycle_windowing_enabled(None),
        "categories": categories,
    }


def requested_by_category(items) -> dict[str, int]:
    """Sum quantities per category over objects exposing .category and .quantity."""
    totals: dict[str, int] = {}
    for item in items:
        totals[item.category] = totals.get(item.category, 0) + int(item.quantity)
    return totals


def find_eligibility_violations(
    employee: Employee,
    requested: dict[str, int],
    consumed: dict[str, int] | None = None,
) -> dict[str, dict[str, int]]:
    """
    Categories whose requested quantity exceeds what remains.

    Categories without an allowance (e.g. accessory) have a total of zero, so
    any request in them is a violation.
    """
    if consumed is None:
        consumed = consumed_for_employee(employee)
    totals = employee.eligibility
    remaining = get_remaining_eligibility(employee, consumed)

    violations: dict[str, dict[str, int]] = {}
    for category, quantity in requested.items():
        left = remaining.get(category, 0)
        if quantity > left:
            violations[category] = {
                "requested": quantity,
                "remaining": left,
                "total": totals.get(category, 0),
                "consumed": consumed.get(category, 0),
            }
    return violations


def format_eligibility_exceeded(category: str, violation: dict[str, int]) -> str:
    return (
        f"Eligibility exceeded: Requested {violation['requested']} {category}(s), "
        f"but only {violation['remaining']} remaining "
        f"(Total: {violation['total']}, Used: {violation['consumed']})"
    )
