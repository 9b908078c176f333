# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order Service - the single creation path for uniform orders

WHY: Single-order submission and the bulk pipeline both commit orders here, so
snapshotting, totals and the eligibility guard behave identically for both.

INVARIANTS:
- total_cents == sum(quantity * unit_price_cents) at creation time
- unit price, product name and category are snapshotted onto the line
- every line's size is one of the product's sizes
- every product is linked to the employee's company
- new orders start in "Awaiting approval"
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import Employee, Order, OrderItem, Product
from ..models.orders import STATUS_AWAITING_APPROVAL
from ..validation import ValidationError, to_cents, to_int, to_text
from uniformdesk.time_utils import utcnow
from .catalog_service import is_product_linked_to_company
from .concurrency import employee_commit_guard
from .eligibility_service import (
    consumed_for_employee,
    find_eligibility_violations,
    format_eligibility_exceeded,
    requested_by_category,
)
from .employee_service import get_company_by_code, get_employee_by_employee_id


# Dispatch preference -> customer-facing delivery estimate
DELIVERY_ESTIMATES = {
    "direct": "3-5 business days",
    "central": "5-7 business days",
}
DEFAULT_DELIVERY_ESTIMATE = "7-10 business days"
DEFAULT_DISPATCH_LOCATION = "standard"

_ORDER_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


class OrderError(Exception):
    """Raised for order operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class EligibilityError(OrderError):
    """Raised when an order asks for more than the employee has left."""


@dataclass
class OrderLineInput:
    product_id: int
    size: str
    quantity: int
    product_name: str | None = None
    price_cents: int | None = None


@dataclass
class _ResolvedLine:
    product: Product
    product_name: str
    category: str
    size: str
    quantity: int
    unit_price_cents: int


def estimate_delivery_time(dispatch_preference: str | None) -> str:
    """Anything other than direct/central (including unset) gets the slowest estimate."""
    return DELIVERY_ESTIMATES.get((dispatch_preference or "").strip().lower(), DEFAULT_DELIVERY_ESTIMATE)


def generate_order_number(now: datetime | None = None) -> str:
    now = now or utcnow()
    millis = int(now.replace(tzinfo=timezone.utc).timestamp() * 1000)
    suffix = "".join(secrets.choice(_ORDER_NUMBER_ALPHABET) for _ in range(9))
    return f"ORD-{millis}-{suffix}"


def parse_line_items(items: Any) -> list[OrderLineInput]:
    """
    Coerce API line items ({uniformId, uniformName, size, quantity, price})
    into OrderLineInput. Raises ValidationError on structurally bad input.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    lines: list[OrderLineInput] = []
    for index, raw in enumerate(items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = to_int(raw.get("uniformId", raw.get("uniform_id")))
        size = to_text(raw.get("size"))
        quantity = to_int(raw.get("quantity"))
        if product_id is None:
            raise ValidationError(f"items[{index}].uniformId is required")
        if not size:
            raise ValidationError(f"items[{index}].size is required")
        if quantity is None or quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be greater than 0")
        lines.append(
            OrderLineInput(
                product_id=product_id,
                size=size,
                quantity=quantity,
                product_name=to_text(raw.get("uniformName", raw.get("uniform_name"))),
                price_cents=to_cents(raw.get("price")),
            )
        )
    return lines


def _resolve_lines(lines: list[OrderLineInput], employee: Employee) -> list[_ResolvedLine]:
    resolved: list[_ResolvedLine] = []
    for line in lines:
        product = db.session.get(Product, line.product_id)
        if product is None:
            raise OrderError(f"Uniform not found: {line.product_id}")
        if not is_product_linked_to_company(product.id, employee.company_id):
            raise OrderError(f"Product {product.sku} is not available for your company")
        sizes = product.sizes or []
        if line.size not in sizes:
            raise OrderError(
                f"Invalid size {line.size} for product {product.sku}. "
                f"Available sizes: {', '.join(sizes)}"
            )
        if line.quantity <= 0:
            raise OrderError(f"Invalid quantity: {line.quantity}. Must be greater than 0")

        # Caller-supplied price wins when positive, otherwise the catalog price
        unit_price = line.price_cents if line.price_cents and line.price_cents > 0 else (product.price_cents or 0)
        resolved.append(
            _ResolvedLine(
                product=product,
                product_name=line.product_name or product.name,
                category=product.category,
                size=line.size,
                quantity=line.quantity,
                unit_price_cents=unit_price,
            )
        )
    return resolved


def _check_eligibility(employee: Employee, lines: list[_ResolvedLine]) -> None:
    violations = find_eligibility_violations(
        employee,
        requested_by_category(lines),
        consumed_for_employee(employee),
    )
    if violations:
        category, violation = next(iter(violations.items()))
        raise EligibilityError(
            format_eligibility_exceeded(category, violation),
            details={"categories": violations},
        )


def create_order(
    *,
    employee_id: str,
    items: list[OrderLineInput],
    delivery_address: str | None = None,
    estimated_delivery_time: str | None = None,
    dispatch_location: str | None = None,
    enforce_eligibility: bool = True,
) -> Order:
    """
    Commit a new order for one employee.

    Runs under the employee commit guard: the eligibility check (when
    enforced) and the insert happen atomically with respect to any other
    order for the same employee.

    Raises:
        OrderError: unknown employee/product, unlinked product, bad size
        EligibilityError: requested quantity exceeds remaining allowance
    """
    employee = get_employee_by_employee_id(employee_id)
    if employee is None:
        raise OrderError(f"Employee not found: {employee_id}")
    if employee.company is None:
        raise OrderError(f"Company not found for employee: {employee_id}")
    if not items:
        raise OrderError("Order must contain at least one item")

    with employee_commit_guard(employee.id):
        lines = _resolve_lines(items, employee)
        if enforce_eligibility:
            _check_eligibility(employee, lines)

        now = utcnow()
        preference = dispatch_location or employee.dispatch_preference
        order = Order(
            order_number=generate_order_number(now),
            employee_id=employee.id,
            company_id=employee.company_id,
            employee_name=employee.full_name,
            status=STATUS_AWAITING_APPROVAL,
            order_date=now,
            dispatch_location=preference or DEFAULT_DISPATCH_LOCATION,
            delivery_address=(
                delivery_address
                or employee.address
                or current_app.config.get("DEFAULT_DELIVERY_ADDRESS", "Address not available")
            ),
            estimated_delivery_time=estimated_delivery_time or estimate_delivery_time(preference),
        )
        for position, line in enumerate(lines, start=1):
            order.items.append(
                OrderItem(
                    product_id=line.product.id,
                    position=position,
                    product_name=line.product_name,
                    category=line.category,
                    size=line.size,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    line_total_cents=line.unit_price_cents * line.quantity,
                )
            )
        order.total_cents = sum(item.line_total_cents for item in order.items)

        # Bumps employee.version_id: a concurrent commit elsewhere goes stale
        employee.last_order_at = now

        db.session.add(order)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
    return order


def get_order(order_number: str | None) -> Order | None:
    if not order_number:
        return None
    return db.session.query(Order).filter_by(order_number=str(order_number).strip()).first()


def get_orders_by_company(company_code: str, *, status: str | None = None) -> list[Order]:
    company = get_company_by_code(company_code)
    if not company:
        return []
    q = db.session.query(Order).filter_by(company_id=company.id)
    if status:
        q = q.filter_by(status=status)
    return q.order_by(Order.order_date.desc(), Order.id.desc()).all()


def get_orders_by_employee(employee_id: str) -> list[Order]:
    employee = get_employee_by_employee_id(employee_id)
    if not employee:
        return []
    return (
        db.session.query(Order)
        .filter_by(employee_id=employee.id)
        .order_by(Order.order_date.desc(), Order.id.desc())
        .all()
    )


def get_all_orders(*, limit: int = 200) -> list[Order]:
    return (
        db.session.query(Order)
        .order_by(Order.order_date.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )
