# Overview: Service-layer operations for bulk ordering; encapsulates business logic and database work.

"""
Bulk Order Service - turn a CSV-style batch of rows into committed orders

PIPELINE (per batch):
1. Parse: raw dict -> BulkOrderRow, or a RowRejection (missing employee id)
2. Group: rows by employee id, first-seen order
3. Resolve: employee exists and belongs to the batch's company
4. Validate: SKU, company link, size, quantity per row
5. Eligibility: requested total per category vs remaining (pre-batch consumption)
6. Commit: one order per employee through order_service.create_order

OUTCOMES:
- Exactly one result per input row, sorted by rowNumber
- A row fails for its own reason; a category over its allowance fails every
  row of that category for the employee; other categories still commit
- A failure in one employee's group never affects another group
- Only structural problems with the batch itself raise (BulkOrderError)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import Company, Employee, Product
from ..validation import ValidationError, to_int, to_text
from .catalog_service import get_company_products_by_sku, get_product_by_sku
from .concurrency import employee_commit_guard
from .eligibility_service import (
    consumed_for_employee,
    find_eligibility_violations,
    format_eligibility_exceeded,
    requested_by_category,
)
from .employee_service import get_company_by_code, get_employee_by_employee_id
from .order_service import OrderLineInput, create_order


STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"

DEFAULT_BULK_ORDER_MAX_ROWS = 5000


class BulkOrderError(Exception):
    """Raised for structural problems with a batch (not for individual rows)."""
    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class BulkOrderRow:
    row_number: int
    employee_id: str
    sku: str
    size: str
    quantity: int


@dataclass
class RowRejection:
    row_number: int
    employee_id: str
    sku: str
    size: str
    quantity: int
    error: str


@dataclass
class CandidateItem:
    row: BulkOrderRow
    product: Product
    category: str
    unit_price_cents: int

    @property
    def quantity(self) -> int:
        return self.row.quantity


@dataclass
class BulkRowResult:
    row_number: int
    employee_id: str
    sku: str
    size: str
    quantity: int
    status: str
    order_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        data = {
            "rowNumber": self.row_number,
            "employeeId": self.employee_id,
            "sku": self.sku,
            "size": self.size,
            "quantity": self.quantity,
            "status": self.status,
        }
        if self.order_id is not None:
            data["orderId"] = self.order_id
        if self.error is not None:
            data["error"] = self.error
        return data


def _pick(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _coerce_quantity(value: Any) -> int:
    try:
        quantity = to_int(value)
    except ValidationError:
        return 0
    return quantity or 0


def parse_row(raw: Any) -> BulkOrderRow | RowRejection:
    """
    Normalize one raw row. Accepts camelCase and snake_case keys.

    Strings are trimmed, quantity falls back to 0 when missing or not a
    number, and a missing row number becomes 0.
    """
    if not isinstance(raw, dict):
        raw = {}

    try:
        row_number = to_int(_pick(raw, "rowNumber", "row_number")) or 0
    except ValidationError:
        row_number = 0
    employee_id = to_text(_pick(raw, "employeeId", "employee_id")) or ""
    sku = to_text(_pick(raw, "sku")) or ""
    size = to_text(_pick(raw, "size")) or ""
    quantity = _coerce_quantity(_pick(raw, "quantity"))

    if not employee_id:
        return RowRejection(row_number, employee_id, sku, size, quantity, "Employee ID is required")
    return BulkOrderRow(row_number, employee_id, sku, size, quantity)


def _failed(row: BulkOrderRow | RowRejection, error: str) -> BulkRowResult:
    return BulkRowResult(
        row_number=row.row_number,
        employee_id=row.employee_id,
        sku=row.sku,
        size=row.size,
        quantity=row.quantity,
        status=STATUS_FAILED,
        error=error,
    )


def _succeeded(row: BulkOrderRow, order_number: str) -> BulkRowResult:
    return BulkRowResult(
        row_number=row.row_number,
        employee_id=row.employee_id,
        sku=row.sku,
        size=row.size,
        quantity=row.quantity,
        status=STATUS_SUCCESS,
        order_id=order_number,
    )


class _GroupRecorder:
    """Collects results for one employee group and remembers which rows got one."""

    def __init__(self, results: list[BulkRowResult]):
        self._results = results
        self._seen: set[int] = set()

    def fail(self, row: BulkOrderRow, error: str) -> None:
        self._seen.add(id(row))
        self._results.append(_failed(row, error))

    def succeed(self, row: BulkOrderRow, order_number: str) -> None:
        self._seen.add(id(row))
        self._results.append(_succeeded(row, order_number))

    def has(self, row: BulkOrderRow) -> bool:
        return id(row) in self._seen


def _validate_row(row: BulkOrderRow, company_products: dict[str, Product]) -> CandidateItem | str:
    """Return a candidate item, or the error message for the row."""
    product = company_products.get(row.sku)
    if product is None:
        if get_product_by_sku(row.sku) is None:
            return f"Product not found for SKU: {row.sku}"
        return f"Product {row.sku} is not available for your company"

    sizes = product.sizes or []
    if row.size not in sizes:
        return f"Invalid size {row.size} for product {row.sku}. Available sizes: {', '.join(sizes)}"

    if row.quantity <= 0:
        return f"Invalid quantity: {row.quantity}. Must be greater than 0"

    return CandidateItem(
        row=row,
        product=product,
        category=product.category,
        unit_price_cents=product.price_cents or 0,
    )


def _process_group(
    company: Company,
    employee_id: str,
    rows: list[BulkOrderRow],
    company_products: dict[str, Product],
    record: _GroupRecorder,
) -> None:
    employee = get_employee_by_employee_id(employee_id)
    if employee is None:
        for row in rows:
            record.fail(row, f"Employee not found: {employee_id}")
        return
    if employee.company_id != company.id:
        for row in rows:
            record.fail(row, f"Employee {employee_id} does not belong to your company")
        return

    candidates: list[CandidateItem] = []
    for row in rows:
        outcome = _validate_row(row, company_products)
        if isinstance(outcome, str):
            record.fail(row, outcome)
        else:
            candidates.append(outcome)
    if not candidates:
        return

    with employee_commit_guard(employee.id):
        survivors = _apply_eligibility(employee, candidates, record)
        if not survivors:
            return

        try:
            order = create_order(
                employee_id=employee.employee_id,
                items=[
                    OrderLineInput(
                        product_id=item.product.id,
                        product_name=item.product.name,
                        size=item.row.size,
                        quantity=item.row.quantity,
                        price_cents=item.unit_price_cents,
                    )
                    for item in survivors
                ],
                enforce_eligibility=False,
            )
        except Exception as exc:
            for item in survivors:
                record.fail(item.row, f"Failed to create order: {exc}")
            return

        for item in survivors:
            record.succeed(item.row, order.order_number)


def _apply_eligibility(employee: Employee, candidates: list[CandidateItem], record: _GroupRecorder) -> list[CandidateItem]:
    violations = find_eligibility_violations(
        employee,
        requested_by_category(candidates),
        consumed_for_employee(employee),
    )
    survivors: list[CandidateItem] = []
    for item in candidates:
        violation = violations.get(item.category)
        if violation:
            record.fail(item.row, format_eligibility_exceeded(item.category, violation))
        else:
            survivors.append(item)
    return survivors


def process_bulk_orders(company_code: Any, rows: Any) -> dict:
    """
    Process a batch of order rows for one company.

    Returns:
        {"success": True, "results": [...], "summary": {"total", "successful", "failed"}}

    Raises:
        BulkOrderError: missing company id, rows not a list, too many rows
            (400) or unknown company (404)
    """
    company_code = to_text(company_code)
    if not company_code:
        raise BulkOrderError("Company ID is required")
    if not isinstance(rows, list):
        raise BulkOrderError("Orders array is required")

    max_rows = current_app.config.get("BULK_ORDER_MAX_ROWS", DEFAULT_BULK_ORDER_MAX_ROWS)
    if max_rows and len(rows) > max_rows:
        raise BulkOrderError(f"Too many rows: {len(rows)}. Maximum is {max_rows}")

    company = get_company_by_code(company_code)
    if company is None:
        raise BulkOrderError(f"Company not found: {company_code}", status_code=404)

    results: list[BulkRowResult] = []
    groups: dict[str, list[BulkOrderRow]] = {}
    for raw in rows:
        parsed = parse_row(raw)
        if isinstance(parsed, RowRejection):
            results.append(_failed(parsed, parsed.error))
        else:
            groups.setdefault(parsed.employee_id, []).append(parsed)

    company_products = get_company_products_by_sku(company.id)

    for employee_id, group_rows in groups.items():
        tracker = _GroupRecorder(results)
        try:
            _process_group(company, employee_id, group_rows, company_products, tracker)
        except Exception as exc:
            db.session.rollback()
            current_app.logger.exception("Bulk order group failed for employee %s", employee_id)
            for row in group_rows:
                if not tracker.has(row):
                    results.append(_failed(row, f"Error processing employee {employee_id}: {exc}"))

    results.sort(key=lambda r: r.row_number)
    successful = sum(1 for r in results if r.status == STATUS_SUCCESS)
    return {
        "success": True,
        "results": [r.to_dict() for r in results],
        "summary": {
            "total": len(results),
            "successful": successful,
            "failed": len(results) - successful,
        },
    }
