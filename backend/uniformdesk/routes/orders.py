# Overview: Flask API routes for uniform orders; parses input and returns JSON responses.

# backend/uniformdesk/routes/orders.py
"""
Order API routes

- POST /api/orders/bulk       - Process a CSV-style batch for one company
- POST /api/orders            - Create an order, or approve / update status (by "action")
- GET  /api/orders            - Query orders, pending approvals, consumed eligibility
- GET  /api/orders/<orderId>  - Fetch one order
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import bulk_order_service, eligibility_service, lifecycle_service, order_service
from ..services.bulk_order_service import BulkOrderError
from ..services.lifecycle_service import LifecycleError, OrderNotFoundError
from ..services.order_service import OrderError
from ..services.permission_service import PermissionDeniedError
from ..validation import ValidationError, require_json_object, to_bool, to_text


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/bulk")
def bulk_orders_route():
    """
    Body: {"companyId": "...", "orders": [{rowNumber, employeeId, sku, size, quantity}, ...]}

    Returns 200 with per-row results even when every row failed.
    400 for a malformed batch, 404 for an unknown company.
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        result = bulk_order_service.process_bulk_orders(data.get("companyId"), data.get("orders"))

        summary = result["summary"]
        current_app.logger.info(
            "Bulk orders for company %s: %s rows, %s successful, %s failed",
            data.get("companyId"), summary["total"], summary["successful"], summary["failed"],
        )
        return jsonify(result), 200

    except BulkOrderError as e:
        return jsonify({"error": str(e)}), e.status_code
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to process bulk orders")
        return jsonify({"error": "Internal server error"}), 500


def _approve(data: dict):
    order_number = to_text(data.get("orderId"))
    admin_email = to_text(data.get("adminEmail"))
    if not order_number or not admin_email:
        return jsonify({"error": "orderId and adminEmail required"}), 400

    order = lifecycle_service.approve_order(
        order_number,
        admin_email,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify(order.to_dict()), 200


def _update_status(data: dict):
    order_number = to_text(data.get("orderId"))
    status = to_text(data.get("status"))
    if not order_number or not status:
        return jsonify({"error": "orderId and status required"}), 400

    order = lifecycle_service.update_order_status(order_number, status)
    return jsonify(order.to_dict()), 200


def _create(data: dict):
    employee_id = to_text(data.get("employeeId"))
    if not employee_id:
        return jsonify({"error": "employeeId required"}), 400

    order = order_service.create_order(
        employee_id=employee_id,
        items=order_service.parse_line_items(data.get("items")),
        delivery_address=to_text(data.get("deliveryAddress")),
        estimated_delivery_time=to_text(data.get("estimatedDeliveryTime")),
        dispatch_location=to_text(data.get("dispatchLocation")),
    )
    return jsonify(order.to_dict()), 201


@orders_bp.post("")
def orders_post_route():
    """
    Dispatch on "action":
    - "approve":      {orderId, adminEmail}  -> 200 | 400 | 403 | 404
    - "updateStatus": {orderId, status}      -> 200 | 400 | 404
    - otherwise create {employeeId, items, deliveryAddress?, estimatedDeliveryTime?, dispatchLocation?} -> 201 | 400
    """
    try:
        data = require_json_object(request.get_json(silent=True))
        action = data.get("action")

        if action == "approve":
            return _approve(data)
        if action == "updateStatus":
            return _update_status(data)
        return _create(data)

    except PermissionDeniedError as e:
        return jsonify({"error": str(e)}), 403
    except OrderNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except LifecycleError as e:
        return jsonify({"error": str(e)}), 400
    except OrderError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to process order request")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("")
def orders_get_route():
    """
    Query flags, first match wins:
    - pendingApprovalCount=true&companyId=  -> {"count": n}
    - pendingApprovals=true&companyId=      -> [order, ...]
    - consumedEligibility=true&employeeId=  -> {shirt, pant, shoe, jacket}
    - companyId=                            -> company orders
    - employeeId=                           -> employee orders
    - (none)                                -> recent orders
    """
    try:
        company_code = to_text(request.args.get("companyId"))
        employee_id = to_text(request.args.get("employeeId"))

        if to_bool(request.args.get("pendingApprovalCount")) and company_code:
            return jsonify({"count": lifecycle_service.get_pending_approval_count(company_code)})

        if to_bool(request.args.get("pendingApprovals")) and company_code:
            orders = lifecycle_service.get_pending_approvals(company_code)
            return jsonify([o.to_dict() for o in orders])

        if to_bool(request.args.get("consumedEligibility")) and employee_id:
            return jsonify(eligibility_service.get_consumed_eligibility(employee_id))

        if company_code:
            orders = order_service.get_orders_by_company(company_code, status=to_text(request.args.get("status")))
        elif employee_id:
            orders = order_service.get_orders_by_employee(employee_id)
        else:
            orders = order_service.get_all_orders()
        return jsonify([o.to_dict() for o in orders])

    except Exception:
        current_app.logger.exception("Failed to query orders")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<order_number>")
def get_order_route(order_number: str):
    order = order_service.get_order(order_number)
    if not order:
        return jsonify({"error": f"Order not found: {order_number}"}), 404
    payload = order.to_dict()
    payload["allowed_next_statuses"] = lifecycle_service.allowed_next_statuses(order.status)
    return jsonify(payload)
