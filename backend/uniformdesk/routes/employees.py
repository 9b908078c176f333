# Overview: Flask API routes for employees; parses input and returns JSON responses.

# backend/uniformdesk/routes/employees.py
"""Employee lookups and eligibility summary."""

from flask import Blueprint, request, jsonify, current_app

from ..services import eligibility_service, employee_service, order_service
from uniformdesk.time_utils import parse_iso_datetime


employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")


@employees_bp.get("/<employee_id>")
def get_employee_route(employee_id: str):
    employee = employee_service.get_employee_by_employee_id(employee_id)
    if not employee:
        return jsonify({"error": f"Employee not found: {employee_id}"}), 404
    return jsonify(employee.to_dict())


@employees_bp.get("/<employee_id>/eligibility")
def get_eligibility_route(employee_id: str):
    """
    Per-category total / consumed / remaining with the current cycle window.

    Optional ?asOf=<ISO-8601> evaluates cycles at another moment.
    """
    try:
        as_of = parse_iso_datetime(request.args.get("asOf"))
    except ValueError:
        return jsonify({"error": "asOf must be an ISO-8601 datetime"}), 400

    try:
        summary = eligibility_service.get_eligibility_summary(employee_id, as_of=as_of)
        if summary is None:
            return jsonify({"error": f"Employee not found: {employee_id}"}), 404
        return jsonify(summary)
    except Exception:
        current_app.logger.exception("Failed to build eligibility summary")
        return jsonify({"error": "Internal server error"}), 500


@employees_bp.get("/<employee_id>/orders")
def get_employee_orders_route(employee_id: str):
    orders = order_service.get_orders_by_employee(employee_id)
    return jsonify([o.to_dict() for o in orders])
