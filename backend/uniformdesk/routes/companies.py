# Overview: Flask API routes for companies and their admin rosters; parses input and returns JSON responses.

# backend/uniformdesk/routes/companies.py
"""
Company API routes

- GET    /api/companies                               - List companies
- GET    /api/companies/<code>                        - Fetch one company
- GET    /api/companies/<code>/employees              - Company employees
- GET    /api/companies/<code>/products               - Products available to the company
- GET    /api/companies/<code>/vendors                - Vendors serving the company
- GET    /api/companies/by-admin?email=               - Company administered by an email
- GET    /api/companies/<code>/admins                 - Admin roster
- POST   /api/companies/<code>/admins                 - Add (or re-flag) an admin
- PATCH  /api/companies/<code>/admins/<employeeId>    - Change approval capability
- DELETE /api/companies/<code>/admins/<employeeId>    - Remove from roster
- GET    /api/companies/<code>/admins/check?email=    - {isAdmin, canApproveOrders}
- GET    /api/companies/<code>/security-events         - Audit trail, newest first
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..models import Company, SecurityEvent
from ..services import catalog_service, employee_service, permission_service
from ..services.permission_service import AdminRosterError
from ..validation import ValidationError, require_json_object, to_text


companies_bp = Blueprint("companies", __name__, url_prefix="/api/companies")


@companies_bp.get("")
def list_companies_route():
    companies = db.session.query(Company).order_by(Company.code.asc()).all()
    return jsonify([c.to_dict() for c in companies])


@companies_bp.get("/by-admin")
def company_by_admin_route():
    email = to_text(request.args.get("email"))
    if not email:
        return jsonify({"error": "email required"}), 400
    company = permission_service.get_company_by_admin_email(email)
    if not company:
        return jsonify({"error": f"No company administered by {email}"}), 404
    return jsonify(company.to_dict())


@companies_bp.get("/<company_code>")
def get_company_route(company_code: str):
    company = employee_service.get_company_by_code(company_code)
    if not company:
        return jsonify({"error": f"Company not found: {company_code}"}), 404
    return jsonify(company.to_dict())


@companies_bp.get("/<company_code>/employees")
def company_employees_route(company_code: str):
    if not employee_service.get_company_by_code(company_code):
        return jsonify({"error": f"Company not found: {company_code}"}), 404
    employees = employee_service.get_employees_by_company(company_code)
    return jsonify([e.to_dict() for e in employees])


@companies_bp.get("/<company_code>/products")
def company_products_route(company_code: str):
    company = employee_service.get_company_by_code(company_code)
    if not company:
        return jsonify({"error": f"Company not found: {company_code}"}), 404
    products = catalog_service.get_products_by_company(company.id)
    return jsonify([p.to_dict() for p in products])


@companies_bp.get("/<company_code>/vendors")
def company_vendors_route(company_code: str):
    company = employee_service.get_company_by_code(company_code)
    if not company:
        return jsonify({"error": f"Company not found: {company_code}"}), 404
    vendors = catalog_service.get_vendors_for_company(company.id)
    return jsonify([v.to_dict() for v in vendors])


@companies_bp.get("/<company_code>/admins")
def list_admins_route(company_code: str):
    if not employee_service.get_company_by_code(company_code):
        return jsonify({"error": f"Company not found: {company_code}"}), 404
    admins = permission_service.get_company_admins(company_code)
    return jsonify([a.to_dict() for a in admins])


@companies_bp.get("/<company_code>/admins/check")
def check_admin_route(company_code: str):
    """Never 404s: an unknown company or email simply answers False."""
    email = to_text(request.args.get("email"))
    if not email:
        return jsonify({"error": "email required"}), 400
    return jsonify({
        "isAdmin": permission_service.is_company_admin(email, company_code),
        "canApproveOrders": permission_service.can_approve_orders(email, company_code),
    })


@companies_bp.post("/<company_code>/admins")
def add_admin_route(company_code: str):
    """Body: {"employeeId": "...", "canApproveOrders": bool}"""
    try:
        data = require_json_object(request.get_json(silent=True))
        employee_id = to_text(data.get("employeeId"))
        if not employee_id:
            return jsonify({"error": "Employee ID is required"}), 400
        can_approve = data.get("canApproveOrders", False)
        if not isinstance(can_approve, bool):
            return jsonify({"error": "canApproveOrders must be a boolean"}), 400

        entry = permission_service.add_company_admin(company_code, employee_id, can_approve)
        permission_service.log_security_event(
            event_type="ADMIN_ADDED",
            success=True,
            company_id=entry.company_id,
            resource=f"/api/companies/{company_code}/admins",
            action="ADD_ADMIN",
            reason=f"employee={employee_id} can_approve_orders={can_approve}",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return jsonify(entry.to_dict()), 201

    except AdminRosterError as e:
        return jsonify({"error": str(e)}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to add company admin")
        return jsonify({"error": "Internal server error"}), 500


@companies_bp.patch("/<company_code>/admins/<employee_id>")
def update_admin_route(company_code: str, employee_id: str):
    """Body: {"canApproveOrders": bool}"""
    try:
        data = require_json_object(request.get_json(silent=True))
        can_approve = data.get("canApproveOrders")
        if not isinstance(can_approve, bool):
            return jsonify({"error": "canApproveOrders must be a boolean"}), 400

        entry = permission_service.update_company_admin_privileges(company_code, employee_id, can_approve)
        permission_service.log_security_event(
            event_type="ADMIN_PRIVILEGES_UPDATED",
            success=True,
            company_id=entry.company_id,
            resource=f"/api/companies/{company_code}/admins/{employee_id}",
            action="UPDATE_ADMIN",
            reason=f"can_approve_orders={can_approve}",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return jsonify(entry.to_dict())

    except AdminRosterError as e:
        return jsonify({"error": str(e)}), 400
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update company admin")
        return jsonify({"error": "Internal server error"}), 500


@companies_bp.delete("/<company_code>/admins/<employee_id>")
def remove_admin_route(company_code: str, employee_id: str):
    try:
        removed = permission_service.remove_company_admin(company_code, employee_id)
        if not removed:
            return jsonify({"error": f"Employee {employee_id} is not an admin of company {company_code}"}), 404

        company = employee_service.get_company_by_code(company_code)
        permission_service.log_security_event(
            event_type="ADMIN_REMOVED",
            success=True,
            company_id=company.id if company else None,
            resource=f"/api/companies/{company_code}/admins/{employee_id}",
            action="REMOVE_ADMIN",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return jsonify({"success": True})

    except AdminRosterError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to remove company admin")
        return jsonify({"error": "Internal server error"}), 500


@companies_bp.get("/<company_code>/security-events")
def security_events_route(company_code: str):
    company = employee_service.get_company_by_code(company_code)
    if not company:
        return jsonify({"error": f"Company not found: {company_code}"}), 404

    limit = min(request.args.get("limit", 100, type=int), 500)
    events = (
        db.session.query(SecurityEvent)
        .filter_by(company_id=company.id)
        .order_by(SecurityEvent.occurred_at.desc(), SecurityEvent.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify([e.to_dict() for e in events])
