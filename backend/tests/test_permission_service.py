"""
Admin authorization gate tests.

Verifies:
- Roster membership and approval capability are independent
- Unknown email / company / roster entry answer False, never raise
- Roster management keeps admins inside their own company
"""

import pytest

from uniformdesk.models import CompanyAdmin, SecurityEvent
from uniformdesk.services import permission_service
from uniformdesk.services.permission_service import AdminRosterError, PermissionDeniedError


class TestCanApproveOrders:

    def test_approver(self, approver_a):
        assert permission_service.can_approve_orders("approver@acme.com", "COMP-A") is True
        assert permission_service.is_company_admin("approver@acme.com", "COMP-A") is True

    def test_admin_without_capability(self, viewer_a):
        assert permission_service.is_company_admin("viewer@acme.com", "COMP-A") is True
        assert permission_service.can_approve_orders("viewer@acme.com", "COMP-A") is False

    def test_capability_does_not_cross_companies(self, approver_b, company_a):
        assert permission_service.can_approve_orders("approver@beta.com", "COMP-A") is False
        assert permission_service.is_company_admin("approver@beta.com", "COMP-A") is False

    @pytest.mark.parametrize(
        "email,company_code",
        [
            ("nobody@acme.com", "COMP-A"),
            ("anita@acme.com", "COMP-A"),
            ("approver@acme.com", "NOPE"),
            ("", "COMP-A"),
        ],
    )
    def test_unknowns_are_false(self, approver_a, employee_a, email, company_code):
        assert permission_service.can_approve_orders(email, company_code) is False

    def test_email_is_trimmed_and_case_insensitive(self, approver_a):
        assert permission_service.can_approve_orders(" APPROVER@acme.COM ", "COMP-A") is True

    def test_checks_are_not_logged(self, db_session, approver_a):
        permission_service.can_approve_orders("nobody@acme.com", "COMP-A")
        assert db_session.query(SecurityEvent).count() == 0


class TestRequireOrderApprover:

    def test_denial_is_logged(self, db_session, viewer_a, company_a):
        with pytest.raises(PermissionDeniedError):
            permission_service.require_order_approver(
                "viewer@acme.com", company_a, resource="/api/orders/ORD-1", ip_address="10.0.0.9"
            )

        event = db_session.query(SecurityEvent).one()
        assert event.reason == "Admin lacks order approval capability"
        assert event.ip_address == "10.0.0.9"
        assert event.resource == "/api/orders/ORD-1"

    def test_grant_is_silent(self, db_session, approver_a, company_a):
        permission_service.require_order_approver("approver@acme.com", company_a)
        assert db_session.query(SecurityEvent).count() == 0


class TestRosterManagement:

    def test_add_admin_is_upsert(self, db_session, employee_a):
        permission_service.add_company_admin("COMP-A", "EMP-A1")
        assert permission_service.can_approve_orders("anita@acme.com", "COMP-A") is False

        permission_service.add_company_admin("COMP-A", "EMP-A1", can_approve=True)
        assert permission_service.can_approve_orders("anita@acme.com", "COMP-A") is True
        assert db_session.query(CompanyAdmin).count() == 1

    def test_add_admin_from_other_company_rejected(self, company_a, employee_b):
        with pytest.raises(AdminRosterError, match="does not belong to company COMP-A"):
            permission_service.add_company_admin("COMP-A", "EMP-B1")

    def test_add_admin_unknown_references(self, company_a, employee_a):
        with pytest.raises(AdminRosterError, match="Company not found"):
            permission_service.add_company_admin("NOPE", "EMP-A1")
        with pytest.raises(AdminRosterError, match="Employee not found"):
            permission_service.add_company_admin("COMP-A", "NOPE")

    def test_update_privileges(self, viewer_a):
        permission_service.update_company_admin_privileges("COMP-A", "ADM-A2", True)
        assert permission_service.can_approve_orders("viewer@acme.com", "COMP-A") is True

    def test_update_privileges_requires_roster_entry(self, employee_a):
        with pytest.raises(AdminRosterError, match="is not an admin"):
            permission_service.update_company_admin_privileges("COMP-A", "EMP-A1", True)

    def test_remove_admin(self, approver_a):
        assert permission_service.remove_company_admin("COMP-A", "ADM-A1") is True
        assert permission_service.remove_company_admin("COMP-A", "ADM-A1") is False
        assert permission_service.is_company_admin("approver@acme.com", "COMP-A") is False

    def test_list_and_lookup_by_email(self, approver_a, viewer_a, approver_b):
        admins = permission_service.get_company_admins("COMP-A")
        assert [a.employee.employee_id for a in admins] == ["ADM-A1", "ADM-A2"]

        assert permission_service.get_company_by_admin_email("approver@beta.com").code == "COMP-B"
        assert permission_service.get_company_by_admin_email("anita@acme.com") is None
        assert permission_service.get_company_admins("NOPE") == []
