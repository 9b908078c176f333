"""
Order lifecycle tests.

State machine:
    Awaiting approval -> Awaiting fulfilment -> Dispatched -> Delivered
"""

import pytest

from uniformdesk.models import SecurityEvent
from uniformdesk.models.orders import (
    STATUS_AWAITING_APPROVAL,
    STATUS_AWAITING_FULFILMENT,
    STATUS_DELIVERED,
    STATUS_DISPATCHED,
)
from uniformdesk.services import eligibility_service, lifecycle_service, order_service
from uniformdesk.services.lifecycle_service import LifecycleError, OrderNotFoundError
from uniformdesk.services.order_service import OrderLineInput
from uniformdesk.services.permission_service import PermissionDeniedError


@pytest.fixture
def order(employee_a, catalog):
    return order_service.create_order(
        employee_id="EMP-A1",
        items=[OrderLineInput(product_id=catalog["SHIRT-001"].id, size="M", quantity=2)],
    )


class TestTransitionTable:

    @pytest.mark.parametrize(
        "from_status,to_status,allowed",
        [
            (STATUS_AWAITING_APPROVAL, STATUS_AWAITING_FULFILMENT, True),
            (STATUS_AWAITING_FULFILMENT, STATUS_DISPATCHED, True),
            (STATUS_DISPATCHED, STATUS_DELIVERED, True),
            (STATUS_AWAITING_APPROVAL, STATUS_DISPATCHED, False),
            (STATUS_AWAITING_APPROVAL, STATUS_DELIVERED, False),
            (STATUS_DELIVERED, STATUS_DISPATCHED, False),
            (STATUS_DISPATCHED, STATUS_AWAITING_APPROVAL, False),
            (STATUS_DISPATCHED, STATUS_DISPATCHED, True),
        ],
    )
    def test_can_transition(self, from_status, to_status, allowed):
        assert lifecycle_service.can_transition(from_status, to_status) is allowed

    def test_unknown_status(self):
        with pytest.raises(LifecycleError, match="Invalid status 'Shipped'"):
            lifecycle_service.validate_status("Shipped")

    def test_allowed_next_statuses(self):
        assert lifecycle_service.allowed_next_statuses(STATUS_AWAITING_FULFILMENT) == [STATUS_DISPATCHED]
        assert lifecycle_service.allowed_next_statuses(STATUS_DELIVERED) == []


class TestApproveOrder:

    def test_approver_moves_order_to_fulfilment(self, order, approver_a):
        approved = lifecycle_service.approve_order(order.order_number, "approver@acme.com")

        assert approved.status == STATUS_AWAITING_FULFILMENT
        assert approved.approved_by_email == "approver@acme.com"
        assert approved.approved_at is not None

    def test_email_match_is_case_insensitive(self, order, approver_a):
        approved = lifecycle_service.approve_order(order.order_number, "  Approver@ACME.com ")
        assert approved.status == STATUS_AWAITING_FULFILMENT

    def test_admin_without_capability_is_denied_and_audited(self, db_session, order, viewer_a):
        with pytest.raises(PermissionDeniedError, match="does not have permission to approve orders"):
            lifecycle_service.approve_order(order.order_number, "viewer@acme.com")

        assert order_service.get_order(order.order_number).status == STATUS_AWAITING_APPROVAL
        event = db_session.query(SecurityEvent).one()
        assert event.event_type == "ORDER_APPROVAL_DENIED"
        assert event.success is False
        assert event.actor_email == "viewer@acme.com"
        assert event.company_id == order.company_id

    def test_admin_of_other_company_is_denied(self, order, approver_b):
        with pytest.raises(PermissionDeniedError):
            lifecycle_service.approve_order(order.order_number, "approver@beta.com")

    def test_non_admin_employee_is_denied(self, order):
        with pytest.raises(PermissionDeniedError):
            lifecycle_service.approve_order(order.order_number, "anita@acme.com")

    def test_unknown_order(self, db_session, approver_a):
        with pytest.raises(OrderNotFoundError):
            lifecycle_service.approve_order("ORD-missing", "approver@acme.com")

    def test_already_approved(self, order, approver_a):
        lifecycle_service.approve_order(order.order_number, "approver@acme.com")
        with pytest.raises(LifecycleError, match="not in 'Awaiting approval' status"):
            lifecycle_service.approve_order(order.order_number, "approver@acme.com")

    def test_wrong_state_checked_before_permission(self, db_session, order, approver_a):
        lifecycle_service.approve_order(order.order_number, "approver@acme.com")
        with pytest.raises(LifecycleError):
            lifecycle_service.approve_order(order.order_number, "stranger@nowhere.com")
        assert db_session.query(SecurityEvent).count() == 0

    def test_approval_does_not_change_consumption(self, order, approver_a):
        before = eligibility_service.get_consumed_eligibility("EMP-A1")
        lifecycle_service.approve_order(order.order_number, "approver@acme.com")
        assert eligibility_service.get_consumed_eligibility("EMP-A1") == before


class TestUpdateOrderStatus:

    def test_full_fulfilment_path(self, order, approver_a):
        lifecycle_service.approve_order(order.order_number, "approver@acme.com")

        dispatched = lifecycle_service.update_order_status(order.order_number, STATUS_DISPATCHED)
        assert dispatched.status == STATUS_DISPATCHED
        assert dispatched.status_updated_at is not None

        delivered = lifecycle_service.update_order_status(order.order_number, STATUS_DELIVERED)
        assert delivered.status == STATUS_DELIVERED

    def test_cannot_bypass_approval(self, order):
        with pytest.raises(LifecycleError, match="must be approved"):
            lifecycle_service.update_order_status(order.order_number, STATUS_AWAITING_FULFILMENT)
        assert order_service.get_order(order.order_number).status == STATUS_AWAITING_APPROVAL

    def test_cannot_skip_states(self, order):
        with pytest.raises(LifecycleError, match="Cannot move order"):
            lifecycle_service.update_order_status(order.order_number, STATUS_DISPATCHED)

    def test_delivered_is_terminal(self, order, approver_a):
        lifecycle_service.approve_order(order.order_number, "approver@acme.com")
        lifecycle_service.update_order_status(order.order_number, STATUS_DISPATCHED)
        lifecycle_service.update_order_status(order.order_number, STATUS_DELIVERED)

        with pytest.raises(LifecycleError):
            lifecycle_service.update_order_status(order.order_number, STATUS_DISPATCHED)

    def test_same_status_is_noop(self, order):
        same = lifecycle_service.update_order_status(order.order_number, STATUS_AWAITING_APPROVAL)
        assert same.status == STATUS_AWAITING_APPROVAL
        assert same.status_updated_at is None

    def test_unknown_status(self, order):
        with pytest.raises(LifecycleError, match="Invalid status"):
            lifecycle_service.update_order_status(order.order_number, "Lost")

    def test_unknown_order(self, db_session):
        with pytest.raises(OrderNotFoundError):
            lifecycle_service.update_order_status("ORD-missing", STATUS_DISPATCHED)


class TestPendingApprovals:

    def test_pending_queue_is_per_company(self, order, approver_a, employee_b, catalog):
        order_service.create_order(
            employee_id="EMP-B1",
            items=[OrderLineInput(product_id=catalog["SHIRT-B01"].id, size="M", quantity=1)],
        )

        assert [o.order_number for o in lifecycle_service.get_pending_approvals("COMP-A")] == [order.order_number]
        assert lifecycle_service.get_pending_approval_count("COMP-A") == 1

        lifecycle_service.approve_order(order.order_number, "approver@acme.com")
        assert lifecycle_service.get_pending_approvals("COMP-A") == []
        assert lifecycle_service.get_pending_approval_count("COMP-A") == 0
        assert lifecycle_service.get_pending_approval_count("COMP-B") == 1

    def test_unknown_company(self, db_session):
        assert lifecycle_service.get_pending_approvals("NOPE") == []
        assert lifecycle_service.get_pending_approval_count("NOPE") == 0
