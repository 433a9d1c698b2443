"""
Tests for ApprovalService -- role-checked status transitions.

Covers:
- transition(): full chain, rejection at every stage, remarks handling,
  last_updated_at, history entries, notification events
- error kinds: not found, invalid transition, unauthorized role, missing
  rejection reason, terminal state, stale state
- failure side effects: nothing stored, recorded or published
- notification delivery failures do not undo the transition
- visible_requests() over the store
- logging: transition_applied / transition_rejected
"""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from reimbursement_kernel.domain.clock import Clock
from reimbursement_kernel.domain.workflow import ReimbursementStatus, Role
from reimbursement_kernel.exceptions import (
    InvalidRequestRecordError,
    InvalidTransitionError,
    MissingRejectionReasonError,
    RequestNotFoundError,
    StaleStateError,
    TerminalStateError,
    UnauthorizedRoleError,
)
from reimbursement_kernel.services.approval_service import ApprovalService
from reimbursement_kernel.services.notification_service import InMemoryNotificationSink
from tests.conftest import BASE_TIME

S = ReimbursementStatus


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def stored(memory_store, make_request):
    """Factory fixture: build a request and put it in the store."""

    def _stored(**kwargs):
        return memory_store.add(make_request(**kwargs))

    return _stored


# =========================================================================
# Happy paths
# =========================================================================


class TestTransitionAccepted:

    def test_full_chain_to_approved(self, approval_service, stored, deterministic_clock):
        request = stored()
        steps = [
            (S.UNDER_COORDINATOR, Role.COORDINATOR),
            (S.UNDER_HOD, Role.COORDINATOR),
            (S.UNDER_PRINCIPAL, Role.HOD),
            (S.APPROVED, Role.PRINCIPAL),
        ]
        for target, role in steps:
            deterministic_clock.advance(60)
            result = approval_service.transition(request.request_id, target, role)
            assert result.status is target

        assert result.last_updated_at == BASE_TIME + timedelta(seconds=240)

    def test_coordinator_accepts_pending(self, approval_service, stored, memory_store):
        """First half of the R1 scenario."""
        request = stored()
        result = approval_service.transition(
            request.request_id, "Under Coordinator", "Coordinator",
        )
        assert result.status is S.UNDER_COORDINATOR
        assert memory_store.get(request.request_id).status is S.UNDER_COORDINATOR

    def test_hod_rejects_with_remarks(self, approval_service, stored):
        """First half of the R2 scenario."""
        request = stored(status=S.UNDER_HOD)
        result = approval_service.transition(
            request.request_id, "Rejected", "HOD", "insufficient documentation",
        )
        assert result.status is S.REJECTED
        assert result.remarks == "insufficient documentation"

    @pytest.mark.parametrize(
        "status, role",
        [
            (S.PENDING, Role.COORDINATOR),
            (S.UNDER_COORDINATOR, Role.COORDINATOR),
            (S.UNDER_HOD, Role.HOD),
            (S.UNDER_PRINCIPAL, Role.PRINCIPAL),
        ],
    )
    def test_each_stage_can_reject(self, approval_service, stored, status, role):
        request = stored(status=status)
        result = approval_service.transition(request.request_id, S.REJECTED, role, "duplicate claim")
        assert result.status is S.REJECTED

    def test_remarks_trimmed(self, approval_service, stored):
        request = stored(status=S.UNDER_PRINCIPAL)
        result = approval_service.transition(
            request.request_id, S.REJECTED, Role.PRINCIPAL, "  over budget \n",
        )
        assert result.remarks == "over budget"

    def test_blank_remarks_keep_previous(self, approval_service, stored):
        request = stored(status=S.UNDER_HOD, remarks="receipt attached")
        result = approval_service.transition(request.request_id, S.UNDER_PRINCIPAL, Role.HOD, "  ")
        assert result.remarks == "receipt attached"

    def test_last_updated_at_uses_clock(self, approval_service, stored, deterministic_clock):
        request = stored()
        deterministic_clock.advance(3600)
        result = approval_service.transition(request.request_id, S.UNDER_COORDINATOR, Role.COORDINATOR)
        assert result.last_updated_at == BASE_TIME + timedelta(hours=1)

    def test_last_updated_at_never_before_submission(self, approval_service, stored):
        request = stored(submitted_at=BASE_TIME + timedelta(days=1))
        result = approval_service.transition(request.request_id, S.UNDER_COORDINATOR, Role.COORDINATOR)
        assert result.last_updated_at == request.submitted_at

    def test_string_request_id_accepted(self, approval_service, stored):
        request = stored()
        result = approval_service.transition(str(request.request_id), "Under Coordinator", "Coordinator")
        assert result.request_id == request.request_id

    def test_matching_expected_status(self, approval_service, stored):
        request = stored(status=S.UNDER_PRINCIPAL)
        result = approval_service.transition(
            request.request_id, S.APPROVED, Role.PRINCIPAL, expected_status="Under Principal",
        )
        assert result.status is S.APPROVED


# =========================================================================
# Failures
# =========================================================================


class TestTransitionRejected:

    def test_hod_cannot_act_before_coordinator_forwards(self, approval_service, stored):
        """R1 scenario: HOD on an Under Coordinator request."""
        request = stored()
        approval_service.transition(request.request_id, "Under Coordinator", "Coordinator")
        with pytest.raises(InvalidTransitionError):
            approval_service.transition(request.request_id, "Under Principal", "HOD")

    def test_principal_cannot_approve_rejected(self, approval_service, stored):
        """R2 scenario: Approved after a HOD rejection."""
        request = stored(status=S.UNDER_HOD)
        approval_service.transition(
            request.request_id, "Rejected", "HOD", "insufficient documentation",
        )
        with pytest.raises(TerminalStateError):
            approval_service.transition(request.request_id, "Approved", "Principal")

    def test_coordinator_cannot_skip_to_principal(self, approval_service, stored):
        request = stored(status=S.UNDER_COORDINATOR)
        with pytest.raises(UnauthorizedRoleError):
            approval_service.transition(request.request_id, S.UNDER_PRINCIPAL, Role.COORDINATOR)

    def test_missing_request(self, approval_service):
        with pytest.raises(RequestNotFoundError):
            approval_service.transition(uuid4(), S.UNDER_COORDINATOR, Role.COORDINATOR)

    def test_malformed_request_id_is_not_found(self, approval_service):
        with pytest.raises(RequestNotFoundError) as exc_info:
            approval_service.transition("not-a-uuid", S.UNDER_COORDINATOR, Role.COORDINATOR)
        assert exc_info.value.request_id == "not-a-uuid"

    def test_unknown_role(self, approval_service, stored):
        request = stored()
        with pytest.raises(UnauthorizedRoleError):
            approval_service.transition(request.request_id, S.UNDER_COORDINATOR, "Accounts")

    def test_unknown_role_on_finalized_request_is_terminal(self, approval_service, stored):
        request = stored(status=S.APPROVED)
        with pytest.raises(TerminalStateError):
            approval_service.transition(request.request_id, S.REJECTED, "Accounts", "late")

    @pytest.mark.parametrize("remarks", [None, "", "    "])
    def test_rejection_without_remarks(self, approval_service, stored, remarks):
        request = stored(status=S.UNDER_PRINCIPAL)
        with pytest.raises(MissingRejectionReasonError):
            approval_service.transition(request.request_id, S.REJECTED, Role.PRINCIPAL, remarks)

    def test_stale_expected_status(self, approval_service, stored):
        request = stored(status=S.UNDER_HOD)
        with pytest.raises(StaleStateError):
            approval_service.transition(
                request.request_id, S.REJECTED, Role.HOD, "no receipts",
                expected_status=S.PENDING,
            )

    def test_second_approver_loses_race(self, approval_service, stored):
        """Two HODs load the same request; only the first move wins."""
        request = stored(status=S.UNDER_HOD)
        approval_service.transition(
            request.request_id, S.UNDER_PRINCIPAL, Role.HOD, expected_status=S.UNDER_HOD,
        )
        with pytest.raises(StaleStateError):
            approval_service.transition(
                request.request_id, S.REJECTED, Role.HOD, "late",
                expected_status=S.UNDER_HOD,
            )

    def test_failed_transition_changes_nothing(
        self, approval_service, stored, memory_store, memory_history, notification_sink,
    ):
        request = stored(status=S.UNDER_HOD)
        with pytest.raises(MissingRejectionReasonError):
            approval_service.transition(request.request_id, S.REJECTED, Role.HOD)

        assert memory_store.get(request.request_id) == request
        assert memory_history.entries() == []
        assert notification_sink.events == []

    def test_naive_clock_rejected_without_change(self, memory_store, stored):
        class NaiveClock(Clock):
            def now(self):
                return datetime(2026, 1, 6, 9, 0)

        service = ApprovalService(memory_store, clock=NaiveClock())
        request = stored()
        with pytest.raises(InvalidRequestRecordError):
            service.transition(request.request_id, S.UNDER_COORDINATOR, Role.COORDINATOR)
        assert memory_store.get(request.request_id) == request


# =========================================================================
# History and notifications
# =========================================================================


class TestSideEffects:

    def test_history_entry_recorded(self, approval_service, stored, memory_history):
        request = stored(status=S.UNDER_HOD)
        approval_service.transition(
            request.request_id, S.REJECTED, Role.HOD, "missing receipt", actor_id="hod-it",
        )

        (change,) = memory_history.entries(request.request_id)
        assert change.from_status is S.UNDER_HOD
        assert change.to_status is S.REJECTED
        assert change.acting_role is Role.HOD
        assert change.actor_id == "hod-it"
        assert change.remarks == "missing receipt"

    def test_history_newest_first(self, approval_service, stored, memory_history, deterministic_clock):
        request = stored()
        approval_service.transition(request.request_id, S.UNDER_COORDINATOR, Role.COORDINATOR)
        deterministic_clock.advance(5)
        approval_service.transition(request.request_id, S.UNDER_HOD, Role.COORDINATOR)

        statuses = [c.to_status for c in memory_history.entries(request.request_id)]
        assert statuses == [S.UNDER_HOD, S.UNDER_COORDINATOR]

    def test_notification_emitted(self, approval_service, stored, notification_sink):
        request = stored(status=S.UNDER_PRINCIPAL, applicant_name="Meera Shah")
        approval_service.transition(request.request_id, S.APPROVED, Role.PRINCIPAL)

        (event,) = notification_sink.events
        assert event.to_payload() == {
            "requestId": str(request.request_id),
            "applicantName": "Meera Shah",
            "newStatus": "Approved",
        }
        assert event.application_id == request.application_id

    def test_notification_failure_does_not_undo(
        self, memory_store, memory_history, deterministic_clock, stored, captured_logs,
    ):
        def _broken(event):
            raise ConnectionError("socket closed")

        service = ApprovalService(
            memory_store, InMemoryNotificationSink(forward=_broken),
            memory_history, deterministic_clock,
        )
        request = stored()
        result = service.transition(request.request_id, S.UNDER_COORDINATOR, Role.COORDINATOR)

        assert result.status is S.UNDER_COORDINATOR
        assert memory_store.get(request.request_id).status is S.UNDER_COORDINATOR
        logs = captured_logs()
        failure = next(r for r in logs if r["event"] == "notification_delivery_failed")
        assert failure["error"]["type"] == "ConnectionError"

    def test_works_without_optional_collaborators(self, memory_store, stored):
        service = ApprovalService(memory_store)
        request = stored()
        result = service.transition(request.request_id, S.UNDER_COORDINATOR, Role.COORDINATOR)
        assert result.status is S.UNDER_COORDINATOR


# =========================================================================
# visible_requests()
# =========================================================================


class TestVisibleRequests:

    def test_queue_from_store(self, approval_service, stored):
        hod_one = stored(status=S.UNDER_HOD, submitted_at=BASE_TIME - timedelta(days=2))
        hod_two = stored(status=S.UNDER_HOD, submitted_at=BASE_TIME - timedelta(days=3))
        stored(status=S.PENDING)

        assert approval_service.visible_requests("HOD") == (hod_two, hod_one)

    def test_queue_follows_transitions(self, approval_service, stored):
        request = stored(status=S.UNDER_COORDINATOR)
        approval_service.transition(request.request_id, S.UNDER_HOD, Role.COORDINATOR)

        assert approval_service.visible_requests(Role.COORDINATOR) == ()
        assert [r.request_id for r in approval_service.visible_requests(Role.HOD)] == [request.request_id]

    def test_hod_read_only_view(self, approval_service, stored):
        stored(status=S.PENDING)
        stored(status=S.UNDER_COORDINATOR)
        stored(status=S.UNDER_HOD)
        assert len(approval_service.visible_requests("HOD")) == 1
        assert len(approval_service.visible_requests("HOD", include_read_only=True)) == 3


# =========================================================================
# Logging
# =========================================================================


class TestTransitionLogging:

    def test_applied_logged_with_context(self, approval_service, stored, captured_logs):
        request = stored()
        approval_service.transition(
            request.request_id, S.UNDER_COORDINATOR, Role.COORDINATOR, actor_id="coord-1",
        )

        record = next(r for r in captured_logs() if r["event"] == "transition_applied")
        assert record["request_id"] == str(request.request_id)
        assert record["application_id"] == request.application_id
        assert record["acting_role"] == "Coordinator"
        assert record["actor_id"] == "coord-1"
        assert record["from_status"] == "Pending"
        assert record["to_status"] == "Under Coordinator"

    def test_rejected_logged_with_code(self, approval_service, stored, captured_logs):
        request = stored(status=S.APPROVED)
        with pytest.raises(TerminalStateError):
            approval_service.transition(request.request_id, S.REJECTED, Role.PRINCIPAL, "x")

        record = next(r for r in captured_logs() if r["event"] == "transition_rejected")
        assert record["error_code"] == "TERMINAL_STATE"
        assert record["target_status"] == "Rejected"
        assert record["application_id"] == request.application_id

    def test_unknown_request_logged_without_application_id(self, approval_service, captured_logs):
        with pytest.raises(RequestNotFoundError):
            approval_service.transition("not-a-uuid", S.UNDER_COORDINATOR, Role.COORDINATOR)

        record = next(r for r in captured_logs() if r["event"] == "transition_rejected")
        assert record["error_code"] == "REQUEST_NOT_FOUND"
        assert record["request_id"] == "not-a-uuid"
        assert "application_id" not in record
