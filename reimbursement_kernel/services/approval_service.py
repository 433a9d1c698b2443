"""
reimbursement_kernel.services.approval_service -- Approval chain transitions.

Responsibility:
    Executes ``transition(request_id, target_status, acting_role, remarks)``:
    loads the request, validates the move against the transition table,
    persists it through the request store with compare-and-swap, appends
    the status history, and emits the notification event.  Also serves the
    role queue query over whatever the store holds.

Architecture position:
    Kernel > Services.  Thin coordinator -- the policy lives in
    ``domain.workflow.check_transition``; storage, history and notification
    are injected collaborators.

Invariants enforced:
    - Status changes only along TRANSITION_TABLE edges, by the tagged role.
    - Terminal requests never change.
    - Rejections carry non-blank remarks.
    - ``last_updated_at`` moves on every accepted transition and never
      precedes ``submitted_at``.
    - The store write is conditional on the status the check was made
      against, so a concurrent approver surfaces as StaleStateError.

Failure modes:
    - RequestNotFoundError, InvalidTransitionError, UnauthorizedRoleError,
      MissingRejectionReasonError, TerminalStateError, StaleStateError.
      None are retried; each is logged as ``transition_rejected``.
"""

from __future__ import annotations

from uuid import UUID, uuid4

from reimbursement_kernel.domain.clock import Clock, SystemClock
from reimbursement_kernel.domain.queries import visible_requests
from reimbursement_kernel.domain.request import (
    NotificationEvent,
    NotificationSink,
    ReimbursementRequest,
    RequestStore,
    StatusChange,
    StatusHistory,
)
from reimbursement_kernel.domain.workflow import (
    ReimbursementStatus,
    Role,
    check_transition,
    is_blank,
)
from reimbursement_kernel.exceptions import (
    ReimbursementKernelError,
    RequestNotFoundError,
)
from reimbursement_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.approval")


def coerce_request_id(request_id: UUID | str) -> UUID:
    """Accept a UUID or its string form; anything else is not found."""
    if isinstance(request_id, UUID):
        return request_id
    try:
        return UUID(str(request_id))
    except ValueError:
        raise RequestNotFoundError(str(request_id)) from None


class ApprovalService:
    """Applies role-checked status transitions to reimbursement requests."""

    def __init__(
        self,
        store: RequestStore,
        notifier: NotificationSink | None = None,
        history: StatusHistory | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._history = history
        self._clock = clock or SystemClock()

    def transition(
        self,
        request_id: UUID | str,
        target_status: ReimbursementStatus | str,
        acting_role: Role | str,
        remarks: str | None = None,
        *,
        expected_status: ReimbursementStatus | str | None = None,
        actor_id: str | None = None,
    ) -> ReimbursementRequest:
        """Move a request to ``target_status`` on behalf of ``acting_role``.

        Args:
            request_id: The request's opaque id.
            target_status: Requested next status.
            acting_role: Role performing the action.
            remarks: Required (non-blank) for rejection, optional otherwise.
            expected_status: Status the caller last saw; when given, the
                transition fails with StaleStateError if it has moved on.
            actor_id: Who is acting, for the history record.

        Returns:
            The updated request.
        """
        target_label = getattr(target_status, "value", target_status)
        role_label = getattr(acting_role, "value", acting_role)

        with LogContext.bind(
            request_id=request_id,
            acting_role=role_label,
            actor_id=actor_id,
        ):
            try:
                rid = coerce_request_id(request_id)
                request = self._store.get(rid)
            except ReimbursementKernelError as exc:
                self._log_rejected(target_label, exc)
                raise

            with LogContext.bind(application_id=request.application_id):
                try:
                    edge = check_transition(
                        str(rid),
                        request.status,
                        target_status,
                        acting_role,
                        remarks,
                        expected_status=expected_status,
                    )
                    note = None if is_blank(remarks) else remarks.strip()
                    updated = request.with_status(
                        edge.to_status, self._clock.now(), note,
                    )
                    saved = self._store.save(updated, expected_status=request.status)
                except ReimbursementKernelError as exc:
                    self._log_rejected(target_label, exc)
                    raise

                if self._history is not None:
                    self._history.append(StatusChange(
                        change_id=uuid4(),
                        request_id=saved.request_id,
                        from_status=request.status,
                        to_status=saved.status,
                        acting_role=edge.authorized_role,
                        actor_id=actor_id,
                        remarks=note,
                        changed_at=saved.last_updated_at,
                    ))

                logger.info(
                    "transition_applied",
                    extra={
                        "from_status": request.status.value,
                        "to_status": saved.status.value,
                    },
                )

                self._notify(saved)
                return saved

    def visible_requests(
        self,
        acting_role: Role | str,
        include_read_only: bool = False,
    ) -> tuple[ReimbursementRequest, ...]:
        """The role's queue from the store, oldest submission first."""
        return visible_requests(acting_role, self._store.all(), include_read_only)

    @staticmethod
    def _log_rejected(target_label: object, exc: ReimbursementKernelError) -> None:
        logger.info(
            "transition_rejected",
            extra={
                "target_status": str(target_label),
                "error_code": exc.code,
                "reason": str(exc),
            },
        )

    def _notify(self, request: ReimbursementRequest) -> None:
        if self._notifier is None:
            return
        event = NotificationEvent(
            request_id=request.request_id,
            applicant_name=request.applicant_name,
            new_status=request.status,
            application_id=request.application_id,
            occurred_at=request.last_updated_at,
        )
        try:
            self._notifier.publish(event)
        except Exception:  # noqa: BLE001
            # The transition is already persisted; delivery is the sink's job.
            logger.warning(
                "notification_delivery_failed",
                extra={"new_status": request.status.value},
                exc_info=True,
            )
