"""
Workflow Services - Wires the approval chain onto one session.

Ties together:
- SqlRequestStore: request persistence with compare-and-swap
- SqlStatusHistory: append-only activity log
- ApprovalService: role-checked transitions
- SubmissionService: new claims in Pending

The caller owns the session and commits; nothing here commits.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from reimbursement_kernel.domain.application_id import ApplicationIdScheme
from reimbursement_kernel.domain.clock import Clock, SystemClock
from reimbursement_kernel.domain.request import NotificationSink
from reimbursement_kernel.services.approval_service import ApprovalService
from reimbursement_kernel.services.history_service import SqlStatusHistory
from reimbursement_kernel.services.notification_service import LoggingNotificationSink
from reimbursement_kernel.services.request_store import SqlRequestStore
from reimbursement_kernel.services.submission_service import SubmissionService


@dataclass(frozen=True)
class WorkflowServices:
    """Services sharing one session, store, history and notifier."""

    store: SqlRequestStore
    history: SqlStatusHistory
    notifier: NotificationSink
    approvals: ApprovalService
    submissions: SubmissionService


def build_workflow_services(
    session: Session,
    scheme: ApplicationIdScheme,
    notifier: NotificationSink | None = None,
    clock: Clock | None = None,
) -> WorkflowServices:
    """Build SQL-backed services for ``session``.

    ``notifier`` defaults to a LoggingNotificationSink.
    """
    clock = clock or SystemClock()
    notifier = notifier or LoggingNotificationSink()
    store = SqlRequestStore(session)
    history = SqlStatusHistory(session)
    return WorkflowServices(
        store=store,
        history=history,
        notifier=notifier,
        approvals=ApprovalService(store, notifier, history, clock),
        submissions=SubmissionService(store, scheme, notifier, history, clock),
    )
