"""Services for the reimbursement kernel (write side)."""

from reimbursement_kernel.services.approval_service import ApprovalService
from reimbursement_kernel.services.history_service import (
    InMemoryStatusHistory,
    SqlStatusHistory,
)
from reimbursement_kernel.services.notification_service import (
    InMemoryNotificationSink,
    LoggingNotificationSink,
)
from reimbursement_kernel.services.request_store import (
    InMemoryRequestStore,
    SqlRequestStore,
)
from reimbursement_kernel.services.submission_service import SubmissionService
from reimbursement_kernel.services.workflow_services import (
    WorkflowServices,
    build_workflow_services,
)

__all__ = [
    "ApprovalService",
    "InMemoryNotificationSink",
    "InMemoryRequestStore",
    "InMemoryStatusHistory",
    "LoggingNotificationSink",
    "SqlRequestStore",
    "SqlStatusHistory",
    "SubmissionService",
    "WorkflowServices",
    "build_workflow_services",
]
