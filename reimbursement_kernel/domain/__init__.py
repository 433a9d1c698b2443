"""Pure domain layer: statuses, roles, transition table, value objects."""

from reimbursement_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from reimbursement_kernel.domain.request import (
    NotificationEvent,
    ReimbursementRequest,
    StatusChange,
)
from reimbursement_kernel.domain.workflow import (
    TERMINAL_STATUSES,
    TRANSITION_TABLE,
    ApplicantType,
    ReimbursementStatus,
    Role,
    TransitionEdge,
    check_transition,
)

__all__ = [
    "ApplicantType",
    "Clock",
    "DeterministicClock",
    "NotificationEvent",
    "ReimbursementRequest",
    "ReimbursementStatus",
    "Role",
    "StatusChange",
    "SystemClock",
    "TERMINAL_STATUSES",
    "TRANSITION_TABLE",
    "TransitionEdge",
    "check_transition",
]
