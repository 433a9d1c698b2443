"""
Approval chain state machine (``reimbursement_kernel.domain.workflow``).

Responsibility
--------------
Defines the reimbursement status lifecycle, the roles that act on it, and
the single declarative edge table that decides which role may move a
request from which status to which status.  ``check_transition`` is the one
validator every caller goes through; no dashboard or service compares
status strings on its own.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects and pure functions.  ZERO I/O.
No imports from ``db/``, ``models/``, ``services/`` or ``selectors/``.

Invariants enforced
-------------------
* ``TRANSITION_TABLE`` defines the only valid ``(from, to)`` pairs, each
  tagged with exactly one authorized role.
* Terminal states (Approved, Rejected) have no outgoing edges.
* Rejection requires non-blank remarks.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from reimbursement_kernel.exceptions import (
    InvalidTransitionError,
    MissingRejectionReasonError,
    StaleStateError,
    TerminalStateError,
    UnauthorizedRoleError,
)


class ReimbursementStatus(str, Enum):
    """Reimbursement request lifecycle states."""

    PENDING = "Pending"
    UNDER_COORDINATOR = "Under Coordinator"
    UNDER_HOD = "Under HOD"
    UNDER_PRINCIPAL = "Under Principal"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class Role(str, Enum):
    """Roles that can act on the approval chain."""

    STUDENT = "Student"
    FACULTY = "Faculty"
    COORDINATOR = "Coordinator"
    HOD = "HOD"
    PRINCIPAL = "Principal"


class ApplicantType(str, Enum):
    """Who submitted the claim."""

    STUDENT = "Student"
    FACULTY = "Faculty"
    COORDINATOR = "Coordinator"
    HOD = "HOD"


@dataclass(frozen=True)
class TransitionEdge:
    """One allowed ``(from, to)`` move and the role authorized to make it."""

    from_status: ReimbursementStatus
    to_status: ReimbursementStatus
    authorized_role: Role

    @property
    def is_rejection(self) -> bool:
        return self.to_status is ReimbursementStatus.REJECTED


S = ReimbursementStatus

TRANSITION_TABLE: tuple[TransitionEdge, ...] = (
    TransitionEdge(S.PENDING, S.UNDER_COORDINATOR, Role.COORDINATOR),
    TransitionEdge(S.PENDING, S.REJECTED, Role.COORDINATOR),
    TransitionEdge(S.UNDER_COORDINATOR, S.UNDER_HOD, Role.COORDINATOR),
    TransitionEdge(S.UNDER_COORDINATOR, S.REJECTED, Role.COORDINATOR),
    TransitionEdge(S.UNDER_HOD, S.UNDER_PRINCIPAL, Role.HOD),
    TransitionEdge(S.UNDER_HOD, S.REJECTED, Role.HOD),
    TransitionEdge(S.UNDER_PRINCIPAL, S.APPROVED, Role.PRINCIPAL),
    TransitionEdge(S.UNDER_PRINCIPAL, S.REJECTED, Role.PRINCIPAL),
)

_EDGES: dict[tuple[ReimbursementStatus, ReimbursementStatus], TransitionEdge] = {
    (edge.from_status, edge.to_status): edge for edge in TRANSITION_TABLE
}

INITIAL_STATUS: ReimbursementStatus = S.PENDING

TERMINAL_STATUSES: frozenset[ReimbursementStatus] = frozenset(
    status for status in ReimbursementStatus
    if not any(edge.from_status is status for edge in TRANSITION_TABLE)
)

del S


def find_edge(
    from_status: ReimbursementStatus,
    to_status: ReimbursementStatus,
) -> TransitionEdge | None:
    """Return the table edge for ``(from_status, to_status)``, if any."""
    return _EDGES.get((from_status, to_status))


def allowed_targets(
    from_status: ReimbursementStatus,
    role: Role | None = None,
) -> tuple[ReimbursementStatus, ...]:
    """Statuses reachable in one step, optionally limited to one role."""
    return tuple(
        edge.to_status
        for edge in TRANSITION_TABLE
        if edge.from_status is from_status
        and (role is None or edge.authorized_role is role)
    )


def role_can_produce(role: Role, status: ReimbursementStatus) -> bool:
    """True when ``role`` is authorized on at least one edge into ``status``."""
    return any(
        edge.to_status is status and edge.authorized_role is role
        for edge in TRANSITION_TABLE
    )


def is_terminal(status: ReimbursementStatus) -> bool:
    return status in TERMINAL_STATUSES


def parse_status(value: ReimbursementStatus | str) -> ReimbursementStatus | None:
    """Coerce a status value or its display string; None when unknown."""
    if isinstance(value, ReimbursementStatus):
        return value
    try:
        return ReimbursementStatus(value)
    except ValueError:
        return None


def parse_role(value: Role | str) -> Role | None:
    """Coerce a role value or its display string; None when unknown."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def is_blank(remarks: str | None) -> bool:
    return remarks is None or not remarks.strip()


def check_transition(
    request_id: str,
    current_status: ReimbursementStatus,
    target_status: ReimbursementStatus | str,
    acting_role: Role | str,
    remarks: str | None = None,
    expected_status: ReimbursementStatus | str | None = None,
) -> TransitionEdge:
    """Validate a requested status move against the transition table.

    Checks run in a fixed order and the first failure wins:

    1. current status terminal              -> TerminalStateError
    2. unknown role                         -> UnauthorizedRoleError
    3. caller observed a different status   -> StaleStateError
    4. no ``(current, target)`` edge         -> InvalidTransitionError, or
       UnauthorizedRoleError when the role never produces ``target``
    5. edge authorized for another role     -> UnauthorizedRoleError
    6. rejection with blank remarks         -> MissingRejectionReasonError

    Returns:
        The matching ``TransitionEdge``.
    """
    role = parse_role(acting_role)
    target = parse_status(target_status)
    target_label = target.value if target is not None else str(target_status)

    if is_terminal(current_status):
        raise TerminalStateError(request_id, current_status.value)

    if role is None:
        raise UnauthorizedRoleError(
            request_id, str(acting_role), current_status.value, target_label,
        )

    if expected_status is not None:
        expected = parse_status(expected_status)
        if expected is not current_status:
            raise StaleStateError(
                request_id,
                expected.value if expected is not None else str(expected_status),
                current_status.value,
            )

    edge = find_edge(current_status, target) if target is not None else None
    if edge is None:
        # Skipping ahead to a stage the role never owns is an authorization
        # failure; the role's own stage at the wrong time is an invalid move.
        if target is not None and not role_can_produce(role, target):
            raise UnauthorizedRoleError(
                request_id, role.value, current_status.value, target_label,
            )
        raise InvalidTransitionError(request_id, current_status.value, target_label)

    if edge.authorized_role is not role:
        raise UnauthorizedRoleError(
            request_id,
            role.value,
            current_status.value,
            target_label,
            authorized_role=edge.authorized_role.value,
        )

    if edge.is_rejection and is_blank(remarks):
        raise MissingRejectionReasonError(request_id)

    return edge
