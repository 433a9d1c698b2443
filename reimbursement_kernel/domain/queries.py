"""
Role queues and dashboard queries over in-memory request lists.

Pure functions.  ``visible_requests`` is what each role dashboard shows as
its actionable queue; the remaining helpers back the search box, the status
and type filters, and the stat cards.  The SQL-backed equivalents live in
``reimbursement_kernel.selectors.request_selector`` and reuse the status
sets defined here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from reimbursement_kernel.domain.request import ReimbursementRequest
from reimbursement_kernel.domain.workflow import (
    TERMINAL_STATUSES,
    ReimbursementStatus,
    Role,
    parse_role,
    parse_status,
)

S = ReimbursementStatus

ROLE_QUEUES: dict[Role, frozenset[ReimbursementStatus]] = {
    Role.COORDINATOR: frozenset({S.PENDING, S.UNDER_COORDINATOR}),
    Role.HOD: frozenset({S.UNDER_HOD}),
    Role.PRINCIPAL: frozenset({S.UNDER_PRINCIPAL}),
    Role.STUDENT: frozenset(),
    Role.FACULTY: frozenset(),
}

# Shown on the HOD dashboard as "awaiting earlier stage", never actionable.
READ_ONLY_QUEUES: dict[Role, frozenset[ReimbursementStatus]] = {
    Role.HOD: frozenset({S.PENDING, S.UNDER_COORDINATOR}),
}

# Statuses a role has already passed a request on to.
FORWARDED_STATUSES: dict[Role, frozenset[ReimbursementStatus]] = {
    Role.COORDINATOR: frozenset({S.UNDER_HOD, S.UNDER_PRINCIPAL, S.APPROVED}),
    Role.HOD: frozenset({S.UNDER_PRINCIPAL, S.APPROVED}),
    Role.PRINCIPAL: frozenset({S.APPROVED}),
    Role.STUDENT: frozenset(),
    Role.FACULTY: frozenset(),
}

ALL_FILTER = "All"

del S


def queue_statuses(
    acting_role: Role | str,
    include_read_only: bool = False,
) -> frozenset[ReimbursementStatus]:
    """Statuses a role's dashboard lists; empty for unknown roles."""
    role = parse_role(acting_role)
    if role is None:
        return frozenset()
    statuses = ROLE_QUEUES[role]
    if include_read_only:
        statuses = statuses | READ_ONLY_QUEUES.get(role, frozenset())
    return statuses


def _oldest_first(request: ReimbursementRequest) -> tuple:
    return (request.submitted_at, str(request.request_id))


def _newest_update_first(request: ReimbursementRequest) -> tuple:
    return (request.last_updated_at, str(request.request_id))


def visible_requests(
    acting_role: Role | str,
    all_requests: Iterable[ReimbursementRequest],
    include_read_only: bool = False,
) -> tuple[ReimbursementRequest, ...]:
    """Requests in the role's queue, oldest submission first.

    Ties on ``submitted_at`` fall back to ``request_id`` so the ordering is
    identical across calls on the same input.
    """
    statuses = queue_statuses(acting_role, include_read_only)
    return tuple(sorted(
        (r for r in all_requests if r.status in statuses),
        key=_oldest_first,
    ))


def requests_for_applicant(
    applicant_id: str,
    all_requests: Iterable[ReimbursementRequest],
) -> tuple[ReimbursementRequest, ...]:
    """An applicant's own requests, newest submission first."""
    return tuple(sorted(
        (r for r in all_requests if r.applicant_id == applicant_id),
        key=_oldest_first,
        reverse=True,
    ))


def forwarded_requests(
    acting_role: Role | str,
    all_requests: Iterable[ReimbursementRequest],
) -> tuple[ReimbursementRequest, ...]:
    """Requests already moved past a role's stage, latest update first."""
    role = parse_role(acting_role)
    statuses = FORWARDED_STATUSES.get(role, frozenset()) if role else frozenset()
    return tuple(sorted(
        (r for r in all_requests if r.status in statuses),
        key=_newest_update_first,
        reverse=True,
    ))


def filter_requests(
    requests: Iterable[ReimbursementRequest],
    status: ReimbursementStatus | str | None = None,
    reimbursement_type: str | None = None,
    search: str | None = None,
) -> tuple[ReimbursementRequest, ...]:
    """Apply dashboard filters; ``None`` or ``"All"`` disables a filter.

    ``search`` matches applicant name or application id, case-insensitively.
    Input order is preserved.  An unknown status matches nothing.
    """
    result = list(requests)

    if status is not None and status != ALL_FILTER:
        wanted = parse_status(status)
        result = [r for r in result if r.status is wanted]

    if reimbursement_type is not None and reimbursement_type != ALL_FILTER:
        wanted_type = reimbursement_type.strip().lower()
        result = [r for r in result if r.reimbursement_type.lower() == wanted_type]

    if search is not None and search.strip():
        needle = search.strip().lower()
        result = [
            r for r in result
            if needle in r.applicant_name.lower()
            or needle in r.application_id.lower()
        ]

    return tuple(result)


@dataclass(frozen=True)
class RequestSummary:
    """Dashboard stat-card numbers."""

    total: int
    by_status: dict[ReimbursementStatus, int] = field(default_factory=dict)
    in_progress: int = 0
    approved_amount: Decimal = Decimal("0")
    requested_amount: Decimal = Decimal("0")

    def count(self, status: ReimbursementStatus) -> int:
        return self.by_status.get(status, 0)


def summarize(requests: Iterable[ReimbursementRequest]) -> RequestSummary:
    """Counts per status, open requests, and requested/approved totals."""
    by_status = {status: 0 for status in ReimbursementStatus}
    approved_amount = Decimal("0")
    requested_amount = Decimal("0")
    total = 0

    for r in requests:
        total += 1
        by_status[r.status] += 1
        requested_amount += r.amount
        if r.status is ReimbursementStatus.APPROVED:
            approved_amount += r.amount

    in_progress = sum(
        count for status, count in by_status.items()
        if status not in TERMINAL_STATUSES
    )
    return RequestSummary(
        total=total,
        by_status=by_status,
        in_progress=in_progress,
        approved_amount=approved_amount,
        requested_amount=requested_amount,
    )
