"""
Module: reimbursement_kernel.selectors.request_selector
Responsibility: SQL-backed dashboard queries over reimbursement requests and
    the status history: role queues, an applicant's own requests, forwarded
    requests, filtered search, stat-card summaries and the activity log.
Architecture position: Kernel > Selectors.  Status sets and filter rules come
    from ``domain.queries`` so the SQL and in-memory forms agree.

Invariants enforced:
    - Role queues are ordered by ``submitted_at`` then ``request_id``; the
      same database state always yields the same order.
    - Read-only.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select

from reimbursement_kernel.db.base import LIKE_ESCAPE, escape_like
from reimbursement_kernel.domain.queries import (
    ALL_FILTER,
    FORWARDED_STATUSES,
    RequestSummary,
    queue_statuses,
)
from reimbursement_kernel.domain.request import ReimbursementRequest, StatusChange
from reimbursement_kernel.domain.workflow import (
    TERMINAL_STATUSES,
    ReimbursementStatus,
    Role,
    parse_role,
    parse_status,
)
from reimbursement_kernel.models.reimbursement import (
    ReimbursementRequestModel,
    StatusChangeModel,
)
from reimbursement_kernel.selectors.base import BaseSelector

_R = ReimbursementRequestModel


class RequestSelector(BaseSelector[ReimbursementRequestModel]):
    """Read-only queries backing the role dashboards."""

    def visible_for_role(
        self,
        acting_role: Role | str,
        include_read_only: bool = False,
    ) -> tuple[ReimbursementRequest, ...]:
        """The role's queue, oldest submission first."""
        statuses = queue_statuses(acting_role, include_read_only)
        if not statuses:
            return ()
        stmt = (
            select(_R)
            .where(_R.status.in_([s.value for s in statuses]))
            .order_by(_R.submitted_at, _R.request_id)
        )
        return self._fetch(stmt)

    def for_applicant(self, applicant_id: str) -> tuple[ReimbursementRequest, ...]:
        """An applicant's own requests, newest submission first."""
        stmt = (
            select(_R)
            .where(_R.applicant_id == applicant_id)
            .order_by(_R.submitted_at.desc(), _R.request_id.desc())
        )
        return self._fetch(stmt)

    def forwarded(self, acting_role: Role | str) -> tuple[ReimbursementRequest, ...]:
        """Requests already moved past the role's stage, latest update first."""
        role = parse_role(acting_role)
        statuses = FORWARDED_STATUSES.get(role, frozenset()) if role else frozenset()
        if not statuses:
            return ()
        stmt = (
            select(_R)
            .where(_R.status.in_([s.value for s in statuses]))
            .order_by(_R.last_updated_at.desc(), _R.request_id.desc())
        )
        return self._fetch(stmt)

    def search(
        self,
        status: ReimbursementStatus | str | None = None,
        reimbursement_type: str | None = None,
        search: str | None = None,
    ) -> tuple[ReimbursementRequest, ...]:
        """Filtered list, newest submission first.

        ``None`` or ``"All"`` disables a filter; an unknown status matches
        nothing.  ``search`` matches applicant name or application id,
        case-insensitively.
        """
        stmt = select(_R)

        if status is not None and status != ALL_FILTER:
            wanted = parse_status(status)
            if wanted is None:
                return ()
            stmt = stmt.where(_R.status == wanted.value)

        if reimbursement_type is not None and reimbursement_type != ALL_FILTER:
            stmt = stmt.where(
                func.lower(_R.reimbursement_type) == reimbursement_type.strip().lower(),
            )

        if search is not None and search.strip():
            pattern = f"%{escape_like(search.strip().lower())}%"
            stmt = stmt.where(or_(
                func.lower(_R.applicant_name).like(pattern, escape=LIKE_ESCAPE),
                func.lower(_R.application_id).like(pattern, escape=LIKE_ESCAPE),
            ))

        return self._fetch(stmt.order_by(_R.submitted_at.desc(), _R.request_id.desc()))

    def summary(self) -> RequestSummary:
        """Counts per status and requested/approved totals."""
        rows = self.session.execute(
            select(_R.status, func.count(), func.coalesce(func.sum(_R.amount), 0))
            .group_by(_R.status)
        ).all()

        by_status = {status: 0 for status in ReimbursementStatus}
        requested = Decimal("0")
        approved = Decimal("0")
        for status_value, count, amount in rows:
            status = ReimbursementStatus(status_value)
            by_status[status] = count
            requested += Decimal(str(amount))
            if status is ReimbursementStatus.APPROVED:
                approved = Decimal(str(amount))

        return RequestSummary(
            total=sum(by_status.values()),
            by_status=by_status,
            in_progress=sum(
                count for status, count in by_status.items()
                if status not in TERMINAL_STATUSES
            ),
            approved_amount=approved,
            requested_amount=requested,
        )

    def activity_log(
        self,
        request_id: UUID | None = None,
        limit: int | None = None,
    ) -> tuple[StatusChange, ...]:
        """Status changes, newest first."""
        stmt = select(StatusChangeModel).order_by(
            StatusChangeModel.changed_at.desc(),
            StatusChangeModel.seq.desc(),
        )
        if request_id is not None:
            stmt = stmt.where(StatusChangeModel.request_id == request_id)
        if limit is not None:
            stmt = stmt.limit(limit)
        return tuple(m.to_dto() for m in self.session.execute(stmt).scalars().all())

    def _fetch(self, stmt) -> tuple[ReimbursementRequest, ...]:
        return tuple(m.to_dto() for m in self.session.execute(stmt).scalars().all())
