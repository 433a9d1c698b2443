"""
reimbursement_kernel.services.history_service -- Status history (activity log).

Responsibility:
    Append-only record of every submission and every accepted transition.
    Backs the Principal's activity log and per-request timelines.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Append-only: there is no update or delete path here, and the ORM model
      rejects UPDATE/DELETE (ImmutabilityViolationError).
    - ``entries()`` returns newest first; records written in the same
      instant keep their insertion order via ``seq``.
"""

from __future__ import annotations

import threading
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from reimbursement_kernel.domain.request import StatusChange
from reimbursement_kernel.models.reimbursement import StatusChangeModel


class InMemoryStatusHistory:
    """List-backed history for tests and single-process use."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._changes: list[StatusChange] = []

    def append(self, change: StatusChange) -> None:
        with self._lock:
            self._changes.append(change)

    def entries(
        self,
        request_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[StatusChange]:
        with self._lock:
            selected = [
                c for c in reversed(self._changes)
                if request_id is None or c.request_id == request_id
            ]
        return selected[:limit] if limit is not None else selected


class SqlStatusHistory:
    """
    SQLAlchemy-backed history.

    Contract:
        Flushes within the caller's transaction; never commits.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def append(self, change: StatusChange) -> None:
        last_seq = self._session.execute(
            select(func.max(StatusChangeModel.seq))
        ).scalar_one_or_none()
        model = StatusChangeModel.from_dto(change)
        model.seq = (last_seq or 0) + 1
        self._session.add(model)
        self._session.flush()

    def entries(
        self,
        request_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[StatusChange]:
        stmt = select(StatusChangeModel).order_by(
            StatusChangeModel.changed_at.desc(),
            StatusChangeModel.seq.desc(),
        )
        if request_id is not None:
            stmt = stmt.where(StatusChangeModel.request_id == request_id)
        if limit is not None:
            stmt = stmt.limit(limit)
        return [m.to_dto() for m in self._session.execute(stmt).scalars().all()]
