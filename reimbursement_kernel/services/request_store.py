"""
reimbursement_kernel.services.request_store -- Request store implementations.

Responsibility:
    The persistence collaborator behind the approval and submission
    services: ``get`` / ``save`` / ``add`` / ``all``.  The services never
    manage connections, transactions or schemas themselves.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Compare-and-swap: ``save(request, expected_status=...)`` only writes
      when the stored status still equals ``expected_status``; otherwise
      StaleStateError.  Two approvers racing on one request cannot both win.
    - Application ids are unique (DuplicateApplicationIdError).
    - Only mutable columns (status, remarks, last_updated_at) are written
      by ``save``.

Failure modes:
    - RequestNotFoundError when the request id is unknown.
    - StaleStateError on compare-and-swap mismatch.
    - DuplicateApplicationIdError on ``add`` with a taken application id.
"""

from __future__ import annotations

import threading
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from reimbursement_kernel.db.base import LIKE_ESCAPE, escape_like
from reimbursement_kernel.domain.request import ReimbursementRequest
from reimbursement_kernel.domain.workflow import ReimbursementStatus
from reimbursement_kernel.exceptions import (
    DuplicateApplicationIdError,
    RequestNotFoundError,
    StaleStateError,
)
from reimbursement_kernel.logging_config import get_logger
from reimbursement_kernel.models.reimbursement import ReimbursementRequestModel

logger = get_logger("services.request_store")


class InMemoryRequestStore:
    """Dict-backed store. Compare-and-swap is serialized with a lock."""

    def __init__(self, requests: list[ReimbursementRequest] | None = None) -> None:
        self._lock = threading.Lock()
        self._requests: dict[UUID, ReimbursementRequest] = {}
        for request in requests or ():
            self.add(request)

    def get(self, request_id: UUID) -> ReimbursementRequest:
        with self._lock:
            try:
                return self._requests[request_id]
            except KeyError:
                raise RequestNotFoundError(str(request_id)) from None

    def save(
        self,
        request: ReimbursementRequest,
        expected_status: ReimbursementStatus | None = None,
    ) -> ReimbursementRequest:
        with self._lock:
            current = self._requests.get(request.request_id)
            if current is None:
                raise RequestNotFoundError(str(request.request_id))
            if expected_status is not None and current.status is not expected_status:
                raise StaleStateError(
                    str(request.request_id),
                    expected_status.value,
                    current.status.value,
                )
            self._requests[request.request_id] = request
            return request

    def add(self, request: ReimbursementRequest) -> ReimbursementRequest:
        with self._lock:
            if any(
                r.application_id == request.application_id
                for r in self._requests.values()
            ):
                raise DuplicateApplicationIdError(request.application_id)
            self._requests[request.request_id] = request
            return request

    def all(self) -> list[ReimbursementRequest]:
        with self._lock:
            return list(self._requests.values())

    def application_ids(self, prefix: str) -> list[str]:
        wanted = prefix.lower()
        with self._lock:
            return [
                r.application_id for r in self._requests.values()
                if r.application_id.lower().startswith(wanted)
            ]


class SqlRequestStore:
    """
    SQLAlchemy-backed store.

    Contract:
        Uses the caller's session and only flushes; the caller owns
        commit/rollback (see ``db.engine.session_scope``).
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, request_id: UUID) -> ReimbursementRequest:
        return self._load_model(request_id).to_dto()

    def save(
        self,
        request: ReimbursementRequest,
        expected_status: ReimbursementStatus | None = None,
    ) -> ReimbursementRequest:
        stmt = (
            update(ReimbursementRequestModel)
            .where(ReimbursementRequestModel.request_id == request.request_id)
            .values(
                status=request.status.value,
                remarks=request.remarks,
                last_updated_at=request.last_updated_at,
            )
            .execution_options(synchronize_session="evaluate")
        )
        if expected_status is not None:
            stmt = stmt.where(
                ReimbursementRequestModel.status == expected_status.value,
            )

        result = self._session.execute(stmt)
        if result.rowcount == 0:
            current = self._load_model(request.request_id)
            # Row exists, so the status guard is what failed
            logger.warning(
                "compare_and_swap_failed",
                extra={
                    "request_id": str(request.request_id),
                    "expected_status": expected_status.value if expected_status else None,
                    "actual_status": current.status,
                },
            )
            raise StaleStateError(
                str(request.request_id),
                expected_status.value if expected_status else request.status.value,
                current.status,
            )

        self._session.flush()
        return self.get(request.request_id)

    def add(self, request: ReimbursementRequest) -> ReimbursementRequest:
        taken = self._session.execute(
            select(ReimbursementRequestModel.id).where(
                ReimbursementRequestModel.application_id == request.application_id,
            )
        ).first()
        if taken is not None:
            raise DuplicateApplicationIdError(request.application_id)

        model = ReimbursementRequestModel.from_dto(request)
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def all(self) -> list[ReimbursementRequest]:
        models = self._session.execute(
            select(ReimbursementRequestModel).order_by(
                ReimbursementRequestModel.submitted_at,
                ReimbursementRequestModel.request_id,
            )
        ).scalars().all()
        return [m.to_dto() for m in models]

    def application_ids(self, prefix: str) -> list[str]:
        return list(self._session.execute(
            select(ReimbursementRequestModel.application_id).where(
                func.lower(ReimbursementRequestModel.application_id).like(
                    f"{escape_like(prefix.lower())}%", escape=LIKE_ESCAPE,
                ),
            )
        ).scalars().all())

    def _load_model(self, request_id: UUID) -> ReimbursementRequestModel:
        """Load request model by request_id, raise if not found."""
        model = self._session.execute(
            select(ReimbursementRequestModel).where(
                ReimbursementRequestModel.request_id == request_id,
            )
        ).scalar_one_or_none()

        if model is None:
            raise RequestNotFoundError(str(request_id))

        return model
