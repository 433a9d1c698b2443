"""
Reimbursement request domain types (``reimbursement_kernel.domain.request``).

Responsibility
--------------
Frozen records that cross every layer boundary: the request itself, the
append-only status change record, and the notification event emitted after
each successful transition.  Also declares the collaborator protocols the
approval service is wired with (request store, notification sink, status
history) so the policy never depends on a storage technology.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Timestamps are timezone-aware and ``last_updated_at >= submitted_at``
  (``with_status`` clamps the timestamp).
* ``amount`` is strictly positive.
* Violations raise InvalidRequestRecordError when the record is built.
* ``status`` changes only through ``with_status``, which the approval
  service calls after ``check_transition`` has accepted the edge.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any, NoReturn, Protocol, Sequence
from uuid import UUID

from reimbursement_kernel.domain.workflow import (
    ApplicantType,
    ReimbursementStatus,
    Role,
)
from reimbursement_kernel.exceptions import InvalidRequestRecordError


@dataclass(frozen=True)
class ReimbursementRequest:
    """Immutable snapshot of a reimbursement claim."""

    request_id: UUID
    application_id: str
    applicant_id: str
    applicant_name: str
    applicant_type: ApplicantType
    amount: Decimal
    submitted_at: datetime
    last_updated_at: datetime
    status: ReimbursementStatus = ReimbursementStatus.PENDING
    remarks: str | None = None
    reimbursement_type: str = "NPTEL"
    department: str | None = None
    academic_year: str | None = None

    def __post_init__(self) -> None:
        for name in ("submitted_at", "last_updated_at"):
            if getattr(self, name).tzinfo is None:
                self._invalid(name, "must be timezone-aware")
        if self.last_updated_at < self.submitted_at:
            self._invalid("last_updated_at", "precedes submitted_at")
        amount = self.amount
        if (
            isinstance(amount, bool)
            or not isinstance(amount, (Decimal, int))
            or (isinstance(amount, Decimal) and not amount.is_finite())
            or amount <= 0
        ):
            self._invalid("amount", f"must be a positive amount, got {amount!r}")

    def _invalid(self, field_name: str, reason: str) -> NoReturn:
        raise InvalidRequestRecordError(str(self.request_id), field_name, reason)

    def with_status(
        self,
        status: ReimbursementStatus,
        updated_at: datetime,
        remarks: str | None = None,
    ) -> ReimbursementRequest:
        """Copy with a new status; remarks are replaced only when given."""
        if updated_at.tzinfo is None:
            self._invalid("last_updated_at", "must be timezone-aware")
        return replace(
            self,
            status=status,
            last_updated_at=max(updated_at, self.submitted_at),
            remarks=remarks if remarks is not None else self.remarks,
        )


@dataclass(frozen=True)
class StatusChange:
    """One entry of a request's status history. Append-only.

    ``from_status`` is None for the submission entry.
    """

    change_id: UUID
    request_id: UUID
    to_status: ReimbursementStatus
    changed_at: datetime
    from_status: ReimbursementStatus | None = None
    acting_role: Role | None = None
    actor_id: str | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class NotificationEvent:
    """Payload handed to the notification collaborator (badge/toast layer)."""

    request_id: UUID
    applicant_name: str
    new_status: ReimbursementStatus
    application_id: str | None = None
    occurred_at: datetime | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "requestId": str(self.request_id),
            "applicantName": self.applicant_name,
            "newStatus": self.new_status.value,
        }


# =========================================================================
# Collaborator protocols
# =========================================================================


class RequestStore(Protocol):
    """Persistence collaborator for reimbursement requests."""

    def get(self, request_id: UUID) -> ReimbursementRequest:
        """Return the request or raise RequestNotFoundError."""
        ...

    def save(
        self,
        request: ReimbursementRequest,
        expected_status: ReimbursementStatus | None = None,
    ) -> ReimbursementRequest:
        """Persist an existing request.

        When ``expected_status`` is given the write is a compare-and-swap and
        raises StaleStateError if the stored status differs.
        """
        ...

    def add(self, request: ReimbursementRequest) -> ReimbursementRequest:
        """Persist a new request."""
        ...

    def all(self) -> Sequence[ReimbursementRequest]:
        """Return every stored request."""
        ...

    def application_ids(self, prefix: str) -> Sequence[str]:
        """Application ids already issued under ``prefix``."""
        ...


class NotificationSink(Protocol):
    """Receives an event after every successful status change."""

    def publish(self, event: NotificationEvent) -> None:
        ...


class StatusHistory(Protocol):
    """Append-only store of StatusChange records."""

    def append(self, change: StatusChange) -> None:
        ...

    def entries(
        self,
        request_id: UUID | None = None,
        limit: int | None = None,
    ) -> Sequence[StatusChange]:
        """Newest first."""
        ...
