"""
Module: reimbursement_kernel.models.reimbursement
Responsibility: ORM persistence for reimbursement requests and their status
    history.

Architecture position: Kernel > Models.  May import from db/base.py and
    exceptions.py only (domain types are imported lazily inside to_dto).

Invariants enforced:
    - Valid status values: DB check constraint on ``status``.
    - Positive amount: DB check constraint on ``amount``.
    - ``last_updated_at >= submitted_at``: DB check constraint.
    - Application ids are unique.
    - Status changes are append-only: ORM listeners reject UPDATE/DELETE.

Failure modes:
    - IntegrityError on duplicate application_id or constraint violations.
    - ImmutabilityViolationError on status change UPDATE/DELETE.

Audit relevance:
    ``status_changes`` is the activity log: one row per submission and one
    row per accepted transition, never rewritten.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Index,
    String,
    Text,
    event,
)
from sqlalchemy.orm import Mapped, mapped_column

from reimbursement_kernel.db.base import Base, UUIDString
from reimbursement_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from reimbursement_kernel.domain.request import (
        ReimbursementRequest,
        StatusChange,
    )

_STATUS_VALUES = (
    "'Pending', 'Under Coordinator', 'Under HOD', "
    "'Under Principal', 'Approved', 'Rejected'"
)


class ReimbursementRequestModel(Base):
    """Persistent reimbursement request.

    Contract:
        ``status`` is only ever changed through SqlRequestStore.save(), which
        issues a compare-and-swap UPDATE.
    """

    __tablename__ = "reimbursement_requests"

    __table_args__ = (
        CheckConstraint(
            f"status IN ({_STATUS_VALUES})",
            name="ck_reimbursement_requests_valid_status",
        ),
        CheckConstraint(
            "amount > 0",
            name="ck_reimbursement_requests_positive_amount",
        ),
        CheckConstraint(
            "last_updated_at >= submitted_at",
            name="ck_reimbursement_requests_update_after_submit",
        ),
        # Role queues filter by status and order by submission
        Index(
            "ix_reimbursement_requests_status_submitted",
            "status", "submitted_at",
        ),
        Index("ix_reimbursement_requests_applicant", "applicant_id"),
    )

    request_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    application_id: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True,
    )
    applicant_id: Mapped[str] = mapped_column(String(100), nullable=False)
    applicant_name: Mapped[str] = mapped_column(String(200), nullable=False)
    applicant_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="Pending")
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    reimbursement_type: Mapped[str] = mapped_column(
        String(100), nullable=False, default="NPTEL",
    )
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    academic_year: Mapped[str | None] = mapped_column(String(20), nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(nullable=False)
    last_updated_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ReimbursementRequest {self.application_id} "
            f"status={self.status}>"
        )

    def to_dto(self) -> ReimbursementRequest:
        """Convert ORM model to frozen domain DTO."""
        from reimbursement_kernel.domain.request import ReimbursementRequest
        from reimbursement_kernel.domain.workflow import (
            ApplicantType,
            ReimbursementStatus,
        )

        return ReimbursementRequest(
            request_id=self.request_id,
            application_id=self.application_id,
            applicant_id=self.applicant_id,
            applicant_name=self.applicant_name,
            applicant_type=ApplicantType(self.applicant_type),
            amount=Decimal(self.amount),
            submitted_at=self.submitted_at,
            last_updated_at=self.last_updated_at,
            status=ReimbursementStatus(self.status),
            remarks=self.remarks,
            reimbursement_type=self.reimbursement_type,
            department=self.department,
            academic_year=self.academic_year,
        )

    @classmethod
    def from_dto(cls, dto: ReimbursementRequest) -> ReimbursementRequestModel:
        """Create ORM model from domain DTO."""
        return cls(
            request_id=dto.request_id,
            application_id=dto.application_id,
            applicant_id=dto.applicant_id,
            applicant_name=dto.applicant_name,
            applicant_type=dto.applicant_type.value,
            amount=dto.amount,
            status=dto.status.value,
            remarks=dto.remarks,
            reimbursement_type=dto.reimbursement_type,
            department=dto.department,
            academic_year=dto.academic_year,
            submitted_at=dto.submitted_at,
            last_updated_at=dto.last_updated_at,
        )


class StatusChangeModel(Base):
    """Persistent status change record. Append-only.

    Contract:
        Rows are immutable once created -- no UPDATE, no DELETE.
    """

    __tablename__ = "status_changes"

    __table_args__ = (
        Index("ix_status_changes_request", "request_id", "changed_at"),
        Index("ix_status_changes_changed_at", "changed_at"),
    )

    change_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    # Insertion order for records sharing a timestamp
    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    request_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    from_status: Mapped[str | None] = mapped_column(String(30), nullable=True)
    to_status: Mapped[str] = mapped_column(String(30), nullable=False)
    acting_role: Mapped[str | None] = mapped_column(String(20), nullable=True)
    actor_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<StatusChange {self.change_id} request={self.request_id} "
            f"{self.from_status} -> {self.to_status}>"
        )

    def to_dto(self) -> StatusChange:
        """Convert ORM model to frozen domain DTO."""
        from reimbursement_kernel.domain.request import StatusChange
        from reimbursement_kernel.domain.workflow import ReimbursementStatus, Role

        return StatusChange(
            change_id=self.change_id,
            request_id=self.request_id,
            to_status=ReimbursementStatus(self.to_status),
            changed_at=self.changed_at,
            from_status=(
                ReimbursementStatus(self.from_status) if self.from_status else None
            ),
            acting_role=Role(self.acting_role) if self.acting_role else None,
            actor_id=self.actor_id,
            remarks=self.remarks,
        )

    @classmethod
    def from_dto(cls, dto: StatusChange) -> StatusChangeModel:
        """Create ORM model from domain DTO."""
        return cls(
            change_id=dto.change_id,
            request_id=dto.request_id,
            from_status=dto.from_status.value if dto.from_status else None,
            to_status=dto.to_status.value,
            acting_role=dto.acting_role.value if dto.acting_role else None,
            actor_id=dto.actor_id,
            remarks=dto.remarks,
            changed_at=dto.changed_at,
        )


# =============================================================================
# ORM-Level Immutability for Status History (Append-Only)
# =============================================================================


@event.listens_for(StatusChangeModel, "before_update")
def prevent_status_change_update(mapper, connection, target):
    """Prevent updates to status change records."""
    raise ImmutabilityViolationError(
        entity_type="StatusChange",
        entity_id=str(target.change_id),
        reason="Status history is append-only -- cannot modify",
    )


@event.listens_for(StatusChangeModel, "before_delete")
def prevent_status_change_delete(mapper, connection, target):
    """Prevent deletion of status change records."""
    raise ImmutabilityViolationError(
        entity_type="StatusChange",
        entity_id=str(target.change_id),
        reason="Status history is append-only -- cannot delete",
    )
