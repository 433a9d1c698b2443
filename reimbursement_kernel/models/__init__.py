"""ORM models for the reimbursement kernel."""

from reimbursement_kernel.models.reimbursement import (
    ReimbursementRequestModel,
    StatusChangeModel,
)

__all__ = [
    "ReimbursementRequestModel",
    "StatusChangeModel",
]
