"""Read-only selectors for the reimbursement kernel."""

from reimbursement_kernel.selectors.base import BaseSelector
from reimbursement_kernel.selectors.request_selector import RequestSelector

__all__ = ["BaseSelector", "RequestSelector"]
