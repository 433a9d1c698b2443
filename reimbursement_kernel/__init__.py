"""
Reimbursement Kernel

The approval-chain core for reimbursement claims:
- Declarative transition table (Pending -> ... -> Approved / Rejected)
- Role-checked, compare-and-swap status transitions
- Append-only status history
- Role queues and dashboard queries
"""

__version__ = "0.1.0"
