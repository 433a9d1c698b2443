"""
Typed Exception Hierarchy for the Reimbursement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected transition must be reported to the acting user as a specific,
actionable message.  Callers therefore never parse message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Every exception has a USER_MESSAGE attribute (toast text for the UI)
  4. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        service.transition(request_id, "Approved", "Principal")
    except Exception as e:
        if "finalized" in str(e):  # FRAGILE - message might change
            show_toast("Already finalized")

Example - RIGHT way (what this module enables):
    try:
        service.transition(request_id, "Approved", "Principal")
    except TerminalStateError as e:
        show_toast(e.user_message)
    except WorkflowError as e:
        api_response(code=e.code, request_id=e.request_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ReimbursementKernelError (base)
    |
    +-- WorkflowError
    |   +-- RequestNotFoundError
    |   +-- InvalidTransitionError
    |   +-- UnauthorizedRoleError
    |   +-- MissingRejectionReasonError
    |   +-- TerminalStateError
    |
    +-- ConcurrencyError
    |   +-- StaleStateError
    |
    +-- SubmissionError
    |   +-- InvalidSubmissionError
    |   +-- DuplicateApplicationIdError
    |
    +-- RecordError
    |   +-- InvalidRequestRecordError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                      | When Raised
-------------|---------------------------|------------------------------------------
Workflow     | REQUEST_NOT_FOUND         | No request with the given id
             | INVALID_TRANSITION        | (current, target) edge does not exist
             | UNAUTHORIZED_ROLE         | Role may not perform this transition
             | MISSING_REJECTION_REASON  | Rejecting with blank remarks
             | TERMINAL_STATE            | Request already Approved / Rejected
-------------|---------------------------|------------------------------------------
Concurrency  | STALE_STATE               | Status changed since the caller looked
-------------|---------------------------|------------------------------------------
Submission   | INVALID_SUBMISSION        | Submitted fields failed validation
             | DUPLICATE_APPLICATION_ID  | Application id already taken
-------------|---------------------------|------------------------------------------
Record       | INVALID_REQUEST_RECORD    | Request snapshot breaks a field invariant
-------------|---------------------------|------------------------------------------
Immutability | IMMUTABILITY_VIOLATION    | Modifying an append-only record

None of these are retried.  They reflect caller error or stale UI state that
the caller must refresh and re-attempt.
"""


class ReimbursementKernelError(Exception):
    """
    Base exception for all reimbursement kernel errors.

    All subclasses must have ``code`` and ``user_message`` class attributes.
    """

    code: str = "REIMBURSEMENT_KERNEL_ERROR"
    user_message: str = "Something went wrong while processing this request."


# Workflow (state machine) exceptions


class WorkflowError(ReimbursementKernelError):
    """Base exception for approval-chain transition failures."""

    code: str = "WORKFLOW_ERROR"


class RequestNotFoundError(WorkflowError):
    """No reimbursement request with the given id."""

    code: str = "REQUEST_NOT_FOUND"
    user_message: str = "This request could not be found. It may have been removed."

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Reimbursement request not found: {request_id}")


class InvalidTransitionError(WorkflowError):
    """The (current status, target status) edge does not exist."""

    code: str = "INVALID_TRANSITION"
    user_message: str = "This action is not available for the request's current stage."

    def __init__(self, request_id: str, current_status: str, target_status: str):
        self.request_id = request_id
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            f"Invalid transition for request {request_id}: "
            f"{current_status!r} -> {target_status!r}"
        )


class UnauthorizedRoleError(WorkflowError):
    """The acting role may not perform this transition."""

    code: str = "UNAUTHORIZED_ROLE"
    user_message: str = "You are not authorized to perform this action."

    def __init__(
        self,
        request_id: str,
        acting_role: str,
        current_status: str,
        target_status: str,
        authorized_role: str | None = None,
    ):
        self.request_id = request_id
        self.acting_role = acting_role
        self.current_status = current_status
        self.target_status = target_status
        self.authorized_role = authorized_role
        detail = f" (requires {authorized_role})" if authorized_role else ""
        super().__init__(
            f"Role {acting_role!r} may not move request {request_id} "
            f"from {current_status!r} to {target_status!r}{detail}"
        )


class MissingRejectionReasonError(WorkflowError):
    """Rejection attempted without non-empty remarks."""

    code: str = "MISSING_REJECTION_REASON"
    user_message: str = "Please provide a reason for rejecting this request."

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Rejecting request {request_id} requires remarks")


class TerminalStateError(WorkflowError):
    """
    The request is Approved or Rejected and accepts no further transitions.

    Reported separately from InvalidTransitionError so callers can render
    "already finalized" rather than "bad request".
    """

    code: str = "TERMINAL_STATE"
    user_message: str = "This request has already been finalized."

    def __init__(self, request_id: str, current_status: str):
        self.request_id = request_id
        self.current_status = current_status
        super().__init__(
            f"Request {request_id} is already finalized ({current_status})"
        )


# Concurrency exceptions


class ConcurrencyError(ReimbursementKernelError):
    """Base exception for concurrent modification conflicts."""

    code: str = "CONCURRENCY_ERROR"


class StaleStateError(ConcurrencyError):
    """
    The request's status no longer matches what the caller observed.

    Compare-and-swap failure: another approver moved the request first.
    """

    code: str = "STALE_STATE"
    user_message: str = (
        "This request was updated by someone else. Refresh and try again."
    )

    def __init__(self, request_id: str, expected_status: str, actual_status: str):
        self.request_id = request_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        super().__init__(
            f"Stale state for request {request_id}: expected "
            f"{expected_status!r}, found {actual_status!r}"
        )


# Submission exceptions


class SubmissionError(ReimbursementKernelError):
    """Base exception for request submission failures."""

    code: str = "SUBMISSION_ERROR"


class InvalidSubmissionError(SubmissionError):
    """One or more submitted fields failed validation."""

    code: str = "INVALID_SUBMISSION"
    user_message: str = "Some fields are missing or invalid. Please review the form."

    def __init__(self, field_errors: dict[str, str]):
        self.field_errors = dict(field_errors)
        fields = ", ".join(sorted(self.field_errors))
        super().__init__(f"Invalid submission: {fields}")


class DuplicateApplicationIdError(SubmissionError):
    """Generated application id collides with an existing request."""

    code: str = "DUPLICATE_APPLICATION_ID"
    user_message: str = "This application could not be numbered. Please resubmit."

    def __init__(self, application_id: str):
        self.application_id = application_id
        super().__init__(f"Application id already exists: {application_id}")


# Record exceptions


class RecordError(ReimbursementKernelError):
    """Base exception for malformed domain records."""

    code: str = "RECORD_ERROR"


class InvalidRequestRecordError(RecordError):
    """A request snapshot violates one of its own field invariants.

    Raised when the record is built, before any store or transition sees it.
    """

    code: str = "INVALID_REQUEST_RECORD"

    def __init__(self, request_id: str, field: str, reason: str):
        self.request_id = request_id
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid request {request_id}: {field} {reason}")


# Immutability exceptions


class ImmutabilityError(ReimbursementKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify immutable {entity_type} {entity_id}: {reason}"
        )
