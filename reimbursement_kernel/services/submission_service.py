"""
reimbursement_kernel.services.submission_service -- New reimbursement claims.

Responsibility:
    Validates a submission, numbers it with a human-readable application id,
    stores it in ``Pending`` and records the first history entry.

Architecture position:
    Kernel > Services.  The id code tables arrive as an ApplicationIdScheme;
    this module never reads configuration itself.

Failure modes:
    - InvalidSubmissionError listing every bad field.
    - DuplicateApplicationIdError when the store already holds the id
      (two submissions numbered under the same prefix at once).
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from uuid import uuid4

from reimbursement_kernel.domain.application_id import (
    ApplicationIdScheme,
    build_prefix,
    extract_year,
    next_sequence,
)
from reimbursement_kernel.domain.clock import Clock, SystemClock
from reimbursement_kernel.domain.request import (
    NotificationEvent,
    NotificationSink,
    ReimbursementRequest,
    RequestStore,
    StatusChange,
    StatusHistory,
)
from reimbursement_kernel.domain.workflow import (
    INITIAL_STATUS,
    ApplicantType,
    is_blank,
)
from reimbursement_kernel.exceptions import InvalidSubmissionError
from reimbursement_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.submission")

_ACADEMIC_YEAR = re.compile(r"^\d{4}-\d{4}$|^\d{4}$")


def _parse_amount(value: Decimal | int | str) -> Decimal | None:
    if isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def _check_text(
    errors: dict[str, str],
    field_name: str,
    value: object,
    *,
    required: bool = True,
) -> None:
    if value is None:
        if required:
            errors[field_name] = "required"
    elif not isinstance(value, str):
        errors[field_name] = f"must be text, got {type(value).__name__}"
    elif required and not value.strip():
        errors[field_name] = "required"


class SubmissionService:
    """Creates reimbursement requests at the start of the approval chain."""

    def __init__(
        self,
        store: RequestStore,
        scheme: ApplicationIdScheme,
        notifier: NotificationSink | None = None,
        history: StatusHistory | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._scheme = scheme
        self._notifier = notifier
        self._history = history
        self._clock = clock or SystemClock()

    def submit(
        self,
        applicant_id: str,
        applicant_name: str,
        applicant_type: ApplicantType | str,
        amount: Decimal | int | str,
        reimbursement_type: str = "NPTEL",
        department: str | None = None,
        academic_year: str | None = None,
        remarks: str | None = None,
    ) -> ReimbursementRequest:
        """Validate, number and store a new request in ``Pending``."""
        errors: dict[str, str] = {}

        _check_text(errors, "applicant_id", applicant_id)
        _check_text(errors, "applicant_name", applicant_name)

        try:
            kind = ApplicantType(applicant_type)
        except ValueError:
            kind = None
            errors["applicant_type"] = f"unknown applicant type {applicant_type!r}"

        parsed_amount = _parse_amount(amount)
        if parsed_amount is None:
            errors["amount"] = "must be a positive amount"

        _check_text(errors, "reimbursement_type", reimbursement_type)
        for optional_name, optional_value in (
            ("department", department),
            ("academic_year", academic_year),
            ("remarks", remarks),
        ):
            _check_text(errors, optional_name, optional_value, required=False)

        year_text = None
        if "academic_year" not in errors and not is_blank(academic_year):
            year_text = academic_year.strip()
            if not _ACADEMIC_YEAR.match(year_text):
                errors["academic_year"] = "expected YYYY-YYYY or YYYY"

        if errors:
            logger.info(
                "submission_rejected",
                extra={"field_errors": errors, "applicant_id": applicant_id},
            )
            raise InvalidSubmissionError(errors)

        now = self._clock.now()
        prefix = build_prefix(
            self._scheme,
            kind.value,
            reimbursement_type,
            extract_year(year_text, now.year),
            department,
        )
        application_id = prefix + next_sequence(
            prefix, self._store.application_ids(prefix),
        )

        request = ReimbursementRequest(
            request_id=uuid4(),
            application_id=application_id,
            applicant_id=applicant_id.strip(),
            applicant_name=applicant_name.strip(),
            applicant_type=kind,
            amount=parsed_amount,
            submitted_at=now,
            last_updated_at=now,
            status=INITIAL_STATUS,
            remarks=None if is_blank(remarks) else remarks.strip(),
            reimbursement_type=reimbursement_type.strip(),
            department=None if is_blank(department) else department.strip(),
            academic_year=year_text,
        )

        with LogContext.bind(
            request_id=request.request_id,
            application_id=application_id,
            actor_id=request.applicant_id,
        ):
            stored = self._store.add(request)

            if self._history is not None:
                self._history.append(StatusChange(
                    change_id=uuid4(),
                    request_id=stored.request_id,
                    to_status=stored.status,
                    changed_at=stored.submitted_at,
                    actor_id=stored.applicant_id,
                    remarks=stored.remarks,
                ))

            logger.info(
                "request_submitted",
                extra={
                    "applicant_type": stored.applicant_type.value,
                    "amount": stored.amount,
                    "reimbursement_type": stored.reimbursement_type,
                },
            )

            if self._notifier is not None:
                try:
                    self._notifier.publish(NotificationEvent(
                        request_id=stored.request_id,
                        applicant_name=stored.applicant_name,
                        new_status=stored.status,
                        application_id=stored.application_id,
                        occurred_at=stored.submitted_at,
                    ))
                except Exception:  # noqa: BLE001
                    logger.warning("notification_delivery_failed", exc_info=True)

        return stored
