"""
Config -> Kernel Bridges.

Converts loaded settings into kernel inputs.  These live here because the
kernel must never import ``reimbursement_config``.

Usage:
    from reimbursement_config.bridges import apply_log_level, build_id_scheme

    settings = get_active_config()
    apply_log_level(settings)
    scheme = build_id_scheme(settings)
"""

from __future__ import annotations

import logging

from reimbursement_config.schema import WorkflowSettings
from reimbursement_kernel.domain.application_id import ApplicationIdScheme
from reimbursement_kernel.logging_config import LOGGER_NAMESPACE, configure_logging


def build_id_scheme(settings: WorkflowSettings) -> ApplicationIdScheme:
    codes = settings.codes
    return ApplicationIdScheme(
        applicant_prefixes=dict(codes.applicant_prefixes),
        category_codes=dict(codes.category_codes),
        department_codes=dict(codes.department_codes),
        default_applicant_prefix=codes.default_applicant_prefix,
        default_category=codes.default_category,
    )


def apply_log_level(settings: WorkflowSettings) -> None:
    """Install kernel logging at the configured ``log_level``.

    The level is applied even when logging was already installed (engine
    bootstrap installs it at INFO).
    """
    configure_logging(level=settings.log_level)
    logging.getLogger(LOGGER_NAMESPACE).setLevel(settings.log_level)
