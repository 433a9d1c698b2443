"""
Configuration schema (``reimbursement_config.schema``).

Frozen dataclasses produced by the loader.  Code tables are stored as tuples
of ``(name, code)`` pairs so table order survives freezing; partial matches
in the application id scheme are tried in that order.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class IdCodeTables:
    """Lookup tables for application id generation."""

    applicant_prefixes: tuple[tuple[str, str], ...]
    category_codes: tuple[tuple[str, str], ...]
    department_codes: tuple[tuple[str, str], ...]
    default_applicant_prefix: str = "S"
    default_category: str = "NPT"


@dataclass(frozen=True)
class WorkflowSettings:
    """Runtime settings for the reimbursement workflow."""

    config_id: str
    version: int
    database_url: str
    log_level: str
    default_reimbursement_type: str
    codes: IdCodeTables
    checksum: str = field(default="", compare=False)

    @property
    def applicant_prefixes(self) -> dict[str, str]:
        return dict(self.codes.applicant_prefixes)

    @property
    def category_codes(self) -> dict[str, str]:
        return dict(self.codes.category_codes)

    @property
    def department_codes(self) -> dict[str, str]:
        return dict(self.codes.department_codes)
