"""
Human-readable application ids.

Format: ``{APPLICANT_TYPE}-{CATEGORY}-{YEAR}-{DEPT}-{SEQ}``

    S-NPT-2026-IT-001   -> Student, NPTEL, 2026, Information Technology, #1
    F-FDP-2026-CE-015   -> Faculty, FDP, 2026, Computer Engineering, #15

The code tables are configuration (``reimbursement_config``); this module
only knows how to apply them.  Pure functions, no I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Mapping

SEQUENCE_WIDTH = 3
FALLBACK_CATEGORY = "OTH"
UNKNOWN_DEPARTMENT = "UNK"

_YEAR = re.compile(r"\d{4}")


@dataclass(frozen=True)
class ApplicationIdScheme:
    """Code tables used to build application ids.

    ``category_codes`` and ``department_codes`` are matched with lower-cased
    keys, exact match first, then substring match in table order.
    """

    applicant_prefixes: Mapping[str, str]
    category_codes: Mapping[str, str]
    department_codes: Mapping[str, str]
    default_applicant_prefix: str = "S"
    default_category: str = "NPT"

    def applicant_prefix(self, applicant_type: str | None) -> str:
        if not applicant_type:
            return self.default_applicant_prefix
        return self.applicant_prefixes.get(applicant_type, self.default_applicant_prefix)

    def category_code(self, reimbursement_type: str | None) -> str:
        if reimbursement_type is None or not reimbursement_type.strip():
            return self.default_category
        wanted = reimbursement_type.strip().lower()
        code = _lookup(self.category_codes, wanted)
        return code if code is not None else FALLBACK_CATEGORY

    def department_code(self, department: str | None) -> str:
        if department is None or not department.strip():
            return UNKNOWN_DEPARTMENT
        wanted = department.strip().lower()
        code = _lookup(self.department_codes, wanted)
        if code is not None:
            return code
        words = department.split()
        if len(words) > 1:
            return "".join(w[0].upper() for w in words)[:4]
        return department.strip()[:4].upper()


def _lookup(table: Mapping[str, str], wanted: str) -> str | None:
    lowered = {key.lower(): code for key, code in table.items()}
    if wanted in lowered:
        return lowered[wanted]
    for key, code in lowered.items():
        if key in wanted or wanted in key:
            return code
    return None


def extract_year(academic_year: str | None, fallback_year: int) -> str:
    """First year of ``2025-2026``, the year itself for ``2026``.

    Falls back to ``fallback_year`` when no four-digit year is present.
    """
    if academic_year is None or not academic_year.strip():
        return str(fallback_year)
    text = academic_year.strip()
    if "-" in text:
        first = text.split("-")[0].strip()
        if _YEAR.fullmatch(first):
            return first
    match = _YEAR.search(text)
    if match:
        return match.group(0)
    return str(fallback_year)


def build_prefix(
    scheme: ApplicationIdScheme,
    applicant_type: str | None,
    reimbursement_type: str | None,
    year: str,
    department: str | None,
) -> str:
    return "-".join((
        scheme.applicant_prefix(applicant_type),
        scheme.category_code(reimbursement_type),
        year,
        scheme.department_code(department),
    )) + "-"


def next_sequence(prefix: str, existing_ids: Iterable[str]) -> str:
    """One past the highest sequence already issued under ``prefix``."""
    highest = 0
    wanted = prefix.lower()
    for application_id in existing_ids:
        if not application_id.lower().startswith(wanted):
            continue
        tail = application_id.rsplit("-", 1)[-1]
        if tail.isdigit():
            highest = max(highest, int(tail))
    return str(highest + 1).zfill(SEQUENCE_WIDTH)


@dataclass(frozen=True)
class ParsedApplicationId:
    applicant_type: str
    category: str
    year: str
    department: str
    sequence: int
    type_prefix: str
    category_code: str
    department_code: str


def parse_application_id(
    application_id: str | None,
    scheme: ApplicationIdScheme,
) -> ParsedApplicationId | None:
    """Split an id back into its parts; None when it is not five fields."""
    if not application_id:
        return None
    parts = application_id.split("-")
    if len(parts) != 5 or not parts[4].isdigit():
        return None
    type_prefix, category_code, year, department_code, sequence = parts

    def reverse(table: Mapping[str, str], code: str) -> str:
        return next((name for name, c in table.items() if c == code), "Unknown")

    return ParsedApplicationId(
        applicant_type=reverse(scheme.applicant_prefixes, type_prefix),
        category=reverse(scheme.category_codes, category_code),
        year=year,
        department=reverse(scheme.department_codes, department_code),
        sequence=int(sequence),
        type_prefix=type_prefix,
        category_code=category_code,
        department_code=department_code,
    )
