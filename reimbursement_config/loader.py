"""
Configuration Loader (``reimbursement_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen
``reimbursement_config.schema`` dataclasses.  Runtime callers go through
``reimbursement_config.get_active_config()`` instead.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrong shapes (non-mapping tables, empty codes)  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from reimbursement_config.schema import IdCodeTables, WorkflowSettings

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields ``{}``."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_code_table(name: str, data: Any) -> tuple[tuple[str, str], ...]:
    """Parse a ``{name: code}`` mapping, keeping file order."""
    if not isinstance(data, dict):
        raise ValueError(f"{name} must be a mapping, got {type(data).__name__}")
    table = []
    for key, code in data.items():
        if not str(key).strip() or not str(code).strip():
            raise ValueError(f"{name}: empty name or code in entry {key!r}: {code!r}")
        table.append((str(key), str(code)))
    return tuple(table)


def parse_codes(data: dict[str, Any]) -> IdCodeTables:
    return IdCodeTables(
        applicant_prefixes=parse_code_table(
            "applicant_prefixes", data["applicant_prefixes"],
        ),
        category_codes=parse_code_table("category_codes", data["category_codes"]),
        department_codes=parse_code_table(
            "department_codes", data.get("department_codes", {}),
        ),
        default_applicant_prefix=str(data.get("default_applicant_prefix", "S")),
        default_category=str(data.get("default_category", "NPT")),
    )


def parse_settings(data: dict[str, Any]) -> WorkflowSettings:
    """Parse the top-level settings document."""
    log_level = str(data.get("log_level", "INFO")).upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log_level: {log_level!r}")

    return WorkflowSettings(
        config_id=str(data["config_id"]),
        version=int(data.get("version", 1)),
        database_url=str(data["database_url"]),
        log_level=log_level,
        default_reimbursement_type=str(
            data.get("default_reimbursement_type", "NPTEL"),
        ),
        codes=parse_codes(data["application_ids"]),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization; deterministic."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
