"""
reimbursement_config -- single public entrypoint for workflow configuration.

Responsibility:
    ``get_active_config()`` is the ONLY way to obtain settings at runtime.
    No other component reads configuration files or environment variables.

Architecture position:
    Sits above ``reimbursement_kernel``.  The kernel MUST NEVER import from
    ``reimbursement_config``; ``bridges`` translates settings into kernel
    inputs.

Environment:
    REIMBURSEMENT_CONFIG  path to a settings YAML (default: sets/default.yaml)
    DATABASE_URL          overrides ``database_url`` from the file

Audit relevance:
    Every successful call emits a ``REIMBURSEMENT_CONFIG_TRACE`` log entry
    with the config id, version and checksum.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from reimbursement_config.loader import load_yaml_file, parse_settings
from reimbursement_config.schema import IdCodeTables, WorkflowSettings

_logger = logging.getLogger("reimbursement_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> WorkflowSettings:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: ``config_path``, then
    ``REIMBURSEMENT_CONFIG``, then the bundled default set.

    Raises:
        FileNotFoundError: If the settings file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value has the wrong shape.
    """
    path = Path(
        config_path
        or os.environ.get("REIMBURSEMENT_CONFIG")
        or _DEFAULT_CONFIG_PATH
    )
    settings = parse_settings(load_yaml_file(path))

    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        settings = replace(settings, database_url=database_url)

    _logger.info(
        "REIMBURSEMENT_CONFIG_TRACE",
        extra={
            "trace_type": "REIMBURSEMENT_CONFIG_TRACE",
            "config_set_id": settings.config_id,
            "config_set_version": settings.version,
            "checksum": settings.checksum,
            "config_path": str(path),
            "database_url_overridden": bool(database_url),
        },
    )
    return settings


__all__ = ["IdCodeTables", "WorkflowSettings", "get_active_config"]
