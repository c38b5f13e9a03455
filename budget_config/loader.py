"""
Configuration Loader (``budget_config.loader``).

Responsibility
--------------
Loads a YAML ledger document and parses it into a frozen
``LedgerConfig``.  The single public entry point for runtime config is
``budget_config.get_ledger_config()``.

Architecture position
---------------------
**Config layer**.  Depends on PyYAML and on ``budget_kernel.utils`` for
deterministic hashing; the kernel never imports this package.

Invariants enforced
-------------------
* Parse errors raise ``KeyError`` (missing key) or ``ValueError`` (wrong
  type or value); there are no silent defaults for required fields.
* ``compute_checksum`` is deterministic for identical documents.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Top-level document is not a mapping  -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from budget_config.schema import LOG_LEVELS, LedgerConfig
from budget_kernel.utils.hashing import hash_payload


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(data).__name__}")
    return data


def _parse_non_negative_int(data: dict[str, Any], key: str) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{key} must not be negative, got {value}")
    return value


def _parse_identity(data: dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string, got {value!r}")
    return value


def parse_ledger_config(data: dict[str, Any]) -> LedgerConfig:
    """
    Parse a ``LedgerConfig`` from a dict.

    Expected layout::

        config_id: default
        ledger:
          administrator: admin
          total_budget: 100
          backing_funds: 100
        database:
          url: sqlite:///budget.db   # optional
        logging:
          level: INFO                # optional

    Raises:
        KeyError: if ``ledger`` or one of its required keys is missing.
        ValueError: if a value has the wrong type, is negative, or names
            an unknown log level.
    """
    ledger = data["ledger"]
    if not isinstance(ledger, dict):
        raise ValueError(f"ledger must be a mapping, got {type(ledger).__name__}")

    database = data.get("database") or {}
    database_url = database.get("url")
    if database_url is not None and not isinstance(database_url, str):
        raise ValueError(f"database.url must be a string, got {database_url!r}")

    log_level = str((data.get("logging") or {}).get("level", "INFO")).upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"Unknown log level {log_level!r}; expected one of {LOG_LEVELS}")

    return LedgerConfig(
        administrator=_parse_identity(ledger, "administrator"),
        total_budget=_parse_non_negative_int(ledger, "total_budget"),
        backing_funds=_parse_non_negative_int(ledger, "backing_funds"),
        database_url=database_url,
        log_level=log_level,
        config_id=str(data.get("config_id", "default")),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``data``; identical input, identical checksum."""
    return hash_payload(data)
