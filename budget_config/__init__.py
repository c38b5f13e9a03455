"""
budget_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_ledger_config()``.  Returns a frozen ``LedgerConfig``.

Architecture position:
    Configuration.  Sits above ``budget_kernel`` and below
    ``budget_services``.  The kernel MUST NEVER import from
    ``budget_config``.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` / ``ValueError`` -- schema failures (see ``loader``).

Audit relevance:
    Every successful ``get_ledger_config()`` call emits a
    ``BUDGET_CONFIG_TRACE`` log entry with the config id and checksum,
    tying every ledger instance back to the document that configured it.
"""

from __future__ import annotations

from pathlib import Path

from budget_config.loader import compute_checksum, load_yaml_file, parse_ledger_config
from budget_config.schema import LedgerConfig
from budget_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"


def get_ledger_config(path: Path | None = None) -> LedgerConfig:
    """Load and validate the ledger configuration at ``path`` (default set if omitted)."""
    config_path = Path(path) if path is not None else _DEFAULT_CONFIG_FILE
    config = parse_ledger_config(load_yaml_file(config_path))

    _logger.info(
        "BUDGET_CONFIG_TRACE",
        extra={
            "trace_type": "BUDGET_CONFIG_TRACE",
            "config_id": config.config_id,
            "checksum": config.checksum,
            "source": str(config_path),
            "total_budget": config.total_budget,
            "persistent": config.is_persistent,
        },
    )
    return config


__all__ = [
    "LedgerConfig",
    "compute_checksum",
    "get_ledger_config",
    "load_yaml_file",
    "parse_ledger_config",
]
