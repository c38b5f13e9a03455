"""
LedgerConfig schema.

The reviewable source artifact for a ledger deployment.  YAML documents
are parsed into this type by the loader; nothing else reads configuration
files.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class LedgerConfig:
    """Everything needed to stand up one budget pool."""

    administrator: str
    total_budget: int
    backing_funds: int
    database_url: str | None = None
    log_level: str = "INFO"
    config_id: str = "default"
    checksum: str = ""

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)

    @property
    def is_persistent(self) -> bool:
        return self.database_url is not None
