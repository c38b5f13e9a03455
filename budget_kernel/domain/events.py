"""
Ledger events emitted for external listeners.

Each committed operation produces exactly one ``LedgerEvent``.  Events are
numbered by a per-ledger monotonic ``sequence`` starting at 1.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, unique
from typing import Any, Callable

from budget_kernel.domain.values import Amount, Identity


@unique
class LedgerEventType(str, Enum):
    """Kinds of committed ledger operations."""

    ALLOCATED = "allocated"
    REQUESTED = "requested"
    RELEASED = "released"
    ADMINISTRATION_TRANSFERRED = "administration_transferred"


@dataclass(frozen=True)
class LedgerEvent:
    """A committed ledger operation.

    For ``ADMINISTRATION_TRANSFERRED`` the ``department`` field carries the
    new administrator and ``amount`` is 0.
    """

    sequence: int
    event_type: LedgerEventType
    department: Identity
    amount: Amount
    actor_id: Identity
    occurred_at: datetime

    def to_payload(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "event_type": self.event_type.value,
            "department": self.department,
            "amount": self.amount,
            "actor_id": self.actor_id,
            "occurred_at": self.occurred_at.isoformat(),
        }


LedgerEventListener = Callable[[LedgerEvent], None]
