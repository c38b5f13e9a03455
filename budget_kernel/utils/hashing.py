"""
Deterministic hashing utilities.

All hashing in the budget kernel must be deterministic and reproducible.
"""

import hashlib
import json
from typing import Any


def canonicalize_json(data: Any) -> str:
    """Sorted keys, no whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


def hash_payload(payload: dict) -> str:
    """Hex-encoded SHA-256 of the canonical JSON form of ``payload``."""
    return hashlib.sha256(canonicalize_json(payload).encode("utf-8")).hexdigest()


def hash_ledger_event(
    sequence: int,
    event_type: str,
    department: str,
    amount: int,
    actor_id: str,
    prev_hash: str | None,
) -> str:
    """
    Compute the chain hash of a ledger event.

    The previous event's hash is part of the input, so altering any stored
    event changes every later hash.
    """
    components = [
        str(sequence),
        event_type,
        department,
        str(amount),
        actor_id,
        prev_hash or "GENESIS",
    ]
    return hashlib.sha256("|".join(components).encode("utf-8")).hexdigest()
