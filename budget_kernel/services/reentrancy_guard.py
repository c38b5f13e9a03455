"""
ReentrancyGuard -- one non-reentrant critical section per ledger.

Responsibility:
    Serializes every mutating ledger operation across threads and rejects
    any attempt to enter a guarded operation from the thread that is
    already inside one (for example from a payment receipt hook).

Guarantees:
    - At most one guarded operation executes at a time per guard.
    - A nested entry on the owning thread raises ``ReentrantCallError``
      immediately instead of deadlocking.
    - The critical section is released on every exit path.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from budget_kernel.exceptions import ReentrantCallError
from budget_kernel.logging_config import get_logger

logger = get_logger("services.reentrancy_guard")


class ReentrancyGuard:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._owner: int | None = None
        self._active_operation: str | None = None

    @property
    def busy(self) -> bool:
        return self._owner is not None

    @property
    def active_operation(self) -> str | None:
        return self._active_operation

    @contextmanager
    def guarded(self, operation: str) -> Iterator[None]:
        # Only the owning thread can observe its own ident here.
        if self._owner == threading.get_ident():
            logger.warning(
                "reentrant_call_rejected",
                extra={
                    "rejected_operation": operation,
                    "active_operation": self._active_operation,
                },
            )
            raise ReentrantCallError(operation, self._active_operation)

        with self._lock:
            self._owner = threading.get_ident()
            self._active_operation = operation
            try:
                yield
            finally:
                self._owner = None
                self._active_operation = None
