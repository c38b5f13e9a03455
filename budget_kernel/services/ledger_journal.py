"""
LedgerJournal -- unit-of-work contract between the ledger and storage.

The ledger stages every operation before any external effect, then either
commits (operation succeeded) or rolls back (operation failed).  Staged
writes must be invisible to other readers until ``commit``.
"""

from typing import Protocol, runtime_checkable

from budget_kernel.domain.events import LedgerEvent
from budget_kernel.domain.ledger_state import LedgerState
from budget_kernel.domain.values import Identity


@runtime_checkable
class LedgerJournal(Protocol):
    def initialize(self, state: LedgerState, administrator: Identity) -> None:
        """Persist the genesis state of a new ledger (commits)."""
        ...

    def stage(
        self, event: LedgerEvent, state: LedgerState, administrator: Identity
    ) -> None:
        """Stage ``event`` and the resulting ``state`` without committing."""
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


class NullLedgerJournal:
    """Journal that keeps nothing; the ledger's in-memory state is the record."""

    def initialize(self, state: LedgerState, administrator: Identity) -> None:
        pass

    def stage(
        self, event: LedgerEvent, state: LedgerState, administrator: Identity
    ) -> None:
        pass

    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        pass
