"""Read-only queries over the persisted ledger journal."""

from budget_kernel.selectors.ledger_selector import LedgerSelector

__all__ = ["LedgerSelector"]
