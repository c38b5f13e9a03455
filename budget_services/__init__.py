"""
budget_services -- Package init and public API.

Responsibility:
    Wiring that turns a ``LedgerConfig`` into a running ``BudgetLedger``
    with its collaborators (authority, payment gateway, journal, clock).

Architecture position:
    Services -- outermost layer.

    Dependency direction (enforced by tests/architecture/test_kernel_boundary.py):
        budget_services/ -> budget_config/  (allowed)
        budget_services/ -> budget_kernel/  (allowed)
        budget_kernel/   -> budget_services/ (FORBIDDEN)
"""

from budget_services.ledger_factory import build_ledger, open_database, open_ledger

__all__ = ["build_ledger", "open_database", "open_ledger"]
