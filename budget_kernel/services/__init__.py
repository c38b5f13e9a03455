"""Budget kernel services: the ledger and its collaborators."""

from budget_kernel.services.budget_ledger import BudgetLedger
from budget_kernel.services.ledger_journal import LedgerJournal, NullLedgerJournal
from budget_kernel.services.payment_gateway import InMemoryPaymentGateway
from budget_kernel.services.sql_ledger_journal import SqlLedgerJournal

__all__ = [
    "BudgetLedger",
    "InMemoryPaymentGateway",
    "LedgerJournal",
    "NullLedgerJournal",
    "SqlLedgerJournal",
]
