"""
ORM models for the ledger journal.

Importing this package registers every table on ``Base.metadata``.
"""

from budget_kernel.models.department_account import DepartmentAccountModel
from budget_kernel.models.ledger_event import LedgerEventRecord
from budget_kernel.models.ledger_pool import LedgerPoolModel

__all__ = [
    "DepartmentAccountModel",
    "LedgerEventRecord",
    "LedgerPoolModel",
]
