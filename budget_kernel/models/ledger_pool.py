"""
Module: budget_kernel.models.ledger_pool
Responsibility: Snapshot row of the pool counters (one row per database).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Pool counters are never negative (CHECK constraints).
    - total_budget never exceeds initial_budget.
"""

from sqlalchemy import CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TrackedBase


class LedgerPoolModel(TrackedBase):
    """Pool snapshot: the committed ``LedgerState`` counters plus the administrator."""

    __tablename__ = "ledger_pool"

    __table_args__ = (
        CheckConstraint("total_budget >= 0", name="ck_pool_total_non_negative"),
        CheckConstraint("custodied_funds >= 0", name="ck_pool_custody_non_negative"),
        CheckConstraint("total_budget <= initial_budget", name="ck_pool_total_within_initial"),
    )

    initial_budget: Mapped[int] = mapped_column(nullable=False)
    total_budget: Mapped[int] = mapped_column(nullable=False)
    custodied_funds: Mapped[int] = mapped_column(nullable=False)
    administrator: Mapped[str] = mapped_column(String(255), nullable=False)
    last_sequence: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<LedgerPoolModel pool={self.total_budget}/{self.initial_budget} "
            f"custodied={self.custodied_funds} seq={self.last_sequence}>"
        )
