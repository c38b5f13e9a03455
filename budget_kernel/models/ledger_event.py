"""
Module: budget_kernel.models.ledger_event
Responsibility: Append-only persistence of committed ledger events with a
    tamper-evident hash chain.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - seq is unique and strictly increasing (one row per committed event).
    - hash = H(seq | event_type | department | amount | actor_id | prev_hash);
      prev_hash is None only for the first event.  Verified by
      ``LedgerSelector.verify_chain``.
"""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import Base


class LedgerEventRecord(Base):
    """One committed ``LedgerEvent``.  Rows are never updated or deleted."""

    __tablename__ = "ledger_events"

    __table_args__ = (
        Index("idx_ledger_event_department", "department"),
        Index("idx_ledger_event_type", "event_type"),
        CheckConstraint("amount >= 0", name="ck_ledger_event_amount_non_negative"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    department: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)
    actor_id: Mapped[str] = mapped_column(String(255), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<LedgerEventRecord #{self.seq} {self.event_type} {self.department} {self.amount}>"
