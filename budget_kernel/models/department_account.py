"""
Module: budget_kernel.models.department_account
Responsibility: Snapshot row of one department's accounting record.
Architecture position: Kernel > Models.  May import from db/base.py and domain
    value objects.

Invariants enforced (CHECK constraints, mirroring the ledger invariants):
    - spent_funds <= allocated_budget
    - requested_funds <= allocated_budget - spent_funds
    - no negative counters
    - one row per department
"""

from sqlalchemy import CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TrackedBase
from budget_kernel.domain.ledger_state import DepartmentAccount


class DepartmentAccountModel(TrackedBase):
    """Persisted ``DepartmentAccount``; a row exists only after the first allocation."""

    __tablename__ = "ledger_department_accounts"

    __table_args__ = (
        UniqueConstraint("department", name="uq_department_account_department"),
        CheckConstraint(
            "allocated_budget >= 0 AND requested_funds >= 0 AND spent_funds >= 0",
            name="ck_department_non_negative",
        ),
        CheckConstraint("spent_funds <= allocated_budget", name="ck_department_spent_within_allocated"),
        CheckConstraint(
            "requested_funds <= allocated_budget - spent_funds",
            name="ck_department_requests_within_unspent",
        ),
    )

    department: Mapped[str] = mapped_column(String(255), nullable=False)
    allocated_budget: Mapped[int] = mapped_column(nullable=False, default=0)
    requested_funds: Mapped[int] = mapped_column(nullable=False, default=0)
    spent_funds: Mapped[int] = mapped_column(nullable=False, default=0)

    def to_dto(self) -> DepartmentAccount:
        return DepartmentAccount(
            allocated_budget=self.allocated_budget,
            requested_funds=self.requested_funds,
            spent_funds=self.spent_funds,
        )

    def apply(self, account: DepartmentAccount) -> None:
        self.allocated_budget = account.allocated_budget
        self.requested_funds = account.requested_funds
        self.spent_funds = account.spent_funds

    @classmethod
    def from_dto(cls, department: str, account: DepartmentAccount) -> "DepartmentAccountModel":
        return cls(
            department=department,
            allocated_budget=account.allocated_budget,
            requested_funds=account.requested_funds,
            spent_funds=account.spent_funds,
        )

    def __repr__(self) -> str:
        return (
            f"<DepartmentAccountModel {self.department} allocated={self.allocated_budget} "
            f"requested={self.requested_funds} spent={self.spent_funds}>"
        )
