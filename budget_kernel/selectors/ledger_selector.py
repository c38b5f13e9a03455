"""
Module: budget_kernel.selectors.ledger_selector
Responsibility: Read-only access to a persisted ledger: the committed
    snapshot, the event history, hash-chain verification and replay.
Architecture position: Kernel > Selectors.  Accepts a Session from the
    caller and NEVER adds, flushes, commits or deletes.

Invariants enforced:
    - Replay determinism: applying the stored events to the genesis state
      must reproduce the stored snapshot.
    - Chain integrity: every stored hash must match its recomputed value.

Failure modes:
    - JournalNotInitializedError if the database holds no ledger.
    - JournalChainBrokenError on the first mismatching event.
"""

from datetime import timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from budget_kernel.domain.budget_rules import (
    apply_allocation,
    apply_release,
    apply_request,
)
from budget_kernel.domain.events import LedgerEvent, LedgerEventType
from budget_kernel.domain.ledger_state import LedgerState
from budget_kernel.exceptions import (
    JournalChainBrokenError,
    JournalNotInitializedError,
)
from budget_kernel.models.department_account import DepartmentAccountModel
from budget_kernel.models.ledger_event import LedgerEventRecord
from budget_kernel.models.ledger_pool import LedgerPoolModel
from budget_kernel.utils.hashing import hash_ledger_event

_REPLAY_RULES = {
    LedgerEventType.ALLOCATED: apply_allocation,
    LedgerEventType.REQUESTED: apply_request,
    LedgerEventType.RELEASED: apply_release,
}


class LedgerSelector:
    """Queries over the ledger journal tables; returns domain objects, never ORM rows."""

    def __init__(self, session: Session):
        self.session = session

    def is_initialized(self) -> bool:
        return self._pool_or_none() is not None

    def administrator(self) -> str:
        return self._pool().administrator

    def last_sequence(self) -> int:
        return self._pool().last_sequence

    def load_state(self) -> LedgerState:
        """The committed snapshot as a ``LedgerState``."""
        pool = self._pool()
        rows = self.session.execute(select(DepartmentAccountModel)).scalars().all()
        return LedgerState(
            initial_budget=pool.initial_budget,
            total_budget=pool.total_budget,
            custodied_funds=pool.custodied_funds,
            departments={row.department: row.to_dto() for row in rows},
        )

    def list_events(self, department: str | None = None) -> list[LedgerEvent]:
        """Committed events in sequence order, optionally for one department."""
        stmt = select(LedgerEventRecord).order_by(LedgerEventRecord.seq)
        if department is not None:
            stmt = stmt.where(LedgerEventRecord.department == department)
        return [self._to_event(row) for row in self.session.execute(stmt).scalars()]

    def verify_chain(self) -> int:
        """Recompute every hash; return the number of verified events."""
        prev_hash: str | None = None
        count = 0
        stmt = select(LedgerEventRecord).order_by(LedgerEventRecord.seq)
        for row in self.session.execute(stmt).scalars():
            expected = hash_ledger_event(
                row.seq, row.event_type, row.department, row.amount, row.actor_id, prev_hash
            )
            if row.prev_hash != prev_hash or row.hash != expected:
                raise JournalChainBrokenError(row.seq, expected, row.hash)
            prev_hash = row.hash
            count += 1
        return count

    def replay_state(self) -> LedgerState:
        """Rebuild the state from genesis by re-applying every stored event."""
        state = LedgerState.genesis(self._pool().initial_budget)
        for event in self.list_events():
            rule = _REPLAY_RULES.get(event.event_type)
            if rule is not None:
                state = rule(state, event.department, event.amount)
        return state

    def _pool_or_none(self) -> LedgerPoolModel | None:
        return self.session.execute(select(LedgerPoolModel)).scalar_one_or_none()

    def _pool(self) -> LedgerPoolModel:
        pool = self._pool_or_none()
        if pool is None:
            raise JournalNotInitializedError()
        return pool

    @staticmethod
    def _to_event(row: LedgerEventRecord) -> LedgerEvent:
        occurred_at = row.occurred_at
        # SQLite drops tzinfo; stored values are always UTC.
        if occurred_at.tzinfo is None:
            occurred_at = occurred_at.replace(tzinfo=timezone.utc)
        return LedgerEvent(
            sequence=row.seq,
            event_type=LedgerEventType(row.event_type),
            department=row.department,
            amount=row.amount,
            actor_id=row.actor_id,
            occurred_at=occurred_at,
        )
