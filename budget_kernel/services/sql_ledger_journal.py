"""
SqlLedgerJournal -- durable ledger journal on a SQLAlchemy session.

Responsibility:
    Implements the ``LedgerJournal`` unit of work: every staged operation
    appends one hash-chained ``LedgerEventRecord`` and brings the pool row
    and every department row up to date, flushed but not committed.  The
    ledger commits only once the operation (including any transfer) has
    succeeded, and rolls back otherwise.

Architecture position:
    Kernel > Services.  Owns the session's transaction boundary on behalf
    of the ledger; callers must not share the session with unrelated work.

Failure modes:
    - JournalAlreadyInitializedError if ``initialize`` finds an existing pool.
    - JournalNotInitializedError if ``stage`` runs before ``initialize``.
    - SQLAlchemy errors (constraint violations, connectivity) propagate;
      the ledger rolls its in-memory state back when they happen before
      the transfer.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from budget_kernel.domain.events import LedgerEvent
from budget_kernel.domain.ledger_state import LedgerState
from budget_kernel.domain.values import Identity
from budget_kernel.exceptions import (
    JournalAlreadyInitializedError,
    JournalNotInitializedError,
)
from budget_kernel.logging_config import get_logger
from budget_kernel.models.department_account import DepartmentAccountModel
from budget_kernel.models.ledger_event import LedgerEventRecord
from budget_kernel.models.ledger_pool import LedgerPoolModel
from budget_kernel.utils.hashing import hash_ledger_event

logger = get_logger("services.sql_ledger_journal")


class SqlLedgerJournal:
    def __init__(self, session: Session):
        self.session = session

    def initialize(self, state: LedgerState, administrator: Identity) -> None:
        existing = self.session.execute(select(LedgerPoolModel)).scalar_one_or_none()
        if existing is not None:
            raise JournalAlreadyInitializedError(existing.initial_budget)

        try:
            self.session.add(
                LedgerPoolModel(
                    initial_budget=state.initial_budget,
                    total_budget=state.total_budget,
                    custodied_funds=state.custodied_funds,
                    administrator=administrator,
                    last_sequence=0,
                )
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info("journal_initialized", extra={"initial_budget": state.initial_budget})

    def stage(
        self, event: LedgerEvent, state: LedgerState, administrator: Identity
    ) -> None:
        pool = self.session.execute(select(LedgerPoolModel)).scalar_one_or_none()
        if pool is None:
            raise JournalNotInitializedError()

        prev_hash = self.session.execute(
            select(LedgerEventRecord.hash)
            .order_by(LedgerEventRecord.seq.desc())
            .limit(1)
        ).scalar_one_or_none()

        self.session.add(
            LedgerEventRecord(
                seq=event.sequence,
                event_type=event.event_type.value,
                department=event.department,
                amount=event.amount,
                actor_id=event.actor_id,
                occurred_at=event.occurred_at,
                prev_hash=prev_hash,
                hash=hash_ledger_event(
                    event.sequence,
                    event.event_type.value,
                    event.department,
                    event.amount,
                    event.actor_id,
                    prev_hash,
                ),
            )
        )

        pool.total_budget = state.total_budget
        pool.custodied_funds = state.custodied_funds
        pool.administrator = administrator
        pool.last_sequence = event.sequence

        self._sync_departments(state)

        self.session.flush()
        logger.debug("journal_staged", extra={"sequence": event.sequence})

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def _sync_departments(self, state: LedgerState) -> None:
        """Bring every department row in line with ``state``."""
        rows = {
            row.department: row
            for row in self.session.execute(select(DepartmentAccountModel)).scalars()
        }
        for department, account in state.departments.items():
            row = rows.get(department)
            if row is None:
                self.session.add(DepartmentAccountModel.from_dto(department, account))
            else:
                row.apply(account)
