"""
SQL journal persistence (SqlLedgerJournal + LedgerSelector).

Uses an in-memory SQLite database.  Verifies that:
- the stored snapshot always equals the ledger's committed state;
- failed operations leave no rows behind;
- the event hash chain verifies and detects tampering;
- replaying stored events rebuilds the stored snapshot;
- a ledger can be reopened from the database and carry on;
- a release whose commit failed after payment is journaled by the next
  operation, leaving a snapshot that can be reopened.
"""

import pytest
from sqlalchemy import func, select, update

from budget_kernel.domain.authority import SingleAdminAuthority
from budget_kernel.domain.events import LedgerEventType
from budget_kernel.exceptions import (
    ExceedsAllocatedBudgetError,
    JournalAlreadyInitializedError,
    JournalChainBrokenError,
    JournalNotInitializedError,
    TransferFailedError,
)
from budget_kernel.models import DepartmentAccountModel, LedgerEventRecord, LedgerPoolModel
from budget_kernel.selectors import LedgerSelector
from budget_kernel.services.budget_ledger import BudgetLedger
from budget_kernel.services.sql_ledger_journal import SqlLedgerJournal
from budget_services import open_ledger

ADMIN = "admin"


@pytest.fixture
def sql_ledger(session, gateway, deterministic_clock) -> BudgetLedger:
    return BudgetLedger.create(
        ADMIN,
        100,
        100,
        gateway,
        journal=SqlLedgerJournal(session),
        clock=deterministic_clock,
    )


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


class _FlakyCommitJournal(SqlLedgerJournal):
    """Fails the next ``failures`` commits, then behaves normally."""

    def __init__(self, session):
        super().__init__(session)
        self.failures = 0

    def commit(self):
        if self.failures:
            self.failures -= 1
            raise RuntimeError("database went away")
        super().commit()


class TestInitialize:
    def test_genesis_persisted(self, sql_ledger, session):
        selector = LedgerSelector(session)
        assert selector.is_initialized()
        assert selector.administrator() == ADMIN
        assert selector.last_sequence() == 0
        assert selector.load_state().to_dict() == sql_ledger.state().to_dict()

    def test_one_pool_per_database(self, sql_ledger, session, gateway):
        with pytest.raises(JournalAlreadyInitializedError) as exc_info:
            BudgetLedger.create(ADMIN, 50, 50, gateway, journal=SqlLedgerJournal(session))
        assert exc_info.value.initial_budget == 100

    def test_empty_database(self, session):
        selector = LedgerSelector(session)
        assert not selector.is_initialized()
        with pytest.raises(JournalNotInitializedError):
            selector.load_state()


class TestJournaledOperations:
    def test_snapshot_tracks_ledger(self, sql_ledger, session):
        sql_ledger.allocate(ADMIN, "IT", 10)
        sql_ledger.allocate(ADMIN, "HR", 20)
        sql_ledger.request("IT", 5)
        sql_ledger.release(ADMIN, "IT", 5)

        selector = LedgerSelector(session)
        assert selector.load_state().to_dict() == sql_ledger.state().to_dict()
        assert selector.last_sequence() == 4
        assert _count(session, DepartmentAccountModel) == 2

    def test_events_persisted_in_order(self, sql_ledger, session):
        sql_ledger.allocate(ADMIN, "IT", 10)
        sql_ledger.request("IT", 5)

        stored = LedgerSelector(session).list_events()
        assert stored == list(sql_ledger.events())
        assert [e.event_type for e in stored] == [LedgerEventType.ALLOCATED, LedgerEventType.REQUESTED]

    def test_events_filtered_by_department(self, sql_ledger, session):
        sql_ledger.allocate(ADMIN, "IT", 10)
        sql_ledger.allocate(ADMIN, "HR", 10)
        assert [e.department for e in LedgerSelector(session).list_events("HR")] == ["HR"]

    def test_rejected_operation_writes_nothing(self, sql_ledger, session):
        sql_ledger.allocate(ADMIN, "IT", 10)
        with pytest.raises(ExceedsAllocatedBudgetError):
            sql_ledger.request("IT", 11)
        assert _count(session, LedgerEventRecord) == 1

    def test_failed_transfer_rolls_back_journal(self, sql_ledger, session, gateway):
        sql_ledger.allocate(ADMIN, "IT", 10)
        sql_ledger.request("IT", 5)
        gateway.fail_deliveries_to("IT")

        with pytest.raises(TransferFailedError):
            sql_ledger.release(ADMIN, "IT", 5)

        selector = LedgerSelector(session)
        assert _count(session, LedgerEventRecord) == 2
        assert selector.last_sequence() == 2
        stored = selector.load_state()
        assert stored.account("IT").requested_funds == 5
        assert stored.custodied_funds == 100

        gateway.restore_deliveries_to("IT")
        sql_ledger.release(ADMIN, "IT", 5)
        assert selector.load_state().to_dict() == sql_ledger.state().to_dict()
        assert selector.verify_chain() == 3

    def test_administration_transfer_persisted(self, sql_ledger, session):
        sql_ledger.transfer_administration(ADMIN, "cfo")
        selector = LedgerSelector(session)
        assert selector.administrator() == "cfo"
        assert _count(session, DepartmentAccountModel) == 0


class TestHashChain:
    def test_chain_verifies(self, sql_ledger, session):
        sql_ledger.allocate(ADMIN, "IT", 10)
        sql_ledger.request("IT", 5)
        sql_ledger.release(ADMIN, "IT", 5)
        assert LedgerSelector(session).verify_chain() == 3

    def test_first_event_chains_from_genesis(self, sql_ledger, session):
        sql_ledger.allocate(ADMIN, "IT", 10)
        first = session.execute(select(LedgerEventRecord)).scalar_one()
        assert first.prev_hash is None
        assert len(first.hash) == 64

    def test_tampering_detected(self, sql_ledger, session):
        sql_ledger.allocate(ADMIN, "IT", 10)
        sql_ledger.allocate(ADMIN, "HR", 10)
        session.execute(
            update(LedgerEventRecord).where(LedgerEventRecord.seq == 1).values(amount=90)
        )
        session.commit()

        with pytest.raises(JournalChainBrokenError) as exc_info:
            LedgerSelector(session).verify_chain()
        assert exc_info.value.sequence == 1


class TestReplay:
    def test_replay_rebuilds_snapshot(self, sql_ledger, session):
        sql_ledger.allocate(ADMIN, "IT", 30)
        sql_ledger.allocate(ADMIN, "HR", 20)
        sql_ledger.request("IT", 12)
        sql_ledger.release(ADMIN, "IT", 7)
        sql_ledger.transfer_administration(ADMIN, "cfo")
        sql_ledger.request("HR", 4)

        selector = LedgerSelector(session)
        assert selector.replay_state().to_dict() == selector.load_state().to_dict()


class TestReopen:
    def test_restore_and_continue(self, sql_ledger, session, gateway, deterministic_clock):
        sql_ledger.allocate(ADMIN, "IT", 10)
        sql_ledger.request("IT", 5)

        selector = LedgerSelector(session)
        reopened = BudgetLedger.restore(
            selector.load_state(),
            gateway,
            SingleAdminAuthority(selector.administrator()),
            journal=SqlLedgerJournal(session),
            clock=deterministic_clock,
            last_sequence=selector.last_sequence(),
        )
        reopened.release(ADMIN, "IT", 5)

        assert reopened.events()[0].sequence == 3
        assert selector.verify_chain() == 3
        pool = session.execute(select(LedgerPoolModel)).scalar_one()
        assert pool.custodied_funds == 95


class TestCommitFailureAfterTransfer:
    @pytest.fixture
    def journal(self, session) -> _FlakyCommitJournal:
        return _FlakyCommitJournal(session)

    @pytest.fixture
    def paid_unjournaled(self, journal, gateway, deterministic_clock) -> BudgetLedger:
        """IT was paid 5 but the release never reached the database."""
        ledger = BudgetLedger.create(
            ADMIN, 100, 100, gateway, journal=journal, clock=deterministic_clock
        )
        ledger.allocate(ADMIN, "IT", 10)
        ledger.request("IT", 5)
        journal.failures = 1
        with pytest.raises(RuntimeError):
            ledger.release(ADMIN, "IT", 5)
        return ledger

    def test_release_kept_in_memory(self, paid_unjournaled, gateway):
        assert gateway.balance_of("IT") == 5
        assert paid_unjournaled.spent_funds("IT") == 5
        assert paid_unjournaled.requested_funds("IT") == 0
        assert paid_unjournaled.pool_balance() == 95
        assert paid_unjournaled.last_sequence == 3
        assert paid_unjournaled.events()[-1].event_type is LedgerEventType.RELEASED

    def test_database_holds_last_committed_state(self, paid_unjournaled, session):
        selector = LedgerSelector(session)
        assert selector.last_sequence() == 2
        stored = selector.load_state()
        assert stored.account("IT").requested_funds == 5
        assert stored.custodied_funds == 100

    def test_next_operation_journals_release_first(
        self, paid_unjournaled, session, gateway, deterministic_clock
    ):
        paid_unjournaled.allocate(ADMIN, "HR", 1)

        selector = LedgerSelector(session)
        assert selector.load_state().to_dict() == paid_unjournaled.state().to_dict()
        assert [e.event_type for e in selector.list_events()] == [
            LedgerEventType.ALLOCATED,
            LedgerEventType.REQUESTED,
            LedgerEventType.RELEASED,
            LedgerEventType.ALLOCATED,
        ]
        assert selector.verify_chain() == 4
        assert selector.replay_state().to_dict() == selector.load_state().to_dict()

        reopened = open_ledger(session, gateway, clock=deterministic_clock)
        assert reopened.spent_funds("IT") == 5
        assert reopened.pool_balance() == 95
        assert reopened.last_sequence == 4

    def test_failed_resync_blocks_operation(self, paid_unjournaled, journal, session):
        journal.failures = 1
        with pytest.raises(RuntimeError):
            paid_unjournaled.allocate(ADMIN, "HR", 1)
        assert not paid_unjournaled.department_exists("HR")
        assert LedgerSelector(session).last_sequence() == 2

        paid_unjournaled.allocate(ADMIN, "HR", 1)
        selector = LedgerSelector(session)
        assert selector.load_state().to_dict() == paid_unjournaled.state().to_dict()
        assert selector.last_sequence() == 4

    def test_commit_failure_logged_critical(self, journal, gateway, deterministic_clock, captured_logs):
        ledger = BudgetLedger.create(
            ADMIN, 100, 100, gateway, journal=journal, clock=deterministic_clock
        )
        ledger.allocate(ADMIN, "IT", 10)
        ledger.request("IT", 5)
        journal.failures = 1
        with pytest.raises(RuntimeError):
            ledger.release(ADMIN, "IT", 5)
        ledger.request("IT", 1)

        records = {r["message"]: r for r in captured_logs()}
        assert records["journal_commit_failed_after_transfer"]["level"] == "CRITICAL"
        assert records["journal_resynced"]["level"] == "WARNING"
