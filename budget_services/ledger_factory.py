"""
Ledger factory -- builds ``BudgetLedger`` instances from configuration.

Responsibility:
    The only place where configuration, logging setup, persistence and the
    ledger service are wired together.  ``build_ledger`` creates a new pool;
    ``open_ledger`` resumes one already persisted in a database.
    ``open_database`` prepares a database named by URL.

Failure modes:
    - Everything ``BudgetLedger.create`` raises (``BackingFundsMismatchError``
      and friends).
    - ``JournalAlreadyInitializedError`` when building onto a database that
      already holds a pool; ``JournalNotInitializedError`` when opening an
      empty one.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from budget_config.schema import LedgerConfig
from budget_kernel.db.engine import create_tables, get_session, init_engine_from_url
from budget_kernel.domain.authority import SingleAdminAuthority
from budget_kernel.domain.clock import Clock
from budget_kernel.domain.payment import PaymentGateway
from budget_kernel.logging_config import configure_logging, get_logger
from budget_kernel.selectors.ledger_selector import LedgerSelector
from budget_kernel.services.budget_ledger import BudgetLedger
from budget_kernel.services.sql_ledger_journal import SqlLedgerJournal

logger = get_logger("services.ledger_factory")


def open_database(database_url: str) -> Session:
    """Initialize the engine for ``database_url``, create the journal tables and return a session."""
    init_engine_from_url(database_url)
    create_tables()
    return get_session()


def build_ledger(
    config: LedgerConfig,
    payment_gateway: PaymentGateway,
    session: Session | None = None,
    clock: Clock | None = None,
) -> BudgetLedger:
    """
    Create a new ledger as described by ``config``.

    When ``session`` is given the ledger journals every operation to it.
    Otherwise, if ``config.database_url`` is set, the engine is initialized
    from it, the journal tables are created and a fresh session is used.
    With neither, the ledger lives in memory only.
    """
    configure_logging(level=config.log_level_number)

    if session is None and config.database_url is not None:
        session = open_database(config.database_url)

    journal = SqlLedgerJournal(session) if session is not None else None
    ledger = BudgetLedger.create(
        actor_id=config.administrator,
        total_budget=config.total_budget,
        backing_funds=config.backing_funds,
        payment_gateway=payment_gateway,
        journal=journal,
        clock=clock,
    )
    logger.info(
        "ledger_built",
        extra={
            "config_id": config.config_id,
            "checksum": config.checksum,
            "persistent": journal is not None,
        },
    )
    return ledger


def open_ledger(
    session: Session,
    payment_gateway: PaymentGateway,
    clock: Clock | None = None,
    *,
    verify: bool = True,
) -> BudgetLedger:
    """
    Resume the ledger persisted in ``session``'s database.

    With ``verify`` (the default) the event hash chain is checked before
    the snapshot is trusted.
    """
    selector = LedgerSelector(session)
    state = selector.load_state()
    if verify:
        verified = selector.verify_chain()
        logger.info("journal_chain_verified", extra={"events": verified})

    return BudgetLedger.restore(
        state,
        payment_gateway,
        SingleAdminAuthority(selector.administrator()),
        journal=SqlLedgerJournal(session),
        clock=clock,
        last_sequence=selector.last_sequence(),
    )
