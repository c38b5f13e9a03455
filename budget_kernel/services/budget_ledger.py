"""
BudgetLedger -- the department budget ledger service.

Responsibility:
    Owns the single source of truth of one budget pool (a ``LedgerState``)
    and exposes the three mutating operations of the budget lifecycle:

        allocate  (administrator)  pool       -> department allocation
        request   (department)     allocation -> outstanding request
        release   (administrator)  request    -> spent, paid out externally

    plus read-only queries and event subscription.

Architecture position:
    Kernel > Services -- imperative shell around the pure rules in
    ``budget_kernel.domain.budget_rules``.  Collaborators are injected:
    ``Authority`` (who is administrator), ``PaymentGateway`` (moves funds),
    ``LedgerJournal`` (optional durable record), ``Clock`` (event stamps).

Invariants enforced:
    - All ledger invariants (``budget_kernel.invariants``) are verified on
      every candidate state before it becomes visible.
    - Atomicity: every failure leaves state, journal and event log exactly
      as they were before the call.
    - Serialization: every mutating call runs inside one non-reentrant
      critical section (``ReentrancyGuard``).
    - Release ordering: ledger counters are updated *before* the payment
      gateway is invoked; a reentrant call from the payment step is
      rejected with ``ReentrantCallError``.

Failure modes:
    - Typed ``BudgetKernelError`` subclasses for every rejection (see
      ``budget_kernel.exceptions``), logged at WARNING with their code.
    - ``TransferFailedError`` when the gateway fails or raises; the release
      is rolled back first.
    - If the journal commit fails after funds were delivered, the release
      stays in memory and the operation is re-staged to the journal ahead
      of the next mutating call.

Audit relevance:
    Every committed operation produces one sequenced ``LedgerEvent``,
    is staged to the journal before any external effect, and is logged
    with actor, department and amount.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager

from budget_kernel.domain.authority import Authority, SingleAdminAuthority
from budget_kernel.domain.budget_rules import (
    apply_allocation,
    apply_release,
    apply_request,
)
from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.events import (
    LedgerEvent,
    LedgerEventListener,
    LedgerEventType,
)
from budget_kernel.domain.ledger_state import DepartmentAccount, LedgerState
from budget_kernel.domain.payment import PaymentGateway
from budget_kernel.domain.values import (
    Amount,
    Identity,
    validate_balance,
    validate_identity,
)
from budget_kernel.exceptions import (
    BackingFundsMismatchError,
    BudgetKernelError,
    TransferFailedError,
    UnauthorizedError,
)
from budget_kernel.invariants import assert_invariants
from budget_kernel.logging_config import LogContext, get_logger
from budget_kernel.services.ledger_journal import LedgerJournal, NullLedgerJournal
from budget_kernel.services.reentrancy_guard import ReentrancyGuard

logger = get_logger("services.budget_ledger")


class BudgetLedger:
    """
    Single-pool department budget ledger.

    Contract:
        Construct with ``BudgetLedger.create`` for a new pool or
        ``BudgetLedger.restore`` to resume from a persisted state.
        Mutating methods take the calling identity as ``actor_id``.

    Guarantees:
        - Queries never block and never raise for unknown departments;
          they read the immutable state snapshot committed last.
        - Events are appended and listeners notified only after the
          operation (and its journal unit of work) has committed.
        - ``events()`` is the in-process audit trail and keeps every event
          for the life of the instance.  Long-lived deployments should read
          history from the SQL journal (``LedgerSelector.list_events``).

    Non-goals:
        - No reclamation: released funds permanently consume allocation.
        - No retries: every error is surfaced to the caller.
    """

    def __init__(
        self,
        state: LedgerState,
        payment_gateway: PaymentGateway,
        authority: Authority,
        journal: LedgerJournal | None = None,
        clock: Clock | None = None,
        last_sequence: int = 0,
    ):
        assert_invariants(state)
        self._state = state
        self._payment_gateway = payment_gateway
        self._authority = authority
        self._journal = journal or NullLedgerJournal()
        self._clock = clock or SystemClock()
        self._sequence = last_sequence
        self._events: list[LedgerEvent] = []
        self._unjournaled: list[tuple[LedgerEvent, LedgerState, Identity]] = []
        self._listeners: list[LedgerEventListener] = []
        self._guard = ReentrancyGuard()

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def create(
        cls,
        actor_id: Identity,
        total_budget: Amount,
        backing_funds: Amount,
        payment_gateway: PaymentGateway,
        *,
        authority: Authority | None = None,
        journal: LedgerJournal | None = None,
        clock: Clock | None = None,
    ) -> BudgetLedger:
        """
        Create a new, fully funded ledger.

        Preconditions:
            - ``backing_funds == total_budget`` (the pool is fully funded).
            - Both are non-negative ints.
        Postconditions:
            - ``actor_id`` is the administrator unless ``authority`` is given.
            - The journal (if any) holds the genesis snapshot.

        Raises:
            BackingFundsMismatchError: if the pool is not fully funded.
            InvalidAmountError / InvalidIdentityError: on malformed input.
        """
        validate_identity(actor_id)
        validate_balance(total_budget)
        validate_balance(backing_funds)
        if backing_funds != total_budget:
            raise BackingFundsMismatchError(total_budget, backing_funds)

        ledger = cls(
            state=LedgerState.genesis(total_budget),
            payment_gateway=payment_gateway,
            authority=authority or SingleAdminAuthority(actor_id),
            journal=journal,
            clock=clock,
        )
        ledger._journal.initialize(ledger._state, ledger.administrator())
        logger.info(
            "ledger_created",
            extra={
                "total_budget": total_budget,
                "administrator": ledger.administrator(),
            },
        )
        return ledger

    @classmethod
    def restore(
        cls,
        state: LedgerState,
        payment_gateway: PaymentGateway,
        authority: Authority,
        *,
        journal: LedgerJournal | None = None,
        clock: Clock | None = None,
        last_sequence: int = 0,
    ) -> BudgetLedger:
        """Resume a ledger from a previously persisted state."""
        ledger = cls(
            state=state,
            payment_gateway=payment_gateway,
            authority=authority,
            journal=journal,
            clock=clock,
            last_sequence=last_sequence,
        )
        logger.info(
            "ledger_restored",
            extra={
                "total_budget": state.total_budget,
                "departments": len(state.departments),
                "last_sequence": last_sequence,
            },
        )
        return ledger

    # =========================================================================
    # Mutating operations
    # =========================================================================

    def allocate(self, actor_id: Identity, department: Identity, amount: Amount) -> None:
        """Allocate ``amount`` from the pool to ``department`` (administrator only)."""
        with self._operation("allocate", actor_id, department):
            self._require_administrator(actor_id, "allocate")
            validate_identity(department)
            previous = self._state
            next_state = apply_allocation(previous, department, amount)
            event = self._stage(LedgerEventType.ALLOCATED, department, amount, actor_id, previous, next_state)
            self._commit(event, revert_to=previous)
            logger.info(
                "budget_allocated",
                extra={
                    "amount": amount,
                    "total_budget": next_state.total_budget,
                    "allocated_budget": next_state.departments[department].allocated_budget,
                },
            )

    def request(self, actor_id: Identity, amount: Amount) -> None:
        """Request ``amount`` against the caller's own unspent allocation."""
        with self._operation("request", actor_id, actor_id):
            previous = self._state
            next_state = apply_request(previous, actor_id, amount)
            event = self._stage(LedgerEventType.REQUESTED, actor_id, amount, actor_id, previous, next_state)
            self._commit(event, revert_to=previous)
            logger.info(
                "funds_requested",
                extra={
                    "amount": amount,
                    "requested_funds": next_state.departments[actor_id].requested_funds,
                },
            )

    def release(self, actor_id: Identity, department: Identity, amount: Amount) -> None:
        """
        Release ``amount`` of requested funds to ``department`` (administrator only).

        The ledger is updated first, then the payment gateway is invoked.
        If the transfer fails the ledger and journal revert to their
        pre-call values and ``TransferFailedError`` is raised.
        """
        with self._operation("release", actor_id, department):
            self._require_administrator(actor_id, "release")
            previous = self._state
            next_state = apply_release(previous, department, amount)
            event = self._stage(LedgerEventType.RELEASED, department, amount, actor_id, previous, next_state)

            try:
                result = self._payment_gateway.pay(department, amount)
            except Exception as exc:
                self._revert(previous)
                logger.error(
                    "release_transfer_failed",
                    extra={"amount": amount},
                    exc_info=True,
                )
                raise TransferFailedError(
                    department, amount, f"{type(exc).__name__}: {exc}"
                ) from exc

            if not result.delivered:
                self._revert(previous)
                logger.error(
                    "release_transfer_failed",
                    extra={"amount": amount, "reason": result.reason},
                )
                raise TransferFailedError(department, amount, result.reason)

            try:
                self._journal.commit()
            except Exception:
                # Funds already left custody: keep the release in memory and
                # journal it again before the next operation.
                self._unjournaled.append((event, next_state, self.administrator()))
                self._record(event)
                logger.critical(
                    "journal_commit_failed_after_transfer",
                    extra={"amount": amount, "sequence": event.sequence},
                    exc_info=True,
                )
                self._journal.rollback()
                raise
            self._record(event)
            logger.info(
                "funds_released",
                extra={
                    "amount": amount,
                    "spent_funds": next_state.departments[department].spent_funds,
                    "pool_balance": next_state.custodied_funds,
                },
            )

    def transfer_administration(
        self, actor_id: Identity, new_administrator: Identity
    ) -> None:
        """Hand the administrator role to ``new_administrator``."""
        with self._operation("transfer_administration", actor_id, None):
            self._require_administrator(actor_id, "transfer_administration")
            validate_identity(new_administrator)
            event = self._build_event(
                LedgerEventType.ADMINISTRATION_TRANSFERRED, new_administrator, 0, actor_id
            )
            try:
                self._journal.stage(event, self._state, new_administrator)
                self._authority.transfer_administration(actor_id, new_administrator)
            except Exception:
                self._journal.rollback()
                raise
            try:
                self._commit(event)
            except Exception:
                self._authority.transfer_administration(new_administrator, actor_id)
                raise

    # =========================================================================
    # Events
    # =========================================================================

    def subscribe(self, listener: LedgerEventListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def events(self) -> tuple[LedgerEvent, ...]:
        return tuple(self._events)

    # =========================================================================
    # Queries
    # =========================================================================

    def state(self) -> LedgerState:
        return self._state

    def administrator(self) -> Identity:
        return self._authority.administrator()

    def is_administrator(self, actor_id: Identity) -> bool:
        return self._authority.is_administrator(actor_id)

    def total_budget(self) -> Amount:
        """Funds not yet allocated to any department."""
        return self._state.total_budget

    def initial_budget(self) -> Amount:
        return self._state.initial_budget

    def pool_balance(self) -> Amount:
        """Funds still held in custody (backing funds minus everything released)."""
        return self._state.custodied_funds

    def department_exists(self, department: Identity) -> bool:
        return self._state.exists(department)

    def department_account(self, department: Identity) -> DepartmentAccount | None:
        return self._state.account(department)

    def departments(self) -> tuple[Identity, ...]:
        return tuple(sorted(self._state.departments))

    def allocated_budget(self, department: Identity) -> Amount:
        return self._account_or_empty(department).allocated_budget

    def requested_funds(self, department: Identity) -> Amount:
        return self._account_or_empty(department).requested_funds

    def spent_funds(self, department: Identity) -> Amount:
        return self._account_or_empty(department).spent_funds

    def remaining_unspent_allocation(self, department: Identity) -> Amount:
        return self._account_or_empty(department).remaining_unspent_allocation

    @property
    def last_sequence(self) -> int:
        return self._sequence

    # =========================================================================
    # Internals
    # =========================================================================

    @contextmanager
    def _operation(
        self, operation: str, actor_id: Identity, department: Identity | None
    ) -> Iterator[None]:
        with self._guard.guarded(operation):
            with LogContext.bind(
                actor_id=actor_id, department=department, operation=operation
            ):
                self._journal_pending()
                try:
                    yield
                except BudgetKernelError as exc:
                    logger.warning(
                        "ledger_operation_rejected",
                        extra={"code": exc.code, "reason": str(exc)},
                    )
                    raise

    def _require_administrator(self, actor_id: Identity, operation: str) -> None:
        if not self._authority.is_administrator(actor_id):
            raise UnauthorizedError(actor_id, operation)

    def _account_or_empty(self, department: Identity) -> DepartmentAccount:
        return self._state.account(department) or DepartmentAccount()

    def _build_event(
        self,
        event_type: LedgerEventType,
        department: Identity,
        amount: Amount,
        actor_id: Identity,
    ) -> LedgerEvent:
        return LedgerEvent(
            sequence=self._sequence + 1,
            event_type=event_type,
            department=department,
            amount=amount,
            actor_id=actor_id,
            occurred_at=self._clock.now(),
        )

    def _stage(
        self,
        event_type: LedgerEventType,
        department: Identity,
        amount: Amount,
        actor_id: Identity,
        previous: LedgerState,
        next_state: LedgerState,
    ) -> LedgerEvent:
        """Verify ``next_state``, make it current and stage it to the journal."""
        assert_invariants(next_state, previous)
        event = self._build_event(event_type, department, amount, actor_id)
        self._state = next_state
        try:
            self._journal.stage(event, next_state, self.administrator())
        except Exception:
            self._revert(previous)
            raise
        return event

    def _revert(self, previous: LedgerState) -> None:
        self._state = previous
        self._journal.rollback()
        logger.debug("ledger_state_reverted")

    def _commit(self, event: LedgerEvent, revert_to: LedgerState | None = None) -> None:
        try:
            self._journal.commit()
        except Exception:
            if revert_to is not None:
                self._revert(revert_to)
            else:
                self._journal.rollback()
            raise
        self._record(event)

    def _journal_pending(self) -> None:
        """Stage and commit operations whose journal commit failed after their transfer."""
        if not self._unjournaled:
            return
        try:
            for event, state, administrator in self._unjournaled:
                self._journal.stage(event, state, administrator)
            self._journal.commit()
        except Exception:
            self._journal.rollback()
            logger.error(
                "journal_resync_failed",
                extra={"pending": len(self._unjournaled)},
                exc_info=True,
            )
            raise
        logger.warning(
            "journal_resynced",
            extra={"sequences": [event.sequence for event, _, _ in self._unjournaled]},
        )
        self._unjournaled.clear()

    def _record(self, event: LedgerEvent) -> None:
        self._sequence = event.sequence
        self._events.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(
                    "ledger_listener_failed",
                    extra={"sequence": event.sequence, "event_type": event.event_type.value},
                )
