"""
Budget rules -- pure state transitions of the ledger.

Responsibility:
    Validates one operation against a ``LedgerState`` and returns the next
    state.  The functions never mutate their input and never perform I/O;
    authorization, locking, payment and event emission belong to
    ``BudgetLedger``.

Architecture position:
    Kernel > Domain -- functional core.

Failure modes:
    - InvalidAmountError / AmountMustBeMoreThanZeroError on bad amounts.
    - ExceededAmountError when an allocation exceeds the pool.
    - DepartmentDoesNotExistError for requests from an identity that was
      never allocated budget.
    - ExceedsAllocatedBudgetError when a request exceeds unspent allocation.
    - ExceedsRequestedFundsError when a release exceeds requested funds.
"""

from dataclasses import replace

from budget_kernel.domain.ledger_state import DepartmentAccount, LedgerState
from budget_kernel.domain.values import Amount, Identity, validate_amount
from budget_kernel.exceptions import (
    DepartmentDoesNotExistError,
    ExceededAmountError,
    ExceedsAllocatedBudgetError,
    ExceedsRequestedFundsError,
)


def apply_allocation(
    state: LedgerState, department: Identity, amount: Amount
) -> LedgerState:
    """Move ``amount`` from the pool to ``department``, creating its record if needed.

    The bound is the remaining pool; there is no per-department cap.
    """
    validate_amount(amount)
    if amount > state.total_budget:
        raise ExceededAmountError(department, amount, state.total_budget)

    current = state.account(department) or DepartmentAccount()
    updated = replace(current, allocated_budget=current.allocated_budget + amount)
    return state.with_account(
        department, updated, total_budget=state.total_budget - amount
    )


def apply_request(
    state: LedgerState, department: Identity, amount: Amount
) -> LedgerState:
    """Add ``amount`` to the department's outstanding requests.

    Requests are cumulative: the sum of outstanding requests may never
    exceed ``allocated_budget - spent_funds``.
    """
    validate_amount(amount)
    current = state.account(department)
    if current is None:
        raise DepartmentDoesNotExistError(department)
    if amount > current.requestable:
        raise ExceedsAllocatedBudgetError(department, amount, current.requestable)

    updated = replace(current, requested_funds=current.requested_funds + amount)
    return state.with_account(department, updated)


def apply_release(
    state: LedgerState, department: Identity, amount: Amount
) -> LedgerState:
    """Convert ``amount`` of requested funds into spent funds.

    The returned state already reflects the payout (custodied funds are
    reduced); the caller performs the transfer afterwards.
    """
    validate_amount(amount)
    current = state.account(department)
    if current is None:
        # Unknown departments have nothing requested.
        raise ExceedsRequestedFundsError(department, amount, 0)
    if amount > current.requested_funds:
        raise ExceedsRequestedFundsError(department, amount, current.requested_funds)

    updated = replace(
        current,
        requested_funds=current.requested_funds - amount,
        spent_funds=current.spent_funds + amount,
    )
    return state.with_account(
        department, updated, custodied_funds=state.custodied_funds - amount
    )
