"""
Ledger Invariants Contract.

These invariants are structural law for every ``LedgerState`` the ledger
commits.  ``BudgetLedger`` verifies them after each transition, before the
new state becomes visible; a failure is a kernel defect and surfaces as
``InvariantViolationError``.
"""

from enum import Enum, unique

from budget_kernel.domain.ledger_state import LedgerState
from budget_kernel.exceptions import InvariantViolationError


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants enforced by the ledger."""

    POOL_NON_NEGATIVE = "pool_non_negative"
    """``total_budget`` never drops below zero."""

    SPENT_WITHIN_ALLOCATION = "spent_within_allocation"
    """A department never receives more than it was allocated."""

    REQUESTS_WITHIN_UNSPENT = "requests_within_unspent"
    """Outstanding requests never exceed ``allocated_budget - spent_funds``."""

    MONOTONIC_COUNTERS = "monotonic_counters"
    """``allocated_budget`` and ``spent_funds`` never decrease, and no
    department record ever disappears.  Checked across a transition."""

    CONSERVATION = "conservation"
    """``sum(allocated_budget) + total_budget == initial_budget``."""

    CUSTODY = "custody"
    """``custodied_funds == initial_budget - sum(spent_funds)``."""


ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)


def check_invariants(
    state: LedgerState, previous: LedgerState | None = None
) -> list[str]:
    """Return a human-readable description of every violated invariant.

    ``previous`` enables the transition check (``MONOTONIC_COUNTERS``).
    """
    violations: list[str] = []

    if state.total_budget < 0:
        violations.append(
            f"{LedgerInvariant.POOL_NON_NEGATIVE.value}: total_budget={state.total_budget}"
        )

    for name, account in state.departments.items():
        if min(account.allocated_budget, account.requested_funds, account.spent_funds) < 0:
            violations.append(f"negative counter for {name}: {account.to_dict()}")
        if account.spent_funds > account.allocated_budget:
            violations.append(
                f"{LedgerInvariant.SPENT_WITHIN_ALLOCATION.value}: {name} "
                f"spent={account.spent_funds} allocated={account.allocated_budget}"
            )
        if account.requested_funds > account.remaining_unspent_allocation:
            violations.append(
                f"{LedgerInvariant.REQUESTS_WITHIN_UNSPENT.value}: {name} "
                f"requested={account.requested_funds} "
                f"unspent={account.remaining_unspent_allocation}"
            )

    if state.total_allocated + state.total_budget != state.initial_budget:
        violations.append(
            f"{LedgerInvariant.CONSERVATION.value}: allocated={state.total_allocated} "
            f"+ pool={state.total_budget} != initial={state.initial_budget}"
        )

    if state.custodied_funds != state.initial_budget - state.total_spent:
        violations.append(
            f"{LedgerInvariant.CUSTODY.value}: custodied={state.custodied_funds} "
            f"initial={state.initial_budget} spent={state.total_spent}"
        )

    if previous is not None:
        for name, before in previous.departments.items():
            after = state.account(name)
            if after is None:
                violations.append(
                    f"{LedgerInvariant.MONOTONIC_COUNTERS.value}: {name} record removed"
                )
                continue
            if after.allocated_budget < before.allocated_budget:
                violations.append(
                    f"{LedgerInvariant.MONOTONIC_COUNTERS.value}: {name} "
                    f"allocated {before.allocated_budget} -> {after.allocated_budget}"
                )
            if after.spent_funds < before.spent_funds:
                violations.append(
                    f"{LedgerInvariant.MONOTONIC_COUNTERS.value}: {name} "
                    f"spent {before.spent_funds} -> {after.spent_funds}"
                )
        if state.initial_budget != previous.initial_budget:
            violations.append(
                f"{LedgerInvariant.CONSERVATION.value}: initial_budget changed "
                f"{previous.initial_budget} -> {state.initial_budget}"
            )

    return violations


def assert_invariants(
    state: LedgerState, previous: LedgerState | None = None
) -> None:
    """Raise ``InvariantViolationError`` if any invariant does not hold."""
    violations = check_invariants(state, previous)
    if violations:
        raise InvariantViolationError(violations)


# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "budget_config",
    "budget_services",
)
