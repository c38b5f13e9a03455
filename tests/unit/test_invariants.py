"""Tests for the ledger invariants contract (budget_kernel/invariants.py)."""

import pytest

from budget_kernel.domain.budget_rules import apply_allocation, apply_release, apply_request
from budget_kernel.domain.ledger_state import DepartmentAccount, LedgerState
from budget_kernel.exceptions import InvariantViolationError
from budget_kernel.invariants import (
    ALL_LEDGER_INVARIANTS,
    LedgerInvariant,
    assert_invariants,
    check_invariants,
)


def _state(total_budget=90, custodied=100, **departments) -> LedgerState:
    return LedgerState(
        initial_budget=100,
        total_budget=total_budget,
        custodied_funds=custodied,
        departments=departments,
    )


class TestInvariantsContract:
    def test_all_invariants_declared(self):
        assert ALL_LEDGER_INVARIANTS == frozenset(LedgerInvariant)
        assert len(ALL_LEDGER_INVARIANTS) == 6

    def test_genesis_is_valid(self):
        assert check_invariants(LedgerState.genesis(100)) == []

    def test_valid_lifecycle_passes(self):
        state = LedgerState.genesis(100)
        for step in (
            lambda s: apply_allocation(s, "IT", 10),
            lambda s: apply_request(s, "IT", 5),
            lambda s: apply_release(s, "IT", 5),
        ):
            nxt = step(state)
            assert_invariants(nxt, state)
            state = nxt


class TestViolations:
    def test_conservation(self):
        violations = check_invariants(_state(IT=DepartmentAccount(allocated_budget=5)))
        assert any(v.startswith(LedgerInvariant.CONSERVATION.value) for v in violations)

    def test_spent_within_allocation(self):
        state = _state(
            custodied=88,
            IT=DepartmentAccount(allocated_budget=10, spent_funds=12),
        )
        violations = check_invariants(state)
        assert any(LedgerInvariant.SPENT_WITHIN_ALLOCATION.value in v for v in violations)

    def test_requests_within_unspent(self):
        state = _state(
            custodied=92,
            IT=DepartmentAccount(allocated_budget=10, requested_funds=3, spent_funds=8),
        )
        violations = check_invariants(state)
        assert any(LedgerInvariant.REQUESTS_WITHIN_UNSPENT.value in v for v in violations)

    def test_custody(self):
        state = _state(custodied=100, IT=DepartmentAccount(allocated_budget=10, spent_funds=5))
        violations = check_invariants(state)
        assert any(v.startswith(LedgerInvariant.CUSTODY.value) for v in violations)

    def test_pool_non_negative(self):
        state = LedgerState(initial_budget=0, total_budget=-1, custodied_funds=0)
        violations = check_invariants(state)
        assert any(v.startswith(LedgerInvariant.POOL_NON_NEGATIVE.value) for v in violations)

    def test_monotonic_counters_across_transition(self):
        before = _state(total_budget=90, IT=DepartmentAccount(allocated_budget=10))
        after = _state(total_budget=95, IT=DepartmentAccount(allocated_budget=5))
        assert check_invariants(after) == []
        violations = check_invariants(after, before)
        assert any(LedgerInvariant.MONOTONIC_COUNTERS.value in v for v in violations)

    def test_removed_record_detected(self):
        before = _state(total_budget=90, IT=DepartmentAccount(allocated_budget=10))
        after = _state(total_budget=90, HR=DepartmentAccount(allocated_budget=10))
        assert any("record removed" in v for v in check_invariants(after, before))

    def test_assert_raises_with_every_violation(self):
        state = _state(custodied=50, IT=DepartmentAccount(allocated_budget=5))
        with pytest.raises(InvariantViolationError) as exc_info:
            assert_invariants(state)
        assert exc_info.value.code == "INVARIANT_VIOLATION"
        assert len(exc_info.value.violations) == 2
