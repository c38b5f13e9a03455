"""Tests for the ledger's injected collaborators: authority, clock, gateway, guard."""

import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from budget_kernel.domain.authority import Authority, SingleAdminAuthority
from budget_kernel.domain.clock import DeterministicClock, SystemClock
from budget_kernel.domain.payment import PaymentGateway
from budget_kernel.domain.values import validate_amount, validate_balance, validate_identity
from budget_kernel.exceptions import (
    AmountMustBeMoreThanZeroError,
    InvalidAmountError,
    InvalidIdentityError,
    ReentrantCallError,
    UnauthorizedError,
)
from budget_kernel.services.payment_gateway import InMemoryPaymentGateway
from budget_kernel.services.reentrancy_guard import ReentrancyGuard


class TestValues:
    def test_amounts(self):
        assert validate_amount(1) == 1
        assert validate_balance(0) == 0
        with pytest.raises(AmountMustBeMoreThanZeroError):
            validate_amount(0)
        with pytest.raises(AmountMustBeMoreThanZeroError):
            validate_balance(-1)
        with pytest.raises(InvalidAmountError) as exc_info:
            validate_amount(False)
        assert exc_info.value.amount_type == "bool"

    @pytest.mark.parametrize("identity", ["", "   ", None, 42])
    def test_bad_identities(self, identity):
        with pytest.raises(InvalidIdentityError):
            validate_identity(identity)


class TestSingleAdminAuthority:
    def test_protocol(self):
        assert isinstance(SingleAdminAuthority("admin"), Authority)

    def test_transfer(self):
        authority = SingleAdminAuthority("admin")
        authority.transfer_administration("admin", "cfo")
        assert authority.administrator() == "cfo"
        assert not authority.is_administrator("admin")

    def test_transfer_requires_current_admin(self):
        authority = SingleAdminAuthority("admin")
        with pytest.raises(UnauthorizedError):
            authority.transfer_administration("mallory", "mallory")
        assert authority.administrator() == "admin"

    def test_blank_successor_rejected(self):
        with pytest.raises(InvalidIdentityError):
            SingleAdminAuthority("admin").transfer_administration("admin", "")


class TestClocks:
    def test_deterministic_clock(self):
        clock = DeterministicClock(datetime(2025, 3, 1, tzinfo=timezone.utc))
        start = clock.now()
        assert clock.now() == start
        clock.advance(30)
        assert clock.now() - start == timedelta(seconds=30)
        assert clock.tick() - start == timedelta(seconds=31)

    def test_system_clock_is_utc(self):
        assert SystemClock().now().tzinfo is not None


class TestInMemoryPaymentGateway:
    def test_protocol(self):
        assert isinstance(InMemoryPaymentGateway(), PaymentGateway)

    def test_delivery_credits_balance(self):
        gateway = InMemoryPaymentGateway({"IT": 3})
        assert gateway.pay("IT", 2).delivered
        assert gateway.balance_of("IT") == 5

    def test_failing_recipient(self):
        gateway = InMemoryPaymentGateway()
        gateway.fail_deliveries_to("IT", "closed")
        result = gateway.pay("IT", 2)
        assert not result.delivered
        assert result.reason == "closed"
        assert gateway.balance_of("IT") == 0

    def test_raising_hook_fails_delivery(self):
        gateway = InMemoryPaymentGateway()

        def _hook(recipient, amount):
            raise ValueError("nope")

        gateway.register_receipt_hook("IT", _hook)
        result = gateway.pay("IT", 2)
        assert not result.delivered
        assert "ValueError" in result.reason
        assert gateway.deliveries == []


class TestReentrancyGuard:
    def test_nested_entry_rejected(self):
        guard = ReentrancyGuard()
        with guard.guarded("release"):
            assert guard.busy
            assert guard.active_operation == "release"
            with pytest.raises(ReentrantCallError) as exc_info:
                with guard.guarded("allocate"):
                    pass
        assert exc_info.value.active_operation == "release"
        assert not guard.busy

    def test_released_on_exception(self):
        guard = ReentrancyGuard()
        with pytest.raises(RuntimeError):
            with guard.guarded("allocate"):
                raise RuntimeError("boom")
        with guard.guarded("allocate"):
            pass

    def test_other_threads_wait_instead_of_failing(self):
        guard = ReentrancyGuard()
        results = []

        def _other():
            with guard.guarded("request"):
                results.append("entered")

        with guard.guarded("release"):
            worker = threading.Thread(target=_other)
            worker.start()
            time.sleep(0.05)
            assert results == []
        worker.join(timeout=5)
        assert results == ["entered"]
