"""
PaymentGateway -- the value-transfer capability used by ``release``.

Contract:
    ``pay(recipient, amount)`` attempts to deliver ``amount`` to
    ``recipient``.  It returns a ``TransferResult``; on failure no partial
    delivery has happened.  A gateway may also raise, which the ledger
    treats exactly like a failed result.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from budget_kernel.domain.values import Amount, Identity


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a delivery attempt."""

    delivered: bool
    reason: str = ""

    @classmethod
    def success(cls) -> "TransferResult":
        return cls(delivered=True)

    @classmethod
    def failure(cls, reason: str) -> "TransferResult":
        return cls(delivered=False, reason=reason)


@runtime_checkable
class PaymentGateway(Protocol):
    def pay(self, recipient: Identity, amount: Amount) -> TransferResult:
        ...
