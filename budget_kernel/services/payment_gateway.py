"""
InMemoryPaymentGateway -- a simulated value-transfer capability.

Keeps the external balance of every recipient in memory.  Recipients may
register a receipt hook (untrusted code run on delivery) or be marked as
failing.  A delivery either credits the full amount or changes nothing.
"""

import threading
from collections.abc import Callable

from budget_kernel.domain.payment import TransferResult
from budget_kernel.domain.values import Amount, Identity
from budget_kernel.logging_config import get_logger

logger = get_logger("services.payment_gateway")

ReceiptHook = Callable[[Identity, Amount], None]


class InMemoryPaymentGateway:
    """
    Simulated payment rail.

    Contract:
        ``pay`` runs the recipient's receipt hook (if any) first.  If the
        hook raises, or the recipient is marked failing, the result is a
        failed ``TransferResult`` and no balance changes.
    """

    def __init__(self, balances: dict[Identity, Amount] | None = None):
        self._balances: dict[Identity, Amount] = dict(balances or {})
        self._hooks: dict[Identity, ReceiptHook] = {}
        self._failing: dict[Identity, str] = {}
        self._deliveries: list[tuple[Identity, Amount]] = []
        self._lock = threading.Lock()

    def register_receipt_hook(self, recipient: Identity, hook: ReceiptHook) -> None:
        self._hooks[recipient] = hook

    def fail_deliveries_to(
        self, recipient: Identity, reason: str = "recipient rejected delivery"
    ) -> None:
        self._failing[recipient] = reason

    def restore_deliveries_to(self, recipient: Identity) -> None:
        self._failing.pop(recipient, None)

    def balance_of(self, recipient: Identity) -> Amount:
        with self._lock:
            return self._balances.get(recipient, 0)

    @property
    def deliveries(self) -> list[tuple[Identity, Amount]]:
        with self._lock:
            return list(self._deliveries)

    def pay(self, recipient: Identity, amount: Amount) -> TransferResult:
        reason = self._failing.get(recipient)
        if reason is not None:
            logger.warning(
                "delivery_refused",
                extra={"recipient": recipient, "amount": amount, "reason": reason},
            )
            return TransferResult.failure(reason)

        hook = self._hooks.get(recipient)
        if hook is not None:
            try:
                hook(recipient, amount)
            except Exception as exc:
                logger.warning(
                    "receipt_hook_failed",
                    extra={"recipient": recipient, "amount": amount},
                    exc_info=True,
                )
                return TransferResult.failure(
                    f"receipt hook raised {type(exc).__name__}: {exc}"
                )

        with self._lock:
            self._balances[recipient] = self._balances.get(recipient, 0) + amount
            self._deliveries.append((recipient, amount))
        logger.debug("delivery_completed", extra={"recipient": recipient, "amount": amount})
        return TransferResult.success()
