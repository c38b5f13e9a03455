"""
Value validation for amounts and identities.

Amounts are plain ``int`` values in minor units (the smallest indivisible
unit of the pool's funds).  ``bool`` is an ``int`` subclass in Python and
is rejected explicitly, as are ``float`` and ``Decimal``: no rounding ever
happens inside the ledger.

Identities are opaque, non-empty strings naming an account.
"""

from budget_kernel.exceptions import (
    AmountMustBeMoreThanZeroError,
    InvalidAmountError,
    InvalidIdentityError,
)

Amount = int
Identity = str


def validate_amount(amount: object) -> Amount:
    """
    Return ``amount`` if it is a strictly positive int.

    Raises:
        InvalidAmountError: if ``amount`` is not an int (or is a bool).
        AmountMustBeMoreThanZeroError: if ``amount <= 0``.
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(amount)
    if amount <= 0:
        raise AmountMustBeMoreThanZeroError(amount)
    return amount


def validate_balance(amount: object) -> Amount:
    """Return ``amount`` if it is a non-negative int (pool sizes may be zero)."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(amount)
    if amount < 0:
        raise AmountMustBeMoreThanZeroError(amount)
    return amount


def validate_identity(identity: object) -> Identity:
    """Return ``identity`` unchanged; reject blank or non-str values."""
    if not isinstance(identity, str) or not identity.strip():
        raise InvalidIdentityError(identity)
    return identity
