"""
Authority -- who may call administrator-only operations.

The ledger consults an injected ``Authority`` rather than inheriting an
ownership capability.  ``SingleAdminAuthority`` is the default: one
administrator, handed off explicitly.
"""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from budget_kernel.domain.values import Identity, validate_identity
from budget_kernel.exceptions import UnauthorizedError
from budget_kernel.logging_config import get_logger

logger = get_logger("domain.authority")


@runtime_checkable
class Authority(Protocol):
    """Answers the "caller is admin" predicate for the ledger."""

    def is_administrator(self, actor_id: Identity) -> bool:
        ...

    def administrator(self) -> Identity:
        ...

    def transfer_administration(
        self, actor_id: Identity, new_administrator: Identity
    ) -> None:
        ...


class SingleAdminAuthority:
    """Exactly one administrator at a time."""

    def __init__(self, administrator: Identity):
        self._administrator = validate_identity(administrator)
        self._lock = threading.Lock()

    def is_administrator(self, actor_id: Identity) -> bool:
        return actor_id == self._administrator

    def administrator(self) -> Identity:
        return self._administrator

    def transfer_administration(
        self, actor_id: Identity, new_administrator: Identity
    ) -> None:
        """Hand the administrator role to ``new_administrator``.

        Raises:
            UnauthorizedError: if ``actor_id`` is not the current administrator.
            InvalidIdentityError: if ``new_administrator`` is blank.
        """
        validate_identity(new_administrator)
        with self._lock:
            if actor_id != self._administrator:
                raise UnauthorizedError(actor_id, "transfer_administration")
            previous = self._administrator
            self._administrator = new_administrator
        logger.info(
            "administration_transferred",
            extra={"previous_administrator": previous, "new_administrator": new_administrator},
        )
