"""
LedgerState -- the single source of truth of a budget ledger.

Responsibility:
    Immutable value objects for the pool and per-department accounting
    records.  Every transition produces a new ``LedgerState``; the previous
    one is left untouched, which is what lets the ledger restore it when a
    release transfer fails.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.

Invariants:
    See ``budget_kernel.invariants``.  The dataclasses do not validate
    themselves; ``budget_rules`` produces only valid transitions and
    ``check_invariants`` verifies them.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType

from budget_kernel.domain.values import Amount, Identity


@dataclass(frozen=True)
class DepartmentAccount:
    """Per-department accounting record.

    A record exists only once the department received its first
    allocation; absence from ``LedgerState.departments`` is the
    "does not exist" state.
    """

    allocated_budget: Amount = 0
    requested_funds: Amount = 0
    spent_funds: Amount = 0

    @property
    def remaining_unspent_allocation(self) -> Amount:
        return self.allocated_budget - self.spent_funds

    @property
    def requestable(self) -> Amount:
        """Headroom for new requests: unspent allocation not already requested."""
        return self.remaining_unspent_allocation - self.requested_funds

    def to_dict(self) -> dict[str, Amount]:
        return {
            "allocated_budget": self.allocated_budget,
            "requested_funds": self.requested_funds,
            "spent_funds": self.spent_funds,
        }


@dataclass(frozen=True)
class LedgerState:
    """Pool counters plus the department mapping."""

    initial_budget: Amount
    total_budget: Amount
    custodied_funds: Amount
    departments: Mapping[Identity, DepartmentAccount] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        # Freeze the mapping so a shared state can never be mutated in place.
        if not isinstance(self.departments, MappingProxyType):
            object.__setattr__(
                self, "departments", MappingProxyType(dict(self.departments))
            )

    @classmethod
    def genesis(cls, total_budget: Amount) -> "LedgerState":
        """State right after construction: fully funded, nothing allocated."""
        return cls(
            initial_budget=total_budget,
            total_budget=total_budget,
            custodied_funds=total_budget,
        )

    def account(self, department: Identity) -> DepartmentAccount | None:
        return self.departments.get(department)

    def exists(self, department: Identity) -> bool:
        return department in self.departments

    def with_account(
        self, department: Identity, account: DepartmentAccount, **changes: Amount
    ) -> "LedgerState":
        """Return a copy with ``department`` set to ``account`` and pool fields changed."""
        departments = dict(self.departments)
        departments[department] = account
        return replace(self, departments=MappingProxyType(departments), **changes)

    @property
    def total_allocated(self) -> Amount:
        return sum(a.allocated_budget for a in self.departments.values())

    @property
    def total_requested(self) -> Amount:
        return sum(a.requested_funds for a in self.departments.values())

    @property
    def total_spent(self) -> Amount:
        return sum(a.spent_funds for a in self.departments.values())

    def to_dict(self) -> dict:
        return {
            "initial_budget": self.initial_budget,
            "total_budget": self.total_budget,
            "custodied_funds": self.custodied_funds,
            "departments": {
                name: account.to_dict()
                for name, account in sorted(self.departments.items())
            },
        }
