"""
Typed Exception Hierarchy for the Budget Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejection the ledger produces is a typed exception with a static
``code`` attribute and structured context attributes.  Callers catch by
type and read attributes; they never parse messages.

    try:
        ledger.request(actor_id="IT", amount=500)
    except ExceedsAllocatedBudgetError as e:
        api_response(code=e.code, available=e.available)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BudgetKernelError (base)
    |
    +-- AmountError
    |   +-- AmountMustBeMoreThanZeroError
    |   +-- InvalidAmountError
    |
    +-- AllocationError
    |   +-- ExceededAmountError
    |
    +-- DepartmentError
    |   +-- DepartmentDoesNotExistError
    |   +-- ExceedsAllocatedBudgetError
    |
    +-- ReleaseError
    |   +-- ExceedsRequestedFundsError
    |   +-- TransferFailedError
    |
    +-- AuthorizationError
    |   +-- UnauthorizedError
    |
    +-- ConcurrencyError
    |   +-- ReentrantCallError
    |
    +-- LedgerSetupError
    |   +-- BackingFundsMismatchError
    |   +-- InvalidIdentityError
    |
    +-- IntegrityError
    |   +-- InvariantViolationError
    |
    +-- JournalError
        +-- JournalNotInitializedError
        +-- JournalAlreadyInitializedError
        +-- JournalChainBrokenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Amount          | AMOUNT_MUST_BE_MORE_THAN_ZERO | Zero or negative amount
                | INVALID_AMOUNT                | Amount is not an int (bool/float/...)
----------------|-------------------------------|---------------------------------------
Allocation      | EXCEEDED_AMOUNT               | Allocation beyond remaining pool
----------------|-------------------------------|---------------------------------------
Department      | DEPARTMENT_DOES_NOT_EXIST     | Identity was never allocated budget
                | EXCEEDS_ALLOCATED_BUDGET      | Request beyond unspent allocation
----------------|-------------------------------|---------------------------------------
Release         | EXCEEDS_REQUESTED_FUNDS       | Release beyond outstanding request
                | TRANSFER_FAILED               | Payment gateway could not deliver
----------------|-------------------------------|---------------------------------------
Authorization   | UNAUTHORIZED                  | Non-administrator on admin operation
----------------|-------------------------------|---------------------------------------
Concurrency     | REENTRANT_CALL                | Guarded operation entered recursively
----------------|-------------------------------|---------------------------------------
Setup           | BACKING_FUNDS_MISMATCH        | Backing funds != total budget
                | INVALID_IDENTITY              | Empty or non-string identity
----------------|-------------------------------|---------------------------------------
Integrity       | INVARIANT_VIOLATION           | A ledger invariant does not hold
----------------|-------------------------------|---------------------------------------
Journal         | JOURNAL_NOT_INITIALIZED       | No persisted ledger in the database
                | JOURNAL_ALREADY_INITIALIZED   | Database already holds a ledger
                | JOURNAL_CHAIN_BROKEN          | Stored event hash chain mismatch

===============================================================================
"""


class BudgetKernelError(Exception):
    """
    Base exception for all budget kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "BUDGET_KERNEL_ERROR"


# Amount validation


class AmountError(BudgetKernelError):
    """Base exception for amount validation errors."""

    code: str = "AMOUNT_ERROR"


class AmountMustBeMoreThanZeroError(AmountError):
    """Operation called with a zero (or negative) amount."""

    code: str = "AMOUNT_MUST_BE_MORE_THAN_ZERO"

    def __init__(self, amount: int):
        self.amount = amount
        super().__init__(f"Amount must be more than zero, got {amount}")


class InvalidAmountError(AmountError):
    """Amount is not an integer number of minor units."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: object):
        self.amount = repr(amount)
        self.amount_type = type(amount).__name__
        super().__init__(
            f"Amount must be an int in minor units, got {self.amount_type}: {self.amount}"
        )


# Allocation


class AllocationError(BudgetKernelError):
    """Base exception for allocation errors."""

    code: str = "ALLOCATION_ERROR"


class ExceededAmountError(AllocationError):
    """Allocation exceeds the funds remaining in the pool."""

    code: str = "EXCEEDED_AMOUNT"

    def __init__(self, department: str, amount: int, total_budget: int):
        self.department = department
        self.amount = amount
        self.total_budget = total_budget
        super().__init__(
            f"Cannot allocate {amount} to {department}: "
            f"only {total_budget} left in the pool"
        )


# Department


class DepartmentError(BudgetKernelError):
    """Base exception for department record errors."""

    code: str = "DEPARTMENT_ERROR"


class DepartmentDoesNotExistError(DepartmentError):
    """Identity has never been allocated budget."""

    code: str = "DEPARTMENT_DOES_NOT_EXIST"

    def __init__(self, department: str):
        self.department = department
        super().__init__(f"Department does not exist: {department}")


class ExceedsAllocatedBudgetError(DepartmentError):
    """Request would push outstanding requests past the unspent allocation."""

    code: str = "EXCEEDS_ALLOCATED_BUDGET"

    def __init__(self, department: str, amount: int, available: int):
        self.department = department
        self.amount = amount
        self.available = available
        super().__init__(
            f"Request of {amount} by {department} exceeds allocated budget: "
            f"{available} available to request"
        )


# Release


class ReleaseError(BudgetKernelError):
    """Base exception for release errors."""

    code: str = "RELEASE_ERROR"


class ExceedsRequestedFundsError(ReleaseError):
    """Release amount exceeds the department's outstanding requested funds."""

    code: str = "EXCEEDS_REQUESTED_FUNDS"

    def __init__(self, department: str, amount: int, requested_funds: int):
        self.department = department
        self.amount = amount
        self.requested_funds = requested_funds
        super().__init__(
            f"Release of {amount} to {department} exceeds requested funds "
            f"({requested_funds})"
        )


class TransferFailedError(ReleaseError):
    """
    The payment gateway could not deliver the released funds.

    The whole release is rolled back before this is raised.
    """

    code: str = "TRANSFER_FAILED"

    def __init__(self, department: str, amount: int, reason: str):
        self.department = department
        self.amount = amount
        self.reason = reason
        super().__init__(f"Transfer of {amount} to {department} failed: {reason}")


# Authorization


class AuthorizationError(BudgetKernelError):
    """Base exception for authorization errors."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedError(AuthorizationError):
    """Actor is not allowed to perform an administrator-only operation."""

    code: str = "UNAUTHORIZED"

    def __init__(self, actor_id: str, operation: str):
        self.actor_id = actor_id
        self.operation = operation
        super().__init__(f"Actor {actor_id} is not authorized to {operation}")


# Concurrency


class ConcurrencyError(BudgetKernelError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class ReentrantCallError(ConcurrencyError):
    """A guarded operation was entered while another one is executing."""

    code: str = "REENTRANT_CALL"

    def __init__(self, operation: str, active_operation: str | None):
        self.operation = operation
        self.active_operation = active_operation
        super().__init__(
            f"Reentrant call to {operation} while {active_operation} is executing"
        )


# Setup


class LedgerSetupError(BudgetKernelError):
    """Base exception for ledger construction errors."""

    code: str = "LEDGER_SETUP_ERROR"


class BackingFundsMismatchError(LedgerSetupError):
    """The pool must be fully funded at creation."""

    code: str = "BACKING_FUNDS_MISMATCH"

    def __init__(self, total_budget: int, backing_funds: int):
        self.total_budget = total_budget
        self.backing_funds = backing_funds
        super().__init__(
            f"Backing funds {backing_funds} must equal total budget {total_budget}"
        )


class InvalidIdentityError(LedgerSetupError):
    """Identity is empty or not a string."""

    code: str = "INVALID_IDENTITY"

    def __init__(self, identity: object):
        self.identity = repr(identity)
        super().__init__(f"Invalid identity: {self.identity}")


# Integrity


class IntegrityError(BudgetKernelError):
    """Base exception for ledger integrity failures."""

    code: str = "INTEGRITY_ERROR"


class InvariantViolationError(IntegrityError):
    """
    A ledger invariant does not hold.

    This indicates a defect in the kernel, never a user error.
    """

    code: str = "INVARIANT_VIOLATION"

    def __init__(self, violations: list[str]):
        self.violations = violations
        super().__init__(
            f"{len(violations)} ledger invariant violation(s): " + "; ".join(violations)
        )


# Journal


class JournalError(BudgetKernelError):
    """Base exception for persisted journal errors."""

    code: str = "JOURNAL_ERROR"


class JournalNotInitializedError(JournalError):
    """The database holds no ledger."""

    code: str = "JOURNAL_NOT_INITIALIZED"

    def __init__(self):
        super().__init__("No ledger has been initialized in this database")


class JournalAlreadyInitializedError(JournalError):
    """A ledger pool already exists in the database; one pool per lifetime."""

    code: str = "JOURNAL_ALREADY_INITIALIZED"

    def __init__(self, initial_budget: int):
        self.initial_budget = initial_budget
        super().__init__(
            f"A ledger with initial budget {initial_budget} already exists in this database"
        )


class JournalChainBrokenError(JournalError):
    """The stored event hash chain does not verify."""

    code: str = "JOURNAL_CHAIN_BROKEN"

    def __init__(self, sequence: int, expected_hash: str, actual_hash: str):
        self.sequence = sequence
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Journal chain broken at sequence {sequence}: "
            f"expected {expected_hash}, found {actual_hash}"
        )
