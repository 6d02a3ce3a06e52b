"""
Typed Exception Hierarchy for the Stock Kernel.

Every error a caller can act on has its own class, a machine-readable
``code`` class attribute, and carries its context as attributes rather
than inside the message string.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockKernelError (base)
    |
    +-- ValidationError                 caller-correctable, malformed input
    |   +-- MovementValidationError
    |   +-- InvalidDateRangeError
    |   +-- InvalidPaltiError
    |   +-- InvalidPaginationError
    |
    +-- CapacityError                   request exceeds available stock
    |   +-- InsufficientPaddyBagsError
    |   +-- InsufficientStockError
    |
    +-- StateError                      entity is in the wrong lifecycle state
    |   +-- InvalidTransitionError
    |   +-- MovementAlreadyResolvedError
    |   +-- OutturnAlreadyClearedError
    |   +-- OutturnClearedError
    |   +-- NothingToClearError
    |   +-- ImmutabilityViolationError
    |
    +-- NotFoundError
    |   +-- MovementNotFoundError
    |   +-- OutturnNotFoundError
    |   +-- LocationNotFoundError
    |   +-- PackagingNotFoundError
    |
    +-- IntegrityError                  the ledger itself is inconsistent
    |   +-- NegativeBalanceError
    |   +-- LedgerNotDerivableError
    |   +-- ContinuityBreakError
    |
    +-- ConcurrencyError
        +-- LockContentionError         safe to retry immediately

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                        | When Raised
-------------|-----------------------------|------------------------------------------
Validation   | MOVEMENT_VALIDATION_FAILED  | Missing/malformed movement fields
             | INVALID_DATE_RANGE          | date_from after date_to
             | INVALID_PALTI               | Conversion produces no whole bags
             | INVALID_PAGINATION          | Page or page size out of range
-------------|-----------------------------|------------------------------------------
Capacity     | INSUFFICIENT_PADDY_BAGS     | Production deducts more than available
             | INSUFFICIENT_STOCK          | Sale/palti exceeds finished-goods balance
-------------|-----------------------------|------------------------------------------
State        | INVALID_TRANSITION          | Approval transition not allowed
             | MOVEMENT_ALREADY_RESOLVED   | Approving/rejecting a terminal movement
             | OUTTURN_ALREADY_CLEARED     | Clearing twice
             | OUTTURN_CLEARED             | Production against a cleared outturn
             | NOTHING_TO_CLEAR            | Clearing with no remaining bags
             | IMMUTABILITY_VIOLATION      | Editing a resolved movement
-------------|-----------------------------|------------------------------------------
Integrity    | NEGATIVE_BALANCE            | Reconstructed closing below zero
             | LEDGER_NOT_DERIVABLE        | Reconstruction disagrees with direct sum
             | CONTINUITY_BREAK            | opening[d+1] != closing[d]
-------------|-----------------------------|------------------------------------------
Concurrency  | LOCK_CONTENTION             | Per-key write lock not acquired in time

Middleware maps categories, not codes: validation and capacity errors are
the caller's to fix, integrity errors mean the stored movements disagree
with themselves and are logged at CRITICAL before being returned.
"""

from datetime import date


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses must have a `code` class attribute.
    """

    code: str = "STOCK_KERNEL_ERROR"

    def details(self) -> dict:
        """Structured attributes for API and log payloads."""
        return {
            k: v for k, v in vars(self).items()
            if not k.startswith("_") and k != "args"
        }


# Validation


class ValidationError(StockKernelError):
    """Base exception for malformed or missing input."""

    code: str = "VALIDATION_ERROR"


class MovementValidationError(ValidationError):
    """A movement record failed field validation."""

    code: str = "MOVEMENT_VALIDATION_FAILED"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid movement field {field!r}: {reason}")


class InvalidDateRangeError(ValidationError):
    """date_from is after date_to."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, date_from: date, date_to: date):
        self.date_from = date_from
        self.date_to = date_to
        super().__init__(
            f"Invalid date range: {date_from} is after {date_to}"
        )


class InvalidPaginationError(ValidationError):
    """Page or page size out of range."""

    code: str = "INVALID_PAGINATION"

    def __init__(self, page: int, page_size: int, max_page_size: int):
        self.page = page
        self.page_size = page_size
        self.max_page_size = max_page_size
        super().__init__(
            f"Invalid pagination: page={page}, page_size={page_size} "
            f"(page >= 1, 1 <= page_size <= {max_page_size})"
        )


class InvalidPaltiError(ValidationError):
    """A packaging conversion that cannot produce stock."""

    code: str = "INVALID_PALTI"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid palti conversion: {reason}")


# Capacity


class CapacityError(StockKernelError):
    """Base exception for requests exceeding available stock."""

    code: str = "CAPACITY_ERROR"


class InsufficientPaddyBagsError(CapacityError):
    """Production output would deduct more paddy bags than the outturn holds."""

    code: str = "INSUFFICIENT_PADDY_BAGS"

    def __init__(self, outturn_id: str, available: int, requested: int):
        self.outturn_id = outturn_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Outturn {outturn_id} has {available} paddy bags available, "
            f"{requested} requested"
        )


class InsufficientStockError(CapacityError):
    """Finished-goods balance is below the requested bags."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        location_code: str,
        product_type: str,
        packaging_id: str,
        available: int,
        requested: int,
        as_of: date,
    ):
        self.location_code = location_code
        self.product_type = product_type
        self.packaging_id = packaging_id
        self.available = available
        self.requested = requested
        self.as_of = as_of
        super().__init__(
            f"Insufficient stock at {location_code} for {product_type} "
            f"(packaging {packaging_id}) on {as_of}: "
            f"available {available}, requested {requested}"
        )


# State


class StateError(StockKernelError):
    """Base exception for operations on entities in the wrong state."""

    code: str = "STATE_ERROR"


class InvalidTransitionError(StateError):
    """Approval status transition is not permitted."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid status transition: {from_status} -> {to_status}"
        )


class MovementAlreadyResolvedError(StateError):
    """Movement already reached a terminal approval status."""

    code: str = "MOVEMENT_ALREADY_RESOLVED"

    def __init__(self, movement_id: str, status: str):
        self.movement_id = movement_id
        self.status = status
        super().__init__(f"Movement {movement_id} is already {status}")


class OutturnAlreadyClearedError(StateError):
    """Outturn was cleared before."""

    code: str = "OUTTURN_ALREADY_CLEARED"

    def __init__(self, outturn_id: str, cleared_on: date | None):
        self.outturn_id = outturn_id
        self.cleared_on = cleared_on
        super().__init__(
            f"Outturn {outturn_id} already cleared on {cleared_on}"
        )


class OutturnClearedError(StateError):
    """Production entry against a cleared outturn."""

    code: str = "OUTTURN_CLEARED"

    def __init__(self, outturn_id: str):
        self.outturn_id = outturn_id
        super().__init__(
            f"Outturn {outturn_id} is cleared and accepts no production"
        )


class NothingToClearError(StateError):
    """Outturn has no remaining bags to clear."""

    code: str = "NOTHING_TO_CLEAR"

    def __init__(self, outturn_id: str, available: int):
        self.outturn_id = outturn_id
        self.available = available
        super().__init__(
            f"Outturn {outturn_id} has no remaining bags to clear "
            f"(available {available})"
        )


# Not found


class NotFoundError(StockKernelError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"

    entity_type: str = "entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class MovementNotFoundError(NotFoundError):
    code: str = "MOVEMENT_NOT_FOUND"
    entity_type = "Movement"


class OutturnNotFoundError(NotFoundError):
    code: str = "OUTTURN_NOT_FOUND"
    entity_type = "Outturn"


class LocationNotFoundError(NotFoundError):
    code: str = "LOCATION_NOT_FOUND"
    entity_type = "Location"


class PackagingNotFoundError(NotFoundError):
    code: str = "PACKAGING_NOT_FOUND"
    entity_type = "Packaging"


# Integrity


class IntegrityError(StockKernelError):
    """
    Base exception for ledger inconsistencies.

    Raised when the stored movements produce a ledger that cannot be
    right. Never auto-corrected.
    """

    code: str = "INTEGRITY_ERROR"


class NegativeBalanceError(IntegrityError):
    """A reconstructed closing balance fell below zero."""

    code: str = "NEGATIVE_BALANCE"

    def __init__(
        self,
        location_id: str,
        variety: str,
        outturn_code: str | None,
        balance_date: date,
        closing_bags: int,
    ):
        self.location_id = location_id
        self.variety = variety
        self.outturn_code = outturn_code
        self.balance_date = balance_date
        self.closing_bags = closing_bags
        super().__init__(
            f"Negative balance {closing_bags} bags for {variety}"
            f"{'/' + outturn_code if outturn_code else ''} at "
            f"{location_id} on {balance_date}"
        )


class LedgerNotDerivableError(IntegrityError):
    """Reconstructed closing disagrees with the direct sum of movements."""

    code: str = "LEDGER_NOT_DERIVABLE"

    def __init__(self, location_id: str, as_of: date, reconstructed: int, direct: int):
        self.location_id = location_id
        self.as_of = as_of
        self.reconstructed = reconstructed
        self.direct = direct
        super().__init__(
            f"Ledger for {location_id} not derivable on {as_of}: "
            f"reconstructed {reconstructed}, direct sum {direct}"
        )


class ContinuityBreakError(IntegrityError):
    """Opening of a day differs from the previous day's closing."""

    code: str = "CONTINUITY_BREAK"

    def __init__(self, location_id: str, balance_date: date, expected: int, actual: int):
        self.location_id = location_id
        self.balance_date = balance_date
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Continuity break at {location_id} on {balance_date}: "
            f"opening {actual}, previous closing {expected}"
        )


# Concurrency


class ConcurrencyError(StockKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class LockContentionError(ConcurrencyError):
    """Per-key write lock could not be acquired in time."""

    code: str = "LOCK_CONTENTION"

    retryable: bool = True

    def __init__(self, lock_key: str, timeout_seconds: float):
        self.lock_key = lock_key
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Could not acquire write lock {lock_key!r} within "
            f"{timeout_seconds}s; safe to retry"
        )


# Immutability


class ImmutabilityViolationError(StateError):
    """Attempted to edit or delete a resolved movement in place."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )
