"""
Typed Exception Hierarchy for the Stock Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from StockKernelError:

    StockKernelError (base)
    |
    +-- ValidationError
    |   +-- InvalidFieldError
    |   +-- InvalidDoseQuantityError
    |
    +-- NotFoundError
    |   +-- ItemNotFoundError
    |   +-- ApplicationNotFoundError
    |
    +-- BusinessRuleError
    |   +-- ItemExpiredError
    |   +-- InsufficientStockError
    |
    +-- ConflictError
    |   +-- ItemReferencedError
    |
    +-- DefectError
    |   +-- NegativeStockError
    |
    +-- TransientError
    |   +-- StorageUnavailableError
    |
    +-- AccessError
        +-- CredentialRejectedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_FIELD               | Required field missing/empty/out of range
                | INVALID_DOSE_QUANTITY       | Dose is not a positive integer
----------------|-----------------------------|-----------------------------------------
NotFound        | ITEM_NOT_FOUND              | Item ID doesn't exist
                | APPLICATION_NOT_FOUND       | Application ID doesn't exist
----------------|-----------------------------|-----------------------------------------
BusinessRule    | ITEM_EXPIRED                | Item expiration_date <= now
                | INSUFFICIENT_STOCK          | stock_quantity < requested dose
----------------|-----------------------------|-----------------------------------------
Conflict        | ITEM_REFERENCED             | Item delete while applications exist
----------------|-----------------------------|-----------------------------------------
Defect          | NEGATIVE_STOCK              | Ledger adjustment would go below zero
----------------|-----------------------------|-----------------------------------------
Transient       | STORAGE_UNAVAILABLE         | Database unreachable; work rolled back
----------------|-----------------------------|-----------------------------------------
Access          | CREDENTIAL_REJECTED         | Bearer credential missing/bad/expired

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation, NotFound, BusinessRule and Conflict errors are caller errors.
   They are raised before any mutation, or inside a unit of work that is
   rolled back before the error reaches the caller.

2. TransientError means the operation definitely did not happen and may be
   retried from scratch:

    try:
        engine.create_application(...)
    except StorageUnavailableError:
        retry_later()

3. DefectError means an internal invariant was about to be broken.  It is
   logged at CRITICAL and must never be swallowed.
"""


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Validation


class ValidationError(StockKernelError):
    """Base exception for malformed or missing input."""

    code: str = "VALIDATION_ERROR"


class InvalidFieldError(ValidationError):
    """A command field is missing, empty or out of range."""

    code: str = "INVALID_FIELD"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidDoseQuantityError(ValidationError):
    """Dose quantity is not a positive integer."""

    code: str = "INVALID_DOSE_QUANTITY"

    def __init__(self, dose_quantity: object):
        self.dose_quantity = dose_quantity
        super().__init__(
            f"Invalid doseQuantity: {dose_quantity!r} (must be a positive integer)"
        )


# Not found


class NotFoundError(StockKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class ItemNotFoundError(NotFoundError):
    """Item with given ID was not found."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item not found: {item_id}")


class ApplicationNotFoundError(NotFoundError):
    """Application with given ID was not found."""

    code: str = "APPLICATION_NOT_FOUND"

    def __init__(self, application_id: str):
        self.application_id = application_id
        super().__init__(f"Application not found: {application_id}")


# Business rules


class BusinessRuleError(StockKernelError):
    """Base exception for requests the current stock state cannot satisfy."""

    code: str = "BUSINESS_RULE_VIOLATION"


class ItemExpiredError(BusinessRuleError):
    """Item expired at or before the time of the application."""

    code: str = "ITEM_EXPIRED"

    def __init__(self, item_id: str, expiration_date: str, as_of: str):
        self.item_id = item_id
        self.expiration_date = expiration_date
        self.as_of = as_of
        super().__init__(
            f"Item {item_id} is expired: expiration {expiration_date} <= {as_of}"
        )


class InsufficientStockError(BusinessRuleError):
    """Item does not hold enough stock for the requested dose."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, item_id: str, requested: int, available: int):
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for item {item_id}: "
            f"requested={requested}, available={available}"
        )


# Conflicts


class ConflictError(StockKernelError):
    """Base exception for operations blocked by related records."""

    code: str = "CONFLICT"


class ItemReferencedError(ConflictError):
    """Cannot delete an item that applications still reference."""

    code: str = "ITEM_REFERENCED"

    def __init__(self, item_id: str, application_count: int):
        self.item_id = item_id
        self.application_count = application_count
        super().__init__(
            f"Item {item_id} is referenced by {application_count} application(s)"
        )


# Defects


class DefectError(StockKernelError):
    """Base exception for violated internal invariants (bugs, not user errors)."""

    code: str = "DEFECT"


class NegativeStockError(DefectError):
    """A ledger adjustment would drive stock below zero."""

    code: str = "NEGATIVE_STOCK"

    def __init__(self, item_id: str, current: int, delta: int):
        self.item_id = item_id
        self.current = current
        self.delta = delta
        super().__init__(
            f"Stock invariant violated for item {item_id}: "
            f"{current} + ({delta}) < 0"
        )


# Transient


class TransientError(StockKernelError):
    """Base exception for failures where the operation did not happen."""

    code: str = "TRANSIENT"


class StorageUnavailableError(TransientError):
    """Storage failed mid-operation; the unit of work was rolled back."""

    code: str = "STORAGE_UNAVAILABLE"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Storage unavailable, operation rolled back: {detail}")


# Access


class AccessError(StockKernelError):
    """Base exception for authentication failures."""

    code: str = "ACCESS_ERROR"


class CredentialRejectedError(AccessError):
    """Bearer credential could not be turned into a caller identity.

    ``reason`` is one of ``missing_credential``, ``malformed_credential``
    or ``invalid_or_expired_credential``.
    """

    code: str = "CREDENTIAL_REJECTED"

    def __init__(self, reason: str, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(detail or reason)
