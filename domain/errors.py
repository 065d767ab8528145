"""
Domain: error taxonomy.

Every failure the core reports falls into one of four families:

- ValidationError: malformed or missing input. The caller fixes the input.
- NotFoundError: a referenced entity does not exist for the given tenant.
- BusinessRuleError: a state-machine guard or cross-aggregate rule was violated
  (insufficient stock, wrong sale status, overpayment, ...). Never retried.
- DatabaseError: infrastructure faults. Only persistence adapters raise it.
"""

from __future__ import annotations

from typing import Optional


class ApplicationError(Exception):
    """Base class for every error surfaced by the sales core."""

    code: str = "APPLICATION_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class ValidationError(ApplicationError, ValueError):
    """Raised when input fails validation (value objects, request fields)."""

    code = "VALIDATION_ERROR"


class CurrencyMismatchError(ValidationError):
    """Raised when Money values in different currencies are combined."""

    def __init__(self, left: str, right: str):
        self.left = left
        self.right = right
        super().__init__(f"Cannot combine {left} with {right}")


class NotFoundError(ApplicationError):
    """Raised when a referenced entity does not exist for the tenant."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Optional[object] = None):
        self.resource = resource
        self.identifier = identifier
        if identifier is not None:
            message = f"{resource} with id {identifier} not found"
        else:
            message = f"{resource} not found"
        super().__init__(message)


class BusinessRuleError(ApplicationError):
    """Raised when a business rule or state transition guard is violated."""

    code = "BUSINESS_RULE_ERROR"


class InsufficientStockError(BusinessRuleError):
    """Raised when a stock request exceeds the available quantity."""

    code = "INSUFFICIENT_STOCK"

    def __init__(self, requested: int, available: int, product_id: Optional[str] = None):
        self.requested = requested
        self.available = available
        self.product_id = product_id
        super().__init__(
            f"Insufficient stock. Available: {available}, Requested: {requested}"
        )


class DatabaseError(ApplicationError, RuntimeError):
    """Raised by persistence adapters when the backend reports a failure."""

    code = "DATABASE_ERROR"

    def __init__(self, message: str, details: Optional[object] = None):
        self.details = details
        super().__init__(message)
