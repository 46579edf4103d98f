"""
Error taxonomy for the Inventory service.

Service functions raise these internally; the ``service_operation`` decorator
in ``crud`` converts them into a failed ``ServiceResponse`` so callers branch
on ``success`` instead of catching exceptions.
"""
from enum import Enum
from typing import Optional


class ErrorType(str, Enum):
    """Category of a failed service operation."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INFRASTRUCTURE = "infrastructure"


class InventoryError(Exception):
    """Base class for every failure the service reports."""
    error_type = ErrorType.INFRASTRUCTURE

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details


class ValidationError(InventoryError):
    """Missing required field, invalid quantity or empty update payload."""
    error_type = ErrorType.VALIDATION


class NotFoundError(InventoryError):
    """Referenced id or product_id does not exist."""
    error_type = ErrorType.NOT_FOUND

    def __init__(self, message: str = "Inventory item not found", field: Optional[str] = None):
        super().__init__(message, field=field)


class ConflictError(InventoryError):
    """product_id uniqueness violated."""
    error_type = ErrorType.CONFLICT

    def __init__(self, message: str = "Product ID already exists. Please use a unique Product ID.",
                 field: Optional[str] = "product_id"):
        super().__init__(message, field=field)


class InfrastructureError(InventoryError):
    """Store unreachable, malformed query or transaction failure."""
    error_type = ErrorType.INFRASTRUCTURE


class DeleteFailedError(InfrastructureError):
    """The delete statement affected no rows although the item existed."""

    def __init__(self, message: str = "Failed to delete inventory item", details: Optional[str] = None):
        super().__init__(message, details=details)
