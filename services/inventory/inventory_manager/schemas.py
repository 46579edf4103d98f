"""
Pydantic schemas for request/response validation in the Inventory service.

These schemas define the structure of inventory records, list filters,
statistics and the uniform response envelope returned by every service
operation.
"""
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from .errors import ErrorType, InventoryError

# Upper bound of the integer columns and of LIMIT/OFFSET values
MAX_INTEGER = 2**31 - 1

class InventoryItemBase(BaseModel):
    """Base schema with common inventory item attributes."""
    product_name: str = Field(..., min_length=1, max_length=255)
    product_id: str = Field(..., min_length=1, max_length=50)
    category: str = Field(..., max_length=100)
    location: str = Field(..., max_length=100)
    available_quantity: int = Field(..., ge=0)
    reserved_quantity: int = Field(..., ge=0)
    on_hand_quantity: int = Field(..., ge=0)

class InventoryItemCreate(InventoryItemBase):
    """Schema for creating a new inventory item."""
    pass

class InventoryItemUpdate(BaseModel):
    """Schema for updating an existing inventory item. All fields are optional."""
    product_name: Optional[str] = None
    product_id: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    available_quantity: Optional[int] = None
    reserved_quantity: Optional[int] = None
    on_hand_quantity: Optional[int] = None

class InventoryItem(InventoryItemBase):
    """
    Schema for inventory item responses, includes all database fields.

    Attributes:
        id (int): Inventory item's unique identifier
        created_at (datetime): When the item was created
        updated_at (datetime): When the item was last modified
    """
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class InventoryFilters(BaseModel):
    """Optional filters for listing inventory items."""
    search: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1, le=MAX_INTEGER)
    offset: Optional[int] = Field(None, ge=0, le=MAX_INTEGER)

class BulkUpdateEntry(BaseModel):
    """One (id, partial update) pair of a bulk update."""
    id: int
    data: Dict[str, Any] = Field(default_factory=dict)

class InventoryStats(BaseModel):
    """Aggregate figures over the whole inventory table."""
    total_items: int = 0
    total_available_quantity: int = 0
    total_reserved_quantity: int = 0
    total_on_hand_quantity: int = 0
    categories_count: int = 0
    locations_count: int = 0
    low_stock_items: int = 0

class DatabaseStats(BaseModel):
    """Presence and size of the inventory table."""
    table_exists: bool
    total_records: int = 0

class ServiceResponse(BaseModel):
    """
    Uniform result of every service operation.

    ``error_type``, ``field``, ``failed_index`` and ``failed_item_id`` are
    available to Python callers but are not part of the serialized envelope.
    """
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None
    count: Optional[int] = None
    details: Optional[str] = None
    error_type: Optional[ErrorType] = Field(default=None, exclude=True)
    field: Optional[str] = Field(default=None, exclude=True)
    failed_index: Optional[int] = Field(default=None, exclude=True)
    failed_item_id: Optional[int] = Field(default=None, exclude=True)

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None, count: Optional[int] = None) -> "ServiceResponse":
        return cls(success=True, data=data, message=message, count=count)

    @classmethod
    def fail(cls, exc: InventoryError, error: Optional[str] = None, **extra: Any) -> "ServiceResponse":
        return cls(
            success=False,
            error=error or exc.message,
            details=exc.details,
            error_type=exc.error_type,
            field=exc.field,
            **extra,
        )

    def to_envelope(self) -> Dict[str, Any]:
        """JSON-ready envelope with unset members dropped."""
        return self.model_dump(mode="json", exclude_none=True)
