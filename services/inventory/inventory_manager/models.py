"""
SQLAlchemy ORM models for the Inventory service.

Defines the database schema for inventory-related tables.
"""
from datetime import datetime, timezone
from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, String, UniqueConstraint
from .database import Base


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the form every backend round-trips)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class InventoryItem(Base):
    """
    Inventory item model representing a stocked product at a location.

    Attributes:
        id (int): Primary key, auto-incremented inventory item ID
        product_name (str): Human-readable product name
        product_id (str): Business identifier of the product (unique)
        category (str): Free-form category label
        location (str): Free-form storage location label
        available_quantity (int): Units free to be allocated
        reserved_quantity (int): Units held for pending orders
        on_hand_quantity (int): Units physically present
        created_at (datetime): Timestamp when the item was created
        updated_at (datetime): Timestamp of the last mutation
    """
    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_name = Column(String(255), nullable=False)
    product_id = Column(String(50), nullable=False)
    category = Column(String(100), nullable=False)
    location = Column(String(100), nullable=False)
    available_quantity = Column(Integer, nullable=False, default=0)
    reserved_quantity = Column(Integer, nullable=False, default=0)
    on_hand_quantity = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("product_id", name="uq_inventory_product_id"),
        CheckConstraint("available_quantity >= 0", name="ck_inventory_available_quantity_non_negative"),
        CheckConstraint("reserved_quantity >= 0", name="ck_inventory_reserved_quantity_non_negative"),
        CheckConstraint("on_hand_quantity >= 0", name="ck_inventory_on_hand_quantity_non_negative"),
        Index("idx_product_name", "product_name"),
        Index("idx_category", "category"),
        Index("idx_location", "location"),
        Index("idx_product_id", "product_id"),
    )

    def __repr__(self):
        return f"<InventoryItem(id={self.id}, product_id='{self.product_id}')>"
