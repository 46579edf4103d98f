"""
CRUD (Create, Read, Update, Delete) operations for the Inventory service.

This module contains all database operations for inventory management.
Every public function takes the session it runs on as its first argument
and returns a ServiceResponse; domain and database failures are reported
through that response rather than raised.
"""
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta
from functools import wraps
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import case, delete, distinct, func, inspect, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import config, errors, models, schemas, validators

# Set up logging
logger = logging.getLogger(__name__)

Item = models.InventoryItem

# Fields a caller may change, mapped to the columns they write
UPDATABLE_COLUMNS = {
    "product_name": Item.product_name,
    "product_id": Item.product_id,
    "category": Item.category,
    "location": Item.location,
    "available_quantity": Item.available_quantity,
    "reserved_quantity": Item.reserved_quantity,
    "on_hand_quantity": Item.on_hand_quantity,
}

SEARCH_COLUMNS = (Item.product_name, Item.product_id, Item.category)


def service_operation(failure_message: str):
    """
    Decorator converting raised errors into a failed ServiceResponse.

    Domain errors keep their own message. Database errors are reported as
    infrastructure failures with ``failure_message`` and the driver message
    as details. The session is rolled back before returning so no partial
    write survives a failed call.

    Args:
        failure_message: Generic message for infrastructure failures
    """
    def decorator(func):
        @wraps(func)
        def wrapper(db: Session, *args, **kwargs) -> schemas.ServiceResponse:
            try:
                return func(db, *args, **kwargs)
            except errors.InventoryError as e:
                db.rollback()
                if e.error_type == errors.ErrorType.INFRASTRUCTURE:
                    logger.error(f"{func.__name__}: {e.message} ({e.details})")
                else:
                    logger.info(f"{func.__name__} rejected: {e.message}")
                return schemas.ServiceResponse.fail(e)
            except SQLAlchemyError as e:
                db.rollback()
                logger.exception(f"{failure_message}")
                return schemas.ServiceResponse.fail(
                    errors.InfrastructureError(failure_message, details=_driver_message(e))
                )
        return wrapper
    return decorator


def _driver_message(exc: SQLAlchemyError) -> str:
    # DBAPI errors wrap the driver exception; its text omits the SQL and parameters
    orig = getattr(exc, "orig", None)
    return str(orig if orig is not None else exc)


def _translate_integrity_error(exc: IntegrityError) -> errors.InventoryError:
    """Map a store constraint violation on product_id to the domain conflict."""
    message = _driver_message(exc)
    if "product_id" in message.lower():
        return errors.ConflictError()
    return errors.InfrastructureError("Data integrity violation", details=message)


def _raise_if_invalid(result: validators.ValidationResult) -> None:
    is_valid, message, field = result
    if not is_valid:
        raise errors.ValidationError(message, field=field)


def _as_dict(data: Any) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True)
    if isinstance(data, Mapping):
        return dict(data)
    raise errors.ValidationError("Item data must be an object")


def _as_filters(filters: Any) -> schemas.InventoryFilters:
    if filters is None:
        return schemas.InventoryFilters()
    if isinstance(filters, schemas.InventoryFilters):
        return filters
    try:
        return schemas.InventoryFilters(**_as_dict(filters))
    except SchemaValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else None
        raise errors.ValidationError(f"Invalid filter {field}: {first['msg']}", field=field)


def _check_item_id(item_id: Any) -> None:
    if isinstance(item_id, bool) or not isinstance(item_id, int):
        raise errors.ValidationError("Invalid item ID", field="id")


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _next_timestamp(previous: Optional[datetime]) -> datetime:
    """Current time, bumped past ``previous`` so updated_at strictly increases."""
    now = models.utcnow()
    if previous is not None and now <= previous:
        now = previous + timedelta(microseconds=1)
    return now


def _load_item(db: Session, item_id: int) -> models.InventoryItem:
    """Fetch a row straight from the store, bypassing the identity map."""
    _check_item_id(item_id)
    if not 1 <= item_id <= validators.MAX_INTEGER:
        # Outside the id column range, so no row can match
        raise errors.NotFoundError()
    db_item = db.get(Item, item_id, populate_existing=True)
    if db_item is None:
        raise errors.NotFoundError()
    return db_item


def _find_by_product_id(db: Session, product_id: str, exclude_id: Optional[int] = None) -> Optional[int]:
    """Return the id of the row holding ``product_id``, ignoring ``exclude_id``."""
    stmt = select(Item.id).where(Item.product_id == product_id)
    if exclude_id is not None:
        stmt = stmt.where(Item.id != exclude_id)
    return db.execute(stmt.limit(1)).scalar_one_or_none()


def _snapshot(db_item: models.InventoryItem) -> schemas.InventoryItem:
    return schemas.InventoryItem.model_validate(db_item)


@service_operation("Failed to fetch inventory items")
def list_items(db: Session, filters: Any = None) -> schemas.ServiceResponse:
    """
    Retrieve inventory items matching optional filters, newest first.

    Args:
        db: Database session
        filters: InventoryFilters or mapping with search, category,
            location, limit and offset (all optional)

    Returns:
        ServiceResponse with the list of items and their count
    """
    filters = _as_filters(filters)
    if filters.offset is not None and filters.limit is None:
        raise errors.ValidationError("offset requires limit", field="offset")

    stmt = select(Item)

    if filters.search:
        term = f"%{_escape_like(filters.search)}%"
        stmt = stmt.where(or_(*(column.ilike(term, escape="\\") for column in SEARCH_COLUMNS)))

    if filters.category:
        stmt = stmt.where(Item.category == filters.category)

    if filters.location:
        stmt = stmt.where(Item.location == filters.location)

    stmt = stmt.order_by(Item.created_at.desc(), Item.id.desc())

    if filters.limit is not None:
        stmt = stmt.limit(filters.limit)
        if filters.offset:
            stmt = stmt.offset(filters.offset)

    items = [_snapshot(row) for row in db.execute(stmt).scalars().all()]
    return schemas.ServiceResponse.ok(items, count=len(items))


@service_operation("Failed to fetch inventory item")
def get_item(db: Session, item_id: int) -> schemas.ServiceResponse:
    """
    Retrieve a single inventory item by ID.

    Args:
        db: Database session
        item_id: ID of the inventory item to retrieve

    Returns:
        ServiceResponse with the item, or a not_found failure
    """
    return schemas.ServiceResponse.ok(_snapshot(_load_item(db, item_id)))


@service_operation("Failed to fetch inventory item")
def get_item_by_product_id(db: Session, product_id: str) -> schemas.ServiceResponse:
    """
    Retrieve an inventory item by its product ID.

    Args:
        db: Database session
        product_id: Product ID to search for

    Returns:
        ServiceResponse with the item, or a not_found failure
    """
    stmt = select(Item).where(Item.product_id == product_id).execution_options(populate_existing=True)
    db_item = db.execute(stmt).scalars().first()
    if db_item is None:
        raise errors.NotFoundError(field="product_id")
    return schemas.ServiceResponse.ok(_snapshot(db_item))


@service_operation("Failed to create inventory item")
def create_item(db: Session, item: Any) -> schemas.ServiceResponse:
    """
    Create a new inventory item in the database.

    All seven fields are required; quantities must be non-negative and the
    product ID must not be in use. A duplicate that slips past the
    pre-check is caught by the unique constraint and reported the same way.

    Args:
        db: Database session
        item: InventoryItemCreate or mapping of the item fields

    Returns:
        ServiceResponse with the created item (id and timestamps assigned)
    """
    data = _as_dict(item)
    _raise_if_invalid(validators.validate_required_fields(data))
    _raise_if_invalid(validators.validate_quantities(data))
    _raise_if_invalid(validators.validate_text_fields(data))

    if _find_by_product_id(db, data["product_id"]) is not None:
        raise errors.ConflictError()

    now = models.utcnow()
    db_item = Item(
        **{field: data[field] for field in validators.REQUIRED_FIELDS},
        created_at=now,
        updated_at=now,
    )
    db.add(db_item)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise _translate_integrity_error(e)
    db.refresh(db_item)

    logger.info(f"Created inventory item {db_item.id} (product_id '{db_item.product_id}')")
    return schemas.ServiceResponse.ok(_snapshot(db_item), message="Inventory item created successfully")


def _apply_update(db: Session, item_id: int, partial: Any) -> schemas.InventoryItem:
    """
    Validate and write one partial update inside the current transaction.

    Only allow-listed, non-None fields are written, plus updated_at. The
    row is read back from the store afterwards. Nothing is committed here.
    """
    data = _as_dict(partial)
    current = _load_item(db, item_id)

    _raise_if_invalid(validators.validate_quantities(data))
    _raise_if_invalid(validators.validate_text_fields(data))

    product_id = data.get("product_id")
    if product_id is not None and _find_by_product_id(db, product_id, exclude_id=item_id) is not None:
        raise errors.ConflictError()

    ignored = sorted(key for key in data if key not in UPDATABLE_COLUMNS)
    if ignored:
        logger.debug(f"Ignoring non-updatable fields for item {item_id}: {ignored}")

    assignments = {
        column: data[field]
        for field, column in UPDATABLE_COLUMNS.items()
        if data.get(field) is not None
    }
    if not assignments:
        raise errors.ValidationError("No fields to update")

    assignments[Item.updated_at] = _next_timestamp(current.updated_at)

    try:
        db.execute(update(Item).where(Item.id == item_id).values(assignments))
    except IntegrityError as e:
        raise _translate_integrity_error(e)

    return _snapshot(_load_item(db, item_id))


@service_operation("Failed to update inventory item")
def update_item(db: Session, item_id: int, partial: Any) -> schemas.ServiceResponse:
    """
    Update an existing inventory item.

    Args:
        db: Database session
        item_id: ID of the inventory item to update
        partial: InventoryItemUpdate or mapping; only provided, non-None
            fields are updated

    Returns:
        ServiceResponse with the updated item as stored
    """
    updated = _apply_update(db, item_id, partial)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise _translate_integrity_error(e)

    logger.info(f"Updated inventory item {item_id}")
    return schemas.ServiceResponse.ok(updated, message="Inventory item updated successfully")


@service_operation("Failed to update quantities")
def update_quantities(db: Session, item_id: int, quantities: Any) -> schemas.ServiceResponse:
    """
    Adjust the stock quantities of an item.

    Args:
        db: Database session
        item_id: ID of the inventory item to adjust
        quantities: Mapping with any of the three quantity fields

    Returns:
        ServiceResponse with the updated item
    """
    data = _as_dict(quantities)
    unexpected = sorted(key for key in data if key not in validators.QUANTITY_FIELDS)
    if unexpected:
        raise errors.ValidationError(
            f"Only quantity fields can be adjusted, got: {', '.join(unexpected)}", field=unexpected[0]
        )
    _raise_if_invalid(validators.validate_quantities(data))
    return update_item(db, item_id, data)


@service_operation("Failed to delete inventory item")
def delete_item(db: Session, item_id: int) -> schemas.ServiceResponse:
    """
    Delete an inventory item from the database.

    Args:
        db: Database session
        item_id: ID of the inventory item to delete

    Returns:
        ServiceResponse with the item as it was before deletion
    """
    snapshot = _snapshot(_load_item(db, item_id))

    result = db.execute(delete(Item).where(Item.id == item_id))
    if result.rowcount == 0:
        # Row vanished between the existence check and the delete
        raise errors.DeleteFailedError(details=f"No rows affected deleting item {item_id}")
    db.commit()

    logger.info(f"Deleted inventory item {item_id} (product_id '{snapshot.product_id}')")
    return schemas.ServiceResponse.ok(snapshot, message="Inventory item deleted successfully")


def _bulk_entry_id(raw: Any) -> int:
    """Item id of a bulk entry, read before its data is looked at."""
    if isinstance(raw, schemas.BulkUpdateEntry):
        return raw.id
    if isinstance(raw, (tuple, list)) and len(raw) == 2:
        item_id = raw[0]
    elif isinstance(raw, Mapping):
        item_id = raw.get("id")
    else:
        raise errors.ValidationError("Bulk update entries must be (id, data) pairs")
    _check_item_id(item_id)
    return item_id


def _as_bulk_entry(raw: Any, item_id: int) -> schemas.BulkUpdateEntry:
    if isinstance(raw, schemas.BulkUpdateEntry):
        return raw
    partial = raw[1] if isinstance(raw, (tuple, list)) else raw.get("data") or {}
    return schemas.BulkUpdateEntry(id=item_id, data=_as_dict(partial))


@service_operation("Bulk update failed")
def bulk_update_items(db: Session, updates: Sequence[Any]) -> schemas.ServiceResponse:
    """
    Apply several partial updates as one all-or-nothing transaction.

    Updates are applied in input order inside a single transaction. The
    first failing entry rolls back every update of the call, and the
    failure names that entry's item id and index. The transaction stays
    open for the whole batch, so its size is capped by MAX_BULK_UPDATE_SIZE.

    Args:
        db: Database session
        updates: Sequence of (id, data) pairs, {"id", "data"} mappings or
            BulkUpdateEntry objects

    Returns:
        ServiceResponse with the updated items in input order
    """
    if isinstance(updates, (str, bytes, Mapping)) or not isinstance(updates, Sequence):
        raise errors.ValidationError("Bulk update expects a list of updates")
    if len(updates) > config.MAX_BULK_UPDATE_SIZE:
        raise errors.ValidationError(
            f"Bulk update is limited to {config.MAX_BULK_UPDATE_SIZE} items, got {len(updates)}"
        )

    updated: List[schemas.InventoryItem] = []
    for index, raw in enumerate(updates):
        item_id = None
        try:
            item_id = _bulk_entry_id(raw)
            entry = _as_bulk_entry(raw, item_id)
            updated.append(_apply_update(db, entry.id, entry.data))
        except (errors.InventoryError, SQLAlchemyError) as e:
            db.rollback()
            if isinstance(e, SQLAlchemyError):
                e = errors.InfrastructureError("Bulk update failed", details=_driver_message(e))
            logger.warning(
                f"Bulk update rolled back at index {index} (item {item_id}) after "
                f"{len(updated)} applied updates: {e.message}"
            )
            return schemas.ServiceResponse.fail(
                e,
                error=f"Failed to update item {item_id} at index {index}: {e.message}",
                failed_index=index,
                failed_item_id=item_id,
            )

    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise _translate_integrity_error(e)

    logger.info(f"Bulk update committed {len(updated)} items")
    return schemas.ServiceResponse.ok(updated, count=len(updated), message="Bulk update completed successfully")


def _check_threshold(threshold: Optional[int]) -> int:
    if threshold is None:
        return config.LOW_STOCK_THRESHOLD
    if not validators.is_valid_quantity(threshold):
        raise errors.ValidationError("threshold must be a non-negative number", field="threshold")
    return threshold


@service_operation("Failed to fetch inventory statistics")
def get_statistics(db: Session, low_stock_threshold: Optional[int] = None) -> schemas.ServiceResponse:
    """
    Compute aggregate figures over the whole inventory table.

    Args:
        db: Database session
        low_stock_threshold: Items with available_quantity below this count
            as low stock (default: LOW_STOCK_THRESHOLD)

    Returns:
        ServiceResponse with InventoryStats; an empty table yields zeros
    """
    threshold = _check_threshold(low_stock_threshold)
    stmt = select(
        func.count(Item.id),
        func.coalesce(func.sum(Item.available_quantity), 0),
        func.coalesce(func.sum(Item.reserved_quantity), 0),
        func.coalesce(func.sum(Item.on_hand_quantity), 0),
        func.count(distinct(Item.category)),
        func.count(distinct(Item.location)),
        func.coalesce(func.sum(case((Item.available_quantity < threshold, 1), else_=0)), 0),
    )
    row = db.execute(stmt).one()

    stats = schemas.InventoryStats(
        total_items=int(row[0] or 0),
        total_available_quantity=int(row[1] or 0),
        total_reserved_quantity=int(row[2] or 0),
        total_on_hand_quantity=int(row[3] or 0),
        categories_count=int(row[4] or 0),
        locations_count=int(row[5] or 0),
        low_stock_items=int(row[6] or 0),
    )
    return schemas.ServiceResponse.ok(stats)


@service_operation("Failed to fetch low stock items")
def get_low_stock_items(db: Session, threshold: Optional[int] = None) -> schemas.ServiceResponse:
    """
    Retrieve items whose available quantity is below the threshold.

    Args:
        db: Database session
        threshold: Low-stock threshold (default: LOW_STOCK_THRESHOLD)

    Returns:
        ServiceResponse with the items, lowest available quantity first
    """
    threshold = _check_threshold(threshold)
    stmt = (
        select(Item)
        .where(Item.available_quantity < threshold)
        .order_by(Item.available_quantity.asc(), Item.id.asc())
    )
    items = [_snapshot(row) for row in db.execute(stmt).scalars().all()]
    return schemas.ServiceResponse.ok(items, count=len(items))


def _distinct_values(db: Session, column) -> List[str]:
    return list(db.execute(select(column).distinct().order_by(column.asc())).scalars().all())


@service_operation("Failed to fetch categories")
def get_categories(db: Session) -> schemas.ServiceResponse:
    """Distinct categories in ascending order."""
    categories = _distinct_values(db, Item.category)
    return schemas.ServiceResponse.ok(categories, count=len(categories))


@service_operation("Failed to fetch locations")
def get_locations(db: Session) -> schemas.ServiceResponse:
    """Distinct locations in ascending order."""
    locations = _distinct_values(db, Item.location)
    return schemas.ServiceResponse.ok(locations, count=len(locations))


@service_operation("Failed to fetch database statistics")
def get_database_stats(db: Session) -> schemas.ServiceResponse:
    """
    Report whether the inventory table exists and how many rows it holds.

    Args:
        db: Database session

    Returns:
        ServiceResponse with DatabaseStats
    """
    table_exists = inspect(db.get_bind()).has_table(Item.__tablename__)
    total_records = 0
    if table_exists:
        total_records = db.execute(select(func.count()).select_from(Item)).scalar_one()
    return schemas.ServiceResponse.ok(schemas.DatabaseStats(table_exists=table_exists, total_records=total_records))
