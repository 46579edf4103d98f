"""
    Inventory Service API

    This module implements a FastAPI-based service for managing inventory items with full CRUD operations.
    It provides endpoints for listing, creating, reading, updating and deleting inventory items,
    bulk updates, stock adjustments and aggregate statistics, with relational database persistence.

    Every JSON endpoint answers with the same envelope:
        {"success": bool, "data"?, "error"?, "message"?, "count"?, "details"?}

    Business logic lives in the crud module; the handlers here only translate
    HTTP requests into service calls and service results into status codes.
"""
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional
import csv
import io
import logging
from fastapi import Body, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.orm import Session

from . import config, crud, schemas
from .database import engine, get_db, init_db
from .errors import ErrorType

logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Inventory service starting up...")
    init_db()
    yield
    logger.info("Inventory service shutting down...")
    engine.dispose()

app = FastAPI(title="inventory-service", lifespan=lifespan)

STATUS_BY_ERROR = {
    ErrorType.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorType.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorType.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorType.INFRASTRUCTURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

CSV_COLUMNS = [
    'id', 'product_name', 'product_id', 'category', 'location',
    'available_quantity', 'reserved_quantity', 'on_hand_quantity',
    'created_at', 'updated_at',
]


def respond(result: schemas.ServiceResponse, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """
    Turn a service result into a JSON response with the matching status code.

    Args:
        result: Result returned by a crud operation
        success_status: Status code used when the operation succeeded

    Returns:
        JSONResponse carrying the response envelope
    """
    if result.success:
        status_code = success_status
    else:
        status_code = STATUS_BY_ERROR[result.error_type or ErrorType.INFRASTRUCTURE]
    return JSONResponse(status_code=status_code, content=result.to_envelope())


def parse_item_id(raw: str) -> Optional[int]:
    """Parse a path id; None when it is not a plain decimal number."""
    if raw.isascii() and raw.isdigit():
        return int(raw)
    return None


def invalid_item_id() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": "Invalid item ID"},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed bodies and query parameters as 400 in the usual envelope."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    logger.info(f"Rejected request to {request.url.path}: {location} {first.get('msg')}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "Invalid request",
            "details": f"{location}: {first.get('msg', 'invalid value')}",
        },
    )


@app.get("/healthz")
def health(db: Session = Depends(get_db)):
    """
    Health check endpoint for the inventory service.

    Reports whether the database answers and whether the inventory table exists.

    Returns:
        200 with database statistics when healthy, 503 otherwise.

    Example:
        GET /healthz
        Response: {"success": true, "data": {"table_exists": true, "total_records": 12}}
    """
    result = crud.get_database_stats(db)
    if not result.success or not result.data.table_exists:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={**result.to_envelope(), "success": False, "error": result.error or "Inventory table missing"},
        )
    return respond(result)


@app.get("/inventory")
def list_inventory_items(
    search: Optional[str] = None,
    category: Optional[str] = None,
    location: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    db: Session = Depends(get_db)
):
    """
    List inventory items, newest first.

    Args:
        search: Case-insensitive substring matched against name, product ID and category
        category: Exact category filter
        location: Exact location filter
        limit: Maximum number of items to return
        offset: Number of items to skip (requires limit)
        db: Database session (injected)

    Returns:
        Envelope with the list of items and their count
    """
    filters = {
        key: value
        for key, value in {
            "search": search, "category": category, "location": location,
            "limit": limit, "offset": offset,
        }.items()
        if value is not None
    }
    return respond(crud.list_items(db, filters))


@app.post("/inventory")
def create_inventory_item(payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    """
    Create a new inventory item.

    Returns:
        201 with the created item; 400 on a missing or invalid field,
        409 when the product ID already exists
    """
    return respond(crud.create_item(db, payload), success_status=status.HTTP_201_CREATED)


@app.put("/inventory/bulk")
def bulk_update_inventory_items(payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    """
    Apply several updates in one transaction.

    Body:
        {"updates": [{"id": 1, "data": {...}}, ...]}

    Returns:
        Envelope with every updated item in input order; on failure nothing
        is applied and the error names the failing item and index
    """
    return respond(crud.bulk_update_items(db, payload.get("updates")))


@app.get("/inventory/stats")
def get_inventory_statistics(threshold: Optional[int] = None, db: Session = Depends(get_db)):
    """Aggregate inventory statistics, low stock counted below ``threshold``."""
    return respond(crud.get_statistics(db, threshold))


@app.get("/inventory/low-stock")
def get_low_stock_inventory(threshold: Optional[int] = None, db: Session = Depends(get_db)):
    """Items whose available quantity is below ``threshold``, lowest first."""
    return respond(crud.get_low_stock_items(db, threshold))


@app.get("/inventory/categories")
def get_inventory_categories(db: Session = Depends(get_db)):
    return respond(crud.get_categories(db))


@app.get("/inventory/locations")
def get_inventory_locations(db: Session = Depends(get_db)):
    return respond(crud.get_locations(db))


@app.get("/inventory/export/csv")
def export_inventory_csv(db: Session = Depends(get_db)):
    """
    Export all inventory items to CSV.

    Returns:
        CSV file with one row per item, newest first
    """
    result = crud.list_items(db)
    if not result.success:
        return respond(result)

    output = io.StringIO()
    writer = csv.writer(output)

    # Write header
    writer.writerow(CSV_COLUMNS)

    # Write data
    for item in result.data:
        row = item.model_dump()
        writer.writerow([
            row[column].isoformat() if column in ('created_at', 'updated_at') else row[column]
            for column in CSV_COLUMNS
        ])

    output.seek(0)
    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=inventory.csv"}
    )


@app.get("/inventory/{item_id}")
def get_inventory_item(item_id: str, db: Session = Depends(get_db)):
    """
    Get a single inventory item by ID.

    Returns:
        200 with the item; 400 for a non-numeric id, 404 if not found
    """
    parsed_id = parse_item_id(item_id)
    if parsed_id is None:
        return invalid_item_id()
    return respond(crud.get_item(db, parsed_id))


@app.put("/inventory/{item_id}")
def update_inventory_item(item_id: str, payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    """
    Update an existing inventory item with any subset of its fields.

    Returns:
        200 with the updated item; 400, 404 or 409 on failure
    """
    parsed_id = parse_item_id(item_id)
    if parsed_id is None:
        return invalid_item_id()
    return respond(crud.update_item(db, parsed_id, payload))


@app.patch("/inventory/{item_id}/quantities")
def adjust_inventory_quantities(item_id: str, payload: Dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    """Adjust available, reserved and on-hand quantities of an item."""
    parsed_id = parse_item_id(item_id)
    if parsed_id is None:
        return invalid_item_id()
    return respond(crud.update_quantities(db, parsed_id, payload))


@app.delete("/inventory/{item_id}")
def delete_inventory_item(item_id: str, db: Session = Depends(get_db)):
    """
    Delete an inventory item.

    Returns:
        200 with the deleted item as it was; 400 for a non-numeric id, 404 if not found
    """
    parsed_id = parse_item_id(item_id)
    if parsed_id is None:
        return invalid_item_id()
    return respond(crud.delete_item(db, parsed_id))
