"""
HTTP client for communicating with the Inventory service.

This module provides async functions mirroring the Inventory REST surface.
Each function returns the decoded response envelope
({"success": ..., "data": ..., "error": ...}) so callers branch on
``success`` exactly as they would with the service layer.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import INVENTORY_CLIENT_TIMEOUT, INVENTORY_SERVICE_URL

logger = logging.getLogger(__name__)


def _decode(response: httpx.Response) -> Dict[str, Any]:
    """Return the JSON envelope; responses without one raise httpx.HTTPStatusError."""
    try:
        envelope = response.json()
    except ValueError:
        response.raise_for_status()
        raise
    if not envelope.get("success"):
        logger.warning(
            f"Inventory service {response.request.method} {response.request.url.path} "
            f"returned {response.status_code}: {envelope.get('error')}"
        )
    return envelope


async def _request(method: str, path: str, client: Optional[httpx.AsyncClient] = None, **kwargs) -> Dict[str, Any]:
    if client is not None:
        return _decode(await client.request(method, path, **kwargs))
    async with httpx.AsyncClient(base_url=INVENTORY_SERVICE_URL, timeout=INVENTORY_CLIENT_TIMEOUT) as owned:
        return _decode(await owned.request(method, path, **kwargs))


async def list_items(
    search: Optional[str] = None,
    category: Optional[str] = None,
    location: Optional[str] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """
    List inventory items matching the optional filters.

    Args:
        search: Case-insensitive substring on name, product ID and category
        category: Exact category
        location: Exact location
        limit: Maximum number of items
        offset: Items to skip (requires limit)
        client: Client to reuse; a short-lived one is opened otherwise

    Returns:
        Response envelope with the items and their count

    Raises:
        httpx.HTTPError: If there's a network error or the service is unavailable
    """
    params = {
        key: value
        for key, value in {
            "search": search, "category": category, "location": location,
            "limit": limit, "offset": offset,
        }.items()
        if value is not None
    }
    return await _request("GET", "/inventory", client, params=params)


async def get_item(item_id: int, client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """
    Retrieve one inventory item by ID.

    Raises:
        httpx.HTTPError: If there's a network error or the service is unavailable
    """
    return await _request("GET", f"/inventory/{item_id}", client)


async def create_item(item: Dict[str, Any], client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """
    Create an inventory item.

    Args:
        item: The seven item fields
        client: Client to reuse

    Returns:
        Response envelope with the created item

    Raises:
        httpx.HTTPError: If there's a network error or the service is unavailable
    """
    return await _request("POST", "/inventory", client, json=item)


async def update_item(item_id: int, data: Dict[str, Any], client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """Apply a partial update to an inventory item."""
    return await _request("PUT", f"/inventory/{item_id}", client, json=data)


async def delete_item(item_id: int, client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """Delete an inventory item; the envelope carries the deleted record."""
    return await _request("DELETE", f"/inventory/{item_id}", client)


async def bulk_update(updates: List[Dict[str, Any]], client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """
    Apply several updates atomically.

    Args:
        updates: List of {"id": ..., "data": {...}} entries
        client: Client to reuse

    Returns:
        Response envelope with the updated items, or the failure of the first bad entry

    Raises:
        httpx.HTTPError: If there's a network error or the service is unavailable
    """
    return await _request("PUT", "/inventory/bulk", client, json={"updates": updates})


async def get_statistics(threshold: Optional[int] = None, client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """Fetch aggregate inventory statistics."""
    params = {"threshold": threshold} if threshold is not None else {}
    return await _request("GET", "/inventory/stats", client, params=params)


async def update_quantities(
    item_id: int, quantities: Dict[str, int], client: Optional[httpx.AsyncClient] = None
) -> Dict[str, Any]:
    """
    Adjust only the quantity fields of an inventory item.

    Args:
        item_id: ID of the item to adjust
        quantities: Any of available_quantity, reserved_quantity, on_hand_quantity
        client: Client to reuse

    Raises:
        httpx.HTTPError: If there's a network error or the service is unavailable
    """
    return await _request("PATCH", f"/inventory/{item_id}/quantities", client, json=quantities)


async def get_low_stock_items(threshold: Optional[int] = None, client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """Fetch items whose available quantity is below ``threshold``."""
    params = {"threshold": threshold} if threshold is not None else {}
    return await _request("GET", "/inventory/low-stock", client, params=params)


async def get_categories(client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """Fetch the sorted distinct categories."""
    return await _request("GET", "/inventory/categories", client)


async def get_locations(client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """Fetch the sorted distinct locations."""
    return await _request("GET", "/inventory/locations", client)
