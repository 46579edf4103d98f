"""Tests for the async Inventory HTTP client, run against the app in-process."""

from typing import AsyncIterator

import httpx
import pytest
import pytest_asyncio

from conftest import make_item
from inventory_manager.clients import inventory_client
from inventory_manager.main import app


@pytest_asyncio.fixture
async def http(api: None) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.mark.asyncio
async def test_create_get_update_delete(http: httpx.AsyncClient) -> None:
    created = await inventory_client.create_item(make_item(), client=http)
    assert created["success"] is True
    item_id = created["data"]["id"]

    fetched = await inventory_client.get_item(item_id, client=http)
    assert fetched["data"] == created["data"]

    updated = await inventory_client.update_item(item_id, {"available_quantity": 1}, client=http)
    assert updated["data"]["available_quantity"] == 1

    deleted = await inventory_client.delete_item(item_id, client=http)
    assert deleted["data"] == updated["data"]

    missing = await inventory_client.get_item(item_id, client=http)
    assert missing == {"success": False, "error": "Inventory item not found"}


@pytest.mark.asyncio
async def test_list_passes_filters(http: httpx.AsyncClient) -> None:
    await inventory_client.create_item(make_item(product_id="A", location="North"), client=http)
    await inventory_client.create_item(make_item(product_id="B", location="South"), client=http)

    result = await inventory_client.list_items(location="South", limit=10, client=http)

    assert result["count"] == 1
    assert result["data"][0]["product_id"] == "B"


@pytest.mark.asyncio
async def test_failures_come_back_as_envelopes(http: httpx.AsyncClient) -> None:
    await inventory_client.create_item(make_item(), client=http)

    duplicate = await inventory_client.create_item(make_item(), client=http)

    assert duplicate["success"] is False
    assert duplicate["error"] == "Product ID already exists. Please use a unique Product ID."


@pytest.mark.asyncio
async def test_bulk_update_and_statistics(http: httpx.AsyncClient) -> None:
    a = (await inventory_client.create_item(make_item(product_id="A"), client=http))["data"]
    b = (await inventory_client.create_item(make_item(product_id="B"), client=http))["data"]

    result = await inventory_client.bulk_update(
        [{"id": a["id"], "data": {"available_quantity": 80}}, {"id": b["id"], "data": {"available_quantity": 90}}],
        client=http,
    )
    stats = await inventory_client.get_statistics(client=http)

    assert result["count"] == 2
    assert stats["data"]["total_available_quantity"] == 170
    assert stats["data"]["low_stock_items"] == 0


@pytest.mark.asyncio
async def test_non_json_error_raises() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway"))
    async with httpx.AsyncClient(transport=transport, base_url="http://inventory") as client:
        with pytest.raises(httpx.HTTPStatusError):
            await inventory_client.get_item(1, client=client)


@pytest.mark.asyncio
async def test_quantities_low_stock_categories_and_locations(http: httpx.AsyncClient) -> None:
    a = (await inventory_client.create_item(make_item(product_id="A", category="Tools", location="North"), client=http))["data"]
    await inventory_client.create_item(make_item(product_id="B", category="Paint", location="South"), client=http)

    adjusted = await inventory_client.update_quantities(a["id"], {"available_quantity": 3}, client=http)
    rejected = await inventory_client.update_quantities(a["id"], {"product_name": "x"}, client=http)
    low_stock = await inventory_client.get_low_stock_items(threshold=5, client=http)
    categories = await inventory_client.get_categories(client=http)
    locations = await inventory_client.get_locations(client=http)

    assert adjusted["data"]["available_quantity"] == 3
    assert rejected["success"] is False
    assert [item["product_id"] for item in low_stock["data"]] == ["A"]
    assert categories["data"] == ["Paint", "Tools"]
    assert locations["data"] == ["North", "South"]
