"""Tests for the Inventory HTTP endpoints."""

import csv
import io
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

from conftest import make_item


def post_item(client: TestClient, **overrides: Any) -> Dict[str, Any]:
    response = client.post("/inventory", json=make_item(**overrides))
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestListEndpoint:
    """GET /inventory"""

    def test_lists_with_envelope(self, client: TestClient) -> None:
        post_item(client, product_id="A")
        post_item(client, product_id="B")

        response = client.get("/inventory")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 2
        assert [item["product_id"] for item in body["data"]] == ["B", "A"]

    def test_filters_via_query_string(self, client: TestClient) -> None:
        post_item(client, product_id="A", category="Tools", location="North")
        post_item(client, product_id="B", category="Tools", location="South")
        post_item(client, product_id="C", category="Paint", location="North")

        response = client.get("/inventory", params={"category": "Tools", "location": "North"})

        assert [item["product_id"] for item in response.json()["data"]] == ["A"]

    def test_non_numeric_limit_is_bad_request(self, client: TestClient) -> None:
        response = client.get("/inventory", params={"limit": "many"})

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_offset_without_limit_is_bad_request(self, client: TestClient) -> None:
        response = client.get("/inventory", params={"offset": 5})

        assert response.status_code == 400

    @pytest.mark.parametrize("params", [{"limit": 2**64}, {"limit": 10, "offset": 2**40}])
    def test_oversized_paging_is_bad_request(self, client: TestClient, params: Dict[str, int]) -> None:
        response = client.get("/inventory", params=params)

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestCreateEndpoint:
    """POST /inventory"""

    def test_created(self, client: TestClient) -> None:
        response = client.post("/inventory", json=make_item())

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Inventory item created successfully"
        assert body["data"]["id"] >= 1
        assert body["data"]["created_at"] == body["data"]["updated_at"]

    def test_missing_field(self, client: TestClient) -> None:
        payload = make_item()
        del payload["category"]

        response = client.post("/inventory", json=payload)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Missing required field: category"}

    def test_negative_quantity(self, client: TestClient) -> None:
        response = client.post("/inventory", json=make_item(on_hand_quantity=-3))

        assert response.status_code == 400
        assert response.json()["error"] == "on_hand_quantity must be a non-negative number"

    def test_duplicate_product_id(self, client: TestClient) -> None:
        post_item(client)

        response = client.post("/inventory", json=make_item(product_name="Dup"))

        assert response.status_code == 409
        assert client.get("/inventory").json()["count"] == 1

    def test_body_must_be_an_object(self, client: TestClient) -> None:
        response = client.post("/inventory", json=[1, 2, 3])

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"


class TestItemEndpoints:
    """GET, PUT, PATCH and DELETE /inventory/{id}"""

    def test_get(self, client: TestClient) -> None:
        created = post_item(client)

        response = client.get(f"/inventory/{created['id']}")

        assert response.status_code == 200
        assert response.json()["data"] == created

    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_non_numeric_id(self, client: TestClient, method: str) -> None:
        kwargs = {"json": {"category": "x"}} if method == "put" else {}

        response = getattr(client, method)("/inventory/abc", **kwargs)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid item ID"}

    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_not_found(self, client: TestClient, method: str) -> None:
        kwargs = {"json": {"category": "x"}} if method == "put" else {}

        response = getattr(client, method)("/inventory/404", **kwargs)

        assert response.status_code == 404
        assert response.json()["error"] == "Inventory item not found"

    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_id_beyond_integer_range_is_not_found(self, client: TestClient, method: str) -> None:
        kwargs = {"json": {"category": "x"}} if method == "put" else {}

        response = getattr(client, method)("/inventory/99999999999999999999999", **kwargs)

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Inventory item not found"}

    def test_put_partial(self, client: TestClient) -> None:
        created = post_item(client)

        response = client.put(f"/inventory/{created['id']}", json={"available_quantity": 5})

        assert response.status_code == 200
        updated = response.json()["data"]
        assert updated["available_quantity"] == 5
        assert updated["product_id"] == created["product_id"]
        assert updated["updated_at"] > created["updated_at"]

    def test_put_validation_and_conflict(self, client: TestClient) -> None:
        post_item(client, product_id="A")
        b = post_item(client, product_id="B")

        negative = client.put(f"/inventory/{b['id']}", json={"reserved_quantity": -1})
        empty = client.put(f"/inventory/{b['id']}", json={})
        conflict = client.put(f"/inventory/{b['id']}", json={"product_id": "A"})

        assert negative.status_code == 400
        assert empty.status_code == 400
        assert empty.json()["error"] == "No fields to update"
        assert conflict.status_code == 409

    def test_patch_quantities(self, client: TestClient) -> None:
        created = post_item(client)

        ok = client.patch(f"/inventory/{created['id']}/quantities", json={"reserved_quantity": 0})
        rejected = client.patch(f"/inventory/{created['id']}/quantities", json={"product_name": "x"})

        assert ok.status_code == 200
        assert ok.json()["data"]["reserved_quantity"] == 0
        assert rejected.status_code == 400

    def test_delete_returns_removed_item(self, client: TestClient) -> None:
        created = post_item(client)

        response = client.delete(f"/inventory/{created['id']}")

        assert response.status_code == 200
        assert response.json()["data"] == created
        assert response.json()["message"] == "Inventory item deleted successfully"
        assert client.get(f"/inventory/{created['id']}").status_code == 404


class TestBulkEndpoint:
    """PUT /inventory/bulk"""

    def test_bulk_success(self, client: TestClient) -> None:
        a = post_item(client, product_id="A")
        b = post_item(client, product_id="B")

        response = client.put(
            "/inventory/bulk",
            json={"updates": [{"id": a["id"], "data": {"location": "X"}}, {"id": b["id"], "data": {"location": "Y"}}]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert [item["location"] for item in body["data"]] == ["X", "Y"]

    def test_bulk_failure_is_atomic(self, client: TestClient) -> None:
        a = post_item(client, product_id="A")

        response = client.put(
            "/inventory/bulk",
            json={"updates": [{"id": a["id"], "data": {"location": "X"}}, {"id": 999, "data": {"location": "Y"}}]},
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Failed to update item 999 at index 1: Inventory item not found"
        assert client.get(f"/inventory/{a['id']}").json()["data"] == a

    def test_bulk_requires_updates_list(self, client: TestClient) -> None:
        response = client.put("/inventory/bulk", json={"items": []})

        assert response.status_code == 400


class TestAggregateEndpoints:
    """Statistics, low stock, categories, locations and CSV export."""

    def test_stats_on_empty_table(self, client: TestClient) -> None:
        response = client.get("/inventory/stats")

        assert response.status_code == 200
        assert response.json()["data"] == {
            "total_items": 0,
            "total_available_quantity": 0,
            "total_reserved_quantity": 0,
            "total_on_hand_quantity": 0,
            "categories_count": 0,
            "locations_count": 0,
            "low_stock_items": 0,
        }

    def test_stats_threshold(self, client: TestClient) -> None:
        post_item(client, product_id="A", available_quantity=70)

        assert client.get("/inventory/stats").json()["data"]["low_stock_items"] == 0
        assert client.get("/inventory/stats", params={"threshold": 100}).json()["data"]["low_stock_items"] == 1

    def test_low_stock(self, client: TestClient) -> None:
        post_item(client, product_id="A", available_quantity=70)
        post_item(client, product_id="B", available_quantity=7)

        body = client.get("/inventory/low-stock").json()

        assert [item["product_id"] for item in body["data"]] == ["B"]

    def test_oversized_threshold_is_bad_request(self, client: TestClient) -> None:
        assert client.get("/inventory/stats", params={"threshold": 2**40}).status_code == 400
        assert client.get("/inventory/low-stock", params={"threshold": 2**40}).status_code == 400

    def test_categories_and_locations(self, client: TestClient) -> None:
        post_item(client, product_id="A", category="b", location="y")
        post_item(client, product_id="B", category="a", location="z")

        assert client.get("/inventory/categories").json()["data"] == ["a", "b"]
        assert client.get("/inventory/locations").json()["data"] == ["y", "z"]

    def test_csv_export(self, client: TestClient) -> None:
        created = post_item(client, product_name="Comma, Inc. widget")

        response = client.get("/inventory/export/csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        rows = list(csv.DictReader(io.StringIO(response.text)))
        assert len(rows) == 1
        assert rows[0]["product_name"] == "Comma, Inc. widget"
        assert rows[0]["id"] == str(created["id"])


def test_healthz(client: TestClient) -> None:
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["data"] == {"table_exists": True, "total_records": 0}
