"""
SpendTrack Backend — API Route Tests
======================================

What we test:
    ✅ Scan, add, list, register and login through the HTTP layer
    ✅ Error bodies: {"error": kind, "message", "details", "request_id"}
    ✅ Partial failure body exposes ids and counts, not internal errors
    ✅ Request id and total count headers
"""

import json
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from spendtrack.models.user import User
from spendtrack.services.auth_service import hash_password


def _scan_body(owner_id, payload):
    return {"user_id": owner_id, "data": json.dumps(payload)}


class TestScanRoute:
    """Tests for POST /api/expenses/scan."""

    @pytest.mark.asyncio
    async def test_scan_success(self, test_client, memory_store, owner_id):
        """A valid scan returns 201 with every expense."""
        payload = {"items": [{"name": "Tea", "price": 2, "quantity": 3}, {"name": "Jam", "price": 4}]}

        response = await test_client.post("/api/expenses/scan", json=_scan_body(owner_id, payload))

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Expenses added via QR scan successfully"
        assert [(e["category"], e["amount"]) for e in body["expenses"]] == [("Tea", 6), ("Jam", 4)]
        assert all(e["user_id"] == owner_id for e in body["expenses"])
        assert len(memory_store.inserted) == 2

    @pytest.mark.asyncio
    async def test_scan_malformed_data(self, test_client, memory_store, owner_id):
        """Malformed data returns 400 invalid_payload_format."""
        response = await test_client.post(
            "/api/expenses/scan", json={"user_id": owner_id, "data": "{not json"}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_payload_format"
        assert body["request_id"]
        assert memory_store.insert_calls == 0

    @pytest.mark.asyncio
    async def test_scan_invalid_price(self, test_client, memory_store, owner_id):
        """An invalid price returns 400 with the item index."""
        payload = [{"name": "Tea", "price": 2}, {"name": "Bad", "price": "two"}]

        response = await test_client.post("/api/expenses/scan", json=_scan_body(owner_id, payload))

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_price"
        assert body["details"]["item_index"] == 1
        assert memory_store.insert_calls == 0

    @pytest.mark.asyncio
    async def test_scan_no_items(self, test_client, owner_id):
        """A payload without items returns 400 no_valid_items."""
        response = await test_client.post(
            "/api/expenses/scan", json=_scan_body(owner_id, {"store": "Shop"})
        )

        assert response.status_code == 400
        assert response.json()["error"] == "no_valid_items"

    @pytest.mark.asyncio
    async def test_scan_invalid_owner(self, test_client):
        """A malformed user id returns 400 invalid_owner_identity."""
        response = await test_client.post(
            "/api/expenses/scan", json=_scan_body("not-a-uuid", {"name": "Tea", "price": 1})
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_owner_identity"

    @pytest.mark.asyncio
    async def test_scan_partial_failure(self, test_client, memory_store, owner_id):
        """A partial failure returns 500 with ids and counts only."""
        memory_store.fail_categories = {"Jam"}
        payload = [{"name": "Tea", "price": 2}, {"name": "Jam", "price": 4}]

        response = await test_client.post("/api/expenses/scan", json=_scan_body(owner_id, payload))

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "partial_persistence_failure"
        assert body["details"]["attempted"] == 2
        assert body["details"]["persisted"] == 1
        assert body["details"]["failed"] == 1
        assert body["details"]["failed_items"] == [1]
        assert body["details"]["persisted_ids"] == [str(memory_store.inserted[0].id)]
        assert "errors" not in body["details"]

    @pytest.mark.asyncio
    async def test_scan_huge_integer_price(self, test_client, memory_store, owner_id):
        """An integer price beyond float range returns 400, not 500."""
        data = '{"name": "Tea", "price": 1' + "0" * 400 + "}"

        response = await test_client.post(
            "/api/expenses/scan", json={"user_id": owner_id, "data": data}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_price"
        assert memory_store.insert_calls == 0

    @pytest.mark.asyncio
    async def test_scan_amount_overflow(self, test_client, memory_store, owner_id):
        """An overflowing amount returns 400 and nothing is stored."""
        payload = {"name": "Tea", "price": 1e300, "quantity": 1e10}

        response = await test_client.post("/api/expenses/scan", json=_scan_body(owner_id, payload))

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "invalid_quantity"
        assert body["details"]["item_index"] == 0
        assert memory_store.insert_calls == 0

    @pytest.mark.asyncio
    async def test_scan_name_too_long(self, test_client, memory_store, owner_id):
        """A name longer than the category column returns 400 before any insert."""
        payload = [{"name": "Tea", "price": 1}, {"name": "x" * 300, "price": 2}]

        response = await test_client.post("/api/expenses/scan", json=_scan_body(owner_id, payload))

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "name_too_long"
        assert body["details"]["item_index"] == 1
        assert memory_store.insert_calls == 0

    @pytest.mark.asyncio
    async def test_scan_missing_data_field(self, test_client, owner_id):
        """A body without data fails schema validation."""
        response = await test_client.post("/api/expenses/scan", json={"user_id": owner_id})
        assert response.status_code == 422


class TestAddRoute:
    """Tests for POST /api/expenses/add."""

    @pytest.mark.asyncio
    async def test_add_expense(self, test_client, memory_store, owner_id):
        """A valid expense returns 201."""
        response = await test_client.post(
            "/api/expenses/add",
            json={"user_id": owner_id, "category": "Rent", "amount": 900},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Expense added successfully"
        assert body["expense"]["category"] == "Rent"
        assert body["expense"]["amount"] == 900
        assert len(memory_store.inserted) == 1

    @pytest.mark.asyncio
    async def test_add_zero_amount(self, test_client, owner_id):
        """A zero amount returns 400 validation_error."""
        response = await test_client.post(
            "/api/expenses/add",
            json={"user_id": owner_id, "category": "Rent", "amount": 0},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "amount"

    @pytest.mark.asyncio
    async def test_add_string_amount_rejected_by_schema(self, test_client, owner_id):
        """A string amount fails schema validation."""
        response = await test_client.post(
            "/api/expenses/add",
            json={"user_id": owner_id, "category": "Rent", "amount": "900"},
        )
        assert response.status_code == 422


    @pytest.mark.asyncio
    async def test_add_blank_category_rejected_by_schema(self, test_client, memory_store, owner_id):
        """A whitespace-only category fails schema validation."""
        response = await test_client.post(
            "/api/expenses/add",
            json={"user_id": owner_id, "category": "   ", "amount": 12},
        )

        assert response.status_code == 422
        assert memory_store.insert_calls == 0

    @pytest.mark.asyncio
    async def test_add_category_is_stripped(self, test_client, memory_store, owner_id):
        """The stored category has surrounding whitespace removed."""
        response = await test_client.post(
            "/api/expenses/add",
            json={"user_id": owner_id, "category": "  Rent  ", "amount": 12},
        )

        assert response.status_code == 201
        assert response.json()["expense"]["category"] == "Rent"


class TestListRoute:
    """Tests for GET /api/expenses/{user_id}."""

    @pytest.mark.asyncio
    async def test_list_sets_total_header(self, test_client, mock_db_session, owner_id):
        """The total count is echoed in X-Total-Count."""
        rows_result = MagicMock()
        rows_result.scalars.return_value.all.return_value = []
        count_result = MagicMock()
        count_result.scalar.return_value = 7
        mock_db_session.execute = AsyncMock(side_effect=[rows_result, count_result])

        response = await test_client.get(f"/api/expenses/{owner_id}", params={"limit": 5})

        assert response.status_code == 200
        assert response.headers["X-Total-Count"] == "7"
        body = response.json()
        assert body["total_pages"] == 2
        assert body["current_page"] == 1

    @pytest.mark.asyncio
    async def test_list_invalid_user(self, test_client):
        """A malformed user id returns 400."""
        response = await test_client.get("/api/expenses/not-a-uuid")

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_owner_identity"

    @pytest.mark.asyncio
    async def test_list_limit_out_of_range(self, test_client, owner_id):
        """A limit above the maximum fails validation."""
        response = await test_client.get(f"/api/expenses/{owner_id}", params={"limit": 1000})
        assert response.status_code == 422


class TestAuthRoutes:
    """Tests for the auth endpoints."""

    @pytest.mark.asyncio
    async def test_register(self, test_client, mock_db_session):
        """Registration returns 201 with a message."""
        lookup = MagicMock()
        lookup.scalar_one_or_none.return_value = None
        mock_db_session.execute = AsyncMock(return_value=lookup)

        response = await test_client.post(
            "/api/auth/register",
            json={
                "full_name": "Ada Lovelace",
                "email": "ada@example.com",
                "password": "secret123",
                "confirm_password": "secret123",
            },
        )

        assert response.status_code == 201
        assert response.json()["message"] == "User registered successfully"

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, test_client, mock_db_session):
        """A wrong password returns 401."""
        user = User(
            id=uuid4(),
            full_name="Ada Lovelace",
            email="ada@example.com",
            password_hash=hash_password("secret123"),
            monthly_budget=0.0,
            preferred_currency="USD",
            notification_pref=False,
        )
        lookup = MagicMock()
        lookup.scalar_one_or_none.return_value = user
        mock_db_session.execute = AsyncMock(return_value=lookup)

        response = await test_client.post(
            "/api/auth/login", json={"email": "ada@example.com", "password": "nope-nope"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "authentication_error"


class TestHealthRoutes:
    """Tests for the banner and request id handling."""

    @pytest.mark.asyncio
    async def test_root_banner(self, test_client):
        """GET / returns the banner message."""
        response = await test_client.get("/")

        assert response.status_code == 200
        assert "working correctly" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        """A client-supplied request id is echoed back."""
        response = await test_client.get("/", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, test_client):
        """A request id is generated when none is sent."""
        response = await test_client.get("/")
        assert len(response.headers["X-Request-ID"]) == 8
