"""
Unit tests for the Ortomat SQLite store.

Tests cover:
- Column encoding and decoding
- Ordering and limits on find_all
- Foreign key enforcement
- Transaction commit and rollback
"""

import pytest

from ortomat_server.errors import StorageError

NOW = "2026-10-19T06:15:00.000Z"


def _user(user_id="u1", email="a@x.com", **extra):
    return {
        "id": user_id,
        "email": email,
        "password": "$2b$04$abcdefghijklmnopqrstuv",
        "role": "ADMIN",
        "is_verified": True,
        "created_at": NOW,
        **extra,
    }


def _ortomat(ortomat_id="o1"):
    return {"id": ortomat_id, "name": "Ortomat", "address": "Main St. 1", "created_at": NOW}


def _log(log_id, created_at):
    return {
        "id": log_id,
        "type": "CELL_OPENED",
        "category": "cells",
        "message": "opened",
        "created_at": created_at,
    }


class TestOrtomatStore:
    """Tests for OrtomatStore."""

    @pytest.mark.asyncio
    async def test_initialize_creates_database(self, store):
        """Schema is created and every table starts empty."""
        assert store.db_path.exists()

        counts = await store.counts()
        assert len(counts) == 11
        assert set(counts.values()) == {0}

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, store):
        await store.create_many("users", [_user()])
        await store.initialize()

        assert await store.count("users") == 1

    @pytest.mark.asyncio
    async def test_create_and_find(self, store):
        """Records come back with the values that were stored."""
        inserted = await store.create_many("users", [_user(), _user("u2", "b@x.com")])
        assert inserted == 2

        users = await store.find_all("users")
        assert [u["id"] for u in users] == ["u1", "u2"]
        assert users[0]["email"] == "a@x.com"
        assert users[0]["middle_name"] is None

    @pytest.mark.asyncio
    async def test_bool_columns_decoded(self, store):
        await store.create_many("users", [_user(), _user("u2", "b@x.com", is_verified=False)])

        users = await store.find_all("users")
        assert users[0]["is_verified"] is True
        assert users[1]["is_verified"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["false", "true", 0, 1, "yes"])
    async def test_bool_columns_reject_non_bool(self, store, value):
        """Strings and integers are not coerced into booleans."""
        with pytest.raises(StorageError, match="expects a boolean") as exc_info:
            await store.create_many("users", [_user(is_verified=value)])

        assert exc_info.value.table == "users"
        assert await store.count("users") == 0

    @pytest.mark.asyncio
    async def test_json_columns_roundtrip(self, store):
        product = {
            "id": "p1",
            "name": "Knee brace",
            "category": "Knee braces",
            "price": 450.0,
            "images": ["/a.jpg", "/b.jpg"],
            "attributes": {"size": "S", "adjustable": True},
            "created_at": NOW,
        }
        await store.create_many("products", [product])

        [stored] = await store.find_all("products")
        assert stored["images"] == ["/a.jpg", "/b.jpg"]
        assert stored["attributes"] == {"size": "S", "adjustable": True}
        assert stored["price"] == 450.0

    @pytest.mark.asyncio
    async def test_schema_defaults_applied(self, store):
        await store.create_many("ortomats", [_ortomat()])

        [ortomat] = await store.find_all("ortomats")
        assert ortomat["status"] == "active"
        assert ortomat["total_cells"] == 37

    @pytest.mark.asyncio
    async def test_find_all_ordered_and_limited(self, store):
        logs = [_log(f"log-{i}", f"2026-10-19T06:{i:02d}:00.000Z") for i in range(5)]
        await store.create_many("logs", logs)

        newest = await store.find_all("logs", order_by="created_at", descending=True, limit=2)
        assert [log["id"] for log in newest] == ["log-4", "log-3"]

        oldest = await store.find_all("logs", order_by="created_at", limit=1)
        assert [log["id"] for log in oldest] == ["log-0"]

    @pytest.mark.asyncio
    async def test_find_all_unknown_order_column(self, store):
        with pytest.raises(StorageError, match="unknown column"):
            await store.find_all("logs", order_by="created_at; DROP TABLE logs")

    @pytest.mark.asyncio
    async def test_unknown_table(self, store):
        with pytest.raises(StorageError) as exc_info:
            await store.find_all("orders")

        assert exc_info.value.table == "orders"
        assert exc_info.value.code == "STORAGE_ERROR"

    @pytest.mark.asyncio
    async def test_unknown_column_rejected(self, store):
        with pytest.raises(StorageError, match="Unknown column 'nickname'"):
            await store.create_many("users", [_user(nickname="al")])

        assert await store.count("users") == 0

    @pytest.mark.asyncio
    async def test_foreign_key_enforced_on_insert(self, store):
        """A child cannot reference a parent that does not exist."""
        cell = {"id": "c1", "number": 1, "ortomat_id": "missing", "created_at": NOW}

        with pytest.raises(StorageError) as exc_info:
            await store.create_many("cells", [cell])

        assert exc_info.value.operation == "create"
        assert "FOREIGN KEY" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_foreign_key_enforced_on_delete(self, store):
        """A parent cannot be deleted while children still reference it."""
        await store.create_many("ortomats", [_ortomat()])
        await store.create_many(
            "cells", [{"id": "c1", "number": 1, "ortomat_id": "o1", "created_at": NOW}]
        )

        with pytest.raises(StorageError):
            await store.delete_all("ortomats")

        assert await store.count("ortomats") == 1

    @pytest.mark.asyncio
    async def test_unique_constraint(self, store):
        with pytest.raises(StorageError):
            await store.create_many("users", [_user(), _user("u2")])

    @pytest.mark.asyncio
    async def test_delete_all_returns_rowcount(self, store):
        await store.create_many("ortomats", [_ortomat("o1"), _ortomat("o2")])

        assert await store.delete_all("ortomats") == 2
        assert await store.count("ortomats") == 0


class TestTransactions:
    """Tests for transaction() and read_transaction()."""

    @pytest.mark.asyncio
    async def test_commit(self, store):
        async with store.transaction() as session:
            await session.create_many("ortomats", [_ortomat()])
            await session.create_many(
                "cells", [{"id": "c1", "number": 1, "ortomat_id": "o1", "created_at": NOW}]
            )

        assert await store.count("cells") == 1

    @pytest.mark.asyncio
    async def test_rollback_on_storage_error(self, store):
        """A failure part-way through leaves no trace of the block."""
        await store.create_many("users", [_user()])

        with pytest.raises(StorageError):
            async with store.transaction() as session:
                await session.delete_all("users")
                await session.create_many("ortomats", [_ortomat()])
                await session.create_many(
                    "cells", [{"id": "c1", "number": 1, "ortomat_id": "nope", "created_at": NOW}]
                )

        assert [u["id"] for u in await store.find_all("users")] == ["u1"]
        assert await store.count("ortomats") == 0

    @pytest.mark.asyncio
    async def test_rollback_on_other_exception(self, store):
        with pytest.raises(RuntimeError):
            async with store.transaction() as session:
                await session.create_many("ortomats", [_ortomat()])
                raise RuntimeError("boom")

        assert await store.count("ortomats") == 0

    @pytest.mark.asyncio
    async def test_read_transaction_sees_committed_data(self, seeded_store):
        async with seeded_store.read_transaction() as session:
            users = await session.find_all("users")
            cells = await session.count("cells")

        assert len(users) == 3
        assert cells == 8
