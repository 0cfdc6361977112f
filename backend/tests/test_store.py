"""Tests for the entity store."""

from __future__ import annotations

from pathlib import Path

import pytest

from notum.core.errors import ConstraintViolationError, NotOpenError
from notum.db.store import EntityStore
from notum.utils.time import isoformat


async def test_insert_stamps_timestamps_over_caller_values(store: EntityStore, clock) -> None:
    row = await store.insert("users", {"id": "u1", "name": "Ada", "created_at": "1999-01-01"})
    assert row["created_at"] == isoformat(clock())
    assert row["updated_at"] == row["created_at"]
    assert (await store.get("users", "u1"))["name"] == "Ada"


async def test_update_refreshes_updated_at_only(store: EntityStore, clock) -> None:
    created = await store.insert("users", {"id": "u1", "name": "Ada"})
    clock.advance(seconds=5)
    updated = await store.update("users", "u1", {"name": "Grace", "created_at": "ignored"})
    assert updated["name"] == "Grace"
    assert updated["created_at"] == created["created_at"]
    assert updated["updated_at"] == isoformat(clock())
    assert await store.update("users", "missing", {"name": "x"}) is None


async def test_timestamps_strictly_increase_when_clock_stands_still(store: EntityStore) -> None:
    first = await store.insert("users", {"id": "u1", "name": "a"})
    second = await store.insert("users", {"id": "u2", "name": "b"})
    assert second["created_at"] > first["created_at"]


async def test_closed_store_raises_not_open(tmp_path: Path) -> None:
    entity_store = EntityStore(tmp_path / "closed.db")
    with pytest.raises(NotOpenError):
        await entity_store.get("users", "u1")
    await entity_store.open()
    await entity_store.close()
    with pytest.raises(NotOpenError):
        await entity_store.insert("users", {"id": "u1", "name": "a"})


async def test_unique_index_violation(store: EntityStore) -> None:
    base = {"type": "page", "url": "https://example.com", "title": "Example"}
    await store.insert("resources", {"id": "r1", "content_hash": "h1", **base})
    with pytest.raises(ConstraintViolationError):
        await store.insert("resources", {"id": "r2", "content_hash": "h2", **base})
    assert await store.count("resources") == 1


async def test_transaction_rolls_back_every_write(store: EntityStore) -> None:
    await store.insert("users", {"id": "keep", "name": "kept"})
    with pytest.raises(RuntimeError):
        async with store.transaction() as tx:
            await tx.insert("users", {"id": "u1", "name": "a"})
            await tx.delete("users", "keep")
            raise RuntimeError("abort")
    assert await store.get("users", "u1") is None
    assert await store.get("users", "keep") is not None


async def test_find_filters_orders_and_bounds(store: EntityStore, clock) -> None:
    for index, when in enumerate(("2024-01-03", "2024-01-01", "2024-01-02")):
        await store.insert(
            "flashcards",
            {
                "id": f"fc{index}",
                "resource_id": "r1",
                "highlight_id": None,
                "next_review": f"{when}T00:00:00.000000+00:00",
                "difficulty": 3.0,
            },
        )
    rows = await store.find(
        "flashcards",
        {"resource_id": "r1"},
        at_most={"next_review": "2024-01-02T00:00:00.000000+00:00"},
        order_by="next_review",
    )
    assert [row["id"] for row in rows] == ["fc1", "fc2"]
    newest = await store.find("flashcards", descending=True, limit=1)
    assert newest[0]["id"] == "fc2"
    with pytest.raises(ValueError):
        await store.find("flashcards", {"front": "x"})


async def test_schema_migrations_apply_once(tmp_path: Path) -> None:
    migrations = {1: (), 2: ("ALTER TABLE users ADD COLUMN nickname TEXT",)}
    async with EntityStore(tmp_path / "m.db", migrations=migrations) as entity_store:
        assert await entity_store.schema_version() == 2
    async with EntityStore(tmp_path / "m.db", migrations=migrations) as entity_store:
        assert await entity_store.schema_version() == 2


async def test_default_schema_version(store: EntityStore) -> None:
    assert await store.schema_version() == 1
