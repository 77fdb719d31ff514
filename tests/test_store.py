import logging
from pathlib import Path

from databases import Database
import pytest

from domain.models import Document, Recipe
from domain.store import DatabaseDocumentStore, InMemoryDocumentStore, StoreError


class BrokenReads(InMemoryDocumentStore):
    async def get_blob(self) -> str | None:
        raise ConnectionError("blob store down")


class BrokenWrites(InMemoryDocumentStore):
    async def set_blob(self, value: str) -> None:
        raise ConnectionError("blob store down")


@pytest.mark.asyncio
async def test_empty_store_reads_default() -> None:
    doc = await InMemoryDocumentStore().read()
    assert doc == Document.default()


@pytest.mark.asyncio
async def test_write_then_read() -> None:
    store = InMemoryDocumentStore(key="house.json")
    doc = Document(recipes=[Recipe(id="r1")], version=3)
    await store.write(doc)
    assert "house.json" in store.blobs
    assert await store.read() == doc


@pytest.mark.asyncio
async def test_read_failure_is_treated_as_missing(
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.ERROR, logger="domain.store"):
        doc = await BrokenReads().read()
    assert doc == Document.default()
    assert "Error reading state" in caplog.text


@pytest.mark.asyncio
async def test_malformed_blob_is_treated_as_missing() -> None:
    store = InMemoryDocumentStore()
    store.blobs[store.key] = '{"version": "three"}'
    assert await store.read() == Document.default()


@pytest.mark.asyncio
async def test_write_failure_raises() -> None:
    with pytest.raises(StoreError):
        await BrokenWrites().write(Document.default())


@pytest.mark.asyncio
async def test_database_store(tmp_path: Path) -> None:
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'state.db'}")
    await db.connect()
    try:
        store = DatabaseDocumentStore(db, key="state.json")
        await store.create()
        assert await store.read() == Document.default()

        first = Document(recipes=[Recipe(id="r1")], version=1)
        await store.write(first)
        second = first.replace(version=2)
        await store.write(second)

        assert await store.read() == second
        assert await DatabaseDocumentStore(db, key="other.json").read() == (
            Document.default()
        )
    finally:
        await db.disconnect()
