"""Versioned document store.

Durable key-value persistence for exactly one document per deployment. No
locking happens here; the version check lives in `domain.gate`.
"""

import json
import logging
import os

from databases import Database

from domain.models import Document


logger = logging.getLogger(__name__)


STATE_BLOB_KEY = os.environ.get("STATE_BLOB_KEY", "state.json")


CREATE_BLOBS_TABLE = """
CREATE TABLE IF NOT EXISTS Blobs (name VARCHAR(256) PRIMARY KEY, value TEXT NOT NULL)
"""


GET_BLOB = "SELECT value FROM Blobs WHERE name = :name"


UPSERT_BLOB = """
INSERT INTO Blobs(name, value) VALUES (:name, :value)
ON CONFLICT(name) DO UPDATE SET value = excluded.value
"""


class StoreError(Exception):
    pass


class DocumentStore:
    """Reads and unconditionally overwrites the document under one key."""

    def __init__(self, *, key: str | None = None) -> None:
        self.key = STATE_BLOB_KEY if key is None else key

    async def get_blob(self) -> str | None:
        raise NotImplementedError

    async def set_blob(self, value: str) -> None:
        raise NotImplementedError

    async def read(self) -> Document:
        """Stored document, or the default version 0 document.

        A failed read is logged and treated exactly like a missing document.
        """
        try:
            blob = await self.get_blob()
            if blob:
                return Document.from_dict(json.loads(blob))
        except Exception:
            logger.exception("Error reading state from %s.", self.key)
        return Document.default()

    async def write(self, doc: Document) -> None:
        try:
            await self.set_blob(json.dumps(doc.to_dict()))
        except Exception as e:
            raise StoreError(f"Could not write {self.key}") from e


class InMemoryDocumentStore(DocumentStore):
    def __init__(self, *, key: str | None = None) -> None:
        super().__init__(key=key)
        self.blobs: dict[str, str] = {}

    async def get_blob(self) -> str | None:
        return self.blobs.get(self.key)

    async def set_blob(self, value: str) -> None:
        self.blobs[self.key] = value


class DatabaseDocumentStore(DocumentStore):
    def __init__(self, db: Database, *, key: str | None = None) -> None:
        super().__init__(key=key)
        self.db = db

    async def create(self) -> None:
        await self.db.execute(  # pyright: ignore[reportUnknownMemberType]
            query=CREATE_BLOBS_TABLE
        )

    async def get_blob(self) -> str | None:
        result = await self.db.fetch_one(  # pyright: ignore[reportUnknownMemberType]
            GET_BLOB, values={"name": self.key}
        )
        if result is None:
            return None
        return result["value"]

    async def set_blob(self, value: str) -> None:
        await self.db.execute(  # pyright: ignore[reportUnknownMemberType]
            UPSERT_BLOB, values={"name": self.key, "value": value}
        )
