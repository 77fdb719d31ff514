"""Optimistic concurrency gate.

Compare-and-swap over the single document: a write is accepted only when it
is based on the version currently stored, and the accepted document always
gets `expected_version + 1`.

The read and the write are two separate store calls. Within one process they
are serialised with an `asyncio.Lock`; across processes the store itself has
to serialise writes per key, otherwise a rare race is left for the client
retry loop to absorb. That is fine for one household, it is not a
distributed-systems guarantee.
"""

import asyncio
import logging

from domain.models import Document
from domain.store import DocumentStore


logger = logging.getLogger(__name__)


class SubmitResult:
    def __init__(self, *, accepted: bool, doc: Document) -> None:
        self.accepted = accepted
        self.doc = doc

    def __repr__(self) -> str:
        return f"<SubmitResult(accepted={self.accepted}, version={self.doc.version})>"


class VersionGate:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self._lock = asyncio.Lock()

    async def fetch(self) -> Document:
        return await self.store.read()

    async def submit(self, proposed: Document, expected_version: int) -> SubmitResult:
        async with self._lock:
            current = await self.store.read()
            if current.version != expected_version:
                logger.info(
                    "Version conflict: based on %s, stored %s.",
                    expected_version,
                    current.version,
                )
                return SubmitResult(accepted=False, doc=current)

            result = proposed.replace(version=expected_version + 1)
            await self.store.write(result)
            logger.debug("Accepted version %s.", result.version)
            return SubmitResult(accepted=True, doc=result)
