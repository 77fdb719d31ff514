"""Client mutation queue.

UI code hands over a `Document -> Document` transform and awaits a bool.
The queue owns the local copy of the document and guarantees:

- at most one save round-trip in flight per queue,
- operations from this client are applied in the order they were enqueued,
- a version conflict is rebased onto the server's document and retried,
- the in-flight flag is cleared however a save ends.

    Idle -> Submitting -> Accepted -> Idle
                       -> Conflicted -> Submitting
                       -> Failed (retries exhausted)
"""

import asyncio
from collections import deque
from enum import Enum
import logging
import os
from typing import Callable

from domain.gate import VersionGate
from domain.models import Document
from domain.operations import Transform
from domain.state_client import StateService, TransportError, Unauthorized


logger = logging.getLogger(__name__)


# Fixed delay between attempts, no backoff.
MAX_RETRIES = int(os.environ.get("MAX_RETRIES", 3))
RETRY_DELAY = float(os.environ.get("RETRY_DELAY", 0.25))


type Gate = VersionGate | StateService
type Notify = Callable[[str], None]


class SyncStatus(Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    CONFLICTED = "conflicted"
    FAILED = "failed"


def log_notification(message: str) -> None:
    logger.warning(message)


class MutationQueue:
    def __init__(
        self,
        gate: Gate,
        *,
        document: Document | None = None,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
        notify: Notify | None = None,
    ) -> None:
        self.gate = gate
        self.confirmed = Document.default() if document is None else document
        self.optimistic: Document | None = None
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.notify = log_notification if notify is None else notify
        self.status = SyncStatus.IDLE
        self.saving_in_flight = False
        self.pending: deque[tuple[Transform, asyncio.Future[bool]]] = deque()
        self._resume: asyncio.Task[None] | None = None

    @property
    def document(self) -> Document:
        """What the UI should show: the unconfirmed candidate if there is one."""
        return self.confirmed if self.optimistic is None else self.optimistic

    @property
    def version(self) -> int:
        return self.confirmed.version

    async def refresh(self) -> Document:
        fetched = await self.gate.fetch()
        # A save accepted while the fetch was out is newer, keep it.
        if fetched.version >= self.confirmed.version:
            self.confirmed = fetched
        if not self.saving_in_flight:
            self.optimistic = None
        return self.document

    async def enqueue(self, operation: Transform) -> bool:
        """Queue `operation` behind any save in flight, apply it and save it.

        Resolves True once the server accepted it, False when every retry
        failed. `Unauthorized` and exceptions other than transport failures
        are re-raised here without retrying.
        """
        future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self.pending.append((operation, future))
        if self.saving_in_flight:
            logger.debug("Queued %r, %s pending.", operation, len(self.pending))
        else:
            await self._drain()
        return await future

    async def _drain(self) -> None:
        self.saving_in_flight = True
        try:
            while self.pending:
                # Stays at the front until it is settled, conflicts included.
                operation, future = self.pending[0]
                try:
                    ok = await self._submit(operation)
                except Exception as e:
                    self.pending.popleft()
                    self.optimistic = None
                    self.status = SyncStatus.FAILED
                    logger.exception("Operation %r failed.", operation)
                    if not future.done():
                        future.set_exception(e)
                else:
                    self.pending.popleft()
                    if not future.done():
                        future.set_result(ok)
        finally:
            if self.status in (SyncStatus.SUBMITTING, SyncStatus.CONFLICTED):
                self.status = SyncStatus.IDLE
            if self.pending:
                # Only reachable when the drain itself was cancelled. The flag
                # stays set and a fresh drain takes over the rest.
                self._resume = asyncio.get_running_loop().create_task(self._drain())
            else:
                self.saving_in_flight = False

    async def _submit(self, operation: Transform) -> bool:
        for attempt in range(1, self.max_retries + 1):
            self.status = SyncStatus.SUBMITTING
            base = self.confirmed
            candidate = operation(base)
            self.optimistic = candidate

            try:
                result = await self.gate.submit(candidate, base.version)
            except Unauthorized:
                raise
            except TransportError as e:
                logger.warning(
                    "Save attempt %s/%s for %r failed: %s",
                    attempt,
                    self.max_retries,
                    operation,
                    e,
                )
            else:
                self.confirmed = result.doc
                self.optimistic = None
                if result.accepted:
                    self.status = SyncStatus.IDLE
                    logger.debug("Saved %r as version %s.", operation, self.version)
                    return True
                self.status = SyncStatus.CONFLICTED
                logger.info(
                    "Conflict on attempt %s/%s for %r, rebasing onto version %s.",
                    attempt,
                    self.max_retries,
                    operation,
                    self.version,
                )

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay)

        self.optimistic = None
        self.status = SyncStatus.FAILED
        self.notify(f"Save failed after {self.max_retries} attempts, please refresh.")
        return False
