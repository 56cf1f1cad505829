"""Document events and the bus that fans them out to subscribers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Coroutine

    Handler = Callable[["DocumentEvent"], Awaitable[None]]

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Document collection changes that downstream caches react to."""

    DOCUMENT_CREATED = "document_created"
    DOCUMENT_MODIFIED = "document_modified"
    DOCUMENT_DELETED = "document_deleted"
    DOCUMENT_RENAMED = "document_renamed"


@dataclass(frozen=True, slots=True)
class DocumentEvent:
    """Immutable record of a document mutation.

    Attributes:
        event_type: The kind of mutation that occurred.
        document_id: Path of the affected document (destination for renames).
        old_document_id: Previous path (renames only).
    """

    event_type: EventType
    document_id: str
    old_document_id: str | None = None


class EventBus:
    """Delivers document events and runs the work they trigger.

    Subscribers are awaited in subscription order when an event is
    emitted, so they observe events in the order the mutations happened.
    Anything slow belongs in :meth:`spawn`: the bus tracks those tasks
    until they finish, logs their failures and never lets a subscriber
    error reach the code that mutated the document.
    """

    def __init__(self) -> None:
        self._subscribers: dict[EventType, list[Handler]] = {et: [] for et in EventType}
        self._tasks: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, handler: Handler, *event_types: EventType) -> None:
        """Call *handler* for each of *event_types* (every type when none are given)."""
        for event_type in event_types or tuple(EventType):
            self._subscribers[event_type].append(handler)

    def unsubscribe(self, handler: Handler) -> bool:
        """Drop *handler* from every event type. Return True if it was subscribed."""
        found = False
        for handlers in self._subscribers.values():
            while handler in handlers:
                handlers.remove(handler)
                found = True
        return found

    @property
    def handler_count(self) -> int:
        """Number of (handler, event type) subscriptions."""
        return sum(len(h) for h in self._subscribers.values())

    async def emit(self, event: DocumentEvent) -> None:
        for handler in list(self._subscribers[event.event_type]):
            try:
                await handler(event)
            except Exception:
                logger.warning(
                    "Subscriber %s failed on %s for %s",
                    getattr(handler, "__qualname__", handler),
                    event.event_type.value,
                    event.document_id,
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # Background work
    # ------------------------------------------------------------------

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        """Run *coro* in the background; failures are logged, not raised."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for background work, including work spawned while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_pending(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _finished(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background task %r failed: %s", task.get_name(), exc, exc_info=exc)
