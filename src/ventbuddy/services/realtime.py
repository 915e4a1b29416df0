"""Push invalidation of visibility changes.

``RealtimeInvalidationBus`` is the in-process observer: every published
change refreshes the visibility cache first and then reaches the listeners
subscribed to that item (or to everything). ``ChangeFeedWorker`` feeds the bus
from the event table so that changes written by other processes arrive too.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ventbuddy.core.settings import settings
from ventbuddy.db.session import SessionLocal
from ventbuddy.repositories.visibility_repo import VisibilityEventStore
from ventbuddy.services.visibility import VisibilityCache, VisibilityChange

logger = logging.getLogger(__name__)

Listener = Callable[[VisibilityChange], None]
T = TypeVar("T")

DEFAULT_SEEN_CAPACITY = 10_000


@dataclass(eq=False)
class Subscription:
    """Handle returned by the bus; call :meth:`unsubscribe` to stop delivery."""

    bus: RealtimeInvalidationBus
    content_id: int | None
    listener: Listener
    active: bool = True

    def unsubscribe(self) -> None:
        if self.active:
            self.bus._remove(self)
            self.active = False


class RealtimeInvalidationBus:
    """Delivers visibility changes to the cache and to subscribed listeners."""

    def __init__(self, cache: VisibilityCache, seen_capacity: int = DEFAULT_SEEN_CAPACITY) -> None:
        self.cache = cache
        self._by_content: dict[int, list[Subscription]] = {}
        self._global: list[Subscription] = []
        self._seen: OrderedDict[int, None] = OrderedDict()
        self._seen_capacity = seen_capacity

    def subscribe(self, content_id: int, listener: Listener) -> Subscription:
        """Receive changes for one post and its replies."""
        subscription = Subscription(bus=self, content_id=content_id, listener=listener)
        self._by_content.setdefault(content_id, []).append(subscription)
        return subscription

    def subscribe_all(self, listener: Listener) -> Subscription:
        subscription = Subscription(bus=self, content_id=None, listener=listener)
        self._global.append(subscription)
        return subscription

    def listener_count(self, content_id: int | None = None) -> int:
        if content_id is None:
            return len(self._global) + sum(len(subs) for subs in self._by_content.values())
        return len(self._by_content.get(content_id, []))

    def publish(self, change: VisibilityChange) -> bool:
        """Apply a change to the cache and notify listeners.

        Returns:
            False if this event id was already delivered.
        """
        if change.event_id in self._seen:
            return False
        self._remember(change.event_id)

        self.cache.put(
            change.content_id,
            change.reply_id,
            visibility=change.visibility,
            event_type=change.event_type,
            event_at=change.occurred_at,
        )

        targets = list(self._by_content.get(change.content_id, [])) + list(self._global)
        for subscription in targets:
            try:
                subscription.listener(change)
            except Exception:
                logger.exception(
                    "Visibility listener failed for event %s on %s",
                    change.event_id,
                    change.content_id,
                )
        return True

    def _remember(self, event_id: int) -> None:
        self._seen[event_id] = None
        while len(self._seen) > self._seen_capacity:
            self._seen.popitem(last=False)

    def _remove(self, subscription: Subscription) -> None:
        if subscription.content_id is None:
            if subscription in self._global:
                self._global.remove(subscription)
            return
        subs = self._by_content.get(subscription.content_id)
        if subs and subscription in subs:
            subs.remove(subscription)
            if not subs:
                del self._by_content[subscription.content_id]


@dataclass
class ChangeFeedState:
    """Id of the last visibility event published from the table.

    ``floor`` is where reading started; the overlap window never reaches below it.
    """

    cursor: int | None = None
    floor: int = 0

    def seek(self, event_id: int) -> None:
        self.cursor = event_id
        self.floor = event_id


class ChangeFeedWorker:
    """Polls the visibility event table and publishes new rows to the bus."""

    def __init__(
        self,
        bus: RealtimeInvalidationBus,
        db_session: Session | None = None,
        poll_interval: float | None = None,
        batch_size: int | None = None,
        overlap: int | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            bus: Bus receiving the changes.
            db_session: Optional database session. If None, creates new sessions as needed.
            poll_interval: Seconds between polls; defaults to the configured interval.
            batch_size: Maximum events read per poll.
            overlap: How many ids below the cursor each poll re-reads.
        """
        self.bus = bus
        self.state = ChangeFeedState()
        self.poll_interval = max(
            0.1,
            float(
                settings.change_feed_poll_interval_seconds
                if poll_interval is None
                else poll_interval
            ),
        )
        self.batch_size = batch_size or settings.change_feed_batch_size
        self.overlap = settings.change_feed_overlap if overlap is None else max(0, overlap)
        self._db_session = db_session
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background polling loop from the current end of the log."""
        if self._task is None or self._task.done():
            if self.state.cursor is None:
                self.state.seek(await self._call(lambda db: VisibilityEventStore(db).max_id()))
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def poll_once(self) -> int:
        """Publish events newer than the cursor; returns how many were new to the bus.

        Ids are assigned at insert but rows become visible at commit, so on
        Postgres a lower id can appear after a higher one was read. Each poll
        re-reads the last ``overlap`` ids below the cursor and relies on the
        bus dropping ids it has already published. A row committed later than
        ``overlap`` newer ids is still missed.
        """
        cursor = self.state.cursor or 0
        start = max(self.state.floor, cursor - self.overlap)
        changes = await self._call(
            lambda db: [
                VisibilityChange.from_event(event)
                for event in VisibilityEventStore(db).list_after(
                    start, self.batch_size + cursor - start
                )
            ]
        )
        delivered = 0
        for change in changes:
            if self.bus.publish(change):
                delivered += 1
            self.state.cursor = max(self.state.cursor or 0, change.event_id)
        if changes:
            logger.debug("Change feed advanced to %s (%d delivered)", self.state.cursor, delivered)
        return delivered

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                await self.poll_once()
            except SQLAlchemyError as e:
                logger.warning("ChangeFeedWorker encountered database error: %s", e)
                await self._sleep(min(self.poll_interval * 4, 30.0))
                continue
            except (ValueError, TypeError, AttributeError) as e:
                logger.error("ChangeFeedWorker encountered data error: %s", e, exc_info=True)
                await self._sleep(min(self.poll_interval * 4, 30.0))
                continue
            await self._sleep(self.poll_interval)

    async def _sleep(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stopping.wait(), timeout=seconds)
        except TimeoutError:
            pass

    async def _call(self, fn: Callable[[Session], T]) -> T:
        if self._db_session is not None:
            return fn(self._db_session)

        def _with_session() -> T:
            with SessionLocal() as db:
                return fn(db)

        return await asyncio.to_thread(_with_session)
