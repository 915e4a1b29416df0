"""Visibility lookup with a TTL cache in front of the event store.

The cache is a plain object owned by the application (see ``main``) and handed
to services explicitly. Reads go cache first, then the latest stored event.
When an item has no event at all the lookup fails closed: it reports
``Tippable`` so that gated content is never shown by accident.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ventbuddy.core.settings import settings
from ventbuddy.db.time import as_utc
from ventbuddy.models.content import CONTENT_TYPE_POST, CONTENT_TYPE_REPLY
from ventbuddy.models.visibility import EVENT_CREATED, VISIBILITY_TIPPABLE, VisibilityEvent
from ventbuddy.repositories.visibility_repo import VisibilityEventStore

if TYPE_CHECKING:
    from ventbuddy.services.realtime import RealtimeInvalidationBus

logger = logging.getLogger(__name__)


def cache_key(content_id: int, reply_id: int | None = None) -> str:
    """Return the cache key for a post or a reply."""
    if reply_id is None:
        return str(content_id)
    return f"{content_id}:{reply_id}"


@dataclass(frozen=True)
class CacheEntry:
    """Cached visibility of one item."""

    visibility: int
    event_type: str
    event_at: datetime
    inserted_at: float


@dataclass(frozen=True)
class VisibilityChange:
    """A visibility event as delivered to cache and listeners."""

    event_id: int
    content_id: int
    reply_id: int | None
    content_type: str
    visibility: int
    event_type: str
    actor: str | None
    occurred_at: datetime

    @classmethod
    def from_event(cls, event: VisibilityEvent) -> VisibilityChange:
        return cls(
            event_id=event.id,
            content_id=event.content_id,
            reply_id=event.reply_id,
            content_type=event.content_type,
            visibility=event.visibility_type,
            event_type=event.event_type,
            actor=event.actor,
            occurred_at=as_utc(event.created_at),
        )


@dataclass(frozen=True)
class VisibilityLookup:
    """Outcome of a visibility read.

    ``has_event`` is False for the fail-closed default, which is never cached.
    """

    visibility: int
    event_type: str
    is_cached: bool
    has_event: bool = True


FAIL_CLOSED = VisibilityLookup(
    visibility=VISIBILITY_TIPPABLE,
    event_type=EVENT_CREATED,
    is_cached=False,
    has_event=False,
)


class VisibilityCache:
    """In-memory TTL map from item key to its latest known visibility.

    Expired entries are evicted when read. ``put`` never replaces an entry with
    an older event, so a late duplicate delivery cannot roll visibility back.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = float(
            settings.visibility_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        )
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, content_id: int, reply_id: int | None = None) -> CacheEntry | None:
        """Return a fresh entry, or None on a miss (absent or expired)."""
        key = cache_key(content_id, reply_id)
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if self._clock() - entry.inserted_at >= self.ttl_seconds:
            del self._entries[key]
            self._misses += 1
            return None
        self._hits += 1
        return entry

    def put(
        self,
        content_id: int,
        reply_id: int | None,
        *,
        visibility: int,
        event_type: str,
        event_at: datetime,
    ) -> bool:
        """Store an entry unless a newer event is already cached.

        Returns:
            True if the entry was written.
        """
        key = cache_key(content_id, reply_id)
        event_at = as_utc(event_at)
        current = self._entries.get(key)
        if current is not None and current.event_at > event_at:
            return False
        self._entries[key] = CacheEntry(
            visibility=visibility,
            event_type=event_type,
            event_at=event_at,
            inserted_at=self._clock(),
        )
        return True

    def invalidate(self, content_id: int, reply_id: int | None = None) -> bool:
        """Drop one entry; returns True if it was present."""
        return self._entries.pop(cache_key(content_id, reply_id), None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict[str, Any]:
        """Return size and hit counters for diagnostics."""
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "ttl_seconds": self.ttl_seconds,
            "keys": sorted(self._entries),
        }


class VisibilityService:
    """Resolves and records the visibility of posts and replies."""

    def __init__(
        self,
        db: Session,
        cache: VisibilityCache,
        bus: RealtimeInvalidationBus | None = None,
    ) -> None:
        self.db = db
        self.cache = cache
        self.bus = bus
        self.store = VisibilityEventStore(db)

    def get_visibility(self, content_id: int, reply_id: int | None = None) -> VisibilityLookup:
        """Return the current visibility of an item.

        A fresh cache entry wins; otherwise the latest stored event is read and
        cached. With no event, or when the store cannot be read, the fail-closed
        default is returned.
        """
        entry = self.cache.get(content_id, reply_id)
        if entry is not None:
            return VisibilityLookup(
                visibility=entry.visibility,
                event_type=entry.event_type,
                is_cached=True,
            )

        try:
            event = self.store.latest(content_id, reply_id)
        except SQLAlchemyError as exc:
            logger.error(
                "Visibility lookup failed for %s: %s",
                cache_key(content_id, reply_id),
                exc,
                exc_info=True,
            )
            return FAIL_CLOSED

        if event is None:
            return FAIL_CLOSED

        self.cache.put(
            content_id,
            reply_id,
            visibility=event.visibility_type,
            event_type=event.event_type,
            event_at=event.created_at,
        )
        return VisibilityLookup(
            visibility=event.visibility_type,
            event_type=event.event_type,
            is_cached=False,
        )

    def log_event(
        self,
        content_id: int,
        *,
        visibility_type: int,
        event_type: str,
        reply_id: int | None = None,
        actor: str | None = None,
        encrypted_visibility: str | None = None,
        content_hash: str | None = None,
        preview_hash: str | None = None,
    ) -> VisibilityEvent:
        """Append an event, commit it and propagate it to cache and listeners."""
        event = self.store.append(
            content_id=content_id,
            reply_id=reply_id,
            content_type=CONTENT_TYPE_POST if reply_id is None else CONTENT_TYPE_REPLY,
            visibility_type=visibility_type,
            event_type=event_type,
            actor=actor,
            encrypted_visibility=encrypted_visibility,
            content_hash=content_hash,
            preview_hash=preview_hash,
        )
        self.db.commit()
        logger.info(
            "Logged visibility event %s for %s (type=%s visibility=%d)",
            event.id,
            cache_key(content_id, reply_id),
            event_type,
            visibility_type,
        )

        change = VisibilityChange.from_event(event)
        if self.bus is not None:
            self.bus.publish(change)
        else:
            self.cache.put(
                content_id,
                reply_id,
                visibility=change.visibility,
                event_type=change.event_type,
                event_at=change.occurred_at,
            )
        return event

    def debug(self, content_id: int, reply_id: int | None = None) -> dict[str, Any]:
        """Return the event history, cache entry and effective visibility of an item."""
        history = self.store.history(content_id, reply_id)
        cached = self.cache.get(content_id, reply_id)
        lookup = self.get_visibility(content_id, reply_id)
        return {
            "key": cache_key(content_id, reply_id),
            "events": [
                {
                    "id": event.id,
                    "visibility_type": event.visibility_type,
                    "event_type": event.event_type,
                    "actor": event.actor,
                    "created_at": as_utc(event.created_at).isoformat(),
                }
                for event in history
            ],
            "cached": None
            if cached is None
            else {
                "visibility": cached.visibility,
                "event_type": cached.event_type,
                "event_at": cached.event_at.isoformat(),
            },
            "effective": {
                "visibility": lookup.visibility,
                "event_type": lookup.event_type,
                "has_event": lookup.has_event,
            },
        }
