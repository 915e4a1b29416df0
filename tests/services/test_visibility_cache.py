"""Tests for the in-memory visibility cache."""

from datetime import UTC, datetime, timedelta

from ventbuddy.services.visibility import VisibilityCache, cache_key


EVENT_AT = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def test_cache_key_distinguishes_posts_and_replies() -> None:
    assert cache_key(42) == "42"
    assert cache_key(42, 3) == "42:3"


def test_entry_is_fresh_until_ttl_elapses(fake_clock) -> None:
    clock = fake_clock
    cache = VisibilityCache(ttl_seconds=300, clock=clock)
    cache.put(42, None, visibility=0, event_type="created", event_at=EVENT_AT)

    clock.advance(299)
    entry = cache.get(42)
    assert entry is not None
    assert entry.visibility == 0

    clock.advance(2)
    assert cache.get(42) is None
    assert len(cache) == 0


def test_put_refuses_older_event(fake_clock) -> None:
    cache = VisibilityCache(ttl_seconds=300, clock=fake_clock)
    assert cache.put(7, None, visibility=1, event_type="updated", event_at=EVENT_AT)

    stale = EVENT_AT - timedelta(seconds=5)
    assert not cache.put(7, None, visibility=0, event_type="created", event_at=stale)
    assert cache.get(7).visibility == 1


def test_put_accepts_naive_timestamps_as_utc(fake_clock) -> None:
    cache = VisibilityCache(ttl_seconds=300, clock=fake_clock)
    cache.put(7, None, visibility=1, event_type="created", event_at=EVENT_AT)

    naive_later = (EVENT_AT + timedelta(seconds=1)).replace(tzinfo=None)
    assert cache.put(7, None, visibility=0, event_type="revealed", event_at=naive_later)
    assert cache.get(7).event_type == "revealed"


def test_reply_entries_are_independent_of_the_post(fake_clock) -> None:
    cache = VisibilityCache(ttl_seconds=300, clock=fake_clock)
    cache.put(5, None, visibility=0, event_type="created", event_at=EVENT_AT)
    cache.put(5, 2, visibility=1, event_type="created", event_at=EVENT_AT)

    assert cache.get(5).visibility == 0
    assert cache.get(5, 2).visibility == 1
    assert cache.invalidate(5, 2)
    assert cache.get(5, 2) is None
    assert cache.get(5) is not None


def test_stats_count_hits_and_misses(fake_clock) -> None:
    cache = VisibilityCache(ttl_seconds=60, clock=fake_clock)
    cache.get(1)
    cache.put(1, None, visibility=0, event_type="created", event_at=EVENT_AT)
    cache.get(1)
    cache.get(1)

    stats = cache.stats()
    assert stats["hits"] == 2
    assert stats["misses"] == 1
    assert stats["size"] == 1
    assert stats["keys"] == ["1"]
    assert stats["ttl_seconds"] == 60.0

    cache.clear()
    assert cache.stats()["size"] == 0
    assert not cache.invalidate(1)
