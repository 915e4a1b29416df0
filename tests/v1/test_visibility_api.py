# mypy: ignore-errors
"""Tests for visibility, access and cache endpoints."""

from fastapi import status


def test_unknown_item_fails_closed(client) -> None:
    body = client.get("/api/v1/visibility/77").json()

    assert body["visibility"] == 1
    assert body["has_event"] is False
    assert body["is_cached"] is False


def test_visibility_is_cached_after_first_read(client, make_post, author) -> None:
    make_post(1, author, visibility=0)

    first = client.get("/api/v1/visibility/1").json()
    second = client.get("/api/v1/visibility/1").json()

    assert first["visibility"] == 0
    assert first["is_cached"] is False
    assert second["is_cached"] is True

    stats = client.get("/api/v1/visibility/cache/stats").json()
    assert stats["keys"] == ["1"]
    assert stats["hits"] >= 1


def test_cache_can_be_cleared(client, make_post, author, author_headers) -> None:
    make_post(1, author, visibility=0)
    client.get("/api/v1/visibility/1")

    response = client.delete("/api/v1/visibility/cache/1", headers=author_headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert client.get("/api/v1/visibility/1").json()["is_cached"] is False

    response = client.delete("/api/v1/visibility/cache", headers=author_headers)
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert client.get("/api/v1/visibility/cache/stats").json()["size"] == 0


def test_access_for_locked_post(client, make_post, author, viewer_headers, author_headers) -> None:
    make_post(2, author, visibility=1, min_tip_amount=100)

    anonymous = client.get("/api/v1/visibility/2/access").json()
    assert anonymous["has_access"] is False
    assert anonymous["reason"] == "not_connected"
    assert anonymous["min_tip_amount"] == 100

    assert client.get("/api/v1/visibility/2/access", headers=viewer_headers).json()[
        "reason"
    ] == "requires_payment"
    assert client.get("/api/v1/visibility/2/access", headers=author_headers).json()[
        "reason"
    ] == "author"


def test_access_for_unknown_post(client) -> None:
    response = client.get("/api/v1/visibility/404/access")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_debug_lists_history(client, make_post, author) -> None:
    make_post(3, author, visibility=1, min_tip_amount=5)

    body = client.get("/api/v1/visibility/3/debug").json()

    assert body["key"] == "3"
    assert [event["event_type"] for event in body["events"]] == ["created"]
    assert body["effective"]["visibility"] == 1


def test_cache_administration_requires_sign_in(client, make_post, author) -> None:
    make_post(4, author, visibility=0)
    client.get("/api/v1/visibility/4")

    assert client.delete("/api/v1/visibility/cache").status_code == status.HTTP_401_UNAUTHORIZED
    assert client.delete("/api/v1/visibility/cache/4").status_code == status.HTTP_401_UNAUTHORIZED
    assert client.get("/api/v1/visibility/4").json()["is_cached"] is True
