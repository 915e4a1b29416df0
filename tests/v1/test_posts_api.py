# mypy: ignore-errors
"""Tests for post, reply and feed endpoints."""

from fastapi import status

LOCKED_TEXT = "Some things I can only say to strangers who care enough to tip."
OPEN_TEXT = "Had a good cry in the car. Feeling lighter now."


def test_create_post(client, author_headers, ledger_gateway) -> None:
    response = client.post(
        "/api/v1/posts/",
        json={"content": OPEN_TEXT, "visibility": 0},
        headers=author_headers,
    )

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["ledger_id"] == 1
    assert body["id_is_fallback"] is False
    assert body["warnings"] == []
    assert len(ledger_gateway.calls("createPost")) == 1


def test_create_post_requires_token(client) -> None:
    response = client.post("/api/v1/posts/", json={"content": OPEN_TEXT, "visibility": 0})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_invalid_token_is_rejected(client) -> None:
    response = client.get("/api/v1/posts/feed", headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_unregistered_wallet_is_forbidden(client) -> None:
    from ventbuddy.core.security import create_access_token

    token = create_access_token("0x" + "9" * 40)
    response = client.post(
        "/api/v1/posts/",
        json={"content": OPEN_TEXT, "visibility": 0},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_create_post_validation(client, author_headers) -> None:
    response = client.post(
        "/api/v1/posts/",
        json={"content": OPEN_TEXT, "visibility": 2},
        headers=author_headers,
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_encryption_not_ready_is_service_unavailable(
    client, author_headers, encryption_service, ledger_gateway
) -> None:
    encryption_service.initialized = False

    response = client.post(
        "/api/v1/posts/",
        json={"content": OPEN_TEXT, "visibility": 0},
        headers=author_headers,
    )

    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert ledger_gateway.transactions == []


def test_ledger_revert_is_conflict(client, author_headers, ledger_gateway) -> None:
    ledger_gateway.revert_reason = "User not registered"

    response = client.post(
        "/api/v1/posts/",
        json={"content": OPEN_TEXT, "visibility": 0},
        headers=author_headers,
    )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"] == "User not registered in the contract"


def test_feed_hides_locked_content(client, make_post, author, viewer_headers) -> None:
    make_post(1, author, OPEN_TEXT, visibility=0)
    make_post(2, author, LOCKED_TEXT, visibility=1, min_tip_amount=100)

    anonymous = {item["ledger_id"]: item for item in client.get("/api/v1/posts/feed").json()}
    assert anonymous[1]["content"] == OPEN_TEXT
    assert anonymous[2]["content"] is None
    assert anonymous[2]["preview"] is None
    assert anonymous[2]["access"] == {"has_access": False, "reason": "not_connected"}

    as_viewer = client.get("/api/v1/posts/feed", headers=viewer_headers).json()
    locked = next(item for item in as_viewer if item["ledger_id"] == 2)
    assert locked["access"]["reason"] == "requires_payment"


def test_author_reads_own_locked_post(client, make_post, author, author_headers) -> None:
    make_post(3, author, LOCKED_TEXT, visibility=1, min_tip_amount=100)

    body = client.get("/api/v1/posts/3", headers=author_headers).json()

    assert body["content"] == LOCKED_TEXT
    assert body["access"]["reason"] == "author"


def test_feed_is_ranked_by_engagement(client, make_post, author, db_session) -> None:
    from ventbuddy.services.engagement import EngagementAggregator

    make_post(1, author, "first")
    make_post(2, author, "second")
    make_post(3, author, "third")
    aggregator = EngagementAggregator(db_session)
    aggregator.toggle_vote(1, "0xv1", "upvote")
    aggregator.update_reply_count(2, 1)

    feed = client.get("/api/v1/posts/feed").json()

    assert [item["ledger_id"] for item in feed] == [2, 1, 3]
    assert [item["score"] for item in feed] == [10, 3, 0]


def test_feed_limit(client, make_post, author) -> None:
    for ledger_id in range(1, 4):
        make_post(ledger_id, author)

    assert len(client.get("/api/v1/posts/feed?limit=2").json()) == 2
    assert client.get("/api/v1/posts/feed?limit=0").status_code == 422


def test_unknown_post_is_not_found(client) -> None:
    response = client.get("/api/v1/posts/999")
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_reply_round_trip(client, make_post, author, author_headers, viewer_headers) -> None:
    make_post(5, author, OPEN_TEXT)

    created = client.post(
        "/api/v1/posts/5/replies",
        json={"content": "You are not alone.", "visibility": 1, "unlock_price": 20},
        headers=viewer_headers,
    )
    assert created.status_code == status.HTTP_201_CREATED
    assert created.json()["post_id"] == 5

    replies = client.get("/api/v1/posts/5/replies", headers=author_headers).json()
    assert len(replies) == 1
    assert replies[0]["reply_id"] == created.json()["ledger_id"]
    assert replies[0]["content"] is None
    assert replies[0]["access"]["reason"] == "requires_payment"

    detail = client.get("/api/v1/posts/5", headers=viewer_headers).json()
    assert detail["reply_count"] == 1
    assert detail["replies"][0]["content"] == "You are not alone."


def test_reply_to_unknown_post(client, viewer_headers, ledger_gateway) -> None:
    response = client.post(
        "/api/v1/posts/404/replies",
        json={"content": "hello?", "visibility": 0},
        headers=viewer_headers,
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert ledger_gateway.transactions == []
