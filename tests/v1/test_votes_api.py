# mypy: ignore-errors
"""Tests for vote-related endpoints."""

from fastapi import status


def test_toggle_vote(client, viewer_headers) -> None:
    response = client.post(
        "/api/v1/votes/7", json={"engagement_type": "upvote"}, headers=viewer_headers
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["active"] is True
    assert body["stats"]["upvote_count"] == 1

    again = client.post(
        "/api/v1/votes/7", json={"engagement_type": "upvote"}, headers=viewer_headers
    ).json()
    assert again["active"] is False
    assert again["stats"]["upvote_count"] == 0


def test_switching_vote_direction(client, viewer_headers) -> None:
    client.post("/api/v1/votes/8", json={"engagement_type": "upvote"}, headers=viewer_headers)
    body = client.post(
        "/api/v1/votes/8", json={"engagement_type": "downvote"}, headers=viewer_headers
    ).json()

    assert body["stats"]["upvote_count"] == 0
    assert body["stats"]["downvote_count"] == 1

    mine = client.get("/api/v1/votes/8/my-vote", headers=viewer_headers).json()
    assert mine == {"content_id": 8, "engagement_type": "downvote"}


def test_vote_requires_authentication(client) -> None:
    response = client.post("/api/v1/votes/7", json={"engagement_type": "upvote"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_unknown_vote_type(client, viewer_headers) -> None:
    response = client.post(
        "/api/v1/votes/7", json={"engagement_type": "meh"}, headers=viewer_headers
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_stats_for_untouched_post_are_zero(client) -> None:
    response = client.get("/api/v1/votes/123/stats")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "content_id": 123,
        "upvote_count": 0,
        "downvote_count": 0,
        "reply_count": 0,
    }


def test_batch_stats(client, viewer_headers) -> None:
    client.post("/api/v1/votes/1", json={"engagement_type": "upvote"}, headers=viewer_headers)

    response = client.post("/api/v1/votes/stats", json={"content_ids": [1, 2]})

    assert response.status_code == status.HTTP_200_OK
    assert [(s["content_id"], s["upvote_count"]) for s in response.json()] == [(1, 1), (2, 0)]
