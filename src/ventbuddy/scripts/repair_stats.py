# src/ventbuddy/scripts/repair_stats.py
"""Rebuild the post_stats projection from the raw vote and reply tables."""

from __future__ import annotations

import argparse
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from ventbuddy.db.session import SessionLocal
from ventbuddy.repositories.content_repo import ContentRepository
from ventbuddy.services.engagement import EngagementAggregator

logger = logging.getLogger(__name__)


def repair(post_ids: list[int] | None = None, *, include_replies: bool = True) -> int:
    """Recompute counters; returns how many posts were repaired."""
    with SessionLocal() as db:
        aggregator = EngagementAggregator(db)
        if not post_ids:
            repaired = aggregator.recompute_all_stats()
        else:
            for post_id in post_ids:
                aggregator.recompute_stats(post_id)
            db.commit()
            repaired = len(post_ids)

        if include_replies:
            content = ContentRepository(db)
            targets = post_ids or [post.ledger_id for post in content.list_recent_posts(None)]
            for post_id in targets:
                if post_id is None:
                    continue
                aggregator.update_reply_count(post_id, content.count_replies(post_id))
    return repaired


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Rebuild Ventbuddy engagement counters.")
    parser.add_argument(
        "post_ids",
        nargs="*",
        type=int,
        help="Ledger ids of the posts to repair (default: every post with votes).",
    )
    parser.add_argument(
        "--skip-replies",
        action="store_true",
        help="Do not recount replies.",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    try:
        repaired = repair(args.post_ids, include_replies=not args.skip_replies)
    except SQLAlchemyError as exc:
        logger.error("Stats repair failed: %s", exc)
        return 1
    print(f"Repaired stats for {repaired} post(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
