import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from loguru import logger

from app.core.config import get_settings
from app.db import init_db, session_scope
from app.services.engine import AuctionEngine


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Activate auctions whose window opened and settle auctions whose window closed"
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Examine at most N auctions (defaults to LIFECYCLE_SYNC_BATCH_SIZE)",
    )
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Write the sync summary as JSON to this path",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    settings = get_settings()
    init_db()

    limit = settings.lifecycle_sync_batch_size if args.limit is None else args.limit
    if limit < 1:
        logger.error("--limit must be positive, got {}", limit)
        return 2

    with session_scope() as session:
        summary = AuctionEngine(session, settings=settings).sync_lifecycle(limit=limit)

    payload = asdict(summary)
    if args.summary_path:
        args.summary_path.parent.mkdir(parents=True, exist_ok=True)
        args.summary_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info("Wrote lifecycle summary to {}", args.summary_path)

    return 1 if summary.failed else 0


if __name__ == "__main__":
    sys.exit(main())
