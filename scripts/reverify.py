"""Re-run photo verification for stored submissions.

Each run is a new, explicitly triggered attempt: it appends an outcome and an
audit entry and applies the verdict to the submission.

Usage:
    python scripts/reverify.py sub_123 sub_456
    python scripts/reverify.py --pending --limit 50
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from questproof.config import get_settings
from questproof.container import build_services
from questproof.exceptions import QuestProofError
from questproof.logging_config import configure_logging

logger = logging.getLogger(__name__)


async def reverify(submission_ids: list[str], pending: bool, limit: int) -> int:
    services = build_services(get_settings())
    await services.startup()
    failures = 0
    try:
        ids = list(submission_ids)
        if pending:
            ids.extend(await services.store.pending_submission_ids(limit=limit))
        if not ids:
            logger.warning("Nothing to re-verify")
            return 0

        for sid in dict.fromkeys(ids):
            try:
                outcome = await services.pipeline.verify_submission(sid)
            except QuestProofError as exc:
                logger.error("[%s] Skipped: %s", sid, exc)
                failures += 1
                continue
            logger.info("[%s] %s (%.3f) %s", sid, outcome.verdict.value, outcome.final_confidence, outcome.reason)
    finally:
        await services.shutdown()
    return failures


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    p.add_argument("submission_ids", nargs="*", help="Submission ids to re-verify")
    p.add_argument("--pending", action="store_true", help="Also re-verify submissions still pending review")
    p.add_argument("--limit", type=int, default=100, help="Maximum pending submissions to pick up")
    return p.parse_args()


if __name__ == "__main__":
    args = parse_args()
    configure_logging(get_settings())
    raise SystemExit(1 if asyncio.run(reverify(args.submission_ids, args.pending, args.limit)) else 0)
