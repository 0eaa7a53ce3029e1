#!/usr/bin/env python
"""Refresh every topic whose last sync is older than a threshold.

Meant for cron / a scheduler so topics keep accumulating events without the
app being open.

Usage:
    python scripts/refresh_topics.py                     # refresh topics older than EVENTPULSE_STALE_HOURS
    python scripts/refresh_topics.py --max-age-hours 6
    python scripts/refresh_topics.py --dry-run           # list what would be refreshed
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src import config
from src.refresh import refresh_stale, stale_topics
from src.storage import load_topics, save_topics

logger = logging.getLogger("refresh_topics")


def main() -> int:
    parser = argparse.ArgumentParser(description="Fetch new intelligence for stale EventPulse topics.")
    parser.add_argument(
        "--max-age-hours",
        type=float,
        default=None,
        help="Refresh topics last synced more than this many hours ago (default: EVENTPULSE_STALE_HOURS).",
    )
    parser.add_argument("--dry-run", action="store_true", help="Only list the topics that are due.")
    parser.add_argument("--log-level", default=None, help="Logging level (default: EVENTPULSE_LOG_LEVEL).")
    args = parser.parse_args()

    config.configure_logging(args.log_level)
    max_age = args.max_age_hours if args.max_age_hours is not None else config.stale_hours()

    topics, origin = load_topics()
    if not topics:
        print("No topics stored - nothing to refresh.")
        return 0

    due = stale_topics(topics, max_age)
    if args.dry_run:
        print(f"{len(due)} of {len(topics)} topic(s) due (loaded from {origin}):")
        for t in due:
            print(f"  - {t['title']}")
        return 0

    topics, report = refresh_stale(topics, max_age)
    if report["refreshed"]:
        save_topics(topics)

    print(f"Refreshed: {len(report['refreshed'])}  Failed: {len(report['failed'])}  Fresh: {report['skipped']}")
    for tid, err in report["failed"].items():
        print(f"  ! {tid}: {err}")
    return 1 if report["failed"] and not report["refreshed"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
