"""
Migration script: convert legacy v2 topic storage to the v3 format.

The app migrates v2 data on read and writes v3 on the first change; run this
to convert ahead of time. Dry run by default. The v2 file is never modified.

Usage:
    python scripts/migrate_storage.py            # dry run (no changes)
    python scripts/migrate_storage.py --apply    # write eventpulse_topics_v3.json
    python scripts/migrate_storage.py --apply --force   # overwrite an existing v3 file
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src import config
from src.constants import LEGACY_TOPICS_KEY, TOPICS_KEY
from src.storage import key_path, load_legacy_topics, save_topics


def main() -> None:
    parser = argparse.ArgumentParser(description="Migrate EventPulse topics from storage v2 to v3")
    parser.add_argument("--apply", action="store_true", help="Write the v3 file (default: dry run)")
    parser.add_argument("--force", action="store_true", help="Overwrite an existing v3 file")
    args = parser.parse_args()

    config.configure_logging()
    v2_path = key_path(LEGACY_TOPICS_KEY)
    v3_path = key_path(TOPICS_KEY)

    if v3_path.exists() and not args.force:
        print(f"{v3_path} already exists - nothing to migrate (use --force to rebuild it from v2).")
        return
    if not v2_path.exists():
        print(f"No legacy file found at {v2_path} - nothing to migrate.")
        return

    topics = load_legacy_topics()
    if topics is None:
        print(f"Legacy file at {v2_path} could not be read - see the log above.")
        return

    events = sum(len(t["events"]) for t in topics)
    roots = sum(1 for t in topics if not t["parent_id"])
    print(f"Topics: {len(topics)} ({roots} top-level), events: {events}")
    for t in topics:
        print(f"  {t['title']}: {len(t['events'])} event(s), {len(t['relevant_sources'])} source(s)")

    if not args.apply:
        print("\nDry run - no changes written. Re-run with --apply to write v3.")
        return

    save_topics(topics)
    print(f"\nWrote {v3_path}")


if __name__ == "__main__":
    main()
