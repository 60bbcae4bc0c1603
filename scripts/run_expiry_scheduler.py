#!/usr/bin/env python3
"""
Run the Expiry Scheduler: auto-decline pending acquisition requests whose
deadline has passed.

Settings (ttl, tick interval, database URL, log level) come from a profile
in inventory_config/sets/.  ``--database-url`` overrides the profile's URL.

Usage:
    python3 scripts/run_expiry_scheduler.py [--profile NAME] [--database-url URL] [--once]

Examples:
    # Single pass against a database, then exit (cron-style)
    python3 scripts/run_expiry_scheduler.py --database-url postgresql://inv@localhost/inventory --once

    # Long-running loop with the test profile's 1s tick
    python3 scripts/run_expiry_scheduler.py --profile test
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Auto-decline expired acquisition requests.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--profile",
        default="default",
        help="Settings profile in inventory_config/sets/ (default: default).",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL; overrides the profile's database_url.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single tick and exit.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from inventory_batch.services.scheduler import ExpiryScheduler
    from inventory_config import build_request_service, get_active_settings
    from inventory_kernel.db.engine import (
        create_tables,
        get_session_factory,
        init_engine_from_url,
    )
    from inventory_kernel.logging_config import configure_logging, get_logger
    from inventory_kernel.services.notifications import LoggingNotificationSink
    from inventory_kernel.storage import InMemoryInventoryStore, SqlAlchemyInventoryStore

    settings = get_active_settings(args.profile)
    configure_logging(level=settings.log_level)
    logger = get_logger("scripts.expiry_scheduler")

    database_url = args.database_url or settings.database_url
    if database_url:
        init_engine_from_url(database_url)
        create_tables()
        store = SqlAlchemyInventoryStore(get_session_factory())
    else:
        logger.warning("scheduler_using_memory_store")
        store = InMemoryInventoryStore()

    service = build_request_service(store, settings, notifier=LoggingNotificationSink())
    scheduler = ExpiryScheduler(service, tick_interval=settings.tick_interval)

    if args.once:
        declined = scheduler.tick()
        print(f"Auto-declined {len(declined)} request(s).")
        return 0

    done = threading.Event()

    def _shutdown(signum, frame):
        done.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    scheduler.start()
    print(
        f"Expiry scheduler running (profile={settings.profile}, "
        f"tick={settings.tick_interval_seconds:g}s). Ctrl-C to stop."
    )
    done.wait()
    scheduler.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
