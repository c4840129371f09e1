#!/usr/bin/env python3
"""Send hydration reminders whose local time is the current minute."""

from __future__ import annotations

import argparse
import datetime
import logging
import os
import sys
import time

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from sqlmodel import select  # noqa: E402

from hydration_ping.core.config import get_log_level  # noqa: E402
from hydration_ping.core.db import create_session  # noqa: E402
from hydration_ping.models import UserProfile  # noqa: E402
from hydration_ping.services.notification_service import LoggingNotifier, dispatch_due_reminders  # noqa: E402
from hydration_ping.services.reminder_store_service import refresh_upcoming_events  # noqa: E402

logger = logging.getLogger("hydration_dispatch")


def run_once(now: datetime.datetime | None = None) -> int:
    now = now or datetime.datetime.now(datetime.timezone.utc)
    with create_session() as db:
        # 日本語: 先に各利用者の予定窓を今日へ進める / English: Roll every user's window forward to today first
        for user in db.exec(select(UserProfile)).all():
            refresh_upcoming_events(db, user, now)
        delivered = dispatch_due_reminders(db, now, LoggingNotifier())
    logger.info("Dispatch pass at %s delivered %d reminder(s)", now.isoformat(), delivered)
    return delivered


def main() -> int:
    parser = argparse.ArgumentParser(description="Dispatch due hydration reminders")
    parser.add_argument(
        "--loop",
        action="store_true",
        help="Keep polling instead of running a single pass",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=60,
        help="Seconds between passes when --loop is set",
    )

    args = parser.parse_args()
    logging.basicConfig(
        level=get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.interval < 1:
        print("--interval must be at least 1 second.", file=sys.stderr)
        return 1

    if not args.loop:
        run_once()
        return 0

    try:
        while True:
            run_once()
            time.sleep(args.interval)
    except KeyboardInterrupt:
        logger.info("Dispatcher stopped")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
