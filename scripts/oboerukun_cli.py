# oboerukun - LINE List & Reminder Bot
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
oboerukun CLI

Command-line tool for checking date phrases and running the scheduled jobs
by hand.

Usage:
    # Show how a date/time phrase resolves right now
    python scripts/oboerukun_cli.py parse 明日 15時
    python scripts/oboerukun_cli.py parse 12月25日 --cadence 毎月

    # Preview due reminders without sending anything
    python scripts/oboerukun_cli.py due --dry-run

    # Deliver due reminders
    python scripts/oboerukun_cli.py due

    # Preview / run the stale-data cleanup
    python scripts/oboerukun_cli.py cleanup --dry-run
    python scripts/oboerukun_cli.py cleanup
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import datetime

import asyncpg
import pytz
from dotenv import load_dotenv

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

load_dotenv()

from config import BotConfig
from line_client import LineClient
from lists import ListManager
from maintenance import CleanupJob
from reminders import (
    ReminderManager,
    ReminderScheduler,
    advance,
    extract_cadence,
    format_date_time,
    relative_time,
    resolve_datetime,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)
logger = logging.getLogger(__name__)


def truncate(text: str, max_len: int = 40) -> str:
    """Truncate text with ellipsis."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def show_parse(config: BotConfig, date_phrase: str, time_phrase: str = None, cadence_text: str = None) -> None:
    """Print how a phrase resolves, and the next few repeats."""
    now = datetime.now(pytz.UTC)
    result = resolve_datetime(date_phrase, time_phrase, reference=now, civil_tz=config.civil_tz)

    print(f"Input: {date_phrase} {time_phrase or ''}".rstrip())
    print(f"Now (UTC):   {now.isoformat()}")
    print(f"Now (civil): {now.astimezone(config.civil_tz).isoformat()}")
    print("-" * 50)

    if not result.success:
        print(f"Rejected ({result.error_kind}): {result.error_message}")
        if result.error_kind == "past":
            print(f"  Resolved to {result.instant.astimezone(config.civil_tz).isoformat()}")
        return

    print(f"UTC:      {result.instant.isoformat()}")
    print(f"Civil:    {result.instant.astimezone(config.civil_tz).isoformat()}")
    print(f"Display:  {format_date_time(result.instant, now, config.civil_tz)}")
    print(f"Relative: {relative_time(result.instant, now)}")

    cadence = extract_cadence(cadence_text)
    if cadence.to_db() is None:
        return

    print(f"Repeats {cadence.value}:")
    fire_at = result.instant
    for _ in range(3):
        fire_at = advance(fire_at, cadence, config.civil_tz)
        print(f"  {format_date_time(fire_at, now, config.civil_tz)}")


async def run_due(pool: asyncpg.Pool, config: BotConfig, dry_run: bool = False) -> None:
    """Deliver due reminders, or list them."""
    reminders = ReminderManager(pool)
    now = datetime.now(pytz.UTC)

    if dry_run:
        due = await reminders.get_due_reminders(now, limit=config.due_batch_limit)
        if not due:
            print("No reminders due.")
            return

        scheduler = ReminderScheduler(reminders, ListManager(pool), None, config.civil_tz)
        print(f"{len(due)} reminder(s) due:")
        print("-" * 90)
        print(f"{'ID':<6} {'Room':<20} {'Due':<16} {'Next':<16} {'Message':<30}")
        print("-" * 90)
        for r in due:
            next_at = scheduler.next_occurrence(r, now)
            print(
                f"{r['id']:<6} "
                f"{truncate(r['room_id'], 20):<20} "
                f"{format_date_time(r['remind_at'], now, config.civil_tz):<16} "
                f"{format_date_time(next_at, now, config.civil_tz) if next_at else '-':<16} "
                f"{truncate(r['message'], 30)}"
            )
        return

    line = LineClient(config.channel_access_token, config.line_api_base)
    try:
        scheduler = ReminderScheduler(
            reminders, ListManager(pool), line, config.civil_tz, config.due_batch_limit
        )
        print("Running due-reminder sweep...")
        stats = await scheduler.run_due_sweep(now)
    finally:
        await line.close()

    print("Sweep complete:")
    print(f"  Processed: {stats.processed}")
    print(f"  Delivered: {stats.delivered}")
    print(f"  Rescheduled: {stats.rescheduled}")
    print(f"  Completed: {stats.completed}")
    print(f"  Skipped: {stats.skipped}")
    print(f"  Failed: {stats.failed}")


async def run_cleanup(pool: asyncpg.Pool, config: BotConfig, dry_run: bool = False) -> None:
    """Run the stale-data cleanup, or preview it."""
    line = LineClient(config.channel_access_token, config.line_api_base)
    try:
        job = CleanupJob(pool, line, config)
        print("Previewing cleanup..." if dry_run else "Running cleanup...")
        stats = await job.run_cleanup(dry_run=dry_run)
    finally:
        await line.close()

    print("Cleanup preview:" if dry_run else "Cleanup complete:")
    print(f"  Rooms checked: {stats.rooms}")
    print(f"  {'Would delete' if dry_run else 'Deleted'}: {stats.deleted}")
    print(f"  Rooms {'to warn' if dry_run else 'warned'}: {stats.warned_rooms}")
    print(f"    Reminders: {stats.warned_reminders}")
    print(f"    Lists: {stats.warned_lists}")
    print(f"  Errors: {stats.errors}")


async def main():
    parser = argparse.ArgumentParser(description="oboerukun management CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # parse command
    parse_parser = subparsers.add_parser("parse", help="Resolve a date/time phrase")
    parse_parser.add_argument("date", help="Date phrase (明日, 3日後, 12月25日, ...)")
    parse_parser.add_argument("time", nargs="?", help="Time phrase (朝, 15時, 15:30, ...)")
    parse_parser.add_argument("--cadence", help="Text with a repeat keyword (毎日, 毎週, 毎月)")

    # due command
    due_parser = subparsers.add_parser("due", help="Deliver due reminders")
    due_parser.add_argument(
        "--dry-run", action="store_true", help="List due reminders without sending"
    )

    # cleanup command
    cleanup_parser = subparsers.add_parser("cleanup", help="Run the stale-data cleanup")
    cleanup_parser.add_argument(
        "--dry-run", action="store_true", help="Preview changes without applying"
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    config = BotConfig.from_env()

    if args.command == "parse":
        show_parse(config, args.date, args.time, args.cadence)
        return

    if not config.database_url:
        print("Error: DATABASE_URL environment variable not set")
        sys.exit(1)

    pool = await asyncpg.create_pool(config.database_url, min_size=1, max_size=2)

    try:
        if args.command == "due":
            await run_due(pool, config, args.dry_run)
        elif args.command == "cleanup":
            await run_cleanup(pool, config, args.dry_run)
    finally:
        await pool.close()


if __name__ == "__main__":
    asyncio.run(main())
