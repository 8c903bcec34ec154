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
Reminder Scheduler Module

Delivers due reminders. A sweep is normally triggered by the /api/cron
endpoint; the scheduler can also run its own loop inside the server process.

For each due reminder the sweep:
1. Claims it (active -> pending) so overlapping sweeps cannot double-deliver
2. Pushes the text, plus the items of any list named in the message, and
   the snooze buttons
3. Reschedules it (repeating) or marks it completed (one-time)

A failed push puts the reminder back to active for the next sweep. A failed
status update after a successful push is retried once; if it fails again the
reminder stays pending and the sweep moves on.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytz

import messages
from analytics import track
from config import CIVIL_TZ
from line_client import LineClient, snooze_template, text_message
from lists import ListManager

from .manager import ReminderManager
from .recurrence import advance

logger = logging.getLogger("oboerukun.reminders.scheduler")


class DeliveryError(Exception):
    """The LINE API did not accept a push."""


@dataclass
class SweepStats:
    """Statistics from a due-reminder sweep."""

    processed: int = 0
    delivered: int = 0
    rescheduled: int = 0
    completed: int = 0
    skipped: int = 0
    failed: int = 0


class ReminderScheduler:
    """
    Delivers due reminders to their rooms.
    """

    def __init__(
        self,
        manager: ReminderManager,
        list_manager: ListManager,
        line_client: LineClient,
        civil_tz: pytz.BaseTzInfo = CIVIL_TZ,
        batch_limit: int = 100,
    ):
        self.manager = manager
        self.lists = list_manager
        self.line = line_client
        self.civil_tz = civil_tz
        self.batch_limit = batch_limit
        self._task: Optional[asyncio.Task] = None

    def start(self, interval_seconds: int = 60) -> None:
        """Run sweeps in the background every ``interval_seconds``."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._loop(interval_seconds))
            logger.info(f"Reminder scheduler started (every {interval_seconds}s)")

    def stop(self) -> None:
        """Stop the background loop."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.info("Reminder scheduler stopped")

    async def _loop(self, interval_seconds: int) -> None:
        while True:
            try:
                await self.run_due_sweep()
            except Exception as e:
                logger.error(f"Error in reminder scheduler loop: {e}", exc_info=True)
                track(
                    "scheduler_error",
                    "error",
                    properties={"error_type": type(e).__name__, "error_message": str(e)[:200]},
                )
            await asyncio.sleep(interval_seconds)

    async def run_due_sweep(self, now: Optional[datetime] = None) -> SweepStats:
        """
        Deliver every reminder that is due at ``now``.

        Returns:
            Statistics about the sweep
        """
        now = now or datetime.now(pytz.UTC)
        logger.info(
            f"Checking reminders at {now.isoformat()} "
            f"(civil {now.astimezone(self.civil_tz).isoformat()})"
        )

        due = await self.manager.get_due_reminders(now, limit=self.batch_limit)
        stats = SweepStats(processed=len(due))
        if due:
            logger.info(f"Processing {len(due)} due reminder(s)")

        for reminder in due:
            outcome = await self._deliver_reminder(reminder, now)
            setattr(stats, outcome, getattr(stats, outcome) + 1)
            if outcome in ("rescheduled", "completed"):
                stats.delivered += 1

        return stats

    async def _related_lists(self, room_id: str, message: str) -> list[dict]:
        """Lists of the room whose name appears in the reminder text, with items."""
        related = []
        for lst in await self.lists.get_lists(room_id):
            if lst["list_name"] not in message:
                continue
            full = await self.lists.get_list_with_items(room_id, lst["list_name"])
            if full and full["items"]:
                related.append(full)
        return related

    def next_occurrence(self, reminder: dict, now: datetime) -> Optional[datetime]:
        """
        Next fire time of a repeating reminder that is after ``now``.

        Occurrences missed while the bot was down are skipped rather than
        delivered back to back.
        """
        next_at = advance(reminder["remind_at"], reminder.get("repeat_pattern"), self.civil_tz)
        while next_at is not None and next_at <= now:
            next_at = advance(next_at, reminder.get("repeat_pattern"), self.civil_tz)
        return next_at

    async def _deliver_reminder(self, reminder: dict, now: datetime) -> str:
        """
        Deliver a single reminder.

        Returns:
            The SweepStats field to count it under
        """
        reminder_id = reminder["id"]
        room_id = reminder["room_id"]

        if not await self.manager.claim_reminder(reminder_id):
            logger.info(f"Reminder {reminder_id} already claimed, skipping")
            return "skipped"

        try:
            related = await self._related_lists(room_id, reminder["message"])
            text = messages.delivery(reminder["message"], related)
            sent = await self.line.push(room_id, [text_message(text), snooze_template(reminder_id)])
            if not sent:
                raise DeliveryError("push rejected")
        except Exception as e:
            logger.error(f"Failed to deliver reminder {reminder_id}: {e}", exc_info=True)
            await self.manager.release_reminder(reminder_id)
            track(
                "reminder_delivery_error",
                "error",
                room_id=room_id,
                properties={
                    "reminder_id": reminder_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e)[:200],
                },
            )
            return "failed"

        logger.info(f"Delivered reminder {reminder_id} to {room_id}")

        try:
            outcome = await self._advance_after_delivery(reminder, now)
        except Exception as e:
            # Already pushed, so it is not released: that would deliver it twice.
            # It stays pending, where the snooze buttons can still revive it.
            logger.error(
                f"Delivered reminder {reminder_id} but could not update it: {e}",
                exc_info=True,
            )
            track(
                "reminder_update_error",
                "error",
                room_id=room_id,
                properties={
                    "reminder_id": reminder_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e)[:200],
                },
            )
            return "failed"

        track(
            "reminder_delivered",
            "reminder",
            room_id=room_id,
            properties={
                "reminder_id": reminder_id,
                "repeat_pattern": reminder.get("repeat_pattern"),
                "related_lists": len(related),
            },
        )
        return outcome

    async def _advance_after_delivery(self, reminder: dict, now: datetime) -> str:
        """Reschedule or complete a delivered reminder, retrying once."""
        next_at = self.next_occurrence(reminder, now)
        try:
            return await self._apply_next(reminder["id"], next_at)
        except Exception as e:
            logger.warning(f"Updating reminder {reminder['id']} failed, retrying: {e}")
            return await self._apply_next(reminder["id"], next_at)

    async def _apply_next(self, reminder_id: int, next_at: Optional[datetime]) -> str:
        if next_at is None:
            await self.manager.complete_reminder(reminder_id)
            return "completed"
        await self.manager.reschedule(reminder_id, next_at)
        return "rescheduled"
