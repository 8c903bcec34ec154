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
Reminder Manager Module

Handles database operations for reminders.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

import asyncpg
import pytz

from utils.db import affected_rows

from .recurrence import RepeatCadence

logger = logging.getLogger("oboerukun.reminders.manager")

REMINDER_COLUMNS = """
    id, room_id, reminder_name, message, remind_at, is_completed, status,
    repeat_pattern, priority, created_at, updated_at, cleanup_warning_at
"""

STATUS_ACTIVE = "active"
STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUSES = (STATUS_ACTIVE, STATUS_PENDING, STATUS_COMPLETED)


@dataclass
class CategorizedReminders:
    """A room's reminders grouped for display."""

    active: list[dict] = field(default_factory=list)
    pending: list[dict] = field(default_factory=list)
    completed: list[dict] = field(default_factory=list)


class ReminderManager:
    """
    Manages database operations for reminders.

    Reminders belong to a room (LINE group, room or 1:1 chat) and are
    addressed by name inside that room.
    """

    def __init__(self, db_pool: asyncpg.Pool):
        """
        Initialize the reminder manager.

        Args:
            db_pool: asyncpg connection pool
        """
        self.db = db_pool

    async def create_reminder(
        self,
        room_id: str,
        reminder_name: str,
        message: str,
        remind_at: datetime,
        cadence: RepeatCadence = RepeatCadence.NONE,
        priority: str = "medium",
    ) -> dict:
        """
        Create a new active reminder.

        Args:
            room_id: LINE room identifier
            reminder_name: Name used to address the reminder
            message: Text delivered when the reminder fires
            remind_at: Fire time (UTC)
            cadence: Repeat cadence
            priority: Priority label

        Returns:
            The created reminder row
        """
        row = await self.db.fetchrow(
            f"""
            INSERT INTO reminders (
                room_id, reminder_name, message, remind_at,
                repeat_pattern, priority, status
            ) VALUES ($1, $2, $3, $4, $5, $6, 'active')
            RETURNING {REMINDER_COLUMNS}
            """,
            room_id,
            reminder_name,
            message,
            remind_at,
            RepeatCadence.from_value(cadence).to_db(),
            priority,
        )

        logger.info(
            f"Created reminder {row['id']} in room {room_id}: "
            f"at={remind_at}, repeat={RepeatCadence.from_value(cadence).value}"
        )
        return dict(row)

    async def list_reminders(self, room_id: str) -> list[dict]:
        """List a room's reminders that are not completed, soonest first."""
        rows = await self.db.fetch(
            f"""
            SELECT {REMINDER_COLUMNS} FROM reminders
            WHERE room_id = $1 AND status != 'completed'
            ORDER BY remind_at ASC
            """,
            room_id,
        )
        return [dict(row) for row in rows]

    async def get_reminder_by_name(
        self, room_id: str, reminder_name: str
    ) -> Optional[dict]:
        """Get an open (not completed) reminder by name."""
        row = await self.db.fetchrow(
            f"""
            SELECT {REMINDER_COLUMNS} FROM reminders
            WHERE room_id = $1 AND reminder_name = $2 AND status != 'completed'
            """,
            room_id,
            reminder_name,
        )
        return dict(row) if row else None

    async def update_reminder(
        self,
        room_id: str,
        reminder_name: str,
        message: str,
        remind_at: datetime,
        cadence: RepeatCadence = RepeatCadence.NONE,
        priority: str = "medium",
    ) -> bool:
        """
        Replace the schedule and message of a named reminder.

        The reminder becomes active again.

        Returns:
            True if a reminder was updated
        """
        result = await self.db.execute(
            """
            UPDATE reminders
            SET message = $3, remind_at = $4, repeat_pattern = $5,
                priority = $6, status = 'active', cleanup_warning_at = NULL,
                updated_at = NOW()
            WHERE room_id = $1 AND reminder_name = $2
            """,
            room_id,
            reminder_name,
            message,
            remind_at,
            RepeatCadence.from_value(cadence).to_db(),
            priority,
        )

        updated = affected_rows(result) > 0
        if updated:
            logger.info(f"Updated reminder '{reminder_name}' in room {room_id}")
        return updated

    async def delete_reminder(self, room_id: str, reminder_name: str) -> bool:
        """Delete every reminder with this name in the room."""
        result = await self.db.execute(
            """
            DELETE FROM reminders
            WHERE room_id = $1 AND reminder_name = $2
            """,
            room_id,
            reminder_name,
        )

        deleted = affected_rows(result) > 0
        if deleted:
            logger.info(f"Deleted reminder '{reminder_name}' in room {room_id}")
        return deleted

    async def get_completed_reminders(self, room_id: str, limit: int = 10) -> list[dict]:
        """Most recently completed reminders of a room."""
        rows = await self.db.fetch(
            f"""
            SELECT {REMINDER_COLUMNS} FROM reminders
            WHERE room_id = $1 AND status = 'completed'
            ORDER BY updated_at DESC
            LIMIT $2
            """,
            room_id,
            limit,
        )
        return [dict(row) for row in rows]

    async def get_categorized_reminders(
        self, room_id: str, now: Optional[datetime] = None
    ) -> CategorizedReminders:
        """
        Group a room's reminders for display.

        - active: scheduled and not yet due
        - pending: delivered, waiting for the user
        - completed: latest 10
        """
        now = now or datetime.now(pytz.UTC)

        active = await self.db.fetch(
            f"""
            SELECT {REMINDER_COLUMNS} FROM reminders
            WHERE room_id = $1 AND status = 'active' AND remind_at > $2
            ORDER BY remind_at ASC
            """,
            room_id,
            now,
        )
        pending = await self.db.fetch(
            f"""
            SELECT {REMINDER_COLUMNS} FROM reminders
            WHERE room_id = $1 AND status = 'pending'
            ORDER BY remind_at ASC
            """,
            room_id,
        )
        completed = await self.get_completed_reminders(room_id, limit=10)

        return CategorizedReminders(
            active=[dict(row) for row in active],
            pending=[dict(row) for row in pending],
            completed=completed,
        )

    async def delete_reminders_by_ids(self, room_id: str, reminder_ids: list[int]) -> int:
        """Delete reminders of a room by ID. Returns the number deleted."""
        if not reminder_ids:
            return 0
        result = await self.db.execute(
            """
            DELETE FROM reminders
            WHERE room_id = $1 AND id = ANY($2::int[])
            """,
            room_id,
            reminder_ids,
        )
        count = affected_rows(result)
        logger.info(f"Deleted {count} reminder(s) in room {room_id}")
        return count

    async def get_reminders_by_ids(self, reminder_ids: list[int]) -> list[dict]:
        """Fetch reminders by ID, ordered by ID."""
        if not reminder_ids:
            return []
        rows = await self.db.fetch(
            f"""
            SELECT {REMINDER_COLUMNS} FROM reminders
            WHERE id = ANY($1::int[])
            ORDER BY id ASC
            """,
            reminder_ids,
        )
        return [dict(row) for row in rows]

    # =========================================================================
    # Status transitions
    # =========================================================================

    async def update_status(self, reminder_id: int, status: str) -> None:
        """Set a reminder's status (active, pending or completed)."""
        if status not in STATUSES:
            raise ValueError(f"Unknown reminder status: {status}")

        await self.db.execute(
            """
            UPDATE reminders
            SET status = $2, is_completed = ($2 = 'completed'), updated_at = NOW()
            WHERE id = $1
            """,
            reminder_id,
            status,
        )

    async def complete_reminder(self, reminder_id: int) -> None:
        """Mark a reminder completed."""
        await self.update_status(reminder_id, STATUS_COMPLETED)
        logger.info(f"Reminder {reminder_id} completed")

    async def snooze_reminder(
        self,
        reminder_id: int,
        minutes: int,
        now: Optional[datetime] = None,
    ) -> Optional[datetime]:
        """
        Reactivate a reminder ``minutes`` from now.

        Returns:
            The new fire time, or None if the reminder does not exist
        """
        now = now or datetime.now(pytz.UTC)
        remind_at = now + timedelta(minutes=minutes)

        result = await self.db.execute(
            """
            UPDATE reminders
            SET remind_at = $2, status = 'active', is_completed = FALSE,
                cleanup_warning_at = NULL, updated_at = NOW()
            WHERE id = $1
            """,
            reminder_id,
            remind_at,
        )

        if affected_rows(result) == 0:
            return None
        logger.info(f"Snoozed reminder {reminder_id} by {minutes} minutes")
        return remind_at

    # =========================================================================
    # Scheduler-facing methods
    # =========================================================================

    async def get_due_reminders(
        self, now: Optional[datetime] = None, limit: int = 100
    ) -> list[dict]:
        """
        Get all reminders that are due for delivery.

        Returns:
            Active reminders whose remind_at is at or before ``now``
        """
        now = now or datetime.now(pytz.UTC)

        rows = await self.db.fetch(
            f"""
            SELECT {REMINDER_COLUMNS} FROM reminders
            WHERE status = 'active' AND remind_at <= $1
            ORDER BY remind_at ASC
            LIMIT $2
            """,
            now,
            limit,
        )
        return [dict(row) for row in rows]

    async def claim_reminder(self, reminder_id: int) -> bool:
        """
        Move a due reminder from active to pending before delivery.

        Returns:
            False if another sweep already claimed it
        """
        result = await self.db.execute(
            """
            UPDATE reminders
            SET status = 'pending', updated_at = NOW()
            WHERE id = $1 AND status = 'active'
            """,
            reminder_id,
        )
        return affected_rows(result) == 1

    async def release_reminder(self, reminder_id: int) -> None:
        """Return a claimed reminder to active so the next sweep retries it."""
        await self.db.execute(
            """
            UPDATE reminders
            SET status = 'active', updated_at = NOW()
            WHERE id = $1 AND status = 'pending'
            """,
            reminder_id,
        )

    async def reschedule(self, reminder_id: int, next_remind_at: datetime) -> None:
        """Move a repeating reminder to its next occurrence and reactivate it."""
        await self.db.execute(
            """
            UPDATE reminders
            SET remind_at = $2, status = 'active', updated_at = NOW()
            WHERE id = $1
            """,
            reminder_id,
            next_remind_at,
        )
        logger.info(f"Reminder {reminder_id} rescheduled, next at {next_remind_at}")
