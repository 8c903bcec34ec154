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
Stale Data Cleanup

Job that ages out reminders and lists nobody has touched for a while.

Cleanup policy:
- A reminder that is not completed and has not been updated for
  ``stale_after_months`` (2) is stale; so is a list not read or changed
  for that long
- Stale data is announced to its room once (cleanup_warning_at is set) with
  buttons to delete everything, pick what to delete, or keep it for now
- Data still warned ``warning_grace_months`` (1) after the notice is
  deleted automatically and the room is told how much was removed
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import asyncpg
import pytz

import messages
from analytics import track
from config import BotConfig
from line_client import LineClient, cleanup_template, text_message
from reminders.recurrence import add_months
from utils.db import affected_rows

logger = logging.getLogger("oboerukun.maintenance.cleanup")


@dataclass
class StaleData:
    """Stale, not yet warned data of one room."""

    reminders: list[dict] = field(default_factory=list)
    lists: list[dict] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.reminders or self.lists)


@dataclass
class CleanupStats:
    """Statistics from a cleanup run."""

    rooms: int = 0
    deleted: int = 0
    warned_rooms: int = 0
    warned_reminders: int = 0
    warned_lists: int = 0
    errors: int = 0


class CleanupJob:
    """Finds, announces and removes stale reminders and lists."""

    def __init__(
        self,
        db_pool: asyncpg.Pool,
        line_client: LineClient,
        config: Optional[BotConfig] = None,
    ):
        self.db = db_pool
        self.line = line_client
        self.config = config or BotConfig.from_env()

    async def run_cleanup(
        self, now: Optional[datetime] = None, dry_run: bool = False
    ) -> CleanupStats:
        """
        Execute the cleanup job.

        Args:
            now: Reference time (defaults to the current time)
            dry_run: Count what would happen without deleting, marking or notifying

        Returns:
            Statistics about the cleanup run
        """
        now = now or datetime.now(pytz.UTC)
        logger.info("Starting cleanup check...")

        room_ids = await self.get_all_room_ids()
        stats = CleanupStats(rooms=len(room_ids))

        # Step 1: Remove data whose warning has expired
        for room_id in room_ids:
            try:
                if dry_run:
                    stats.deleted += await self.count_warned_data(room_id, now)
                    continue
                deleted = await self.delete_warned_data(room_id, now)
                if deleted > 0:
                    stats.deleted += deleted
                    logger.info(f"Auto-deleted {deleted} items for room {room_id}")
                    await self.line.push(
                        room_id, [text_message(messages.cleanup_deleted_notice(deleted))]
                    )
            except Exception as e:
                stats.errors += 1
                logger.error(f"Error deleting warned data for room {room_id}: {e}", exc_info=True)

        # Step 2: Announce newly stale data
        for room_id in room_ids:
            try:
                stale = await self.get_stale_data(room_id, now)
                if not stale:
                    continue

                stats.warned_rooms += 1
                stats.warned_reminders += len(stale.reminders)
                stats.warned_lists += len(stale.lists)
                logger.info(
                    f"Found stale data for room {room_id}: "
                    f"{len(stale.reminders)} reminders, {len(stale.lists)} lists"
                )
                if dry_run:
                    continue

                await self._notify_stale(room_id, stale)
            except Exception as e:
                stats.errors += 1
                logger.error(f"Error checking stale data for room {room_id}: {e}", exc_info=True)

        logger.info(
            f"Cleanup complete: rooms={stats.rooms}, deleted={stats.deleted}, "
            f"warned_rooms={stats.warned_rooms}, errors={stats.errors}"
        )
        if stats.errors:
            track("cleanup_error", "error", properties={"errors": stats.errors})
        return stats

    async def _notify_stale(self, room_id: str, stale: StaleData) -> None:
        reminder_ids = [r["id"] for r in stale.reminders]
        list_ids = [lst["id"] for lst in stale.lists]

        sent = await self.line.push(
            room_id,
            [
                text_message(messages.cleanup_notice(len(reminder_ids), len(list_ids))),
                cleanup_template(reminder_ids, list_ids),
            ],
        )
        # Only start the grace period once the room has actually been told
        if sent:
            await self.mark_cleanup_warning(reminder_ids, list_ids)
            track(
                "cleanup_warned",
                "cleanup",
                room_id=room_id,
                properties={"reminders": len(reminder_ids), "lists": len(list_ids)},
            )

    # =========================================================================
    # Queries
    # =========================================================================

    async def get_all_room_ids(self) -> list[str]:
        """Every room that owns a reminder or a list."""
        rows = await self.db.fetch(
            """
            SELECT DISTINCT room_id FROM reminders
            UNION
            SELECT DISTINCT user_id AS room_id FROM lists
            """
        )
        return [row["room_id"] for row in rows]

    async def get_stale_data(self, room_id: str, now: Optional[datetime] = None) -> StaleData:
        """Stale data of a room that has not been announced yet."""
        now = now or datetime.now(pytz.UTC)
        cutoff = add_months(now, -self.config.stale_after_months)

        reminders = await self.db.fetch(
            """
            SELECT id, reminder_name, updated_at FROM reminders
            WHERE room_id = $1 AND updated_at < $2
              AND status != 'completed' AND cleanup_warning_at IS NULL
            ORDER BY id ASC
            """,
            room_id,
            cutoff,
        )
        lists = await self.db.fetch(
            """
            SELECT id, list_name, last_accessed_at FROM lists
            WHERE user_id = $1 AND last_accessed_at < $2
              AND cleanup_warning_at IS NULL
            ORDER BY id ASC
            """,
            room_id,
            cutoff,
        )
        return StaleData(
            reminders=[dict(row) for row in reminders],
            lists=[dict(row) for row in lists],
        )

    async def mark_cleanup_warning(self, reminder_ids: list[int], list_ids: list[int]) -> None:
        """Record that the room was warned about these rows."""
        if reminder_ids:
            await self.db.execute(
                """
                UPDATE reminders SET cleanup_warning_at = NOW()
                WHERE id = ANY($1::int[])
                """,
                reminder_ids,
            )
        if list_ids:
            await self.db.execute(
                """
                UPDATE lists SET cleanup_warning_at = NOW()
                WHERE id = ANY($1::int[])
                """,
                list_ids,
            )

    async def count_warned_data(self, room_id: str, now: Optional[datetime] = None) -> int:
        """How many rows delete_warned_data() would remove."""
        now = now or datetime.now(pytz.UTC)
        cutoff = add_months(now, -self.config.warning_grace_months)
        reminders = await self.db.fetchval(
            """
            SELECT COUNT(*) FROM reminders
            WHERE room_id = $1 AND cleanup_warning_at IS NOT NULL AND cleanup_warning_at < $2
            """,
            room_id,
            cutoff,
        )
        lists = await self.db.fetchval(
            """
            SELECT COUNT(*) FROM lists
            WHERE user_id = $1 AND cleanup_warning_at IS NOT NULL AND cleanup_warning_at < $2
            """,
            room_id,
            cutoff,
        )
        return (reminders or 0) + (lists or 0)

    async def delete_warned_data(self, room_id: str, now: Optional[datetime] = None) -> int:
        """Delete a room's rows whose warning is older than the grace period."""
        now = now or datetime.now(pytz.UTC)
        cutoff = add_months(now, -self.config.warning_grace_months)

        reminders = await self.db.execute(
            """
            DELETE FROM reminders
            WHERE room_id = $1 AND cleanup_warning_at IS NOT NULL AND cleanup_warning_at < $2
            """,
            room_id,
            cutoff,
        )
        lists = await self.db.execute(
            """
            DELETE FROM lists
            WHERE user_id = $1 AND cleanup_warning_at IS NOT NULL AND cleanup_warning_at < $2
            """,
            room_id,
            cutoff,
        )
        return affected_rows(reminders) + affected_rows(lists)

    # =========================================================================
    # User actions (cleanup buttons)
    # =========================================================================

    async def delete_by_ids(
        self, room_id: str, reminder_ids: list[int], list_ids: list[int]
    ) -> tuple[int, int]:
        """
        Delete the given reminders and lists of a room.

        Returns:
            (reminders deleted, lists deleted)
        """
        reminder_count = 0
        list_count = 0

        if reminder_ids:
            result = await self.db.execute(
                """
                DELETE FROM reminders
                WHERE room_id = $1 AND id = ANY($2::int[])
                """,
                room_id,
                reminder_ids,
            )
            reminder_count = affected_rows(result)

        if list_ids:
            result = await self.db.execute(
                """
                DELETE FROM lists
                WHERE user_id = $1 AND id = ANY($2::int[])
                """,
                room_id,
                list_ids,
            )
            list_count = affected_rows(result)

        logger.info(
            f"Cleanup deleted {reminder_count} reminders, {list_count} lists in room {room_id}"
        )
        return reminder_count, list_count

    async def postpone(self, room_id: str, reminder_ids: list[int], list_ids: list[int]) -> None:
        """Keep the given rows: clear their warning and restart their idle clock."""
        if reminder_ids:
            await self.db.execute(
                """
                UPDATE reminders
                SET cleanup_warning_at = NULL, updated_at = NOW()
                WHERE room_id = $1 AND id = ANY($2::int[])
                """,
                room_id,
                reminder_ids,
            )
        if list_ids:
            await self.db.execute(
                """
                UPDATE lists
                SET cleanup_warning_at = NULL, last_accessed_at = NOW()
                WHERE user_id = $1 AND id = ANY($2::int[])
                """,
                room_id,
                list_ids,
            )
        logger.info(f"Cleanup postponed in room {room_id}")
