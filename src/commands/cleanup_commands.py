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
Cleanup Commands

Handlers for the buttons under a stale-data notice.
"""

import logging

import messages
from analytics import track
from lists import ListManager
from maintenance import CleanupJob
from reminders import ReminderManager
from sessions import WAITING_CLEANUP_SELECTION, RoomSession, RoomSessionStore
from utils.numbers import parse_numbers

logger = logging.getLogger("oboerukun.commands.cleanup")

KIND_REMINDER = "reminder"
KIND_LIST = "list"


class CleanupCommands:
    """Delete all, pick what to delete, or keep the announced data."""

    def __init__(
        self,
        cleanup_job: CleanupJob,
        reminder_manager: ReminderManager,
        list_manager: ListManager,
        sessions: RoomSessionStore,
    ):
        self.cleanup = cleanup_job
        self.reminders = reminder_manager
        self.lists = list_manager
        self.sessions = sessions

    async def delete_all(self, room_id: str, reminder_ids: list[int], list_ids: list[int]) -> str:
        reminder_count, list_count = await self.cleanup.delete_by_ids(room_id, reminder_ids, list_ids)
        track(
            "cleanup_deleted",
            "cleanup",
            room_id=room_id,
            properties={"reminders": reminder_count, "lists": list_count, "selected": False},
        )
        return messages.cleanup_done(reminder_count, list_count)

    async def postpone(self, room_id: str, reminder_ids: list[int], list_ids: list[int]) -> str:
        await self.cleanup.postpone(room_id, reminder_ids, list_ids)
        track("cleanup_postponed", "cleanup", room_id=room_id)
        return messages.cleanup_postponed()

    async def start_select(self, room_id: str, reminder_ids: list[int], list_ids: list[int]) -> str:
        """Show the announced data as a numbered list and wait for numbers."""
        reminders = [
            r for r in await self.reminders.get_reminders_by_ids(reminder_ids)
            if r["room_id"] == room_id
        ]
        lists = [
            lst for lst in await self.lists.get_lists_by_ids(list_ids)
            if lst["user_id"] == room_id
        ]
        if not reminders and not lists:
            return messages.CLEANUP_NOTHING_LEFT

        choices = [(KIND_REMINDER, r["id"]) for r in reminders]
        choices += [(KIND_LIST, lst["id"]) for lst in lists]
        self.sessions.set(room_id, WAITING_CLEANUP_SELECTION, choices=choices)
        return messages.choose_cleanup(reminders, lists)

    async def receive_selection(self, room_id: str, session: RoomSession, text: str) -> str:
        self.sessions.clear(room_id)

        chosen = [
            session.choices[n - 1]
            for n in parse_numbers(text)
            if n <= len(session.choices)
        ]
        if not chosen:
            return messages.NO_VALID_NUMBERS

        reminder_ids = [i for kind, i in chosen if kind == KIND_REMINDER]
        list_ids = [i for kind, i in chosen if kind == KIND_LIST]
        reminder_count, list_count = await self.cleanup.delete_by_ids(room_id, reminder_ids, list_ids)
        track(
            "cleanup_deleted",
            "cleanup",
            room_id=room_id,
            properties={"reminders": reminder_count, "lists": list_count, "selected": True},
        )
        return messages.cleanup_done(reminder_count, list_count)
