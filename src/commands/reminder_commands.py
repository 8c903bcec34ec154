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
Reminder Commands

Chat commands for creating, changing and removing reminders, and the
snooze / complete buttons shown under a delivered reminder.
"""

import logging
from datetime import datetime
from typing import Optional

import pytz

import messages
from analytics import track
from config import CIVIL_TZ
from reminders import (
    ReminderManager,
    RepeatCadence,
    extract_cadence,
    is_time_phrase,
    resolve_datetime,
    strip_cadence_keywords,
)
from sessions import WAITING_REMINDER_SELECTION, RoomSession, RoomSessionStore
from utils.numbers import parse_numbers

logger = logging.getLogger("oboerukun.commands.reminder")

SUBCOMMAND_LIST = "一覧"
SUBCOMMAND_HISTORY = "履歴"
SUBCOMMAND_DELETE = "削除"
SUBCOMMAND_UPDATE = "変更"


def parse_schedule(tokens: list[str]) -> tuple[Optional[str], Optional[str], str, RepeatCadence]:
    """
    Split the tokens after a reminder name into schedule and message.

    The first token is the date phrase unless it already reads as a time,
    the next token is the time phrase only when it reads as one, and the
    rest is the message. Cadence keywords anywhere count and are removed.

    Returns:
        (date_phrase, time_phrase, message, cadence)
    """
    cadence = extract_cadence(" ".join(tokens))
    tokens = [t for t in (strip_cadence_keywords(t) for t in tokens) if t]

    date_phrase = None
    time_phrase = None
    if tokens and not is_time_phrase(tokens[0]):
        date_phrase = tokens.pop(0)
    if tokens and is_time_phrase(tokens[0]):
        time_phrase = tokens.pop(0)

    return date_phrase, time_phrase, " ".join(tokens), cadence


class ReminderCommands:
    """
    Chat commands for reminders.

    Commands (P = command prefix):
    - P リマインド - Usage
    - P リマインド 一覧 - Scheduled, delivered and completed reminders
    - P リマインド 履歴 - Recently completed reminders
    - P リマインド 削除 - Pick reminders to delete by number
    - P リマインド <name> 削除 - Delete one reminder
    - P リマインド <name> <date> [time] [message] - Create
    - P リマインド <name> 変更 <date> [time] [message] - Change
    """

    def __init__(
        self,
        reminder_manager: ReminderManager,
        sessions: RoomSessionStore,
        prefix: str,
        civil_tz: pytz.BaseTzInfo = CIVIL_TZ,
    ):
        self.reminders = reminder_manager
        self.sessions = sessions
        self.p = prefix
        self.civil_tz = civil_tz

    async def handle(self, room_id: str, args: list[str], now: datetime) -> str:
        """Dispatch ``P リマインド <args...>``."""
        if not args:
            return messages.reminder_help(self.p)

        if len(args) == 1 and args[0] == SUBCOMMAND_LIST:
            return await self.show_all(room_id, now)
        if len(args) == 1 and args[0] == SUBCOMMAND_HISTORY:
            return await self.show_history(room_id, now)
        if len(args) == 1 and args[0] == SUBCOMMAND_DELETE:
            return await self.start_select_delete(room_id, now)

        name = args[0]
        rest = args[1:]
        if rest == [SUBCOMMAND_DELETE]:
            return await self.delete(room_id, name)
        if rest and rest[0] == SUBCOMMAND_UPDATE:
            return await self.update(room_id, name, rest[1:], now)
        return await self.create(room_id, name, rest, now)

    # =========================================================================
    # Create / update / delete
    # =========================================================================

    async def create(self, room_id: str, name: str, tokens: list[str], now: datetime) -> str:
        track("command_used", "command", room_id=room_id, properties={"command": "remind_create"})
        if not tokens:
            return messages.reminder_usage_error(self.p)

        if await self.reminders.get_reminder_by_name(room_id, name):
            return messages.reminder_exists(self.p, name)

        date_phrase, time_phrase, message, cadence = parse_schedule(tokens)
        resolved = resolve_datetime(date_phrase, time_phrase, reference=now, civil_tz=self.civil_tz)
        if not resolved.success:
            return resolved.error_message

        reminder = await self.reminders.create_reminder(
            room_id, name, message or name, resolved.instant, cadence
        )
        track(
            "reminder_created",
            "reminder",
            room_id=room_id,
            properties={"repeat_pattern": cadence.to_db(), "has_time": time_phrase is not None},
        )
        return messages.reminder_created(reminder, now, self.civil_tz)

    async def update(self, room_id: str, name: str, tokens: list[str], now: datetime) -> str:
        track("command_used", "command", room_id=room_id, properties={"command": "remind_update"})
        if not tokens:
            return messages.reminder_usage_error(self.p)

        date_phrase, time_phrase, message, cadence = parse_schedule(tokens)
        resolved = resolve_datetime(date_phrase, time_phrase, reference=now, civil_tz=self.civil_tz)
        if not resolved.success:
            return resolved.error_message

        message = message or name
        if not await self.reminders.update_reminder(room_id, name, message, resolved.instant, cadence):
            return messages.reminder_not_found(self.p, name)

        return messages.reminder_updated(
            {
                "reminder_name": name,
                "message": message,
                "remind_at": resolved.instant,
                "repeat_pattern": cadence.to_db(),
            },
            now,
            self.civil_tz,
        )

    async def delete(self, room_id: str, name: str) -> str:
        track("command_used", "command", room_id=room_id, properties={"command": "remind_delete"})
        if await self.reminders.delete_reminder(room_id, name):
            return messages.reminder_deleted(name)
        return messages.reminder_not_found(self.p, name)

    # =========================================================================
    # Listing
    # =========================================================================

    async def show_all(self, room_id: str, now: datetime) -> str:
        track("command_used", "command", room_id=room_id, properties={"command": "remind_list"})
        categorized = await self.reminders.get_categorized_reminders(room_id, now)
        if not (categorized.active or categorized.pending or categorized.completed):
            return messages.no_reminders(self.p)
        return messages.categorized_reminders(categorized, now, self.civil_tz)

    async def show_history(self, room_id: str, now: datetime) -> str:
        track("command_used", "command", room_id=room_id, properties={"command": "remind_history"})
        completed = await self.reminders.get_completed_reminders(room_id, limit=10)
        return messages.completed_history(completed, now, self.civil_tz)

    # =========================================================================
    # Delete by number
    # =========================================================================

    async def start_select_delete(self, room_id: str, now: datetime) -> str:
        track("command_used", "command", room_id=room_id, properties={"command": "remind_select"})
        reminders = await self.reminders.list_reminders(room_id)
        if not reminders:
            return messages.no_reminders(self.p)

        self.sessions.set(
            room_id,
            WAITING_REMINDER_SELECTION,
            choices=[("reminder", r["id"]) for r in reminders],
        )
        return messages.choose_reminders(reminders, now, self.civil_tz)

    async def receive_selection(self, room_id: str, session: RoomSession, text: str) -> str:
        """Delete the reminders whose numbers were sent."""
        self.sessions.clear(room_id)

        ids = [
            session.choices[n - 1][1]
            for n in parse_numbers(text)
            if n <= len(session.choices)
        ]
        if not ids:
            return messages.NO_VALID_NUMBERS

        count = await self.reminders.delete_reminders_by_ids(room_id, ids)
        return messages.reminders_deleted(count)

    # =========================================================================
    # Buttons
    # =========================================================================

    async def _owned(self, room_id: str, reminder_id: int) -> bool:
        found = await self.reminders.get_reminders_by_ids([reminder_id])
        return any(r["room_id"] == room_id for r in found)

    async def snooze(self, room_id: str, reminder_id: int, minutes: int, now: datetime) -> str:
        if not await self._owned(room_id, reminder_id):
            return messages.REMINDER_GONE

        remind_at = await self.reminders.snooze_reminder(reminder_id, minutes, now)
        if remind_at is None:
            return messages.REMINDER_GONE

        track(
            "reminder_snoozed",
            "reminder",
            room_id=room_id,
            properties={"reminder_id": reminder_id, "minutes": minutes},
        )
        return messages.snoozed(minutes, remind_at, now, self.civil_tz)

    async def complete(self, room_id: str, reminder_id: int) -> str:
        if not await self._owned(room_id, reminder_id):
            return messages.REMINDER_GONE

        await self.reminders.complete_reminder(reminder_id)
        track(
            "reminder_completed",
            "reminder",
            room_id=room_id,
            properties={"reminder_id": reminder_id},
        )
        return messages.REMINDER_COMPLETED
