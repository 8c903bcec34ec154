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
Command Router

Turns the text of a LINE message (or the data of a button press) into a
reply. Every handler returns the reply text; an empty string means the
bot stays quiet.

Messages are commands only when their first word is the command prefix.
A room waiting for follow-up input (list items, or numbers picking what to
delete) gets its next plain message routed to the waiting handler; a new
command cancels the wait.
"""

import logging
from datetime import datetime
from typing import Optional

import pytz

import messages
from analytics import track
from config import BotConfig
from line_client import parse_id_list, parse_postback
from lists import ListManager
from maintenance import CleanupJob
from reminders import ReminderManager
from sessions import (
    WAITING_CLEANUP_SELECTION,
    WAITING_ITEMS,
    WAITING_REMINDER_SELECTION,
    RoomSessionStore,
)

from commands.cleanup_commands import CleanupCommands
from commands.list_commands import ListCommands
from commands.reminder_commands import ReminderCommands

logger = logging.getLogger("oboerukun.commands.router")

WORD_BYE = "bye"
WORD_INDEX = "一覧"
WORD_ADD = "追加"
WORD_DELETE = "削除"
WORD_REMIND = "リマインド"


class CommandRouter:
    """Dispatches chat messages and postbacks to the command handlers."""

    def __init__(
        self,
        config: BotConfig,
        list_manager: ListManager,
        reminder_manager: ReminderManager,
        cleanup_job: CleanupJob,
        sessions: Optional[RoomSessionStore] = None,
    ):
        self.config = config
        self.p = config.command_prefix
        self.sessions = sessions or RoomSessionStore(config.session_ttl_seconds)
        self.lists = ListCommands(list_manager, self.sessions, self.p)
        self.reminders = ReminderCommands(
            reminder_manager, self.sessions, self.p, config.civil_tz
        )
        self.cleanup = CleanupCommands(cleanup_job, reminder_manager, list_manager, self.sessions)

    async def handle_message(self, room_id: str, text: str, now: Optional[datetime] = None) -> str:
        """
        Reply to a text message.

        Args:
            room_id: groupId, roomId or userId of the event source
            text: Message text
            now: Reference time (defaults to the current time)

        Returns:
            Reply text, or "" for no reply
        """
        now = now or datetime.now(pytz.UTC)
        text = (text or "").strip()
        parts = text.split()
        is_command = bool(parts) and parts[0] == self.p

        try:
            session = self.sessions.get(room_id)
            if session is not None and not is_command:
                return await self._continue_session(room_id, session, text)
            if not is_command:
                return ""
            if session is not None:
                logger.debug(f"Command in room {room_id} cancels pending {session.waiting_for}")
                self.sessions.clear(room_id)
            return await self._dispatch(room_id, parts[1:], now)
        except Exception as e:
            logger.error(f"Error handling message in room {room_id}: {e}", exc_info=True)
            track(
                "command_error",
                "error",
                room_id=room_id,
                properties={"error_type": type(e).__name__, "error_message": str(e)[:200]},
            )
            return messages.DB_ERROR

    async def _continue_session(self, room_id: str, session, text: str) -> str:
        if session.waiting_for == WAITING_ITEMS:
            return await self.lists.receive_items(room_id, session, text)
        if session.waiting_for == WAITING_REMINDER_SELECTION:
            return await self.reminders.receive_selection(room_id, session, text)
        if session.waiting_for == WAITING_CLEANUP_SELECTION:
            return await self.cleanup.receive_selection(room_id, session, text)

        logger.warning(f"Unknown session state '{session.waiting_for}' in room {room_id}")
        self.sessions.clear(room_id)
        return ""

    async def _dispatch(self, room_id: str, args: list[str], now: datetime) -> str:
        if not args:
            track("command_used", "command", room_id=room_id, properties={"command": "help"})
            return messages.help_text(self.p)

        if args[0] == WORD_REMIND:
            return await self.reminders.handle(room_id, args[1:], now)

        if args == [WORD_BYE]:
            track("command_used", "command", room_id=room_id, properties={"command": "bye"})
            return messages.farewell(self.p)

        if args == [WORD_INDEX]:
            return await self.lists.show_names(room_id)

        list_name = args[0]
        if len(args) == 1:
            return await self.lists.show(room_id, list_name)

        if len(args) >= 3 and args[-1] == WORD_DELETE:
            return await self.lists.delete_item(room_id, list_name, " ".join(args[1:-1]))

        if len(args) == 2 and args[1] == WORD_ADD:
            return await self.lists.start_add(room_id, list_name)

        if len(args) == 2 and args[1] == WORD_DELETE:
            return await self.lists.delete_list(room_id, list_name)

        return messages.unknown_command(self.p)

    async def handle_postback(self, room_id: str, data: str, now: Optional[datetime] = None) -> str:
        """
        Reply to a button press.

        Args:
            room_id: groupId, roomId or userId of the event source
            data: Postback data ("action=snooze&reminder_id=3&minutes=30")
            now: Reference time (defaults to the current time)

        Returns:
            Reply text, or "" for no reply
        """
        now = now or datetime.now(pytz.UTC)
        params = parse_postback(data)
        action = params.get("action", "")

        try:
            if action in ("snooze", "complete"):
                reminder_id = int(params.get("reminder_id", ""))
                if action == "snooze":
                    return await self.reminders.snooze(
                        room_id, reminder_id, int(params.get("minutes", "")), now
                    )
                return await self.reminders.complete(room_id, reminder_id)

            reminder_ids = parse_id_list(params.get("reminder_ids"))
            list_ids = parse_id_list(params.get("list_ids"))
            if action == "cleanup_all":
                return await self.cleanup.delete_all(room_id, reminder_ids, list_ids)
            if action == "cleanup_select":
                return await self.cleanup.start_select(room_id, reminder_ids, list_ids)
            if action == "cleanup_postpone":
                return await self.cleanup.postpone(room_id, reminder_ids, list_ids)
        except ValueError:
            logger.warning(f"Malformed postback data from room {room_id}: {data!r}")
            return ""
        except Exception as e:
            logger.error(f"Error handling postback in room {room_id}: {e}", exc_info=True)
            track(
                "command_error",
                "error",
                room_id=room_id,
                properties={"error_type": type(e).__name__, "action": action},
            )
            return messages.DB_ERROR

        logger.warning(f"Unknown postback action '{action}' from room {room_id}")
        return ""
