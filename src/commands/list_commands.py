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
List Commands

Chat commands for managing a room's lists.
"""

import logging

import messages
from analytics import track
from lists import ListManager
from sessions import WAITING_ITEMS, RoomSession, RoomSessionStore

logger = logging.getLogger("oboerukun.commands.list")


class ListCommands:
    """
    Chat commands for list management.

    Commands (P = command prefix):
    - P 一覧 - Show list names
    - P <list> - Show a list
    - P <list> 追加 - Create the list and wait for items
    - P <list> 削除 - Delete a list
    - P <list> <item...> 削除 - Delete one item
    """

    def __init__(self, list_manager: ListManager, sessions: RoomSessionStore, prefix: str):
        self.lists = list_manager
        self.sessions = sessions
        self.p = prefix

    async def show_names(self, room_id: str) -> str:
        track("command_used", "command", room_id=room_id, properties={"command": "list_names"})
        lists = await self.lists.get_lists(room_id)
        if not lists:
            return messages.no_lists(self.p)
        return messages.list_names(self.p, [lst["list_name"] for lst in lists])

    async def show(self, room_id: str, list_name: str) -> str:
        track("command_used", "command", room_id=room_id, properties={"command": "list_show"})
        lst = await self.lists.get_list_with_items(room_id, list_name)
        if not lst or not lst["items"]:
            return messages.list_empty(self.p, list_name)
        return messages.list_contents(self.p, list_name, [i["item_text"] for i in lst["items"]])

    async def start_add(self, room_id: str, list_name: str) -> str:
        track("command_used", "command", room_id=room_id, properties={"command": "list_add"})
        await self.lists.create_list(room_id, list_name)
        self.sessions.set(room_id, WAITING_ITEMS, list_name=list_name)
        return messages.ask_for_items(list_name)

    async def receive_items(self, room_id: str, session: RoomSession, text: str) -> str:
        """Add the newline-separated items of a follow-up message."""
        self.sessions.clear(room_id)

        items = [line.strip() for line in text.split("\n") if line.strip()]
        if not items:
            return messages.no_items_given(self.p)

        lst = await self.lists.get_list_with_items(room_id, session.list_name)
        if not lst:
            return messages.LIST_VANISHED

        added = await self.lists.add_items(lst["id"], items)
        track(
            "list_items_added",
            "list",
            room_id=room_id,
            properties={"count": len(added)},
        )
        return messages.items_added(self.p, session.list_name, [i["item_text"] for i in added])

    async def delete_list(self, room_id: str, list_name: str) -> str:
        track("command_used", "command", room_id=room_id, properties={"command": "list_delete"})
        if await self.lists.delete_list(room_id, list_name):
            return messages.list_deleted(list_name)
        return messages.list_not_found(self.p, list_name)

    async def delete_item(self, room_id: str, list_name: str, item_text: str) -> str:
        track("command_used", "command", room_id=room_id, properties={"command": "item_delete"})
        if not await self.lists.delete_item(room_id, list_name, item_text):
            return messages.item_not_found(self.p, list_name, item_text)

        lst = await self.lists.get_list_with_items(room_id, list_name)
        if lst and lst["items"]:
            return messages.item_deleted(list_name, item_text, [i["item_text"] for i in lst["items"]])
        return messages.item_deleted_list_empty(self.p, list_name, item_text)
