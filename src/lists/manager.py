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
List Manager Module

Handles database operations for named lists and their items.
"""

import logging
from typing import Optional

import asyncpg

from utils.db import affected_rows

logger = logging.getLogger("oboerukun.lists.manager")

LIST_COLUMNS = "id, user_id, list_name, created_at, last_accessed_at, cleanup_warning_at"


class ListManager:
    """
    Manages database operations for lists.

    A list is owned by a room (stored in the ``user_id`` column) and is
    unique by name within that room. Reading or changing a list refreshes
    its ``last_accessed_at`` so the cleanup sweep leaves it alone.
    """

    def __init__(self, db_pool: asyncpg.Pool):
        self.db = db_pool

    async def get_lists(self, room_id: str) -> list[dict]:
        """All lists of a room, newest first."""
        rows = await self.db.fetch(
            f"""
            SELECT {LIST_COLUMNS} FROM lists
            WHERE user_id = $1
            ORDER BY created_at DESC
            """,
            room_id,
        )
        return [dict(row) for row in rows]

    async def create_list(self, room_id: str, list_name: str) -> dict:
        """
        Create a list unless one with the same name already exists.

        Returns:
            The new or existing list row
        """
        existing = await self.db.fetchrow(
            f"""
            SELECT {LIST_COLUMNS} FROM lists
            WHERE user_id = $1 AND list_name = $2
            """,
            room_id,
            list_name,
        )
        if existing:
            return dict(existing)

        row = await self.db.fetchrow(
            f"""
            INSERT INTO lists (user_id, list_name, last_accessed_at)
            VALUES ($1, $2, NOW())
            RETURNING {LIST_COLUMNS}
            """,
            room_id,
            list_name,
        )
        logger.info(f"Created list {row['id']} '{list_name}' in room {room_id}")
        return dict(row)

    async def add_items(self, list_id: int, items: list[str]) -> list[dict]:
        """
        Append items to a list.

        Args:
            list_id: List ID
            items: Item texts; surrounding whitespace is trimmed, blanks skipped

        Returns:
            The inserted item rows, in input order
        """
        added = []
        async with self.db.acquire() as conn:
            async with conn.transaction():
                for item in items:
                    text = item.strip()
                    if not text:
                        continue
                    row = await conn.fetchrow(
                        """
                        INSERT INTO list_items (list_id, item_text)
                        VALUES ($1, $2)
                        RETURNING id, list_id, item_text, created_at
                        """,
                        list_id,
                        text,
                    )
                    added.append(dict(row))

        await self.touch(list_id)
        logger.info(f"Added {len(added)} item(s) to list {list_id}")
        return added

    async def get_list_with_items(self, room_id: str, list_name: str) -> Optional[dict]:
        """
        Get a list and its items (oldest first).

        Returns:
            List dict with an ``items`` key, or None if the list does not exist
        """
        row = await self.db.fetchrow(
            f"""
            SELECT {LIST_COLUMNS} FROM lists
            WHERE user_id = $1 AND list_name = $2
            """,
            room_id,
            list_name,
        )
        if not row:
            return None

        items = await self.db.fetch(
            """
            SELECT id, list_id, item_text, created_at FROM list_items
            WHERE list_id = $1
            ORDER BY created_at ASC, id ASC
            """,
            row["id"],
        )

        await self.touch(row["id"])

        result = dict(row)
        result["items"] = [dict(item) for item in items]
        return result

    async def delete_list(self, room_id: str, list_name: str) -> bool:
        """Delete a list and (via cascade) its items."""
        result = await self.db.execute(
            """
            DELETE FROM lists
            WHERE user_id = $1 AND list_name = $2
            """,
            room_id,
            list_name,
        )

        deleted = affected_rows(result) > 0
        if deleted:
            logger.info(f"Deleted list '{list_name}' in room {room_id}")
        return deleted

    async def delete_item(self, room_id: str, list_name: str, item_text: str) -> bool:
        """
        Delete the oldest item whose text contains ``item_text`` (case-insensitive).

        Returns:
            True if an item was deleted
        """
        row = await self.db.fetchrow(
            """
            SELECT id FROM lists
            WHERE user_id = $1 AND list_name = $2
            """,
            room_id,
            list_name,
        )
        if not row:
            return False

        list_id = row["id"]
        result = await self.db.execute(
            """
            DELETE FROM list_items
            WHERE id = (
                SELECT id FROM list_items
                WHERE list_id = $1 AND item_text ILIKE $2
                ORDER BY created_at ASC, id ASC
                LIMIT 1
            )
            """,
            list_id,
            f"%{_escape_like(item_text)}%",
        )

        await self.touch(list_id)

        deleted = affected_rows(result) > 0
        if deleted:
            logger.info(f"Deleted item '{item_text}' from list {list_id}")
        return deleted

    async def touch(self, list_id: int) -> None:
        """Refresh a list's last access time and withdraw any cleanup warning."""
        await self.db.execute(
            """
            UPDATE lists SET last_accessed_at = NOW(), cleanup_warning_at = NULL
            WHERE id = $1
            """,
            list_id,
        )

    async def get_lists_by_ids(self, list_ids: list[int]) -> list[dict]:
        """Fetch lists by ID, ordered by ID."""
        if not list_ids:
            return []
        rows = await self.db.fetch(
            f"""
            SELECT {LIST_COLUMNS} FROM lists
            WHERE id = ANY($1::int[])
            ORDER BY id ASC
            """,
            list_ids,
        )
        return [dict(row) for row in rows]


def _escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
