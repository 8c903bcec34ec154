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
Event log for oboerukun.

Commands, deliveries, cleanup notices and errors are written as rows of
``analytics_events``. Writing happens in background tasks so a slow or
missing database never delays a reply to LINE.

Usage:
    from analytics import track

    track("command_used", "command", room_id="C123", properties={"command": "list_add"})

Set ANALYTICS_ENABLED=false to turn the log off.
"""

import asyncio
import json
import logging
import os
from typing import Any, Optional

import asyncpg

logger = logging.getLogger("oboerukun.analytics")

_enabled: bool = os.getenv("ANALYTICS_ENABLED", "true").lower() == "true"

# Created on the first event
_pool: Optional[asyncpg.Pool] = None

# The event loop keeps only weak references to tasks
_pending: set[asyncio.Task] = set()


async def _event_pool() -> Optional[asyncpg.Pool]:
    global _pool
    if _pool is not None or not _enabled:
        return _pool

    database_url = os.getenv("DATABASE_URL") or os.getenv("POSTGRES_URL")
    if not database_url:
        return None
    try:
        _pool = await asyncpg.create_pool(database_url, min_size=1, max_size=2)
    except Exception as e:
        logger.warning(f"Event log disabled for now, cannot connect: {e}")
    return _pool


async def record(
    event_name: str,
    event_category: str,
    room_id: Optional[str] = None,
    properties: Optional[dict[str, Any]] = None,
) -> bool:
    """
    Write one event row and wait for it.

    Args:
        event_name: What happened, e.g. "reminder_delivered"
        event_category: command, reminder, list, cleanup or error
        room_id: LINE room the event belongs to
        properties: Extra JSON data

    Returns:
        Whether the row was written
    """
    pool = await _event_pool()
    if pool is None:
        return False

    try:
        await pool.execute(
            """
            INSERT INTO analytics_events (event_name, event_category, room_id, properties)
            VALUES ($1, $2, $3, $4)
            """,
            event_name,
            event_category,
            room_id,
            json.dumps(properties or {}, ensure_ascii=False),
        )
    except Exception as e:
        logger.debug(f"Could not record {event_name}: {e}")
        return False
    return True


def track(
    event_name: str,
    event_category: str,
    room_id: Optional[str] = None,
    properties: Optional[dict[str, Any]] = None,
) -> Optional[asyncio.Task]:
    """Queue an event for writing; a no-op when disabled or outside an event loop."""
    if not _enabled:
        return None
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return None

    task = loop.create_task(record(event_name, event_category, room_id, properties))
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task


async def shutdown() -> None:
    """Let queued events finish, then close the pool."""
    global _pool
    if _pending:
        await asyncio.gather(*_pending, return_exceptions=True)
    if _pool is not None:
        await _pool.close()
        _pool = None
