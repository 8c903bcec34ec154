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
Per-room conversation state.

Some commands need a follow-up message ("send me the items", "pick the
numbers to delete"). The pending state is kept per room with an idle
expiry, in memory (a restart forgets it).
"""

import logging
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

logger = logging.getLogger("oboerukun.sessions")

WAITING_ITEMS = "items"
WAITING_REMINDER_SELECTION = "select_reminders"
WAITING_CLEANUP_SELECTION = "select_cleanup"


@dataclass(frozen=True)
class RoomSession:
    """What a room is waiting to send next."""

    waiting_for: str
    list_name: Optional[str] = None
    # Numbered choices shown to the user: position (1-based) -> (kind, id)
    choices: tuple[tuple[str, int], ...] = ()
    expires_at: float = 0.0


class RoomSessionStore:
    """Pending-input state keyed by room ID, with an idle timeout."""

    def __init__(self, ttl_seconds: int = 600, clock: Callable[[], float] = time.monotonic):
        self._ttl_seconds = int(ttl_seconds)
        self._clock = clock
        self._sessions: dict[str, RoomSession] = {}
        self._lock = Lock()

    def set(
        self,
        room_id: str,
        waiting_for: str,
        list_name: Optional[str] = None,
        choices: Optional[list[tuple[str, int]]] = None,
    ) -> RoomSession:
        """Start (or replace) the pending state of a room."""
        session = RoomSession(
            waiting_for=waiting_for,
            list_name=list_name,
            choices=tuple(choices or ()),
            expires_at=self._clock() + self._ttl_seconds,
        )
        with self._lock:
            self._sessions[room_id] = session
        logger.debug(f"Room {room_id} now waiting for {waiting_for}")
        return session

    def get(self, room_id: str) -> Optional[RoomSession]:
        """Pending state of a room, or None if there is none or it expired."""
        with self._lock:
            session = self._sessions.get(room_id)
            if session is None:
                return None
            if session.expires_at <= self._clock():
                del self._sessions[room_id]
                logger.debug(f"Session for room {room_id} expired")
                return None
            return session

    def pop(self, room_id: str) -> Optional[RoomSession]:
        """Take and clear the pending state of a room."""
        session = self.get(room_id)
        self.clear(room_id)
        return session

    def clear(self, room_id: str) -> None:
        with self._lock:
            self._sessions.pop(room_id, None)

    def purge_expired(self) -> int:
        """Drop expired sessions. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [rid for rid, s in self._sessions.items() if s.expires_at <= now]
            for rid in expired:
                del self._sessions[rid]
        return len(expired)
