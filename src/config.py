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
Bot Configuration

Configurable parameters for the webhook server, the sweeps and the
date/time parser. Values can be overridden via environment variables.
"""

import os
from dataclasses import dataclass
from typing import Optional

import pytz

# Civil time is a fixed offset from UTC with no daylight saving.
CIVIL_UTC_OFFSET_HOURS = int(os.getenv("CIVIL_UTC_OFFSET_HOURS", "9"))
CIVIL_TZ = pytz.FixedOffset(CIVIL_UTC_OFFSET_HOURS * 60)


@dataclass
class BotConfig:
    """Configuration for the LINE bot."""

    # LINE Messaging API
    channel_secret: str = ""
    channel_access_token: str = ""
    line_api_base: str = "https://api.line.me/v2/bot"

    # Cron endpoints
    cron_secret: str = ""

    # Database
    database_url: Optional[str] = None

    # Civil time
    civil_utc_offset_hours: int = 9

    # Commands
    command_prefix: str = "おぼえるくん"
    session_ttl_seconds: int = 600

    # Sweeps
    stale_after_months: int = 2
    warning_grace_months: int = 1
    due_batch_limit: int = 100

    @classmethod
    def from_env(cls) -> "BotConfig":
        """Create config from environment variables with defaults."""
        return cls(
            channel_secret=os.getenv("LINE_CHANNEL_SECRET", ""),
            channel_access_token=os.getenv("LINE_CHANNEL_ACCESS_TOKEN", ""),
            line_api_base=os.getenv("LINE_API_BASE", "https://api.line.me/v2/bot"),
            cron_secret=os.getenv("CRON_SECRET", ""),
            database_url=os.getenv("DATABASE_URL") or os.getenv("POSTGRES_URL"),
            civil_utc_offset_hours=int(os.getenv("CIVIL_UTC_OFFSET_HOURS", "9")),
            command_prefix=os.getenv("BOT_COMMAND_PREFIX", "おぼえるくん"),
            session_ttl_seconds=int(os.getenv("ROOM_SESSION_TTL_SECONDS", "600")),
            stale_after_months=int(os.getenv("CLEANUP_STALE_AFTER_MONTHS", "2")),
            warning_grace_months=int(os.getenv("CLEANUP_WARNING_GRACE_MONTHS", "1")),
            due_batch_limit=int(os.getenv("REMINDER_DUE_BATCH_LIMIT", "100")),
        )

    @property
    def civil_tz(self) -> pytz.BaseTzInfo:
        """Fixed-offset timezone for civil time."""
        return pytz.FixedOffset(self.civil_utc_offset_hours * 60)
