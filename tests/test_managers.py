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

"""Tests for the reminder and list managers against a mocked pool."""

import sys
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytz

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lists import ListManager
from reminders import ReminderManager, RepeatCadence

NOW = pytz.UTC.localize(datetime(2025, 6, 20, 3, 0))


@pytest.fixture
def pool():
    p = MagicMock()
    p.execute = AsyncMock(return_value="UPDATE 1")
    p.fetch = AsyncMock(return_value=[])
    p.fetchrow = AsyncMock(return_value=None)
    return p


def executed_sql(pool) -> str:
    return pool.execute.await_args.args[0]


class TestReminderActivityClearsWarning:
    """A warned reminder that the room touches again is no longer stale."""

    @pytest.mark.asyncio
    async def test_update_clears_warning(self, pool):
        manager = ReminderManager(pool)

        updated = await manager.update_reminder(
            "C0001", "会議", "資料", NOW + timedelta(days=1), RepeatCadence.WEEKLY
        )

        assert updated is True
        assert "cleanup_warning_at = NULL" in executed_sql(pool)
        assert pool.execute.await_args.args[5] == "weekly"

    @pytest.mark.asyncio
    async def test_snooze_clears_warning(self, pool):
        manager = ReminderManager(pool)

        remind_at = await manager.snooze_reminder(7, 30, NOW)

        assert remind_at == NOW + timedelta(minutes=30)
        assert "cleanup_warning_at = NULL" in executed_sql(pool)

    @pytest.mark.asyncio
    async def test_snooze_missing_reminder(self, pool):
        pool.execute.return_value = "UPDATE 0"
        manager = ReminderManager(pool)

        assert await manager.snooze_reminder(7, 30, NOW) is None


class TestListActivityClearsWarning:
    @pytest.mark.asyncio
    async def test_touch_clears_warning(self, pool):
        manager = ListManager(pool)

        await manager.touch(4)

        sql = executed_sql(pool)
        assert "last_accessed_at = NOW()" in sql
        assert "cleanup_warning_at = NULL" in sql
        assert pool.execute.await_args.args[1] == 4

    @pytest.mark.asyncio
    async def test_delete_list_reads_row_count(self, pool):
        pool.execute.return_value = "DELETE 1"
        manager = ListManager(pool)

        assert await manager.delete_list("C0001", "買い物") is True

        pool.execute.return_value = "DELETE 0"
        assert await manager.delete_list("C0001", "買い物") is False
