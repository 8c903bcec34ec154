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

"""Tests for the stale-data cleanup job."""

import sys
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytz

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import messages
from config import BotConfig
from maintenance.cleanup import CleanupJob, StaleData

NOW = pytz.UTC.localize(datetime(2025, 6, 20, 3, 0))


@pytest.fixture
def pool():
    p = MagicMock()
    p.fetch = AsyncMock(return_value=[])
    p.fetchval = AsyncMock(return_value=0)
    p.execute = AsyncMock(return_value="DELETE 0")
    return p


@pytest.fixture
def line():
    client = MagicMock()
    client.push = AsyncMock(return_value=True)
    return client


@pytest.fixture
def job(pool, line):
    return CleanupJob(pool, line, BotConfig())


class TestStaleData:
    def test_truthiness(self):
        assert not StaleData()
        assert StaleData(reminders=[{"id": 1}])
        assert StaleData(lists=[{"id": 1}])


class TestQueries:
    @pytest.mark.asyncio
    async def test_stale_cutoff_is_two_months_back(self, job, pool):
        await job.get_stale_data("C1", NOW)
        cutoff = pool.fetch.await_args_list[0].args[2]
        assert cutoff == pytz.UTC.localize(datetime(2025, 4, 20, 3, 0))

    @pytest.mark.asyncio
    async def test_delete_warned_data_counts_rows(self, job, pool):
        pool.execute.side_effect = ["DELETE 2", "DELETE 1"]
        assert await job.delete_warned_data("C1", NOW) == 3
        cutoff = pool.execute.await_args_list[0].args[2]
        assert cutoff == pytz.UTC.localize(datetime(2025, 5, 20, 3, 0))

    @pytest.mark.asyncio
    async def test_mark_warning_skips_empty_id_lists(self, job, pool):
        await job.mark_cleanup_warning([], [4])
        assert pool.execute.await_count == 1
        assert pool.execute.await_args.args[1] == [4]


class TestRunCleanup:
    @pytest.mark.asyncio
    async def test_deletes_expired_and_notifies(self, job, pool, line):
        pool.fetch.side_effect = [
            [{"room_id": "C1"}],  # rooms
            [],  # stale reminders
            [],  # stale lists
        ]
        pool.execute.side_effect = ["DELETE 2", "DELETE 1"]

        stats = await job.run_cleanup(NOW)

        assert stats.rooms == 1
        assert stats.deleted == 3
        assert stats.warned_rooms == 0
        line.push.assert_awaited_once_with(
            "C1", [{"type": "text", "text": messages.cleanup_deleted_notice(3)}]
        )

    @pytest.mark.asyncio
    async def test_warns_about_stale_data(self, job, pool, line):
        pool.fetch.side_effect = [
            [{"room_id": "C1"}],
            [{"id": 10, "reminder_name": "会議"}],
            [{"id": 20, "list_name": "買い物"}],
        ]

        stats = await job.run_cleanup(NOW)

        assert stats.warned_rooms == 1
        assert stats.warned_reminders == 1
        assert stats.warned_lists == 1

        room, pushed = line.push.await_args.args
        assert room == "C1"
        assert pushed[0]["text"] == messages.cleanup_notice(1, 1)
        assert pushed[1]["template"]["actions"][0]["data"] == (
            "action=cleanup_all&reminder_ids=10&list_ids=20"
        )
        # two deletes from step 1, then the two warning updates
        assert pool.execute.await_count == 4

    @pytest.mark.asyncio
    async def test_warning_not_marked_when_push_fails(self, job, pool, line):
        pool.fetch.side_effect = [
            [{"room_id": "C1"}],
            [{"id": 10, "reminder_name": "会議"}],
            [],
        ]
        line.push.return_value = False

        await job.run_cleanup(NOW)

        # only the two deletes from step 1
        assert pool.execute.await_count == 2

    @pytest.mark.asyncio
    async def test_dry_run_changes_nothing(self, job, pool, line):
        pool.fetch.side_effect = [
            [{"room_id": "C1"}],
            [{"id": 10, "reminder_name": "会議"}],
            [],
        ]
        pool.fetchval.side_effect = [2, 0]

        stats = await job.run_cleanup(NOW, dry_run=True)

        assert stats.deleted == 2
        assert stats.warned_rooms == 1
        pool.execute.assert_not_awaited()
        line.push.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_room_error_is_counted_and_skipped(self, job, pool, line):
        pool.fetch.side_effect = [
            [{"room_id": "C1"}, {"room_id": "C2"}],
            Exception("boom"),  # C1 stale reminders
            [],  # C2 stale reminders
            [],  # C2 stale lists
        ]

        stats = await job.run_cleanup(NOW)

        assert stats.errors == 1
        assert stats.rooms == 2


class TestUserActions:
    @pytest.mark.asyncio
    async def test_delete_by_ids(self, job, pool):
        pool.execute.side_effect = ["DELETE 2", "DELETE 1"]
        assert await job.delete_by_ids("C1", [1, 2], [3]) == (2, 1)
        assert pool.execute.await_args_list[0].args[1:] == ("C1", [1, 2])

    @pytest.mark.asyncio
    async def test_delete_by_ids_nothing(self, job, pool):
        assert await job.delete_by_ids("C1", [], []) == (0, 0)
        pool.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_postpone(self, job, pool):
        await job.postpone("C1", [1], [2, 3])
        assert pool.execute.await_count == 2
        assert pool.execute.await_args_list[1].args[1:] == ("C1", [2, 3])
