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

"""Tests for the due-reminder sweep."""

import sys
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytz

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from config import CIVIL_TZ
from reminders.scheduler import ReminderScheduler, SweepStats


def civil(*args) -> datetime:
    return CIVIL_TZ.localize(datetime(*args)).astimezone(pytz.UTC)


NOW = civil(2025, 6, 20, 9, 0)


def make_reminder(reminder_id=1, repeat_pattern=None, remind_at=None, message="ゴミ出し"):
    return {
        "id": reminder_id,
        "room_id": "C0001",
        "reminder_name": f"r{reminder_id}",
        "message": message,
        "remind_at": remind_at or NOW,
        "repeat_pattern": repeat_pattern,
        "status": "active",
    }


@pytest.fixture
def manager():
    m = MagicMock()
    m.get_due_reminders = AsyncMock(return_value=[])
    m.claim_reminder = AsyncMock(return_value=True)
    m.release_reminder = AsyncMock()
    m.complete_reminder = AsyncMock()
    m.reschedule = AsyncMock()
    return m


@pytest.fixture
def list_manager():
    m = MagicMock()
    m.get_lists = AsyncMock(return_value=[])
    m.get_list_with_items = AsyncMock(return_value=None)
    return m


@pytest.fixture
def line():
    client = MagicMock()
    client.push = AsyncMock(return_value=True)
    return client


@pytest.fixture
def scheduler(manager, list_manager, line):
    return ReminderScheduler(manager, list_manager, line, CIVIL_TZ, batch_limit=50)


class TestRunDueSweep:
    @pytest.mark.asyncio
    async def test_nothing_due(self, scheduler, manager, line):
        stats = await scheduler.run_due_sweep(NOW)
        assert stats == SweepStats()
        manager.get_due_reminders.assert_awaited_once_with(NOW, limit=50)
        line.push.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_one_time_reminder_is_completed(self, scheduler, manager, line):
        manager.get_due_reminders.return_value = [make_reminder(1)]

        stats = await scheduler.run_due_sweep(NOW)

        manager.claim_reminder.assert_awaited_once_with(1)
        manager.complete_reminder.assert_awaited_once_with(1)
        manager.reschedule.assert_not_awaited()
        assert stats.processed == 1
        assert stats.delivered == 1
        assert stats.completed == 1

        room, pushed = line.push.await_args.args
        assert room == "C0001"
        assert pushed[0] == {"type": "text", "text": "⏰ リマインダー\n\nゴミ出し"}
        assert pushed[1]["type"] == "template"

    @pytest.mark.asyncio
    async def test_repeating_reminder_is_rescheduled(self, scheduler, manager):
        manager.get_due_reminders.return_value = [make_reminder(2, "weekly")]

        stats = await scheduler.run_due_sweep(NOW)

        manager.reschedule.assert_awaited_once_with(2, civil(2025, 6, 27, 9, 0))
        manager.complete_reminder.assert_not_awaited()
        assert stats.rescheduled == 1
        assert stats.delivered == 1

    @pytest.mark.asyncio
    async def test_missed_occurrences_are_skipped(self, scheduler, manager):
        stale = make_reminder(3, "daily", remind_at=civil(2025, 6, 17, 8, 0))
        manager.get_due_reminders.return_value = [stale]

        await scheduler.run_due_sweep(NOW)

        manager.reschedule.assert_awaited_once_with(3, civil(2025, 6, 21, 8, 0))

    @pytest.mark.asyncio
    async def test_already_claimed_is_skipped(self, scheduler, manager, line):
        manager.get_due_reminders.return_value = [make_reminder(4)]
        manager.claim_reminder.return_value = False

        stats = await scheduler.run_due_sweep(NOW)

        assert stats.skipped == 1
        assert stats.delivered == 0
        line.push.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_push_releases_reminder(self, scheduler, manager, line):
        manager.get_due_reminders.return_value = [make_reminder(5, "daily")]
        line.push.return_value = False

        stats = await scheduler.run_due_sweep(NOW)

        manager.release_reminder.assert_awaited_once_with(5)
        manager.reschedule.assert_not_awaited()
        manager.complete_reminder.assert_not_awaited()
        assert stats.failed == 1

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_the_sweep(self, scheduler, manager, line):
        manager.get_due_reminders.return_value = [make_reminder(6), make_reminder(7)]
        line.push.side_effect = [Exception("boom"), True]

        stats = await scheduler.run_due_sweep(NOW)

        assert stats.failed == 1
        assert stats.completed == 1
        manager.complete_reminder.assert_awaited_once_with(7)

    @pytest.mark.asyncio
    async def test_status_update_failure_does_not_stop_the_sweep(
        self, scheduler, manager, line
    ):
        manager.get_due_reminders.return_value = [make_reminder(1, "daily"), make_reminder(2)]
        manager.reschedule.side_effect = RuntimeError("connection lost")

        stats = await scheduler.run_due_sweep(NOW)

        # Both were pushed; the delivered one is not released for redelivery
        assert line.push.await_count == 2
        manager.release_reminder.assert_not_awaited()
        assert manager.reschedule.await_count == 2
        manager.complete_reminder.assert_awaited_once_with(2)
        assert stats.failed == 1
        assert stats.completed == 1
        assert stats.delivered == 1

    @pytest.mark.asyncio
    async def test_status_update_is_retried_once(self, scheduler, manager):
        manager.get_due_reminders.return_value = [make_reminder(3, "weekly")]
        manager.reschedule.side_effect = [RuntimeError("connection lost"), None]

        stats = await scheduler.run_due_sweep(NOW)

        assert manager.reschedule.await_count == 2
        manager.reschedule.assert_awaited_with(3, civil(2025, 6, 27, 9, 0))
        assert stats.rescheduled == 1
        assert stats.failed == 0

    @pytest.mark.asyncio
    async def test_related_lists_are_appended(self, scheduler, manager, list_manager, line):
        manager.get_due_reminders.return_value = [make_reminder(8, message="買い物リストを確認")]
        list_manager.get_lists.return_value = [
            {"list_name": "買い物リスト"},
            {"list_name": "宿題"},
            {"list_name": "空"},
        ]
        list_manager.get_list_with_items.return_value = {
            "list_name": "買い物リスト",
            "items": [{"item_text": "牛乳"}, {"item_text": "卵"}],
        }

        await scheduler.run_due_sweep(NOW)

        list_manager.get_list_with_items.assert_awaited_once_with("C0001", "買い物リスト")
        text = line.push.await_args.args[1][0]["text"]
        assert "📋 関連リスト" in text
        assert "【買い物リスト】" in text
        assert "  ・牛乳\n  ・卵" in text


class TestNextOccurrence:
    def test_one_time(self, scheduler):
        assert scheduler.next_occurrence(make_reminder(repeat_pattern=None), NOW) is None

    def test_monthly(self, scheduler):
        reminder = make_reminder(repeat_pattern="monthly", remind_at=civil(2025, 1, 31, 9, 0))
        assert scheduler.next_occurrence(reminder, civil(2025, 1, 31, 9, 0)) == civil(2025, 2, 28, 9, 0)
