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

"""Tests for Japanese date/time phrase resolution and cadence extraction."""

import sys
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest
import pytz

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from config import CIVIL_TZ
from reminders.recurrence import RepeatCadence
from reminders.time_parser import (
    ERROR_FORMAT,
    ERROR_PAST,
    INVALID_FORMAT_MESSAGE,
    PAST_DATETIME_MESSAGE,
    PastDateTimeRejected,
    UnparsableFormat,
    extract_cadence,
    format_date_time,
    is_time_phrase,
    parse_time_phrase,
    relative_time,
    resolve_date,
    resolve_datetime,
    strip_cadence_keywords,
)


def civil(*args) -> datetime:
    """Aware UTC instant for a civil (UTC+9) wall-clock time."""
    return CIVIL_TZ.localize(datetime(*args)).astimezone(pytz.UTC)


# Civil 2025-06-20 12:00 (Friday)
REF = civil(2025, 6, 20, 12, 0)


class TestLiteralDatePhrases:
    """Fixed-offset phrases resolve from civil today at the default 9:00."""

    @pytest.mark.parametrize(
        "phrase,offset",
        [
            ("明日", 1),
            ("あした", 1),
            ("明後日", 2),
            ("あさって", 2),
            ("来週", 7),
            ("らいしゅう", 7),
            ("再来週", 14),
            ("さらいしゅう", 14),
        ],
    )
    def test_offset_from_civil_today(self, phrase, offset):
        result = resolve_datetime(phrase, reference=REF)
        expected_day = date(2025, 6, 20) + timedelta(days=offset)
        assert result.success is True
        assert result.instant == civil(expected_day.year, expected_day.month, expected_day.day, 9, 0)

    def test_today_at_default_time_is_past_at_noon(self):
        result = resolve_datetime("今日", reference=REF)
        assert result.success is False
        assert result.error_kind == ERROR_PAST

    def test_today_with_later_time(self):
        result = resolve_datetime("きょう", "夜", reference=REF)
        assert result.success is True
        assert result.instant == civil(2025, 6, 20, 18, 0)

    def test_days_later(self):
        result = resolve_datetime("3日後", reference=REF)
        assert result.instant == civil(2025, 6, 23, 9, 0)

    def test_unrecognised_phrase_means_today(self):
        result = resolve_datetime("そのうち", "23時", reference=REF)
        assert result.success is True
        assert result.instant == civil(2025, 6, 20, 23, 0)

    def test_civil_today_differs_from_utc_today(self):
        # 2025-06-20 16:00 UTC is already 2025-06-21 01:00 civil
        ref = pytz.UTC.localize(datetime(2025, 6, 20, 16, 0))
        result = resolve_datetime("明日", reference=ref)
        assert result.instant == civil(2025, 6, 22, 9, 0)

    def test_naive_reference_taken_as_utc(self):
        result = resolve_datetime("明日", reference=datetime(2025, 6, 20, 3, 0))
        assert result.instant == civil(2025, 6, 21, 9, 0)


class TestDayOfMonth:
    def test_later_this_month(self):
        result = resolve_datetime("25日", reference=REF)
        assert result.instant == civil(2025, 6, 25, 9, 0)

    def test_already_passed_rolls_to_next_month(self):
        result = resolve_datetime("15日", reference=REF)
        assert result.success is True
        assert result.instant == civil(2025, 7, 15, 9, 0)

    def test_today_does_not_roll(self):
        result = resolve_datetime("20日", "15時", reference=REF)
        assert result.instant == civil(2025, 6, 20, 15, 0)

    def test_31st_in_30_day_month_clamps(self):
        assert resolve_date("31日", date(2025, 6, 20)) == date(2025, 6, 30)

    def test_rollover_into_short_month_clamps(self):
        assert resolve_date("31日", date(2025, 2, 28)) == date(2025, 2, 28)
        assert resolve_date("30日", date(2025, 1, 31)) == date(2025, 2, 28)

    def test_day_zero_is_format_error(self):
        result = resolve_datetime("0日", reference=REF)
        assert result.success is False
        assert result.error_kind == ERROR_FORMAT
        assert result.error_message == INVALID_FORMAT_MESSAGE

    def test_day_32_is_format_error(self):
        with pytest.raises(UnparsableFormat):
            resolve_date("32日", date(2025, 6, 20))


class TestMonthDay:
    def test_upcoming_date_this_year(self):
        result = resolve_datetime("12月25日", "9時", reference=REF)
        assert result.instant == civil(2025, 12, 25, 9, 0)

    def test_passed_date_rolls_to_next_year(self):
        ref = civil(2025, 12, 26, 10, 0)
        result = resolve_datetime("12月25日", "9時", reference=ref)
        assert result.success is True
        assert result.instant == civil(2026, 12, 25, 9, 0)

    def test_feb_29_clamps_in_common_year(self):
        assert resolve_date("2月29日", date(2025, 1, 10)) == date(2025, 2, 28)

    def test_month_13_is_format_error(self):
        result = resolve_datetime("13月1日", reference=REF)
        assert result.error_kind == ERROR_FORMAT


class TestFullDate:
    def test_absolute_date_converted_to_utc(self):
        ref = civil(2025, 1, 1, 0, 0)
        result = resolve_datetime("2025年12月25日", "15時30分", reference=ref)
        assert result.success is True
        assert result.instant == pytz.UTC.localize(datetime(2025, 12, 25, 6, 30))

    def test_absolute_date_ignores_reference_day(self):
        for ref in (civil(2025, 3, 3, 8, 0), civil(2025, 12, 25, 15, 29)):
            result = resolve_datetime("2025年12月25日", "15時30分", reference=ref)
            assert result.instant == pytz.UTC.localize(datetime(2025, 12, 25, 6, 30))

    def test_absolute_date_in_past_is_rejected(self):
        ref = civil(2026, 1, 1, 0, 0)
        result = resolve_datetime("2025年12月25日", "15時30分", reference=ref)
        assert result.success is False
        assert result.error_message == PAST_DATETIME_MESSAGE


class TestTimePhrases:
    @pytest.mark.parametrize(
        "phrase,expected",
        [
            ("朝", (9, 0)),
            ("お昼", (12, 0)),
            ("ひる", (12, 0)),
            ("午後", (15, 0)),
            ("夕方", (18, 0)),
            ("よる", (18, 0)),
            ("深夜", (22, 0)),
            ("7時", (7, 0)),
            ("15時30分", (15, 30)),
            ("8:05", (8, 5)),
        ],
    )
    def test_parse(self, phrase, expected):
        assert parse_time_phrase(phrase) == expected

    def test_not_a_time(self):
        assert parse_time_phrase("明日") is None
        assert parse_time_phrase("") is None
        assert parse_time_phrase(None) is None

    def test_hour_out_of_range(self):
        with pytest.raises(UnparsableFormat):
            parse_time_phrase("25時")

    def test_minute_out_of_range_is_format_error(self):
        result = resolve_datetime("明日", "10:75", reference=REF)
        assert result.success is False
        assert result.error_kind == ERROR_FORMAT

    def test_is_time_phrase(self):
        assert is_time_phrase("朝") is True
        assert is_time_phrase("15:30") is True
        assert is_time_phrase("25時") is True
        assert is_time_phrase("明日") is False
        assert is_time_phrase("牛乳") is False

    def test_unknown_time_falls_back_to_nine(self):
        result = resolve_datetime("明日", "そのへん", reference=REF)
        assert result.instant == civil(2025, 6, 21, 9, 0)


class TestPastRejection:
    def test_equal_to_reference_is_past(self):
        result = resolve_datetime("今日", "12時", reference=REF)
        assert result.success is False
        assert result.error_kind == ERROR_PAST
        assert result.error_message == PAST_DATETIME_MESSAGE

    def test_one_minute_later_is_accepted(self):
        result = resolve_datetime("今日", "12:01", reference=REF)
        assert result.success is True

    def test_unwrap_raises_matching_exception(self):
        with pytest.raises(PastDateTimeRejected):
            resolve_datetime("今日", "朝", reference=REF).unwrap()
        with pytest.raises(UnparsableFormat):
            resolve_datetime("0日", reference=REF).unwrap()

    def test_unwrap_returns_instant(self):
        result = resolve_datetime("明日", reference=REF)
        assert result.unwrap() == result.instant


class TestCadenceExtraction:
    def test_single_keywords(self):
        assert extract_cadence("毎日 薬を飲む") is RepeatCadence.DAILY
        assert extract_cadence("まいしゅう ゴミ出し") is RepeatCadence.WEEKLY
        assert extract_cadence("毎月の家賃") is RepeatCadence.MONTHLY

    def test_no_keyword(self):
        assert extract_cadence("会議") is RepeatCadence.NONE
        assert extract_cadence("") is RepeatCadence.NONE
        assert extract_cadence(None) is RepeatCadence.NONE

    def test_daily_beats_weekly_beats_monthly(self):
        assert extract_cadence("毎月 毎週 毎日") is RepeatCadence.DAILY
        assert extract_cadence("毎月と毎週") is RepeatCadence.WEEKLY
        assert extract_cadence("まいつき まいにち") is RepeatCadence.DAILY

    def test_strip_keywords(self):
        assert strip_cadence_keywords("毎週 燃えるゴミ") == "燃えるゴミ"
        assert strip_cadence_keywords("毎日毎月") == ""


class TestFormatting:
    def test_format_same_year(self):
        now = civil(2025, 6, 20, 12, 0)
        assert format_date_time(civil(2025, 6, 21, 9, 0), now) == "6月21日 9時"
        assert format_date_time(civil(2025, 6, 21, 15, 30), now) == "6月21日 15時30分"

    def test_format_other_year(self):
        now = civil(2025, 12, 31, 12, 0)
        assert format_date_time(civil(2026, 1, 2, 9, 0), now) == "2026年1月2日 9時"

    def test_relative_time(self):
        now = REF
        assert relative_time(now + timedelta(days=3, hours=1), now) == "3日後"
        assert relative_time(now + timedelta(hours=5), now) == "5時間後"
        assert relative_time(now + timedelta(minutes=30), now) == "30分後"
        assert relative_time(now - timedelta(minutes=1), now) == "今すぐ"
