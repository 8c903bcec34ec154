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
Time Parser Module

Resolves Japanese date and time phrases ("明日", "12月25日", "15時30分",
"夕方", ...) into UTC instants on a fixed civil clock (UTC+9), and extracts
repeat cadences ("毎日", "毎週", "毎月") from free text.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

import pytz
from dateutil.relativedelta import relativedelta

from config import CIVIL_TZ

from .recurrence import RepeatCadence, add_months

logger = logging.getLogger("oboerukun.reminders.time_parser")

PAST_DATETIME_MESSAGE = "過去の日時は設定できないよ！未来の日時を指定してね 📅"
INVALID_FORMAT_MESSAGE = (
    "日時の形式がよくわからなかった😅\n"
    "例：「明日 9時」「12月25日 15時30分」「3日後 昼」"
)

# Day offsets from civil today (kanji and phonetic spellings)
DATE_PHRASES = {
    "今日": 0,
    "きょう": 0,
    "明日": 1,
    "あした": 1,
    "明後日": 2,
    "あさって": 2,
    "来週": 7,
    "らいしゅう": 7,
    "再来週": 14,
    "さらいしゅう": 14,
}

# Civil hour for named times of day
TIME_PHRASES = {
    "朝": 9,
    "あさ": 9,
    "昼": 12,
    "ひる": 12,
    "お昼": 12,
    "おひる": 12,
    "午後": 15,
    "ごご": 15,
    "夕方": 18,
    "ゆうがた": 18,
    "夜": 18,
    "よる": 18,
    "深夜": 22,
    "しんや": 22,
}

DEFAULT_HOUR = 9
DEFAULT_MINUTE = 0

# Checked in priority order: daily > weekly > monthly
CADENCE_KEYWORDS = [
    (RepeatCadence.DAILY, ("毎日", "まいにち")),
    (RepeatCadence.WEEKLY, ("毎週", "まいしゅう")),
    (RepeatCadence.MONTHLY, ("毎月", "まいつき")),
]

_DAYS_LATER = re.compile(r"(\d+)日後")
_DAY_OF_MONTH = re.compile(r"(\d+)日")
_MONTH_DAY = re.compile(r"(\d+)月(\d+)日")
_FULL_DATE = re.compile(r"(\d{4})年(\d+)月(\d+)日")

_HOUR = re.compile(r"(\d+)時")
_HOUR_MINUTE = re.compile(r"(\d+)時(\d+)分")
_CLOCK = re.compile(r"(\d+):(\d+)")

ERROR_PAST = "past"
ERROR_FORMAT = "format"


class DateTimeParseError(Exception):
    """Raised when a date/time phrase cannot be turned into a reminder time."""

    message = INVALID_FORMAT_MESSAGE


class PastDateTimeRejected(DateTimeParseError):
    """The resolved instant is not strictly after the reference instant."""

    message = PAST_DATETIME_MESSAGE


class UnparsableFormat(DateTimeParseError):
    """Matching or calendar arithmetic failed."""

    message = INVALID_FORMAT_MESSAGE


@dataclass(frozen=True)
class ResolvedDateTime:
    """Result of resolving a date phrase and time phrase."""

    instant: datetime  # UTC
    success: bool
    error_message: Optional[str] = None
    error_kind: Optional[str] = None

    def unwrap(self) -> datetime:
        """Return the instant, or raise the matching DateTimeParseError."""
        if self.success:
            return self.instant
        if self.error_kind == ERROR_PAST:
            raise PastDateTimeRejected(self.error_message)
        raise UnparsableFormat(self.error_message)


def _to_utc(value: datetime) -> datetime:
    """Make a datetime UTC-aware (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def _check_range(value: int, low: int, high: int, what: str) -> int:
    if not low <= value <= high:
        raise UnparsableFormat(f"{what} out of range: {value}")
    return value


def resolve_date(date_phrase: Optional[str], today: date) -> date:
    """
    Resolve a date phrase against civil today.

    Args:
        date_phrase: Phrase such as "明日", "3日後", "15日", "12月25日", "2025年12月25日"
        today: Civil date of the reference instant

    Returns:
        The civil target date (today when nothing matches)

    Raises:
        UnparsableFormat: If a matched number is out of range
    """
    phrase = (date_phrase or "").strip()

    if phrase in DATE_PHRASES:
        return today + timedelta(days=DATE_PHRASES[phrase])

    match = _DAYS_LATER.fullmatch(phrase)
    if match:
        return today + timedelta(days=int(match.group(1)))

    match = _DAY_OF_MONTH.fullmatch(phrase)
    if match:
        day = _check_range(int(match.group(1)), 1, 31, "day")
        target = add_months(today, 0, day=day)
        if target < today:
            target = add_months(today, 1, day=day)
        return target

    match = _MONTH_DAY.fullmatch(phrase)
    if match:
        month = _check_range(int(match.group(1)), 1, 12, "month")
        day = _check_range(int(match.group(2)), 1, 31, "day")
        target = today + relativedelta(month=month, day=day)
        if target < today:
            target = today + relativedelta(years=1, month=month, day=day)
        return target

    match = _FULL_DATE.fullmatch(phrase)
    if match:
        month = _check_range(int(match.group(2)), 1, 12, "month")
        day = _check_range(int(match.group(3)), 1, 31, "day")
        return date(int(match.group(1)), 1, 1) + relativedelta(month=month, day=day)

    return today


def parse_time_phrase(time_phrase: Optional[str]) -> Optional[tuple[int, int]]:
    """
    Parse a time phrase into (hour, minute).

    Returns:
        (hour, minute) in civil time, or None if the phrase is not a time

    Raises:
        UnparsableFormat: If the phrase is a time with an out-of-range field
    """
    phrase = (time_phrase or "").strip()
    if not phrase:
        return None

    if phrase in TIME_PHRASES:
        return TIME_PHRASES[phrase], 0

    match = _HOUR.fullmatch(phrase)
    if match:
        return _check_range(int(match.group(1)), 0, 23, "hour"), 0

    match = _HOUR_MINUTE.fullmatch(phrase) or _CLOCK.fullmatch(phrase)
    if match:
        hour = _check_range(int(match.group(1)), 0, 23, "hour")
        minute = _check_range(int(match.group(2)), 0, 59, "minute")
        return hour, minute

    return None


def is_time_phrase(text: Optional[str]) -> bool:
    """True if ``text`` reads as a time of day (used by the command parser)."""
    try:
        return parse_time_phrase(text) is not None
    except UnparsableFormat:
        # "25時" is still meant as a time; let the resolver report it
        return True


def resolve_datetime(
    date_phrase: Optional[str],
    time_phrase: Optional[str] = None,
    reference: Optional[datetime] = None,
    civil_tz: pytz.BaseTzInfo = CIVIL_TZ,
) -> ResolvedDateTime:
    """
    Resolve a date phrase and optional time phrase into a UTC instant.

    Supports:
    - Relative dates: 今日, 明日, 明後日, 来週, 再来週 (and phonetic spellings), "N日後"
    - Day of month: "15日" (rolls to next month if already past)
    - Month and day: "12月25日" (rolls to next year if already past)
    - Full dates: "2025年12月25日"
    - Times: 朝/昼/午後/夕方/夜/深夜, "15時", "15時30分", "15:30" (default 9:00)

    Args:
        date_phrase: Date phrase (unrecognised phrases mean today)
        time_phrase: Optional time phrase
        reference: "Now"; defaults to the current time
        civil_tz: Civil timezone (fixed offset)

    Returns:
        ResolvedDateTime; success is False when the result is not strictly
        in the future or the phrase could not be evaluated
    """
    reference = _to_utc(reference or datetime.now(pytz.UTC))

    try:
        today = reference.astimezone(civil_tz).date()
        target_date = resolve_date(date_phrase, today)
        hour, minute = parse_time_phrase(time_phrase) or (DEFAULT_HOUR, DEFAULT_MINUTE)
        civil = civil_tz.localize(datetime.combine(target_date, time(hour, minute)))
        instant = civil.astimezone(pytz.UTC)
    except Exception as e:
        logger.debug(f"Could not resolve '{date_phrase}' '{time_phrase}': {e}")
        return ResolvedDateTime(
            instant=reference,
            success=False,
            error_message=INVALID_FORMAT_MESSAGE,
            error_kind=ERROR_FORMAT,
        )

    if instant <= reference:
        return ResolvedDateTime(
            instant=instant,
            success=False,
            error_message=PAST_DATETIME_MESSAGE,
            error_kind=ERROR_PAST,
        )

    return ResolvedDateTime(instant=instant, success=True)


def extract_cadence(text: Optional[str]) -> RepeatCadence:
    """
    Find a repeat cadence keyword in free text.

    Daily wins over weekly, weekly over monthly. The keyword is not removed;
    see strip_cadence_keywords().
    """
    text = text or ""
    for cadence, keywords in CADENCE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return cadence
    return RepeatCadence.NONE


def strip_cadence_keywords(text: str) -> str:
    """Remove every cadence keyword from ``text`` and tidy whitespace."""
    for _, keywords in CADENCE_KEYWORDS:
        for keyword in keywords:
            text = text.replace(keyword, "")
    return " ".join(text.split())


def format_date_time(
    instant: datetime,
    now: Optional[datetime] = None,
    civil_tz: pytz.BaseTzInfo = CIVIL_TZ,
) -> str:
    """
    Format an instant as civil "M月D日 H時[M分]", prefixing the year when it
    differs from the current civil year.
    """
    local = _to_utc(instant).astimezone(civil_tz)
    current_year = _to_utc(now or datetime.now(pytz.UTC)).astimezone(civil_tz).year

    year_str = "" if local.year == current_year else f"{local.year}年"
    minute_str = "" if local.minute == 0 else f"{local.minute}分"
    return f"{year_str}{local.month}月{local.day}日 {local.hour}時{minute_str}"


def relative_time(instant: datetime, now: Optional[datetime] = None) -> str:
    """Describe how far away an instant is ("3日後", "2時間後", "5分後", "今すぐ")."""
    now = _to_utc(now or datetime.now(pytz.UTC))
    minutes = int((_to_utc(instant) - now).total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days}日後"
    if hours > 0:
        return f"{hours}時間後"
    if minutes > 0:
        return f"{minutes}分後"
    return "今すぐ"
