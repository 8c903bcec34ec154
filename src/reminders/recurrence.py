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
Reminder Recurrence Module

Computes the next fire time of a repeating reminder.

Day-of-month policy:
- Month arithmetic clamps to the last day of the target month
  (Jan 31 + 1 month = Feb 28/29). The same helper backs the "N日" and
  "M月D日" roll-forward rules in the time parser.
- Monthly recurrence starts from the previous fire time, so a reminder that
  was clamped once stays on the clamped day (Jan 31 -> Feb 28 -> Mar 28).
"""

import logging
from datetime import date, datetime
from enum import Enum
from typing import Optional, TypeVar, Union

import pytz
from dateutil.relativedelta import relativedelta

from config import CIVIL_TZ

logger = logging.getLogger("oboerukun.reminders.recurrence")

_D = TypeVar("_D", date, datetime)


class RepeatCadence(str, Enum):
    """Repeat interval attached to a reminder."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def from_value(cls, value: Union[str, "RepeatCadence", None]) -> "RepeatCadence":
        """Map a stored repeat_pattern (NULL, unknown strings included) to a cadence."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.NONE

    def to_db(self) -> Optional[str]:
        """Value for the repeat_pattern column (NULL for one-time reminders)."""
        return None if self is RepeatCadence.NONE else self.value


def add_months(value: _D, months: int, day: Optional[int] = None) -> _D:
    """
    Shift a date or datetime by whole calendar months.

    Args:
        value: Starting date/datetime
        months: Number of months to add (may be 0 or negative)
        day: Target day-of-month; defaults to the day of ``value``

    Returns:
        Shifted value, day clamped to the end of the target month
    """
    return value + relativedelta(months=months, day=day)


def advance(
    previous_fire_at: datetime,
    cadence: Union[str, RepeatCadence, None],
    civil_tz: pytz.BaseTzInfo = CIVIL_TZ,
) -> Optional[datetime]:
    """
    Compute the next occurrence of a repeating reminder.

    Arithmetic runs on the civil wall clock so that the civil day-of-month
    and time-of-day survive the step; the result is returned in UTC.

    Args:
        previous_fire_at: Previous fire time (aware; naive is taken as UTC)
        cadence: Repeat cadence (enum or stored string)
        civil_tz: Civil timezone for calendar arithmetic

    Returns:
        Next fire time in UTC, or None when the reminder is finished
    """
    cadence = RepeatCadence.from_value(cadence)
    if cadence is RepeatCadence.NONE:
        return None

    if previous_fire_at.tzinfo is None:
        previous_fire_at = pytz.UTC.localize(previous_fire_at)

    civil = previous_fire_at.astimezone(civil_tz).replace(tzinfo=None)

    if cadence is RepeatCadence.DAILY:
        nxt = civil + relativedelta(days=1)
    elif cadence is RepeatCadence.WEEKLY:
        nxt = civil + relativedelta(days=7)
    else:
        nxt = add_months(civil, 1)

    return civil_tz.localize(nxt).astimezone(pytz.UTC)
