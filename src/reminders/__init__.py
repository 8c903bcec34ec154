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
Reminders Package

Japanese date/time phrase resolution, repeat scheduling, persistence and
the due-reminder sweep.
"""

from .recurrence import RepeatCadence, add_months, advance
from .time_parser import (
    DateTimeParseError,
    PastDateTimeRejected,
    ResolvedDateTime,
    UnparsableFormat,
    extract_cadence,
    format_date_time,
    is_time_phrase,
    relative_time,
    resolve_datetime,
    strip_cadence_keywords,
)
from .manager import CategorizedReminders, ReminderManager
from .scheduler import ReminderScheduler, SweepStats

__all__ = [
    "RepeatCadence",
    "add_months",
    "advance",
    "DateTimeParseError",
    "PastDateTimeRejected",
    "ResolvedDateTime",
    "UnparsableFormat",
    "extract_cadence",
    "format_date_time",
    "is_time_phrase",
    "relative_time",
    "resolve_datetime",
    "strip_cadence_keywords",
    "CategorizedReminders",
    "ReminderManager",
    "ReminderScheduler",
    "SweepStats",
]
