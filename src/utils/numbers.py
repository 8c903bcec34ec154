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

"""Lenient parsing of number selections typed by users."""

import re

_SEPARATORS = re.compile(r"[,、.。\s]+")
_NON_DIGITS = re.compile(r"\D")


def parse_numbers(text: str) -> list[int]:
    """Parse "1 3", "1, 3", "1. 3.", "1\\n3" style input.

    Commas, periods (ASCII and Japanese), newlines and spaces all separate
    numbers; other non-digit characters inside a token are dropped. Only
    positive numbers are kept, de-duplicated and sorted ascending.
    """
    numbers = set()
    for token in _SEPARATORS.split(text or ""):
        digits = _NON_DIGITS.sub("", token)
        if not digits:
            continue
        value = int(digits)
        if value > 0:
            numbers.add(value)
    return sorted(numbers)
