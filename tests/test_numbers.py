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

"""Tests for number parsing in selection replies."""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from utils.numbers import parse_numbers


class TestParseNumbers:
    def test_separators(self):
        assert parse_numbers("1 3") == [1, 3]
        assert parse_numbers("1,2、3") == [1, 2, 3]
        assert parse_numbers("4.5。6") == [4, 5, 6]
        assert parse_numbers("1\n2") == [1, 2]

    def test_sorted_and_deduplicated(self):
        assert parse_numbers("3 1 3 2 1") == [1, 2, 3]

    def test_non_digits_stripped(self):
        assert parse_numbers("1番 3つ目") == [1, 3]

    def test_zero_and_empty_dropped(self):
        assert parse_numbers("0 2") == [2]
        assert parse_numbers("") == []
        assert parse_numbers("なし") == []
