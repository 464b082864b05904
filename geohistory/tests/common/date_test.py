# geohistory - historical geometry reconstruction for versioned map data
# Copyright (C) 2024 geohistory contributors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
# =============================================================================
"""Tests for date.py"""
import datetime
import unittest

import pytz
from freezegun import freeze_time
from parameterized import parameterized

from geohistory.common.date import (
    ValidityInterval,
    current_datetime_utc,
    parse_bq_timestamp,
)


class TestParseBqTimestamp(unittest.TestCase):
    """Tests for parse_bq_timestamp"""

    expected = datetime.datetime(2012, 3, 4, 5, 6, 7, tzinfo=pytz.UTC)

    @parameterized.expand(
        [
            ("dataflow_format", "2012-03-04 05:06:07 UTC"),
            ("zulu", "2012-03-04T05:06:07Z"),
            ("short_offset", "2012-03-04 05:06:07+00"),
            ("full_offset", "2012-03-04T05:06:07+00:00"),
            ("naive", "2012-03-04T05:06:07"),
            ("whitespace", "  2012-03-04T05:06:07Z "),
        ]
    )
    def test_parse_string(self, _name: str, value: str) -> None:
        self.assertEqual(self.expected, parse_bq_timestamp(value))

    def test_parse_non_utc_offset_converts(self) -> None:
        parsed = parse_bq_timestamp("2012-03-04T07:06:07+02:00")
        self.assertEqual(self.expected, parsed)
        self.assertEqual(datetime.timedelta(0), parsed.utcoffset())

    def test_parse_naive_datetime(self) -> None:
        self.assertEqual(
            self.expected, parse_bq_timestamp(datetime.datetime(2012, 3, 4, 5, 6, 7))
        )

    def test_parse_aware_datetime(self) -> None:
        self.assertEqual(self.expected, parse_bq_timestamp(self.expected))

    def test_parse_invalid(self) -> None:
        with self.assertRaisesRegex(ValueError, "Could not parse timestamp"):
            parse_bq_timestamp("not a timestamp")

    def test_parse_wrong_type(self) -> None:
        with self.assertRaises(ValueError):
            parse_bq_timestamp(12345)  # type: ignore[arg-type]


class TestCurrentDatetimeUtc(unittest.TestCase):
    @freeze_time("2021-06-01 12:00:00")
    def test_current_datetime_utc(self) -> None:
        self.assertEqual(
            datetime.datetime(2021, 6, 1, 12, tzinfo=pytz.UTC), current_datetime_utc()
        )


class TestValidityInterval(unittest.TestCase):
    """Tests for ValidityInterval"""

    start = datetime.datetime(2020, 1, 1, tzinfo=pytz.UTC)
    end = datetime.datetime(2020, 2, 1, tzinfo=pytz.UTC)

    def test_contains(self) -> None:
        interval = ValidityInterval(self.start, self.end)
        self.assertIn(self.start, interval)
        self.assertIn(self.start + datetime.timedelta(days=3), interval)
        self.assertNotIn(self.end, interval)
        self.assertNotIn(self.start - datetime.timedelta(seconds=1), interval)

    def test_contains_open(self) -> None:
        interval = ValidityInterval(self.start, None)
        self.assertIn(datetime.datetime(2100, 1, 1, tzinfo=pytz.UTC), interval)
        self.assertNotIn(self.start - datetime.timedelta(seconds=1), interval)

    def test_empty_interval(self) -> None:
        interval = ValidityInterval(self.start, self.start)
        self.assertNotIn(self.start, interval)

    def test_bounds_out_of_order(self) -> None:
        with self.assertRaisesRegex(ValueError, "chronological order"):
            ValidityInterval(self.end, self.start)

    def test_naive_bounds(self) -> None:
        with self.assertRaises(ValueError):
            ValidityInterval(datetime.datetime(2020, 1, 1), None)
