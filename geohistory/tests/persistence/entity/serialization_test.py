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
"""Tests for serialization.py"""
import datetime
import json
import unittest

import pytz
from shapely.geometry import LineString

from geohistory.common.constants.entity_type import EntityType
from geohistory.persistence.entity.entities import (
    GroupEntity,
    GroupMember,
    PathEntity,
    PointEntity,
)
from geohistory.persistence.entity.geometry_snapshot import GeometrySnapshot
from geohistory.persistence.entity.serialization import (
    entity_from_table_row,
    json_serializable_dict,
    normalize_tags,
    snapshot_to_table_row,
)


class TestNormalizeTags(unittest.TestCase):
    """Tests for normalize_tags"""

    def test_dict(self) -> None:
        self.assertEqual({"a": "b", "n": "1"}, normalize_tags({"a": "b", "n": 1}))

    def test_key_value_structs(self) -> None:
        self.assertEqual(
            {"shop": "bakery", "name": "Joe's"},
            normalize_tags(
                [
                    {"key": "shop", "value": "bakery"},
                    {"key": "name", "value": "Joe's"},
                    {"key": "empty", "value": None},
                ]
            ),
        )

    def test_json_string(self) -> None:
        self.assertEqual({"a": "b"}, normalize_tags('{"a": "b"}'))
        self.assertEqual({"a": "b"}, normalize_tags('[{"key": "a", "value": "b"}]'))

    def test_empty(self) -> None:
        self.assertEqual({}, normalize_tags(None))
        self.assertEqual({}, normalize_tags(""))
        self.assertEqual({}, normalize_tags([]))

    def test_invalid(self) -> None:
        with self.assertRaisesRegex(ValueError, "Could not parse tags"):
            normalize_tags("{not json")
        with self.assertRaisesRegex(ValueError, "Unexpected tag entry"):
            normalize_tags(["a"])
        with self.assertRaisesRegex(ValueError, "Unexpected tags value type"):
            normalize_tags(5)


class TestEntityFromTableRow(unittest.TestCase):
    """Tests for entity_from_table_row"""

    def test_point(self) -> None:
        row = {
            "id": 1,
            "version": 2,
            "changeset": 10,
            "timestamp": "2020-01-01 00:00:00 UTC",
            "visible": True,
            "lat": 1.5,
            "lon": 2,
            "tags": [{"key": "shop", "value": "bakery"}],
            "uid": 7,
            "user": "mapper",
            "type": "node",
        }
        self.assertEqual(
            PointEntity(
                entity_id=1,
                version=2,
                changeset=10,
                timestamp=datetime.datetime(2020, 1, 1, tzinfo=pytz.UTC),
                visible=True,
                lat=1.5,
                lon=2.0,
                tags={"shop": "bakery"},
                uid=7,
                user="mapper",
            ),
            entity_from_table_row(row, PointEntity),
        )

    def test_deleted_point_null_values(self) -> None:
        row = {
            "id": 1,
            "version": 3,
            "changeset": 11,
            "timestamp": "2020-01-02T00:00:00Z",
            "visible": False,
            "lat": None,
            "lon": None,
            "tags": None,
            "uid": None,
            "user": None,
        }
        point = entity_from_table_row(row, PointEntity)
        self.assertFalse(point.visible)
        self.assertIsNone(point.lat)
        self.assertEqual({}, point.tags)
        self.assertIsNone(point.valid_until)

    def test_path(self) -> None:
        row = {
            "id": 5,
            "version": 1,
            "changeset": 12,
            "timestamp": "2020-01-01T00:00:00Z",
            "valid_until": "2020-01-03T00:00:00Z",
            "visible": True,
            "nds": [{"ref": 1}, {"ref": 2}, {"ref": 1}],
            "tags": {"highway": "residential"},
        }
        self.assertEqual(
            PathEntity(
                entity_id=5,
                version=1,
                changeset=12,
                timestamp=datetime.datetime(2020, 1, 1, tzinfo=pytz.UTC),
                valid_until=datetime.datetime(2020, 1, 3, tzinfo=pytz.UTC),
                visible=True,
                point_refs=[1, 2, 1],
                tags={"highway": "residential"},
            ),
            entity_from_table_row(row, PathEntity),
        )

    def test_path_point_refs_column(self) -> None:
        row = {
            "id": 5,
            "version": 1,
            "changeset": 12,
            "timestamp": "2020-01-01T00:00:00Z",
            "visible": True,
            "point_refs": [3, 4],
        }
        self.assertEqual([3, 4], entity_from_table_row(row, PathEntity).point_refs)

    def test_group(self) -> None:
        row = {
            "id": 9,
            "version": 4,
            "changeset": 13,
            "timestamp": "2020-01-01T00:00:00Z",
            "visible": True,
            "members": [
                {"type": "way", "ref": 5, "role": "outer"},
                {"type": "node", "ref": 1, "role": None},
            ],
            "tags": '{"type": "multipolygon"}',
        }
        self.assertEqual(
            GroupEntity(
                entity_id=9,
                version=4,
                changeset=13,
                timestamp=datetime.datetime(2020, 1, 1, tzinfo=pytz.UTC),
                visible=True,
                members=[
                    GroupMember(member_type=EntityType.PATH, ref_id=5, role="outer"),
                    GroupMember(member_type=EntityType.POINT, ref_id=1, role=""),
                ],
                tags={"type": "multipolygon"},
            ),
            entity_from_table_row(row, GroupEntity),
        )


class TestSnapshotToTableRow(unittest.TestCase):
    """Tests for snapshot_to_table_row"""

    def test_snapshot_to_table_row(self) -> None:
        snapshot = GeometrySnapshot(
            entity_type=EntityType.PATH,
            entity_id=5,
            geometry=LineString([(0, 0), (2, 1)]),
            tags={"highway": "residential", "name": "Main"},
            changeset=12,
            updated=datetime.datetime(2020, 1, 1, tzinfo=pytz.UTC),
            valid_until=datetime.datetime(2020, 1, 2, tzinfo=pytz.UTC),
            visible=True,
            major_version=1,
            minor_version=2,
        )
        self.assertEqual(
            {
                "entity_type": "way",
                "entity_id": 5,
                "major_version": 1,
                "minor_version": 2,
                "changeset": 12,
                "updated": "2020-01-01T00:00:00+00:00",
                "valid_until": "2020-01-02T00:00:00+00:00",
                "visible": True,
                "geometry_type": "LineString",
                "geometry": "LINESTRING (0 0, 2 1)",
                "tags": json.dumps({"highway": "residential", "name": "Main"}),
                "bbox_min_lon": 0.0,
                "bbox_min_lat": 0.0,
                "bbox_max_lon": 2.0,
                "bbox_max_lat": 1.0,
            },
            snapshot_to_table_row(snapshot),
        )

    def test_snapshot_without_geometry(self) -> None:
        snapshot = GeometrySnapshot(
            entity_type=EntityType.PATH,
            entity_id=5,
            geometry=None,
            changeset=12,
            updated=datetime.datetime(2020, 1, 1, tzinfo=pytz.UTC),
            visible=False,
            major_version=2,
        )
        row = snapshot_to_table_row(snapshot)
        self.assertIsNone(row["geometry"])
        self.assertIsNone(row["geometry_type"])
        self.assertIsNone(row["bbox_min_lon"])
        self.assertIsNone(row["valid_until"])
        self.assertEqual("{}", row["tags"])
        self.assertFalse(row["visible"])


class TestJsonSerializableDict(unittest.TestCase):
    def test_list_without_serializer(self) -> None:
        with self.assertRaisesRegex(ValueError, "Must provide list_serializer"):
            json_serializable_dict({"refs": [1, 2]})
        self.assertEqual(
            {"refs": "1,2"},
            json_serializable_dict(
                {"refs": [1, 2]}, lambda _key, values: ",".join(map(str, values))
            ),
        )
