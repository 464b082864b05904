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
"""Converts BigQuery table rows into versioned entities and geometry snapshots into
table rows."""
import datetime
import json
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import attr
import cattr

from geohistory.persistence.entity.entities import VersionedEntity
from geohistory.persistence.entity.geometry_snapshot import GeometrySnapshot

VersionedEntityT = TypeVar("VersionedEntityT", bound=VersionedEntity)

# Source history tables name some columns differently than the entity fields
_SOURCE_COLUMN_RENAMES = {
    "id": "entity_id",
    "nds": "point_refs",
}

_SOURCE_MEMBER_KEY_RENAMES = {
    "type": "member_type",
    "ref": "ref_id",
}


def normalize_tags(raw_tags: Any) -> Dict[str, str]:
    """Normalizes a tag set read from a source table into a str -> str dict.

    Tags may arrive as a dict (MAP columns exported to JSON), as a list of
    {"key": ..., "value": ...} structs (the BigQuery representation of a map), or as a
    JSON-encoded string of either of those.
    """
    if raw_tags is None:
        return {}
    if isinstance(raw_tags, str):
        if not raw_tags.strip():
            return {}
        try:
            raw_tags = json.loads(raw_tags)
        except json.JSONDecodeError as e:
            raise ValueError(f"Could not parse tags value [{raw_tags}].") from e
    if isinstance(raw_tags, dict):
        return {str(k): str(v) for k, v in raw_tags.items() if v is not None}
    if isinstance(raw_tags, list):
        tags: Dict[str, str] = {}
        for tag in raw_tags:
            if not isinstance(tag, dict) or "key" not in tag:
                raise ValueError(f"Unexpected tag entry format: [{tag}].")
            if tag.get("value") is None:
                continue
            tags[str(tag["key"])] = str(tag["value"])
        return tags
    raise ValueError(f"Unexpected tags value type: [{type(raw_tags)}].")


def _normalize_point_ref(raw_ref: Any) -> int:
    # Repeated STRUCT<ref INT64> columns arrive as dicts
    if isinstance(raw_ref, dict):
        raw_ref = raw_ref["ref"]
    return int(raw_ref)


def _normalize_member(raw_member: Dict[str, Any]) -> Dict[str, Any]:
    member = {
        _SOURCE_MEMBER_KEY_RENAMES.get(key, key): value
        for key, value in raw_member.items()
    }
    if member.get("role") is None:
        member["role"] = ""
    return member


def entity_from_table_row(
    row: Dict[str, Any], entity_cls: Type[VersionedEntityT]
) -> VersionedEntityT:
    """Hydrates a single row of a point, path or group history table into an entity
    of type |entity_cls|. Columns with no corresponding entity field are ignored."""
    field_names = attr.fields_dict(entity_cls).keys()

    values: Dict[str, Any] = {}
    for column, value in row.items():
        field_name = _SOURCE_COLUMN_RENAMES.get(column, column)
        if field_name not in field_names:
            continue
        values[field_name] = value

    values["tags"] = normalize_tags(values.get("tags"))
    if "point_refs" in values:
        values["point_refs"] = [
            _normalize_point_ref(ref) for ref in values["point_refs"] or []
        ]
    if "members" in values:
        values["members"] = [
            _normalize_member(member) for member in values["members"] or []
        ]
    # Dropping null values lets the entity defaults apply
    values = {k: v for k, v in values.items() if v is not None}

    return cattr.structure(values, entity_cls)


def json_serializable_dict(
    element: Dict[str, Any],
    list_serializer: Optional[Callable[[str, List[Any]], str]] = None,
) -> Dict[str, Any]:
    """Converts a dictionary into a format that is JSON serializable.

    For values that are of type Enum, converts to their raw values. For values
    that are dates, converts to a string representation.

    If any of the fields are list types, must provide a |list_serializer| which will
    handle serializing list values to a serializable string value.
    """
    serializable_dict: Dict[str, Any] = {}

    for key, v in element.items():
        if isinstance(v, Enum):
            serializable_dict[key] = v.value
        elif isinstance(v, (datetime.date, datetime.datetime)):
            serializable_dict[key] = v.isoformat()
        elif isinstance(v, list):
            if not list_serializer:
                raise ValueError(
                    "Must provide list_serializer if there are list "
                    f"values in dict. Found list in key: [{key}]."
                )

            serializable_dict[key] = list_serializer(key, v)
        else:
            serializable_dict[key] = v
    return serializable_dict


def snapshot_to_table_row(snapshot: GeometrySnapshot) -> Dict[str, Any]:
    """Generates a JSON dictionary that represents the output table row values for
    this snapshot. The geometry is written as WKT along with its bounding box."""
    bounds = snapshot.bounds
    min_lon, min_lat, max_lon, max_lat = bounds if bounds else (None, None, None, None)

    row = {
        "entity_type": snapshot.entity_type,
        "entity_id": snapshot.entity_id,
        "major_version": snapshot.major_version,
        "minor_version": snapshot.minor_version,
        "changeset": snapshot.changeset,
        "updated": snapshot.updated,
        "valid_until": snapshot.valid_until,
        "visible": snapshot.visible,
        "geometry_type": (
            snapshot.geometry.geom_type if snapshot.geometry is not None else None
        ),
        "geometry": snapshot.geometry.wkt if snapshot.geometry is not None else None,
        "tags": json.dumps(snapshot.tags, sort_keys=True),
        "bbox_min_lon": min_lon,
        "bbox_min_lat": min_lat,
        "bbox_max_lon": max_lon,
        "bbox_max_lat": max_lat,
    }
    return json_serializable_dict(row)
