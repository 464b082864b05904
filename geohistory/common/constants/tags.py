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
"""Tag conventions used to decide how a path or group entity should be rendered.

A closed path is only rendered as an area when its tags say so; the rules here
follow the common conventions for map data: an explicit `area` tag always wins,
otherwise the presence of one of the area keys below makes the path an area
(with a handful of values that describe linear features excluded).
"""
from typing import Dict, FrozenSet

# Values of the `type` tag marking a group entity as a composite multi-area feature
MULTI_AREA_GROUP_TYPES: FrozenSet[str] = frozenset({"multipolygon", "boundary"})

# Keys whose presence on a closed path makes it an area, regardless of value
AREA_KEYS: FrozenSet[str] = frozenset(
    {
        "aeroway",
        "amenity",
        "boundary",
        "building",
        "building:part",
        "craft",
        "golf",
        "historic",
        "landuse",
        "leisure",
        "military",
        "office",
        "place",
        "public_transport",
        "ruins",
        "shop",
        "tourism",
    }
)

# Keys that only make a closed path an area for some values
AREA_KEYS_WITH_LINEAR_VALUES: Dict[str, FrozenSet[str]] = {
    "highway": frozenset(
        {
            "motorway",
            "trunk",
            "primary",
            "secondary",
            "tertiary",
            "unclassified",
            "residential",
            "service",
            "track",
            "path",
            "footway",
            "cycleway",
            "bridleway",
            "steps",
            "living_street",
            "pedestrian",
            "road",
        }
    ),
    "man_made": frozenset({"cutline", "embankment", "pipeline"}),
    "natural": frozenset({"cliff", "coastline", "ridge", "arete", "tree_row"}),
    "power": frozenset({"line", "minor_line", "cable"}),
    "waterway": frozenset({"canal", "ditch", "drain", "river", "stream"}),
}

# For these keys, a value of "no" does not make the path an area
_NEGATIVE_VALUES: FrozenSet[str] = frozenset({"no", "false", "0"})


def is_area(tags: Dict[str, str]) -> bool:
    """Returns whether a closed path with the given tags represents an enclosed area
    rather than a closed line (e.g. a roundabout)."""
    area_value = tags.get("area")
    if area_value is not None:
        return area_value.strip().lower() not in _NEGATIVE_VALUES

    for key, value in tags.items():
        if value.strip().lower() in _NEGATIVE_VALUES:
            continue
        if key in AREA_KEYS:
            return True
        linear_values = AREA_KEYS_WITH_LINEAR_VALUES.get(key)
        if linear_values is not None and value not in linear_values:
            return True
    return False


def is_multi_area(tags: Dict[str, str]) -> bool:
    """Returns whether a group entity's tags mark it as a composite multi-area
    feature whose member paths should be assembled into rings."""
    return tags.get("type") in MULTI_AREA_GROUP_TYPES
