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
"""Assembles snapshots of multi-area group entities from the geometry timelines of
their member paths."""
import datetime
import logging
from typing import Iterable, Iterator, Optional, Tuple

from shapely.geometry.base import BaseGeometry

from geohistory.common.constants.entity_type import EntityType
from geohistory.common.constants.tags import is_multi_area
from geohistory.persistence.entity.entities import GroupEntity, GroupMember
from geohistory.persistence.entity.geometry_snapshot import GeometrySnapshot
from geohistory.pipelines.reconstruction.multipolygon import (
    MultipolygonAssemblyError,
    RelationPart,
    build_multipolygon,
)

# (changeset, group_id, group_version, ISO-formatted timestamp)
GroupVersionKey = Tuple[int, int, int, str]


def is_multi_area_group(group: GroupEntity) -> bool:
    return is_multi_area(group.tags)


def group_version_key(group: GroupEntity) -> GroupVersionKey:
    return (
        group.changeset,
        group.entity_id,
        group.version,
        group.timestamp.isoformat(),
    )


def indexed_members(group: GroupEntity) -> Iterator[Tuple[int, GroupMember]]:
    yield from enumerate(group.members)


def geometry_as_of(
    snapshots: Iterable[GeometrySnapshot], instant: datetime.datetime
) -> Optional[BaseGeometry]:
    """Returns the geometry of the snapshot valid at |instant|, or None if no
    snapshot was valid then (or the valid one is a deletion or has no geometry)."""
    for snapshot in snapshots:
        if instant in snapshot.validity:
            return snapshot.geometry if snapshot.is_valid else None
    return None


def assemble_relation_snapshot(
    group: GroupEntity, parts: Iterable[RelationPart]
) -> Optional[GeometrySnapshot]:
    """Builds the snapshot of a multi-area group version from its resolved parts.

    Only path members contribute rings. A non-visible group version yields a
    deletion marker. Returns None (and logs) when a path member could not be
    resolved at the group's timestamp or the rings do not form a valid area.
    """
    if not group.visible:
        return GeometrySnapshot(
            entity_type=EntityType.GROUP,
            entity_id=group.entity_id,
            geometry=None,
            tags=group.tags,
            changeset=group.changeset,
            updated=group.timestamp,
            visible=False,
            major_version=group.version,
        )

    path_parts = [p for p in parts if p.member_type == EntityType.PATH]
    unresolved = [p.ref_id for p in path_parts if p.geometry is None]
    if unresolved:
        logging.warning(
            "Dropping group [%s] version [%s] at [%s]: member paths %s cannot be "
            "resolved.",
            group.entity_id,
            group.version,
            group.timestamp.isoformat(),
            sorted(unresolved),
        )
        return None

    try:
        geometry = build_multipolygon(path_parts)
    except MultipolygonAssemblyError as e:
        logging.warning(
            "Dropping group [%s] version [%s] at [%s]: %s",
            group.entity_id,
            group.version,
            group.timestamp.isoformat(),
            e,
        )
        return None

    return GeometrySnapshot(
        entity_type=EntityType.GROUP,
        entity_id=group.entity_id,
        geometry=geometry,
        tags=group.tags,
        changeset=group.changeset,
        updated=group.timestamp,
        visible=True,
        major_version=group.version,
    )
