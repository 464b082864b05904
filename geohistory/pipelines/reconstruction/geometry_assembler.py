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
"""Assembles the geometry of a path version as of a trigger instant from the
positions of the points it references."""
import datetime
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from shapely.geometry import LineString, Polygon
from shapely.geometry.base import BaseGeometry

from geohistory.common.constants.entity_type import EntityType
from geohistory.common.constants.tags import is_area
from geohistory.persistence.entity.entities import PathEntity, PointEntity
from geohistory.persistence.entity.geometry_snapshot import GeometrySnapshot
from geohistory.pipelines.reconstruction.triggers import Trigger
from geohistory.pipelines.reconstruction.types import (
    MIN_RING_COORDINATES,
    Coordinate,
    OptionalCoordinate,
)


def point_coordinate(point: PointEntity) -> OptionalCoordinate:
    """Returns the (lon, lat) position of a point version, or None when it has no
    usable position. Positions at exactly (0, 0) are almost always redacted or broken
    data and are treated as missing."""
    if not point.has_position:
        return None
    # has_position guarantees both values are set
    lat, lon = float(point.lat), float(point.lon)  # type: ignore[arg-type]
    if lat == 0 and lon == 0:
        return None
    return lon, lat


def coordinate_as_of(
    point_versions: Iterable[PointEntity], instant: datetime.datetime
) -> OptionalCoordinate:
    """Returns the position of the point version valid at |instant|, or None if the
    point did not exist, was deleted or had no usable position at that instant."""
    for point in point_versions:
        if point.is_valid_at(instant):
            return point_coordinate(point)
    return None


def build_path_geometry(
    coordinates: Sequence[Coordinate], tags: Dict[str, str]
) -> Optional[BaseGeometry]:
    """Builds the geometry of a path from its fully resolved coordinates.

    A coordinate sequence that starts and ends at the same position and is tagged as
    an area yields a Polygon, whether or not the first and last point ids match.
    Anything else yields a LineString. Returns None when the coordinates collapse to
    fewer than two distinct positions.
    """
    distinct_coordinates = set(coordinates)
    if len(distinct_coordinates) < 2:
        return None

    is_closed = (
        len(coordinates) >= MIN_RING_COORDINATES and coordinates[0] == coordinates[-1]
    )
    if is_closed and len(distinct_coordinates) >= 3 and is_area(tags):
        return Polygon(coordinates)
    return LineString(coordinates)


def assemble_path_snapshot(
    trigger: Trigger,
    path: PathEntity,
    indexed_coordinates: Iterable[Tuple[int, OptionalCoordinate]],
) -> Optional[GeometrySnapshot]:
    """Builds the snapshot of |path| as of the |trigger| instant.

    |indexed_coordinates| holds the as-of resolved coordinate for every position in
    the path's point sequence. A non-visible path version yields a deletion marker.
    If any referenced point could not be resolved, the snapshot is emitted without a
    geometry so the gap is explicit. Returns None when the path degenerates to fewer
    than two distinct positions.
    """
    if trigger.path_version_key != (path.entity_id, path.version):
        raise ValueError(
            f"Trigger for path [{trigger.path_id}] version [{trigger.path_version}] "
            f"does not match path [{path.entity_id}] version [{path.version}]."
        )

    snapshot_kwargs: Dict[str, Any] = {
        "entity_type": EntityType.PATH,
        "entity_id": path.entity_id,
        "tags": path.tags,
        "changeset": trigger.changeset,
        "updated": trigger.instant,
        "visible": path.visible,
        "major_version": path.version,
    }

    if not path.visible:
        return GeometrySnapshot(geometry=None, **snapshot_kwargs)

    coordinates_by_position = dict(indexed_coordinates)
    if sorted(coordinates_by_position) != list(range(len(path.point_refs))):
        raise ValueError(
            f"Expected a coordinate for each of the [{len(path.point_refs)}] "
            f"positions of path [{path.entity_id}] version [{path.version}], found "
            f"positions {sorted(coordinates_by_position)}."
        )
    ordered_coordinates: List[OptionalCoordinate] = [
        coordinates_by_position[position] for position in range(len(path.point_refs))
    ]
    resolved_coordinates = [c for c in ordered_coordinates if c is not None]

    if len(set(resolved_coordinates)) < 2:
        logging.warning(
            "Dropping path [%s] version [%s] at [%s]: fewer than two distinct "
            "coordinates could be resolved.",
            path.entity_id,
            path.version,
            trigger.instant.isoformat(),
        )
        return None

    if len(resolved_coordinates) != len(ordered_coordinates):
        logging.info(
            "Path [%s] version [%s] references [%s] points that cannot be resolved "
            "at [%s]. Marking snapshot as invalid.",
            path.entity_id,
            path.version,
            len(ordered_coordinates) - len(resolved_coordinates),
            trigger.instant.isoformat(),
        )
        return GeometrySnapshot(geometry=None, **snapshot_kwargs)

    return GeometrySnapshot(
        geometry=build_path_geometry(resolved_coordinates, path.tags),
        **snapshot_kwargs,
    )
