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
"""Assembles the member geometries of a multi-area group into a MultiPolygon."""
from typing import Dict, List, Optional, Sequence

import attr
from shapely.geometry import LineString, MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.geometry.polygon import orient

from geohistory.common import attr_validators
from geohistory.common.constants.entity_type import EntityType, MemberRole
from geohistory.pipelines.reconstruction.types import MIN_RING_COORDINATES, Coordinate


class MultipolygonAssemblyError(ValueError):
    """Raised when the parts of a group cannot be assembled into a valid area."""


@attr.s(frozen=True, kw_only=True)
class RelationPart:
    """A single member of a group version, with the geometry its referenced entity
    had at the group version's timestamp (None if it could not be resolved)."""

    member_index: int = attr.ib(validator=attr_validators.is_int)
    member_type: EntityType = attr.ib(validator=attr.validators.instance_of(EntityType))
    ref_id: int = attr.ib(validator=attr_validators.is_int)
    role: str = attr.ib(default="", validator=attr_validators.is_str)
    geometry: Optional[BaseGeometry] = attr.ib(
        default=None, validator=attr_validators.is_opt(BaseGeometry)
    )


@attr.s(frozen=True)
class _Ring:
    polygon: Polygon = attr.ib()
    role: Optional[MemberRole] = attr.ib()


def _coordinates(geometry: BaseGeometry, ref_id: int) -> List[Coordinate]:
    if isinstance(geometry, Polygon):
        return [(x, y) for x, y in geometry.exterior.coords]
    if isinstance(geometry, LineString):
        return [(x, y) for x, y in geometry.coords]
    raise MultipolygonAssemblyError(
        f"Unsupported geometry type [{geometry.geom_type}] for member [{ref_id}]."
    )


def stitch_rings(segments: Sequence[List[Coordinate]]) -> List[List[Coordinate]]:
    """Joins open segments end to end, reversing them where needed, until every
    segment belongs to a closed ring."""
    remaining = [list(segment) for segment in segments]
    rings: List[List[Coordinate]] = []
    while remaining:
        ring = remaining.pop(0)
        while ring[0] != ring[-1]:
            for i, segment in enumerate(remaining):
                if segment[0] == ring[-1]:
                    ring.extend(segment[1:])
                    break
                if segment[-1] == ring[-1]:
                    ring.extend(reversed(segment[:-1]))
                    break
            else:
                raise MultipolygonAssemblyError(
                    f"Could not close ring ending at [{ring[-1]}]."
                )
            remaining.pop(i)
        if len(ring) < MIN_RING_COORDINATES:
            raise MultipolygonAssemblyError(
                f"Ring with [{len(ring)}] coordinates is too short to enclose an area."
            )
        rings.append(ring)
    return rings


def _rings_from_parts(parts: Sequence[RelationPart]) -> List[_Ring]:
    closed: List[_Ring] = []
    segments_by_role: Dict[Optional[MemberRole], List[List[Coordinate]]] = {}
    for part in parts:
        if part.geometry is None:
            raise MultipolygonAssemblyError(
                f"Member [{part.ref_id}] at index [{part.member_index}] has no "
                "geometry."
            )
        role = MemberRole.parse(part.role)
        coordinates = _coordinates(part.geometry, part.ref_id)
        is_closed = coordinates[0] == coordinates[-1]
        if len(coordinates) >= MIN_RING_COORDINATES and is_closed:
            closed.append(_Ring(Polygon(coordinates), role))
        else:
            segments_by_role.setdefault(role, []).append(coordinates)

    try:
        stitched = [
            _Ring(Polygon(ring), role)
            for role, segments in segments_by_role.items()
            for ring in stitch_rings(segments)
        ]
    except MultipolygonAssemblyError:
        # Segments of one ring may carry different (or missing) roles
        all_segments = [s for segments in segments_by_role.values() for s in segments]
        stitched = [_Ring(Polygon(ring), None) for ring in stitch_rings(all_segments)]

    rings = closed + stitched
    for ring in rings:
        if not ring.polygon.is_valid:
            raise MultipolygonAssemblyError(
                f"Found self-intersecting ring [{ring.polygon.wkt}]."
            )
    return rings


def _roles_are_consistent(rings: Sequence[_Ring]) -> bool:
    if any(ring.role is None for ring in rings):
        return False
    outers = [r.polygon for r in rings if r.role == MemberRole.OUTER]
    inners = [r.polygon for r in rings if r.role == MemberRole.INNER]
    if not outers:
        return False
    if not all(any(outer.contains(inner) for outer in outers) for inner in inners):
        return False
    # An outer ring may only lie inside another outer ring as an island in a hole
    for i, outer in enumerate(outers):
        enclosed = any(
            other.contains(outer) for j, other in enumerate(outers) if i != j
        )
        if enclosed and not any(inner.contains(outer) for inner in inners):
            return False
    return True


def _roles_from_containment(rings: Sequence[_Ring]) -> List[MemberRole]:
    """A ring nested inside an even number of other rings is an outer ring; otherwise
    it is an inner ring."""
    roles = []
    for i, ring in enumerate(rings):
        depth = sum(
            1
            for j, other in enumerate(rings)
            if i != j and other.polygon.contains(ring.polygon)
        )
        roles.append(MemberRole.OUTER if depth % 2 == 0 else MemberRole.INNER)
    return roles


def build_multipolygon(parts: Sequence[RelationPart]) -> MultiPolygon:
    """Builds a MultiPolygon from the path members of a group version.

    Rings are classified by their declared outer/inner roles when every ring has one
    and every inner ring lies inside an outer ring; otherwise by how deeply each ring
    is nested inside the others. Each inner ring becomes a hole of the smallest outer
    ring that contains it.
    """
    ordered_parts = sorted(parts, key=lambda p: p.member_index)
    if not ordered_parts:
        raise MultipolygonAssemblyError("Found no members to assemble.")

    rings = _rings_from_parts(ordered_parts)
    roles = (
        [ring.role for ring in rings]
        if _roles_are_consistent(rings)
        else _roles_from_containment(rings)
    )

    outers = [
        ring.polygon for ring, role in zip(rings, roles) if role == MemberRole.OUTER
    ]
    inners = [
        ring.polygon for ring, role in zip(rings, roles) if role == MemberRole.INNER
    ]
    if not outers:
        raise MultipolygonAssemblyError("Found no outer ring.")

    holes_by_outer: Dict[int, List[Polygon]] = {i: [] for i in range(len(outers))}
    for inner in inners:
        containing = [i for i, outer in enumerate(outers) if outer.contains(inner)]
        if not containing:
            raise MultipolygonAssemblyError(
                f"Inner ring [{inner.wkt}] is not inside any outer ring."
            )
        smallest = min(containing, key=lambda i: outers[i].area)
        holes_by_outer[smallest].append(inner)

    polygons = [
        orient(
            Polygon(
                outer.exterior.coords,
                [hole.exterior.coords for hole in holes_by_outer[i]],
            )
        )
        for i, outer in enumerate(outers)
    ]
    multipolygon = MultiPolygon(polygons)
    if not multipolygon.is_valid:
        raise MultipolygonAssemblyError(
            f"Assembled geometry is not valid: [{multipolygon.wkt}]."
        )
    return multipolygon
