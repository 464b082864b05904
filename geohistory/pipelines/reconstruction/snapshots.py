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
"""Point geometry snapshots and as-of selection of versions and snapshots."""
import datetime
from typing import Iterable, List, Optional, Protocol, TypeVar

from shapely.geometry import Point

from geohistory.common.constants.entity_type import EntityType
from geohistory.common.date import ValidityInterval, current_datetime_utc
from geohistory.persistence.entity.entities import PointEntity
from geohistory.persistence.entity.geometry_snapshot import GeometrySnapshot


class HasValidity(Protocol):
    @property
    def validity(self) -> ValidityInterval:
        ...


HasValidityT = TypeVar("HasValidityT", bound=HasValidity)


def select_valid_at(
    rows: Iterable[HasValidityT], instant: Optional[datetime.datetime] = None
) -> List[HasValidityT]:
    """Returns the entity versions or snapshots that were valid at |instant|, or that
    are valid now if no instant is given."""
    if instant is None:
        instant = current_datetime_utc()
    return [row for row in rows if instant in row.validity]


def point_snapshot(point: PointEntity) -> Optional[GeometrySnapshot]:
    """Builds the snapshot of a tagged point version. Untagged points only give
    shape to paths and have no snapshot of their own."""
    if not point.tags:
        return None
    geometry = (
        Point(float(point.lon), float(point.lat))  # type: ignore[arg-type]
        if point.has_position
        else None
    )
    return GeometrySnapshot(
        entity_type=EntityType.POINT,
        entity_id=point.entity_id,
        geometry=geometry,
        tags=point.tags,
        changeset=point.changeset,
        updated=point.timestamp,
        valid_until=point.valid_until,
        visible=point.visible,
        major_version=point.version,
        minor_version=0,
    )
