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
"""Defines the GeometrySnapshot entity, a derived record of the geometry an entity
rendered to during one interval of its history."""
import datetime
from typing import Dict, Optional, Tuple

import attr
from shapely.geometry.base import BaseGeometry

from geohistory.common import attr_validators
from geohistory.common.constants.entity_type import EntityType
from geohistory.common.date import ValidityInterval


@attr.s(frozen=True, kw_only=True)
class GeometrySnapshot:
    """The geometry of a single entity as of |updated|, valid until |valid_until|.

    Snapshots are created by the assembly stages with a provisional |valid_until| and
    |minor_version|; the minor version stage rewrites both across the full timeline
    of an entity. A snapshot with |visible| True and no geometry could not be
    rendered because a dependency was missing at |updated|. A snapshot with |visible|
    False marks a deletion.
    """

    entity_type: EntityType = attr.ib(validator=attr.validators.instance_of(EntityType))
    entity_id: int = attr.ib(validator=attr_validators.is_int)
    geometry: Optional[BaseGeometry] = attr.ib(
        validator=attr_validators.is_opt(BaseGeometry)
    )
    tags: Dict[str, str] = attr.ib(factory=dict, validator=attr_validators.is_str_dict)
    # Changeset of the edit that caused this snapshot, which may belong to a
    # dependency rather than to the entity itself
    changeset: int = attr.ib(validator=attr_validators.is_int)
    updated: datetime.datetime = attr.ib(
        validator=attr_validators.is_utc_timezone_aware_datetime
    )
    valid_until: Optional[datetime.datetime] = attr.ib(
        default=None, validator=attr_validators.is_opt_utc_timezone_aware_datetime
    )
    visible: bool = attr.ib(default=True, validator=attr_validators.is_bool)
    major_version: int = attr.ib(validator=attr_validators.is_positive_int)
    minor_version: int = attr.ib(default=0, validator=attr_validators.is_int)

    @property
    def validity(self) -> ValidityInterval:
        return ValidityInterval(
            lower_bound_inclusive=self.updated,
            upper_bound_exclusive=self.valid_until,
        )

    @property
    def is_valid(self) -> bool:
        """True when the snapshot carries a renderable geometry."""
        return self.visible and self.geometry is not None

    @property
    def bounds(self) -> Optional[Tuple[float, float, float, float]]:
        """The (min_lon, min_lat, max_lon, max_lat) extent of the geometry, or None
        when there is no geometry."""
        if self.geometry is None or self.geometry.is_empty:
            return None
        return self.geometry.bounds
