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
"""Builds the reverse lookup from point ids to the path versions that reference
them."""
import datetime
from typing import Dict, Iterator, List, Optional, Tuple

import attr

from geohistory.common import attr_validators
from geohistory.common.date import ValidityInterval
from geohistory.persistence.entity.entities import PathEntity


@attr.s(frozen=True, kw_only=True)
class PathReference:
    """A reference from one version of a path to one point, annotated with the
    validity window of that path version and every index at which the point appears
    in the path's point sequence."""

    path_id: int = attr.ib(validator=attr_validators.is_int)
    path_version: int = attr.ib(validator=attr_validators.is_positive_int)
    valid_from: datetime.datetime = attr.ib(
        validator=attr_validators.is_utc_timezone_aware_datetime
    )
    valid_until: Optional[datetime.datetime] = attr.ib(
        validator=attr_validators.is_opt_utc_timezone_aware_datetime
    )
    positions: Tuple[int, ...] = attr.ib(converter=tuple)

    @property
    def validity(self) -> ValidityInterval:
        return ValidityInterval(
            lower_bound_inclusive=self.valid_from,
            upper_bound_exclusive=self.valid_until,
        )

    def is_valid_at(self, instant: datetime.datetime) -> bool:
        return instant in self.validity


def index_path_references(path: PathEntity) -> Iterator[Tuple[int, PathReference]]:
    """Yields a (point_id, PathReference) pair for every distinct point referenced by
    the given path version. A point referenced more than once (e.g. the shared first
    and last point of a closed ring) yields a single reference holding all of its
    positions."""
    positions_by_point_id: Dict[int, List[int]] = {}
    for position, point_id in enumerate(path.point_refs):
        positions_by_point_id.setdefault(point_id, []).append(position)

    for point_id, positions in positions_by_point_id.items():
        yield point_id, PathReference(
            path_id=path.entity_id,
            path_version=path.version,
            valid_from=path.timestamp,
            valid_until=path.valid_until,
            positions=positions,
        )
