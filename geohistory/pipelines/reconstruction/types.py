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
"""Types shared by the stages of the reconstruction pipeline."""
from typing import Optional, Tuple, TypeVar

from geohistory.persistence.entity.entities import VersionedEntity

VersionedEntityT = TypeVar("VersionedEntityT", bound=VersionedEntity)

# A (lon, lat) position
Coordinate = Tuple[float, float]

# A coordinate that could not be resolved at the instant of interest is None
OptionalCoordinate = Optional[Coordinate]

# The smallest number of coordinates (including the repeated closing coordinate)
# that can describe a ring
MIN_RING_COORDINATES = 4
