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

"""Top-level geohistory package."""
import datetime

import cattr

from geohistory.common.date import parse_bq_timestamp

# We want to add these globally because the serialization hooks are used when
# hydrating entities from source rows and when writing derived rows back out.

cattr.register_unstructure_hook(datetime.datetime, datetime.datetime.isoformat)
cattr.register_structure_hook(
    datetime.datetime,
    lambda serialized, desired_type: parse_bq_timestamp(serialized),
)
