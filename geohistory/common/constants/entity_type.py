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
"""Constants describing the kinds of versioned map entities."""
from enum import Enum
from typing import Optional


class EntityType(Enum):
    """The kind of a versioned entity. Values match the `type` column used in
    source history tables and in group member references."""

    POINT = "node"
    PATH = "way"
    GROUP = "relation"


class MemberRole(Enum):
    """Roles a path may play in a multi-area group entity."""

    OUTER = "outer"
    INNER = "inner"

    @classmethod
    def parse(cls, role: Optional[str]) -> Optional["MemberRole"]:
        """Returns the role for a raw member role string, or None when the role is
        empty or not one of the area roles."""
        if not role:
            return None
        try:
            return cls(role.strip().lower())
        except ValueError:
            return None
