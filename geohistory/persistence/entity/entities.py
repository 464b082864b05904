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
"""Entities representing a single version of a point, path or group in an
append-only edit history."""
import abc
import datetime
from typing import Dict, List, Optional

import attr

from geohistory.common import attr_validators
from geohistory.common.constants.entity_type import EntityType
from geohistory.common.date import ValidityInterval


@attr.s(frozen=True, kw_only=True)
class VersionedEntity(abc.ABC):
    """Fields shared by every kind of versioned entity.

    For a fixed |entity_id|, ordering by |version| matches ordering by |timestamp|,
    and once the history has been preprocessed, |valid_until| of a version equals the
    |timestamp| of the following version (None for the latest version).
    """

    entity_id: int = attr.ib(validator=attr_validators.is_int)
    version: int = attr.ib(validator=attr_validators.is_positive_int)
    # Groups all edits made in one transaction
    changeset: int = attr.ib(validator=attr_validators.is_int)
    timestamp: datetime.datetime = attr.ib(
        validator=attr_validators.is_utc_timezone_aware_datetime
    )
    # False marks a deletion
    visible: bool = attr.ib(validator=attr_validators.is_bool)
    tags: Dict[str, str] = attr.ib(factory=dict, validator=attr_validators.is_str_dict)
    uid: Optional[int] = attr.ib(default=None, validator=attr_validators.is_opt_int)
    user: Optional[str] = attr.ib(default=None, validator=attr_validators.is_opt_str)
    valid_until: Optional[datetime.datetime] = attr.ib(
        default=None, validator=attr_validators.is_opt_utc_timezone_aware_datetime
    )

    @classmethod
    @abc.abstractmethod
    def entity_type(cls) -> EntityType:
        """The kind of entity this class represents."""

    @property
    def validity(self) -> ValidityInterval:
        return ValidityInterval(
            lower_bound_inclusive=self.timestamp,
            upper_bound_exclusive=self.valid_until,
        )

    def is_valid_at(self, instant: datetime.datetime) -> bool:
        """Returns whether this version was the authoritative state of the entity at
        the given |instant|."""
        return instant in self.validity


@attr.s(frozen=True, kw_only=True)
class PointEntity(VersionedEntity):
    """A single version of a point entity. Deleted points have no position."""

    lat: Optional[float] = attr.ib(
        default=None, validator=attr_validators.is_opt_number
    )
    lon: Optional[float] = attr.ib(
        default=None, validator=attr_validators.is_opt_number
    )

    @classmethod
    def entity_type(cls) -> EntityType:
        return EntityType.POINT

    @property
    def has_position(self) -> bool:
        return self.visible and self.lat is not None and self.lon is not None


@attr.s(frozen=True, kw_only=True)
class PathEntity(VersionedEntity):
    """A single version of a path entity, which references an ordered sequence of
    point entities. Ids may repeat; a path whose first and last reference are the same
    point is a closed ring."""

    point_refs: List[int] = attr.ib(
        factory=list, validator=attr_validators.is_list_of(int)
    )

    @classmethod
    def entity_type(cls) -> EntityType:
        return EntityType.PATH


@attr.s(frozen=True, kw_only=True)
class GroupMember:
    """A reference from a group entity to another entity."""

    member_type: EntityType = attr.ib(
        validator=attr.validators.instance_of(EntityType)
    )
    ref_id: int = attr.ib(validator=attr_validators.is_int)
    role: str = attr.ib(default="", validator=attr_validators.is_str)


@attr.s(frozen=True, kw_only=True)
class GroupEntity(VersionedEntity):
    """A single version of a group entity, which references an ordered list of
    members."""

    members: List[GroupMember] = attr.ib(
        factory=list, validator=attr_validators.is_list_of(GroupMember)
    )

    @classmethod
    def entity_type(cls) -> EntityType:
        return EntityType.GROUP
