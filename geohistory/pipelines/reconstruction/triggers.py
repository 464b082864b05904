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
"""Resolves the set of (changeset, path id, path version, instant) triggers at which
a path's geometry must be reassembled."""
import datetime
from typing import Iterable, Iterator, Tuple

import attr

from geohistory.common import attr_validators
from geohistory.persistence.entity.entities import PathEntity, PointEntity
from geohistory.pipelines.reconstruction.dependency_index import PathReference

# (changeset, path_id, path_version, ISO-formatted instant)
TriggerKey = Tuple[int, int, int, str]

# (path_id, path_version, ISO-formatted instant)
InstantKey = Tuple[int, int, str]


@attr.s(frozen=True, kw_only=True)
class Trigger:
    """An instant at which the geometry of a path version may have changed, either
    because the path itself was edited or because a point it references was."""

    changeset: int = attr.ib(validator=attr_validators.is_int)
    path_id: int = attr.ib(validator=attr_validators.is_int)
    path_version: int = attr.ib(validator=attr_validators.is_positive_int)
    instant: datetime.datetime = attr.ib(
        validator=attr_validators.is_utc_timezone_aware_datetime
    )

    @property
    def key(self) -> TriggerKey:
        return (
            self.changeset,
            self.path_id,
            self.path_version,
            self.instant.isoformat(),
        )

    @property
    def instant_key(self) -> InstantKey:
        return self.path_id, self.path_version, self.instant.isoformat()

    @property
    def path_version_key(self) -> Tuple[int, int]:
        return self.path_id, self.path_version


def path_driven_trigger(path: PathEntity) -> Trigger:
    """Every path version is reassembled at the instant it was created."""
    return Trigger(
        changeset=path.changeset,
        path_id=path.entity_id,
        path_version=path.version,
        instant=path.timestamp,
    )


def point_driven_triggers(
    point_versions: Iterable[PointEntity], references: Iterable[PathReference]
) -> Iterator[Trigger]:
    """Joins every version of a single point against the path versions that reference
    that point, yielding a trigger for each path version whose validity window
    contains the timestamp of the point edit."""
    references = list(references)
    for point in point_versions:
        for reference in references:
            if not reference.is_valid_at(point.timestamp):
                continue
            yield Trigger(
                changeset=point.changeset,
                path_id=reference.path_id,
                path_version=reference.path_version,
                instant=point.timestamp,
            )


def collapse_changeset_triggers(triggers: Iterable[Trigger]) -> Trigger:
    """Collapses the point-driven triggers a single changeset produced for a single
    path into one trigger carrying the latest path version and the latest instant."""
    triggers = list(triggers)
    if not triggers:
        raise ValueError("Expected at least one trigger to collapse.")
    if len({(t.changeset, t.path_id) for t in triggers}) != 1:
        raise ValueError(
            f"Expected triggers for a single changeset and path, found "
            f"{sorted({(t.changeset, t.path_id) for t in triggers})}."
        )
    first = triggers[0]
    return Trigger(
        changeset=first.changeset,
        path_id=first.path_id,
        path_version=max(t.path_version for t in triggers),
        instant=max(t.instant for t in triggers),
    )


def collapse_instant_triggers(triggers: Iterable[Trigger]) -> Trigger:
    """Collapses triggers that reassemble the same path version at the same instant
    into one, keeping the one with the highest changeset. Two snapshots at the same
    instant would otherwise leave a zero-length validity window between them."""
    triggers = list(triggers)
    if not triggers:
        raise ValueError("Expected at least one trigger to collapse.")
    if len({t.instant_key for t in triggers}) != 1:
        raise ValueError(
            f"Expected triggers for a single path version and instant, found "
            f"{sorted({t.instant_key for t in triggers})}."
        )
    return max(triggers, key=lambda t: t.changeset)
