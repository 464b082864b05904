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
"""Derives minor versions and final validity bounds across the snapshot timeline of
a single entity."""
from typing import Dict, Iterable, List

import attr

from geohistory.persistence.entity.geometry_snapshot import GeometrySnapshot


def _timeline_sort_key(snapshot: GeometrySnapshot) -> tuple:
    return snapshot.updated, snapshot.major_version, snapshot.changeset


def assign_minor_versions(
    snapshots: Iterable[GeometrySnapshot],
) -> List[GeometrySnapshot]:
    """Orders all snapshots of one entity by |updated| and rewrites their
    |minor_version| and |valid_until| fields.

    Within each major version, minor versions are zero-based ordinals in |updated|
    order. Across the whole timeline, each snapshot is valid until the next snapshot
    is updated, and the last snapshot stays open.
    """
    timeline = sorted(snapshots, key=_timeline_sort_key)
    if len({(s.entity_type, s.entity_id) for s in timeline}) > 1:
        raise ValueError(
            f"Expected snapshots of a single entity, found "
            f"{sorted({s.entity_id for s in timeline})}."
        )

    next_minor_version: Dict[int, int] = {}
    refined: List[GeometrySnapshot] = []
    for i, snapshot in enumerate(timeline):
        minor_version = next_minor_version.get(snapshot.major_version, 0)
        next_minor_version[snapshot.major_version] = minor_version + 1
        refined.append(
            attr.evolve(
                snapshot,
                minor_version=minor_version,
                valid_until=timeline[i + 1].updated if i + 1 < len(timeline) else None,
            )
        )
    return refined
