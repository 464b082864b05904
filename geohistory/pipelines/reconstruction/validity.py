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
"""Computes validity intervals for the versions of a single entity and repairs the
tag loss that happens when an entity is deleted."""
from typing import Any, Dict, Iterable, List, Optional

import attr

from geohistory.persistence.entity.entities import PointEntity, VersionedEntity
from geohistory.pipelines.reconstruction.types import VersionedEntityT


def _sorted_versions(versions: Iterable[VersionedEntityT]) -> List[VersionedEntityT]:
    sorted_versions = sorted(versions, key=lambda v: v.version)
    for previous, current in zip(sorted_versions, sorted_versions[1:]):
        if previous.version == current.version:
            raise ValueError(
                f"Found duplicate version [{current.version}] for "
                f"{current.entity_type().value} [{current.entity_id}]."
            )
        if previous.entity_id != current.entity_id:
            raise ValueError(
                f"Expected versions of a single entity, found ids "
                f"[{previous.entity_id}] and [{current.entity_id}]."
            )
        if current.timestamp < previous.timestamp:
            raise ValueError(
                f"Version order does not match timestamp order for "
                f"{current.entity_type().value} [{current.entity_id}]: version "
                f"[{current.version}] at [{current.timestamp.isoformat()}] precedes "
                f"version [{previous.version}] at [{previous.timestamp.isoformat()}]."
            )
    return sorted_versions


def compute_validity(versions: Iterable[VersionedEntityT]) -> List[VersionedEntityT]:
    """Returns the versions of a single entity ordered by version, with
    |valid_until| set to the timestamp of the following version (None for the latest
    version).

    A deletion whose tags were dropped inherits the tags of the nearest preceding
    version that had any, and deleted points lose their position. Running this on
    already processed versions returns them unchanged.
    """
    sorted_versions = _sorted_versions(versions)

    processed: List[VersionedEntityT] = []
    last_tags: Dict[str, str] = {}
    for i, version in enumerate(sorted_versions):
        next_version: Optional[VersionedEntity] = (
            sorted_versions[i + 1] if i + 1 < len(sorted_versions) else None
        )
        updates: Dict[str, Any] = {
            "valid_until": next_version.timestamp if next_version else None,
        }

        if not version.visible:
            if not version.tags and last_tags:
                updates["tags"] = dict(last_tags)
            if isinstance(version, PointEntity):
                updates["lat"] = None
                updates["lon"] = None

        refined = attr.evolve(version, **updates)
        if refined.tags:
            last_tags = refined.tags
        processed.append(refined)
    return processed
