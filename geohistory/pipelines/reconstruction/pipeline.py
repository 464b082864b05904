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
"""The geometry reconstruction pipeline.

Reads the point, path and group version histories, and derives a dense timeline of
the geometries each entity rendered to over time:

1. Validity intervals are computed for every version of every entity.
2. A reverse index from point ids to the path versions referencing them is built.
3. Triggers are resolved: every path edit, plus every point edit that happened while
   a path version referencing that point was current.
4. Path geometries are assembled at every trigger instant from the point positions
   valid at that instant.
5. Minor versions and final validity bounds are assigned per entity.
6. Multi-area groups are assembled from the path geometries valid at each group
   version's timestamp.

Tagged points additionally produce their own point geometry timeline.
"""
import datetime
from typing import Any, Dict, Iterable, Iterator, Optional, Set, Tuple, Type

import apache_beam as beam
from apache_beam import Pipeline
from apache_beam.pvalue import PCollection
from more_itertools import one

from geohistory.common.constants.entity_type import EntityType
from geohistory.common.date import current_datetime_utc
from geohistory.persistence.entity.entities import (
    GroupEntity,
    PathEntity,
    PointEntity,
    VersionedEntity,
)
from geohistory.persistence.entity.geometry_snapshot import GeometrySnapshot
from geohistory.persistence.entity.serialization import (
    entity_from_table_row,
    snapshot_to_table_row,
)
from geohistory.pipelines.base_pipeline import BasePipeline
from geohistory.pipelines.pipeline_names import RECONSTRUCTION_PIPELINE_NAME
from geohistory.pipelines.reconstruction.dependency_index import (
    PathReference,
    index_path_references,
)
from geohistory.pipelines.reconstruction.geometry_assembler import (
    assemble_path_snapshot,
    coordinate_as_of,
)
from geohistory.pipelines.reconstruction.minor_versions import assign_minor_versions
from geohistory.pipelines.reconstruction.multipolygon import RelationPart
from geohistory.pipelines.reconstruction.pipeline_parameters import (
    ReconstructionPipelineParameters,
)
from geohistory.pipelines.reconstruction.relation_assembler import (
    GroupVersionKey,
    assemble_relation_snapshot,
    geometry_as_of,
    group_version_key,
    indexed_members,
    is_multi_area_group,
)
from geohistory.pipelines.reconstruction.snapshots import (
    point_snapshot,
    select_valid_at,
)
from geohistory.pipelines.reconstruction.triggers import (
    Trigger,
    TriggerKey,
    collapse_changeset_triggers,
    collapse_instant_triggers,
    path_driven_trigger,
    point_driven_triggers,
)
from geohistory.pipelines.reconstruction.types import OptionalCoordinate
from geohistory.pipelines.reconstruction.validity import compute_validity
from geohistory.pipelines.utils.beam_utils.bigquery_io_utils import (
    ReadFromBigQuery,
    WriteToBigQuery,
)

POINTS_TABLE = "points"
PATHS_TABLE = "paths"
GROUPS_TABLE = "groups"

POINT_GEOMETRIES_TABLE = "point_geometries"
PATH_GEOMETRIES_TABLE = "path_geometries"
GROUP_GEOMETRIES_TABLE = "group_geometries"

SNAPSHOT_TABLE_SCHEMA = ",".join(
    [
        "entity_type:STRING",
        "entity_id:INTEGER",
        "major_version:INTEGER",
        "minor_version:INTEGER",
        "changeset:INTEGER",
        "updated:TIMESTAMP",
        "valid_until:TIMESTAMP",
        "visible:BOOLEAN",
        "geometry_type:STRING",
        "geometry:STRING",
        "tags:STRING",
        "bbox_min_lon:FLOAT",
        "bbox_min_lat:FLOAT",
        "bbox_max_lon:FLOAT",
        "bbox_max_lat:FLOAT",
    ]
)


def _key_by_entity_id(entity: VersionedEntity) -> Tuple[int, VersionedEntity]:
    return entity.entity_id, entity


def _key_by_timeline(
    snapshot: GeometrySnapshot,
) -> Tuple[Tuple[str, int], GeometrySnapshot]:
    return (snapshot.entity_type.value, snapshot.entity_id), snapshot


class ComputeValidity(beam.DoFn):
    """Computes the validity intervals of all versions of a single entity."""

    # Silence `Method 'process_batch' is abstract in class 'DoFn' but is not overridden (abstract-method)`
    # pylint: disable=W0223

    # pylint: disable=arguments-differ
    def process(
        self, element: Tuple[int, Iterable[VersionedEntity]]
    ) -> Iterator[VersionedEntity]:
        _entity_id, versions = element
        yield from compute_validity(versions)


class PreprocessVersions(beam.PTransform):
    """Groups the versions of each entity and computes their validity intervals,
    repairing tag loss at deletions."""

    def __init__(self, entity_cls: Type[VersionedEntity]) -> None:
        super().__init__()
        self._entity_cls = entity_cls

    def expand(
        self, input_or_inputs: PCollection[VersionedEntity]
    ) -> PCollection[VersionedEntity]:
        return (
            input_or_inputs
            | "Key versions by entity id" >> beam.Map(_key_by_entity_id)
            | "Group versions by entity id" >> beam.GroupByKey()
            | "Compute validity intervals"
            >> beam.ParDo(ComputeValidity()).with_output_types(self._entity_cls)
        )


class BuildDependencyIndex(beam.PTransform):
    """Explodes every path version into (point_id, PathReference) pairs."""

    def expand(
        self, input_or_inputs: PCollection[PathEntity]
    ) -> PCollection[Tuple[int, PathReference]]:
        return input_or_inputs | "Index point references" >> beam.FlatMap(
            index_path_references
        )


class ProducePointDrivenTriggers(beam.DoFn):
    """Joins the versions of a single point against the path versions that reference
    it, keying each trigger by the (changeset, path_id) it must be collapsed within."""

    # pylint: disable=W0223,arguments-differ
    def process(
        self, element: Tuple[Any, Dict[str, Any]]
    ) -> Iterator[Tuple[Tuple[int, int], Trigger]]:
        _point_id, grouped = element
        references = list(grouped["references"])
        if not references:
            return
        for trigger in point_driven_triggers(grouped["points"], references):
            yield (trigger.changeset, trigger.path_id), trigger


class ResolveTriggers(beam.PTransform):
    """Merges path-driven and point-driven triggers into one deduplicated set.

    Expects a dict input with "points" (preprocessed point versions), "paths"
    (preprocessed path versions) and "references" (the dependency index).
    """

    def expand(
        self, input_or_inputs: Dict[str, PCollection]
    ) -> PCollection[Trigger]:
        points_by_id = input_or_inputs[
            "points"
        ] | "Key points by id" >> beam.Map(_key_by_entity_id)

        point_driven = (
            {"points": points_by_id, "references": input_or_inputs["references"]}
            | "Join points to referencing paths" >> beam.CoGroupByKey()
            | "Produce point-driven triggers"
            >> beam.ParDo(ProducePointDrivenTriggers())
            | "Group by changeset and path" >> beam.GroupByKey()
            | "Collapse changeset triggers"
            >> beam.MapTuple(
                lambda _key, triggers: collapse_changeset_triggers(triggers)
            )
        )

        path_driven = input_or_inputs[
            "paths"
        ] | "Produce path-driven triggers" >> beam.Map(path_driven_trigger)

        return (
            (point_driven, path_driven)
            | "Union triggers" >> beam.Flatten()
            | "Key triggers by path version and instant"
            >> beam.Map(lambda trigger: (trigger.instant_key, trigger))
            | "Group same-instant triggers" >> beam.GroupByKey()
            | "Collapse same-instant triggers"
            >> beam.MapTuple(
                lambda _key, triggers: collapse_instant_triggers(triggers)
            )
        )


class PairTriggersWithPathVersions(beam.DoFn):
    """Joins each trigger to the path version it reassembles."""

    # pylint: disable=W0223,arguments-differ
    def process(
        self, element: Tuple[Any, Dict[str, Any]]
    ) -> Iterator[Tuple[Trigger, PathEntity]]:
        path_version_key, grouped = element
        triggers = list(grouped["triggers"])
        if not triggers:
            return
        paths = list(grouped["paths"])
        if len(paths) != 1:
            raise ValueError(
                f"Expected exactly one path version for [{path_version_key}], found "
                f"[{len(paths)}]."
            )
        path = one(paths)
        for trigger in triggers:
            yield trigger, path


class ResolveCoordinates(beam.DoFn):
    """Resolves, for every coordinate request against a single point, the position
    the point had at the requesting trigger's instant. Requests for points with no
    history resolve to None."""

    # pylint: disable=W0223,arguments-differ
    def process(
        self, element: Tuple[Any, Dict[str, Any]]
    ) -> Iterator[Tuple[TriggerKey, Tuple[int, OptionalCoordinate]]]:
        _point_id, grouped = element
        requests = list(grouped["requests"])
        if not requests:
            return
        point_versions = list(grouped["points"])
        for trigger_key, instant, positions in requests:
            coordinate = coordinate_as_of(point_versions, instant)
            for position in positions:
                yield trigger_key, (position, coordinate)


class BuildPathSnapshot(beam.DoFn):
    """Assembles the snapshot of one path version at one trigger instant."""

    # pylint: disable=W0223,arguments-differ
    def process(
        self, element: Tuple[Any, Dict[str, Any]]
    ) -> Iterator[GeometrySnapshot]:
        _trigger_key, grouped = element
        trigger, path = one(grouped["pending"])
        snapshot = assemble_path_snapshot(trigger, path, grouped["coordinates"])
        if snapshot is not None:
            yield snapshot


def _coordinate_requests(
    trigger: Trigger, path: PathEntity
) -> Iterator[Tuple[int, Tuple[TriggerKey, datetime.datetime, Tuple[int, ...]]]]:
    if not path.visible:
        return
    for point_id, reference in index_path_references(path):
        yield point_id, (trigger.key, trigger.instant, reference.positions)


class AssembleGeometries(beam.PTransform):
    """Assembles the geometry of every triggered path version from the point
    positions valid at the trigger instant.

    Expects a dict input with "triggers", "paths" (preprocessed path versions) and
    "points" (preprocessed point versions).
    """

    def expand(
        self, input_or_inputs: Dict[str, PCollection]
    ) -> PCollection[GeometrySnapshot]:
        triggers_by_path_version = input_or_inputs[
            "triggers"
        ] | "Key triggers by path version" >> beam.Map(
            lambda trigger: (trigger.path_version_key, trigger)
        )
        paths_by_version = input_or_inputs[
            "paths"
        ] | "Key paths by version" >> beam.Map(
            lambda path: ((path.entity_id, path.version), path)
        )

        pending = (
            {"triggers": triggers_by_path_version, "paths": paths_by_version}
            | "Join triggers to path versions" >> beam.CoGroupByKey()
            | "Pair triggers with path versions"
            >> beam.ParDo(PairTriggersWithPathVersions())
        )

        points_by_id = input_or_inputs[
            "points"
        ] | "Key points by id" >> beam.Map(_key_by_entity_id)

        requests = (
            pending
            | "Explode point references" >> beam.FlatMapTuple(_coordinate_requests)
            | "Redistribute coordinate requests" >> beam.Reshuffle()
        )

        coordinates = (
            {"requests": requests, "points": points_by_id}
            | "Join requests to point histories" >> beam.CoGroupByKey()
            | "Resolve coordinates as of trigger" >> beam.ParDo(ResolveCoordinates())
        )

        pending_by_trigger = pending | "Key pending by trigger" >> beam.MapTuple(
            lambda trigger, path: (trigger.key, (trigger, path))
        )

        return (
            {"pending": pending_by_trigger, "coordinates": coordinates}
            | "Collect coordinates by trigger" >> beam.CoGroupByKey()
            | "Build path snapshots" >> beam.ParDo(BuildPathSnapshot())
        )


class AssignMinorVersions(beam.PTransform):
    """Assigns minor versions and final validity bounds across the snapshot timeline
    of each entity."""

    def expand(
        self, input_or_inputs: PCollection[GeometrySnapshot]
    ) -> PCollection[GeometrySnapshot]:
        return (
            input_or_inputs
            | "Key snapshots by entity" >> beam.Map(_key_by_timeline)
            | "Group snapshots by entity" >> beam.GroupByKey()
            | "Assign minor versions"
            >> beam.FlatMapTuple(
                lambda _key, snapshots: assign_minor_versions(snapshots)
            )
        )


MemberRequest = Tuple[GroupVersionKey, datetime.datetime, int, str]


def _member_requests(
    group: GroupEntity,
) -> Iterator[Tuple[Tuple[str, int], MemberRequest]]:
    key = group_version_key(group)
    for member_index, member in indexed_members(group):
        yield (member.member_type.value, member.ref_id), (
            key,
            group.timestamp,
            member_index,
            member.role,
        )


class ResolveRelationParts(beam.DoFn):
    """Resolves every request for a single member entity against that entity's
    geometry timeline, as of the requesting group version's timestamp."""

    # pylint: disable=W0223,arguments-differ
    def process(
        self, element: Tuple[Any, Dict[str, Any]]
    ) -> Iterator[Tuple[GroupVersionKey, RelationPart]]:
        (member_type_value, ref_id), grouped = element
        requests = list(grouped["members"])
        if not requests:
            return
        snapshots = list(grouped["snapshots"])
        for group_key, timestamp, member_index, role in requests:
            yield group_key, RelationPart(
                member_index=member_index,
                member_type=EntityType(member_type_value),
                ref_id=ref_id,
                role=role,
                geometry=geometry_as_of(snapshots, timestamp),
            )


class BuildRelationSnapshot(beam.DoFn):
    """Assembles the snapshot of one multi-area group version from its parts."""

    # pylint: disable=W0223,arguments-differ
    def process(
        self, element: Tuple[Any, Dict[str, Any]]
    ) -> Iterator[GeometrySnapshot]:
        _group_key, grouped = element
        group = one(grouped["groups"])
        snapshot = assemble_relation_snapshot(group, grouped["parts"])
        if snapshot is not None:
            yield snapshot


class AssembleRelations(beam.PTransform):
    """Assembles MultiPolygon snapshots for every version of every multi-area group.

    Expects a dict input with "groups" (preprocessed group versions) and
    "path_snapshots" (minor-versioned path snapshots).
    """

    def expand(
        self, input_or_inputs: Dict[str, PCollection]
    ) -> PCollection[GeometrySnapshot]:
        multi_area_groups = input_or_inputs[
            "groups"
        ] | "Filter to multi-area groups" >> beam.Filter(is_multi_area_group)

        member_requests = (
            multi_area_groups
            | "Explode members" >> beam.FlatMap(_member_requests)
            | "Redistribute member requests" >> beam.Reshuffle()
        )

        snapshots_by_member = input_or_inputs[
            "path_snapshots"
        ] | "Key path snapshots by member reference" >> beam.Map(_key_by_timeline)

        parts = (
            {"members": member_requests, "snapshots": snapshots_by_member}
            | "Join members to geometry timelines" >> beam.CoGroupByKey()
            | "Resolve relation parts" >> beam.ParDo(ResolveRelationParts())
        )

        groups_by_key = multi_area_groups | "Key groups by version" >> beam.Map(
            lambda group: (group_version_key(group), group)
        )

        return (
            {"groups": groups_by_key, "parts": parts}
            | "Collect parts by group version" >> beam.CoGroupByKey()
            | "Build relation snapshots" >> beam.ParDo(BuildRelationSnapshot())
            | "Assign relation minor versions" >> AssignMinorVersions()
        )


class BuildPointGeometries(beam.PTransform):
    """Builds a point snapshot for every version of every tagged point."""

    def expand(
        self, input_or_inputs: PCollection[PointEntity]
    ) -> PCollection[GeometrySnapshot]:
        return input_or_inputs | "Build point snapshots" >> beam.FlatMap(
            lambda point: [s for s in [point_snapshot(point)] if s is not None]
        )


class FilterToValidAt(beam.PTransform):
    """Keeps only the versions or snapshots valid at |instant|. The instant defaults
    to the time the pipeline is constructed."""

    def __init__(self, instant: Optional[datetime.datetime] = None) -> None:
        super().__init__()
        self._instant = instant

    def expand(self, input_or_inputs: PCollection) -> PCollection:
        instant = self._instant or current_datetime_utc()
        return input_or_inputs | "Select valid at instant" >> beam.FlatMap(
            lambda row, at: select_valid_at([row], at), at=instant
        )


class SnapshotWritableDict(beam.DoFn):
    """Builds a dictionary in the format necessary to write the output to BigQuery."""

    # pylint: disable=W0223,arguments-differ
    def process(self, element: GeometrySnapshot) -> Iterator[Dict[str, Any]]:
        """The beam.io.WriteToBigQuery transform requires elements to be in dictionary
        form, where the values are in formats as required by BigQuery I/O connector.

        For a list of required formats, see the "Data types" section of:
            https://beam.apache.org/documentation/io/built-in/google-bigquery/
        """
        yield snapshot_to_table_row(element)


def history_table_query(project_id: str, dataset_id: str, table_id: str) -> str:
    return f"SELECT * FROM `{project_id}.{dataset_id}.{table_id}`"


class ReconstructionPipeline(BasePipeline[ReconstructionPipelineParameters]):
    """Pipeline that reconstructs the full geometry history of points, paths and
    multi-area groups."""

    @classmethod
    def pipeline_name(cls) -> str:
        return RECONSTRUCTION_PIPELINE_NAME

    @classmethod
    def parameters_type(cls) -> Type[ReconstructionPipelineParameters]:
        return ReconstructionPipelineParameters

    def _read_history(
        self, p: Pipeline, table_id: str, entity_cls: Type[VersionedEntity]
    ) -> PCollection:
        return (
            p
            | f"Read {table_id}"
            >> ReadFromBigQuery(
                query=history_table_query(
                    self.pipeline_parameters.project,
                    self.pipeline_parameters.input,
                    table_id,
                )
            )
            | f"Hydrate {table_id}"
            >> beam.Map(entity_from_table_row, entity_cls=entity_cls).with_output_types(
                entity_cls
            )
            | f"Preprocess {table_id}" >> PreprocessVersions(entity_cls)
        )

    def run_pipeline(self, p: Pipeline) -> None:
        pipeline_parameters = self.pipeline_parameters
        entity_id_filter_set: Optional[Set[int]] = (
            pipeline_parameters.entity_id_filter_set
        )
        as_of = pipeline_parameters.as_of_datetime

        points = self._read_history(p, POINTS_TABLE, PointEntity)
        paths = self._read_history(p, PATHS_TABLE, PathEntity)
        groups = self._read_history(p, GROUPS_TABLE, GroupEntity)

        references = paths | "Build dependency index" >> BuildDependencyIndex()

        triggers = {
            "points": points,
            "paths": paths,
            "references": references,
        } | "Resolve triggers" >> ResolveTriggers()

        path_snapshots = (
            {"triggers": triggers, "paths": paths, "points": points}
            | "Assemble path geometries" >> AssembleGeometries()
            | "Assign path minor versions" >> AssignMinorVersions()
        )

        group_snapshots = {
            "groups": groups,
            "path_snapshots": path_snapshots,
        } | "Assemble group geometries" >> AssembleRelations()

        point_snapshots = points | "Build point geometries" >> BuildPointGeometries()

        snapshots_by_table = {
            POINT_GEOMETRIES_TABLE: point_snapshots,
            PATH_GEOMETRIES_TABLE: path_snapshots,
            GROUP_GEOMETRIES_TABLE: group_snapshots,
        }
        for table_id, snapshots in snapshots_by_table.items():
            if entity_id_filter_set and table_id != POINT_GEOMETRIES_TABLE:
                snapshots = snapshots | f"Filter {table_id} to entity ids" >> (
                    beam.Filter(
                        lambda snapshot, ids: snapshot.entity_id in ids,
                        ids=entity_id_filter_set,
                    )
                )
            if as_of:
                snapshots = (
                    snapshots | f"Filter {table_id} to as-of" >> FilterToValidAt(as_of)
                )
            _ = (
                snapshots
                | f"Convert {table_id} to dicts" >> beam.ParDo(SnapshotWritableDict())
                | f"Write {table_id} to BQ"
                >> WriteToBigQuery(
                    output_table=table_id,
                    output_dataset=pipeline_parameters.output_dataset,
                    write_disposition=beam.io.BigQueryDisposition.WRITE_TRUNCATE,
                    schema=SNAPSHOT_TABLE_SCHEMA,
                )
            )
