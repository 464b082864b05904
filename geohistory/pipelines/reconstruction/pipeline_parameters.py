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
"""Class for geometry reconstruction pipeline parameters"""
import datetime
from typing import Optional, Set

import attr
from attr import Attribute

from geohistory.common import attr_validators
from geohistory.common.date import parse_bq_timestamp
from geohistory.pipelines.pipeline_parameters import PipelineParameters
from geohistory.utils.params import str_to_int_set

HISTORY_DATASET = "history"
GEOMETRY_HISTORY_DATASET = "geometry_history"


@attr.define(kw_only=True)
class ReconstructionPipelineParameters(PipelineParameters):
    """Class for geometry reconstruction pipeline parameters"""

    input: str = attr.ib(default=HISTORY_DATASET, validator=attr_validators.is_str)
    output: str = attr.ib(
        default=GEOMETRY_HISTORY_DATASET, validator=attr_validators.is_str
    )
    # When set, only the geometries valid at this instant are written
    as_of: Optional[str] = attr.ib(default=None, validator=attr_validators.is_opt_str)
    entity_id_filter: Optional[str] = attr.ib(
        default=None, validator=attr_validators.is_opt_str
    )

    @as_of.validator
    def _as_of_validator(self, _attribute: Attribute, as_of: Optional[str]) -> None:
        if as_of is not None:
            parse_bq_timestamp(as_of)

    @entity_id_filter.validator
    def _entity_id_filter_validator(
        self, _attribute: Attribute, entity_id_filter: Optional[str]
    ) -> None:
        if entity_id_filter is not None:
            str_to_int_set(entity_id_filter)

    @property
    def as_of_datetime(self) -> Optional[datetime.datetime]:
        return parse_bq_timestamp(self.as_of) if self.as_of else None

    @property
    def entity_id_filter_set(self) -> Optional[Set[int]]:
        return str_to_int_set(self.entity_id_filter) if self.entity_id_filter else None

    @property
    def output_dataset(self) -> str:
        return self.get_output_dataset(self.output)

    def _get_base_job_name(self) -> str:
        job_name = self._to_job_name_friendly(self.pipeline)
        if self.as_of_datetime:
            as_of_suffix = self.as_of_datetime.strftime("%Y%m%d%H%M%S")
            job_name = f"{job_name}-as-of-{as_of_suffix}"
        return job_name

    @classmethod
    def custom_sandbox_indicator_parameters(cls) -> Set[str]:
        return {"input", "output", "entity_id_filter"}
