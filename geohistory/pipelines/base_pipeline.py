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
"""Base class for the Dataflow pipelines in this package."""
import abc
import logging
from typing import Generic, List, Type, TypeVar

from apache_beam import Pipeline

from geohistory.pipelines.pipeline_parameters import PipelineParametersT

PipelineT = TypeVar("PipelineT", bound="BasePipeline")


class BasePipeline(abc.ABC, Generic[PipelineParametersT]):
    """A pipeline is built from its parameters and knows how to attach its
    transforms to a Beam Pipeline."""

    def __init__(self, pipeline_parameters: PipelineParametersT) -> None:
        if not pipeline_parameters.apache_beam_pipeline_options:
            raise ValueError("Expected nonnull apache_beam_pipeline_options")
        self.pipeline_parameters = pipeline_parameters

    @classmethod
    @abc.abstractmethod
    def pipeline_name(cls) -> str:
        """Name that identifies this pipeline in the --pipeline argument."""

    @classmethod
    @abc.abstractmethod
    def parameters_type(cls) -> Type[PipelineParametersT]:
        """The PipelineParameters subclass this pipeline is configured with."""

    @abc.abstractmethod
    def run_pipeline(self, p: Pipeline) -> None:
        """Attaches all transforms of this pipeline to |p|."""

    @classmethod
    def build_from_args(cls: Type[PipelineT], argv: List[str]) -> PipelineT:
        parameters = cls.parameters_type().parse_from_args(
            argv=argv, sandbox_pipeline=False
        )
        return cls(pipeline_parameters=parameters)

    def run(self) -> None:
        logging.info(
            "Starting job [%s] with parameters %s",
            self.pipeline_parameters.job_name,
            self.pipeline_parameters.template_parameters,
        )
        with Pipeline(
            options=self.pipeline_parameters.apache_beam_pipeline_options
        ) as p:
            self.run_pipeline(p)
