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
"""Base class for the parameters a Dataflow pipeline is launched with.

Pipeline-specific parameters are declared in a template_metadata.json file that sits
next to the module defining the parameters subclass. That file is the Dataflow flex
template metadata, and it also drives command-line parsing here, so the two can not
drift apart.
"""
import abc
import argparse
import inspect
import json
import logging
import os
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Type, TypeVar

import attr
import attrs
from apache_beam.options.pipeline_options import (
    PipelineOptions,
    SetupOptions,
    WorkerOptions,
)
from more_itertools import one

from geohistory.common import attr_validators
from geohistory.utils.params import str_matches_regex_type

OUTPUT_SANDBOX_PREFIX = "output_sandbox_prefix"
TEMPLATE_METADATA_FILE_NAME = "template_metadata.json"

PipelineParametersT = TypeVar("PipelineParametersT", bound="PipelineParameters")


@attr.define(kw_only=True)
class PipelineParameters:
    """Parameters shared by all pipelines.

    A run is a sandbox run when any of its sandbox indicator parameters differs from
    its default. Sandbox runs must write to datasets prefixed with
    |output_sandbox_prefix|, and their job names are marked as tests.
    """

    project: str = attr.ib(validator=attr_validators.is_str)
    pipeline: str = attr.ib(validator=attr_validators.is_str)
    output_sandbox_prefix: Optional[str] = attr.ib(
        default=None, validator=attr_validators.is_opt_str
    )

    # Dataflow job configuration
    region: str = attr.ib(validator=attr_validators.is_str)
    machine_type: str = attr.ib(
        default="n1-standard-16", validator=attr_validators.is_str
    )
    disk_gb_size: int = attr.ib(
        default=200, validator=attr_validators.is_int, converter=int
    )

    # Only set when parsed from the command line of a running job
    apache_beam_pipeline_options: Optional[PipelineOptions] = attr.ib(default=None)

    def __attrs_post_init__(self) -> None:
        if self.is_sandbox_pipeline and not self.output_sandbox_prefix:
            raise ValueError(
                f"This sandbox pipeline must define an output_sandbox_prefix. "
                f"Found non-default values for these fields: "
                f"{sorted(self._changed_sandbox_indicators())}"
            )

    @abc.abstractmethod
    def _get_base_job_name(self) -> str:
        """The Dataflow job name for a non-sandbox run of this pipeline."""

    @classmethod
    @abc.abstractmethod
    def custom_sandbox_indicator_parameters(cls) -> Set[str]:
        """Names of the subclass fields which, when set to anything but their
        default, make this a sandbox run."""

    @classmethod
    def sandbox_indicator_parameters(cls) -> Set[str]:
        return {OUTPUT_SANDBOX_PREFIX} | cls.custom_sandbox_indicator_parameters()

    def _changed_sandbox_indicators(self) -> Set[str]:
        changed = set()
        fields = attr.fields_dict(type(self))
        for name in self.sandbox_indicator_parameters():
            default = fields[name].default
            if default is attrs.NOTHING:
                raise ValueError(
                    f"Sandbox indicator parameter [{name}] must have a default value."
                )
            if getattr(self, name) != default:
                changed.add(name)
        return changed

    @property
    def is_sandbox_pipeline(self) -> bool:
        return bool(self._changed_sandbox_indicators())

    def get_output_dataset(self, dataset_id: str) -> str:
        """Returns |dataset_id|, prefixed with the sandbox prefix if there is one."""
        if not self.output_sandbox_prefix:
            return dataset_id
        return f"{self.output_sandbox_prefix}_{dataset_id}"

    @staticmethod
    def _to_job_name_friendly(s: str) -> str:
        """Dataflow job names may only hold lowercase letters, digits and dashes."""
        return s.lower().replace("_", "-")

    @property
    def job_name(self) -> str:
        job_name = self._get_base_job_name()
        if not self.is_sandbox_pipeline:
            return job_name

        prefix = self._to_job_name_friendly(str(self.output_sandbox_prefix))
        if not job_name.startswith(prefix):
            job_name = f"{prefix}-{job_name}"
        if not job_name.endswith("-test"):
            logging.info("Marking sandbox job [%s] as a test job.", job_name)
            job_name = f"{job_name}-test"
        return job_name

    @classmethod
    def _template_parameter_specs(cls) -> List[Dict[str, Any]]:
        metadata_path = os.path.join(
            os.path.dirname(inspect.getabsfile(cls)), TEMPLATE_METADATA_FILE_NAME
        )
        with open(metadata_path, mode="r", encoding="utf-8") as metadata_file:
            return json.load(metadata_file)["parameters"]

    @classmethod
    def parse_args(
        cls, argv: List[str], sandbox_pipeline: bool
    ) -> Tuple[argparse.Namespace, List[str]]:
        """Parses the pipeline parameters out of |argv|, leaving any other arguments
        (e.g. Beam runner options) unparsed. A local |sandbox_pipeline| run must
        always name its output sandbox prefix."""
        parser = argparse.ArgumentParser()
        parser.add_argument(
            "--project", type=str, required=True, help="ID of the GCP project."
        )
        parser.add_argument(
            "--region",
            type=str,
            default="us-west1",
            help="The Google Cloud region to run the job in.",
        )

        for spec in cls._template_parameter_specs():
            name = spec["name"]
            required = not spec.get("isOptional", False) or (
                sandbox_pipeline and name == OUTPUT_SANDBOX_PREFIX
            )
            arg_type: Callable[[str], Any] = (
                str_matches_regex_type(one(spec["regexes"]))
                if "regexes" in spec
                else str
            )
            parser.add_argument(
                f"--{name}",
                dest=name,
                type=arg_type,
                required=required,
                help=f"{spec['label']}. {spec['helpText']}",
            )
        return parser.parse_known_args(argv)

    @classmethod
    def parse_from_args(
        cls: Type[PipelineParametersT], argv: List[str], sandbox_pipeline: bool
    ) -> PipelineParametersT:
        args, _ = cls.parse_args(argv, sandbox_pipeline=sandbox_pipeline)

        options = PipelineOptions(argv)
        options.view_as(SetupOptions).save_main_session = True
        options.view_as(WorkerOptions).default_sdk_harness_log_level = "WARNING"

        # Unset arguments fall back to the attribute defaults
        kwargs = {
            name: value for name, value in vars(args).items() if value is not None
        }
        return cls(**kwargs, apache_beam_pipeline_options=options)

    @property
    def template_parameters(self) -> Dict[str, str]:
        """The values of all template parameters that are set, as strings, which is
        the only type flex templates accept."""
        values = {
            spec["name"]: getattr(self, spec["name"])
            for spec in self._template_parameter_specs()
        }
        return {
            name: str(value) for name, value in values.items() if value is not None
        }
