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
"""Tests for the reconstruction PipelineParameters."""
import datetime
import unittest

import pytz

from geohistory.pipelines.reconstruction.pipeline_parameters import (
    ReconstructionPipelineParameters,
)


class TestReconstructionPipelineParameters(unittest.TestCase):
    """Unit tests for ReconstructionPipelineParameters"""

    def test_creation_defaults(self) -> None:
        pipeline_parameters = ReconstructionPipelineParameters(
            project="test-project",
            pipeline="geometry_reconstruction",
            region="us-west1",
        )

        self.assertEqual("history", pipeline_parameters.input)
        self.assertEqual("geometry_history", pipeline_parameters.output_dataset)
        self.assertIsNone(pipeline_parameters.as_of_datetime)
        self.assertIsNone(pipeline_parameters.entity_id_filter_set)
        self.assertFalse(pipeline_parameters.is_sandbox_pipeline)
        self.assertEqual("geometry-reconstruction", pipeline_parameters.job_name)
        self.assertEqual(
            {
                "pipeline": "geometry_reconstruction",
                "input": "history",
                "output": "geometry_history",
                "machine_type": "n1-standard-16",
                "disk_gb_size": "200",
            },
            pipeline_parameters.template_parameters,
        )

    def test_as_of(self) -> None:
        pipeline_parameters = ReconstructionPipelineParameters(
            project="test-project",
            pipeline="geometry_reconstruction",
            region="us-west1",
            as_of="2020-01-01 00:15:00 UTC",
        )

        self.assertEqual(
            datetime.datetime(2020, 1, 1, 0, 15, tzinfo=pytz.UTC),
            pipeline_parameters.as_of_datetime,
        )
        self.assertFalse(pipeline_parameters.is_sandbox_pipeline)
        self.assertEqual(
            "geometry-reconstruction-as-of-20200101001500",
            pipeline_parameters.job_name,
        )

    def test_invalid_as_of(self) -> None:
        with self.assertRaisesRegex(ValueError, "Could not parse timestamp value"):
            _ = ReconstructionPipelineParameters(
                project="test-project",
                pipeline="geometry_reconstruction",
                region="us-west1",
                as_of="yesterday",
            )

    def test_sandbox_pipeline(self) -> None:
        pipeline_parameters = ReconstructionPipelineParameters(
            project="test-project",
            pipeline="geometry_reconstruction",
            region="us-west1",
            output_sandbox_prefix="my_prefix",
            entity_id_filter="10 30",
        )

        self.assertTrue(pipeline_parameters.is_sandbox_pipeline)
        self.assertEqual({10, 30}, pipeline_parameters.entity_id_filter_set)
        self.assertEqual(
            "my_prefix_geometry_history", pipeline_parameters.output_dataset
        )
        self.assertEqual(
            "my-prefix-geometry-reconstruction-test", pipeline_parameters.job_name
        )

    def test_sandbox_pipeline_without_prefix(self) -> None:
        with self.assertRaisesRegex(
            ValueError, "This sandbox pipeline must define an output_sandbox_prefix"
        ):
            _ = ReconstructionPipelineParameters(
                project="test-project",
                pipeline="geometry_reconstruction",
                region="us-west1",
                input="other_history",
            )

    def test_invalid_entity_id_filter(self) -> None:
        with self.assertRaisesRegex(ValueError, "Expected space-separated integer"):
            _ = ReconstructionPipelineParameters(
                project="test-project",
                pipeline="geometry_reconstruction",
                region="us-west1",
                output_sandbox_prefix="my_prefix",
                entity_id_filter="10 abc",
            )

    def test_parse_from_args(self) -> None:
        pipeline_parameters = ReconstructionPipelineParameters.parse_from_args(
            argv=[
                "--project",
                "test-project",
                "--pipeline",
                "geometry_reconstruction",
                "--as_of",
                "2020-01-01T00:15:00Z",
                "--disk_gb_size",
                "100",
            ],
            sandbox_pipeline=False,
        )

        self.assertEqual("test-project", pipeline_parameters.project)
        self.assertEqual("us-west1", pipeline_parameters.region)
        self.assertEqual(100, pipeline_parameters.disk_gb_size)
        self.assertEqual(
            datetime.datetime(2020, 1, 1, 0, 15, tzinfo=pytz.UTC),
            pipeline_parameters.as_of_datetime,
        )
        self.assertIsNotNone(pipeline_parameters.apache_beam_pipeline_options)

    def test_parse_from_args_sandbox(self) -> None:
        pipeline_parameters = ReconstructionPipelineParameters.parse_from_args(
            argv=[
                "--project",
                "test-project",
                "--pipeline",
                "geometry_reconstruction",
                "--output_sandbox_prefix",
                "my_prefix",
                "--output",
                "geometries",
            ],
            sandbox_pipeline=True,
        )

        self.assertEqual("my_prefix_geometries", pipeline_parameters.output_dataset)

    def test_parse_from_args_sandbox_requires_prefix(self) -> None:
        with self.assertRaises(SystemExit):
            _ = ReconstructionPipelineParameters.parse_from_args(
                argv=[
                    "--project",
                    "test-project",
                    "--pipeline",
                    "geometry_reconstruction",
                ],
                sandbox_pipeline=True,
            )

    def test_parse_from_args_invalid_pipeline_name(self) -> None:
        with self.assertRaises(SystemExit):
            _ = ReconstructionPipelineParameters.parse_from_args(
                argv=["--project", "test-project", "--pipeline", "other"],
                sandbox_pipeline=False,
            )
