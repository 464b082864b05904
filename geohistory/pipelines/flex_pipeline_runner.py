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
"""Entrypoint of the flex template container: runs the pipeline named by the
--pipeline argument with the remaining command-line arguments."""
import argparse
import logging
import sys
from typing import List, Type

from geohistory.pipelines.base_pipeline import BasePipeline
from geohistory.pipelines.utils.pipeline_run_utils import collect_all_pipeline_classes


def pipeline_cls_for_pipeline_name(pipeline_name: str) -> Type[BasePipeline]:
    """Returns the pipeline class whose pipeline_name() is |pipeline_name|."""
    matches = [
        pipeline_cls
        for pipeline_cls in collect_all_pipeline_classes()
        if pipeline_cls.pipeline_name().lower() == pipeline_name.lower()
    ]
    if len(matches) != 1:
        raise ValueError(
            f"Expected exactly one Pipeline with the pipeline_name "
            f"[{pipeline_name}], found: {matches}."
        )
    return matches[0]


def run_flex_pipeline(pipeline_name: str, argv: List[str]) -> None:
    pipeline_cls = pipeline_cls_for_pipeline_name(pipeline_name)
    logging.info("Running pipeline [%s].", pipeline_cls.pipeline_name())
    pipeline_cls.build_from_args(argv).run()


def _parse_pipeline_name(argv: List[str]) -> str:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--pipeline", dest="pipeline", type=str, required=True, help="Pipeline to run."
    )
    known_args, _ = parser.parse_known_args(argv)
    return known_args.pipeline


if __name__ == "__main__":
    logging.getLogger().setLevel(logging.INFO)
    run_flex_pipeline(
        pipeline_name=_parse_pipeline_name(sys.argv[1:]), argv=sys.argv[1:]
    )
