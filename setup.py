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
"""This file is used for installing the package and for deploying the
reconstruction pipelines in Dataflow.

The REQUIRED_PACKAGES are the external packages required by the pipelines in
./geohistory/pipelines, and must be manually updated any time a dependency is
added to the project that pipeline code touches.
"""
import setuptools

# Packages required by the pipeline. Dataflow workers have a list of packages already
# installed. To see this list, and which version of each package is installed, visit
# https://cloud.google.com/dataflow/docs/concepts/sdk-worker-dependencies
REQUIRED_PACKAGES = [
    "apache-beam[gcp]",
    "attrs",
    "cattrs",
    "more-itertools",
    "pytz",
    "shapely>=2.0",
]

TEST_PACKAGES = [
    "freezegun",
    "parameterized",
    "pytest",
]

setuptools.setup(
    name="geohistory-pipelines",
    version="1.0.0",
    python_requires=">=3.10",
    install_requires=REQUIRED_PACKAGES,
    extras_require={"test": TEST_PACKAGES},
    packages=setuptools.find_packages(include=["geohistory", "geohistory.*"]),
    package_data={"geohistory.pipelines.reconstruction": ["template_metadata.json"]},
)
