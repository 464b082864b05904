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
"""Helpers for parsing command-line parameters."""
import argparse
import re
from typing import Callable, Set


def str_matches_regex_type(regex: str) -> Callable[[str], str]:
    """Returns an argparse |type| function that accepts only values fully matching
    |regex|."""
    pattern = re.compile(regex)

    def matches_regex(value: str) -> str:
        if not pattern.fullmatch(value):
            raise argparse.ArgumentTypeError(
                f"Value [{value}] does not match expected pattern [{regex}]."
            )
        return value

    return matches_regex


def str_to_int_set(value: str) -> Set[int]:
    """Parses a space-separated list of integer ids."""
    try:
        return {int(item) for item in value.split()}
    except ValueError as e:
        raise ValueError(
            f"Expected space-separated integer ids, found [{value}]."
        ) from e
