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
"""Utils for parsing instants and working with validity intervals."""
import datetime
from typing import Optional, Union

import attr
import pytz

from geohistory.common import attr_validators

# Suffixes BigQuery may attach to TIMESTAMP values when they are exported as strings
_UTC_SUFFIXES = (" UTC", "Z", "+00")


def current_datetime_utc() -> datetime.datetime:
    """Returns the current datetime in the UTC timezone."""
    return datetime.datetime.now(tz=pytz.UTC)


def parse_bq_timestamp(value: Union[str, datetime.datetime]) -> datetime.datetime:
    """Parses a TIMESTAMP value read from BigQuery into a UTC timezone-aware datetime.

    The Dataflow BQ IO connectors return TIMESTAMP columns as strings of the form
    "2012-01-01 00:00:00 UTC" (or "2012-01-01T00:00:00Z"), while values built in
    code or read by the BQ Python client are already datetimes. Naive values are
    assumed to be UTC.
    """
    if isinstance(value, datetime.datetime):
        parsed = value
    elif isinstance(value, str):
        datetime_str = value.strip()
        for suffix in _UTC_SUFFIXES:
            if datetime_str.endswith(suffix):
                datetime_str = datetime_str[: -len(suffix)]
                break
        try:
            parsed = datetime.datetime.fromisoformat(datetime_str)
        except ValueError as e:
            raise ValueError(f"Could not parse timestamp value [{value}].") from e
    else:
        raise ValueError(
            f"Expected str or datetime timestamp value, found [{type(value)}]."
        )

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=pytz.UTC)
    return parsed.astimezone(pytz.UTC)


@attr.s(frozen=True)
class ValidityInterval:
    """The span of time during which a single version of an entity (or a derived
    geometry snapshot) is the authoritative state. The upper bound is None while the
    version is still current."""

    lower_bound_inclusive: datetime.datetime = attr.ib(
        validator=attr_validators.is_utc_timezone_aware_datetime
    )
    upper_bound_exclusive: Optional[datetime.datetime] = attr.ib(
        validator=attr_validators.is_opt_utc_timezone_aware_datetime
    )

    def __contains__(self, instant: datetime.datetime) -> bool:
        # If the instant is before the interval begins, it is NOT in the interval
        if instant < self.lower_bound_inclusive:
            return False
        # If the interval never ends, the instant is in the interval
        if self.upper_bound_exclusive is None:
            return True
        # An instant equal to the upper bound belongs to the next version
        return instant < self.upper_bound_exclusive

    def __attrs_post_init__(self) -> None:
        if (
            self.upper_bound_exclusive is not None
            and self.lower_bound_inclusive > self.upper_bound_exclusive
        ):
            raise ValueError(
                f"Validity bounds must be in chronological order. "
                f"Current order: {self.lower_bound_inclusive}, "
                f"{self.upper_bound_exclusive}"
            )
