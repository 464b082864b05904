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
"""Contains helper aliases and functions for attrs validators that can be passed to
the `validator=` arg of any attr field. For example:

@attr.s
class MyClass:
  user: Optional[str] = attr.ib(validator=is_opt_str)
  visible: bool = attr.ib(validator=is_bool)
"""

import datetime
from typing import Any, Callable, Optional, Type

import attr


class IsOptionalValidator:
    def __init__(self, expected_cls_type: Type) -> None:
        self._expected_cls_type = expected_cls_type

    def __call__(self, instance: Any, attribute: attr.Attribute, value: Any) -> None:
        return attr.validators.optional(
            attr.validators.instance_of(self._expected_cls_type)
        )(instance, attribute, value)


def is_opt(cls_type: Type) -> Callable:
    """Returns an attrs validator that checks if the value is an instance of |cls_type|
    or None."""
    return IsOptionalValidator(cls_type)


def is_positive_int(_instance: Any, attribute: attr.Attribute, value: int) -> None:
    # bool is a subclass of int, but True is never a valid version number
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(
            f"Expected int value for field [{attribute.name}], found [{type(value)}]."
        )
    if value <= 0:
        raise ValueError(
            f"Expected positive value for field [{attribute.name}], found [{value}]."
        )


def is_utc_timezone_aware_datetime(
    _instance: Any, attribute: attr.Attribute, value: Optional[datetime.datetime]
) -> None:
    if not isinstance(value, datetime.datetime):
        raise ValueError(
            f"Expected datetime value for field [{attribute.name}], found "
            f"[{type(value)}]."
        )
    if value.tzinfo is None:
        raise ValueError(
            f"Expected timezone value to not be empty for field [{attribute.name}]"
        )
    if value.utcoffset() != datetime.timedelta(0):
        raise ValueError(f"Expected timezone value to be UTC, found: {value.tzinfo}")


def is_opt_utc_timezone_aware_datetime(
    _instance: Any, attribute: attr.Attribute, value: Optional[datetime.datetime]
) -> None:
    if value is not None:
        is_utc_timezone_aware_datetime(_instance, attribute, value)


class IsListOfValidator:
    def __init__(self, list_item_expected_type: Type) -> None:
        self._list_item_expected_type = list_item_expected_type

    def __call__(self, instance: Any, attribute: attr.Attribute, value: Any) -> None:
        if not isinstance(value, list):
            raise ValueError(
                f"Found value for list type field [{attribute.name}] on class "
                f"[{type(instance)}] which has non-list type [{type(value)}]."
            )
        for item in value:
            if not isinstance(item, self._list_item_expected_type):
                raise ValueError(
                    f"Found item in list type field [{attribute.name}] on class "
                    f"[{type(instance)}] which is not the expected type "
                    f"[{self._list_item_expected_type}]: {type(item)}"
                )


def is_list_of(list_item_expected_type: Type) -> IsListOfValidator:
    return IsListOfValidator(list_item_expected_type)


def is_str_dict(_instance: Any, attribute: attr.Attribute, value: Any) -> None:
    """Checks that the value is a dictionary mapping string keys to string values,
    e.g. a tag set."""
    if not isinstance(value, dict):
        raise ValueError(
            f"Expected dict value for field [{attribute.name}], found [{type(value)}]."
        )
    for k, v in value.items():
        if not isinstance(k, str) or not isinstance(v, str):
            raise ValueError(
                f"Expected only string keys and values in field [{attribute.name}], "
                f"found [{k!r}: {v!r}]."
            )


def _is_number(_instance: Any, attribute: attr.Attribute, value: Any) -> None:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValueError(
            f"Expected numeric value for field [{attribute.name}], found "
            f"[{type(value)}]."
        )


def is_opt_number(instance: Any, attribute: attr.Attribute, value: Any) -> None:
    if value is not None:
        _is_number(instance, attribute, value)


# String field validators
is_str = attr.validators.instance_of(str)
is_opt_str = is_opt(str)

# Int field validators
is_int = attr.validators.instance_of(int)
is_opt_int = is_opt(int)

# Boolean field validators
is_bool = attr.validators.instance_of(bool)
