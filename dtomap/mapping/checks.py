"""Null checks for arguments and record fields."""

from __future__ import annotations

import inspect
from typing import Any, List

from dtomap.core.exceptions import InvalidArgumentError
from dtomap.mapping.reflection import FieldReflector, default_reflector


def _null_fields(record: Any, include_ancestors: bool, reflector: FieldReflector) -> List[str]:
    fields = reflector.readable_fields_of(type(record))
    if not include_ancestors:
        own = inspect.get_annotations(type(record))
        fields = [field for field in fields if field.name in own]
    return [field.name for field in fields if getattr(record, field.name, None) is None]


def check_not_null(*values: Any) -> bool:
    """True when no value is None."""
    return all(value is not None for value in values)


def check_null_fields(
    record: Any, include_ancestors: bool = False, reflector: FieldReflector = default_reflector
) -> bool:
    """True when no field of ``record`` is None."""
    return not _null_fields(record, include_ancestors, reflector)


def assert_not_null(*values: Any) -> None:
    for index, value in enumerate(values):
        if value is None:
            raise InvalidArgumentError(f"Argument {index} must not be None", details={"index": index})


def assert_no_null_fields(
    record: Any, include_ancestors: bool = False, reflector: FieldReflector = default_reflector
) -> None:
    missing = _null_fields(record, include_ancestors, reflector)
    if missing:
        raise InvalidArgumentError(
            f"{type(record).__name__} has unset fields: {', '.join(missing)}",
            details={"fields": missing},
        )
