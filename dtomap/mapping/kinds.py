"""
Semantic kinds and runtime type tags.

A ``SemanticKind`` names the logical category a field holds; a ``SourceTag``
classifies the runtime value being converted. Every coercion rule is keyed
by the pair of the two.
"""

from __future__ import annotations

import numbers
import types
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional, Tuple, Union, get_args, get_origin

import numpy as np
import pandas as pd


class SemanticKind(str, Enum):
    """Closed set of logical value categories."""

    BOOL = "bool"
    CHAR = "char"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BIG_INTEGER = "big_integer"
    BIG_DECIMAL = "big_decimal"
    DATE_ONLY = "date_only"
    TIME_ONLY = "time_only"
    DATE_TIME = "date_time"
    INSTANT = "instant"
    CALENDAR_LIKE = "calendar_like"
    STRING = "string"
    ENUM = "enum"


class SourceTag(str, Enum):
    """Runtime classification of a value about to be converted."""

    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    DECIMAL = "decimal"
    STRING = "string"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    INSTANT = "instant"
    CALENDAR = "calendar"
    ENUM = "enum"
    OTHER = "other"


INTEGER_BITS = {
    SemanticKind.INT8: 8,
    SemanticKind.INT16: 16,
    SemanticKind.INT32: 32,
    SemanticKind.INT64: 64,
}

INTEGER_KINDS = frozenset(INTEGER_BITS)
FLOAT_KINDS = frozenset({SemanticKind.FLOAT32, SemanticKind.FLOAT64})
DATE_KINDS = frozenset(
    {
        SemanticKind.DATE_ONLY,
        SemanticKind.TIME_ONLY,
        SemanticKind.DATE_TIME,
        SemanticKind.INSTANT,
        SemanticKind.CALENDAR_LIKE,
    }
)

NUMERIC_TAGS = frozenset({SourceTag.INT, SourceTag.FLOAT, SourceTag.DECIMAL})
DATE_TAGS = frozenset(
    {SourceTag.DATE, SourceTag.TIME, SourceTag.DATETIME, SourceTag.INSTANT, SourceTag.CALENDAR}
)

# Annotation aliases for kinds that plain Python types cannot express
Int8 = Annotated[int, SemanticKind.INT8]
Int16 = Annotated[int, SemanticKind.INT16]
Int32 = Annotated[int, SemanticKind.INT32]
Int64 = Annotated[int, SemanticKind.INT64]
BigInteger = Annotated[int, SemanticKind.BIG_INTEGER]
Float32 = Annotated[float, SemanticKind.FLOAT32]
Char = Annotated[str, SemanticKind.CHAR]
Instant = Annotated[datetime, SemanticKind.INSTANT]
Calendar = Annotated[pd.Timestamp, SemanticKind.CALENDAR_LIKE]

# Order matters: subclasses before their bases
_PLAIN_KINDS = (
    (bool, SemanticKind.BOOL),
    (int, SemanticKind.INT64),
    (float, SemanticKind.FLOAT64),
    (Decimal, SemanticKind.BIG_DECIMAL),
    (str, SemanticKind.STRING),
    (pd.Timestamp, SemanticKind.CALENDAR_LIKE),
    (datetime, SemanticKind.DATE_TIME),
    (date, SemanticKind.DATE_ONLY),
    (time, SemanticKind.TIME_ONLY),
)


def int_range(kind: SemanticKind) -> Tuple[int, int]:
    """Inclusive signed range of an integer kind."""
    bits = INTEGER_BITS[kind]
    return -(1 << (bits - 1)), (1 << (bits - 1)) - 1


def is_absent(value: Any) -> bool:
    """None, the empty string and pandas' NaT all mean "no value"."""
    if value is None or value is pd.NaT:
        return True
    return isinstance(value, str) and value == ""


def source_tag(value: Any) -> SourceTag:
    """Classify a runtime value for rule lookup."""
    if value is pd.NaT:
        return SourceTag.OTHER
    # Enum first: str- and int-backed members are also str/int instances
    if isinstance(value, Enum):
        return SourceTag.ENUM
    if isinstance(value, (bool, np.bool_)):
        return SourceTag.BOOL
    if isinstance(value, pd.Timestamp):
        return SourceTag.CALENDAR
    if isinstance(value, datetime):
        if value.tzinfo is not None and value.utcoffset() is not None:
            return SourceTag.INSTANT
        return SourceTag.DATETIME
    if isinstance(value, date):
        return SourceTag.DATE
    if isinstance(value, time):
        return SourceTag.TIME
    if isinstance(value, str):
        return SourceTag.STRING
    if isinstance(value, Decimal):
        return SourceTag.DECIMAL
    if isinstance(value, numbers.Integral):
        return SourceTag.INT
    if isinstance(value, numbers.Real):
        return SourceTag.FLOAT
    return SourceTag.OTHER


def is_assignable(value: Any, kind: SemanticKind, enum_type: Optional[type] = None) -> bool:
    """True when ``value`` can be stored in a field of ``kind`` as it is."""
    tag = source_tag(value)

    if kind is SemanticKind.BOOL:
        return isinstance(value, bool)
    if kind is SemanticKind.CHAR:
        return tag is SourceTag.STRING and len(value) == 1
    if kind in INTEGER_KINDS:
        if tag is not SourceTag.INT or not isinstance(value, int):
            return False
        low, high = int_range(kind)
        return low <= value <= high
    if kind is SemanticKind.BIG_INTEGER:
        return tag is SourceTag.INT and isinstance(value, int)
    if kind is SemanticKind.FLOAT64:
        return isinstance(value, float)
    if kind is SemanticKind.FLOAT32:
        return isinstance(value, float) and float(np.float32(value)) == value
    if kind is SemanticKind.BIG_DECIMAL:
        return tag is SourceTag.DECIMAL
    if kind is SemanticKind.STRING:
        return tag is SourceTag.STRING
    if kind is SemanticKind.DATE_ONLY:
        return tag is SourceTag.DATE
    if kind is SemanticKind.TIME_ONLY:
        return tag is SourceTag.TIME
    if kind is SemanticKind.DATE_TIME:
        return tag is SourceTag.DATETIME
    if kind is SemanticKind.INSTANT:
        return tag is SourceTag.INSTANT
    if kind is SemanticKind.CALENDAR_LIKE:
        return tag is SourceTag.CALENDAR
    if kind is SemanticKind.ENUM:
        return enum_type is not None and isinstance(value, enum_type)
    return False


def _is_optional_union(origin: Any) -> bool:
    return origin is Union or origin is types.UnionType


def resolve_annotation(annotation: Any) -> Tuple[Optional[SemanticKind], Any, Optional[type]]:
    """
    Resolve a type annotation to ``(kind, python_type, enum_type)``.

    ``kind`` is None for opaque annotations (lists, nested records, unions of
    several types...), which the mapper copies only when the value already
    has the annotated type.
    """
    marker: Optional[SemanticKind] = None

    while True:
        origin = get_origin(annotation)
        if origin is Annotated:
            base, *metadata = get_args(annotation)
            for item in metadata:
                if isinstance(item, SemanticKind):
                    marker = item
            annotation = base
            continue
        if _is_optional_union(origin):
            members = [arg for arg in get_args(annotation) if arg is not type(None)]
            if len(members) != 1:
                return None, annotation, None
            annotation = members[0]
            continue
        break

    if marker is not None:
        enum_type = annotation if marker is SemanticKind.ENUM else None
        return marker, annotation, enum_type

    if isinstance(annotation, type):
        if issubclass(annotation, Enum):
            return SemanticKind.ENUM, annotation, annotation
        for python_type, kind in _PLAIN_KINDS:
            if issubclass(annotation, python_type):
                return kind, annotation, None

    return None, annotation, None
