"""
Single-value type coercion.

``CoercionEngine.convert`` turns one dynamically typed value into a
``SemanticKind``. Values already of the right kind pass through, absent
values stay absent, and everything else is dispatched through a table of
rules keyed by ``(SourceTag, SemanticKind)`` that is built once at import.
A pair with no rule yields None; malformed input raises ``ConversionFailure``.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, get_origin

import numpy as np

from dtomap.core.exceptions import ConversionFailure, InvalidArgumentError
from dtomap.core.logging import get_logger
from dtomap.mapping import dates
from dtomap.mapping.context import ConversionContext, current_context
from dtomap.mapping.kinds import (
    DATE_KINDS,
    FLOAT_KINDS,
    INTEGER_BITS,
    INTEGER_KINDS,
    NUMERIC_TAGS,
    SemanticKind,
    SourceTag,
    int_range,
    is_absent,
    is_assignable,
    source_tag,
)

logger = get_logger(__name__)

Rule = Callable[[Any, SemanticKind, ConversionContext, Optional[type]], Any]

_INT_TEXT = re.compile(r"[+-]?\d+")
_DECIMAL_TEXT = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def round_half_up(value: Decimal, scale: Optional[int]) -> Decimal:
    """Round to ``scale`` places with HALF_UP; None keeps full precision."""
    if scale is None:
        return value
    with localcontext() as decimal_context:
        decimal_context.prec = max(decimal_context.prec, max(value.adjusted(), 0) + scale + 2)
        return value.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_HALF_UP)


def plain_string(value: Decimal) -> str:
    """Decimal text without exponent notation."""
    return f"{value:f}"


def _parse_decimal(text: str, kind: SemanticKind) -> Decimal:
    if not _DECIMAL_TEXT.fullmatch(text):
        raise ConversionFailure(text, kind, "not a decimal numeral")
    try:
        return Decimal(text)
    except InvalidOperation as e:
        raise ConversionFailure(text, kind, "not a decimal numeral") from e


def _truncate(value: Any, kind: SemanticKind) -> int:
    try:
        return int(value)
    except (ValueError, OverflowError, InvalidOperation) as e:
        raise ConversionFailure(value, kind, "not a finite number") from e


def _wrap(number: int, kind: SemanticKind) -> int:
    bits = INTEGER_BITS[kind]
    number &= (1 << bits) - 1
    if number >= 1 << (bits - 1):
        number -= 1 << bits
    return number


# Rules


def _bool_from_bool(value, kind, context, enum_type):
    return bool(value)


def _bool_from_number(value, kind, context, enum_type):
    return value != 0


def _bool_from_text(value, kind, context, enum_type):
    return value.lower() == "true"


def _char_from_text(value, kind, context, enum_type):
    return value[0]


def _int_from_number(value, kind, context, enum_type):
    return _wrap(_truncate(value, kind), kind)


def _int_from_text(value, kind, context, enum_type):
    if not _INT_TEXT.fullmatch(value):
        raise ConversionFailure(value, kind, "not an integer numeral")
    number = int(value)
    low, high = int_range(kind)
    if not low <= number <= high:
        raise ConversionFailure(value, kind, f"out of range [{low}, {high}]")
    return number


def _epoch_millis(value, kind, context, enum_type):
    try:
        return dates.to_epoch_millis(value)
    except (OverflowError, ValueError) as e:
        raise ConversionFailure(value, kind, "outside the supported date range") from e


def _float_from_number(value, kind, context, enum_type):
    number = float(value)
    if kind is SemanticKind.FLOAT32:
        return float(np.float32(number))
    return number


def _float_from_text(value, kind, context, enum_type):
    if "_" in value:
        raise ConversionFailure(value, kind, "not a floating-point numeral")
    try:
        number = float(value)
    except ValueError as e:
        raise ConversionFailure(value, kind, "not a floating-point numeral") from e
    return _float_from_number(number, kind, context, enum_type)


def _big_integer_from_number(value, kind, context, enum_type):
    return _truncate(value, kind)


def _big_integer_from_text(value, kind, context, enum_type):
    return int(_parse_decimal(value, kind))


def _big_decimal(value, kind, context, enum_type):
    text = value if isinstance(value, str) else str(value)
    if not isinstance(value, str) and not _DECIMAL_TEXT.fullmatch(text):
        # nan / inf floats
        raise ConversionFailure(value, kind, "not a finite number")
    return round_half_up(_parse_decimal(text, kind), context.resolved_decimal_scale())


_DATE_BUILDERS = {
    SemanticKind.DATE_ONLY: dates.to_date,
    SemanticKind.TIME_ONLY: dates.to_time,
    SemanticKind.DATE_TIME: dates.to_datetime,
    SemanticKind.INSTANT: dates.to_instant,
    SemanticKind.CALENDAR_LIKE: dates.to_calendar,
}


def _date_from_date(value, kind, context, enum_type):
    try:
        local = dates.to_local_datetime(value)
        if local is None:
            return None
        return _DATE_BUILDERS[kind](local)
    except (OverflowError, ValueError) as e:
        raise ConversionFailure(value, kind, "outside the supported date range") from e


def _date_from_text(value, kind, context, enum_type):
    try:
        local = dates.parse(value, lenient=context.resolved_lenient())
        return _DATE_BUILDERS[kind](local)
    except (OverflowError, ValueError) as e:
        raise ConversionFailure(value, kind, str(e)) from e


def _text_from_moment(value, kind, context, enum_type):
    return dates.format(dates.to_local_datetime(value), context.resolved_date_pattern())


def _text_from_date(value, kind, context, enum_type):
    return dates.format(value, context.date_pattern or dates.DATE_FORMAT)


def _text_from_time(value, kind, context, enum_type):
    return dates.format(value, context.date_pattern or dates.TIME_FORMAT)


def _text_from_decimal(value, kind, context, enum_type):
    return plain_string(round_half_up(value, context.resolved_decimal_scale()))


def _text_from_enum(value, kind, context, enum_type):
    return value.name


def _text_from_any(value, kind, context, enum_type):
    return str(value)


def _enum_by_name(value, kind, context, enum_type):
    name = value.name if source_tag(value) is SourceTag.ENUM else value
    try:
        return enum_type[name]
    except KeyError as e:
        raise ConversionFailure(value, kind, f"no member named {name!r} in {enum_type.__name__}") from e


def _build_rules() -> Dict[Tuple[SourceTag, SemanticKind], Rule]:
    rules: Dict[Tuple[SourceTag, SemanticKind], Rule] = {}

    def register(tags: Iterable[SourceTag], kinds: Iterable[SemanticKind], rule: Rule) -> None:
        for tag in tags:
            for kind in kinds:
                if (tag, kind) in rules:
                    raise RuntimeError(f"Duplicate coercion rule for {tag.name} -> {kind.name}")
                rules[(tag, kind)] = rule

    text = [SourceTag.STRING]
    numbers = sorted(NUMERIC_TAGS)
    moments = [SourceTag.DATE, SourceTag.DATETIME, SourceTag.INSTANT, SourceTag.CALENDAR]

    register([SourceTag.BOOL], [SemanticKind.BOOL], _bool_from_bool)
    register(numbers, [SemanticKind.BOOL], _bool_from_number)
    register(text, [SemanticKind.BOOL], _bool_from_text)
    register(text, [SemanticKind.CHAR], _char_from_text)

    register(numbers, INTEGER_KINDS, _int_from_number)
    register(text, INTEGER_KINDS, _int_from_text)
    register(moments, [SemanticKind.INT64], _epoch_millis)

    register(numbers, FLOAT_KINDS, _float_from_number)
    register(text, FLOAT_KINDS, _float_from_text)

    register(numbers, [SemanticKind.BIG_INTEGER], _big_integer_from_number)
    register(text, [SemanticKind.BIG_INTEGER], _big_integer_from_text)
    register(numbers + text, [SemanticKind.BIG_DECIMAL], _big_decimal)

    register(moments + [SourceTag.INT], DATE_KINDS, _date_from_date)
    register(text, DATE_KINDS, _date_from_text)

    register([SourceTag.DATETIME, SourceTag.INSTANT, SourceTag.CALENDAR], [SemanticKind.STRING], _text_from_moment)
    register([SourceTag.DATE], [SemanticKind.STRING], _text_from_date)
    register([SourceTag.TIME], [SemanticKind.STRING], _text_from_time)
    register([SourceTag.DECIMAL], [SemanticKind.STRING], _text_from_decimal)
    register([SourceTag.ENUM], [SemanticKind.STRING], _text_from_enum)
    register(
        [SourceTag.BOOL, SourceTag.INT, SourceTag.FLOAT, SourceTag.STRING, SourceTag.OTHER],
        [SemanticKind.STRING],
        _text_from_any,
    )

    register([SourceTag.ENUM, SourceTag.STRING], [SemanticKind.ENUM], _enum_by_name)

    return rules


_RULES = _build_rules()


class CoercionEngine:
    """Converts values between semantic kinds using the registered rule table."""

    def __init__(self, rules: Optional[Dict[Tuple[SourceTag, SemanticKind], Rule]] = None):
        self._rules = rules if rules is not None else _RULES

    def rule_for(self, value: Any, kind: SemanticKind) -> Optional[Rule]:
        return self._rules.get((source_tag(value), kind))

    def supported_pairs(self) -> List[Tuple[SourceTag, SemanticKind]]:
        """Every (source tag, target kind) pair with a registered rule."""
        return sorted(self._rules, key=lambda pair: (pair[0].value, pair[1].value))

    def convert(
        self,
        value: Any,
        kind: SemanticKind,
        context: Optional[ConversionContext] = None,
        *,
        enum_type: Optional[type] = None,
    ) -> Any:
        """
        Convert ``value`` to ``kind``.

        Args:
            value: Any runtime value
            kind: Target semantic kind
            context: Format overrides; the caller's current context if omitted
            enum_type: Concrete Enum class, required when ``kind`` is ENUM

        Returns:
            The converted value, or None when the value is absent or no rule
            covers the pair

        Raises:
            ConversionFailure: If the value is malformed for the target kind
            InvalidArgumentError: If ``kind`` is not a SemanticKind or an ENUM
                target has no enum type
        """
        if not isinstance(kind, SemanticKind):
            raise InvalidArgumentError(f"Unknown target kind {kind!r}")
        if kind is SemanticKind.ENUM and enum_type is None:
            raise InvalidArgumentError("An enum type is required to convert to ENUM")

        if is_assignable(value, kind, enum_type):
            return value
        if is_absent(value):
            return None

        tag = source_tag(value)
        rule = self._rules.get((tag, kind))
        if rule is None:
            logger.debug("No coercion rule", source=tag.value, target=kind.value)
            return None
        return rule(value, kind, context or current_context(), enum_type)

    def coerce_field(self, value: Any, descriptor, context: Optional[ConversionContext] = None) -> Any:
        """Convert ``value`` for assignment to the field ``descriptor`` describes."""
        if descriptor.kind is not None:
            return self.convert(value, descriptor.kind, context, enum_type=descriptor.enum_type)

        # Opaque field: only values that already fit are copied
        if value is None or descriptor.python_type is Any:
            return value
        expected = get_origin(descriptor.python_type) or descriptor.python_type
        if isinstance(expected, type) and not isinstance(value, expected):
            return None
        return value


default_engine = CoercionEngine()


def convert(
    value: Any,
    kind: SemanticKind,
    context: Optional[ConversionContext] = None,
    *,
    enum_type: Optional[type] = None,
) -> Any:
    """Convert with the shared default engine."""
    return default_engine.convert(value, kind, context, enum_type=enum_type)
