"""
Record/map mapping and type coercion.
"""

from dtomap.mapping.coercion import CoercionEngine, convert
from dtomap.mapping.context import (
    ConversionContext,
    consume_date_pattern,
    consume_decimal_scale,
    consume_lenient,
    conversion_scope,
    current_context,
    reset_scope,
    set_date_pattern,
    set_decimal_scale,
    set_lenient,
    with_context,
)
from dtomap.mapping.keys import normalize_key, normalize_keys, to_camel_case
from dtomap.mapping.kinds import (
    BigInteger,
    Calendar,
    Char,
    Float32,
    Instant,
    Int8,
    Int16,
    Int32,
    Int64,
    SemanticKind,
)
from dtomap.mapping.mapper import (
    ObjectMapper,
    map_map_to_record,
    map_object,
    map_record_to_map,
    map_record_to_record,
    map_records_to_maps,
    map_records_to_new_records,
    map_to_new_record,
)
from dtomap.mapping.reflection import FieldDescriptor, FieldReflector, fields_of, readable_fields_of

__all__ = [
    "BigInteger",
    "Calendar",
    "Char",
    "CoercionEngine",
    "ConversionContext",
    "FieldDescriptor",
    "FieldReflector",
    "Float32",
    "Instant",
    "Int8",
    "Int16",
    "Int32",
    "Int64",
    "ObjectMapper",
    "SemanticKind",
    "consume_date_pattern",
    "consume_decimal_scale",
    "consume_lenient",
    "conversion_scope",
    "convert",
    "current_context",
    "fields_of",
    "map_map_to_record",
    "map_object",
    "map_record_to_map",
    "map_record_to_record",
    "map_records_to_maps",
    "map_records_to_new_records",
    "map_to_new_record",
    "normalize_key",
    "normalize_keys",
    "readable_fields_of",
    "reset_scope",
    "set_date_pattern",
    "set_decimal_scale",
    "set_lenient",
    "to_camel_case",
    "with_context",
]
