"""
Structural copying between typed records and key/value maps.

Every operation is built from one primitive: for each assignable field of
the destination, fetch the source value by exact name, coerce it to the
field's kind and assign it unless the result is None. Each public call runs
inside a single conversion scope, shared by every element of a batch and
released when the call returns or fails.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from dtomap.core.exceptions import ConversionFailure, DtoMapError, InvalidArgumentError
from dtomap.core.logging import get_logger
from dtomap.mapping.coercion import CoercionEngine, default_engine
from dtomap.mapping.context import ConversionContext, conversion_scope
from dtomap.mapping.kinds import SemanticKind
from dtomap.mapping.reflection import FieldReflector, default_reflector

logger = get_logger(__name__)

R = TypeVar("R")
Source = Union[Any, Mapping]


class ObjectMapper:
    """
    Copies values between records and maps.

    Destinations are mutated in place; fields the source does not supply,
    or supplies as None, keep whatever value they already had.
    """

    def __init__(
        self,
        reflector: Optional[FieldReflector] = None,
        engine: Optional[CoercionEngine] = None,
    ):
        self.reflector = reflector or default_reflector
        self.engine = engine or default_engine

    # Element primitives; callers own the conversion scope

    def _read(self, source: Any) -> Dict[str, Any]:
        return {
            field.name: getattr(source, field.name, None)
            for field in self.reflector.readable_fields_of(type(source))
        }

    def _assign(self, values: Mapping, destination: R, context: ConversionContext) -> R:
        for field in self.reflector.fields_of(type(destination)):
            if field.name not in values:
                continue
            value = self.engine.coerce_field(values[field.name], field, context)
            if value is None:
                continue
            try:
                setattr(destination, field.name, value)
            except ValidationError as e:
                raise ConversionFailure(value, field.kind, f"rejected by {field.name!r}: {e}") from e
        return destination

    def _record_to_record(self, source: Any, destination: R, context: ConversionContext) -> R:
        if destination is None:
            raise InvalidArgumentError("Destination record is required")
        if source is None:
            return destination
        if isinstance(source, Mapping):
            raise InvalidArgumentError(
                "Source is a mapping; use map_map_to_record", details={"source_type": type(source).__name__}
            )
        return self._assign(self._read(source), destination, context)

    def _map_to_record(self, source: Optional[Mapping], destination: R, context: ConversionContext) -> R:
        if destination is None:
            raise InvalidArgumentError("Destination record is required")
        if source is None:
            return destination
        if not isinstance(source, Mapping):
            raise InvalidArgumentError(
                "Source must be a mapping", details={"source_type": type(source).__name__}
            )
        return self._assign(source, destination, context)

    def _to_new_record(self, source: Source, target_type: Type[R], context: ConversionContext) -> R:
        destination = self.new_instance(target_type)
        if isinstance(source, Mapping):
            return self._map_to_record(source, destination, context)
        return self._record_to_record(source, destination, context)

    def _record_to_map(self, source: Any, stringify: bool, context: ConversionContext) -> Optional[Dict[str, Any]]:
        if source is None:
            return None
        if isinstance(source, Mapping):
            raise InvalidArgumentError("Source must be a record, not a mapping")

        result: Dict[str, Any] = {}
        for name, value in self._read(source).items():
            if stringify:
                value = self.engine.convert(value, SemanticKind.STRING, context)
            if value is not None:
                result[name] = value
        return result

    def _each(self, operation: str, sources: Optional[Iterable], fn: Callable[[Any], Any]) -> List[Any]:
        if sources is None:
            raise InvalidArgumentError("A list of sources is required")

        results = []
        for index, source in enumerate(sources):
            try:
                results.append(fn(source))
            except DtoMapError as e:
                logger.warning("Batch mapping aborted", operation=operation, index=index, error=e.message)
                raise
        logger.debug("Batch mapped", operation=operation, count=len(results))
        return results

    @staticmethod
    def check_target_type(target_type: Any) -> None:
        if target_type is None:
            raise InvalidArgumentError("Target type is required")
        if not isinstance(target_type, type):
            raise InvalidArgumentError(f"Target type must be a class, got {target_type!r}")

    @classmethod
    def new_instance(cls, target_type: Type[R]) -> R:
        """Default-construct a destination record."""
        cls.check_target_type(target_type)
        if issubclass(target_type, BaseModel):
            return target_type.model_construct()
        try:
            return target_type()
        except TypeError as e:
            raise InvalidArgumentError(
                f"{target_type.__qualname__} cannot be constructed without arguments"
            ) from e

    # Public operations; each opens one conversion scope

    def map_record_to_record(self, source: Any, destination: R, context: Optional[ConversionContext] = None) -> R:
        """Copy the fields of one record onto another."""
        with conversion_scope(context) as active:
            return self._record_to_record(source, destination, active)

    def map_map_to_record(
        self, source: Optional[Mapping], destination: R, context: Optional[ConversionContext] = None
    ) -> R:
        """Copy entries whose key equals a destination field name."""
        with conversion_scope(context) as active:
            return self._map_to_record(source, destination, active)

    def map(self, source: Source, destination: R, context: Optional[ConversionContext] = None) -> R:
        """Copy from a record or a mapping, whichever ``source`` is."""
        with conversion_scope(context) as active:
            if isinstance(source, Mapping):
                return self._map_to_record(source, destination, active)
            return self._record_to_record(source, destination, active)

    def map_to_new_record(
        self, source: Source, target_type: Type[R], context: Optional[ConversionContext] = None
    ) -> R:
        """Build a fresh ``target_type`` and copy ``source`` onto it."""
        with conversion_scope(context) as active:
            return self._to_new_record(source, target_type, active)

    def map_records_to_new_records(
        self, sources: Iterable[Source], target_type: Type[R], context: Optional[ConversionContext] = None
    ) -> List[R]:
        """Build one ``target_type`` per source, sharing one conversion scope."""
        with conversion_scope(context) as active:
            self.check_target_type(target_type)
            return self._each(
                "records_to_new_records",
                sources,
                lambda source: self._to_new_record(source, target_type, active),
            )

    def map_record_to_map(
        self, source: Any, stringify: bool = False, context: Optional[ConversionContext] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Turn a record into a dict keyed by field name.

        Args:
            source: Record to read; None gives None
            stringify: Convert every value to text before inserting it
            context: Explicit conversion context for this call

        Returns:
            Dict of the record's non-None values
        """
        with conversion_scope(context) as active:
            return self._record_to_map(source, stringify, active)

    def map_records_to_maps(
        self, sources: Iterable[Any], stringify: bool = False, context: Optional[ConversionContext] = None
    ) -> List[Optional[Dict[str, Any]]]:
        """Turn each record into a dict, sharing one conversion scope."""
        with conversion_scope(context) as active:
            return self._each(
                "records_to_maps",
                sources,
                lambda source: self._record_to_map(source, stringify, active),
            )


default_mapper = ObjectMapper()


def map_record_to_record(source: Any, destination: R, context: Optional[ConversionContext] = None) -> R:
    return default_mapper.map_record_to_record(source, destination, context)


def map_map_to_record(source: Optional[Mapping], destination: R, context: Optional[ConversionContext] = None) -> R:
    return default_mapper.map_map_to_record(source, destination, context)


def map_object(source: Source, destination: R, context: Optional[ConversionContext] = None) -> R:
    return default_mapper.map(source, destination, context)


def map_to_new_record(source: Source, target_type: Type[R], context: Optional[ConversionContext] = None) -> R:
    return default_mapper.map_to_new_record(source, target_type, context)


def map_records_to_new_records(
    sources: Iterable[Source], target_type: Type[R], context: Optional[ConversionContext] = None
) -> List[R]:
    return default_mapper.map_records_to_new_records(sources, target_type, context)


def map_record_to_map(
    source: Any, stringify: bool = False, context: Optional[ConversionContext] = None
) -> Optional[Dict[str, Any]]:
    return default_mapper.map_record_to_map(source, stringify, context)


def map_records_to_maps(
    sources: Iterable[Any], stringify: bool = False, context: Optional[ConversionContext] = None
) -> List[Optional[Dict[str, Any]]]:
    return default_mapper.map_records_to_maps(sources, stringify, context)
