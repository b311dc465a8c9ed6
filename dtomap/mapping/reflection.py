"""
Record type introspection.

``FieldReflector`` describes the fields of a record type once and memoizes
the result per concrete type. Pydantic models, dataclasses and plain
annotated classes are supported; fields inherited from ancestors are
included, ancestors first.
"""

from __future__ import annotations

import dataclasses
import threading
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Final, Iterator, Optional, Tuple, get_args, get_origin, get_type_hints

from pydantic import BaseModel

from dtomap.core.exceptions import InvalidArgumentError
from dtomap.core.logging import get_logger
from dtomap.mapping.kinds import SemanticKind, resolve_annotation

logger = get_logger(__name__)


@dataclass(frozen=True)
class FieldDescriptor:
    """One field of a record type."""

    name: str
    kind: Optional[SemanticKind]
    is_final: bool = False
    python_type: Any = Any
    enum_type: Optional[type] = None


def _strip_final(annotation: Any) -> Tuple[bool, Any]:
    if annotation is Final:
        return True, Any
    if get_origin(annotation) is Final:
        args = get_args(annotation)
        return True, args[0] if args else Any
    return False, annotation


def _describe(name: str, annotation: Any, final: bool = False, metadata: Tuple[Any, ...] = ()) -> FieldDescriptor:
    final_annotation, annotation = _strip_final(annotation)
    kind, python_type, enum_type = resolve_annotation(annotation)
    for item in metadata:
        if isinstance(item, SemanticKind):
            kind = item
            enum_type = python_type if item is SemanticKind.ENUM else None
    return FieldDescriptor(
        name=name,
        kind=kind,
        is_final=final or final_annotation,
        python_type=python_type,
        enum_type=enum_type,
    )


def _type_hints(cls: type) -> Dict[str, Any]:
    try:
        return get_type_hints(cls, include_extras=True)
    except (NameError, TypeError):
        # Unresolvable forward references: fall back to raw annotations
        hints: Dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            hints.update(getattr(klass, "__annotations__", {}))
        return hints


def _pydantic_fields(cls: type) -> Iterator[FieldDescriptor]:
    frozen_model = bool(cls.model_config.get("frozen", False))
    for name, info in cls.model_fields.items():
        yield _describe(
            name,
            info.annotation,
            final=frozen_model or bool(info.frozen),
            metadata=tuple(info.metadata),
        )


def _dataclass_fields(cls: type) -> Iterator[FieldDescriptor]:
    hints = _type_hints(cls)
    frozen = cls.__dataclass_params__.frozen
    for field in dataclasses.fields(cls):
        yield _describe(
            field.name,
            hints.get(field.name, field.type),
            final=frozen or bool(field.metadata.get("final", False)),
        )


def _plain_fields(cls: type) -> Iterator[FieldDescriptor]:
    for name, annotation in _type_hints(cls).items():
        if name.startswith("__") or get_origin(annotation) is ClassVar or annotation is ClassVar:
            continue
        yield _describe(name, annotation)


class FieldReflector:
    """
    Read-through cache of record field descriptors.

    Lookups of cached types take no lock; the first lookup of a type
    populates the cache under a lock, re-checking so that each type is
    described once even when many threads ask at the same time.
    """

    def __init__(self):
        self._cache: Dict[type, Tuple[Tuple[FieldDescriptor, ...], Tuple[FieldDescriptor, ...]]] = {}
        self._lock = threading.Lock()

    def _entry(self, cls: type):
        if not isinstance(cls, type):
            raise InvalidArgumentError(f"Expected a record type, got {cls!r}")

        entry = self._cache.get(cls)
        if entry is not None:
            return entry

        with self._lock:
            entry = self._cache.get(cls)
            if entry is None:
                readable = tuple(self.describe(cls))
                assignable = tuple(field for field in readable if not field.is_final)
                entry = (readable, assignable)
                self._cache[cls] = entry
                logger.debug(
                    "Cached record fields",
                    record=cls.__qualname__,
                    readable=len(readable),
                    assignable=len(assignable),
                )
        return entry

    @staticmethod
    def describe(cls: type) -> Iterator[FieldDescriptor]:
        """Describe every field of ``cls`` without caching."""
        if issubclass(cls, BaseModel):
            return _pydantic_fields(cls)
        if dataclasses.is_dataclass(cls):
            return _dataclass_fields(cls)
        return _plain_fields(cls)

    def fields_of(self, cls: type) -> Tuple[FieldDescriptor, ...]:
        """Assignable fields of ``cls``; final fields are left out."""
        return self._entry(cls)[1]

    def readable_fields_of(self, cls: type) -> Tuple[FieldDescriptor, ...]:
        """Every field of ``cls``, final ones included."""
        return self._entry(cls)[0]

    def cached_types(self) -> Tuple[type, ...]:
        return tuple(self._cache)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


default_reflector = FieldReflector()


def fields_of(cls: type) -> Tuple[FieldDescriptor, ...]:
    return default_reflector.fields_of(cls)


def readable_fields_of(cls: type) -> Tuple[FieldDescriptor, ...]:
    return default_reflector.readable_fields_of(cls)
