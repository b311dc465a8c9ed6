"""
Scoped conversion settings.

A ``ConversionContext`` carries the date pattern, decimal scale and date
leniency that the coercion engine uses. The active context lives in a
``ContextVar`` so it is private to the current thread or asyncio task; it
is created on first write and cleared by the outermost
``conversion_scope`` on every exit path.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterator, Optional, TypeVar

from dtomap.core.config import get_settings
from dtomap.core.exceptions import InvalidArgumentError

T = TypeVar("T")


@dataclass(frozen=True)
class ConversionContext:
    """Per-caller format overrides; None means "use the process default"."""

    date_pattern: Optional[str] = None
    decimal_scale: Optional[int] = None
    lenient: Optional[bool] = None

    def resolved_date_pattern(self) -> str:
        return self.date_pattern or get_settings().date_pattern

    def resolved_decimal_scale(self) -> Optional[int]:
        if self.decimal_scale is not None:
            return self.decimal_scale
        return get_settings().decimal_scale

    def resolved_lenient(self) -> bool:
        if self.lenient is not None:
            return self.lenient
        return get_settings().lenient_dates


_current: ContextVar[Optional[ConversionContext]] = ContextVar(
    "dtomap_conversion_context", default=None
)
_depth: ContextVar[int] = ContextVar("dtomap_scope_depth", default=0)


def _update(**changes: Any) -> ConversionContext:
    # Contexts are replaced, never mutated, so a copied asyncio context
    # cannot see later writes made by another task.
    context = replace(_current.get() or ConversionContext(), **changes)
    _current.set(context)
    return context


def set_date_pattern(pattern: str) -> None:
    """Override the date pattern for the current caller."""
    if not pattern:
        raise InvalidArgumentError("date pattern must be a non-empty string")
    _update(date_pattern=pattern)


def set_decimal_scale(scale: int) -> None:
    """Override the BigDecimal scale for the current caller."""
    if isinstance(scale, bool) or not isinstance(scale, int) or scale < 0:
        raise InvalidArgumentError(
            "decimal scale must be a non-negative integer", details={"scale": scale}
        )
    _update(decimal_scale=scale)


def set_lenient(lenient: bool) -> None:
    """Switch date parsing between strict and lenient for the current caller."""
    _update(lenient=bool(lenient))


def current_context() -> ConversionContext:
    """The caller's context, or an unstored default one."""
    return _current.get() or ConversionContext()


def consume_date_pattern() -> str:
    return current_context().resolved_date_pattern()


def consume_decimal_scale() -> Optional[int]:
    return current_context().resolved_decimal_scale()


def consume_lenient() -> bool:
    return current_context().resolved_lenient()


def reset_scope() -> None:
    """Forget every override set by the current caller."""
    _current.set(None)


@contextmanager
def conversion_scope(context: Optional[ConversionContext] = None) -> Iterator[ConversionContext]:
    """
    Run a block inside one conversion scope.

    If ``context`` is given it is installed for the block; otherwise whatever
    the caller primed with the ``set_*`` functions is used. Only the outermost
    scope clears the stored context, so batch operations can share one.
    """
    depth = _depth.get()
    depth_token = _depth.set(depth + 1)
    context_token = _current.set(context) if context is not None else None
    try:
        yield current_context()
    finally:
        if context_token is not None:
            _current.reset(context_token)
        _depth.reset(depth_token)
        if depth == 0:
            reset_scope()


def with_context(context: Optional[ConversionContext], fn: Callable[..., T], *args, **kwargs) -> T:
    """Call ``fn`` inside ``conversion_scope(context)``."""
    with conversion_scope(context):
        return fn(*args, **kwargs)


def in_scope() -> bool:
    """True while a conversion scope is open for the current caller."""
    return _depth.get() > 0
