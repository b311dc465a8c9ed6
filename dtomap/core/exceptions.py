"""
Custom exceptions for dtomap.

Provides a hierarchy of exceptions for mapping and coercion failures.
"""

from typing import Any, Dict, Optional


class DtoMapError(Exception):
    """Base exception for all dtomap errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(DtoMapError):
    """Raised when there are configuration issues."""

    pass


class InvalidArgumentError(DtoMapError):
    """A required input is missing or a structural precondition is violated."""

    pass


class ConversionFailure(DtoMapError):
    """A value cannot be interpreted as the requested semantic kind."""

    def __init__(self, value: Any, target_kind: Any, reason: Optional[str] = None, **kwargs):
        kind_name = getattr(target_kind, "name", target_kind)
        message = f"Cannot convert {value!r} to {kind_name}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, **kwargs)
        self.value = value
        self.target_kind = target_kind
        self.reason = reason
