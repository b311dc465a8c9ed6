"""
Key-name normalization.

Rewrites database-style keys (``user_name``, ``USER_NAME``) to the
lower-camel-case names used by record fields (``userName``).
"""

from __future__ import annotations

import re
from collections.abc import MutableMapping
from typing import Any, Dict, List, TypeVar, Union, overload

_HUMP = re.compile(r"_([a-z])")

M = TypeVar("M", bound=MutableMapping)


def to_camel_case(key: str) -> str:
    """
    Turn ``_x`` into ``X`` for every lowercase ``x`` and lower the first letter.

    Only an underscore followed by a lowercase ASCII letter marks a hump;
    other punctuation is kept as it is. Idempotent.
    """
    camel = _HUMP.sub(lambda match: match.group(1).upper(), key)
    if camel and camel[0].isupper():
        camel = camel[0].lower() + camel[1:]
    return camel


def normalize_key(key: str) -> str:
    """Normalize one key; all-caps keys are lowered before camel-casing."""
    if key == key.upper():
        key = key.lower()
    return to_camel_case(key)


def _normalize_mapping(mapping: M) -> M:
    renamed: Dict[str, Any] = {}
    for key in list(mapping):
        if not isinstance(key, str):
            continue
        normalized = normalize_key(key)
        if normalized != key:
            renamed[normalized] = mapping.pop(key)
    # Rewritten entries land last, so they win over existing keys
    mapping.update(renamed)
    return mapping


@overload
def normalize_keys(data: M) -> M: ...


@overload
def normalize_keys(data: List[M]) -> List[M]: ...


def normalize_keys(data: Union[M, List[M]]) -> Union[M, List[M]]:
    """
    Normalize the keys of a mapping, or of every mapping in a list, in place.

    Keys that are already normalized are left untouched. When a rewritten
    key collides with an existing one, the rewritten entry's value is kept.
    """
    if isinstance(data, MutableMapping):
        return _normalize_mapping(data)
    for mapping in data:
        _normalize_mapping(mapping)
    return data
