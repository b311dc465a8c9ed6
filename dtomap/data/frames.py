"""
pandas integration for batch mapping.

Turns DataFrame rows into records (and back), treating NaN/NaT cells as
absent values and normalizing column names to camel case on the way in.
"""

from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

import pandas as pd

from dtomap.core.exceptions import InvalidArgumentError
from dtomap.core.logging import get_logger
from dtomap.mapping.context import ConversionContext
from dtomap.mapping.keys import normalize_keys
from dtomap.mapping.mapper import ObjectMapper, default_mapper

logger = get_logger(__name__)

R = TypeVar("R")


def frame_to_maps(frame: pd.DataFrame, normalize: bool = True) -> List[Dict[str, Any]]:
    """
    Convert DataFrame rows to dicts.

    Args:
        frame: Input DataFrame
        normalize: Rewrite column names with ``normalize_keys``

    Returns:
        One dict per row, with missing cells as None
    """
    if frame is None:
        raise InvalidArgumentError("A DataFrame is required")

    cleaned = frame.astype(object).where(frame.notna(), None)
    rows = cleaned.to_dict(orient="records")
    if normalize:
        normalize_keys(rows)
    return rows


def map_frame_to_records(
    frame: pd.DataFrame,
    target_type: Type[R],
    normalize: bool = True,
    context: Optional[ConversionContext] = None,
    mapper: ObjectMapper = default_mapper,
) -> List[R]:
    """Build one ``target_type`` record per DataFrame row."""
    rows = frame_to_maps(frame, normalize=normalize)
    logger.debug("Mapping DataFrame rows", rows=len(rows), target=getattr(target_type, "__name__", target_type))
    return mapper.map_records_to_new_records(rows, target_type, context)


def records_to_frame(
    records: Sequence[Any],
    stringify: bool = False,
    context: Optional[ConversionContext] = None,
    mapper: ObjectMapper = default_mapper,
) -> pd.DataFrame:
    """Build a DataFrame with one row per record and one column per field."""
    rows = mapper.map_records_to_maps(records, stringify, context)
    return pd.DataFrame.from_records([row or {} for row in rows])
