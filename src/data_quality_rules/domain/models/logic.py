"""
Tri-state (Kleene) logic for values that may be unknown.

Missing inputs become the ``UNKNOWN`` marker when a dataset is loaded and then
travel through every row-level operation. The marker has no truth value, so a
stray ``if value:`` raises instead of quietly treating it as ``False``.
"""
from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd


class _Unknown:
    _instance: "_Unknown | None" = None

    def __new__(cls) -> "_Unknown":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __bool__(self) -> bool:
        raise TypeError("the truth value of UNKNOWN is undefined")

    def __reduce__(self):
        return (_Unknown, ())


UNKNOWN = _Unknown()


def is_unknown(value: Any) -> bool:
    return value is UNKNOWN


def is_missing(value: Any) -> bool:
    if value is None or value is UNKNOWN:
        return True
    if not pd.api.types.is_scalar(value):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def normalize(value: Any) -> Any:
    """Map missing spellings to ``UNKNOWN`` and numpy/pandas scalars to Python ones."""
    if is_missing(value):
        return UNKNOWN
    if isinstance(value, np.datetime64):
        value = pd.Timestamp(value)
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, np.generic):
        return value.item()
    return value


def and_(left: Any, right: Any) -> Any:
    if left is not UNKNOWN and not left:
        return False
    if right is not UNKNOWN and not right:
        return False
    if left is UNKNOWN or right is UNKNOWN:
        return UNKNOWN
    return True


def or_(left: Any, right: Any) -> Any:
    if left is not UNKNOWN and left:
        return True
    if right is not UNKNOWN and right:
        return True
    if left is UNKNOWN or right is UNKNOWN:
        return UNKNOWN
    return False


def not_(value: Any) -> Any:
    if value is UNKNOWN:
        return UNKNOWN
    return not value
