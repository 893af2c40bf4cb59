from __future__ import annotations

import builtins
from collections import Counter
from typing import Any, Callable, Mapping

from data_quality_rules.domain.models.logic import UNKNOWN
from data_quality_rules.infrastructure.expressions.vector import (
    Vector,
    as_values,
    broadcast,
    strict,
)

Function = Callable[..., Any]


def _known(values: tuple[Any, ...], na_rm: bool) -> tuple[Any, ...] | None:
    """Known values, or ``None`` when an unknown must poison the aggregate."""
    if not na_rm and any(value is UNKNOWN for value in values):
        return None
    return tuple(value for value in values if value is not UNKNOWN)


def _aggregate(reduce: Callable[[tuple[Any, ...]], Any], empty: Any = UNKNOWN) -> Function:
    def aggregate(x: Any, na_rm: bool = False) -> Any:
        known = _known(as_values(x), na_rm)
        if known is None:
            return UNKNOWN
        if not known:
            return empty
        return reduce(known)

    aggregate.__name__ = getattr(reduce, "__name__", "aggregate")
    return aggregate


def _mean(values: tuple[Any, ...]) -> float:
    return builtins.sum(values) / len(values)


def count(x: Any) -> int:
    return builtins.sum(1 for value in as_values(x) if value is not UNKNOWN)


def length(x: Any) -> int:
    return len(as_values(x))


def is_unknown(x: Any) -> Any:
    return broadcast(lambda value: value is UNKNOWN, x)


def is_known(x: Any) -> Any:
    return broadcast(lambda value: value is not UNKNOWN, x)


def coalesce(x: Any, default: Any) -> Any:
    return broadcast(lambda value, fallback: fallback if value is UNKNOWN else value, x, default)


def if_else(condition: Any, when_true: Any, when_false: Any) -> Any:
    def pick(flag: Any, yes: Any, no: Any) -> Any:
        if flag is UNKNOWN:
            return UNKNOWN
        return yes if flag else no

    return broadcast(pick, condition, when_true, when_false)


def between(x: Any, lower: Any, upper: Any) -> Any:
    return broadcast(strict(lambda value, lo, hi: lo <= value <= hi), x, lower, upper)


def str_len(x: Any) -> Any:
    return broadcast(strict(lambda value: len(str(value))), x)


def is_unique(x: Any) -> Any:
    """Row-wise flag: the value occurs exactly once among the known values."""
    values = as_values(x)
    occurrences = Counter(value for value in values if value is not UNKNOWN)
    flags = tuple(UNKNOWN if value is UNKNOWN else occurrences[value] == 1 for value in values)
    return Vector(flags) if isinstance(x, Vector) else flags[0]


def absolute(x: Any) -> Any:
    return broadcast(strict(builtins.abs), x)


def rounded(x: Any, digits: int = 0) -> Any:
    return broadcast(strict(lambda value, places: builtins.round(value, places)), x, digits)


DEFAULT_FUNCTIONS: Mapping[str, Function] = {
    "sum": _aggregate(builtins.sum, empty=0),
    "mean": _aggregate(_mean),
    "min": _aggregate(builtins.min),
    "max": _aggregate(builtins.max),
    "any": _aggregate(builtins.any, empty=False),
    "all": _aggregate(builtins.all, empty=True),
    "count": count,
    "len": length,
    "abs": absolute,
    "round": rounded,
    "is_unknown": is_unknown,
    "is_known": is_known,
    "coalesce": coalesce,
    "if_else": if_else,
    "between": between,
    "str_len": str_len,
    "is_unique": is_unique,
}
