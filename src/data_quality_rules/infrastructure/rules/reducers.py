from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Union

from data_quality_rules.domain.errors import AggregationError
from data_quality_rules.domain.models.result import ValueKind


class Reducer(str, Enum):
    COUNT = "count"
    SUM = "sum"
    MEAN = "mean"


CustomReducer = Callable[[tuple[Any, ...]], Any]
ReducerSpec = Union[Reducer, str, CustomReducer, None]


def _count(values: tuple[Any, ...]) -> int:
    return sum(1 for value in values if value)


def _sum(values: tuple[Any, ...]) -> int | float:
    return sum(values)


def _mean(values: tuple[Any, ...]) -> float | None:
    if not values:
        return None
    return sum(values) / len(values)


BUILTIN_REDUCERS: Mapping[Reducer, CustomReducer] = {
    Reducer.COUNT: _count,
    Reducer.SUM: _sum,
    Reducer.MEAN: _mean,
}

DEFAULTS: Mapping[ValueKind, Reducer] = {
    ValueKind.BOOLEAN: Reducer.COUNT,
    ValueKind.NUMERIC: Reducer.SUM,
}


def _count_known(values: tuple[Any, ...]) -> int:
    return len(values)


@dataclass(frozen=True, slots=True)
class ResolvedReducer:
    name: str
    reduce: CustomReducer
    numeric_only: bool = False


def resolve(spec: ReducerSpec, kind: ValueKind) -> ResolvedReducer:
    """Pick the reduction for one rule column.

    ``None`` selects the default for the column kind: boolean columns count the
    true values, numeric columns sum, anything else counts known values.
    """
    if spec is None:
        default = DEFAULTS.get(kind)
        if default is None:
            return ResolvedReducer("count", _count_known)
        spec = default

    if callable(spec) and not isinstance(spec, (str, Reducer)):
        return ResolvedReducer(getattr(spec, "__name__", "custom"), spec)

    try:
        reducer = Reducer(spec)
    except ValueError:
        raise AggregationError(
            f"unknown reducer {spec!r}, expected one of {[item.value for item in Reducer]} or a callable"
        ) from None

    return ResolvedReducer(
        reducer.value,
        BUILTIN_REDUCERS[reducer],
        numeric_only=reducer is not Reducer.COUNT,
    )
