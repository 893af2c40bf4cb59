from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger

from data_quality_rules.domain.errors import AggregationError, UnknownGroupColumn
from data_quality_rules.domain.models.logic import UNKNOWN
from data_quality_rules.domain.models.measurement import Measurement
from data_quality_rules.domain.models.result import (
    Dimension,
    EvaluationResult,
    RuleColumn,
    RuleFailure,
    ValueKind,
)
from data_quality_rules.infrastructure.rules.reducers import ReducerSpec, ResolvedReducer, resolve


@dataclass(frozen=True)
class Aggregation:
    measurements: list[Measurement] = field(default_factory=list)
    failures: dict[str, RuleFailure] = field(default_factory=dict)


def partition(keys: tuple[Any, ...]) -> list[tuple[Any, list[int]]]:
    """Row indices per distinct key, in order of first appearance.

    Keys are told apart by type as well as value, so ``True``, ``1`` and ``1.0``
    form separate groups.
    """
    groups: dict[tuple[type, Any], tuple[Any, list[int]]] = {}
    for index, key in enumerate(keys):
        groups.setdefault((type(key), key), (key, []))[1].append(index)
    return list(groups.values())


def _scalar(column: RuleColumn) -> tuple[int | float | None, int]:
    value = column.values[0]
    if value is UNKNOWN:
        return None, 1
    if isinstance(value, bool):
        return int(value), 0
    if isinstance(value, (int, float)):
        return value, 0
    raise AggregationError(f"rule {column.rule!r} produced non-numeric value {value!r}")


def _reduce(column: RuleColumn, reducer: ResolvedReducer, indices: list[int] | range) -> tuple[Any, int]:
    values = [column.values[i] for i in indices]
    known = tuple(value for value in values if value is not UNKNOWN)
    if reducer.numeric_only and column.kind is ValueKind.OTHER:
        raise AggregationError(f"cannot {reducer.name} non-numeric rule {column.rule!r}")
    value = reducer.reduce(known)
    if isinstance(value, bool):
        value = int(value)
    return value, len(values) - len(known)


def _measure_column(
    name: str,
    column: RuleColumn,
    groups: list[tuple[Any, list[int] | range]],
    reducer: ReducerSpec,
    identifier: str | None,
    timestamp: datetime | None,
) -> list[Measurement]:
    if column.dimension is Dimension.DATASET:
        value, unknown = _scalar(column)
        return [
            Measurement(
                measurement_item_key=f"{name}:value",
                rule_key=name,
                data_identifier=identifier,
                value=value,
                unknown_count=unknown,
                timestamp=timestamp,
            )
        ]

    resolved = resolve(reducer, column.kind)
    logger.debug("aggregating {} with {}", name, resolved.name)
    measurements = []
    for group_value, indices in groups:
        value, unknown = _reduce(column, resolved, indices)
        measurements.append(
            Measurement(
                measurement_item_key=f"{name}:{resolved.name}",
                rule_key=name,
                data_identifier=identifier,
                value=value,
                unknown_count=unknown,
                group_value=None if group_value is UNKNOWN else group_value,
                timestamp=timestamp,
            )
        )
    return measurements


def measure(
    result: EvaluationResult,
    group_key: str | None = None,
    reducer: ReducerSpec = None,
    *,
    timestamp: datetime | None = None,
    data_identifier: str | None = None,
) -> Aggregation:
    """Reduce every evaluated rule column to measurements.

    Row-level columns are reduced per partition of ``group_key`` (or over all
    rows), dataset-level columns pass through as a single measurement. A rule
    whose column cannot be reduced is recorded as a failure and the other rules
    are still measured.
    """
    dataset = result.dataset
    if group_key is not None and not dataset.has_column(group_key):
        raise UnknownGroupColumn(group_key, dataset.column_names)
    if isinstance(reducer, str):
        resolve(reducer, ValueKind.NUMERIC)

    identifier = data_identifier if data_identifier is not None else dataset.identifier
    if group_key is not None:
        groups = partition(dataset.column(group_key))
    else:
        groups = [(None, range(result.row_count))]

    aggregation = Aggregation()
    for name, column in result.columns.items():
        try:
            aggregation.measurements.extend(
                _measure_column(name, column, groups, reducer, identifier, timestamp)
            )
        except AggregationError as exc:
            aggregation.failures[name] = RuleFailure(name, exc)
            logger.warning("rule {} could not be aggregated: {}", name, exc)

    logger.info(
        "aggregated {} rules into {} measurements, {} failed",
        len(result.columns),
        len(aggregation.measurements),
        len(aggregation.failures),
    )
    return aggregation


def aggregate(
    result: EvaluationResult,
    group_key: str | None = None,
    reducer: ReducerSpec = None,
    *,
    timestamp: datetime | None = None,
    data_identifier: str | None = None,
) -> list[Measurement]:
    """Measurements only; see ``measure`` for the rules that could not be aggregated."""
    return measure(
        result, group_key, reducer, timestamp=timestamp, data_identifier=data_identifier
    ).measurements
