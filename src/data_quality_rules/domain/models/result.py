from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

import pandas as pd

from data_quality_rules.domain.errors import DataQualityError, IllegalStateTransition
from data_quality_rules.domain.models.dataset import Dataset
from data_quality_rules.domain.models.logic import UNKNOWN


class RuleState(str, Enum):
    BOUND = "bound"
    EVALUATING = "evaluating"
    EVALUATED = "evaluated"
    FAILED = "failed"


_TRANSITIONS: Mapping[RuleState, frozenset[RuleState]] = {
    RuleState.BOUND: frozenset({RuleState.EVALUATING}),
    RuleState.EVALUATING: frozenset({RuleState.EVALUATED, RuleState.FAILED}),
    RuleState.EVALUATED: frozenset(),
    RuleState.FAILED: frozenset(),
}


def advance(rule: str, current: RuleState, target: RuleState) -> RuleState:
    if target not in _TRANSITIONS[current]:
        raise IllegalStateTransition(rule, current.value, target.value)
    return target


class Dimension(str, Enum):
    ROW = "row"
    DATASET = "dataset"


class ValueKind(str, Enum):
    BOOLEAN = "boolean"
    NUMERIC = "numeric"
    OTHER = "other"


def infer_kind(values: tuple[Any, ...]) -> ValueKind:
    known = [value for value in values if value is not UNKNOWN]
    if all(isinstance(value, bool) for value in known):
        return ValueKind.BOOLEAN
    if all(isinstance(value, (bool, int, float)) for value in known):
        return ValueKind.NUMERIC
    return ValueKind.OTHER


@dataclass(frozen=True, slots=True)
class RuleColumn:
    rule: str
    values: tuple[Any, ...]
    dimension: Dimension
    kind: ValueKind

    @property
    def unknown_count(self) -> int:
        return sum(1 for value in self.values if value is UNKNOWN)


@dataclass(frozen=True, slots=True)
class RuleFailure:
    rule: str
    error: DataQualityError

    @property
    def kind(self) -> str:
        return self.error.kind

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass(frozen=True)
class EvaluationResult:
    """Outcome of one rule set against one dataset, in declaration order."""

    dataset: Dataset
    columns: Mapping[str, RuleColumn] = field(default_factory=dict)
    failures: Mapping[str, RuleFailure] = field(default_factory=dict)
    states: Mapping[str, RuleState] = field(default_factory=dict)

    @property
    def row_count(self) -> int:
        return self.dataset.row_count()

    @property
    def evaluated(self) -> list[str]:
        return list(self.columns)

    @property
    def failed(self) -> list[str]:
        return list(self.failures)

    def column(self, rule: str) -> RuleColumn:
        return self.columns[rule]

    def to_frame(self) -> pd.DataFrame:
        """Row-level detail, one column per row-level rule."""
        return pd.DataFrame(
            {
                name: [None if value is UNKNOWN else value for value in column.values]
                for name, column in self.columns.items()
                if column.dimension is Dimension.ROW
            },
            index=pd.RangeIndex(self.row_count),
        )
