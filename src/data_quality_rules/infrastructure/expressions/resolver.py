from __future__ import annotations

from typing import Any, Mapping

from data_quality_rules.domain.errors import UnresolvedIdentifier
from data_quality_rules.domain.models.dataset import Dataset
from data_quality_rules.domain.models.logic import normalize
from data_quality_rules.infrastructure.expressions.vector import Vector


class NameResolver:
    """Two-tier lookup: dataset columns shadow names from the rule's scope."""

    def __init__(self, dataset: Dataset, scope: Mapping[str, Any]) -> None:
        self._dataset = dataset
        self._scope = scope

    def resolve(self, name: str) -> Any:
        if self._dataset.has_column(name):
            return Vector(self._dataset.column(name))
        if name in self._scope:
            value = self._scope[name]
            if isinstance(value, (list, tuple, set, frozenset)):
                return tuple(normalize(item) for item in value)
            return normalize(value)
        raise UnresolvedIdentifier(name)

    def function(self, name: str) -> Any:
        value = self._scope.get(name)
        return value if callable(value) else None
