from __future__ import annotations

from typing import Any, Iterable, Mapping

import pandas as pd

from data_quality_rules.domain.errors import InconsistentColumnLength, UnknownColumn
from data_quality_rules.domain.models.logic import UNKNOWN, normalize


class Dataset:
    """
    Read-only table of equally long, named columns.

    Values are copied into tuples on load, missing values become ``UNKNOWN``.
    """

    __slots__ = ("_columns", "_row_count", "identifier")

    def __init__(
        self,
        columns: Mapping[str, tuple[Any, ...]],
        row_count: int,
        identifier: str | None = None,
    ) -> None:
        self._columns = dict(columns)
        self._row_count = row_count
        self.identifier = identifier

    @classmethod
    def load(
        cls,
        columns: Mapping[str, Iterable[Any]],
        identifier: str | None = None,
    ) -> "Dataset":
        loaded: dict[str, tuple[Any, ...]] = {}
        for name, values in columns.items():
            if not isinstance(name, str) or not name:
                raise ValueError(f"column names must be non-empty strings, got {name!r}")
            if isinstance(values, (str, bytes)):
                raise ValueError(f"column {name!r} must be a sequence of values, not a string")
            loaded[name] = tuple(normalize(value) for value in values)

        lengths = {name: len(values) for name, values in loaded.items()}
        if len(set(lengths.values())) > 1:
            raise InconsistentColumnLength(lengths)

        row_count = next(iter(lengths.values()), 0)
        return cls(loaded, row_count, identifier)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, identifier: str | None = None) -> "Dataset":
        if not frame.columns.is_unique:
            duplicated = frame.columns[frame.columns.duplicated()].tolist()
            raise ValueError(f"duplicate column labels: {duplicated}")
        return cls.load(
            {str(name): frame[name].tolist() for name in frame.columns},
            identifier=identifier,
        )

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(self._columns)

    def has_column(self, name: str) -> bool:
        return name in self._columns

    def column(self, name: str) -> tuple[Any, ...]:
        try:
            return self._columns[name]
        except KeyError:
            raise UnknownColumn(name, self._columns) from None

    def row_count(self) -> int:
        return self._row_count

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                name: [None if value is UNKNOWN else value for value in values]
                for name, values in self._columns.items()
            },
            index=pd.RangeIndex(self._row_count),
        )

    def __repr__(self) -> str:
        return (
            f"Dataset(identifier={self.identifier!r}, rows={self._row_count}, "
            f"columns={list(self._columns)})"
        )
