from __future__ import annotations

from typing import Iterable, Mapping


class DataQualityError(Exception):
    """Base class for every error raised by the rule framework."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidRuleName(DataQualityError):
    def __init__(self, name: object, reason: str) -> None:
        super().__init__(f"invalid rule name {name!r}: {reason}")
        self.name = name
        self.reason = reason


class InconsistentColumnLength(DataQualityError):
    def __init__(self, lengths: Mapping[str, int]) -> None:
        summary = ", ".join(f"{name}={length}" for name, length in lengths.items())
        super().__init__(f"columns differ in length: {summary}")
        self.lengths = dict(lengths)


class UnknownColumn(DataQualityError):
    def __init__(self, name: str, available: Iterable[str] = ()) -> None:
        available = tuple(available)
        super().__init__(f"unknown column {name!r} (available: {', '.join(available) or 'none'})")
        self.name = name
        self.available = available


class UnknownGroupColumn(UnknownColumn):
    pass


class UnresolvedIdentifier(DataQualityError):
    def __init__(self, name: str) -> None:
        super().__init__(f"identifier {name!r} is neither a dataset column nor defined in the rule scope")
        self.name = name


class MalformedExpression(DataQualityError):
    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"cannot evaluate {source!r}: {reason}")
        self.source = source
        self.reason = reason


class EvaluationTimeout(DataQualityError):
    def __init__(self, rule: str, seconds: float) -> None:
        super().__init__(f"rule {rule!r} did not finish within {seconds}s")
        self.rule = rule
        self.seconds = seconds


class IllegalStateTransition(DataQualityError):
    def __init__(self, rule: str, current: object, target: object) -> None:
        super().__init__(f"rule {rule!r} cannot move from {current} to {target}")


class AggregationError(DataQualityError):
    pass


class ConfigurationError(DataQualityError):
    pass
