from __future__ import annotations

from typing import Any, Callable

from data_quality_rules.domain.models.logic import UNKNOWN


class Vector(tuple):
    """Row-aligned values of one column or of a row-level sub-expression.

    Plain tuples are collection literals (``x in (1, 2)``) and never broadcast.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Vector({tuple.__repr__(self)})"


def row_length(*operands: Any) -> int | None:
    lengths = {len(operand) for operand in operands if isinstance(operand, Vector)}
    if not lengths:
        return None
    if len(lengths) > 1:
        raise ValueError(f"row-level operands differ in length: {sorted(lengths)}")
    return lengths.pop()


def broadcast(fn: Callable[..., Any], *operands: Any) -> Any:
    """Apply ``fn`` row by row when any operand is a ``Vector``, else once."""
    n = row_length(*operands)
    if n is None:
        return fn(*operands)
    return Vector(
        fn(*(operand[i] if isinstance(operand, Vector) else operand for operand in operands))
        for i in range(n)
    )


def strict(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap a scalar operation so that any ``UNKNOWN`` argument yields ``UNKNOWN``."""

    def apply(*args: Any) -> Any:
        if any(arg is UNKNOWN for arg in args):
            return UNKNOWN
        try:
            return fn(*args)
        except ZeroDivisionError:
            return UNKNOWN

    apply.__name__ = getattr(fn, "__name__", "apply")
    return apply


def as_values(operand: Any) -> tuple[Any, ...]:
    if isinstance(operand, (Vector, tuple, list)):
        return tuple(operand)
    return (operand,)
