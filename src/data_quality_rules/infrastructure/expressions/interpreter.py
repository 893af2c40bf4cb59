"""
Row-wise interpreter for rule expressions.

Expressions are parsed with :mod:`ast` and walked node by node; nothing is
handed to ``eval``. Column references become :class:`Vector` values that
broadcast against scalars, ``UNKNOWN`` propagates through arithmetic and
comparisons, and ``and``/``or``/``not`` follow Kleene logic.
"""
from __future__ import annotations

import ast
import operator
from typing import Any, Callable, Mapping

from data_quality_rules.domain.errors import MalformedExpression
from data_quality_rules.domain.models.expression import Expression
from data_quality_rules.domain.models.logic import UNKNOWN, and_, not_, or_
from data_quality_rules.infrastructure.expressions.resolver import NameResolver
from data_quality_rules.infrastructure.expressions.vector import Vector, broadcast, strict

BINARY_OPERATORS: Mapping[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

COMPARISONS: Mapping[type, Callable[[Any, Any], Any]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}


def _member(value: Any, collection: tuple[Any, ...]) -> Any:
    if value is UNKNOWN:
        return UNKNOWN
    return value in collection


class ExpressionInterpreter(ast.NodeVisitor):
    def __init__(
        self,
        resolver: NameResolver,
        functions: Mapping[str, Callable[..., Any]],
        row_count: int,
    ) -> None:
        self._resolver = resolver
        self._functions = functions
        self._row_count = row_count
        self._source = ""

    def evaluate(self, expression: Expression) -> Any:
        self._source = expression.source
        tree = expression.parse()
        try:
            return self.visit(tree.body)
        except (TypeError, ValueError, ArithmeticError) as exc:
            raise MalformedExpression(self._source, str(exc)) from exc
        except (RecursionError, MemoryError) as exc:
            raise MalformedExpression(self._source, "expression is too deeply nested to evaluate") from exc

    def _malformed(self, reason: str) -> MalformedExpression:
        return MalformedExpression(self._source, reason)

    def generic_visit(self, node: ast.AST) -> Any:
        raise self._malformed(f"unsupported syntax {type(node).__name__}")

    def visit_Constant(self, node: ast.Constant) -> Any:
        if node.value is None:
            return UNKNOWN
        return node.value

    def visit_Name(self, node: ast.Name) -> Any:
        return self._resolver.resolve(node.id)

    def visit_List(self, node: ast.List) -> tuple[Any, ...]:
        return self._collection(node.elts)

    visit_Tuple = visit_List
    visit_Set = visit_List

    def _collection(self, elements: list[ast.expr]) -> tuple[Any, ...]:
        values = tuple(self.visit(element) for element in elements)
        if any(isinstance(value, (Vector, tuple)) for value in values):
            raise self._malformed("collection literals may only hold scalar values")
        return values

    def visit_BinOp(self, node: ast.BinOp) -> Any:
        op = BINARY_OPERATORS.get(type(node.op))
        if op is None:
            raise self._malformed(f"unsupported operator {type(node.op).__name__}")
        return self._rowwise(strict(op), self.visit(node.left), self.visit(node.right))

    def visit_UnaryOp(self, node: ast.UnaryOp) -> Any:
        operand = self.visit(node.operand)
        if isinstance(node.op, (ast.Not, ast.Invert)):
            return self._rowwise(not_, operand)
        if isinstance(node.op, ast.USub):
            return self._rowwise(strict(operator.neg), operand)
        return self._rowwise(strict(operator.pos), operand)

    def visit_BoolOp(self, node: ast.BoolOp) -> Any:
        combine = and_ if isinstance(node.op, ast.And) else or_
        result = self.visit(node.values[0])
        for value in node.values[1:]:
            result = self._rowwise(combine, result, self.visit(value))
        return result

    def visit_Compare(self, node: ast.Compare) -> Any:
        result: Any = True
        left = self.visit(node.left)
        for op, comparator in zip(node.ops, node.comparators):
            if isinstance(op, (ast.Is, ast.IsNot)):
                right = None
                step = self._unknown_test(left, comparator, negate=isinstance(op, ast.IsNot))
            else:
                right = self.visit(comparator)
                step = self._compare(op, left, right)
            result = self._rowwise(and_, result, step)
            left = right
        return result

    def _unknown_test(self, left: Any, comparator: ast.expr, negate: bool) -> Any:
        if not (isinstance(comparator, ast.Constant) and comparator.value is None):
            raise self._malformed("'is' comparisons are only supported against None")
        return self._rowwise(lambda value: (value is UNKNOWN) != negate, left)

    def _compare(self, op: ast.cmpop, left: Any, right: Any) -> Any:
        if isinstance(op, (ast.In, ast.NotIn)):
            if isinstance(right, Vector) or not isinstance(right, tuple):
                raise self._malformed("'in' needs a literal collection or a collection from the rule scope")
            test = lambda value: _member(value, right)  # noqa: E731
            if isinstance(op, ast.NotIn):
                return self._rowwise(lambda value: not_(test(value)), left)
            return self._rowwise(test, left)
        compare = COMPARISONS.get(type(op))
        if compare is None:
            raise self._malformed(f"unsupported comparison {type(op).__name__}")
        return self._rowwise(strict(compare), left, right)

    def visit_IfExp(self, node: ast.IfExp) -> Any:
        def pick(flag: Any, yes: Any, no: Any) -> Any:
            if flag is UNKNOWN:
                return UNKNOWN
            return yes if flag else no

        return self._rowwise(pick, self.visit(node.test), self.visit(node.body), self.visit(node.orelse))

    def visit_Call(self, node: ast.Call) -> Any:
        if not isinstance(node.func, ast.Name):
            raise self._malformed("only functions called by bare name are supported")
        name = node.func.id
        function = self._functions.get(name) or self._resolver.function(name)
        if function is None:
            raise self._malformed(f"function {name!r} is not available")
        if any(isinstance(arg, ast.Starred) for arg in node.args) or any(
            keyword.arg is None for keyword in node.keywords
        ):
            raise self._malformed("argument unpacking is not supported")

        args = [self.visit(arg) for arg in node.args]
        kwargs = {keyword.arg: self.visit(keyword.value) for keyword in node.keywords}
        return self._coerce(function(*args, **kwargs))

    def _coerce(self, value: Any) -> Any:
        if isinstance(value, Vector):
            return value
        if isinstance(value, list) and len(value) == self._row_count:
            return Vector(value)
        return value

    def _rowwise(self, fn: Callable[..., Any], *operands: Any) -> Any:
        for operand in operands:
            if isinstance(operand, Vector) and len(operand) != self._row_count:
                raise self._malformed(
                    f"row-level value has {len(operand)} entries, expected {self._row_count}"
                )
        return broadcast(fn, *operands)
