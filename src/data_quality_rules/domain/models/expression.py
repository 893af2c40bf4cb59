from __future__ import annotations

import ast
from dataclasses import dataclass
from typing import Union

from data_quality_rules.domain.errors import MalformedExpression

RawExpression = Union[str, ast.AST, "Expression"]


@dataclass(frozen=True, slots=True)
class Expression:
    """
    Host-language expression kept as source text until a dataset is available.
    Nothing is parsed at construction; syntax problems surface from ``parse``.
    """

    source: str

    @classmethod
    def of(cls, raw: RawExpression) -> "Expression":
        if isinstance(raw, Expression):
            return raw
        if isinstance(raw, str):
            return cls(raw.strip())
        if isinstance(raw, ast.Expression):
            return cls(ast.unparse(raw.body))
        if isinstance(raw, ast.AST):
            return cls(ast.unparse(raw))
        raise TypeError(f"expected expression source or ast node, got {type(raw).__name__}")

    def parse(self) -> ast.Expression:
        try:
            return ast.parse(self.source, mode="eval")
        except SyntaxError as exc:
            raise MalformedExpression(self.source, exc.msg or "invalid syntax") from exc
        except (RecursionError, MemoryError) as exc:
            raise MalformedExpression(self.source, "expression is too deeply nested to parse") from exc

    def free_names(self) -> frozenset[str]:
        tree = self.parse()
        called = {
            node.func.id
            for node in ast.walk(tree)
            if isinstance(node, ast.Call) and isinstance(node.func, ast.Name)
        }
        names = {
            node.id
            for node in ast.walk(tree)
            if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Load)
        }
        return frozenset(names - called)

    def __str__(self) -> str:
        return self.source
