from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from data_quality_rules.domain.errors import InvalidRuleName
from data_quality_rules.domain.models.expression import Expression, RawExpression


def _frozen_scope(scope: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(scope or {}))


@dataclass(frozen=True)
class Rule:
    """
    Named measurement item: an unevaluated expression plus the scope it was
    defined in. The scope is a snapshot, later changes to the caller's
    mapping are not seen.
    """

    name: str
    expression: Expression
    scope: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    description: str | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Rule):
            return NotImplemented
        return (
            self.name == other.name
            and self.expression == other.expression
            and dict(self.scope) == dict(other.scope)
            and self.description == other.description
        )

    def __hash__(self) -> int:
        # scope values may be unhashable, equal rules still share name and expression
        return hash((self.name, self.expression))


def _check_name(name: object) -> str:
    if not isinstance(name, str):
        raise InvalidRuleName(name, "rule names must be strings")
    if not name.strip():
        raise InvalidRuleName(name, "rule names must not be empty")
    return name


def bind(
    name: str,
    raw_expression: RawExpression,
    defining_scope: Mapping[str, Any] | None = None,
    rule_set: "RuleSet | None" = None,
    description: str | None = None,
) -> Rule:
    """Capture ``raw_expression`` under ``name`` without evaluating it.

    When ``rule_set`` is given the rule is added to it and the name must be new.
    """
    name = _check_name(name)
    if rule_set is not None and name in rule_set:
        raise InvalidRuleName(name, "a rule with this name is already bound")

    rule = Rule(
        name=name,
        expression=Expression.of(raw_expression),
        scope=_frozen_scope(defining_scope),
        description=description,
    )
    if rule_set is not None:
        rule_set.add(rule)
    return rule


class RuleSet:
    """Ordered, name-unique collection of rules."""

    def __init__(self, rules: tuple[Rule, ...] | list[Rule] = ()) -> None:
        self._rules: dict[str, Rule] = {}
        for rule in rules:
            self.add(rule)

    def bind(
        self,
        name: str,
        raw_expression: RawExpression,
        defining_scope: Mapping[str, Any] | None = None,
        description: str | None = None,
    ) -> Rule:
        return bind(name, raw_expression, defining_scope, rule_set=self, description=description)

    def add(self, rule: Rule) -> None:
        name = _check_name(rule.name)
        if name in self._rules:
            raise InvalidRuleName(name, "a rule with this name is already bound")
        self._rules[name] = rule

    def freeze(self) -> tuple[Rule, ...]:
        return tuple(self._rules.values())

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._rules)

    def __getitem__(self, name: str) -> Rule:
        return self._rules[name]

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(tuple(self._rules.values()))

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"RuleSet({list(self._rules)})"
