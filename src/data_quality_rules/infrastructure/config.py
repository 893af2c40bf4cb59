from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import tomli

from data_quality_rules.domain.errors import ConfigurationError
from data_quality_rules.domain.models.rule import RuleSet
from data_quality_rules.infrastructure.rules.engine import RuleEvaluator


@dataclass(slots=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(slots=True)
class EvaluationConfig:
    max_workers: int = 1
    timeout_seconds: float | None = None


@dataclass(slots=True)
class AggregationConfig:
    group_key: str | None = None
    reducer: str | None = None
    data_identifier: str | None = None


@dataclass(slots=True)
class RuleEntry:
    name: str
    expression: str
    description: str | None = None
    scope: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class RuleConfig:
    rules: tuple[RuleEntry, ...]
    scope: Dict[str, Any] = field(default_factory=dict)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    evaluation: EvaluationConfig = field(default_factory=EvaluationConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)

    @classmethod
    def load(cls, rules_path: Path) -> "RuleConfig":
        with Path(rules_path).open("rb") as f:
            try:
                raw = tomli.load(f)
            except tomli.TOMLDecodeError as exc:
                raise ConfigurationError(f"{rules_path}: {exc}") from exc
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "RuleConfig":
        try:
            logging_config = LoggingConfig(**raw.get("logging", {}))
            evaluation_config = EvaluationConfig(**raw.get("evaluation", {}))
            aggregation_config = AggregationConfig(**raw.get("aggregation", {}))
        except TypeError as exc:
            raise ConfigurationError(f"invalid configuration section: {exc}") from exc

        rules = []
        for index, entry in enumerate(raw.get("rules", [])):
            if "expression" not in entry:
                raise ConfigurationError(f"rule #{index} ({entry.get('name', '?')}) has no 'expression'")
            rules.append(
                RuleEntry(
                    name=entry.get("name", ""),
                    expression=entry["expression"],
                    description=entry.get("description"),
                    scope=dict(entry.get("scope", {})),
                )
            )

        return cls(
            rules=tuple(rules),
            scope=dict(raw.get("scope", {})),
            logging=logging_config,
            evaluation=evaluation_config,
            aggregation=aggregation_config,
        )

    def rule_set(self) -> RuleSet:
        rule_set = RuleSet()
        for entry in self.rules:
            rule_set.bind(
                entry.name,
                entry.expression,
                {**self.scope, **entry.scope},
                description=entry.description,
            )
        return rule_set

    def evaluator(self) -> RuleEvaluator:
        return RuleEvaluator(
            max_workers=self.evaluation.max_workers,
            timeout_seconds=self.evaluation.timeout_seconds,
        )
