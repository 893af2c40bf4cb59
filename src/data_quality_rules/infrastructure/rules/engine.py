from __future__ import annotations

import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Mapping

from loguru import logger

from data_quality_rules.domain.errors import DataQualityError, EvaluationTimeout, MalformedExpression
from data_quality_rules.domain.models.dataset import Dataset
from data_quality_rules.domain.models.result import (
    Dimension,
    EvaluationResult,
    RuleColumn,
    RuleFailure,
    RuleState,
    advance,
    infer_kind,
)
from data_quality_rules.domain.models.rule import Rule, RuleSet
from data_quality_rules.infrastructure.expressions.functions import DEFAULT_FUNCTIONS
from data_quality_rules.infrastructure.expressions.interpreter import ExpressionInterpreter
from data_quality_rules.infrastructure.expressions.resolver import NameResolver
from data_quality_rules.infrastructure.expressions.vector import Vector

Outcome = RuleColumn | RuleFailure

POLL_SECONDS = 0.01


def to_column(rule: Rule, value: Any, row_count: int) -> RuleColumn:
    if isinstance(value, Vector):
        if len(value) != row_count:
            raise MalformedExpression(
                rule.expression.source,
                f"produced {len(value)} values for {row_count} rows",
            )
        values = tuple(value)
        return RuleColumn(rule.name, values, Dimension.ROW, infer_kind(values))
    if isinstance(value, (tuple, list, set)):
        raise MalformedExpression(rule.expression.source, "produced a collection instead of a column or scalar")
    return RuleColumn(rule.name, (value,), Dimension.DATASET, infer_kind((value,)))


class RuleEvaluator:
    def __init__(
        self,
        functions: Mapping[str, Callable[..., Any]] | None = None,
        max_workers: int = 1,
        timeout_seconds: float | None = None,
    ) -> None:
        self._functions = {**DEFAULT_FUNCTIONS, **(functions or {})}
        self._max_workers = max(1, max_workers)
        self._timeout = timeout_seconds

    def evaluate_rule(self, rule: Rule, dataset: Dataset) -> RuleColumn:
        interpreter = ExpressionInterpreter(
            NameResolver(dataset, rule.scope),
            self._functions,
            dataset.row_count(),
        )
        return to_column(rule, interpreter.evaluate(rule.expression), dataset.row_count())

    def _attempt(self, rule: Rule, dataset: Dataset) -> Outcome:
        try:
            return self.evaluate_rule(rule, dataset)
        except DataQualityError as exc:
            return RuleFailure(rule.name, exc)

    def evaluate(self, rule_set: RuleSet, dataset: Dataset) -> EvaluationResult:
        rules = rule_set.freeze()
        logger.info(
            "evaluating {} rules against {} ({} rows)",
            len(rules),
            dataset.identifier or "dataset",
            dataset.row_count(),
        )
        states = {rule.name: RuleState.BOUND for rule in rules}

        if self._max_workers > 1 or self._timeout is not None:
            outcomes = self._evaluate_concurrently(rules, dataset, states)
        else:
            outcomes = {}
            for rule in rules:
                self._transition(states, rule.name, RuleState.EVALUATING)
                outcomes[rule.name] = self._attempt(rule, dataset)

        columns: dict[str, RuleColumn] = {}
        failures: dict[str, RuleFailure] = {}
        for rule in rules:
            outcome = outcomes[rule.name]
            if isinstance(outcome, RuleFailure):
                self._transition(states, rule.name, RuleState.FAILED)
                failures[rule.name] = outcome
                logger.warning("rule {} failed with {}: {}", rule.name, outcome.kind, outcome.message)
            else:
                self._transition(states, rule.name, RuleState.EVALUATED)
                columns[rule.name] = outcome

        logger.info("evaluation finished: {} evaluated, {} failed", len(columns), len(failures))
        return EvaluationResult(dataset=dataset, columns=columns, failures=failures, states=states)

    def _evaluate_concurrently(
        self,
        rules: tuple[Rule, ...],
        dataset: Dataset,
        states: dict[str, RuleState],
    ) -> dict[str, Outcome]:
        outcomes: dict[str, Outcome] = {}
        started: dict[str, float] = {}

        def attempt(rule: Rule) -> Outcome:
            started[rule.name] = time.monotonic()
            return self._attempt(rule, dataset)

        executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="dq-rule")
        try:
            pending: dict[Future, str] = {}
            for rule in rules:
                self._transition(states, rule.name, RuleState.EVALUATING)
                pending[executor.submit(attempt, rule)] = rule.name

            poll = None if self._timeout is None else min(self._timeout, POLL_SECONDS)
            while pending:
                done, _ = wait(pending, timeout=poll, return_when=FIRST_COMPLETED)
                for future in done:
                    outcomes[pending.pop(future)] = future.result()
                if self._timeout is not None:
                    self._expire(pending, started, outcomes)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return outcomes

    def _expire(self, pending: dict[Future, str], started: dict[str, float], outcomes: dict[str, Outcome]) -> None:
        """Fail rules that have been running longer than the timeout. Queued rules have no clock yet."""
        now = time.monotonic()
        for future, name in list(pending.items()):
            if future.done() or name not in started or now - started[name] < self._timeout:
                continue
            del pending[future]
            outcomes[name] = RuleFailure(name, EvaluationTimeout(name, self._timeout))
            logger.debug("rule {} exceeded {}s, leaving its worker to finish", name, self._timeout)

    @staticmethod
    def _transition(states: dict[str, RuleState], rule: str, target: RuleState) -> None:
        states[rule] = advance(rule, states[rule], target)
        logger.debug("rule {} -> {}", rule, target.value)


def evaluate(rule_set: RuleSet, dataset: Dataset) -> EvaluationResult:
    return RuleEvaluator().evaluate(rule_set, dataset)
