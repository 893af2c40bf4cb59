from __future__ import annotations

from datetime import datetime, timezone

from loguru import logger

from data_quality_rules.domain.models.dataset import Dataset
from data_quality_rules.domain.models.measurement import MeasurementReport
from data_quality_rules.domain.models.rule import RuleSet
from data_quality_rules.infrastructure.repositories.measurement_log import MeasurementLog
from data_quality_rules.infrastructure.rules.aggregator import measure
from data_quality_rules.infrastructure.rules.engine import RuleEvaluator
from data_quality_rules.infrastructure.rules.reducers import ReducerSpec


class QualityRunner:
    def __init__(self, evaluator: RuleEvaluator | None = None, log: MeasurementLog | None = None) -> None:
        self._evaluator = evaluator or RuleEvaluator()
        self._log = log

    def run(
        self,
        rule_set: RuleSet,
        dataset: Dataset,
        group_key: str | None = None,
        reducer: ReducerSpec = None,
    ) -> MeasurementReport:
        logger.info("running {} rules for {}", len(rule_set), dataset.identifier or "dataset")
        generated_at = datetime.now(timezone.utc)

        evaluation = self._evaluator.evaluate(rule_set, dataset)
        aggregation = measure(evaluation, group_key, reducer, timestamp=generated_at)
        measurements = aggregation.measurements

        if self._log is not None:
            self._log.append(measurements)

        report = MeasurementReport(
            data_identifier=dataset.identifier,
            generated_at=generated_at,
            measurements=tuple(measurements),
            failures=(*evaluation.failures.values(), *aggregation.failures.values()),
            evaluation=evaluation,
        )
        if not report.passed:
            logger.warning("{} rules failed: {}", len(report.failures), ", ".join(report.failed_rules))
        return report
