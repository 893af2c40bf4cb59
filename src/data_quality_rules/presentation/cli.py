from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd
import typer

from data_quality_rules.application.services.runner import QualityRunner
from data_quality_rules.domain.models.dataset import Dataset
from data_quality_rules.infrastructure.config import RuleConfig
from data_quality_rules.infrastructure.logging_config import configure_logging
from data_quality_rules.infrastructure.repositories.measurement_log import MeasurementLog
from data_quality_rules.infrastructure.serializers.measurement_serializer import (
    MeasurementSerializer,
)

app = typer.Typer()


def _load_dataset(data: Path, identifier: Optional[str]) -> Dataset:
    frame = pd.read_csv(data)
    return Dataset.from_frame(frame, identifier=identifier or data.stem)


@app.command()
def run(
    rules: Path = typer.Option(..., exists=True, readable=True, help="Path to rules.toml"),
    data: Path = typer.Option(..., exists=True, readable=True, help="CSV file to measure"),
    group_key: Optional[str] = typer.Option(None, help="Column to group measurements by"),
    reducer: Optional[str] = typer.Option(None, help="count, sum or mean"),
    output: Optional[Path] = typer.Option(None, help="Write measurements JSON here instead of stdout"),
    log: Optional[Path] = typer.Option(None, help="Append measurements to this JSON-lines log"),
    strict: bool = typer.Option(False, help="Exit with status 1 when any rule failed"),
) -> None:
    cfg = RuleConfig.load(rules)
    configure_logging(cfg.logging.level)

    dataset = _load_dataset(data, cfg.aggregation.data_identifier)
    runner = QualityRunner(
        evaluator=cfg.evaluator(),
        log=MeasurementLog(log) if log else None,
    )
    report = runner.run(
        cfg.rule_set(),
        dataset,
        group_key=group_key or cfg.aggregation.group_key,
        reducer=reducer or cfg.aggregation.reducer,
    )

    payload = MeasurementSerializer.to_json(report.measurements, indent=2)
    if output:
        output.write_text(payload, encoding="utf-8")
        typer.echo(f"✓ Wrote {len(report.measurements)} measurements to {output}")
    else:
        typer.echo(payload)

    for failure in report.failures:
        typer.echo(f"✗ {failure.rule}: {failure.kind}: {failure.message}", err=True)

    if strict and not report.passed:
        raise typer.Exit(code=1)


@app.command()
def detail(
    rules: Path = typer.Option(..., exists=True, readable=True, help="Path to rules.toml"),
    data: Path = typer.Option(..., exists=True, readable=True, help="CSV file to evaluate"),
    output: Optional[Path] = typer.Option(None, help="Write row-level results as CSV here"),
) -> None:
    cfg = RuleConfig.load(rules)
    configure_logging(cfg.logging.level)

    dataset = _load_dataset(data, cfg.aggregation.data_identifier)
    evaluation = cfg.evaluator().evaluate(cfg.rule_set(), dataset)
    frame = evaluation.to_frame()

    if output:
        frame.to_csv(output, index=False)
        typer.echo(f"✓ Wrote {len(frame)} rows to {output}")
    else:
        typer.echo(frame.to_csv(index=False), nl=False)

    for name, failure in evaluation.failures.items():
        typer.echo(f"✗ {name}: {failure.kind}: {failure.message}", err=True)


if __name__ == "__main__":
    app()
