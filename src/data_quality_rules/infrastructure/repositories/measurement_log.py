from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

import pandas as pd
from loguru import logger

from data_quality_rules.domain.models.measurement import Measurement
from data_quality_rules.infrastructure.serializers.measurement_serializer import (
    MeasurementSerializer,
)


class MeasurementLog:
    """Append-only JSON-lines log of measurements for time-series comparison."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def append(self, measurements: Iterable[Measurement]) -> int:
        records = MeasurementSerializer.to_records(measurements)
        if not records:
            logger.warning("No measurements to append to {}", self.path)
            return 0

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as handle:
            for record in records:
                handle.write(json.dumps(record, default=MeasurementSerializer.serialize))
                handle.write("\n")
        logger.info("Appended {} measurements to {}", len(records), self.path)
        return len(records)

    def read(self) -> list[Measurement]:
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as handle:
            return [Measurement.from_dict(json.loads(line)) for line in handle if line.strip()]

    def history(self, measurement_item_key: str, data_identifier: str | None = None) -> list[Measurement]:
        matches = [
            measurement
            for measurement in self.read()
            if measurement.measurement_item_key == measurement_item_key
            and (data_identifier is None or measurement.data_identifier == data_identifier)
        ]
        return sorted(matches, key=_timestamp_key)

    def list_measurements(self) -> pd.DataFrame:
        return MeasurementSerializer.to_frame(self.read())


def _timestamp_key(measurement: Measurement) -> datetime:
    if measurement.timestamp is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if measurement.timestamp.tzinfo is None:
        return measurement.timestamp.replace(tzinfo=timezone.utc)
    return measurement.timestamp
