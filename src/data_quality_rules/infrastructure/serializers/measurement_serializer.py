from __future__ import annotations

import json
from datetime import datetime
from typing import Iterable

import numpy as np
import pandas as pd

from data_quality_rules.domain.models.measurement import Measurement

COLUMNS = (
    "measurement_item_key",
    "rule_key",
    "data_identifier",
    "group_value",
    "group_value_type",
    "value",
    "unknown_count",
    "timestamp",
)


class MeasurementSerializer:
    @staticmethod
    def serialize(obj):
        if isinstance(obj, (np.bool_, bool)):
            return bool(obj)
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return str(obj)

    @staticmethod
    def to_records(measurements: Iterable[Measurement]) -> list[dict]:
        return [measurement.as_dict() for measurement in measurements]

    @staticmethod
    def to_json(measurements: Iterable[Measurement], indent: int | None = None) -> str:
        return json.dumps(
            MeasurementSerializer.to_records(measurements),
            default=MeasurementSerializer.serialize,
            indent=indent,
        )

    @staticmethod
    def from_json(payload: str) -> list[Measurement]:
        raw = json.loads(payload)
        if not isinstance(raw, list):
            raise ValueError("expected a JSON array of measurements")
        return [Measurement.from_dict(item) for item in raw]

    @staticmethod
    def to_frame(measurements: Iterable[Measurement]) -> pd.DataFrame:
        return pd.DataFrame(MeasurementSerializer.to_records(measurements), columns=list(COLUMNS))
