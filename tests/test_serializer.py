from datetime import date, datetime, timedelta, timezone

import numpy as np
import pandas as pd

from data_quality_rules.domain.models.dataset import Dataset
from data_quality_rules.domain.models.measurement import Measurement
from data_quality_rules.domain.models.rule import RuleSet
from data_quality_rules.infrastructure.rules.aggregator import aggregate
from data_quality_rules.infrastructure.rules.engine import evaluate
from data_quality_rules.infrastructure.serializers.measurement_serializer import (
    COLUMNS,
    MeasurementSerializer,
)

TS = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


def _measurements() -> list[Measurement]:
    return [
        Measurement("cyl_larger_4:count", "cyl_larger_4", "mtcars", 21, 0, None, TS),
        Measurement("cyl_larger_4:count", "cyl_larger_4", "mtcars", 7, 0, 6, TS),
        Measurement("low_mpg:sum", "low_mpg", "mtcars", 187.25, 2, "north", TS + timedelta(hours=1)),
        Measurement("total:value", "total", None, None, 1, None, None),
    ]


def test_json_round_trip_preserves_every_field():
    measurements = _measurements()

    restored = MeasurementSerializer.from_json(MeasurementSerializer.to_json(measurements))

    assert restored == measurements
    assert isinstance(restored[0].value, int)
    assert isinstance(restored[2].value, float)


def test_numpy_scalars_are_serialised_as_plain_numbers():
    measurement = Measurement("x:sum", "x", "data", np.float64(1.5), np.int64(2), np.int64(4), TS)

    [restored] = MeasurementSerializer.from_json(MeasurementSerializer.to_json([measurement]))

    assert restored.value == 1.5
    assert restored.unknown_count == 2
    assert restored.group_value == 4


def test_flat_records_and_frame():
    records = MeasurementSerializer.to_records(_measurements())
    frame = MeasurementSerializer.to_frame(_measurements())

    assert set(records[0]) == set(COLUMNS)
    assert records[0]["timestamp"] == TS.isoformat()
    assert list(frame.columns) == list(COLUMNS)
    assert len(frame) == 4


def test_date_group_values_survive_the_round_trip():
    frame = pd.DataFrame(
        {
            "day": pd.to_datetime(["2024-01-01", "2024-01-02", "2024-01-01"]),
            "booked": [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 2)],
            "x": [1, 5, 3],
        }
    )
    dataset = Dataset.from_frame(frame, "bookings")
    rule_set = RuleSet()
    rule_set.bind("big", "x > 2")
    result = evaluate(rule_set, dataset)

    measurements = aggregate(result, group_key="day", timestamp=TS) + aggregate(result, group_key="booked")
    restored = MeasurementSerializer.from_json(MeasurementSerializer.to_json(measurements))

    assert restored == measurements
    assert [m.group_value for m in restored[:2]] == [datetime(2024, 1, 1), datetime(2024, 1, 2)]
    assert [type(m.group_value) for m in restored[2:]] == [date, date]
    assert MeasurementSerializer.to_records(measurements)[0]["group_value_type"] == "datetime"
