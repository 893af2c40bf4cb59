from datetime import datetime, timezone

from data_quality_rules.domain.models.measurement import Measurement
from data_quality_rules.infrastructure.repositories.measurement_log import MeasurementLog


def _measurement(value, day, identifier="mtcars"):
    return Measurement(
        measurement_item_key="cyl_larger_4:count",
        rule_key="cyl_larger_4",
        data_identifier=identifier,
        value=value,
        timestamp=datetime(2024, 1, day, tzinfo=timezone.utc),
    )


def test_history_is_ordered_by_timestamp(tmp_path):
    log = MeasurementLog(tmp_path / "logs" / "measurements.jsonl")

    log.append([_measurement(21, 3)])
    log.append([_measurement(19, 1), _measurement(5, 2, identifier="other")])

    history = log.history("cyl_larger_4:count", "mtcars")

    assert [m.value for m in history] == [19, 21]
    assert len(log.read()) == 3
    assert len(log.list_measurements()) == 3


def test_empty_log_reads_nothing(tmp_path):
    log = MeasurementLog(tmp_path / "missing.jsonl")

    assert log.read() == []
    assert log.append([]) == 0
    assert log.list_measurements().empty
