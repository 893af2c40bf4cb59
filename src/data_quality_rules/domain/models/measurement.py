from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Mapping, Tuple

from data_quality_rules.domain.models.result import EvaluationResult, RuleFailure

# JSON has no temporal types, so these group values travel as ISO strings plus a tag.
GROUP_VALUE_TYPES = {"datetime": datetime, "date": date, "time": time}


def encode_group_value(value: Any) -> tuple[Any, str | None]:
    for tag, type_ in GROUP_VALUE_TYPES.items():
        if isinstance(value, type_):
            return value.isoformat(), tag
    return value, None


def decode_group_value(value: Any, tag: str | None) -> Any:
    if tag is None or value is None:
        return value
    try:
        return GROUP_VALUE_TYPES[tag].fromisoformat(value)
    except KeyError:
        raise ValueError(f"unknown group value type {tag!r}") from None


@dataclass(frozen=True, slots=True)
class Measurement:
    measurement_item_key: str
    rule_key: str
    data_identifier: str | None
    value: int | float | None
    unknown_count: int = 0
    group_value: Any = None
    timestamp: datetime | None = None

    def as_dict(self) -> dict[str, Any]:
        group_value, group_value_type = encode_group_value(self.group_value)
        return {
            "measurement_item_key": self.measurement_item_key,
            "rule_key": self.rule_key,
            "data_identifier": self.data_identifier,
            "group_value": group_value,
            "group_value_type": group_value_type,
            "value": self.value,
            "unknown_count": self.unknown_count,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Measurement":
        timestamp = raw.get("timestamp")
        return cls(
            measurement_item_key=raw["measurement_item_key"],
            rule_key=raw["rule_key"],
            data_identifier=raw.get("data_identifier"),
            value=raw.get("value"),
            unknown_count=int(raw.get("unknown_count", 0)),
            group_value=decode_group_value(raw.get("group_value"), raw.get("group_value_type")),
            timestamp=datetime.fromisoformat(timestamp) if timestamp else None,
        )


@dataclass(frozen=True)
class MeasurementReport:
    data_identifier: str | None
    generated_at: datetime
    measurements: Tuple[Measurement, ...] = field(default_factory=tuple)
    failures: Tuple[RuleFailure, ...] = field(default_factory=tuple)
    evaluation: EvaluationResult | None = None

    @property
    def passed(self) -> bool:
        return not self.failures

    @property
    def failed_rules(self) -> dict[str, str]:
        return {failure.rule: failure.kind for failure in self.failures}

    @property
    def measured_rules(self) -> list[str]:
        seen: dict[str, None] = {}
        for measurement in self.measurements:
            seen.setdefault(measurement.rule_key, None)
        return list(seen)
