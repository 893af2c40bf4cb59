from datetime import datetime, timezone

import pytest

from data_quality_rules.domain.errors import AggregationError, UnknownColumn, UnknownGroupColumn
from data_quality_rules.domain.models.dataset import Dataset
from data_quality_rules.domain.models.rule import RuleSet
from data_quality_rules.infrastructure.rules.aggregator import aggregate, measure, partition
from data_quality_rules.infrastructure.rules.engine import evaluate
from data_quality_rules.infrastructure.rules.reducers import Reducer

from conftest import MPG


def _rules(**expressions) -> RuleSet:
    rule_set = RuleSet()
    for name, expression in expressions.items():
        rule_set.bind(name, expression)
    return rule_set


def test_cyl_larger_4_counts_21_rows(mtcars):
    result = evaluate(_rules(cyl_larger_4="cyl > 4"), mtcars)
    timestamp = datetime(2024, 1, 1, tzinfo=timezone.utc)

    [measurement] = aggregate(result, reducer=Reducer.COUNT, timestamp=timestamp)

    assert measurement.value == 21
    assert measurement.measurement_item_key == "cyl_larger_4:count"
    assert measurement.rule_key == "cyl_larger_4"
    assert measurement.data_identifier == "mtcars"
    assert measurement.unknown_count == 0
    assert measurement.group_value is None
    assert measurement.timestamp == timestamp


def test_unknown_markers_are_excluded_and_reported():
    dataset = Dataset.load({"x": [1, None, 3, 5]})
    result = evaluate(_rules(big="x > 2"), dataset)

    [count] = aggregate(result)
    [mean] = aggregate(result, reducer="mean")

    assert count.value == 2
    assert count.unknown_count == 1
    assert mean.value == pytest.approx(2 / 3)


def test_grouped_counts_follow_first_appearance_and_add_up(mtcars):
    result = evaluate(_rules(cyl_larger_4="cyl > 4"), mtcars)

    grouped = aggregate(result, group_key="cyl")
    [ungrouped] = aggregate(result)

    assert [(m.group_value, m.value) for m in grouped] == [(6, 7), (4, 0), (8, 14)]
    assert sum(m.value for m in grouped) == ungrouped.value


def test_partitions_cover_every_row_exactly_once(mtcars):
    groups = partition(mtcars.column("cyl"))
    indices = [index for _, rows in groups for index in rows]

    assert sorted(indices) == list(range(mtcars.row_count()))
    assert len(indices) == len(set(indices))


def test_materiality_sum_equals_magnitude_where_rule_holds(mtcars):
    result = evaluate(_rules(low_mpg_materiality="(mpg < 20) * mpg"), mtcars)

    [measurement] = aggregate(result)

    assert measurement.measurement_item_key == "low_mpg_materiality:sum"
    assert measurement.value == pytest.approx(sum(m for m in MPG if m < 20))


def test_dataset_level_results_pass_through_once(mtcars):
    result = evaluate(_rules(mean_mpg_ok="mean(mpg) > 20"), mtcars)

    measurements = aggregate(result, group_key="cyl")

    assert len(measurements) == 1
    assert measurements[0].measurement_item_key == "mean_mpg_ok:value"
    assert measurements[0].value == 1
    assert measurements[0].group_value is None


def test_unknown_dataset_level_result_has_no_value():
    result = evaluate(_rules(total="sum(x)"), Dataset.load({"x": [1, None]}))

    [measurement] = aggregate(result)

    assert measurement.value is None
    assert measurement.unknown_count == 1


def test_unknown_group_column_is_rejected(mtcars):
    result = evaluate(_rules(cyl_larger_4="cyl > 4"), mtcars)

    with pytest.raises(UnknownGroupColumn) as excinfo:
        aggregate(result, group_key="gear")
    assert isinstance(excinfo.value, UnknownColumn)


def test_unknown_group_values_form_their_own_partition():
    dataset = Dataset.load({"g": ["a", None, "a"], "x": [1, 2, 3]})
    result = evaluate(_rules(big="x > 1"), dataset)

    measurements = aggregate(result, group_key="g")

    assert [(m.group_value, m.value) for m in measurements] == [("a", 1), (None, 1)]


def test_failed_rules_produce_no_measurements(mtcars):
    result = evaluate(_rules(ok="cyl > 4", bad="hp > 100"), mtcars)

    assert [m.rule_key for m in aggregate(result)] == ["ok"]


def test_custom_reducer_receives_known_values(mtcars):
    def largest(values):
        return max(values)

    result = evaluate(_rules(mpg_values="mpg + 0"), mtcars)

    [measurement] = aggregate(result, reducer=largest)

    assert measurement.measurement_item_key == "mpg_values:largest"
    assert measurement.value == max(MPG)


def test_invalid_reducers_fail():
    dataset = Dataset.load({"s": ["a", "b", None]})
    result = evaluate(_rules(labels="coalesce(s, 'z')"), dataset)

    with pytest.raises(AggregationError):
        aggregate(result, reducer="median")
    assert aggregate(result, reducer="sum") == []
    assert measure(result, reducer="sum").failures["labels"].kind == "AggregationError"
    [default] = aggregate(result)
    assert default.value == 3


def test_non_numeric_rule_fails_alone_during_aggregation():
    dataset = Dataset.load({"x": [1, 2, 3], "s": ["a", "b", "a"]})
    result = evaluate(_rules(ok="x > 1", label="max(s)"), dataset)

    aggregation = measure(result)

    assert [m.measurement_item_key for m in aggregation.measurements] == ["ok:count"]
    assert aggregation.measurements[0].value == 2
    assert list(aggregation.failures) == ["label"]
    assert aggregation.failures["label"].kind == "AggregationError"


def test_equal_keys_of_different_types_stay_in_separate_groups():
    dataset = Dataset.load({"g": [True, 1, 1.0, False, 0, True], "x": [1, 2, 3, 4, 5, 6]})
    result = evaluate(_rules(big="x > 0"), dataset)

    measurements = aggregate(result, group_key="g")

    groups = [(type(m.group_value), m.group_value, m.value) for m in measurements]
    assert groups == [(bool, True, 2), (int, 1, 1), (float, 1.0, 1), (bool, False, 1), (int, 0, 1)]
