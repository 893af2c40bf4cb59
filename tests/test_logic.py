import pickle
from datetime import datetime

import numpy as np
import pandas as pd
import pytest

from data_quality_rules.domain.models.logic import (
    UNKNOWN,
    and_,
    is_missing,
    normalize,
    not_,
    or_,
)


@pytest.mark.parametrize(
    "left, right, expected",
    [
        (True, True, True),
        (True, False, False),
        (False, UNKNOWN, False),
        (UNKNOWN, False, False),
        (True, UNKNOWN, UNKNOWN),
        (UNKNOWN, UNKNOWN, UNKNOWN),
    ],
)
def test_and_follows_kleene_logic(left, right, expected):
    assert and_(left, right) is expected


@pytest.mark.parametrize(
    "left, right, expected",
    [
        (False, False, False),
        (True, UNKNOWN, True),
        (UNKNOWN, True, True),
        (False, UNKNOWN, UNKNOWN),
        (UNKNOWN, UNKNOWN, UNKNOWN),
    ],
)
def test_or_follows_kleene_logic(left, right, expected):
    assert or_(left, right) is expected


def test_not_keeps_unknown():
    assert not_(True) is False
    assert not_(UNKNOWN) is UNKNOWN


def test_unknown_has_no_truth_value():
    with pytest.raises(TypeError):
        bool(UNKNOWN)


def test_unknown_is_a_singleton_across_pickling():
    assert pickle.loads(pickle.dumps(UNKNOWN)) is UNKNOWN


def test_missing_spellings_are_recognised():
    for value in (None, float("nan"), np.nan, pd.NA, pd.NaT, UNKNOWN):
        assert is_missing(value)
        assert normalize(value) is UNKNOWN
    assert not is_missing(0)
    assert not is_missing("")
    assert not is_missing([None])


def test_normalize_unwraps_numpy_scalars():
    value = normalize(np.float64(2.5))

    assert value == 2.5
    assert type(value) is float


def test_normalize_turns_timestamps_into_datetimes():
    from_pandas = normalize(pd.Timestamp("2024-01-01 06:30"))
    from_numpy = normalize(np.datetime64("2024-01-01T06:30"))

    assert type(from_pandas) is datetime and type(from_numpy) is datetime
    assert from_pandas == from_numpy == datetime(2024, 1, 1, 6, 30)
    assert normalize(pd.NaT) is UNKNOWN
