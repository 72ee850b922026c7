#!filepath: tests/core/test_data_selector.py
import pandas as pd
import pytest

from flowengine.core.data import select_training_data
from flowengine.utils.errors import ConfigurationError


@pytest.fixture
def variants():
    return {
        "original": pd.DataFrame({"x": [1, 2, 3]}),
        "normalized": pd.DataFrame({"x": [-1.0, 0.0, 1.0]}),
    }


def test_flag_true_selects_normalized(variants):
    assert select_training_data(True, variants) is variants["normalized"]


@pytest.mark.parametrize("flag", [False, None])
def test_flag_false_or_absent_selects_original(variants, flag):
    assert select_training_data(flag, variants) is variants["original"]


def test_missing_normalized_variant_raises():
    with pytest.raises(ConfigurationError, match="normalized"):
        select_training_data(True, {"original": pd.DataFrame({"x": [1]})})


def test_normalized_set_to_none_raises():
    data = {"original": pd.DataFrame({"x": [1]}), "normalized": None}
    with pytest.raises(ConfigurationError):
        select_training_data(True, data)
