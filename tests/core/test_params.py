#!filepath: tests/core/test_params.py
from flowengine.core.params import merge_with_defaults


def test_every_default_key_present():
    merged = merge_with_defaults({}, {"a": 1, "b": 2})
    assert merged == {"a": 1, "b": 2}


def test_user_values_override_defaults():
    merged = merge_with_defaults({"b": 20}, {"a": 1, "b": 2})
    assert merged == {"a": 1, "b": 20}


def test_unknown_user_keys_pass_through():
    merged = merge_with_defaults({"extra": True}, {"a": 1})
    assert merged == {"a": 1, "extra": True}


def test_none_inputs_are_empty():
    assert merge_with_defaults(None, {"a": 1}) == {"a": 1}
    assert merge_with_defaults({"a": 1}, None) == {"a": 1}
    assert merge_with_defaults(None, None) == {}


def test_inputs_not_mutated():
    user = {"b": 3}
    defaults = {"a": 1, "b": 2}

    merged = merge_with_defaults(user, defaults)
    merged["a"] = 99

    assert user == {"b": 3}
    assert defaults == {"a": 1, "b": 2}


def test_key_order_of_user_params_irrelevant():
    defaults = {"a": 1, "b": 2, "c": 3}
    m1 = merge_with_defaults({"a": 10, "c": 30}, defaults)
    m2 = merge_with_defaults({"c": 30, "a": 10}, defaults)
    assert m1 == m2


def test_user_none_value_still_overrides():
    # explicit None is a value, not "unset"
    merged = merge_with_defaults({"seed": None}, {"seed": 7})
    assert merged == {"seed": None}
