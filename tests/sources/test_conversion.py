"""Tests for row and PyTree conversion helpers."""

import datetime
import decimal

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from spanrax.sources._conversion import (
    batch_elements_to_dict,
    row_to_element,
    to_device,
    to_host,
    to_jax_value,
)


class TestToJaxValue:
    @pytest.mark.parametrize("value", [3, 2.5, True, [1, 2, 3], [0.5, 1.5]])
    def test_numeric_values_become_arrays(self, value):
        result = to_jax_value(value)
        assert isinstance(result, jax.Array)
        np.testing.assert_array_equal(result, np.asarray(value))

    @pytest.mark.parametrize(
        "value",
        [
            "abc",
            b"\x00\x01",
            None,
            decimal.Decimal("1.25"),
            datetime.date(2024, 1, 1),
            [1, None, 3],
            [],
        ],
    )
    def test_other_values_unchanged(self, value):
        assert to_jax_value(value) is value

    def test_numpy_arrays_converted(self):
        assert isinstance(to_jax_value(np.arange(3)), jax.Array)

    def test_object_arrays_unchanged(self):
        value = np.array(["a", None], dtype=object)
        assert to_jax_value(value) is value

    @pytest.mark.parametrize(
        "value", [2**40 + 7, -(2**31) - 1, 1.0000000001, 1e300, [1, 2**40], [0.5, 0.1]]
    )
    def test_values_that_do_not_fit_unchanged(self, value):
        if not jax.config.jax_enable_x64:
            assert to_jax_value(value) is value

    def test_wide_numpy_arrays_stay_on_host(self):
        value = np.array([1, 2**40], dtype=np.int64)
        result = to_jax_value(value)
        np.testing.assert_array_equal(result, value)
        if not jax.config.jax_enable_x64:
            assert result is value

    def test_narrowing_is_exact(self):
        assert int(to_jax_value(2**31 - 1)) == 2**31 - 1
        assert float(to_jax_value(0.25)) == 0.25
        assert isinstance(to_jax_value(np.array([1, 2], dtype=np.int64)), jax.Array)


class TestRowToElement:
    def test_converts_numeric_columns(self):
        element = row_to_element([1, "Marc"], ["SingerId", "FirstName"])
        assert isinstance(element["SingerId"], jax.Array)
        assert element["FirstName"] == "Marc"

    def test_without_conversion(self):
        assert row_to_element([1, "Marc"], ["SingerId", "FirstName"], convert=False) == {
            "SingerId": 1,
            "FirstName": "Marc",
        }

    def test_width_mismatch(self):
        with pytest.raises(ValueError, match="2 values but 3 columns"):
            row_to_element([1, "Marc"], ["a", "b", "c"])


class TestBatchElementsToDict:
    def test_stacks_arrays_and_collects_others(self):
        elements = [{"id": jnp.array(i), "name": f"n{i}"} for i in range(3)]
        batch = batch_elements_to_dict(elements)
        np.testing.assert_array_equal(batch["id"], jnp.arange(3))
        assert batch["name"] == ["n0", "n1", "n2"]

    def test_ragged_arrays_kept_as_list(self):
        elements = [{"v": jnp.arange(2)}, {"v": jnp.arange(3)}]
        assert isinstance(batch_elements_to_dict(elements)["v"], list)

    def test_empty(self):
        assert batch_elements_to_dict([]) == {}

    def test_wide_integers_collected_as_list(self):
        elements = [{"id": 1}, {"id": 2**40}]
        batch = batch_elements_to_dict(elements)
        if not jax.config.jax_enable_x64:
            assert batch["id"] == [1, 2**40]


def test_host_device_round_trip():
    tree = {"id": jnp.arange(3), "name": "x", "nested": [jnp.array(1.5), None]}
    host = to_host(tree)
    assert isinstance(host["id"], np.ndarray)
    assert isinstance(host["nested"][0], np.ndarray)
    assert host["name"] == "x"

    device = to_device(host)
    assert isinstance(device["id"], jax.Array)
    np.testing.assert_array_equal(device["id"], tree["id"])
    assert device["nested"][1] is None


def test_to_device_keeps_wide_arrays():
    host = {"key": np.array([2**40 + 7], dtype=np.int64), "score": np.array([1.0000000001])}
    device = to_device(host)
    assert device["key"][0] == 2**40 + 7
    assert device["score"][0] == 1.0000000001
