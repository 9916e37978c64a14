"""Value conversion between database rows, JAX arrays and host memory.

Key Functions:
    - to_jax_value: Convert a single column value to a JAX array when numeric
    - row_to_element: Convert a row (values + column names) to an element dict
    - batch_elements_to_dict: Stack element dicts into a batch dict
    - to_host: Move JAX arrays in a PyTree to host numpy arrays
    - to_device: Move numpy arrays in a PyTree back to JAX arrays
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import jax
import jax.numpy as jnp
import numpy as np


def _is_numeric(value: Any) -> bool:
    # bool is a subclass of int and is kept numeric
    return isinstance(value, int | float) and not isinstance(value, str)


def _device_array(array: np.ndarray) -> jax.Array | None:
    """Return ``array`` as a JAX array, or None if that would change a value.

    Without ``jax_enable_x64`` JAX narrows int64 to int32 and float64 to
    float32, so INT64 keys above 2**31 - 1 and FLOAT64 values that need the
    extra precision stay on the host.
    """
    if array.dtype == object:
        return None
    target = jax.dtypes.canonicalize_dtype(array.dtype)
    if target != array.dtype:
        with np.errstate(over="ignore", invalid="ignore"):
            narrowed = array.astype(target)
        if not np.array_equal(narrowed, array, equal_nan=array.dtype.kind == "f"):
            return None
        array = narrowed
    return jnp.asarray(array)


def to_jax_value(value: Any) -> Any:
    """Convert a column value to a JAX array when it is numeric.

    Spanner INT64, FLOAT32/FLOAT64 and BOOL values and arrays of them become
    JAX arrays when the array dtype JAX would use holds them exactly. Values
    that do not fit (large INT64 values, FLOAT64 values that float32 would
    round) are returned unchanged, as are STRING, BYTES, NUMERIC, DATE,
    TIMESTAMP and JSON values, NULLs, and arrays containing NULLs.

    Args:
        value: Value as returned by the Spanner client.

    Returns:
        A JAX array or the original value.

    Example:
        >>> to_jax_value(3).dtype
        dtype('int32')
        >>> to_jax_value(2**40)
        1099511627776
        >>> to_jax_value("abc")
        'abc'
    """
    if isinstance(value, jax.Array):
        return value
    if isinstance(value, np.ndarray):
        converted = _device_array(value)
    elif _is_numeric(value) or (
        isinstance(value, list | tuple) and value and all(_is_numeric(v) for v in value)
    ):
        converted = _device_array(np.asarray(value))
    else:
        return value
    return value if converted is None else converted


def row_to_element(
    row: Sequence[Any], columns: Sequence[str], convert: bool = True
) -> dict[str, Any]:
    """Build an element dict from a row and its column names.

    Args:
        row: Column values in column order.
        columns: Column names.
        convert: Convert numeric values to JAX arrays.

    Returns:
        Element mapping column name to value.

    Raises:
        ValueError: If the row width does not match the column count.
    """
    if len(row) != len(columns):
        raise ValueError(f"Row has {len(row)} values but {len(columns)} columns were given")
    if not convert:
        return dict(zip(columns, row))
    return {name: to_jax_value(value) for name, value in zip(columns, row)}


def batch_elements_to_dict(elements: list[dict[str, Any]]) -> dict[str, Any]:
    """Stack a list of element dicts into a single batched dict.

    JAX arrays of matching shape are stacked, numeric scalars are arrayed, and
    other values (strings, timestamps, NULLs, ragged arrays) are collected as lists.

    Args:
        elements: List of element dicts with consistent keys.

    Returns:
        Batched dict where each value is stacked/collected across elements.
    """
    if not elements:
        return {}

    batch: dict[str, Any] = {}
    for key in elements[0]:
        values = [element[key] for element in elements]
        if all(isinstance(v, jax.Array) for v in values) and len({v.shape for v in values}) == 1:
            batch[key] = jnp.stack(values)
        elif all(_is_numeric(v) for v in values):
            batch[key] = to_jax_value(values)
        else:
            batch[key] = values
    return batch


def to_host(tree: Any) -> Any:
    """Replace JAX arrays in a PyTree with host numpy arrays.

    Non-array leaves are left as they are.
    """
    return jax.tree.map(lambda x: np.asarray(x) if isinstance(x, jax.Array) else x, tree)


def to_device(tree: Any) -> Any:
    """Replace numpy arrays in a PyTree with JAX arrays (inverse of ``to_host``).

    Arrays JAX cannot hold exactly stay numpy arrays; see ``to_jax_value``.
    """
    return jax.tree.map(lambda x: to_jax_value(x) if isinstance(x, np.ndarray) else x, tree)
