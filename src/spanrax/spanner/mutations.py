"""Mutations and mutation groups written to Cloud Spanner.

A Mutation is one atomic change to one table: an insert, update,
insert-or-update or replace of rows, or a delete of a key set. A MutationGroup
bundles mutations that must be committed together; the write path never
splits a group across commits.

Sizes are estimated the way the Spanner connector of Apache Beam does, to pack
groups into commits under a byte budget.
"""

from __future__ import annotations

import datetime
import decimal
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np


class Op(Enum):
    """Kind of change a mutation applies."""

    INSERT = "insert"
    UPDATE = "update"
    INSERT_OR_UPDATE = "insert_or_update"
    REPLACE = "replace"
    DELETE = "delete"


@dataclass(frozen=True)
class KeySet:
    """Keys and key ranges addressed by a read or a delete.

    Mirrors ``google.cloud.spanner.KeySet`` without requiring the client at
    construction time; ``to_spanner()`` builds the client object.

    Args:
        keys: Primary keys, each a sequence of key column values
        ranges: Key ranges as dicts accepted by ``google.cloud.spanner.KeyRange``
            (``start_closed``/``start_open``/``end_closed``/``end_open``)
        all_: Address every row of the table
    """

    keys: tuple[tuple[Any, ...], ...] = ()
    ranges: tuple[dict[str, Any], ...] = ()
    all_: bool = False

    def __post_init__(self):
        object.__setattr__(self, "keys", tuple(tuple(key) for key in self.keys))
        object.__setattr__(self, "ranges", tuple(dict(r) for r in self.ranges))
        if not (self.keys or self.ranges or self.all_):
            raise ValueError("KeySet must contain keys, ranges or all_=True")

    @classmethod
    def all(cls) -> KeySet:
        return cls(all_=True)

    @classmethod
    def of(cls, *keys: Sequence[Any]) -> KeySet:
        return cls(keys=tuple(tuple(key) for key in keys))

    def to_spanner(self) -> Any:
        """Build the equivalent ``google.cloud.spanner.KeySet``."""
        from spanrax.spanner.config import import_spanner

        spanner = import_spanner()
        ranges = [spanner.KeyRange(**r) for r in self.ranges]
        return spanner.KeySet(keys=[list(k) for k in self.keys], ranges=ranges, all_=self.all_)

    def estimate_size(self) -> int:
        size = sum(estimate_value_size(list(key)) for key in self.keys)
        for key_range in self.ranges:
            size += sum(estimate_value_size(list(bound)) for bound in key_range.values())
        return size


@dataclass(frozen=True)
class Mutation:
    """A single change to one table.

    Use the class methods to build mutations:

    ```python
    Mutation.insert("Singers", ["SingerId", "Name"], [[1, "Marc"], [2, "Catalina"]])
    Mutation.delete("Singers", KeySet.of([1], [2]))
    ```
    """

    op: Op
    table: str
    columns: tuple[str, ...] = ()
    values: tuple[tuple[Any, ...], ...] = ()
    key_set: KeySet | None = None

    def __post_init__(self):
        if not self.table:
            raise ValueError("Mutation requires a table name")
        object.__setattr__(self, "columns", tuple(self.columns))
        object.__setattr__(self, "values", tuple(tuple(row) for row in self.values))

        if self.op is Op.DELETE:
            if self.key_set is None:
                raise ValueError("Delete mutation requires a key_set")
            if self.columns or self.values:
                raise ValueError("Delete mutation takes no columns or values")
            return

        if self.key_set is not None:
            raise ValueError(f"{self.op.value} mutation takes no key_set")
        if not self.columns:
            raise ValueError(f"{self.op.value} mutation requires columns")
        if not self.values:
            raise ValueError(f"{self.op.value} mutation requires at least one row")
        for row in self.values:
            if len(row) != len(self.columns):
                raise ValueError(
                    f"Row {row!r} has {len(row)} values for {len(self.columns)} columns"
                )

    @classmethod
    def insert(
        cls, table: str, columns: Sequence[str], values: Sequence[Sequence[Any]]
    ) -> Mutation:
        return cls(Op.INSERT, table, tuple(columns), tuple(map(tuple, values)))

    @classmethod
    def update(
        cls, table: str, columns: Sequence[str], values: Sequence[Sequence[Any]]
    ) -> Mutation:
        return cls(Op.UPDATE, table, tuple(columns), tuple(map(tuple, values)))

    @classmethod
    def insert_or_update(
        cls, table: str, columns: Sequence[str], values: Sequence[Sequence[Any]]
    ) -> Mutation:
        return cls(Op.INSERT_OR_UPDATE, table, tuple(columns), tuple(map(tuple, values)))

    @classmethod
    def replace(
        cls, table: str, columns: Sequence[str], values: Sequence[Sequence[Any]]
    ) -> Mutation:
        return cls(Op.REPLACE, table, tuple(columns), tuple(map(tuple, values)))

    @classmethod
    def delete(cls, table: str, key_set: KeySet) -> Mutation:
        return cls(Op.DELETE, table, key_set=key_set)

    def apply(self, batch: Any) -> None:
        """Issue this mutation on a ``google.cloud.spanner`` batch or transaction."""
        if self.op is Op.DELETE:
            assert self.key_set is not None
            batch.delete(self.table, self.key_set.to_spanner())
            return
        rows = [[_to_client_value(v) for v in row] for row in self.values]
        getattr(batch, self.op.value)(self.table, list(self.columns), rows)

    def estimate_size(self) -> int:
        """Estimated payload in bytes."""
        if self.op is Op.DELETE:
            assert self.key_set is not None
            return self.key_set.estimate_size()
        return sum(estimate_value_size(list(row)) for row in self.values)

    @property
    def cell_count(self) -> int:
        """Number of cells written (0 for deletes)."""
        return len(self.columns) * len(self.values)


@dataclass(frozen=True)
class MutationGroup:
    """Mutations committed atomically: all of them or none.

    Args:
        primary: The mutation the group is keyed on
        attached: Further mutations committed with the primary
    """

    primary: Mutation
    attached: tuple[Mutation, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "attached", tuple(self.attached))

    @classmethod
    def of(cls, primary: Mutation, *attached: Mutation) -> MutationGroup:
        return cls(primary, attached)

    def __iter__(self) -> Iterator[Mutation]:
        yield self.primary
        yield from self.attached

    def __len__(self) -> int:
        return 1 + len(self.attached)

    def estimate_size(self) -> int:
        return sum(m.estimate_size() for m in self)


def estimate_value_size(value: Any) -> int:
    """Estimate the encoded size of a column value in bytes.

    INT64/FLOAT64 count 8 bytes, BOOL 1, STRING its UTF-8 length, BYTES its
    length, DATE/TIMESTAMP 12, NULL 0. Arrays are the sum of their items.
    """
    if value is None:
        return 0
    if isinstance(value, bool | np.bool_):
        return 1
    if isinstance(value, int | float | np.integer | np.floating):
        return 8
    if isinstance(value, str):
        return len(value.encode("utf-8"))
    if isinstance(value, bytes | bytearray):
        return len(value)
    if isinstance(value, datetime.date | datetime.datetime):
        return 12
    if isinstance(value, decimal.Decimal):
        return len(str(value))
    if isinstance(value, np.ndarray):
        return sum(estimate_value_size(v) for v in value.tolist())
    if isinstance(value, list | tuple):
        return sum(estimate_value_size(v) for v in value)
    if hasattr(value, "__array__"):
        return estimate_value_size(np.asarray(value))
    if isinstance(value, dict):
        # JSON columns
        return len(repr(value))
    return len(str(value))


def _to_client_value(value: Any) -> Any:
    """Turn numpy/JAX values into plain Python values the client can encode."""
    if isinstance(value, np.generic):
        return value.item()
    if hasattr(value, "__array__") and not isinstance(value, list | tuple | str | bytes):
        array = np.asarray(value)
        return array.item() if array.ndim == 0 else array.tolist()
    return value


def to_mutation_group(element: Mutation | MutationGroup) -> MutationGroup:
    """Wrap a single mutation in its own group.

    Raises:
        TypeError: If ``element`` is neither a Mutation nor a MutationGroup.
    """
    if isinstance(element, MutationGroup):
        return element
    if isinstance(element, Mutation):
        return MutationGroup(element)
    raise TypeError(f"Expected Mutation or MutationGroup, got {type(element).__name__}")
