"""Reading from Cloud Spanner.

SpannerRead describes a read: either a table read (table, columns and an
optional key set and index) or a SQL query, plus partitioning and a timestamp
bound. SpannerSource executes the read and serves the rows as elements.

Rows are fetched once, on first access, and then served from memory like an
eager source. Each element maps column name to value; numeric values become
JAX arrays, all other Spanner types are kept as returned by the client.

Partitioned reads (with PartitionOptions) run through a batch snapshot, so every
partition observes the same timestamp. Other reads use one single-use snapshot.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any

import flax.nnx as nnx

from spanrax.core.config import StructuralConfig
from spanrax.core.data_source import DataSourceModule
from spanrax.sources._conversion import batch_elements_to_dict, row_to_element
from spanrax.spanner.config import PartitionOptions, SpannerConfig, TimestampBound
from spanrax.spanner.mutations import KeySet
from spanrax.typing import Batch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpannerRead:
    """Immutable description of a Spanner read.

    Examples:
        ```python
        read = (
            SpannerRead(config)
            .with_table("Singers")
            .with_columns(["SingerId", "FirstName"])
            .with_key_set(KeySet.of([1], [2]))
        )
        ```
    """

    spanner_config: SpannerConfig
    table: str | None = None
    columns: tuple[str, ...] = ()
    query: str | None = None
    params: Mapping[str, Any] | None = None
    param_types: Mapping[str, Any] | None = None
    key_set: KeySet | None = None
    index: str | None = None
    partition_options: PartitionOptions | None = None
    timestamp_bound: TimestampBound | None = None

    def with_spanner_config(self, spanner_config: SpannerConfig) -> SpannerRead:
        return replace(self, spanner_config=spanner_config)

    def with_table(self, table: str) -> SpannerRead:
        return replace(self, table=table)

    def with_columns(self, columns: Sequence[str]) -> SpannerRead:
        if isinstance(columns, str):
            raise TypeError("columns must be a sequence of column names, not a string")
        return replace(self, columns=tuple(columns))

    def with_query(
        self,
        query: str,
        params: Mapping[str, Any] | None = None,
        param_types: Mapping[str, Any] | None = None,
    ) -> SpannerRead:
        return replace(self, query=query, params=params, param_types=param_types)

    def with_key_set(self, key_set: KeySet) -> SpannerRead:
        return replace(self, key_set=key_set)

    def with_index(self, index: str) -> SpannerRead:
        return replace(self, index=index)

    def with_partition_options(self, partition_options: PartitionOptions) -> SpannerRead:
        return replace(self, partition_options=partition_options)

    def with_timestamp_bound(self, timestamp_bound: TimestampBound) -> SpannerRead:
        return replace(self, timestamp_bound=timestamp_bound)

    @property
    def is_query(self) -> bool:
        return self.query is not None

    def validate(self) -> None:
        """Check the read is complete and consistent.

        Raises:
            ValueError: If the read is incomplete or mixes table and query options.
        """
        self.spanner_config.validate()

        if (self.table is None) == (self.query is None):
            raise ValueError("SpannerRead requires exactly one of table or query")
        if self.table is not None:
            if not self.columns:
                raise ValueError(f"Table read of {self.table!r} requires columns")
        elif self.key_set is not None:
            raise ValueError("key_set applies to table reads only")
        if self.params is None and self.param_types is not None:
            raise ValueError("param_types given without params")

        if (
            self.partition_options is not None
            and self.timestamp_bound is not None
            and self.timestamp_bound.is_bounded
        ):
            raise ValueError(
                f"{self.timestamp_bound} is only valid for single-use reads, "
                "not partitioned reads"
            )

    def __str__(self) -> str:
        target = f"query={self.query!r}" if self.is_query else f"table={self.table}"
        return f"SpannerRead({self.spanner_config}, {target})"


@dataclass
class SpannerSourceConfig(StructuralConfig):
    """Configuration for SpannerSource.

    Args:
        read: The read to execute (required)
        convert_to_jax: Convert numeric column values to JAX arrays
    """

    read: SpannerRead | None = None
    convert_to_jax: bool = True

    def __post_init__(self):
        super().__post_init__()
        if self.read is None:
            raise ValueError("read is required for SpannerSourceConfig")
        self.read.validate()


class SpannerSource(DataSourceModule):
    """Data source serving the rows of a Spanner read.

    The read runs on first access (iteration, len, indexing or get_batch) and
    its rows are kept in memory afterwards.

    Example:
        ```python
        read = SpannerRead(config).with_query("SELECT SingerId, FirstName FROM Singers")
        source = SpannerSource(SpannerSourceConfig(read=read))
        for row in source:
            print(row["SingerId"], row["FirstName"])
        ```
    """

    rows: list[dict[str, Any]] | None = nnx.data()

    def __init__(
        self,
        config: SpannerSourceConfig,
        *,
        database: Any | None = None,
        name: str | None = None,
    ):
        """Initialize the source; no request is sent until the rows are accessed.

        Args:
            config: Source configuration
            database: ``google.cloud.spanner`` Database to read from; opened
                from ``config.read.spanner_config`` when omitted
            name: Optional name (defaults to the read's string form)
        """
        assert config.read is not None
        super().__init__(config, name=name or str(config.read))
        self.read = nnx.static(config.read)
        self._database = nnx.static(database)
        self.rows = None
        self.index = nnx.Variable(0)

        if config.read.is_query and config.read.index is not None:
            warnings.warn(
                f"Index {config.read.index!r} is not applied to query reads; "
                "use a FORCE_INDEX hint in the SQL instead",
                stacklevel=2,
            )

    # ========================================================================
    # Loading
    # ========================================================================

    @property
    def database(self) -> Any:
        if self._database is None:
            self._database = self.read.spanner_config.database()
        return self._database

    def load(self) -> list[dict[str, Any]]:
        """Execute the read if it has not run yet and return the rows."""
        if self.rows is None:
            rows = list(self._execute())
            logger.debug("Read %d rows with %s", len(rows), self.read)
            self.rows = rows
        return self.rows

    def _execute(self) -> Iterator[dict[str, Any]]:
        if self.read.partition_options is not None:
            yield from self._execute_partitioned()
        else:
            yield from self._execute_single_use()

    def _execute_single_use(self) -> Iterator[dict[str, Any]]:
        read = self.read
        bound_kwargs = read.timestamp_bound.snapshot_kwargs() if read.timestamp_bound else {}
        with self.database.snapshot(**bound_kwargs) as snapshot:
            if read.is_query:
                results = snapshot.execute_sql(
                    read.query, params=read.params, param_types=read.param_types
                )
                yield from self._rows_from_results(results, columns=None)
            else:
                results = snapshot.read(
                    read.table,
                    list(read.columns),
                    self._spanner_key_set(),
                    **self._index_kwargs(),
                )
                yield from self._rows_from_results(results, columns=read.columns)

    def _execute_partitioned(self) -> Iterator[dict[str, Any]]:
        read = self.read
        assert read.partition_options is not None
        bound_kwargs = read.timestamp_bound.snapshot_kwargs() if read.timestamp_bound else {}
        batch_kwargs = read.partition_options.batch_kwargs()

        snapshot = self.database.batch_snapshot(**bound_kwargs)
        try:
            if read.is_query:
                batches = snapshot.generate_query_batches(
                    read.query, params=read.params, param_types=read.param_types, **batch_kwargs
                )
            else:
                batches = snapshot.generate_read_batches(
                    read.table,
                    list(read.columns),
                    self._spanner_key_set(),
                    **self._index_kwargs(),
                    **batch_kwargs,
                )
            num_partitions = 0
            for batch in batches:
                num_partitions += 1
                results = snapshot.process(batch)
                yield from self._rows_from_results(
                    results, columns=None if read.is_query else read.columns
                )
            logger.debug("Processed %d partitions for %s", num_partitions, read)
        finally:
            snapshot.close()

    def _spanner_key_set(self) -> Any:
        key_set = self.read.key_set if self.read.key_set is not None else KeySet.all()
        return key_set.to_spanner()

    def _index_kwargs(self) -> dict[str, str]:
        return {"index": self.read.index} if self.read.index else {}

    def _rows_from_results(
        self, results: Any, columns: Sequence[str] | None
    ) -> Iterator[dict[str, Any]]:
        convert = self.config.convert_to_jax
        names: Sequence[str] | None = columns
        for row in results:
            if names is None:
                # Query result metadata is known once the first row arrived
                names = [f.name for f in results.fields]
            yield row_to_element(row, names, convert=convert)

    # ========================================================================
    # DataSourceModule interface
    # ========================================================================

    def __len__(self) -> int:
        return len(self.load())

    def __iter__(self) -> Iterator[dict[str, Any]]:
        rows = self.load()
        self.index.set_value(0)
        for row in rows:
            self._count_element()
            yield row

    def __getitem__(self, idx: int) -> dict[str, Any]:
        return self.load()[idx]

    def get_batch(self, batch_size: int) -> Batch:
        """Get the next batch of rows as a batch dict.

        Numeric columns are stacked into JAX arrays; other columns are lists.
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        rows = self.load()
        if not rows:
            return {}
        start = self.index.get_value()
        end = min(start + batch_size, len(rows))
        self.index.set_value(end % len(rows))
        self._count_element(end - start)
        return batch_elements_to_dict(rows[start:end])

    def reset(self) -> None:
        """Rewind to the first row; cached rows are kept."""
        self.index.set_value(0)

    def refresh(self) -> None:
        """Drop cached rows so the next access reads from Spanner again."""
        self.rows = None
        self.index.set_value(0)

