"""Pipeline-level Spanner reads and writes.

These functions connect a PipelineContext to Cloud Spanner. Reads return a
SpannerSource bound to the context; writes commit the mutations of a bound
source. In a test-mode context nothing reaches Spanner: reads serve the rows
registered under ``CustomIO(str(spanner_config))`` and writes record their
elements under the same key.

Examples:
    ```python
    with PipelineContext(options) as ctx:
        singers = spanner_from_table(
            ctx, "my-project", "my-instance", "my-db",
            table="Singers", columns=["SingerId", "FirstName"],
        )
        mutations = ctx.parallelize(
            Mutation.insert("Names", ["Id", "Name"], [[r["SingerId"], r["FirstName"]]])
            for r in singers
        )
        save_as_spanner(mutations, "my-project", "my-instance", "my-db")
    ```
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from spanrax.core.context import PipelineContext
from spanrax.core.data_source import DataSourceModule
from spanrax.spanner.config import PartitionOptions, SpannerConfig, TimestampBound
from spanrax.spanner.mutations import KeySet, MutationGroup
from spanrax.spanner.read import SpannerRead, SpannerSource, SpannerSourceConfig
from spanrax.spanner.write import SpannerWrite, SpannerWriteResult
from spanrax.testing.test_io import CustomIO


def _spanner_config(project_id: str, instance_id: str, database_id: str) -> SpannerConfig:
    return (
        SpannerConfig.create()
        .with_project_id(project_id)
        .with_instance_id(instance_id)
        .with_database_id(database_id)
    )


def _test_io(spanner_config: SpannerConfig) -> CustomIO:
    return CustomIO(str(spanner_config))


# ============================================================================
# Reads
# ============================================================================


def spanner_from_table(
    ctx: PipelineContext,
    project_id: str,
    instance_id: str,
    database_id: str,
    table: str,
    columns: Iterable[str],
    key_set: KeySet | None = None,
    partition_options: PartitionOptions | None = None,
    timestamp_bound: TimestampBound | None = None,
    index: str | None = None,
) -> DataSourceModule:
    """Read columns of a Spanner table.

    Args:
        ctx: Context the returned source is bound to
        project_id: Google Cloud project
        instance_id: Spanner instance
        database_id: Spanner database
        table: Table to read
        columns: Columns to read
        key_set: Rows to read (all rows when omitted)
        partition_options: Read in partitions with these hints
        timestamp_bound: Snapshot consistency (strong when omitted)
        index: Secondary index to read through

    Returns:
        A source of row dicts bound to ``ctx``.
    """
    config = _spanner_config(project_id, instance_id, database_id)
    return spanner_from_table_with_config(
        ctx, config, table, columns, key_set, partition_options, timestamp_bound, index
    )


def spanner_from_table_with_config(
    ctx: PipelineContext,
    spanner_config: SpannerConfig,
    table: str,
    columns: Iterable[str],
    key_set: KeySet | None = None,
    partition_options: PartitionOptions | None = None,
    timestamp_bound: TimestampBound | None = None,
    index: str | None = None,
    database: Any | None = None,
) -> DataSourceModule:
    """Read columns of a Spanner table with an explicit SpannerConfig.

    See ``spanner_from_table``. ``database`` reuses an open client Database.

    Raises:
        RuntimeError: If ``ctx`` is closed.
    """
    ctx.require_not_closed()
    if ctx.is_test:
        return ctx.get_test_input(_test_io(spanner_config))

    read = SpannerRead(spanner_config).with_table(table).with_columns(list(columns))
    if key_set is not None:
        read = read.with_key_set(key_set)
    if partition_options is not None:
        read = read.with_partition_options(partition_options)
    if timestamp_bound is not None:
        read = read.with_timestamp_bound(timestamp_bound)
    if index is not None:
        read = read.with_index(index)

    return ctx.wrap(SpannerSource(SpannerSourceConfig(read=read), database=database))


def spanner_from_query(
    ctx: PipelineContext,
    project_id: str,
    instance_id: str,
    database_id: str,
    query: str,
    index: str | None = None,
    partition_options: PartitionOptions | None = None,
    timestamp_bound: TimestampBound | None = None,
    params: dict[str, Any] | None = None,
    param_types: dict[str, Any] | None = None,
) -> DataSourceModule:
    """Read the result of a SQL query.

    Args:
        ctx: Context the returned source is bound to
        project_id: Google Cloud project
        instance_id: Spanner instance
        database_id: Spanner database
        query: SQL query
        index: Recorded on the read but not applied to SQL; a warning is issued
        partition_options: Run the query in partitions with these hints
        timestamp_bound: Snapshot consistency (strong when omitted)
        params: Query parameters
        param_types: Spanner types of the query parameters

    Returns:
        A source of row dicts bound to ``ctx``.
    """
    config = _spanner_config(project_id, instance_id, database_id)
    return spanner_from_query_with_config(
        ctx, config, query, index, partition_options, timestamp_bound, params, param_types
    )


def spanner_from_query_with_config(
    ctx: PipelineContext,
    spanner_config: SpannerConfig,
    query: str,
    index: str | None = None,
    partition_options: PartitionOptions | None = None,
    timestamp_bound: TimestampBound | None = None,
    params: dict[str, Any] | None = None,
    param_types: dict[str, Any] | None = None,
    database: Any | None = None,
) -> DataSourceModule:
    """Read the result of a SQL query with an explicit SpannerConfig.

    See ``spanner_from_query``. ``database`` reuses an open client Database.

    Raises:
        RuntimeError: If ``ctx`` is closed.
    """
    ctx.require_not_closed()
    if ctx.is_test:
        return ctx.get_test_input(_test_io(spanner_config))

    read = SpannerRead(spanner_config).with_query(query, params, param_types)
    if index is not None:
        read = read.with_index(index)
    if partition_options is not None:
        read = read.with_partition_options(partition_options)
    if timestamp_bound is not None:
        read = read.with_timestamp_bound(timestamp_bound)

    return ctx.wrap(SpannerSource(SpannerSourceConfig(read=read), database=database))


# ============================================================================
# Writes
# ============================================================================


def save_as_spanner(
    mutations: DataSourceModule,
    project_id: str,
    instance_id: str,
    database_id: str,
    batch_size_bytes: int = 0,
) -> SpannerWriteResult:
    """Commit the Mutations of a bound source to Spanner.

    Args:
        mutations: Source of Mutation elements bound to a PipelineContext
        project_id: Google Cloud project
        instance_id: Spanner instance
        database_id: Spanner database
        batch_size_bytes: Commit size budget; 0 uses the default

    Returns:
        Counts and commit timestamps of the write.
    """
    config = _spanner_config(project_id, instance_id, database_id)
    return save_as_spanner_with_config(mutations, config, batch_size_bytes)


def save_as_spanner_with_config(
    mutations: DataSourceModule,
    spanner_config: SpannerConfig,
    batch_size_bytes: int = 0,
    database: Any | None = None,
) -> SpannerWriteResult:
    """Commit the Mutations of a bound source with an explicit SpannerConfig."""
    return _save(mutations, SpannerWrite(spanner_config), batch_size_bytes, database)


def save_mutation_groups_as_spanner(
    groups: DataSourceModule,
    project_id: str,
    instance_id: str,
    database_id: str,
    batch_size_bytes: int = 0,
) -> SpannerWriteResult:
    """Commit the MutationGroups of a bound source, each group atomically.

    Args:
        groups: Source of MutationGroup elements bound to a PipelineContext
        project_id: Google Cloud project
        instance_id: Spanner instance
        database_id: Spanner database
        batch_size_bytes: Commit size budget; 0 uses the default

    Returns:
        Counts and commit timestamps of the write.
    """
    config = _spanner_config(project_id, instance_id, database_id)
    return save_mutation_groups_as_spanner_with_config(groups, config, batch_size_bytes)


def save_mutation_groups_as_spanner_with_config(
    groups: DataSourceModule,
    spanner_config: SpannerConfig,
    batch_size_bytes: int = 0,
    database: Any | None = None,
) -> SpannerWriteResult:
    """Commit the MutationGroups of a bound source with an explicit SpannerConfig."""
    return _save(groups, SpannerWrite(spanner_config).grouped(), batch_size_bytes, database)


def _save(
    collection: DataSourceModule,
    write: SpannerWrite,
    batch_size_bytes: int,
    database: Any | None,
) -> SpannerWriteResult:
    ctx = _context_of(collection)
    if ctx.is_test:
        elements = ctx.test_out(_test_io(write.spanner_config), collection)
        return SpannerWriteResult(
            mutation_count=sum(len(e) if isinstance(e, MutationGroup) else 1 for e in elements),
            group_count=len(elements),
        )

    if batch_size_bytes > 0:
        write = write.with_batch_size_bytes(batch_size_bytes)
    return write.write(collection, database=database)


def _context_of(collection: DataSourceModule) -> PipelineContext:
    ctx = getattr(collection, "context", None)
    if not isinstance(ctx, PipelineContext):
        raise ValueError(
            f"{collection!r} is not bound to a PipelineContext; "
            "create it with PipelineContext.parallelize or a connector read"
        )
    return ctx
