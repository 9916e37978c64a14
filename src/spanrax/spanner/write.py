"""Writing mutations to Cloud Spanner.

SpannerWrite commits a stream of mutations or mutation groups. Groups are packed
in arrival order into commits whose estimated size stays within
``batch_size_bytes``; a group is never split, so a group larger than the budget
is committed on its own. Each commit is a single ``Database.batch()`` and is
applied atomically by Spanner.

Failures raised by the client propagate unchanged; mutations committed by
earlier batches stay committed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from typing import Any

from spanrax.spanner.config import SpannerConfig
from spanrax.spanner.mutations import Mutation, MutationGroup, to_mutation_group

logger = logging.getLogger(__name__)

# Commit size budget used when none (or a non-positive one) is given: 1 MiB
DEFAULT_BATCH_SIZE_BYTES = 1024 * 1024


@dataclass
class SpannerWriteResult:
    """Outcome of a completed write.

    Attributes:
        mutation_count: Mutations written
        group_count: Mutation groups written (equals mutation_count for ungrouped writes)
        batch_count: Commits issued
        commit_timestamps: Commit timestamp of every batch, in commit order
    """

    mutation_count: int = 0
    group_count: int = 0
    batch_count: int = 0
    commit_timestamps: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class SpannerWrite:
    """Immutable description of a Spanner write.

    Examples:
        ```python
        write = SpannerWrite(config).with_batch_size_bytes(512 * 1024)
        result = write.write(mutations)

        grouped = SpannerWrite(config).grouped()
        result = grouped.write(mutation_groups)
        ```
    """

    spanner_config: SpannerConfig
    batch_size_bytes: int = DEFAULT_BATCH_SIZE_BYTES
    is_grouped: bool = False

    def __post_init__(self):
        if self.batch_size_bytes <= 0:
            object.__setattr__(self, "batch_size_bytes", DEFAULT_BATCH_SIZE_BYTES)

    def with_spanner_config(self, spanner_config: SpannerConfig) -> SpannerWrite:
        return replace(self, spanner_config=spanner_config)

    def with_batch_size_bytes(self, batch_size_bytes: int) -> SpannerWrite:
        """Set the commit size budget; non-positive values keep the default."""
        return replace(self, batch_size_bytes=batch_size_bytes)

    def grouped(self) -> SpannerWrite:
        """Return a write that takes MutationGroups instead of Mutations."""
        return replace(self, is_grouped=True)

    def write(
        self,
        elements: Iterable[Mutation | MutationGroup],
        database: Any | None = None,
    ) -> SpannerWriteResult:
        """Commit ``elements`` to Spanner.

        Args:
            elements: Mutations (ungrouped write) or MutationGroups (grouped write)
            database: ``google.cloud.spanner`` Database; opened from the config if omitted

        Returns:
            Counts and commit timestamps of the write.

        Raises:
            TypeError: If an element does not match the write's grouping.
        """
        self.spanner_config.validate()
        groups = (self._as_group(element) for element in elements)

        result = SpannerWriteResult()
        for batch in pack_groups(groups, self.batch_size_bytes):
            if database is None:
                database = self.spanner_config.database()
            timestamp = commit_batch(database, batch)
            result.batch_count += 1
            result.group_count += len(batch)
            result.mutation_count += sum(len(group) for group in batch)
            result.commit_timestamps.append(timestamp)

        logger.debug(
            "Wrote %d mutations in %d groups with %d commits to %s",
            result.mutation_count,
            result.group_count,
            result.batch_count,
            self.spanner_config,
        )
        return result

    def _as_group(self, element: Any) -> MutationGroup:
        if self.is_grouped and not isinstance(element, MutationGroup):
            raise TypeError(f"Grouped write expects MutationGroup, got {type(element).__name__}")
        if not self.is_grouped and not isinstance(element, Mutation):
            raise TypeError(f"Ungrouped write expects Mutation, got {type(element).__name__}")
        return to_mutation_group(element)

    def __str__(self) -> str:
        kind = "grouped" if self.is_grouped else "ungrouped"
        return (
            f"SpannerWrite({self.spanner_config}, {kind}, "
            f"batch_size_bytes={self.batch_size_bytes})"
        )


def pack_groups(
    groups: Iterable[MutationGroup], batch_size_bytes: int
) -> Iterator[list[MutationGroup]]:
    """Pack groups into consecutive batches within the byte budget.

    Groups keep their order. A batch is closed when adding the next group
    would exceed ``batch_size_bytes``; a group alone above the budget forms
    its own batch.
    """
    batch: list[MutationGroup] = []
    batch_bytes = 0
    for group in groups:
        size = group.estimate_size()
        if batch and batch_bytes + size > batch_size_bytes:
            yield batch
            batch, batch_bytes = [], 0
        batch.append(group)
        batch_bytes += size
    if batch:
        yield batch


def commit_batch(database: Any, batch: list[MutationGroup]) -> Any:
    """Apply every mutation of ``batch`` in one atomic commit.

    Returns:
        The commit timestamp reported by the client.
    """
    with database.batch() as spanner_batch:
        for group in batch:
            for mutation in group:
                mutation.apply(spanner_batch)
    return spanner_batch.committed
