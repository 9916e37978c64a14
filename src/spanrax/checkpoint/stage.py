"""Checkpointing a pipeline segment.

``checkpoint`` memoizes the source produced by a segment-building function.
The first run builds the segment and materializes its elements; later runs
against the same path reload the elements instead of calling the function.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from spanrax.checkpoint.materialize import is_done, materialize
from spanrax.core.context import PipelineContext
from spanrax.core.data_source import DataSourceModule
from spanrax.typing import SegmentFn

logger = logging.getLogger(__name__)


def checkpoint(
    ctx: PipelineContext,
    file_or_path: str | os.PathLike,
    fn: SegmentFn,
    num_shards: int = 1,
) -> DataSourceModule:
    """Return the segment built by ``fn``, reusing a completed checkpoint.

    Args:
        ctx: Context of the pipeline
        file_or_path: Checkpoint location; relative names are resolved with
            ``ctx.temp_file``
        fn: Builds the segment; must return a source bound to ``ctx``
        num_shards: Shards to write when materializing

    Returns:
        A source over the reloaded elements when ``file_or_path`` is done,
        otherwise the source returned by ``fn``.

    Raises:
        ValueError: If ``fn`` returns a source bound to a different context.

    Examples:
        ```python
        users = checkpoint(
            ctx, "users-ckpt", lambda: spanner_from_table(ctx, p, i, d, "Users", ["Id"])
        )
        ```
    """
    path = ctx.temp_file(file_or_path)
    if is_done(path):
        logger.info("Checkpoint hit: loading %s", path)
        return ctx.object_file(path)

    logger.info("Checkpoint miss: building segment for %s", path)
    result = fn()
    result_ctx: Any = getattr(result, "context", None)
    if result_ctx is not ctx:
        raise ValueError(
            f"Checkpointed segment must belong to the calling context, got {result!r}"
        )
    materialize(result, path, num_shards=num_shards)
    return result
