"""Checkpointing of pipeline segments to local storage."""

from spanrax.checkpoint.handlers import OrbaxShardHandler
from spanrax.checkpoint.materialize import is_done, load_materialized, materialize
from spanrax.checkpoint.stage import checkpoint

__all__ = [
    "OrbaxShardHandler",
    "checkpoint",
    "is_done",
    "load_materialized",
    "materialize",
]
