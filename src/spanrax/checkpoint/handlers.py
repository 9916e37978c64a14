"""Orbax handler for materialized shards.

A shard is a small PyTree of numpy arrays. Serialization is left to Orbax's
StandardCheckpointer; this module only fixes the on-disk location and the
save/restore protocol used by ``spanrax.checkpoint.materialize``.
"""

from pathlib import Path
from typing import Any

import orbax.checkpoint as ocp


class OrbaxShardHandler:
    """Save and restore shard PyTrees with Orbax."""

    def __init__(self, async_checkpointing: bool = False):
        """Initialize the handler.

        Args:
            async_checkpointing: If True, save() returns once the write has been
                scheduled. Call wait_until_finished() before relying on the
                files being complete.
        """
        self.async_checkpointing = async_checkpointing
        if async_checkpointing:
            self.checkpointer = ocp.AsyncCheckpointer(ocp.StandardCheckpointHandler())
        else:
            self.checkpointer = ocp.StandardCheckpointer()

    def wait_until_finished(self) -> None:
        """Block until any outstanding async save completes."""
        self.checkpointer.wait_until_finished()

    def save(self, directory: str | Path, shard: Any, overwrite: bool = False) -> str:
        """Save the ``shard`` PyTree to ``directory``.

        Orbax writes into a temporary directory and renames it on completion,
        so ``directory`` only appears once the shard is finalized.

        Returns:
            Absolute path of the saved shard.
        """
        directory = Path(directory).absolute()
        directory.parent.mkdir(parents=True, exist_ok=True)

        self.checkpointer.save(str(directory), shard, force=overwrite)
        if not self.async_checkpointing:
            self.checkpointer.wait_until_finished()
        return str(directory)

    def restore(self, directory: str | Path) -> Any:
        """Restore the shard saved in ``directory``.

        Raises:
            ValueError: If ``directory`` does not exist.
        """
        directory = Path(directory).absolute()
        if not directory.exists():
            raise ValueError(f"Shard directory not found: {directory}")

        if self.async_checkpointing:
            self.checkpointer.wait_until_finished()
        return self.checkpointer.restore(str(directory))

    def close(self) -> None:
        """Wait for outstanding saves and release the checkpointer."""
        self.checkpointer.close()

    def __enter__(self) -> "OrbaxShardHandler":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
