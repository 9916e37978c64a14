"""Materializing pipeline elements to local storage.

Layout of a materialized path::

    <path>/
        part-00000-of-00002/   Orbax shard
        part-00001-of-00002/   Orbax shard
        _SUCCESS               JSON marker, written last

Elements are moved to host memory and pickled; each shard stores the pickled
bytes of a contiguous slice of the elements as a uint8 array. The marker lists
the shards and the element count. A path without a marker, or whose marker
names a missing shard, is not done and is overwritten by the next
materialize().

Only local paths (and ``file://`` URLs) are supported.
"""

from __future__ import annotations

import json
import logging
import os
import pickle
from collections.abc import Iterable
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import numpy as np

from spanrax.checkpoint.handlers import OrbaxShardHandler
from spanrax.sources._conversion import to_device, to_host

logger = logging.getLogger(__name__)

SUCCESS_MARKER = "_SUCCESS"


def shard_name(index: int, num_shards: int) -> str:
    return f"part-{index:05d}-of-{num_shards:05d}"


def _local_path(path: str | os.PathLike) -> Path:
    location = os.fspath(path)
    parsed = urlparse(location)
    if parsed.scheme == "file":
        return Path(parsed.path)
    if len(parsed.scheme) > 1:
        raise ValueError(f"Only local paths can be materialized, got {location!r}")
    return Path(location)


def _encode_shard(elements: list[Any]) -> dict[str, np.ndarray]:
    payload = pickle.dumps(to_host(elements), protocol=pickle.HIGHEST_PROTOCOL)
    return {
        "payload": np.frombuffer(payload, dtype=np.uint8),
        "num_elements": np.asarray(len(elements), dtype=np.int64),
    }


def _decode_shard(shard: dict[str, Any]) -> list[Any]:
    payload = np.asarray(shard["payload"], dtype=np.uint8).tobytes()
    elements = pickle.loads(payload)  # noqa: S301 - written by materialize()
    expected = int(np.asarray(shard["num_elements"]))
    if len(elements) != expected:
        raise ValueError(f"Corrupt shard: expected {expected} elements, found {len(elements)}")
    return to_device(elements)


def _read_marker(root: Path) -> Any:
    marker = root / SUCCESS_MARKER
    if not marker.is_file():
        return None
    return json.loads(marker.read_text())


def materialize(
    elements: Iterable[Any],
    path: str | os.PathLike,
    num_shards: int = 1,
    async_checkpointing: bool = False,
) -> int:
    """Write ``elements`` to ``path`` and mark the path as done.

    Args:
        elements: Elements to store, in order
        path: Local directory to write
        num_shards: Number of shards; elements are split into contiguous slices
        async_checkpointing: Save shards concurrently; the marker is still
            written only after every shard is finalized

    Returns:
        Number of elements written.

    Raises:
        ValueError: If ``num_shards`` is not positive or ``path`` is not local.
    """
    if num_shards <= 0:
        raise ValueError(f"num_shards must be positive, got {num_shards}")
    root = _local_path(path)
    root.mkdir(parents=True, exist_ok=True)
    # A stale marker from an earlier run must not outlive the shards it names
    (root / SUCCESS_MARKER).unlink(missing_ok=True)

    items = list(elements)
    bounds = np.linspace(0, len(items), num_shards + 1).astype(int)
    names = [shard_name(i, num_shards) for i in range(num_shards)]

    with OrbaxShardHandler(async_checkpointing=async_checkpointing) as handler:
        for i, name in enumerate(names):
            shard = _encode_shard(items[bounds[i] : bounds[i + 1]])
            handler.save(root / name, shard, overwrite=True)
        handler.wait_until_finished()

    marker = {"shards": names, "num_elements": len(items)}
    tmp_marker = root / f".{SUCCESS_MARKER}.tmp"
    tmp_marker.write_text(json.dumps(marker, indent=2))
    os.replace(tmp_marker, root / SUCCESS_MARKER)

    logger.debug("Materialized %d elements in %d shards at %s", len(items), num_shards, root)
    return len(items)


def is_done(path: str | os.PathLike) -> bool:
    """Whether ``path`` holds a completely materialized output."""
    root = _local_path(path)
    try:
        marker = _read_marker(root)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return False
    if not isinstance(marker, dict) or not isinstance(marker.get("num_elements"), int):
        return False
    shards = marker.get("shards")
    if not isinstance(shards, list) or not all(isinstance(name, str) for name in shards):
        return False
    return all((root / name).is_dir() for name in shards)


def load_materialized(path: str | os.PathLike) -> list[Any]:
    """Load the elements materialized at ``path``, in their original order.

    Raises:
        FileNotFoundError: If ``path`` is not done.
        ValueError: If a shard does not match the marker.
    """
    root = _local_path(path)
    if not is_done(root):
        raise FileNotFoundError(f"No completed output at {root}")
    marker = _read_marker(root)
    assert marker is not None

    elements: list[Any] = []
    with OrbaxShardHandler() as handler:
        for name in marker["shards"]:
            elements.extend(_decode_shard(handler.restore(root / name)))

    if len(elements) != marker["num_elements"]:
        raise ValueError(
            f"Marker at {root} lists {marker['num_elements']} elements, "
            f"shards hold {len(elements)}"
        )
    logger.debug("Loaded %d elements from %s", len(elements), root)
    return elements
