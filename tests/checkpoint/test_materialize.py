"""Tests for materializing elements to local storage."""

import json

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from spanrax.checkpoint.materialize import (
    SUCCESS_MARKER,
    is_done,
    load_materialized,
    materialize,
    shard_name,
)
from spanrax.spanner.mutations import Mutation


def test_shard_name():
    assert shard_name(3, 12) == "part-00003-of-00012"


class TestMaterialize:
    def test_layout(self, tmp_path):
        count = materialize(range(5), tmp_path / "out", num_shards=2)

        assert count == 5
        root = tmp_path / "out"
        assert (root / "part-00000-of-00002").is_dir()
        assert (root / "part-00001-of-00002").is_dir()
        marker = json.loads((root / SUCCESS_MARKER).read_text())
        assert marker == {
            "shards": ["part-00000-of-00002", "part-00001-of-00002"],
            "num_elements": 5,
        }

    @pytest.mark.parametrize("num_shards", [1, 3, 8])
    def test_order_preserved(self, tmp_path, num_shards):
        elements = [{"id": i, "name": f"row-{i}"} for i in range(6)]
        materialize(elements, tmp_path / "out", num_shards=num_shards)
        assert load_materialized(tmp_path / "out") == elements

    def test_jax_arrays_round_trip(self, tmp_path, sample_elements):
        materialize(sample_elements, tmp_path / "out")
        loaded = load_materialized(tmp_path / "out")
        assert isinstance(loaded[0]["id"], jax.Array)
        np.testing.assert_array_equal(
            jnp.stack([e["id"] for e in loaded]), jnp.arange(10)
        )
        assert [e["name"] for e in loaded] == [e["name"] for e in sample_elements]

    def test_mutations_round_trip(self, tmp_path):
        mutations = [Mutation.insert("Singers", ["SingerId"], [[i]]) for i in range(3)]
        materialize(mutations, tmp_path / "out")
        assert load_materialized(tmp_path / "out") == mutations

    def test_empty(self, tmp_path):
        assert materialize([], tmp_path / "out", num_shards=2) == 0
        assert is_done(tmp_path / "out")
        assert load_materialized(tmp_path / "out") == []

    def test_file_url(self, tmp_path):
        materialize([1, 2], f"file://{tmp_path}/out")
        assert load_materialized(tmp_path / "out") == [1, 2]

    def test_remote_path_rejected(self):
        with pytest.raises(ValueError, match="Only local paths"):
            materialize([1], "gs://bucket/out")

    def test_invalid_num_shards(self, tmp_path):
        with pytest.raises(ValueError, match="num_shards"):
            materialize([1], tmp_path / "out", num_shards=0)

    def test_rewrite_replaces_previous_output(self, tmp_path):
        materialize([1, 2, 3], tmp_path / "out")
        materialize([4], tmp_path / "out")
        assert load_materialized(tmp_path / "out") == [4]


class TestIsDone:
    def test_missing_path(self, tmp_path):
        assert not is_done(tmp_path / "missing")

    def test_shards_without_marker(self, tmp_path):
        materialize([1, 2], tmp_path / "out")
        (tmp_path / "out" / SUCCESS_MARKER).unlink()
        assert not is_done(tmp_path / "out")

    def test_marker_naming_missing_shard(self, tmp_path):
        root = tmp_path / "out"
        root.mkdir()
        (root / SUCCESS_MARKER).write_text(
            json.dumps({"shards": ["part-00000-of-00001"], "num_elements": 1})
        )
        assert not is_done(root)

    @pytest.mark.parametrize(
        "content",
        [
            "{not json",
            "[]",
            '"x"',
            "3",
            "null",
            "{}",
            '{"shards": "part-00000-of-00001", "num_elements": 1}',
            '{"shards": [1], "num_elements": 1}',
            '{"shards": []}',
        ],
    )
    def test_corrupt_marker(self, tmp_path, content):
        root = tmp_path / "out"
        root.mkdir()
        (root / SUCCESS_MARKER).write_text(content)
        assert not is_done(root)
        with pytest.raises(FileNotFoundError):
            load_materialized(root)

    def test_undecodable_marker(self, tmp_path):
        root = tmp_path / "out"
        root.mkdir()
        (root / SUCCESS_MARKER).write_bytes(b"\xff\xfe\x00")
        assert not is_done(root)

    def test_load_requires_done(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="No completed output"):
            load_materialized(tmp_path / "missing")
