"""Tests for PipelineContext."""

import os

import pytest

from spanrax.config.options import PipelineOptions
from spanrax.core.context import PipelineContext
from spanrax.checkpoint.materialize import materialize
from spanrax.sources.memory_source import MemorySource
from spanrax.testing.test_io import CustomIO


class TestLifecycle:
    def test_default_context_is_live_and_open(self):
        ctx = PipelineContext()
        assert not ctx.is_test
        assert not ctx.is_closed
        assert ctx.options.app_name == "spanrax"

    def test_close_rejects_further_use(self):
        ctx = PipelineContext()
        ctx.close()
        assert ctx.is_closed
        with pytest.raises(RuntimeError, match="already closed"):
            ctx.require_not_closed()
        with pytest.raises(RuntimeError):
            ctx.parallelize([1, 2])

    def test_close_is_idempotent(self):
        ctx = PipelineContext()
        ctx.close()
        ctx.close()
        assert ctx.is_closed

    def test_context_manager_closes(self):
        with PipelineContext() as ctx:
            assert not ctx.is_closed
        assert ctx.is_closed

    def test_test_mode_option_creates_registry(self):
        ctx = PipelineContext(PipelineOptions(test_mode=True))
        assert ctx.is_test
        assert ctx.test_io is not None

    def test_repr(self):
        ctx = PipelineContext.for_testing(options=PipelineOptions(app_name="job"))
        assert repr(ctx) == "PipelineContext(app_name='job', mode=test, open)"


class TestSources:
    def test_parallelize_binds_source(self):
        ctx = PipelineContext()
        source = ctx.parallelize([{"a": 1}, {"a": 2}], name="pairs")
        assert isinstance(source, MemorySource)
        assert source.context is ctx
        assert source.name == "pairs"
        assert list(source) == [{"a": 1}, {"a": 2}]

    def test_parallelize_accepts_generators(self):
        ctx = PipelineContext()
        source = ctx.parallelize(i * 2 for i in range(3))
        assert list(source) == [0, 2, 4]

    def test_wrap_rejects_foreign_source(self):
        source = PipelineContext().parallelize([1])
        with pytest.raises(ValueError, match="another PipelineContext"):
            PipelineContext().wrap(source)

    def test_wrap_same_context_is_allowed(self):
        ctx = PipelineContext()
        source = ctx.parallelize([1])
        assert ctx.wrap(source) is source


class TestTestIO:
    def test_get_test_input(self):
        io = CustomIO("users")
        ctx = PipelineContext.for_testing(inputs={io: [{"id": 1}]})
        source = ctx.get_test_input(io)
        assert source.context is ctx
        assert list(source) == [{"id": 1}]

    def test_missing_test_input(self):
        ctx = PipelineContext.for_testing()
        with pytest.raises(KeyError, match="Missing test input"):
            ctx.get_test_input(CustomIO("users"))

    def test_test_out_records_elements(self):
        ctx = PipelineContext.for_testing()
        io = CustomIO("sink")
        recorded = ctx.test_out(io, ctx.parallelize([1, 2, 3]))
        assert recorded == [1, 2, 3]
        assert ctx.test_io.output(io) == [1, 2, 3]

    def test_test_io_requires_test_mode(self):
        ctx = PipelineContext()
        with pytest.raises(RuntimeError, match="test-mode"):
            ctx.get_test_input(CustomIO("users"))
        with pytest.raises(RuntimeError, match="test-mode"):
            ctx.test_out(CustomIO("sink"), [])


class TestTempFile:
    def test_relative_name_under_temp_location(self, tmp_path):
        ctx = PipelineContext(PipelineOptions(temp_location=str(tmp_path)))
        assert ctx.temp_file("stage-a") == f"{tmp_path}/stage-a"

    def test_trailing_slash_in_temp_location(self):
        ctx = PipelineContext(PipelineOptions(temp_location="/scratch/"))
        assert ctx.temp_file("stage-a") == "/scratch/stage-a"

    def test_absolute_path_unchanged(self, tmp_path):
        ctx = PipelineContext()
        path = str(tmp_path / "ckpt")
        assert ctx.temp_file(path) == path

    def test_url_unchanged(self):
        ctx = PipelineContext()
        assert ctx.temp_file("gs://bucket/ckpt") == "gs://bucket/ckpt"

    def test_path_like_accepted(self, tmp_path):
        ctx = PipelineContext()
        assert ctx.temp_file(tmp_path / "ckpt") == os.fspath(tmp_path / "ckpt")

    def test_generated_name(self, tmp_path):
        ctx = PipelineContext(PipelineOptions(app_name="job", temp_location=str(tmp_path)))
        first, second = ctx.temp_file(), ctx.temp_file()
        assert first.startswith(f"{tmp_path}/job-materialize-")
        assert first != second

    def test_relative_name_without_temp_location(self):
        with pytest.raises(ValueError, match="temp_location"):
            PipelineContext().temp_file("stage-a")


class TestObjectFile:
    def test_object_file_reads_materialized_elements(self, tmp_path):
        path = tmp_path / "out"
        materialize(["a", "b", "c"], path)
        ctx = PipelineContext()
        source = ctx.object_file(path)
        assert source.context is ctx
        assert list(source) == ["a", "b", "c"]

    def test_object_file_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PipelineContext().object_file(tmp_path / "missing")
