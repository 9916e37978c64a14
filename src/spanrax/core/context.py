"""PipelineContext - the execution context of a Spanrax pipeline.

Every source produced by a connector is bound to the context that created it.
The context carries the pipeline options, tracks whether the pipeline has been
closed, and in test mode redirects connector IO to a TestIORegistry.

Examples:
    Production context from an options file:

    ```python
    options = PipelineOptions.from_toml("pipeline.toml")
    with PipelineContext(options) as ctx:
        users = spanner_from_table(ctx, "proj", "inst", "db", "Users", ["Id", "Name"])
    ```

    Test context with a mocked input:

    ```python
    ctx = PipelineContext.for_testing(inputs={CustomIO("users"): rows})
    ```
"""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar
from urllib.parse import urlparse

from spanrax.config.options import PipelineOptions
from spanrax.core.data_source import DataSourceModule
from spanrax.sources.memory_source import MemorySource, MemorySourceConfig
from spanrax.testing.test_io import CustomIO, TestIORegistry

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=DataSourceModule)


def _is_absolute_location(location: str) -> bool:
    """True for absolute local paths and URLs with a scheme (gs://, file://)."""
    if os.path.isabs(location):
        return True
    scheme = urlparse(location).scheme
    # Single-letter schemes are Windows drive letters, not URLs
    return len(scheme) > 1


class PipelineContext:
    """Execution context shared by all sources of one pipeline.

    Args:
        options: Pipeline options (defaults to ``PipelineOptions()``)
        test_io: Registry of mocked inputs/outputs; passing one enables test mode

    Attributes:
        options: Pipeline options
        test_io: Test IO registry (None outside test mode)
    """

    def __init__(
        self,
        options: PipelineOptions | None = None,
        *,
        test_io: TestIORegistry | None = None,
    ):
        self.options = options if options is not None else PipelineOptions()
        if test_io is None and self.options.test_mode:
            test_io = TestIORegistry()
        self.test_io = test_io
        self._closed = False
        self._num_sources = 0

    @classmethod
    def for_testing(
        cls,
        inputs: Mapping[CustomIO, Iterable[Any]] | None = None,
        options: PipelineOptions | None = None,
    ) -> PipelineContext:
        """Create a test-mode context serving ``inputs``."""
        return cls(options, test_io=TestIORegistry(inputs))

    # ========================================================================
    # Lifecycle
    # ========================================================================

    @property
    def is_test(self) -> bool:
        """Whether connector IO is redirected to the test registry."""
        return self.test_io is not None

    @property
    def is_closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def require_not_closed(self) -> None:
        """Raise if the context has been closed.

        Raises:
            RuntimeError: If the context is closed.
        """
        if self._closed:
            raise RuntimeError(f"PipelineContext {self.options.app_name!r} already closed")

    def close(self) -> None:
        """Close the context; further reads through it are rejected."""
        if not self._closed:
            logger.debug(
                "Closing context %s after binding %d sources",
                self.options.app_name,
                self._num_sources,
            )
        self._closed = True

    def __enter__(self) -> PipelineContext:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # ========================================================================
    # Sources
    # ========================================================================

    def wrap(self, source: S) -> S:
        """Bind ``source`` to this context and return it.

        Raises:
            ValueError: If the source is already bound to another context.
        """
        if source.context is not None and source.context is not self:
            raise ValueError(f"{source!r} is already bound to another PipelineContext")
        source.context = self
        self._num_sources += 1
        return source

    def parallelize(self, elements: Iterable[Any], name: str | None = None) -> MemorySource:
        """Create a bound in-memory source from ``elements``."""
        self.require_not_closed()
        return self.wrap(MemorySource(MemorySourceConfig(), list(elements), name=name))

    def get_test_input(self, io: CustomIO) -> MemorySource:
        """Return a bound source over the test input registered for ``io``.

        Raises:
            RuntimeError: If the context is not in test mode.
            KeyError: If no input was registered for ``io``.
        """
        registry = self._require_test_io()
        return self.parallelize(registry.input(io), name=str(io))

    def test_out(self, io: CustomIO, collection: Iterable[Any]) -> list[Any]:
        """Record the elements of ``collection`` as the test output for ``io``.

        Returns:
            The recorded elements.

        Raises:
            RuntimeError: If the context is not in test mode.
        """
        registry = self._require_test_io()
        elements = list(collection)
        registry.record_output(io, elements)
        return elements

    def _require_test_io(self) -> TestIORegistry:
        if self.test_io is None:
            raise RuntimeError("Test IO is only available on a test-mode PipelineContext")
        return self.test_io

    # ========================================================================
    # Files
    # ========================================================================

    def temp_file(self, file_or_path: str | os.PathLike | None = None) -> str:
        """Resolve a file name or path for temporary pipeline output.

        Absolute paths and URLs are returned unchanged. Relative names are
        placed under ``options.temp_location``. Without a name a unique
        ``<app_name>-materialize-<uuid>`` name is generated.

        Raises:
            ValueError: If a relative name is given and no temp location is set.
        """
        if file_or_path is None:
            file_or_path = f"{self.options.app_name}-materialize-{uuid.uuid4().hex}"
        location = os.fspath(file_or_path)

        if _is_absolute_location(location):
            return location

        temp_location = self.options.temp_location
        if temp_location is None:
            raise ValueError(
                f"Cannot resolve relative path {location!r}: "
                "set PipelineOptions.temp_location or SPANRAX_TEMP_LOCATION"
            )
        return temp_location.rstrip("/") + "/" + location

    def object_file(self, path: str | os.PathLike) -> MemorySource:
        """Return a bound source over elements materialized at ``path``."""
        from spanrax.checkpoint.materialize import load_materialized

        self.require_not_closed()
        elements = load_materialized(path)
        return self.wrap(MemorySource(MemorySourceConfig(), elements, name=f"ObjectFile({path})"))

    def __repr__(self) -> str:
        mode = "test" if self.is_test else "live"
        state = "closed" if self._closed else "open"
        return f"PipelineContext(app_name={self.options.app_name!r}, mode={mode}, {state})"
