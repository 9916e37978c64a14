"""Base module for data sources in Spanrax.

This module defines the base class for all Spanrax data source components
that use flax.nnx.Module for state management.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

from flax import nnx

from spanrax.core.config import StructuralConfig
from spanrax.core.module import SpanraxModule
from spanrax.typing import Element

if TYPE_CHECKING:
    from spanrax.core.context import PipelineContext


class DataSourceModule(SpanraxModule):
    """Base module for all Spanrax data source components.

    A DataSourceModule reads data from an external source (a database, files,
    memory) and yields data elements, typically dictionaries of JAX arrays and
    Python primitives.

    A source may be bound to the PipelineContext that produced it through
    ``context``. Unbound sources have ``context=None``; the Spanner write path
    and the checkpoint helper require a bound source.

    **Important**: When subclassing, if you store data containing JAX Arrays in
    an attribute (like `self.data`), you MUST annotate it with `nnx.data()`:

    Examples:
        ```python
        class MySource(DataSourceModule):
            data: list[dict] = nnx.data()

            def __init__(self, config: StructuralConfig, data: list[dict], *,
                         name: str | None = None):
                super().__init__(config, name=name)
                self.data = data
        ```
    """

    def __init__(
        self,
        config: StructuralConfig,
        *,
        name: str | None = None,
    ):
        """Initialize the data source.

        Args:
            config: Source configuration (already validated, frozen)
            name: Optional module name
        """
        super().__init__(config, name=name)

        self.context: PipelineContext | None = nnx.static(None)

    def __iter__(self) -> Iterator[Element]:
        """Return an iterator over individual data elements.

        Returns:
            An iterator that yields data elements.
        """
        raise NotImplementedError("Subclasses must implement __iter__")

    def __len__(self) -> int:
        """Return the total number of data elements.

        Raises:
            NotImplementedError: If the source cannot determine its length.
        """
        raise NotImplementedError("This DataSourceModule does not support length determination.")

    def __getitem__(self, idx: int) -> Element | None:
        """Get element by index.

        Subclasses should override this method if they support random access.

        Args:
            idx: Index of the element to retrieve.

        Returns:
            The data element at the given index, or None if not implemented.
        """
        return None
