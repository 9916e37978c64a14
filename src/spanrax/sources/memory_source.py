"""In-memory data source implementation for Spanrax.

This module provides a data source that serves data from in-memory collections.
It backs test inputs, ``PipelineContext.parallelize`` and checkpoint reloads.
"""

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import flax.nnx as nnx

from spanrax.core.config import StructuralConfig
from spanrax.core.data_source import DataSourceModule
from spanrax.sources._conversion import batch_elements_to_dict


@dataclass
class MemorySourceConfig(StructuralConfig):
    """Configuration for MemorySource.

    MemorySource adds no options to the inherited ones.
    """

    pass


class MemorySource(DataSourceModule):
    """In-memory data source for Spanrax.

    Serves elements from a list/sequence of elements, or from a dictionary
    mapping field names to equally long arrays.

    Examples:
        ```python
        data = [{"id": i, "name": f"row-{i}"} for i in range(100)]
        source = MemorySource(MemorySourceConfig(), data)

        for item in source:
            process(item)

        batch = source.get_batch(32)  # Gets next 32 items
        ```
    """

    data: dict[str, Any] | list[Any] | Sequence[Any] = nnx.data()

    def __init__(
        self,
        config: MemorySourceConfig,
        data: dict[str, Any] | list[Any] | Sequence[Any],
        *,
        name: str | None = None,
    ):
        """Initialize memory source with config.

        Args:
            config: Configuration for the MemorySource
            data: Either a dictionary mapping keys to data arrays or a
                list/sequence of elements. If a dictionary is provided,
                all values must have the same first dimension size.
            name: Optional name for the module (defaults to "MemorySource")

        Raises:
            ValueError: If dictionary data has inconsistent lengths
            TypeError: If data is a string
        """
        super().__init__(config, name=name or "MemorySource")

        if isinstance(data, str | bytes):
            raise TypeError(
                f"MemorySource expects a list, sequence, or dictionary, got {type(data).__name__}"
            )

        if isinstance(data, dict):
            lengths = {key: len(value) for key, value in data.items() if hasattr(value, "__len__")}
            if not lengths:
                raise ValueError("Data dictionary must contain at least one array-like value")
            if len(set(lengths.values())) != 1:
                raise ValueError(
                    f"All arrays in data dictionary must have the same length. "
                    f"Got lengths: {lengths}"
                )
            self.length = next(iter(lengths.values()))
        else:
            data = list(data)
            self.length = len(data)

        self.data = data
        self.index = nnx.Variable(0)
        self.epoch = nnx.Variable(0)

    def __len__(self) -> int:
        """Return the total number of data elements."""
        return self.length

    def __iter__(self) -> Iterator[Any]:
        """Iterate over data elements in order.

        Each full iteration starts a new epoch.
        """
        self.index.set_value(0)
        self.epoch.set_value(self.epoch.get_value() + 1)
        for i in range(self.length):
            self._count_element()
            yield self._get_element(i)

    def __getitem__(self, index: int) -> Any:
        """Get element at specific index.

        Raises:
            IndexError: If index is out of bounds
        """
        if index < 0:
            index = self.length + index
        if index < 0 or index >= self.length:
            raise IndexError(f"Index {index} out of range for source with {self.length} elements")
        return self._get_element(index)

    def get_batch(self, batch_size: int) -> Any:
        """Get the next batch of data, advancing the internal index.

        The last batch of an epoch may be smaller than ``batch_size``; the
        index then wraps to the start of the next epoch.

        Args:
            batch_size: Number of elements in the batch

        Returns:
            For dictionary data, a dict of array slices. For element lists of
            dicts, a dict with numeric fields stacked and other fields as lists.
            Otherwise a list of elements.
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if self.length == 0:
            return {} if isinstance(self.data, dict) else []

        start = self.index.get_value()
        end = min(start + batch_size, self.length)

        new_index = end % self.length
        self.index.set_value(new_index)
        if new_index == 0:
            self.epoch.set_value(self.epoch.get_value() + 1)
        self._count_element(end - start)

        if isinstance(self.data, dict):
            return {key: value[start:end] for key, value in self.data.items()}
        elements = self.data[start:end]
        if elements and all(isinstance(e, dict) for e in elements):
            return batch_elements_to_dict(elements)
        return elements

    def _get_element(self, index: int) -> Any:
        data = self.data
        if isinstance(data, dict):
            return {key: value[index] for key, value in data.items()}
        return data[index]

    def reset(self) -> None:
        """Reset the source to the beginning."""
        self.index.set_value(0)
        self.epoch.set_value(0)

    def __repr__(self) -> str:
        """String representation."""
        data_type = "dict" if isinstance(self.data, dict) else "list"
        return (
            f"MemorySource("
            f"type={data_type}, "
            f"length={self.length}, "
            f"index={self.index.get_value()}/{self.length}, "
            f"epoch={self.epoch.get_value()})"
        )
