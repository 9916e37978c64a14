"""Base module class for all Spanrax modules.

This module provides SpanraxModule - the base class that all Spanrax modules inherit from.
It provides common functionality like:

- Config and name storage (static, excluded from NNX state)
- Element counting for served/written elements
"""

import jax.numpy as jnp
from flax import nnx

from spanrax.core.config import ModuleConfig


class IterationCount(nnx.Variable):
    """Variable type for element counters.

    Wraps a JAX array rather than a Python int so the counter is classified
    as data by NNX and can be mutated inside transforms.
    """

    pass


class SpanraxModule(nnx.Module):
    """Base class for all Spanrax modules.

    All modules use config-based initialization with typed, validated config dataclasses.

    Args:
        config: ModuleConfig (already validated via __post_init__)
        name: Optional name for the module

    Attributes:
        config: Module configuration
        name: Module name
        _element_count: Number of elements served by this module (IterationCount)
    """

    def __init__(
        self,
        config: ModuleConfig,
        *,
        name: str | None = None,
    ):
        """Initialize SpanraxModule with config.

        Args:
            config: Module configuration (already validated)
            name: Optional module name
        """
        super().__init__()

        # Configs hold strings and client handles, not array data
        self.config = nnx.static(config)
        self.name = nnx.static(name)

        self._element_count: IterationCount = IterationCount(jnp.array(0, dtype=jnp.int32))

    # ========================================================================
    # Operation Statistics
    # ========================================================================

    def get_operation_stats(self) -> dict[str, int]:
        """Get operation statistics.

        Converts JAX arrays to Python ints; intended for use outside of
        JIT-compiled functions.

        Returns:
            Dictionary with 'element_count'
        """
        return {"element_count": int(self._element_count[...])}

    def _count_element(self, n: int = 1) -> None:
        """Add ``n`` to the element counter when tracking is enabled."""
        if self.config.track_elements:
            self._element_count[...] += n

    def reset_operation_stats(self) -> None:
        """Reset operation statistics to zero."""
        self._element_count[...] = 0

    def __repr__(self) -> str:
        """Return a string representation of the module."""
        return f"{self.__class__.__name__}(name={self.name!r})"
