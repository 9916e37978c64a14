"""Configuration dataclasses for Spanrax modules.

This module provides the typed configuration base classes shared by all
Spanrax modules:

- ModuleConfig: Base configuration for all modules
- StructuralConfig: Configuration for structural modules (runtime immutable)

All configs use dataclass with __post_init__ validation for fail-fast configuration errors.
"""

from dataclasses import dataclass
from typing import Any


class FrozenInstanceError(Exception):
    """Raised when attempting to modify a frozen config instance."""

    pass


@dataclass
class ModuleConfig:
    """Base configuration for all Spanrax modules.

    Configuration is validated at construction, before being passed to a module.
    Child classes inherit from this and add their specific configuration.

    Attributes:
        track_elements: Whether the module counts the elements it serves
    """

    track_elements: bool = True

    def __post_init__(self):
        """Validate configuration after initialization.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not isinstance(self.track_elements, bool):
            raise ValueError(f"track_elements must be a bool, got {type(self.track_elements)}")


@dataclass
class StructuralConfig(ModuleConfig):
    """Configuration for structural modules (runtime immutable).

    Inherits from ModuleConfig:
    - track_elements: bool

    Note: This config enforces runtime immutability through __setattr__ override.
    After __post_init__ completes, the instance is frozen and cannot be modified.
    """

    def __post_init__(self):
        """Validate configuration and freeze instance.

        Raises:
            ValueError: If configuration is invalid.
        """
        super().__post_init__()

        # Mark as frozen after validation (must use object.__setattr__)
        object.__setattr__(self, "_frozen", True)

    def __setattr__(self, name: str, value: Any) -> None:
        """Override setattr to enforce immutability after initialization.

        Args:
            name: Attribute name
            value: Attribute value

        Raises:
            FrozenInstanceError: If attempting to modify frozen instance
        """
        if hasattr(self, "_frozen") and object.__getattribute__(self, "_frozen"):
            raise FrozenInstanceError(
                f"Cannot modify frozen {type(self).__name__} field '{name}'. "
                f"{type(self).__name__} instances are immutable after construction."
            )
        object.__setattr__(self, name, value)
