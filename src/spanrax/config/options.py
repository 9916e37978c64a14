"""Pipeline options.

PipelineOptions are the execution-wide settings of a PipelineContext. They can
be built directly, loaded from a TOML file, or taken from the environment:

```toml
app_name = "daily-export"
temp_location = "/mnt/scratch/spanrax"
test_mode = false
```

Environment variables with the ``SPANRAX_`` prefix override file values.
"""

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from spanrax.config.environment import apply_environment_overrides
from spanrax.config.loaders import deep_merge_dict, load_toml, save_toml


@dataclass
class PipelineOptions:
    """Execution-wide options.

    Attributes:
        app_name: Name used in logs and generated temp file names
        temp_location: Directory that relative checkpoint names resolve under
        test_mode: Redirect connector reads and writes to registered test IO
    """

    app_name: str = "spanrax"
    temp_location: str | None = None
    test_mode: bool = False

    def __post_init__(self):
        """Validate options.

        Raises:
            ValueError: If an option has an invalid value.
        """
        if not self.app_name:
            raise ValueError("app_name must be a non-empty string")
        if not isinstance(self.test_mode, bool):
            raise ValueError(f"test_mode must be a bool, got {self.test_mode!r}")
        if self.temp_location is not None:
            self.temp_location = str(self.temp_location)

    @classmethod
    def from_dict(cls, values: dict[str, Any]) -> "PipelineOptions":
        """Build options from a dictionary.

        Raises:
            ValueError: If the dictionary contains unknown option names.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown pipeline options: {', '.join(unknown)}")
        return cls(**values)

    @classmethod
    def from_env(cls) -> "PipelineOptions":
        """Build options from ``SPANRAX_*`` environment variables alone."""
        return cls.from_dict(_known_only(apply_environment_overrides({})))

    @classmethod
    def from_toml(cls, path: str | Path, use_env: bool = True) -> "PipelineOptions":
        """Load options from a TOML file.

        Args:
            path: Options file
            use_env: Apply ``SPANRAX_*`` environment overrides on top of the file

        Returns:
            Parsed options
        """
        values = load_toml(path)
        if use_env:
            # Unrelated SPANRAX_* variables must not make a valid file fail
            values = deep_merge_dict(values, _known_only(apply_environment_overrides({})))
        return cls.from_dict(values)

    def to_toml(self, path: str | Path) -> None:
        """Write these options to a TOML file."""
        save_toml(asdict(self), path)


def _option_names() -> set[str]:
    return {f.name for f in fields(PipelineOptions)}


def _known_only(values: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if k in _option_names()}
