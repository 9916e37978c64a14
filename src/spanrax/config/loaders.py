"""TOML loading and saving for pipeline options files."""

from pathlib import Path
from typing import Any

import tomli_w  # type: ignore

try:
    import tomllib  # type: ignore
except ImportError:
    import tomli as tomllib  # type: ignore


def load_toml(path: str | Path) -> dict[str, Any]:
    """Load a TOML file.

    Args:
        path: Path to the TOML file

    Returns:
        Parsed TOML document

    Raises:
        FileNotFoundError: If the file does not exist
        tomllib.TOMLDecodeError: If the file is not valid TOML
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Options file not found: {path}")

    with path.open("rb") as f:
        return tomllib.load(f)


def save_toml(document: dict[str, Any], path: str | Path) -> None:
    """Write ``document`` to a TOML file, creating parent directories.

    None values are dropped since TOML has no null.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("wb") as f:
        tomli_w.dump(_drop_none(document), f)


def deep_merge_dict(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``.

    Args:
        base: Base dictionary
        override: Dictionary whose values take precedence

    Returns:
        A new merged dictionary
    """
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge_dict(merged[key], value)
        else:
            merged[key] = value
    return merged


def _drop_none(document: dict[str, Any]) -> dict[str, Any]:
    return {
        key: _drop_none(value) if isinstance(value, dict) else value
        for key, value in document.items()
        if value is not None
    }
