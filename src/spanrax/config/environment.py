"""Environment variable integration for pipeline options.

Options loaded from a file can be overridden per environment. A variable named
``SPANRAX_TEMP_LOCATION`` overrides the ``temp_location`` option, and nested
sections are addressed with a double underscore, e.g.
``SPANRAX_SPANNER__EMULATOR_HOST`` sets ``options["spanner"]["emulator_host"]``.
"""

import os
from typing import Any

ENV_PREFIX = "SPANRAX_"
NESTED_SEPARATOR = "__"

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "off", "0"})


def get_env_value(env_var: str, default: Any = None, prefix: str = ENV_PREFIX) -> str | None:
    """Get the raw value of a prefixed environment variable.

    Args:
        env_var: The name of the environment variable (without prefix)
        default: Value returned when the variable is not set
        prefix: Prefix applied to the variable name

    Returns:
        The environment variable value, or the default if not set
    """
    return os.environ.get(prefix + env_var, default)


def convert_env_value(value: str) -> Any:
    """Convert an environment string to bool, int, float or leave it as str.

    Args:
        value: Raw environment variable value

    Returns:
        The converted value
    """
    lowered = value.strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False

    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value


def apply_environment_overrides(
    options: dict[str, Any],
    prefix: str = ENV_PREFIX,
    separator: str = NESTED_SEPARATOR,
) -> dict[str, Any]:
    """Return a copy of ``options`` with prefixed environment variables applied.

    Variable names are lower-cased and split on ``separator`` to address
    nested sections. Missing sections are created; a scalar standing where a
    section is needed is replaced by the section.

    Args:
        options: Option dictionary to override
        prefix: Prefix for environment variables to consider
        separator: Separator used to indicate nested keys

    Returns:
        New option dictionary with overrides applied
    """
    result = _copy_sections(options)

    for env_name in sorted(os.environ):
        if not env_name.startswith(prefix) or env_name == prefix:
            continue

        path = [part.lower() for part in env_name[len(prefix) :].split(separator) if part]
        if not path:
            continue

        section = result
        for key in path[:-1]:
            child = section.get(key)
            if not isinstance(child, dict):
                child = section[key] = {}
            section = child
        section[path[-1]] = convert_env_value(os.environ[env_name])

    return result


def _copy_sections(options: dict[str, Any]) -> dict[str, Any]:
    """Copy nested dictionaries so overrides never mutate the caller's options."""
    return {
        key: _copy_sections(value) if isinstance(value, dict) else value
        for key, value in options.items()
    }
