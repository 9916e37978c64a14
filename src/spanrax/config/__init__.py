"""Configuration for Spanrax pipelines.

Options files are TOML; environment variables prefixed with ``SPANRAX_``
override file values.
"""

from spanrax.config.environment import apply_environment_overrides, get_env_value
from spanrax.config.loaders import deep_merge_dict, load_toml, save_toml
from spanrax.config.options import PipelineOptions

__all__ = [
    "PipelineOptions",
    "apply_environment_overrides",
    "get_env_value",
    "deep_merge_dict",
    "load_toml",
    "save_toml",
]
