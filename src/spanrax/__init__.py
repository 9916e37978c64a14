"""Spanrax: Cloud Spanner IO and stage checkpoints for JAX data pipelines.

Spanrax binds data sources to a PipelineContext. Connector functions read
Spanner tables and queries into sources and commit mutations from them; the
checkpoint helper memoizes the output of a pipeline segment on local storage.
A test-mode context redirects all connector IO to in-memory test inputs and
outputs.
"""

# Core modules
from spanrax.core.config import ModuleConfig, StructuralConfig
from spanrax.core.context import PipelineContext
from spanrax.core.data_source import DataSourceModule

# Configuration
from spanrax.config import PipelineOptions

# Sources
from spanrax.sources import MemorySource, MemorySourceConfig

# Spanner connector
from spanrax.spanner import (
    KeySet,
    Mutation,
    MutationGroup,
    PartitionOptions,
    SpannerConfig,
    TimestampBound,
    save_as_spanner,
    save_as_spanner_with_config,
    save_mutation_groups_as_spanner,
    save_mutation_groups_as_spanner_with_config,
    spanner_from_query,
    spanner_from_query_with_config,
    spanner_from_table,
    spanner_from_table_with_config,
)

# Testing
from spanrax.testing import CustomIO

# Types
from spanrax.typing import Batch, Element

__version__ = "0.1.0"

__all__ = [
    # Type aliases
    "Batch",
    "Element",
    # Core
    "ModuleConfig",
    "StructuralConfig",
    "DataSourceModule",
    "PipelineContext",
    "PipelineOptions",
    # Sources
    "MemorySource",
    "MemorySourceConfig",
    # Spanner
    "SpannerConfig",
    "PartitionOptions",
    "TimestampBound",
    "KeySet",
    "Mutation",
    "MutationGroup",
    "spanner_from_table",
    "spanner_from_table_with_config",
    "spanner_from_query",
    "spanner_from_query_with_config",
    "save_as_spanner",
    "save_as_spanner_with_config",
    "save_mutation_groups_as_spanner",
    "save_mutation_groups_as_spanner_with_config",
    # Testing
    "CustomIO",
]
