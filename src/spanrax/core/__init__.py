"""Core building blocks of Spanrax: configs, modules and data sources.

PipelineContext lives in ``spanrax.core.context``; it depends on the concrete
sources and is not re-exported here.
"""

from spanrax.core.config import FrozenInstanceError, ModuleConfig, StructuralConfig
from spanrax.core.data_source import DataSourceModule
from spanrax.core.module import SpanraxModule

__all__ = [
    "FrozenInstanceError",
    "ModuleConfig",
    "StructuralConfig",
    "SpanraxModule",
    "DataSourceModule",
]
