"""Type definitions for Spanrax.

Provides common type aliases used throughout the codebase.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeAlias

# A single pipeline element: column or field name -> value
Element: TypeAlias = dict[str, Any]
# A batch of elements: numeric fields stacked, others collected as lists
Batch: TypeAlias = dict[str, Any]

# Builds a pipeline segment; used by the checkpoint helper
SegmentFn: TypeAlias = Callable[[], Any]


__all__ = [
    "Element",
    "Batch",
    "SegmentFn",
]
