"""Spanrax data source components.

Connector sources live with their connector (``spanrax.spanner``); this
package holds the in-memory source used for test inputs, ``parallelize`` and
checkpoint reloads.
"""

from spanrax.sources.memory_source import MemorySource, MemorySourceConfig

__all__ = ["MemorySource", "MemorySourceConfig"]
