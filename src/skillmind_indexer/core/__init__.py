"""Core data models, configuration, ports and use cases.

This package provides:
- Data models (Block, LogEntry, typed event records, stats)
- Configuration classes (IndexerConfig, StorageConfig, ApiConfig)
- Ports (IBlockSource, IIngestionStore)
"""

from skillmind_indexer.core.config import ApiConfig, IndexerConfig, StorageConfig
from skillmind_indexer.core.models import Block, BlockHeader, EventKind, LogEntry, Meta

__all__ = [
    "ApiConfig",
    "IndexerConfig",
    "StorageConfig",
    "Block",
    "BlockHeader",
    "EventKind",
    "LogEntry",
    "Meta",
]
