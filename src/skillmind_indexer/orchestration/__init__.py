"""Orchestration for wiring block sources and the store into the indexer.

This package provides:
- Pure entry point (run_indexer) over the ports
- Convenience wrapper (index) that builds concrete adapters from configuration
"""

from skillmind_indexer.orchestration.orchestrator import IndexOutput, build_source, index, run_indexer

__all__ = [
    "IndexOutput",
    "build_source",
    "index",
    "run_indexer",
]
