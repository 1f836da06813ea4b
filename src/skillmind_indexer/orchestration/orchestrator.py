"""Indexing orchestrator: block source → decode → relational store.

This module provides two layers:

1) `run_indexer(...)`:
   - Pure application-layer entry point.
   - Depends ONLY on interfaces (IBlockSource, IIngestionStore) and the catalog.
   - Does NOT instantiate engines, stores or HTTP clients.
   - Does NOT manage lifecycle (e.g., closing the stream client).

2) `index(...)` (convenience wrapper):
   - Wires concrete implementations (SqlIngestionStore, JsonlBlockSource or
     HttpBlockSource) from configuration for typical CLI / script usage.
   - Calls `run_indexer(...)` under the hood and releases what it opened.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from skillmind_indexer.clients.stream import HttpBlockSource, JsonlBlockSource
from skillmind_indexer.core.config import IndexerConfig, StorageConfig
from skillmind_indexer.core.interfaces import IBlockSource, IIngestionStore
from skillmind_indexer.core.models import RunStats
from skillmind_indexer.core.use_cases.ingest import BlockProcessor, IndexerService
from skillmind_indexer.decoding.catalog import EventCatalog
from skillmind_indexer.storage.store import SqlIngestionStore, create_store_engine

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Output DTO
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class IndexOutput:
    """High-level output of an indexing run."""
    stats: RunStats
    source: str
    latest_block: int | None


# ---------------------------------------------------------------------------
# 1) Pure application entry point (no concrete instantiation)
# ---------------------------------------------------------------------------


async def run_indexer(
    *,
    config: IndexerConfig,
    catalog: EventCatalog,
    source: IBlockSource,
    store: IIngestionStore,
    max_blocks: int | None = None,
) -> RunStats:
    """Consume `source` into `store` until exhausted or `max_blocks` is reached."""
    processor = BlockProcessor(store, catalog, decimals=config.decimals)
    service = IndexerService(source, processor)
    return await service.run(max_blocks=max_blocks)


# ---------------------------------------------------------------------------
# 2) Convenience wrapper (wires concrete implementations)
# ---------------------------------------------------------------------------


def build_source(config: IndexerConfig, catalog: EventCatalog, replay: Path | None = None) -> IBlockSource:
    """JSONL replay when a file is given, otherwise the configured HTTP stream."""
    if replay is not None:
        return JsonlBlockSource(replay)
    if not config.stream_url:
        raise ValueError("STREAM_URL is required when no replay file is given")
    return HttpBlockSource(
        config.stream_url,
        stream_filter=catalog.build_filter(),
        starting_block=config.starting_block,
        finality=config.finality,
    )


async def index(
    *,
    config: IndexerConfig,
    storage: StorageConfig,
    replay: Path | None = None,
    max_blocks: int | None = None,
) -> IndexOutput:
    """Wire store, catalog and source from configuration and run one indexing pass."""
    catalog = EventCatalog.from_config(config)
    store = SqlIngestionStore(create_store_engine(storage))
    source: IBlockSource | None = None
    label = str(replay) if replay is not None else str(config.stream_url)
    try:
        store.initialize()
        source = build_source(config, catalog, replay)
        logger.info(
            "Indexing contract %s (%d token contracts) from %s",
            config.contract_address,
            len(catalog.token_contracts),
            label,
        )
        stats = await run_indexer(
            config=config,
            catalog=catalog,
            source=source,
            store=store,
            max_blocks=max_blocks,
        )
        latest = store.latest_block()
    finally:
        if isinstance(source, HttpBlockSource):
            await source.aclose()
        store.close()

    return IndexOutput(stats=stats, source=label, latest_block=latest)
