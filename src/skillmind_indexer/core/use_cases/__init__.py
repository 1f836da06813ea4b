from skillmind_indexer.core.use_cases.ingest import BlockProcessor, IndexerService

__all__ = ["BlockProcessor", "IndexerService"]
