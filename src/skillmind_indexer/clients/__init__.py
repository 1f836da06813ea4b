from skillmind_indexer.clients.stream import HttpBlockSource, JsonlBlockSource, parse_block

__all__ = ["HttpBlockSource", "JsonlBlockSource", "parse_block"]
