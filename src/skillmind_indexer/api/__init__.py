"""Read-only HTTP query service."""

from skillmind_indexer.api.server import create_app

__all__ = ["create_app"]
