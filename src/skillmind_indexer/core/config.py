from __future__ import annotations

from dataclasses import dataclass

from skillmind_indexer.core.constants import (
    DECIMALS,
    DEFAULT_PAGE_SIZE,
    FINALITY_ACCEPTED,
    MAX_PAGE_SIZE,
)


@dataclass(frozen=True)
class IndexerConfig:
    """Configuration consumed by the ingestion pipeline."""

    contract_address: str
    token_contracts: tuple[str, ...] = ()
    starting_block: int = 0
    finality: str = FINALITY_ACCEPTED
    decimals: int = DECIMALS
    network: str = "mainnet"
    stream_url: str | None = None


@dataclass(frozen=True)
class StorageConfig:
    """Connection settings for the relational store."""

    url: str
    pool_size: int = 10
    max_overflow: int = 20
    echo: bool = False


@dataclass(frozen=True)
class ApiConfig:
    """Configuration for the read-only query service."""

    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE
    cors_origins: tuple[str, ...] = ("*",)
