from collections.abc import Callable, Iterator, Sequence

import pytest
from sqlalchemy import Engine

from skillmind_indexer.core.config import IndexerConfig, StorageConfig
from skillmind_indexer.core.models import Block, BlockHeader, EventKind, LogEntry, Meta
from skillmind_indexer.decoding.catalog import EventCatalog
from skillmind_indexer.decoding.codec import format_felt
from skillmind_indexer.settings import get_settings
from skillmind_indexer.storage.store import SqlIngestionStore, create_store_engine

CONTRACT = "0x3c1f0fb3e1a3d4b5c6a7f8e9d0c1b2a3f4e5d6c7b8a9f0e1d2c3b4a5f6e7d8c"
TOKEN = "0x4718f5a0fc34cc1af16a1cdee98ffb20c31f5cd61d6ab07201858f4287c938d"
OTHER_TOKEN = "0x53c91253bc9682c04929ca02ed00b3e423f6710d2ee7e0d5ebb06f3ecf368a8"

EntryFactory = Callable[..., LogEntry]


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def indexer_config() -> IndexerConfig:
    return IndexerConfig(contract_address=CONTRACT, token_contracts=(TOKEN,))


@pytest.fixture
def catalog(indexer_config: IndexerConfig) -> EventCatalog:
    return EventCatalog.from_config(indexer_config)


@pytest.fixture
def meta() -> Meta:
    return Meta(timestamp=1_700_000_100, block_number=42, tx_hash="0xfeed")


@pytest.fixture
def engine() -> Iterator[Engine]:
    eng = create_store_engine(StorageConfig(url="sqlite:///:memory:"))
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine: Engine) -> SqlIngestionStore:
    s = SqlIngestionStore(engine)
    s.initialize()
    return s


@pytest.fixture
def make_entry(catalog: EventCatalog) -> EntryFactory:
    """Build a log entry for `kind`; education events come from the primary contract."""

    def _make(
        kind: EventKind,
        data: Sequence[str],
        *,
        from_address: str | None = None,
        tx_hash: str | None = "0xfeed",
    ) -> LogEntry:
        if from_address is None:
            from_address = TOKEN if kind is EventKind.TRANSFER else CONTRACT
        return LogEntry(
            from_address=from_address,
            keys=(format_felt(catalog.selector_of(kind)),),
            data=tuple(data),
            tx_hash=tx_hash,
        )

    return _make


def make_block(number: int, entries: Sequence[LogEntry], timestamp: str = "2023-11-14T22:15:00Z") -> Block:
    return Block(
        header=BlockHeader(
            block_number=number,
            block_hash=format_felt(0xB000 + number),
            parent_hash=format_felt(0xB000 + number - 1),
            timestamp=timestamp,
        ),
        entries=tuple(entries),
    )


@pytest.fixture
def block_factory() -> Callable[..., Block]:
    return make_block
