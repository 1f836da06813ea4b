"""Block sources: JSONL replay files and an HTTP NDJSON stream.

This module provides:
- `parse_block`: wire JSON (one block) → `Block`
- `JsonlBlockSource`: replays blocks stored one per line in a file
- `HttpBlockSource`: subscribes once with the catalog filter and reads the
  streamed blocks with sane timeouts/connection limits

Wire shape of one block::

    {"header": {"blockNumber": "12", "blockHash": "0x..", "parentHash": "0x..",
                "timestamp": "2024-01-01T00:00:00Z"},
     "events": [{"event": {"fromAddress": "0x..", "keys": [...], "data": [...]},
                 "transaction": {"meta": {"hash": "0x.."}}}]}
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import httpx
from pydantic import BaseModel

from skillmind_indexer.core.constants import FINALITY_ACCEPTED
from skillmind_indexer.core.interfaces import IBlockSource
from skillmind_indexer.core.models import Block, BlockHeader, LogEntry
from skillmind_indexer.decoding.catalog import StreamFilter


class WireHeader(BaseModel):
    blockNumber: int
    blockHash: str = ""
    parentHash: str = ""
    timestamp: str


class WireEvent(BaseModel):
    fromAddress: str = ""
    keys: list[str] = []
    data: list[str] = []


class WireTxMeta(BaseModel):
    hash: str | None = None


class WireTransaction(BaseModel):
    meta: WireTxMeta | None = None


class WireEventItem(BaseModel):
    event: WireEvent | None = None
    transaction: WireTransaction | None = None

    def to_entry(self) -> LogEntry | None:
        if self.event is None:
            return None
        meta = self.transaction.meta if self.transaction else None
        return LogEntry(
            from_address=self.event.fromAddress,
            keys=tuple(self.event.keys),
            data=tuple(self.event.data),
            tx_hash=meta.hash if meta else None,
        )


class WireBlock(BaseModel):
    header: WireHeader | None = None
    events: list[WireEventItem] = []

    def to_block(self) -> Block:
        header = None
        if self.header is not None:
            header = BlockHeader(
                block_number=self.header.blockNumber,
                block_hash=self.header.blockHash,
                parent_hash=self.header.parentHash,
                timestamp=self.header.timestamp,
            )
        entries = (item.to_entry() for item in self.events)
        return Block(header=header, entries=tuple(e for e in entries if e is not None))


def parse_block(raw: dict[str, Any]) -> Block:
    """Validate one wire block; entries without an event body are dropped.

    Raises `pydantic.ValidationError` (a `ValueError`) on a malformed block.
    """
    return WireBlock.model_validate(raw).to_block()


class JsonlBlockSource(IBlockSource):
    """Replay blocks from a JSONL file (one wire block per line)."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @staticmethod
    def _read_lines(path: Path) -> list[str]:
        with open(path, encoding="utf-8") as f:
            return f.readlines()

    async def blocks(self) -> AsyncGenerator[Block, None]:
        lines = await asyncio.to_thread(self._read_lines, self.path)
        for line in lines:
            if not line.strip():
                continue
            yield parse_block(json.loads(line))


class HttpBlockSource(IBlockSource):
    """Stream blocks from an HTTP endpoint speaking NDJSON.

    Parameters
    ----------
    url : str
        Stream endpoint URL.
    stream_filter : StreamFilter
        Subscription declared once when the stream opens.
    starting_block : int
        First block to deliver.
    finality : str
        Finality policy tag forwarded to the source.
    timeout_s : int
        Connect/write timeout in seconds. Reads wait indefinitely for the next
        block, which is how a live stream idles.
    """

    def __init__(
        self,
        url: str,
        *,
        stream_filter: StreamFilter,
        starting_block: int = 0,
        finality: str = FINALITY_ACCEPTED,
        timeout_s: int = 20,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.stream_filter = stream_filter
        self.starting_block = starting_block
        self.finality = finality
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(connect=timeout_s, read=None, write=timeout_s, pool=timeout_s),
            limits=httpx.Limits(max_connections=1, max_keepalive_connections=1),
            transport=transport,
        )

    def subscription(self) -> dict[str, Any]:
        return {
            "filter": self.stream_filter.to_dict(),
            "startingBlock": self.starting_block,
            "finality": self.finality,
        }

    async def blocks(self) -> AsyncGenerator[Block, None]:
        async with self.client.stream("POST", self.url, json=self.subscription()) as r:
            r.raise_for_status()
            async for line in r.aiter_lines():
                if not line.strip():
                    continue  # heartbeat
                msg = json.loads(line)
                if "error" in msg:
                    e = msg["error"]
                    detail = e.get("message") if isinstance(e, dict) else e
                    raise RuntimeError(f"Stream error: {detail}")
                yield parse_block(msg.get("data", msg))

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
