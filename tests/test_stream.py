import json

import httpx
import pytest
from pydantic import ValidationError

from skillmind_indexer.clients.stream import HttpBlockSource, JsonlBlockSource, parse_block
from skillmind_indexer.core.models import Block, LogEntry
from skillmind_indexer.decoding.catalog import EventCatalog

from conftest import CONTRACT

WIRE_BLOCK = {
    "header": {
        "blockNumber": "12",
        "blockHash": "0xb12",
        "parentHash": "0xb11",
        "timestamp": "2024-01-01T00:00:00Z",
    },
    "events": [
        {
            "event": {"fromAddress": CONTRACT, "keys": ["0x1"], "data": ["0x2", "0x3"]},
            "transaction": {"meta": {"hash": "0xtx"}},
        },
        {"event": {"fromAddress": CONTRACT, "keys": ["0x4"], "data": []}},
        {"transaction": {"meta": {"hash": "0xorphan"}}},
    ],
}


async def _collect(source) -> list[Block]:
    return [b async for b in source.blocks()]


def test_parse_block() -> None:
    block = parse_block(WIRE_BLOCK)

    assert block.header is not None
    assert block.header.block_number == 12
    assert block.header.unix_timestamp == 1_704_067_200
    assert block.entries == (
        LogEntry(from_address=CONTRACT, keys=("0x1",), data=("0x2", "0x3"), tx_hash="0xtx"),
        LogEntry(from_address=CONTRACT, keys=("0x4",), data=(), tx_hash=None),
    )


def test_parse_block_without_header() -> None:
    block = parse_block({"events": []})

    assert block.header is None
    assert block.entries == ()


def test_parse_block_rejects_bad_header() -> None:
    with pytest.raises(ValidationError):
        parse_block({"header": {"blockNumber": "twelve", "timestamp": "2024-01-01T00:00:00Z"}})


@pytest.mark.asyncio
async def test_jsonl_source_skips_blank_lines(tmp_path) -> None:
    path = tmp_path / "blocks.jsonl"
    second = dict(WIRE_BLOCK, header=dict(WIRE_BLOCK["header"], blockNumber=13))
    path.write_text(json.dumps(WIRE_BLOCK) + "\n\n" + json.dumps(second) + "\n")

    blocks = await _collect(JsonlBlockSource(path))

    assert [b.header.block_number for b in blocks] == [12, 13]


@pytest.mark.asyncio
async def test_http_source_subscribes_and_streams(catalog: EventCatalog) -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        lines = [json.dumps(WIRE_BLOCK), "", json.dumps({"data": {"header": None, "events": []}})]
        return httpx.Response(200, text="\n".join(lines) + "\n")

    source = HttpBlockSource(
        "http://stream.test/v1/stream",
        stream_filter=catalog.build_filter(),
        starting_block=500,
        finality="DATA_STATUS_FINALIZED",
        transport=httpx.MockTransport(handler),
    )
    try:
        blocks = await _collect(source)
    finally:
        await source.aclose()

    assert seen["method"] == "POST"
    assert seen["body"]["startingBlock"] == 500
    assert seen["body"]["finality"] == "DATA_STATUS_FINALIZED"
    assert seen["body"]["filter"] == catalog.build_filter().to_dict()
    assert len(blocks) == 2
    assert blocks[0].header.block_number == 12
    assert blocks[1].header is None


@pytest.mark.asyncio
async def test_http_source_raises_on_error_line(catalog: EventCatalog) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=json.dumps({"error": {"message": "cursor too old"}}) + "\n")

    source = HttpBlockSource(
        "http://stream.test/v1/stream",
        stream_filter=catalog.build_filter(),
        transport=httpx.MockTransport(handler),
    )
    try:
        with pytest.raises(RuntimeError, match="cursor too old"):
            await _collect(source)
    finally:
        await source.aclose()


@pytest.mark.asyncio
async def test_http_source_raises_on_http_status(catalog: EventCatalog) -> None:
    source = HttpBlockSource(
        "http://stream.test/v1/stream",
        stream_filter=catalog.build_filter(),
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )
    try:
        with pytest.raises(httpx.HTTPStatusError):
            await _collect(source)
    finally:
        await source.aclose()
