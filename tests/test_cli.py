import json

import pytest
from click.testing import CliRunner
from sqlalchemy import create_engine, func, select

from skillmind_indexer.cli import cli
from skillmind_indexer.core.models import EventKind
from skillmind_indexer.decoding.catalog import EventCatalog
from skillmind_indexer.decoding.codec import encode_packed_text, format_felt
from skillmind_indexer.storage.schema import exams, transactions

from conftest import CONTRACT, TOKEN


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> str:
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setenv("CONTRACT_ADDRESS", CONTRACT)
    monkeypatch.setenv("TOKEN_CONTRACTS", TOKEN)
    monkeypatch.setenv("DB_CONNECTION_STRING", db_url)
    monkeypatch.delenv("STREAM_URL", raising=False)
    monkeypatch.setattr("skillmind_indexer.cli.configure_logging", lambda *args, **kwargs: None)
    return db_url


def _wire_event(catalog: EventCatalog, kind: EventKind, data: list[str], from_address: str) -> dict:
    return {
        "event": {"fromAddress": from_address, "keys": [format_felt(catalog.selector_of(kind))], "data": data},
        "transaction": {"meta": {"hash": "0xtx"}},
    }


def _write_replay(path, catalog: EventCatalog) -> None:
    exam = [
        "0x1",
        "0x0",
        encode_packed_text("Midterm"),
        "0xabc",
        format_felt(1_700_000_000),
        format_felt(3600),
        "0x1",
    ]
    blocks = [
        {
            "header": {"blockNumber": 7, "blockHash": "0x7", "parentHash": "0x6", "timestamp": "2024-01-01T00:00:00Z"},
            "events": [
                _wire_event(catalog, EventKind.EXAM_CREATED, exam, CONTRACT),
                _wire_event(catalog, EventKind.TRANSFER, ["0xa", "0xb", format_felt(10**18), "0x0"], TOKEN),
            ],
        },
        {
            "header": {"blockNumber": 8, "blockHash": "0x8", "parentHash": "0x7", "timestamp": "2024-01-01T00:00:10Z"},
            "events": [_wire_event(catalog, EventKind.EXAM_CREATED, exam, CONTRACT)],
        },
    ]
    path.write_text("\n".join(json.dumps(b) for b in blocks) + "\n")


def test_selectors_lists_every_event(env: str) -> None:
    result = CliRunner().invoke(cli, ["selectors"])

    assert result.exit_code == 0, result.output
    for kind in EventKind:
        assert kind.value in result.output


def test_selectors_requires_contract(env: str, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CONTRACT_ADDRESS")

    result = CliRunner().invoke(cli, ["selectors"])

    assert result.exit_code != 0
    assert "CONTRACT_ADDRESS" in result.output


def test_init_db(env: str) -> None:
    result = CliRunner().invoke(cli, ["init-db"])

    assert result.exit_code == 0, result.output
    with create_engine(env).connect() as conn:
        assert conn.execute(select(func.count()).select_from(exams)).scalar_one() == 0


def test_index_from_replay_file(env: str, tmp_path, catalog: EventCatalog) -> None:
    replay = tmp_path / "blocks.jsonl"
    _write_replay(replay, catalog)

    result = CliRunner().invoke(cli, ["index", "--source", str(replay)])

    assert result.exit_code == 0, result.output
    assert "2 blocks" in result.output
    assert "saved=2" in result.output
    assert "duplicates=1" in result.output
    engine = create_engine(env)
    with engine.connect() as conn:
        assert conn.execute(select(func.count()).select_from(exams)).scalar_one() == 1
        assert conn.execute(select(func.count()).select_from(transactions)).scalar_one() == 1
    engine.dispose()


def test_index_max_blocks(env: str, tmp_path, catalog: EventCatalog) -> None:
    replay = tmp_path / "blocks.jsonl"
    _write_replay(replay, catalog)

    result = CliRunner().invoke(cli, ["index", "--source", str(replay), "--max-blocks", "1"])

    assert result.exit_code == 0, result.output
    assert "1 blocks" in result.output


def test_index_without_source_needs_stream_url(env: str) -> None:
    result = CliRunner().invoke(cli, ["index"])

    assert result.exit_code == 1
    assert "STREAM_URL" in result.output
