import asyncio
import time
from pathlib import Path

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from skillmind_indexer.core.models import EventKind
from skillmind_indexer.log import configure_logging
from skillmind_indexer.settings import Settings, get_settings

console = Console()


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """SkillMind indexer: education events and token transfers into SQL."""
    load_dotenv()
    settings = get_settings()
    try:
        configure_logging(log_level or settings.log_level, console=console)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--log-level") from e
    ctx.obj = settings


@cli.command("init-db")
@click.pass_context
def init_db_cmd(ctx: click.Context) -> None:
    """Create tables and indexes if they do not exist."""
    from skillmind_indexer.storage.store import SqlIngestionStore, create_store_engine

    settings = _settings(ctx)
    store = SqlIngestionStore(create_store_engine(settings.storage_config()))
    try:
        store.initialize()
    finally:
        store.close()
    console.print("[green]schema ready[/]")


@cli.command("selectors")
@click.option("--contract", default=None, help="Primary contract address (defaults to CONTRACT_ADDRESS)")
@click.pass_context
def selectors_cmd(ctx: click.Context, contract: str | None) -> None:
    """Print the event catalog: names, selectors and emitting contracts."""
    from skillmind_indexer.decoding.catalog import EventCatalog
    from skillmind_indexer.decoding.codec import format_felt

    settings = _settings(ctx)
    contract = contract or settings.contract_address
    if not contract:
        raise click.UsageError("Pass --contract or set CONTRACT_ADDRESS")
    catalog = EventCatalog.build(contract, settings.token_contract_list())

    table = Table(title="Event catalog")
    table.add_column("event")
    table.add_column("selector", overflow="fold")
    table.add_column("contract", overflow="fold")
    for kind in EventKind:
        if kind is EventKind.TRANSFER:
            emitters = ", ".join(sorted(catalog.token_contracts)) or "[dim]no token contracts[/]"
        else:
            emitters = catalog.contract_address
        table.add_row(kind.value, format_felt(catalog.selector_of(kind)), emitters)
    console.print(table)


@cli.command("index")
@click.option(
    "--source",
    "source_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSONL replay file; without it blocks are read from STREAM_URL",
)
@click.option("--max-blocks", type=int, default=None, help="Stop after this many blocks")
@click.pass_context
def index_cmd(ctx: click.Context, source_path: Path | None, max_blocks: int | None) -> None:
    """Decode blocks from a replay file or the live stream into the database."""
    from skillmind_indexer.orchestration.orchestrator import index

    settings = _settings(ctx)
    try:
        config = settings.indexer_config()
        storage = settings.storage_config()
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    t0 = time.time()
    try:
        out = asyncio.run(index(config=config, storage=storage, replay=source_path, max_blocks=max_blocks))
    except (RuntimeError, ValueError) as e:
        raise click.ClickException(str(e)) from e
    elapsed = time.time() - t0

    stats = out.stats
    console.print(f"[bold]done[/]: {stats.blocks} blocks • {stats.entries} events • {elapsed:.2f}s")
    console.print(
        f"[bold]summary[/]: "
        f"[green]saved[/]={sum(stats.saved.values())}  "
        f"[yellow]duplicates[/]={stats.duplicates}  "
        f"[yellow]skipped[/]={stats.skipped}  "
        f"[red]failed[/]={stats.failed}  "
        f"(last_block={stats.last_block}, latest_in_db={out.latest_block})"
    )
    for kind in EventKind:
        if stats.saved[kind]:
            console.print(f"  {kind.value}: {stats.saved[kind]}")


@cli.command("serve")
@click.option("--host", default=None, help="Bind address (defaults to API_HOST)")
@click.option("--port", type=int, default=None, help="Bind port (defaults to API_PORT)")
@click.pass_context
def serve_cmd(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the read-only query API."""
    import uvicorn

    from skillmind_indexer.api.server import create_app
    from skillmind_indexer.storage.store import create_store_engine

    settings = _settings(ctx)
    engine = create_store_engine(settings.storage_config())
    app = create_app(engine, settings.api_config())
    host = host or settings.api_host
    port = port or settings.api_port
    console.print(f"API server running on http://{host}:{port}")
    try:
        uvicorn.run(app, host=host, port=port, log_config=None)
    finally:
        engine.dispose()


if __name__ == "__main__":
    cli()
