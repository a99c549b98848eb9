"""CLI entry point for the royalty_indexer daemon."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click

from royalty_indexer.api.admin import IndexerAdmin, play_splits
from royalty_indexer.chain.source import JsonRpcLogSource
from royalty_indexer.config import load_config
from royalty_indexer.daemon import run_daemon
from royalty_indexer.errors import ConfigError, StrategyConfigError
from royalty_indexer.models.config import IndexerConfig
from royalty_indexer.models.events import PaymentType, format_amount, to_token_units
from royalty_indexer.models.records import ReplayReport
from royalty_indexer.models.strategy import PaymentRoute, StrategyConfig
from royalty_indexer.pipeline.writer import LedgerWriter
from royalty_indexer.storage.sqlite import SQLiteLedgerStore
from royalty_indexer.strategy.base import ProtocolFee
from royalty_indexer.strategy.router import StrategyRouter


def _load(ctx: click.Context, validate: bool = True) -> IndexerConfig:
    """Load config; exit with status 1 if it is incomplete."""
    try:
        cfg = load_config(ctx.obj["config_path"])
        if validate:
            cfg.validate()
    except ConfigError as e:
        click.echo("Error: invalid configuration.", err=True)
        for problem in e.problems:
            click.echo(f"  - {problem}", err=True)
        click.echo("Set ROYALTY_INDEXER_* env vars or edit the config file.", err=True)
        sys.exit(1)
    return cfg


def _router(cfg: IndexerConfig) -> StrategyRouter:
    try:
        fee = ProtocolFee(cfg.strategy.protocol_fee_bps, cfg.strategy.treasury)
    except StrategyConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    return StrategyRouter(fee)


def _tokens(wei: int) -> str:
    return format_amount(to_token_units(wei))


def _echo_route(route: PaymentRoute) -> None:
    click.echo(f"Gross:         {route.gross} wei ({_tokens(route.gross)})")
    click.echo(f"Protocol fee:  {route.protocol_fee} wei -> {route.treasury or '(treasury not set)'}")
    click.echo(f"Net:           {route.net} wei ({_tokens(route.net)})")
    for s in route.splits:
        click.echo(f"  {s.role:10s} {s.recipient}  {s.basis_points:5d}bp  {s.amount} wei")


def _echo_replay(report: ReplayReport) -> None:
    click.echo(f"Scanned:   {report.scanned}")
    click.echo(f"Succeeded: {report.succeeded}")
    click.echo(f"Failed:    {report.failed}")
    for tx_hash, log_index, reason in report.errors:
        click.echo(f"  {tx_hash}:{log_index}  {reason}")


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """royalty_indexer - PaymentRecorded indexer and royalty router."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Daemon ─────────────────────────────────────────────


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the indexer daemon."""
    cfg = _load(ctx)
    if not ctx.obj["verbose"]:
        logging.getLogger().setLevel(cfg.log_level.upper())

    click.echo(f"Starting royalty_indexer daemon (router: {cfg.router_address})")
    asyncio.run(run_daemon(cfg))


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration and ledger progress."""
    cfg = _load(ctx, validate=False)

    async def _status():
        store = SQLiteLedgerStore(cfg.db_path)
        await store.initialize()
        try:
            checkpoint = await store.get_checkpoint(cfg.source_name)
            plays = await store.count_plays()
            poisoned = await store.count_poison()
        finally:
            await store.close()

        click.echo(f"RPC URL:     {cfg.rpc_url}")
        click.echo(f"Router:      {cfg.router_address or '(not set)'}")
        click.echo(f"DB path:     {cfg.db_path}")
        click.echo(f"Chunk size:  {cfg.chunk_size}")
        click.echo(f"Retry limit: {cfg.retry_limit}")
        click.echo(f"Checkpoint:  {checkpoint if checkpoint is not None else '(none)'}")
        click.echo(f"Plays:       {plays}")
        click.echo(f"Poisoned:    {poisoned}")

    asyncio.run(_status())


# ── Replay ─────────────────────────────────────────────


async def _with_admin(cfg: IndexerConfig, action):
    store = SQLiteLedgerStore(cfg.db_path)
    source = JsonRpcLogSource(cfg.rpc_url, cfg.rpc_timeout)
    await store.initialize()
    try:
        admin = IndexerAdmin(
            store, source, LedgerWriter(store, cfg.db_timeout), cfg.router_address,
        )
        return await action(admin)
    finally:
        await source.close()
        await store.close()


@cli.command()
@click.argument("from_block", type=int)
@click.argument("to_block", type=int)
@click.pass_context
def replay(ctx: click.Context, from_block: int, to_block: int) -> None:
    """Re-process an explicit block range. The checkpoint is not moved."""
    if from_block > to_block:
        raise click.BadParameter("FROM_BLOCK must not exceed TO_BLOCK")
    cfg = _load(ctx)
    report = asyncio.run(_with_admin(
        cfg, lambda admin: admin.replay_range(from_block, to_block, cfg.chunk_size),
    ))
    _echo_replay(report)


@cli.group()
def poison():
    """Inspect and replay quarantined events."""
    pass


@poison.command("list")
@click.option("-n", "--limit", type=int, default=100, help="Number of rows to show")
@click.pass_context
def poison_list(ctx: click.Context, limit: int) -> None:
    """List poisoned events, newest first."""
    cfg = _load(ctx, validate=False)

    async def _list():
        store = SQLiteLedgerStore(cfg.db_path)
        await store.initialize()
        try:
            return await store.list_poison(limit=limit)
        finally:
            await store.close()

    rows = asyncio.run(_list())
    if not rows:
        click.echo("No poisoned events.")
        return
    for p in rows:
        click.echo(
            f"  {p.tx_hash}:{p.log_index}  block={p.block_number}  "
            f"attempts={p.attempts}  {p.reason}"
        )


@poison.command("replay")
@click.argument("tx_hash")
@click.argument("log_index", type=int)
@click.pass_context
def poison_replay(ctx: click.Context, tx_hash: str, log_index: int) -> None:
    """Replay one event by transaction hash and log index."""
    cfg = _load(ctx)
    report = asyncio.run(_with_admin(
        cfg, lambda admin: admin.replay_event(tx_hash, log_index),
    ))
    _echo_replay(report)
    if report.failed:
        sys.exit(1)


@poison.command("retry")
@click.option("-n", "--limit", type=int, default=50, help="Oldest rows to retry")
@click.pass_context
def poison_retry(ctx: click.Context, limit: int) -> None:
    """Replay the oldest poisoned events."""
    cfg = _load(ctx)
    report = asyncio.run(_with_admin(cfg, lambda admin: admin.retry_poison(limit)))
    _echo_replay(report)


# ── Strategies ─────────────────────────────────────────


@cli.group()
def strategy():
    """Configure and preview per-song economic strategies."""
    pass


@strategy.command("list")
@click.pass_context
def strategy_list(ctx: click.Context) -> None:
    """List available strategy identifiers."""
    cfg = _load(ctx, validate=False)
    for strategy_id in _router(cfg).strategy_ids:
        click.echo(strategy_id)


@strategy.command("set")
@click.argument("song_id")
@click.argument("strategy_id")
@click.option("--params", "params_json", default="{}", help="Strategy parameters as JSON")
@click.pass_context
def strategy_set(ctx: click.Context, song_id: str, strategy_id: str, params_json: str) -> None:
    """Assign a strategy to a song. Applies to future payments only."""
    cfg = _load(ctx, validate=False)
    try:
        params = json.loads(params_json)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--params")

    config = StrategyConfig(song_id=song_id, strategy_id=strategy_id, params=params)
    try:
        _router(cfg).build(config)
    except StrategyConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    async def _save():
        store = SQLiteLedgerStore(cfg.db_path)
        await store.initialize()
        try:
            await store.save_strategy_config(config)
        finally:
            await store.close()

    asyncio.run(_save())
    click.echo(f"Song {song_id} -> {strategy_id}")


@strategy.command("show")
@click.argument("song_id")
@click.pass_context
def strategy_show(ctx: click.Context, song_id: str) -> None:
    """Show a song's strategy configuration."""
    cfg = _load(ctx, validate=False)

    async def _show():
        store = SQLiteLedgerStore(cfg.db_path)
        await store.initialize()
        try:
            return await store.get_strategy_config(song_id)
        finally:
            await store.close()

    config = asyncio.run(_show())
    if config is None:
        click.echo(f"Song {song_id} has no strategy configured.")
        sys.exit(1)
    click.echo(f"Song:      {config.song_id}")
    click.echo(f"Strategy:  {config.strategy_id}")
    click.echo(f"Updated:   {config.updated_at}")
    click.echo(f"Params:    {json.dumps(config.params, sort_keys=True)}")


@strategy.command("preview")
@click.argument("song_id")
@click.argument("amount", type=int)
@click.option(
    "--type", "payment_type", default="stream",
    type=click.Choice([t.label for t in PaymentType]), help="Payment type",
)
@click.pass_context
def strategy_preview(ctx: click.Context, song_id: str, amount: int, payment_type: str) -> None:
    """Show how AMOUNT (wei) would be divided for a song."""
    cfg = _load(ctx, validate=False)
    router = _router(cfg)

    async def _preview():
        store = SQLiteLedgerStore(cfg.db_path)
        await store.initialize()
        try:
            return await router.load_song(store, song_id)
        finally:
            await store.close()

    if asyncio.run(_preview()) is None:
        click.echo(f"Song {song_id} has no strategy configured.", err=True)
        sys.exit(1)
    _echo_route(router.preview_splits(song_id, amount, PaymentType.from_label(payment_type)))


@cli.command()
@click.argument("tx_hash")
@click.argument("log_index", type=int)
@click.pass_context
def splits(ctx: click.Context, tx_hash: str, log_index: int) -> None:
    """Show splits for a recorded play under its song's current strategy."""
    cfg = _load(ctx, validate=False)
    router = _router(cfg)

    async def _splits():
        store = SQLiteLedgerStore(cfg.db_path)
        await store.initialize()
        try:
            return await play_splits(store, tx_hash, log_index, router)
        finally:
            await store.close()

    try:
        route = asyncio.run(_splits())
    except LookupError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    _echo_route(route)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
