"""CLI entry point for the poap_claim tracker."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from poap_claim.config import load_config, load_event
from poap_claim.models.records import TxStatus
from poap_claim.tracker import ClaimTracker, watch_session

_STATUS_LABELS = {
    TxStatus.PENDING: "pending",
    TxStatus.PASSED: "delivered",
    TxStatus.FAILED: "failed",
}


def _tx_line(tx) -> str:
    stage = "queued" if tx.status == TxStatus.PENDING and not tx.hash else _STATUS_LABELS[tx.status]
    return f"{tx.key:<16} {tx.address}  {stage:<9} {tx.hash or '-'}  (queue {tx.queue_uid})"


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """poap-claim - claim a delivery and track it until it settles on-chain."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show tracker configuration."""
    cfg = load_config(ctx.obj["config_path"])
    click.echo(f"API URL:       {cfg.api_url}")
    click.echo(f"API key:       {'***configured***' if cfg.api_key else '(not set)'}")
    click.echo(f"Origin RPC:    {cfg.origin_rpc_url or '(not set)'}")
    click.echo(f"Delivery RPC:  {cfg.delivery_rpc_url}")
    click.echo(f"Poll interval: {cfg.poll_interval}s")
    click.echo(f"Timeout:       {cfg.request_timeout}s")
    click.echo(f"DB path:       {cfg.db_path}")


@cli.command()
@click.option("--key", default=None, help="Only show transactions for this event key")
@click.pass_context
def transactions(ctx: click.Context, key: str | None) -> None:
    """List tracked claim transactions."""
    cfg = load_config(ctx.obj["config_path"])

    async def _list():
        async with ClaimTracker(cfg) as tracker:
            return await tracker.store.list(key)

    txs = asyncio.run(_list())
    if not txs:
        click.echo("No tracked transactions.")
        return
    for tx in txs:
        click.echo(_tx_line(tx))


@cli.command()
@click.argument("event_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def rewards(ctx: click.Context, event_file: str) -> None:
    """List the rewards delivered by an event."""
    cfg = load_config(ctx.obj["config_path"])
    event = load_event(event_file)

    async def _rewards():
        async with ClaimTracker(cfg) as tracker:
            session = tracker.session(event)
            return session.rewards(await tracker.queue.get_reward_events())

    for reward in asyncio.run(_rewards()):
        click.echo(f"#{reward.id:<8} {reward.name}")


# ── Claim flow ─────────────────────────────────────────


@cli.command()
@click.argument("event_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("value")
@click.pass_context
def resolve(ctx: click.Context, event_file: str, value: str) -> None:
    """Check an address or ENS name against an event's claim list."""
    cfg = load_config(ctx.obj["config_path"])
    event = load_event(event_file)

    async def _resolve():
        async with ClaimTracker(cfg) as tracker:
            session = tracker.session(event)
            ok = await session.validate(value)
            return ok, session

    ok, session = asyncio.run(_resolve())
    if not ok:
        click.echo(f"Error: {session.error}", err=True)
        sys.exit(1)

    resolved = session.resolved
    click.echo(f"Address:  {resolved.address}")
    if resolved.display_name:
        click.echo(f"ENS:      {resolved.display_name}")
    click.echo(f"Claims:   {', '.join(str(c) for c in resolved.claims) or '(none)'}")
    click.echo(f"Claimed:  {'yes' if session.claimed else 'no'}")


@cli.command()
@click.argument("event_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("value")
@click.option("--delivery-id", type=int, required=True, help="Delivery to claim against")
@click.option("--watch/--no-watch", default=True, help="Track the claim until it settles")
@click.pass_context
def claim(ctx: click.Context, event_file: str, value: str, delivery_id: int, watch: bool) -> None:
    """Claim a delivery for an address or ENS name."""
    cfg = load_config(ctx.obj["config_path"])
    event = load_event(event_file)
    if not event.active:
        click.echo("Error: claims for this event are closed.", err=True)
        sys.exit(1)

    async def _claim():
        async with ClaimTracker(cfg) as tracker:
            session = tracker.session(event, delivery_id)
            if not await session.validate(value):
                return False, session.error
            result = await session.claim()
            if not result.success:
                return False, result.message
            click.echo(result.message)
            if watch:
                await watch_session(session)
                for tx in await session.transactions():
                    click.echo(_tx_line(tx))
            return True, ""

    ok, message = asyncio.run(_claim())
    if not ok:
        click.echo(f"Error: {message}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("event_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--forever", is_flag=True, help="Keep polling after every claim has settled")
@click.pass_context
def track(ctx: click.Context, event_file: str, forever: bool) -> None:
    """Track stored claims for an event until they settle."""
    cfg = load_config(ctx.obj["config_path"])
    event = load_event(event_file)

    async def _track():
        async with ClaimTracker(cfg) as tracker:
            session = tracker.session(event)
            await watch_session(session, until_settled=not forever)
            return await session.transactions()

    for tx in asyncio.run(_track()):
        click.echo(_tx_line(tx))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
