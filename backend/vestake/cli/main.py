"""Main CLI entry point."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from config import configure_logging, get_settings
from vestake.enums import ExportKind, Grouping, Pool
from vestake.services._helpers import format_dnt, format_hnt, format_vehnt, now_ts, percentage, ts_to_iso
from vestake.services.chain_client import ChainClient
from vestake.services.ingestion import IngestionService, SnapshotPipeline
from vestake.services.schemas.results import EpochSummary, Position, Snapshot

T = TypeVar("T")

app = typer.Typer(
    name="vestake",
    help="Helium vote-escrow position indexer CLI",
    add_completion=False,
)

console = Console()


def parse_grouping(value: str) -> Grouping:
    """Parse a grouping name like 'vehnt'."""
    try:
        return Grouping(value.lower())
    except ValueError:
        raise typer.BadParameter(
            f"Invalid grouping '{value}'. Expected one of: {', '.join(g.value for g in Grouping)}"
        )


def _format_tokens(grouping: Grouping, amount: int) -> str:
    return format_hnt(amount) if grouping == Grouping.HNT else format_dnt(amount)


def _run_with_ingestion(action: Callable[[IngestionService], Awaitable[T]]) -> T:
    async def _main() -> T:
        async with ChainClient() as client:
            return await action(IngestionService(client))

    return asyncio.run(_main())


def _pull_snapshot() -> Snapshot:
    async def _pull(service: IngestionService) -> Snapshot:
        return await SnapshotPipeline(service)()

    with console.status("Pulling positions from chain..."):
        return _run_with_ingestion(_pull)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", "-l", help="Log level (default from settings)"),
):
    configure_logging(log_level)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
):
    """Run the HTTP API with its background refresh."""
    import uvicorn

    settings = get_settings().api
    console.print(f"Serving on {host or settings.host}:{port or settings.port}")
    uvicorn.run("app.main:app", host=host or settings.host, port=port or settings.port)


@app.command()
def positions(
    grouping: str = typer.Option("vehnt", "--grouping", "-g", help="vehnt, veiot or vemobile"),
    limit: int = typer.Option(20, "--limit", "-n", help="Positions to list, by voting weight"),
):
    """Pull a snapshot and show pool totals and the heaviest positions."""
    selected: Grouping = parse_grouping(grouping)
    snapshot: Snapshot = _pull_snapshot()
    data = snapshot.grouping(selected)

    pools = Table(title=f"{selected.value} pools at {ts_to_iso(snapshot.timestamp)}")
    pools.add_column("Pool", style="cyan")
    pools.add_column("Positions", justify="right")
    pools.add_column("Locked", justify="right", style="green")
    pools.add_column("Voting weight", justify="right", style="green")
    for pool, pool_data in data.pools.items():
        pools.add_row(
            pool.value,
            str(pool_data.totals.count),
            _format_tokens(selected, pool_data.totals.locked_tokens),
            format_vehnt(pool_data.totals.voting_weight),
        )
    console.print(pools)

    ranked: list[Position] = sorted(data.positions, key=lambda p: p.voting_weight, reverse=True)
    table = Table(title=f"Top {min(limit, len(ranked))} positions")
    table.add_column("Position", style="cyan")
    table.add_column("Owner")
    table.add_column("Lockup", style="blue")
    table.add_column("Locked", justify="right")
    table.add_column("Voting weight", justify="right", style="green")
    table.add_column("Delegated", justify="center")
    for p in ranked[:limit]:
        table.add_row(
            p.key[:16] + "...",
            p.owner[:16] + "...",
            p.lockup_kind.value,
            _format_tokens(selected, p.locked_tokens),
            format_vehnt(p.voting_weight),
            p.delegation.sub_network.value if p.delegation else "-",
        )
    console.print(table)


@app.command()
def epochs(
    last: int = typer.Option(10, "--last", "-n", help="Most recent epochs to show"),
):
    """Show the complete sub-network epochs used for reward math."""

    async def _epochs(service: IngestionService) -> tuple[EpochSummary, ...]:
        return await service.refresh_epochs(now_ts())

    with console.status("Reading epoch history..."):
        history: tuple[EpochSummary, ...] = _run_with_ingestion(_epochs)

    if not history:
        console.print("[yellow]No complete epochs found[/yellow]")
        return

    table = Table(title=f"Epochs ({len(history)} complete)")
    table.add_column("Epoch", style="cyan")
    table.add_column("IOT veHNT at start", justify="right")
    table.add_column("MOBILE veHNT at start", justify="right")
    table.add_column("IOT rewards", justify="right", style="green")
    table.add_column("MOBILE rewards", justify="right", style="green")
    table.add_column("Rewards issued at")
    for e in history[-last:]:
        table.add_row(
            str(e.epoch),
            format_hnt(e.iot_weight_at_epoch_start),
            format_hnt(e.mobile_weight_at_epoch_start),
            format_dnt(e.iot_delegation_rewards_issued),
            format_dnt(e.mobile_delegation_rewards_issued),
            ts_to_iso(e.rewards_issued_at_ts) or "-",
        )
    console.print(table)


@app.command()
def supply():
    """Show the total supply of HNT, IOT and MOBILE."""

    async def _supply(service: IngestionService) -> dict[Grouping, int]:
        return await service.token_supplies()

    with console.status("Reading token supply..."):
        supplies: dict[Grouping, int] = _run_with_ingestion(_supply)

    table = Table(title="Token supply")
    table.add_column("Mint", style="cyan")
    table.add_column("Supply", justify="right", style="green")
    for grouping, amount in supplies.items():
        table.add_row(grouping.value.removeprefix("ve").upper(), _format_tokens(grouping, amount))
    console.print(table)


@app.command()
def locked():
    """Show locked tokens per mint and their share of supply."""

    async def _locked(service: IngestionService) -> tuple[Snapshot, dict[Grouping, int]]:
        snapshot: Snapshot = await SnapshotPipeline(service)()
        return snapshot, await service.token_supplies()

    with console.status("Pulling positions and supply..."):
        snapshot, supplies = _run_with_ingestion(_locked)

    table = Table(title=f"Locked tokens at {ts_to_iso(snapshot.timestamp)}")
    table.add_column("Mint", style="cyan")
    table.add_column("Positions", justify="right")
    table.add_column("Locked", justify="right", style="green")
    table.add_column("Supply", justify="right")
    table.add_column("Locked %", justify="right")
    for grouping in Grouping:
        totals = snapshot.pool(grouping, Pool.NETWORK).totals
        table.add_row(
            grouping.value.removeprefix("ve").upper(),
            str(totals.count),
            _format_tokens(grouping, totals.locked_tokens),
            _format_tokens(grouping, supplies[grouping]),
            percentage(totals.locked_tokens, supplies[grouping]),
        )
    console.print(table)


@app.command()
def export(
    kind: ExportKind = typer.Option(ExportKind.POSITIONS, "--kind", "-k", help="positions or delegated"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output CSV path"),
):
    """Pull a snapshot and write veHNT positions to CSV."""
    from vestake.services.export import ExportService

    snapshot: Snapshot = _pull_snapshot()
    result = ExportService(get_settings().export_dir).write_csv(snapshot, kind, output)
    console.print(f"[green]Wrote {result.row_count} rows to {result.output_path}[/green]")


if __name__ == "__main__":
    app()
