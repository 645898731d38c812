# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""CLI commands for looking up and watching the dashboard."""
import asyncio
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from claudible_status import __version__
from claudible_status.client.api import DashboardClient
from claudible_status.client.models import Snapshot
from claudible_status.config import StatusConfig, load_config
from claudible_status.core.exceptions import ClientError, ConfigurationError
from claudible_status.core.orchestrator import DashboardOrchestrator
from claudible_status.core.utils import mask_credential, normalize_credential
from claudible_status.events.bus import DashboardEvent, DashboardEventType
from claudible_status.logging import log_watch_startup
from claudible_status.storage.balance import FileBalanceCache
from claudible_status.storage.credentials import FileCredentialVault


console = Console()

key_app = typer.Typer(help="Manage the stored API key.")

KeyOption = Annotated[
    str | None,
    typer.Option("--key", "-k", help="API key to use instead of the stored one"),
]

STATE_STYLES = {
    "idle": "dim",
    "connecting": "yellow",
    "connected": "green",
    "reconnecting": "yellow",
}


def _load_config() -> StatusConfig:
    """Load configuration, exiting with a readable message on failure.

    Raises:
        typer.Exit: If the configuration file is missing or invalid.
    """
    try:
        return load_config()
    except (FileNotFoundError, ConfigurationError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None


def _vault(config: StatusConfig) -> FileCredentialVault:
    return FileCredentialVault(config.state_dir / "credentials.json")


def _balance_cache(config: StatusConfig) -> FileBalanceCache:
    return FileBalanceCache(config.state_dir / "balance.json")


def _resolve_credential(config: StatusConfig, key: str | None) -> str:
    """Pick the explicit key or the stored one.

    Raises:
        typer.Exit: If neither is available.
    """
    credential = normalize_credential(key) or normalize_credential(_vault(config).load())
    if not credential:
        console.print("[red]Error:[/red] No API key configured.")
        console.print("\n[yellow]Store one with:[/yellow] claudible-status key set")
        raise typer.Exit(1)
    return credential


def _render_snapshot(snapshot: Snapshot, recent: int = 10) -> None:
    """Print a snapshot summary and its most recent usage records."""
    console.print(f"[bold]{snapshot.welcome_text}[/bold]")

    summary = Table(show_header=False, box=None)
    summary.add_column("Field", style="dim")
    summary.add_column("Value")
    summary.add_row("Balance", f"${snapshot.balance:.2f}")
    summary.add_row("Status", snapshot.status)
    summary.add_row("Account", snapshot.account_type)
    summary.add_row("Daily quota", f"${snapshot.daily_quota:.2f}")
    subscription = "active" if snapshot.subscription_active else "inactive"
    summary.add_row(
        "Subscription",
        f"{subscription} until {snapshot.subscription_expires_at:%Y-%m-%d}",
    )
    summary.add_row(
        "Requests",
        f"{snapshot.stats.total_requests} (${snapshot.stats.total_cost:.2f})",
    )
    summary.add_row("Last used", f"{snapshot.last_used:%Y-%m-%d %H:%M}")
    console.print(summary)

    if not snapshot.usage:
        console.print("[dim]No usage yet.[/dim]")
        return

    table = Table(title="Recent usage", show_header=True)
    table.add_column("Time", style="blue")
    table.add_column("Model", style="cyan")
    table.add_column("Prompt", justify="right")
    table.add_column("Completion", justify="right")
    table.add_column("Cost", justify="right", style="yellow")
    for record in snapshot.usage[:recent]:
        table.add_row(
            f"{record.created_at:%Y-%m-%d %H:%M:%S}",
            record.model,
            str(record.prompt_tokens),
            str(record.completion_tokens),
            f"${record.cost_usd:.4f}",
        )
    console.print(table)


def lookup_command(key: KeyOption = None) -> None:
    """Fetch the dashboard once and print it.

    Args:
        key: Optional API key overriding the stored one.
    """
    config = _load_config()
    credential = _resolve_credential(config, key)
    client = DashboardClient(
        lookup_url=config.lookup_url,
        timeout=config.request_timeout_seconds,
        connect_timeout=config.connect_timeout_seconds,
    )

    try:
        snapshot = asyncio.run(client.fetch_snapshot(credential))
    except ClientError as e:
        console.print(f"[red]Error:[/red] Could not load dashboard data: {escape(str(e))}")
        raise typer.Exit(1) from None

    _balance_cache(config).set_balance(snapshot.balance)
    _render_snapshot(snapshot)


def _print_state(state: str) -> None:
    style = STATE_STYLES.get(state, "white")
    console.print(f"[{style}]● {state}[/{style}]")


def _print_event(event: DashboardEvent) -> None:
    """Print one dashboard change notification."""
    if event.event_type == DashboardEventType.CONNECTION_STATE_CHANGED and event.connection_state:
        _print_state(event.connection_state)
    elif event.event_type == DashboardEventType.SNAPSHOT_REPLACED and event.snapshot:
        latest = event.snapshot.usage[0] if event.snapshot.usage else None
        if latest is not None:
            console.print(
                f"[dim]{latest.created_at:%H:%M:%S}[/dim] [cyan]{latest.model}[/cyan] "
                f"{latest.prompt_tokens}+{latest.completion_tokens} tokens "
                f"[yellow]${latest.cost_usd:.4f}[/yellow]"
            )
    elif event.event_type == DashboardEventType.BALANCE_CHANGED and event.balance is not None:
        console.print(f"[bold green]Balance: ${event.balance:.2f}[/bold green]")


async def _wait_for_interrupt() -> None:
    """Block until the run is cancelled or interrupted with Ctrl+C."""
    await asyncio.Event().wait()


def watch_command(key: KeyOption = None) -> None:
    """Fetch the dashboard and follow live usage updates until interrupted.

    Args:
        key: Optional API key overriding the stored one.
    """
    config = _load_config()
    credential = _resolve_credential(config, key)
    orchestrator = DashboardOrchestrator.from_config(config, _balance_cache(config))
    log_watch_startup(config.lookup_url, config.stream_url, __version__)

    async def _watch() -> None:
        try:
            snapshot = await orchestrator.fetch_or_refresh(credential)
            if snapshot is not None:
                _render_snapshot(snapshot, recent=5)
            elif orchestrator.last_error:
                console.print(f"[red]Error:[/red] {escape(orchestrator.last_error)}")

            orchestrator.event_bus.subscribe(_print_event)
            _print_state(orchestrator.connection_state)
            console.print(
                f"\n[dim]Watching live updates for {mask_credential(credential)}. "
                "Press Ctrl+C to stop.[/dim]"
            )
            await _wait_for_interrupt()
        finally:
            await orchestrator.stop()

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")


def balance_command() -> None:
    """Print the last cached balance without contacting the server."""
    config = _load_config()
    balance = _balance_cache(config).get_balance()
    if balance is None:
        console.print("[dim]No cached balance.[/dim]")
        raise typer.Exit(1)
    console.print(f"${balance:.2f}")


@key_app.command("set")
def key_set_command(
    value: Annotated[
        str | None,
        typer.Argument(help="API key. Prompted for when omitted."),
    ] = None,
) -> None:
    """Store the API key."""
    config = _load_config()
    if value is None:
        value = typer.prompt("API key", hide_input=True)
    if not normalize_credential(value):
        console.print("[red]Error:[/red] API key must not be empty.")
        raise typer.Exit(1)
    if not _vault(config).save(value):
        console.print("[red]Error:[/red] Could not store the API key.")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] API key stored ({mask_credential(normalize_credential(value))})")


@key_app.command("show")
def key_show_command() -> None:
    """Show the stored API key, masked."""
    config = _load_config()
    credential = _vault(config).load()
    if not credential:
        console.print("[dim]No API key stored.[/dim]")
        raise typer.Exit(1)
    console.print(mask_credential(credential))


@key_app.command("clear")
def key_clear_command() -> None:
    """Delete the stored API key and the cached balance."""
    config = _load_config()
    if not _vault(config).delete():
        console.print("[red]Error:[/red] Could not delete the API key.")
        raise typer.Exit(1)
    _balance_cache(config).clear_balance()
    console.print("[yellow]✗[/yellow] API key removed")
