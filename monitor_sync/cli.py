"""monitor-sync CLI - client/server for syncing DPMS (monitor power) states."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from monitor_sync import __version__
from monitor_sync.client import SyncClient
from monitor_sync.config import SyncConfig
from monitor_sync.exceptions import AdapterUnavailableError, ConfigError, TransportError
from monitor_sync.logging import get_logger, setup_logging
from monitor_sync.power import PowerAdapter, open_adapter
from monitor_sync.protocol import fmt_power
from monitor_sync.reconcile import Reconciler
from monitor_sync.server import SyncServer
from monitor_sync.shutdown import ShutdownToken, install_signal_handlers
from monitor_sync.transport import DatagramTransport, describe

app = typer.Typer(
    name="monitor-sync",
    help="Client/server for syncing DPMS (monitor power) states.",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)
config_app = typer.Typer(help="View and manage configuration")
app.add_typer(config_app, name="config")

console = Console()
logger = get_logger("cli")

IP_HELP = (
    "The *multicast* (i.e starts with 224.*.*.*, this is NOT your normal IP address) "
    "address, defaults to broadcast if not specified"
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold cyan]monitor-sync[/bold cyan] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
):
    """Keep monitor power in sync across machines.

    Run [bold]server[/bold] on the machine whose monitor you are tracking and
    [bold]client[/bold] on machines that should follow it.
    """


def _fail(message: str) -> typer.Exit:
    console.print(f"[red]{escape(message)}[/red]")
    return typer.Exit(1)


def _load_config(
    config_path: Path | None,
    *,
    port: int | None = None,
    ip: str | None = None,
    display: str | None = None,
    rate: float | None = None,
) -> SyncConfig:
    """Load config, apply command-line overrides, validate, and set up logging."""
    try:
        config = SyncConfig.load(config_path)
    except (OSError, ValueError) as e:
        raise _fail(f"Error loading config: {e}")

    if port is not None:
        config.transport.port = port
    if ip is not None:
        config.transport.multicast_address = ip
    if display is not None:
        config.power.display = display
    if rate is not None:
        config.server.rate_hz = rate

    try:
        config.validate()
    except ConfigError as e:
        raise _fail(f"Invalid configuration: {e}")

    setup_logging(
        log_file=config.log_file if config.log_to_file else None,
        level=config.log_level,
        log_to_file=config.log_to_file,
        console_level=config.console_level,
    )
    logger.debug(f"Loaded configuration from {config_path or config.config_file}")
    return config


def _open_adapter(config: SyncConfig) -> PowerAdapter:
    try:
        adapter = open_adapter(config.power.backend, config.power.display)
    except AdapterUnavailableError as e:
        raise _fail(str(e))
    console.print(f"DPMS available, power={fmt_power(adapter.get_power())}")
    return adapter


ConfigOption = Annotated[
    Path | None, typer.Option("--config", "-c", help="Path to config.yaml")
]


@app.command()
def server(
    rate: float | None = typer.Option(
        None, "--rate", "-r", help="The rate in hertz at which X11's DPMS state is polled"
    ),
    ip: str | None = typer.Option(None, "--ip", "-i", help=IP_HELP),
    port: int | None = typer.Option(
        None, "--port", "-p", help="The UDP port to use for sending/receiving sync messages"
    ),
    display: str | None = typer.Option(
        None, "--display", "-d", help="The X display to use (e.g `:0`), omit for the default display"
    ),
    config_path: ConfigOption = None,
):
    """Start the server, use this on the machine you are monitoring DPMS of."""
    config = _load_config(config_path, port=port, ip=ip, display=display, rate=rate)
    adapter = _open_adapter(config)
    try:
        try:
            transport = DatagramTransport.sender(config.transport.port, config.transport.multicast_address)
        except TransportError as e:
            raise _fail(str(e))

        token = ShutdownToken()
        install_signal_handlers(token)
        console.print(
            f"Polling DPMS state ({config.server.rate_hz}Hz) on display {adapter.name} "
            f"and broadcasting on {describe(config.transport.multicast_address, config.transport.port)}"
        )
        with transport:
            SyncServer(adapter, transport, config.server.rate_hz, token=token).run()
        console.print("Stopping...")
    finally:
        adapter.close()


@app.command()
def client(
    ip: str | None = typer.Option(None, "--ip", "-i", help=IP_HELP),
    port: int | None = typer.Option(
        None, "--port", "-p", help="The UDP port to use for sending/receiving sync messages"
    ),
    display: str | None = typer.Option(
        None, "--display", "-d", help="The X display to use (e.g `:0`), omit for the default display"
    ),
    config_path: ConfigOption = None,
):
    """Start the client, use this on machines that need the same DPMS state as the server."""
    config = _load_config(config_path, port=port, ip=ip, display=display)
    adapter = _open_adapter(config)
    try:
        try:
            transport = DatagramTransport.receiver(config.transport.port, config.transport.multicast_address)
        except TransportError as e:
            raise _fail(str(e))

        token = ShutdownToken()
        install_signal_handlers(token)
        console.print(
            f"Listening for DPMS state from "
            f"{describe(config.transport.multicast_address, config.transport.port)} "
            f"using display {adapter.name}"
        )
        reconciler = Reconciler(
            adapter,
            max_attempts=config.client.max_attempts,
            settle_delay=config.client.settle_delay,
        )
        with transport:
            SyncClient(
                adapter,
                transport,
                reconciler=reconciler,
                token=token,
                poll_timeout=config.client.poll_timeout,
            ).run()
        console.print("Stopping...")
    finally:
        adapter.close()


@app.command()
def status(
    display: str | None = typer.Option(
        None, "--display", "-d", help="The X display to use (e.g `:0`), omit for the default display"
    ),
    config_path: ConfigOption = None,
):
    """Show the local power state and the effective sync settings."""
    config = _load_config(config_path, display=display)
    adapter = _open_adapter(config)
    try:
        table = Table(title="monitor-sync Status")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Display", adapter.name)
        table.add_row("Power", fmt_power(adapter.get_power()))
        table.add_row("Backend", config.power.backend)
        table.add_row("Endpoint", describe(config.transport.multicast_address, config.transport.port))
        table.add_row("Poll Rate", f"{config.server.rate_hz}Hz")
        table.add_row("Max Attempts", str(config.client.max_attempts))
        console.print(table)
    finally:
        adapter.close()


@config_app.command("show")
def config_show(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
    config_path: ConfigOption = None,
):
    """Show current configuration."""
    try:
        config = SyncConfig.load(config_path)
    except (OSError, ValueError) as e:
        raise _fail(f"Error loading config: {e}")

    config_dict = config.to_dict()
    if json_output:
        print(json.dumps(config_dict, indent=2, default=str))
        return

    table = Table(show_header=True, title="monitor-sync Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for section, value in config_dict.items():
        if isinstance(value, dict):
            for key, item in value.items():
                table.add_row(f"{section}.{key}", str(item) if item is not None else "[dim]not set[/dim]")
        else:
            table.add_row(section, str(value))
    console.print(table)


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config file"),
):
    """Write the default configuration to the data directory."""
    config = SyncConfig()
    if config.config_file.exists() and not force:
        console.print(f"[yellow]Config already exists:[/yellow] {config.config_file}")
        raise typer.Exit(1)
    config.save()
    console.print(f"[green]Created config:[/green] {config.config_file}")
