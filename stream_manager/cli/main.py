"""
CLI interface for the stream manager.

This module provides the command-line interface using Typer and Rich.
Stream definitions live in the configured Redis store; the ``run`` command
supervises them in the foreground.
"""

import asyncio
import shlex
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from ..config import ConfigManager, ManagerConfig, StreamConfig, get_config_manager
from ..executor import build_args, summarize_streams
from ..models import StreamRecord, StreamState, StreamView
from ..registry import StreamRegistry
from ..store import create_store
from ..utils import (
    ConfigurationError,
    StreamManagerError,
    format_duration,
    get_logger,
    parse_time_to_seconds,
    setup_logger,
)

app = typer.Typer(
    name="stream-manager",
    help="Supervise FFmpeg jobs republishing media sources to an RTSP server",
    add_completion=False,
)

console = Console()

logger = get_logger(__name__)

_STATE_STYLES = {
    StreamState.RUNNING: "green",
    StreamState.STOPPED: "dim",
    StreamState.ERRORED: "red",
}


def _setup(config_file: Optional[Path], verbose: bool, log_file: Optional[Path] = None) -> ManagerConfig:
    """Configure logging and load the manager configuration."""
    setup_logger(
        name="stream_manager",
        level="DEBUG" if verbose else "INFO",
        log_file=log_file,
        verbose=verbose,
    )
    return ConfigManager(config_file).config


def _fail(error: Exception, verbose: bool = False) -> None:
    console.print(f"[bold red]✗ Error:[/bold red] {error}")
    if verbose:
        console.print_exception()
    sys.exit(1)


def _parse_start(value: str) -> float:
    try:
        return parse_time_to_seconds(value)
    except ValueError:
        raise typer.BadParameter(f"invalid start position: {value}")


def _channel(value: Optional[int]) -> str:
    return "-" if value is None else str(value)


async def _open_registry(config: ManagerConfig) -> StreamRegistry:
    store = create_store(config.store)
    if store is None:
        raise ConfigurationError(
            "No durable store configured; set store.redis_url in the configuration file"
        )
    return await StreamRegistry.open(config, store)


def _status_table(views: list[StreamView]) -> Table:
    table = Table(show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Source")
    table.add_column("Start", justify="right")
    table.add_column("V", justify="right")
    table.add_column("A", justify="right")
    table.add_column("S", justify="right")
    table.add_column("Status")

    for view in views:
        style = _STATE_STYLES[view.status.state]
        table.add_row(
            view.name,
            view.display_source,
            format_duration(view.config.start_position),
            _channel(view.config.video_channel),
            _channel(view.config.audio_channel),
            _channel(view.config.subtitle_channel),
            f"[{style}]{view.status}[/{style}]",
        )
    return table


@app.command()
def launch(
    name: str = typer.Argument(..., help="Unique stream name (letters, digits, - and _)"),
    source: str = typer.Argument(..., help="Input file path or URL"),
    start: str = typer.Option("0", "--start", "-s", help="Start position (seconds, HH:MM:SS or 1h2m3s)"),
    video: int = typer.Option(0, "--video", help="Video stream index (-1 = none)"),
    audio: int = typer.Option(0, "--audio", help="Audio stream index (-1 = none)"),
    subtitle: int = typer.Option(-1, "--subtitle", help="Subtitle stream index to burn in (-1 = none)"),
    read_rate: int = typer.Option(100, "--read-rate", help="Input read rate in percent of real time"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    Add a stream definition to the store without starting it.
    """
    start_position = _parse_start(start)

    async def _launch() -> None:
        config = _setup(config_file, verbose)
        registry = await _open_registry(config)
        try:
            await registry.launch(
                {
                    "name": name,
                    "source": source,
                    "start_position": start_position,
                    "video_channel": video,
                    "audio_channel": audio,
                    "subtitle_channel": subtitle,
                    "read_rate": read_rate,
                }
            )
        finally:
            await registry.aclose()

    try:
        asyncio.run(_launch())
    except StreamManagerError as e:
        _fail(e, verbose)

    console.print(f"[green]✓[/green] Launched stream: {name}")


@app.command()
def delete(
    name: str = typer.Argument(..., help="Stream name"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    Remove a stream definition from the store.
    """

    async def _delete() -> None:
        config = _setup(config_file, verbose)
        registry = await _open_registry(config)
        try:
            await registry.delete(name)
        finally:
            await registry.aclose()

    try:
        asyncio.run(_delete())
    except StreamManagerError as e:
        _fail(e, verbose)

    console.print(f"[green]✓[/green] Deleted stream: {name}")


@app.command("list")
def list_command(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    List the stream definitions in the store.
    """

    async def _list() -> list[StreamView]:
        config = _setup(config_file, verbose)
        registry = await _open_registry(config)
        try:
            return registry.list()
        finally:
            await registry.aclose()

    try:
        views = asyncio.run(_list())
    except StreamManagerError as e:
        _fail(e, verbose)
        return

    if not views:
        console.print("[dim]No streams defined[/dim]")
        return
    console.print(_status_table(views))


@app.command("command")
def command_command(
    name: str = typer.Argument(..., help="Stream name"),
    source: str = typer.Argument(..., help="Input file path or URL"),
    start: str = typer.Option("0", "--start", "-s", help="Start position (seconds, HH:MM:SS or 1h2m3s)"),
    video: int = typer.Option(0, "--video", help="Video stream index (-1 = none)"),
    audio: int = typer.Option(0, "--audio", help="Audio stream index (-1 = none)"),
    subtitle: int = typer.Option(-1, "--subtitle", help="Subtitle stream index to burn in (-1 = none)"),
    read_rate: int = typer.Option(100, "--read-rate", help="Input read rate in percent of real time"),
    target: Optional[str] = typer.Option(None, "--target", "-t", help="Override publish target"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False),
) -> None:
    """
    Print the ffmpeg command a stream would run.
    """
    try:
        config = ConfigManager(config_file).config
        stream_config = StreamConfig.parse(
            {
                "name": name,
                "source": source,
                "start_position": _parse_start(start),
                "video_channel": video,
                "audio_channel": audio,
                "subtitle_channel": subtitle,
                "read_rate": read_rate,
            }
        )
    except StreamManagerError as e:
        _fail(e)
        return

    record = StreamRecord(config=stream_config, target=target or config.target)
    args = [config.transcode.ffmpeg_path, *build_args(record, config.transcode)]
    typer.echo(shlex.join(args))


@app.command()
def probe(
    source: str = typer.Argument(..., help="Input file path or URL"),
    streams: bool = typer.Option(False, "--streams", help="Show a table of channel indices instead of JSON"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    Show format and stream metadata of a source.
    """

    async def _probe() -> bytes:
        config = _setup(config_file, verbose)
        registry = StreamRegistry(config)
        return await registry.probe(source)

    try:
        output = asyncio.run(_probe())
        if not streams:
            typer.echo(output.decode(errors="replace"))
            return
        summary = summarize_streams(output)
    except StreamManagerError as e:
        _fail(e, verbose)
        return

    table = Table(show_header=True)
    table.add_column("Type", style="cyan")
    table.add_column("Channel", justify="right", style="yellow")
    table.add_column("Codec")
    table.add_column("Language")
    table.add_column("Title")
    for entry in summary:
        table.add_row(
            entry["codec_type"],
            str(entry["channel"]),
            entry["codec"],
            entry["language"],
            entry["title"] or "",
        )
    console.print(table)


@app.command()
def run(
    names: Optional[list[str]] = typer.Argument(None, help="Streams to start (default: all)"),
    interval: float = typer.Option(2.0, "--interval", "-i", min=0.1, help="Status refresh interval in seconds"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: Optional[Path] = typer.Option(None, "--log", help="Log file path"),
) -> None:
    """
    Start streams and supervise them until interrupted.

    Streams are stopped again when the command exits.
    """
    try:
        config = _setup(config_file, verbose, log_file)
    except ConfigurationError as e:
        _fail(e, verbose)
        return

    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Stream Manager[/bold cyan]\n" f"[dim]Publishing to {config.target}[/dim]",
            border_style="cyan",
        )
    )
    console.print()

    try:
        asyncio.run(_run_async(config, names or [], interval))
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠ Stopped by user[/yellow]")
        sys.exit(130)
    except StreamManagerError as e:
        _fail(e, verbose)


async def _run_async(config: ManagerConfig, names: list[str], interval: float) -> None:
    registry = await _open_registry(config)
    try:
        selected = names or registry.names()
        for name in selected:
            try:
                await registry.start(name)
            except StreamManagerError as e:
                logger.error(f"Could not start stream {name}: {e}")

        with Live(_status_table(registry.list()), console=console, refresh_per_second=4) as live:
            while True:
                await asyncio.sleep(interval)
                views = registry.list()
                live.update(_status_table(views))
                if not any(view.status.is_running for view in views):
                    break
        console.print("[dim]No stream is running[/dim]")
    finally:
        await registry.stop_all()
        await registry.aclose()


@app.command("config")
def config_command(
    action: str = typer.Argument(..., help="Action: init, show"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output file for 'init' action",
    ),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False),
) -> None:
    """
    Manage configuration files.

    Actions:
    - init: Create a default configuration file
    - show: Display current configuration
    """
    config_manager = ConfigManager(config_file) if config_file else get_config_manager()

    if action == "init":
        output_path = output or Path(".stream-manager.yaml")
        try:
            config_manager.init_default_config(output_path)
        except ConfigurationError as e:
            _fail(e)
        console.print(f"[green]✓[/green] Created config file: {output_path}")

    elif action == "show":
        try:
            config = config_manager.config
        except ConfigurationError as e:
            _fail(e)
            return

        table = Table(title="Current Configuration", show_header=True)
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="white")
        table.add_row("Target", config.target)
        table.add_row("FFmpeg", config.transcode.ffmpeg_path)
        table.add_row("FFprobe", config.transcode.ffprobe_path)
        table.add_row("Preset", config.transcode.preset)
        table.add_row("Capture limit", f"{config.runner.capture_limit} bytes")
        table.add_row("Stop timeout", str(config.runner.stop_timeout or "none"))
        table.add_row("Redis", config.store.redis_url or "[dim]disabled[/dim]")
        console.print()
        console.print(table)
        console.print()

    else:
        console.print(f"[red]✗ Unknown action:[/red] {action}")
        console.print("Valid actions: init, show")
        sys.exit(1)


@app.command("version")
def version_command() -> None:
    """
    Display version information.
    """
    from .. import __version__

    console.print(f"[bold cyan]Stream Manager[/bold cyan] [dim]{__version__}[/dim]")


def main() -> None:
    """
    Main entry point for CLI.
    """
    app()


if __name__ == "__main__":
    main()
