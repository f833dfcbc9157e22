"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from tabtorrent import __version__
from tabtorrent.api.engine_client import EngineClient
from tabtorrent.core.id_allocator import IdAllocator
from tabtorrent.core.session_controller import SessionController
from tabtorrent.core.tab_registry import TabRegistry
from tabtorrent.exceptions import TabTorrentError, ValidationError
from tabtorrent.models.config import AppConfig
from tabtorrent.models.session import Session, SessionState
from tabtorrent.storage.config_manager import (
    ConfigManager,
    get_config_dir,
    get_data_dir,
)
from tabtorrent.utils.structured_logger import (
    SessionLogger,
    configure_file_logging,
    create_session_logger,
)

from .dialogs import pick_directory, pick_file
from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_run_summary,
    print_tabs_table,
)
from .renderer import ConsoleRenderer

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("tabtorrent")

app = typer.Typer(
    name="tabtorrent",
    help=(
        "Run several torrent downloads side by side, one tab each, on a local"
        " download engine. Use 'tabtorrent <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"

SHELL_HELP = """\
[bold]Commands[/bold]
  [cyan]new[/cyan]              open a new tab and switch to it
  [cyan]start[/cyan] [URI]      start a download in the active tab
  [cyan]pick[/cyan]             choose a .torrent file for the active tab
  [cyan]tab[/cyan] ID           switch to another tab
  [cyan]close[/cyan] [ID]       close a tab (stops its download)
  [cyan]cancel[/cyan]           cancel the active tab's download
  [cyan]list[/cyan]             list open tabs
  [cyan]show[/cyan]             show the active tab
  [cyan]quit[/cyan]             close every tab and exit"""


def _load_config(cli_options: dict | None = None) -> AppConfig:
    try:
        return ConfigManager(CONFIG_FILE).load_config(cli_options)
    except TabTorrentError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


def _session_logger(config: AppConfig) -> SessionLogger:
    data_dir = get_data_dir()
    configure_file_logging(data_dir, config.log_max_files, config.log_max_bytes)
    return create_session_logger(data_dir, enable_json=config.json_log)


def _build_core(
    config: AppConfig, client: EngineClient, renderer: ConsoleRenderer
) -> tuple[SessionController, TabRegistry]:
    controller = SessionController(
        client,
        renderer,
        label_length=config.label_length,
        snapshot_dump_interval=config.snapshot_dump_interval,
        session_logger=_session_logger(config),
    )
    return controller, TabRegistry(controller, renderer, IdAllocator())


async def _run_tab(
    controller: SessionController,
    session: Session,
    uri: str,
    choose: Callable[[], Awaitable[Optional[str]]],
) -> SessionState:
    """Runs one tab's download, reporting input errors instead of raising them."""
    try:
        return await controller.start(session, uri, choose)
    except ValidationError as e:
        log.warning(f"[yellow]Tab {session.id}: {escape(str(e))}[/yellow]")
    except TabTorrentError as e:
        log.error(f"[red]Tab {session.id}: {escape(str(e))}[/red]")
    return session.state


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """tabtorrent CLI"""
    if version:
        console.print(f"[bold]tabtorrent[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    log.setLevel(log_level)

    if show_config:
        print_config(CONFIG_FILE, _load_config())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    engine_url: Optional[str] = typer.Option(
        None, "--engine-url", help="Base URL of the download engine."
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", help="Folder suggested when a download starts."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration."
    ),
):
    """Write a configuration file."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        key: value
        for key, value in {"engine_url": engine_url, "output_dir": output_dir}.items()
        if value is not None
    }
    try:
        ConfigManager(CONFIG_FILE).save_new_config(settings)
    except TabTorrentError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready! Try: [cyan]tabtorrent download <magnet link>[/cyan]")


@app.command(name="download")
def download_command(
    uris: list[str] = typer.Argument(  # noqa: B008
        ..., help="Magnet links or .torrent file paths, one tab each."
    ),
    output_dir: Optional[str] = typer.Option(
        None, "-o", "--output-dir", help="Folder to download into."
    ),
    engine_url: Optional[str] = typer.Option(
        None, "--engine-url", help="Base URL of the download engine."
    ),
):
    """Download one or more torrents, each in its own tab."""
    config = _load_config({"engine_url": engine_url})

    async def _download_async() -> list[Session]:
        target = output_dir or await pick_directory(config.output_dir)
        if not target:
            console.print("[yellow]No output folder chosen. Nothing to do.[/yellow]")
            return []

        async def choose() -> str:
            return target

        renderer = ConsoleRenderer(console)
        async with EngineClient(config.engine_url) as client:
            controller, registry = _build_core(config, client, renderer)
            async with renderer:
                tasks = [
                    asyncio.create_task(
                        _run_tab(
                            controller,
                            registry.create_session(auto_activate=(i == 0)),
                            uri,
                            choose,
                        )
                    )
                    for i, uri in enumerate(uris)
                ]
                try:
                    await asyncio.gather(*tasks)
                finally:
                    # Outcomes as the runs left them; closing cancels idle tabs too
                    sessions = [dataclasses.replace(s) for s in registry.sessions]
                    registry.close_all()
                    await controller.drain()
        return sessions

    sessions = asyncio.run(_download_async())
    if sessions:
        print_run_summary(console, sessions)
    if any(s.state in (SessionState.FAILED, SessionState.IDLE) for s in sessions):
        raise typer.Exit(code=1)


@app.command()
def name(
    uri: str = typer.Argument(..., help="Magnet link or .torrent file path."),
    engine_url: Optional[str] = typer.Option(
        None, "--engine-url", help="Base URL of the download engine."
    ),
):
    """Print the name of a torrent."""
    config = _load_config({"engine_url": engine_url})

    async def _resolve() -> str:
        async with EngineClient(config.engine_url) as client:
            return await client.resolve_name(uri)

    try:
        console.print(asyncio.run(_resolve()))
    except TabTorrentError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def shell(
    uri: Optional[str] = typer.Argument(
        None, help="Magnet link or .torrent file path for the first tab."
    ),
    engine_url: Optional[str] = typer.Option(
        None, "--engine-url", help="Base URL of the download engine."
    ),
):
    """Manage download tabs interactively."""
    config = _load_config({"engine_url": engine_url})
    asyncio.run(_shell_async(config, uri))


def _read_command() -> str | None:
    try:
        return console.input("[bold cyan]tabtorrent>[/bold cyan] ").strip()
    except EOFError:
        return None


async def _shell_async(config: AppConfig, initial_uri: str | None) -> None:
    renderer = ConsoleRenderer(console)
    async with EngineClient(config.engine_url) as client:
        controller, registry = _build_core(config, client, renderer)
        running: set[asyncio.Task] = set()
        prefilled: dict[int, str] = {}

        first = registry.create_session(auto_activate=True)
        if initial_uri:
            prefilled[first.id] = initial_uri
        console.print(SHELL_HELP)

        def active_tab() -> Session:
            if registry.active is None:
                raise ValidationError("No open tab. Use 'new' to open one.")
            return registry.active

        async def do_new(arg: str) -> None:
            session = registry.create_session(auto_activate=True)
            console.print(f"Opened tab [cyan]{session.id}[/cyan].")

        async def do_start(arg: str) -> None:
            session = active_tab()
            target_uri = arg or prefilled.get(session.id, "")
            picked = asyncio.Event()

            async def choose() -> str | None:
                try:
                    return await pick_directory(config.output_dir)
                finally:
                    picked.set()

            task = asyncio.create_task(_run_tab(controller, session, target_uri, choose))
            running.add(task)
            task.add_done_callback(running.discard)
            # Keep the prompt quiet until the folder question has been answered.
            waiter = asyncio.create_task(picked.wait())
            await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
            waiter.cancel()

        async def do_pick(arg: str) -> None:
            session = active_tab()
            if path := await pick_file():
                prefilled[session.id] = path
                console.print(f"Tab {session.id} will download [dim]{escape(path)}[/dim].")

        async def do_tab(arg: str) -> None:
            registry.set_active(int(arg))
            renderer.print_active()

        async def do_close(arg: str) -> None:
            session_id = int(arg) if arg else active_tab().id
            registry.get(session_id)
            registry.close_session(session_id)
            prefilled.pop(session_id, None)

        async def do_cancel(arg: str) -> None:
            session = active_tab()
            if not controller.is_cancellable(session):
                console.print("[dim]Nothing to cancel.[/dim]")
                return
            controller.cancel(session)

        async def do_list(arg: str) -> None:
            print_tabs_table(console, registry.sessions, registry.active)

        async def do_show(arg: str) -> None:
            renderer.print_active()

        async def do_help(arg: str) -> None:
            console.print(SHELL_HELP)

        handlers = {
            "new": do_new,
            "start": do_start,
            "pick": do_pick,
            "tab": do_tab,
            "close": do_close,
            "cancel": do_cancel,
            "list": do_list,
            "show": do_show,
            "help": do_help,
        }

        try:
            while True:
                line = await asyncio.to_thread(_read_command)
                if line is None:
                    break
                command, _, arg = line.partition(" ")
                if not command:
                    continue
                if command in ("quit", "exit"):
                    break
                handler = handlers.get(command)
                if handler is None:
                    console.print(f"[red]Unknown command '{escape(command)}'.[/red]")
                    continue
                try:
                    await handler(arg.strip())
                except TabTorrentError as e:
                    console.print(f"[red]✗ {escape(str(e))}[/red]")
                except ValueError:
                    console.print(f"[red]✗ '{escape(arg)}' is not a tab id.[/red]")
        finally:
            registry.close_all()
            await controller.drain()
            if running:
                await asyncio.gather(*running, return_exceptions=True)


@app.command()
def validate():
    """Validate the current configuration."""
    config = _load_config()
    print_config(CONFIG_FILE, config)
    console.print("[green]✓ Configuration is valid.[/green]")


@app.command()
def diagnose():
    """Diagnose common configuration and connectivity issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    issues_found = False
    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print(
            "[yellow]○ No config file; defaults are used.[/] "
            "Run [cyan]tabtorrent init[/cyan] to create one."
        )
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        console.print("[green]✓[/] Configuration is valid.")
    except TabTorrentError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[dim]Testing connectivity to {config.engine_url}...[/dim]")

    async def test_connection() -> bool:
        async with EngineClient(config.engine_url) as client:
            return await client.ping()

    if asyncio.run(test_connection()):
        console.print("[green]✓[/] Download engine is reachable.")
    else:
        console.print(f"[red]✗ Could not reach the download engine at {config.engine_url}.[/red]")
        issues_found = True
    console.print()
    if not issues_found:
        console.print(
            "[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)
