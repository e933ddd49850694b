"""Typer CLI entrypoint for kcode."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Annotated

import click
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from kcode.cli.rendering import CliRenderer
from kcode.commands.errors import ConfigurationError
from kcode.commands.types import CommandExecutionResult
from kcode.config import ConfigError, KcodeConfig, default_config_text, load_config
from kcode.runtime.cancellation import CancellationToken
from kcode.runtime.session import KcodeSession

app = typer.Typer(help="kcode machine-control terminal")
_CONSOLE = Console()
_LOGGING_CONFIGURED = False
_RESULT_POLL_SECONDS = 0.1
_LOG_MAX_BYTES = 1_000_000
_LOG_BACKUP_COUNT = 3

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        file_okay=True,
        dir_okay=False,
        help="Path to kcode config YAML/JSON file.",
    ),
]


def _configure_logging(log_file: Path | None = None) -> None:
    """Configure Rich console logging plus the session log file once.

    Args:
        log_file: Optional session log path for INFO-level records.
    """
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if _LOGGING_CONFIGURED:
        return
    console_handler = RichHandler(show_path=False, rich_tracebacks=True)
    console_handler.setLevel(logging.WARNING)
    handlers: list[logging.Handler] = [console_handler]
    if log_file is not None:
        handlers.append(_session_log_handler(log_file))
    logging.basicConfig(level=logging.INFO, format="%(message)s", handlers=handlers)
    _LOGGING_CONFIGURED = True


def _session_log_handler(log_file: Path) -> RotatingFileHandler:
    """Build the size-bounded INFO handler behind `/logs`.

    Args:
        log_file: Session log path; parent directories are created.

    Returns:
        Rotating file handler with the session record format.
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=_LOG_MAX_BYTES,
        backupCount=_LOG_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    return handler


def _default_config_file() -> Path:
    """Return default config path for the current working directory.

    Returns:
        Config file path; YAML preferred over JSON when both exist.
    """
    root = Path.cwd() / ".kcode"
    yaml_path = root / "config.yaml"
    json_path = root / "config.json"
    if not yaml_path.exists() and json_path.exists():
        return json_path
    return yaml_path


def _load_config_or_exit(config_file: Path | None) -> KcodeConfig:
    """Load config, exiting with code 1 on invalid payloads.

    Args:
        config_file: Optional config path override.

    Returns:
        Parsed config.

    Raises:
        Exit: If the config cannot be decoded or validated.
    """
    try:
        return load_config(config_file or _default_config_file())
    except ConfigError as exc:
        _CONSOLE.print(f"[bold red]Failed to load config: {exc}[/bold red]")
        raise typer.Exit(code=1) from exc


def _build_session_or_exit(config: KcodeConfig) -> KcodeSession:
    """Build session, exiting with code 1 on invalid vocabulary.

    Args:
        config: Parsed config.

    Returns:
        Ready session.

    Raises:
        Exit: If the command vocabulary or transport is invalid.
    """
    try:
        return KcodeSession(config)
    except ConfigurationError as exc:
        _CONSOLE.print(f"[bold red]Invalid configuration: {exc}[/bold red]")
        raise typer.Exit(code=1) from exc


def _run_cancellable(session: KcodeSession, text: str) -> CommandExecutionResult | None:
    """Run one line on a worker thread so Ctrl+C cancels only that command.

    Args:
        session: Active session.
        text: Raw input line.

    Returns:
        Execution result, or None for blank input.
    """
    token = CancellationToken()
    pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="kcode-command")
    future = pool.submit(session.handle_input, text, cancel=token)
    try:
        while True:
            try:
                return future.result(timeout=_RESULT_POLL_SECONDS)
            except FutureTimeoutError:
                continue
    except KeyboardInterrupt:
        token.cancel()
        return future.result()
    finally:
        pool.shutdown(wait=True)


@app.command("init")
def init_command(
    config_file: ConfigOption = None,
    overwrite_config: Annotated[
        bool,
        typer.Option(
            "--overwrite-config",
            help="Overwrite existing config file with the default template.",
        ),
    ] = False,
) -> None:
    """Write the default kcode config file.

    Args:
        config_file: Optional config file path override.
        overwrite_config: Whether to overwrite an existing config file.
    """
    _configure_logging()
    target = config_file or _default_config_file()
    if target.exists() and not overwrite_config:
        status = "kept"
    else:
        status = "overwritten" if target.exists() else "created"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(default_config_text(), encoding="utf-8")
    table = Table(title="kcode init", show_header=True, header_style="bold cyan")
    table.add_column("Resource", style="bold")
    table.add_column("Status", style="green")
    table.add_row(str(target), status)
    _CONSOLE.print(table)


@app.command("run")
def run_command(
    text: Annotated[str, typer.Argument(help="Single input line to execute.")],
    config_file: ConfigOption = None,
) -> None:
    """Execute one input line and print the result.

    Args:
        text: Raw input line.
        config_file: Optional config file path override.

    Raises:
        Exit: Raised with command status code for shell integration.
    """
    config = _load_config_or_exit(config_file)
    _configure_logging(Path(config.app.log_file))
    session = _build_session_or_exit(config)
    renderer = CliRenderer(console=_CONSOLE)
    with session:
        result = session.handle_input(text)
    if result is None:
        _CONSOLE.print("Nothing to execute.", style="yellow")
        raise typer.Exit(code=1)
    renderer.render(result)
    raise typer.Exit(code=0 if result.success else 1)


@app.command("repl")
def repl_command(config_file: ConfigOption = None) -> None:
    """Run the interactive command loop.

    Args:
        config_file: Optional config file path override.
    """
    config = _load_config_or_exit(config_file)
    _configure_logging(Path(config.app.log_file))
    session = _build_session_or_exit(config)
    renderer = CliRenderer(console=_CONSOLE)
    _CONSOLE.print(
        Panel(
            f"{config.app.name} {config.app.version}. Type /help for commands.",
            border_style="cyan",
            expand=True,
        )
    )
    with session:
        while True:
            try:
                raw = typer.prompt(config.app.prompt, default="", show_default=False)
            except (EOFError, KeyboardInterrupt, click.Abort):
                _CONSOLE.print("\nbye", style="yellow")
                break
            result = _run_cancellable(session, raw)
            if result is None:
                continue
            renderer.render(result)
            if result.should_exit:
                break
