"""CLI for rcode-server using Typer."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from loguru import logger
from pydantic import ValidationError

from . import __version__
from .config import (
    SERVER_CONFIG_FILE,
    ConfigError,
    MigrationWarning,
    ServerConfig,
    config_dir,
    default_log_file,
    load_server_config,
    merge_server_environment,
    save_config,
)
from .editor import EditorError
from .logs import setup_logging
from .output import print_config_error
from .server import run_server
from .service import ServiceError, ServiceManager

app = typer.Typer(
    name="rcode-server",
    help="Open editors on this machine for rcode clients",
    no_args_is_help=True,
)
service_app = typer.Typer(
    name="service",
    help="Manage rcode-server as a user service",
    no_args_is_help=True,
)
app.add_typer(service_app)

_ConfigOption = Annotated[
    Optional[str],
    typer.Option("--config", "-c", help="Path to config file"),
]


@app.command()
def serve(
    config: _ConfigOption = None,
    host: Annotated[
        Optional[str],
        typer.Option("--host", help="Address to bind to"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port to listen on"),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="Log level (debug, info, warn, error)"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug output"),
    ] = False,
) -> None:
    """Run the HTTP server in the foreground."""
    cfg, warnings = _load_config_or_exit(config)
    overrides: dict[str, object] = {}
    if host:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    try:
        if overrides:
            cfg.server = cfg.server.model_validate(
                {**cfg.server.model_dump(), **overrides}
            )
        if log_level:
            cfg.logging = cfg.logging.model_validate(
                {**cfg.logging.model_dump(), "level": log_level}
            )
    except ValidationError as e:
        config_error = ConfigError("invalid command line option")
        config_error.__cause__ = e
        print_config_error(config_error)
        raise typer.Exit(2)

    setup_logging(
        cfg.logging,
        verbose=verbose,
        default_file=default_log_file("server.log"),
    )
    for warning in warnings:
        logger.warning(str(warning))

    try:
        run_server(cfg)
    except EditorError as e:
        logger.error(f"Cannot start server: {e}")
        raise typer.Exit(1)


@app.command(name="init-config")
def init_config(
    path: Annotated[
        Optional[Path],
        typer.Option("--path", "-p", help="Where to write the config"),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing file"),
    ] = False,
) -> None:
    """Write a server config file with the default settings."""
    target = path or config_dir() / SERVER_CONFIG_FILE
    if target.exists() and not force:
        typer.echo(f"{target} already exists (use --force)", err=True)
        raise typer.Exit(1)
    save_config(ServerConfig(), target)
    typer.echo(f"Wrote {target}")


@app.command()
def version() -> None:
    """Show the rcode-server version."""
    typer.echo(f"rcode-server {__version__}")


@service_app.command()
def install(config: _ConfigOption = None) -> None:
    """Install and enable the user service."""
    manager = _service_manager(config)
    try:
        path = manager.install()
    except ServiceError as e:
        _fail("Failed to install service", e)
    typer.echo(f"Service installed at {path}")
    typer.echo("The service will start automatically on login.")


@service_app.command()
def uninstall() -> None:
    """Disable and remove the user service."""
    try:
        _service_manager(None).uninstall()
    except ServiceError as e:
        _fail("Failed to uninstall service", e)
    typer.echo("Service uninstalled.")


@service_app.command()
def start() -> None:
    """Start the installed service."""
    try:
        _service_manager(None).start()
    except ServiceError as e:
        _fail("Failed to start service", e)
    typer.echo("Service started.")


@service_app.command()
def stop() -> None:
    """Stop the running service."""
    try:
        _service_manager(None).stop()
    except ServiceError as e:
        _fail("Failed to stop service", e)
    typer.echo("Service stopped.")


@service_app.command()
def status() -> None:
    """Show whether the service is installed and running."""
    manager = _service_manager(None)
    try:
        installed = manager.is_installed()
        running = manager.is_running()
    except ServiceError as e:
        _fail("Failed to check service status", e)
    if not installed:
        typer.echo("Service is not installed")
        raise typer.Exit(1)
    elif running:
        typer.echo("Service is running")
    else:
        typer.echo("Service is installed but not running")
        raise typer.Exit(1)


def _service_manager(config_path: str | None) -> ServiceManager:
    if config_path:
        config_path = os.path.abspath(os.path.expanduser(config_path))
    return ServiceManager(
        binary_path=os.path.abspath(sys.argv[0]) if sys.argv else "",
        config_path=config_path or "",
    )


def _load_config_or_exit(
    config_path: str | None,
) -> tuple[ServerConfig, list[MigrationWarning]]:
    try:
        cfg = load_server_config(config_path)
        return cfg, merge_server_environment(cfg)
    except ConfigError as e:
        print_config_error(e)
        raise typer.Exit(2)


def _fail(message: str, e: Exception) -> NoReturn:
    typer.echo(f"{message}: {e}", err=True)
    raise typer.Exit(1)


def main() -> None:
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
