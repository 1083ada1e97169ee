"""CLI for rcode using Typer."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console

from . import __version__
from .client import ClientError, RcodeClient
from .config import (
    CLIENT_CONFIG_FILE,
    ClientConfig,
    ConfigError,
    LogConfig,
    config_dir,
    default_log_file,
    deprecated_environment_warnings,
    find_config_file,
    load_client_config,
    merge_client_environment,
    save_config,
)
from .logs import setup_logging
from .network import (
    ResolvedHosts,
    Resolver,
    SshSession,
    build_sources,
    extract_session,
)
from .output import (
    OutputFormat,
    hosts_payload,
    print_client_config,
    print_config_error,
    print_editors,
    print_health,
    print_host_failures,
    print_hosts,
)

app = typer.Typer(
    name="rcode",
    help="Open files of this SSH session in an editor on your machine",
    no_args_is_help=True,
)

_ConfigOption = Annotated[
    Optional[str],
    typer.Option("--config", "-c", help="Path to config file"),
]
_HostOption = Annotated[
    Optional[str],
    typer.Option(
        "--host",
        "-H",
        help="Server host; also used as the editor target",
    ),
]
_LogLevelOption = Annotated[
    Optional[str],
    typer.Option("--log-level", help="Log level (debug, info, warn, error)"),
]
_VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug output"),
]


@app.command(name="open")
def open_(
    path: Annotated[
        str,
        typer.Argument(help="File or directory to open"),
    ] = ".",
    host: _HostOption = None,
    editor: Annotated[
        Optional[str],
        typer.Option("--editor", "-e", help="Editor to use"),
    ] = None,
    config: _ConfigOption = None,
    log_level: _LogLevelOption = None,
    verbose: _VerboseOption = False,
) -> None:
    """Open PATH in an editor on the machine you connected from."""
    cfg = _prepare(config, log_level, verbose)
    session = _session()
    resolved = _resolve(cfg, session, host)

    user = session.user or "unknown"
    abs_path = os.path.abspath(path)
    logger.info(
        f"Opening {abs_path} as {user}@{resolved.editor_target}"
        f" via server {resolved.server or '(none)'}"
    )

    with RcodeClient(
        cfg, resolved.server, resolved.server_fallback
    ) as client:
        try:
            client.open_editor(
                abs_path,
                editor=editor or "",
                user=user,
                host=resolved.editor_target,
            )
        except ClientError as e:
            err = Console(stderr=True)
            err.print(f"[red]Failed to open editor:[/red] {e}")
            print_host_failures(e.failures, console=err)
            manual = client.manual_command(
                abs_path,
                editor=editor or "",
                user=user,
                host=resolved.editor_target,
            )
            if manual:
                err.print(
                    "\nYou can try running this command manually"
                    " on your host machine:"
                )
                err.print(f"  {manual}", markup=False, highlight=False)
            raise typer.Exit(1)

    typer.echo(f"Successfully opened {abs_path}")


@app.command()
def editors(
    host: _HostOption = None,
    config: _ConfigOption = None,
    log_level: _LogLevelOption = None,
    verbose: _VerboseOption = False,
) -> None:
    """List the editors the server can open."""
    cfg = _prepare(config, log_level, verbose)
    server, fallback = _server_hosts(cfg, _session(), host)
    with RcodeClient(cfg, server, fallback) as client:
        try:
            response = client.list_editors()
        except ClientError as e:
            _fail("Failed to list editors", e)
    print_editors(response)


@app.command()
def health(
    host: _HostOption = None,
    config: _ConfigOption = None,
    log_level: _LogLevelOption = None,
    verbose: _VerboseOption = False,
) -> None:
    """Check that rcode-server answers on the resolved hosts."""
    cfg = _prepare(config, log_level, verbose)
    server, fallback = _server_hosts(cfg, _session(), host)
    with RcodeClient(cfg, server, fallback) as client:
        try:
            healthy_host, response = client.check_health()
        except ClientError as e:
            _fail("Health check failed", e)
    print_health(healthy_host, response)


@app.command(name="config")
def show_config(
    config: _ConfigOption = None,
) -> None:
    """Show the effective client configuration."""
    cfg = _load_config_or_exit(config)
    try:
        path = find_config_file(config, CLIENT_CONFIG_FILE)
    except ConfigError:
        path = None
    print_client_config(cfg, config_path=str(path) if path else None)


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
    """Write a config file with the default settings."""
    target = path or config_dir() / CLIENT_CONFIG_FILE
    if target.exists() and not force:
        typer.echo(f"{target} already exists (use --force)", err=True)
        raise typer.Exit(1)
    save_config(ClientConfig(), target)
    typer.echo(f"Wrote {target}")


@app.command()
def hosts(
    host: _HostOption = None,
    config: _ConfigOption = None,
    output: Annotated[
        OutputFormat,
        typer.Option("--output", "-o", help="Output format"),
    ] = OutputFormat.HUMAN,
) -> None:
    """Show how hosts resolve, without contacting the server."""
    cfg = _load_config_or_exit(config)
    session = _session()
    resolved, answers = _resolver(cfg, session, host).trace()
    payload = hosts_payload(resolved, answers, session)
    match output:
        case OutputFormat.JSON:
            typer.echo(json.dumps(payload, indent=2))
        case OutputFormat.HUMAN:
            print_hosts(payload)


@app.command()
def version() -> None:
    """Show the rcode version."""
    typer.echo(f"rcode {__version__}")


def _load_config_or_exit(config_path: str | None) -> ClientConfig:
    """Load config and apply environment overrides, exit 2 on errors."""
    try:
        return merge_client_environment(load_client_config(config_path))
    except ConfigError as e:
        print_config_error(e)
        raise typer.Exit(2)


def _prepare(
    config_path: str | None,
    log_level: str | None,
    verbose: bool,
) -> ClientConfig:
    """Load config, apply environment and flags, set up logging."""
    cfg = _load_config_or_exit(config_path)
    if log_level:
        try:
            cfg.logging = LogConfig.model_validate(
                {**cfg.logging.model_dump(), "level": log_level}
            )
        except ValidationError as e:
            config_error = ConfigError("invalid --log-level")
            config_error.__cause__ = e
            print_config_error(config_error)
            raise typer.Exit(2)
    setup_logging(
        cfg.logging,
        verbose=verbose,
        default_file=default_log_file("client.log"),
    )
    for warning in deprecated_environment_warnings():
        logger.warning(str(warning))
    return cfg


def _session() -> SshSession:
    session = extract_session()
    if session.active:
        logger.debug(f"SSH session: {session.describe()}")
    else:
        logger.warning("Not in an SSH session")
    return session


def _resolver(
    cfg: ClientConfig,
    session: SshSession,
    host: str | None,
) -> Resolver:
    auto = cfg.hosts.ssh.auto_detect
    return Resolver(
        build_sources(
            explicit_host=host or "",
            server_primary=cfg.hosts.server.primary,
            server_fallback=cfg.hosts.server.fallback,
            ssh_host=cfg.hosts.ssh.host,
            tailscale_enabled=auto.tailscale,
            tailscale_pattern=auto.tailscale_pattern,
            tailscale_timeout=auto.timeout,
            session=session,
        )
    )


def _server_hosts(
    cfg: ClientConfig,
    session: SshSession,
    host: str | None,
) -> tuple[str, str]:
    """Primary and fallback server, without resolving the editor target."""
    server, fallback = _resolver(cfg, session, host).resolve_server_connection()
    logger.debug(
        f"Server host {server or '(none)'} fallback {fallback or '(none)'}"
    )
    return server, fallback


def _resolve(
    cfg: ClientConfig,
    session: SshSession,
    host: str | None,
) -> ResolvedHosts:
    resolved = _resolver(cfg, session, host).resolve_all()
    logger.debug(
        f"Server host {resolved.server or '(none)'}"
        f" fallback {resolved.server_fallback or '(none)'}"
    )
    logger.debug(
        f"Editor target {resolved.editor_target}"
        f" from {resolved.source_name}"
    )
    return resolved


def _fail(message: str, e: ClientError) -> NoReturn:
    err = Console(stderr=True)
    err.print(f"[red]{message}:[/red] {e}")
    print_host_failures(e.failures, console=err)
    raise typer.Exit(1)


def main() -> None:
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
