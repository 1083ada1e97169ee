"""CLI output formatting."""

from __future__ import annotations

import enum

from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .api import EditorsResponse, HealthResponse
from .config import ClientConfig, ConfigError
from .network import ResolvedHosts, SourceAnswer, SshSession


class OutputFormat(str, enum.Enum):
    """Output format for CLI commands."""

    HUMAN = "human"
    JSON = "json"


def _or_unset(value: str) -> Text:
    if value:
        return Text(value)
    else:
        return Text("(not set)", style="dim")


def print_client_config(
    cfg: ClientConfig,
    *,
    config_path: str | None = None,
    console: Console | None = None,
) -> None:
    """Print the effective client configuration."""
    if console is None:
        console = Console()

    if config_path:
        console.print(f"[bold]Config file:[/bold] {config_path}")
    else:
        console.print("[bold]Config file:[/bold] (none, using defaults)")
    console.print()

    hosts = Table(title="Hosts", show_header=False)
    hosts.add_column("Setting", style="bold")
    hosts.add_column("Value")
    auto = cfg.hosts.ssh.auto_detect
    hosts.add_row("Server primary", _or_unset(cfg.hosts.server.primary))
    hosts.add_row("Server fallback", _or_unset(cfg.hosts.server.fallback))
    hosts.add_row("SSH host", _or_unset(cfg.hosts.ssh.host))
    hosts.add_row(
        "Tailscale auto-detect",
        Text("enabled", style="green")
        if auto.tailscale
        else Text("disabled", style="dim"),
    )
    hosts.add_row("Tailscale pattern", _or_unset(auto.tailscale_pattern))
    console.print(hosts)

    network = Table(title="Network", show_header=False)
    network.add_column("Setting", style="bold")
    network.add_column("Value")
    network.add_row("Port", str(cfg.network.port))
    network.add_row("Timeout", f"{cfg.network.timeout:g}s")
    network.add_row("Retry attempts", str(cfg.network.retry_attempts))
    network.add_row("Retry delay", f"{cfg.network.retry_delay:g}s")
    console.print(network)

    editors = Table(title="Editors")
    editors.add_column("Name", style="bold")
    editors.add_column("Fallback command")
    for name, command in cfg.fallback_editors.items():
        label = f"{name} (default)" if name == cfg.default_editor else name
        editors.add_row(label, command)
    console.print(editors)

    console.print(
        f"[bold]Default editor:[/bold] {cfg.default_editor}\n"
        f"[bold]Log level:[/bold] {cfg.logging.level}"
    )


def print_editors(
    editors: EditorsResponse,
    *,
    console: Console | None = None,
) -> None:
    """Print the editors a server offers."""
    if console is None:
        console = Console()

    table = Table(title="Available Editors")
    table.add_column("Name", style="bold")
    table.add_column("Status")
    table.add_column("Command")
    for e in editors.editors:
        name = f"{e.name} (default)" if e.default else e.name
        status = (
            Text("available", style="green")
            if e.available
            else Text("unavailable", style="red")
        )
        table.add_row(name, status, e.command)
    console.print(table)


def print_health(
    host: str,
    health: HealthResponse,
    *,
    console: Console | None = None,
) -> None:
    if console is None:
        console = Console()
    console.print(
        f"[green]{host} is {health.status}[/green]"
        f" (version {health.version}, up {health.uptime}s)"
    )


def print_host_failures(
    failures: list[tuple[str, str]],
    *,
    console: Console | None = None,
) -> None:
    if console is None:
        console = Console(stderr=True)
    for host, reason in failures:
        console.print(f"[red]{host}[/red]: {reason}")


def hosts_payload(
    resolved: ResolvedHosts,
    answers: list[SourceAnswer],
    session: SshSession,
) -> dict[str, object]:
    """JSON-ready view of a resolution and the sources behind it.

    Takes the output of :meth:`Resolver.trace`, so every source has
    been asked exactly once per category.
    """
    return {
        "resolved": resolved.model_dump(),
        "sources": [
            {
                "name": a.name,
                "priority": a.priority,
                "server-connection": a.server_connection,
                "editor-target": a.editor_target,
            }
            for a in answers
        ],
        "session": session.model_dump(),
    }


def print_hosts(
    payload: dict[str, object],
    *,
    console: Console | None = None,
) -> None:
    """Print the output of :func:`hosts_payload` as tables."""
    if console is None:
        console = Console()

    resolved = ResolvedHosts.model_validate(payload["resolved"])
    summary = Table(title="Resolved hosts", show_header=False)
    summary.add_column("Role", style="bold")
    summary.add_column("Host")
    summary.add_row("Server", _or_unset(resolved.server))
    summary.add_row("Server fallback", _or_unset(resolved.server_fallback))
    summary.add_row(
        "Editor target",
        Text(f"{resolved.editor_target} (from {resolved.source_name})")
        if resolved.editor_target
        else _or_unset(""),
    )
    console.print(summary)

    sources = Table(title="Sources")
    sources.add_column("Priority", justify="right")
    sources.add_column("Source", style="bold")
    sources.add_column("Server connection")
    sources.add_column("Editor target")
    rows = payload["sources"]
    assert isinstance(rows, list)
    for row in rows:
        sources.add_row(
            str(row["priority"]),
            row["name"],
            _or_unset(row["server-connection"]),
            _or_unset(row["editor-target"]),
        )
    console.print(sources)


def print_config_error(
    e: ConfigError,
    *,
    console: Console | None = None,
) -> None:
    """Print a ConfigError as a Rich panel to stderr."""
    if console is None:
        console = Console(stderr=True)
    cause = e.__cause__
    match cause:
        case ValidationError():
            lines: list[str] = []
            for err in cause.errors():
                loc = " → ".join(str(p) for p in err["loc"])
                msg = err["msg"]
                if msg.startswith("Value error, "):
                    msg = msg[len("Value error, "):]
                if loc:
                    lines.append(f"{loc}: {msg}")
                else:
                    lines.append(msg)
            body = "\n".join(lines)
        case _:
            body = str(e)
    console.print(Panel(body, title="Config error", style="red"))
