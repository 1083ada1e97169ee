"""Concrete host sources, from explicit flag down to local hostname."""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass, field
from typing import Mapping, Optional

from . import tailscale
from .hosts import HostCategory, HostSource
from .sshenv import SshSession

PRIORITY_COMMAND_LINE = 10
PRIORITY_ENVIRONMENT = 20
PRIORITY_CONFIG = 30
PRIORITY_CONFIG_FALLBACK = PRIORITY_CONFIG + 1
PRIORITY_TAILSCALE = 40
PRIORITY_SSH_CONNECTION = 50
PRIORITY_HOSTNAME = 100

SERVER_HOST_ENV = "RCODE_SERVER_HOST"
SSH_HOST_ENV = "RCODE_SSH_HOST"
# Deprecated: read for the server connection only, when
# RCODE_SERVER_HOST is unset.
LEGACY_HOST_ENV = "RCODE_HOST"

FALLBACK_HOSTNAME = "localhost"


@dataclass(frozen=True)
class CommandLineSource:
    """Host given with ``--host``; answers for both categories."""

    host: str = ""

    def identifier(self) -> str:
        return "command-line"

    def priority(self) -> int:
        return PRIORITY_COMMAND_LINE

    def resolve(self, category: HostCategory) -> str:
        # An explicit host is usually an alias that reaches the
        # server and, from there, this machine alike.
        return self.host


@dataclass(frozen=True)
class EnvSource:
    """Hosts from ``RCODE_SERVER_HOST`` / ``RCODE_SSH_HOST``.

    The legacy ``RCODE_HOST`` is read silently; reporting the
    deprecation is up to the caller.
    """

    server_host_env: str = SERVER_HOST_ENV
    ssh_host_env: str = SSH_HOST_ENV
    legacy_host_env: str = LEGACY_HOST_ENV
    environ: Optional[Mapping[str, str]] = field(
        default=None, compare=False
    )

    def identifier(self) -> str:
        return "environment"

    def priority(self) -> int:
        return PRIORITY_ENVIRONMENT

    def resolve(self, category: HostCategory) -> str:
        env = os.environ if self.environ is None else self.environ
        match category:
            case HostCategory.SERVER_CONNECTION:
                return env.get(self.server_host_env) or env.get(
                    self.legacy_host_env, ""
                )
            case HostCategory.EDITOR_TARGET:
                return env.get(self.ssh_host_env, "")


@dataclass(frozen=True)
class ConfigSource:
    """Primary server host and explicit SSH host from the config file.

    The configured fallback server is answered by
    :class:`ConfigFallbackSource` one step lower in the chain, so the
    resolver picks it up as the second distinct server value.
    """

    server_primary: str = ""
    server_fallback: str = ""
    ssh_host: str = ""

    def identifier(self) -> str:
        return "config"

    def priority(self) -> int:
        return PRIORITY_CONFIG

    def resolve(self, category: HostCategory) -> str:
        match category:
            case HostCategory.SERVER_CONNECTION:
                return self.server_primary
            case HostCategory.EDITOR_TARGET:
                return self.ssh_host


@dataclass(frozen=True)
class ConfigFallbackSource:
    """Configured fallback server host."""

    server_fallback: str = ""

    def identifier(self) -> str:
        return "config-fallback"

    def priority(self) -> int:
        return PRIORITY_CONFIG_FALLBACK

    def resolve(self, category: HostCategory) -> str:
        if category is HostCategory.SERVER_CONNECTION:
            return self.server_fallback
        else:
            return ""


@dataclass(frozen=True)
class TailscaleSource:
    """Hosts derived from Tailscale when the session runs over it.

    Every call re-runs detection: interface enumeration for both
    categories, plus ``tailscale status`` for the editor target.
    """

    pattern: str = ""
    client_ip: str = ""
    ssh_tty: str = ""
    timeout: float = tailscale.DEFAULT_STATUS_TIMEOUT

    def identifier(self) -> str:
        return "tailscale"

    def priority(self) -> int:
        return PRIORITY_TAILSCALE

    def resolve(self, category: HostCategory) -> str:
        local_ip = tailscale.local_tailscale_ip()
        if not local_ip:
            return ""
        if not tailscale.session_via_tailscale(
            self.client_ip, local_ip, self.ssh_tty
        ):
            return ""
        match category:
            case HostCategory.SERVER_CONNECTION:
                return local_ip
            case HostCategory.EDITOR_TARGET:
                hostname = tailscale.tailscale_hostname(self.timeout)
                if not hostname:
                    return ""
                return tailscale.apply_host_pattern(hostname, self.pattern)


@dataclass(frozen=True)
class SshConnectionSource:
    """Client address of the ambient SSH session, for the editor only."""

    client_ip: str = ""

    def identifier(self) -> str:
        return "ssh-connection"

    def priority(self) -> int:
        return PRIORITY_SSH_CONNECTION

    def resolve(self, category: HostCategory) -> str:
        if category is HostCategory.EDITOR_TARGET:
            return self.client_ip
        else:
            return ""


@dataclass(frozen=True)
class HostnameSource:
    """Local hostname; the last resort for the editor target."""

    def identifier(self) -> str:
        return "hostname"

    def priority(self) -> int:
        return PRIORITY_HOSTNAME

    def resolve(self, category: HostCategory) -> str:
        if category is not HostCategory.EDITOR_TARGET:
            return ""
        try:
            return socket.gethostname() or FALLBACK_HOSTNAME
        except OSError:
            return FALLBACK_HOSTNAME


def build_sources(
    *,
    explicit_host: str = "",
    server_primary: str = "",
    server_fallback: str = "",
    ssh_host: str = "",
    tailscale_enabled: bool = False,
    tailscale_pattern: str = "",
    tailscale_timeout: float = tailscale.DEFAULT_STATUS_TIMEOUT,
    session: SshSession | None = None,
    environ: Optional[Mapping[str, str]] = None,
) -> list[HostSource]:
    """Assemble the standard source chain for one invocation.

    The command-line source is only included when a host was given,
    and the Tailscale source only when auto-detection is enabled.
    """
    session = session or SshSession()
    sources: list[HostSource] = []
    if explicit_host:
        sources.append(CommandLineSource(host=explicit_host))
    sources.append(EnvSource(environ=environ))
    sources.append(
        ConfigSource(
            server_primary=server_primary,
            server_fallback=server_fallback,
            ssh_host=ssh_host,
        )
    )
    sources.append(ConfigFallbackSource(server_fallback=server_fallback))
    if tailscale_enabled:
        sources.append(
            TailscaleSource(
                pattern=tailscale_pattern,
                client_ip=session.client_ip,
                ssh_tty=session.tty,
                timeout=tailscale_timeout,
            )
        )
    sources.append(SshConnectionSource(client_ip=session.client_ip))
    sources.append(HostnameSource())
    return sources
