"""Host resolution: which server to call, which host the editor dials."""

from .hosts import HostCategory, HostSource, ResolvedHosts, SourceAnswer
from .resolver import Resolver
from .sources import (
    CommandLineSource,
    ConfigFallbackSource,
    ConfigSource,
    EnvSource,
    HostnameSource,
    SshConnectionSource,
    TailscaleSource,
    build_sources,
)
from .sshenv import SshSession, extract_client_ip, extract_session

__all__ = [
    "CommandLineSource",
    "ConfigFallbackSource",
    "ConfigSource",
    "EnvSource",
    "HostCategory",
    "HostSource",
    "HostnameSource",
    "ResolvedHosts",
    "Resolver",
    "SourceAnswer",
    "SshConnectionSource",
    "SshSession",
    "TailscaleSource",
    "build_sources",
    "extract_client_ip",
    "extract_session",
]
