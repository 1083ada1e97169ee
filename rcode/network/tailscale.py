"""Tailscale detection: local interface, session routing, peer naming.

Everything here degrades to an empty answer.  A missing binary, a
non-zero exit, a timeout or malformed JSON all mean "Tailscale is not
usable right now", never an error for the caller.
"""

from __future__ import annotations

import json
import re
import socket
import subprocess

import psutil
from loguru import logger

from ..net import is_cgnat_ip

TAILSCALE_INTERFACE = "tailscale0"
# macOS exposes the tunnel as utunN
TAILSCALE_INTERFACE_PREFIX = "utun"
TAILSCALE_BINARY = "tailscale"
DEFAULT_STATUS_TIMEOUT = 2.0

# <machine>[.<tailnet>].ts.net, with or without the trailing root dot
_MAGICDNS_SUFFIX = re.compile(r"(\.[^.]+)?\.ts\.net\.?$", re.IGNORECASE)


def _is_tailscale_interface(name: str) -> bool:
    return name == TAILSCALE_INTERFACE or name.startswith(
        TAILSCALE_INTERFACE_PREFIX
    )


def local_tailscale_ip() -> str:
    """Return the IPv4 address bound to the local Tailscale interface.

    Returns ``""`` if no Tailscale-named interface carries an address
    inside 100.64.0.0/10.
    """
    try:
        interfaces = psutil.net_if_addrs()
    except OSError as e:
        logger.debug(f"Cannot enumerate network interfaces: {e}")
        return ""
    for name, addrs in interfaces.items():
        if not _is_tailscale_interface(name):
            continue
        for addr in addrs:
            if addr.family == socket.AF_INET and is_cgnat_ip(addr.address):
                return addr.address
    return ""


def session_via_tailscale(client_ip: str, local_ip: str, ssh_tty: str) -> bool:
    """Guess whether the current SSH session arrived over Tailscale.

    True if the client address is a Tailscale address, or if an SSH
    terminal is attached while a local Tailscale interface exists.
    The second rule also fires for a plain LAN session on a machine
    that happens to run Tailscale.
    """
    if is_cgnat_ip(client_ip):
        return True
    else:
        return bool(local_ip) and bool(ssh_tty)


def tailscale_hostname(timeout: float = DEFAULT_STATUS_TIMEOUT) -> str:
    """Return this node's name from ``tailscale status --json``.

    Prefers ``Self.HostName`` and falls back to ``Self.DNSName``.
    The command is bounded by *timeout* seconds and never retried.
    """
    try:
        result = subprocess.run(
            [TAILSCALE_BINARY, "status", "--json"],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.debug(f"tailscale status timed out after {timeout}s")
        return ""
    except OSError as e:
        logger.debug(f"tailscale status failed to start: {e}")
        return ""
    if result.returncode != 0:
        logger.debug(f"tailscale status exited with {result.returncode}")
        return ""
    try:
        status = json.loads(result.stdout)
    except json.JSONDecodeError:
        logger.debug("tailscale status returned malformed JSON")
        return ""
    return _self_name(status)


def _self_name(status: object) -> str:
    match status:
        case {"Self": dict() as node}:
            for key in ("HostName", "DNSName"):
                value = node.get(key)
                if isinstance(value, str) and value:
                    return value
            return ""
        case _:
            return ""


def strip_tailscale_suffix(hostname: str) -> str:
    """Strip MagicDNS domain suffixes such as ``.tail75a81.ts.net.``."""
    return _MAGICDNS_SUFFIX.sub("", hostname)


def apply_host_pattern(hostname: str, pattern: str = "") -> str:
    """Turn a Tailscale node name into the name handed to the editor.

    ``{hostname}`` is replaced by the base name and ``{hostname-}`` by
    the base name without hyphens.  Without a pattern the hyphens are
    removed and ``tail`` appended (``ws-01`` -> ``ws01tail``).
    """
    base = strip_tailscale_suffix(hostname)
    compact = base.replace("-", "")
    if not pattern:
        return compact + "tail"
    else:
        return pattern.replace("{hostname}", base).replace(
            "{hostname-}", compact
        )
