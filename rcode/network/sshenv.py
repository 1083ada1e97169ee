"""Read the SSH session this process runs inside from the environment."""

from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict

SSH_CONNECTION_ENV = "SSH_CONNECTION"
SSH_CLIENT_ENV = "SSH_CLIENT"
SSH_TTY_ENV = "SSH_TTY"


class SshSession(BaseModel):
    """Connection metadata of the ambient SSH session.

    ``SSH_CONNECTION`` carries ``client_ip client_port server_ip
    server_port``; the older ``SSH_CLIENT`` carries only ``client_ip
    client_port server_port``.  Only ``client_ip`` takes part in host
    resolution, the rest is kept for diagnostics.
    """

    model_config = ConfigDict(frozen=True)
    user: str = ""
    client_ip: str = ""
    client_port: str = ""
    server_ip: str = ""
    server_port: str = ""
    tty: str = ""
    active: bool = False

    def describe(self) -> str:
        return (
            f"user={self.user} client={self.client_ip}:{self.client_port}"
            f" server={self.server_ip}:{self.server_port}"
        )


def extract_session(
    environ: Optional[Mapping[str, str]] = None,
) -> SshSession:
    """Build an :class:`SshSession` from environment variables."""
    env = os.environ if environ is None else environ
    fields: dict[str, str] = {}

    connection = env.get(SSH_CONNECTION_ENV, "")
    parts = connection.split()
    if parts:
        names = ("client_ip", "client_port", "server_ip", "server_port")
        fields.update(zip(names, parts))
    else:
        parts = env.get(SSH_CLIENT_ENV, "").split()
        names = ("client_ip", "client_port", "server_port")
        fields.update(zip(names, parts))

    tty = env.get(SSH_TTY_ENV, "")
    return SshSession(
        user=env.get("USER") or env.get("LOGNAME") or "",
        tty=tty,
        active=bool(connection or env.get(SSH_CLIENT_ENV) or tty),
        **fields,
    )


def extract_client_ip(environ: Optional[Mapping[str, str]] = None) -> str:
    """Return the SSH client address, or ``""`` outside a session."""
    return extract_session(environ).client_ip
