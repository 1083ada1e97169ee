from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from ..editor.template import validate_command_template
from ..net import is_valid_ip_or_cidr

DEFAULT_SERVER_PORT = 3339
DEFAULT_BIND_HOST = "0.0.0.0"
DEFAULT_TAILSCALE_PATTERN = "{hostname-}tail"

LOG_LEVELS = ("debug", "info", "warning", "error")


def _to_kebab(name: str) -> str:
    return name.replace("_", "-")


class _BaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_kebab,
        populate_by_name=True,
    )


class LogConfig(_BaseModel):
    """Logging configuration shared by client and server.

    ``file`` defaults to ``client.log`` / ``server.log`` under the
    rcode data directory; an empty string disables the file sink.
    """

    level: str = "info"
    file: Optional[str] = None
    # Rotate once the file reaches max-size MB, keep max-backups files.
    max_size: int = Field(default=10, ge=1)
    max_backups: int = Field(default=5, ge=0)
    compress: bool = True
    console: bool = True

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> str:
        level = str(v).strip().lower()
        if level == "warn":
            level = "warning"
        if level not in LOG_LEVELS:
            raise ValueError(
                f"invalid log level: {v!r}"
                " (must be debug, info, warn, or error)"
            )
        return level


class EditorConfig(_BaseModel):
    """One editor the server can launch."""

    model_config = ConfigDict(frozen=True)
    name: str = Field(..., min_length=1)
    command: str = Field(..., min_length=1)
    default: bool = False
    available: bool = True

    @field_validator("command")
    @classmethod
    def check_command_template(cls, v: str) -> str:
        validate_command_template(v)
        return v


def default_editors() -> list[EditorConfig]:
    return [
        EditorConfig(
            name="cursor",
            command="cursor --remote ssh-remote+{user}@{host} {path}",
            default=True,
        ),
        EditorConfig(
            name="vscode",
            command="code --remote ssh-remote+{user}@{host} {path}",
        ),
        EditorConfig(name="zed", command="zed ssh://{user}@{host}/{path}"),
        EditorConfig(name="nvim", command="nvim scp://{user}@{host}/{path}"),
    ]


def default_fallback_editors() -> dict[str, str]:
    return {
        "cursor": "cursor --remote ssh-remote+{user}@{host} {path}",
        "vscode": "code --remote ssh-remote+{user}@{host} {path}",
        "code": "code --remote ssh-remote+{user}@{host} {path}",
        "zed": "zed ssh://{user}@{host}/{path}",
        "nvim": "nvim scp://{user}@{host}/{path}",
        "neovim": "nvim scp://{user}@{host}/{path}",
    }


# ── Client ────────────────────────────────────────────────────


class ServerHostConfig(_BaseModel):
    """Where the client reaches rcode-server."""

    primary: str = ""
    fallback: str = ""


class AutoDetectConfig(_BaseModel):
    """Tailscale auto-detection for the editor target."""

    tailscale: bool = True
    tailscale_pattern: str = DEFAULT_TAILSCALE_PATTERN
    # Upper bound for `tailscale status --json`, in seconds.
    timeout: float = Field(default=2.0, gt=0)


class SshHostConfig(_BaseModel):
    """Host the editor uses to SSH back into this machine."""

    host: str = ""
    auto_detect: AutoDetectConfig = Field(
        default_factory=lambda: AutoDetectConfig()
    )


class HostsConfig(_BaseModel):
    server: ServerHostConfig = Field(
        default_factory=lambda: ServerHostConfig()
    )
    ssh: SshHostConfig = Field(default_factory=lambda: SshHostConfig())


class ClientNetworkConfig(_BaseModel):
    """HTTP behaviour of the client, durations in seconds."""

    timeout: float = Field(default=2.0, gt=0)
    retry_attempts: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=0.5, ge=0)
    port: int = Field(default=DEFAULT_SERVER_PORT, ge=1, le=65535)


class ClientConfig(_BaseModel):
    """Top-level rcode client configuration."""

    hosts: HostsConfig = Field(default_factory=lambda: HostsConfig())
    network: ClientNetworkConfig = Field(
        default_factory=lambda: ClientNetworkConfig()
    )
    default_editor: str = "cursor"
    fallback_editors: Dict[str, str] = Field(
        default_factory=default_fallback_editors
    )
    logging: LogConfig = Field(default_factory=lambda: LogConfig())

    @field_validator("fallback_editors")
    @classmethod
    def check_fallback_templates(cls, v: Dict[str, str]) -> Dict[str, str]:
        for name, command in v.items():
            try:
                validate_command_template(command)
            except ValueError as e:
                raise ValueError(f"fallback editor '{name}': {e}") from e
        return v


# ── Server ────────────────────────────────────────────────────


class ServerSettings(_BaseModel):
    """HTTP listener settings of rcode-server."""

    host: str = DEFAULT_BIND_HOST
    port: int = Field(default=DEFAULT_SERVER_PORT, ge=1, le=65535)
    # Single addresses or CIDR blocks; empty allows everyone.
    allowed_ips: List[str] = Field(default_factory=list)

    @field_validator("allowed_ips")
    @classmethod
    def check_allowed_ips(cls, v: List[str]) -> List[str]:
        for i, entry in enumerate(v):
            if not is_valid_ip_or_cidr(entry):
                raise ValueError(
                    f"allowed-ips[{i}]: invalid IP or CIDR: {entry!r}"
                )
        return v


class ServerConfig(_BaseModel):
    """Top-level rcode-server configuration."""

    server: ServerSettings = Field(default_factory=lambda: ServerSettings())
    editors: List[EditorConfig] = Field(default_factory=default_editors)
    logging: LogConfig = Field(default_factory=lambda: LogConfig())

    @model_validator(mode="after")
    def validate_editors(self) -> ServerConfig:
        if not self.editors:
            raise ValueError("at least one editor must be configured")
        seen: set[str] = set()
        for editor in self.editors:
            if editor.name in seen:
                raise ValueError(f"duplicate editor name: {editor.name}")
            seen.add(editor.name)
        if sum(1 for e in self.editors if e.default) > 1:
            raise ValueError("only one editor can be marked as default")
        return self
