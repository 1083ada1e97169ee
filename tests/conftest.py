"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from loguru import logger

from rcode.network import tailscale

_AMBIENT_ENV = (
    "RCODE_HOST",
    "RCODE_SERVER_HOST",
    "RCODE_SSH_HOST",
    "RCODE_SERVER_BIND",
    "RCODE_FALLBACK_HOST",
    "RCODE_TIMEOUT",
    "RCODE_EDITOR",
    "RCODE_LOG_LEVEL",
    "SSH_CONNECTION",
    "SSH_CLIENT",
    "SSH_TTY",
)

SAMPLE_CLIENT_YAML = """\
hosts:
  server:
    primary: 192.168.1.10
    fallback: 100.64.0.1
  ssh:
    host: ""
    auto-detect:
      tailscale: true
      tailscale-pattern: "{hostname-}tail"
network:
  timeout: 1.5
  retry-attempts: 2
  retry-delay: 0.1
default-editor: vscode
logging:
  level: debug
  file: ""
"""

SAMPLE_SERVER_YAML = """\
server:
  host: 127.0.0.1
  port: 4444
  allowed-ips:
    - 192.168.1.0/24
    - 100.64.0.5
editors:
  - name: cursor
    command: cursor --remote ssh-remote+{user}@{host} {path}
    default: true
  - name: zed
    command: zed ssh://{user}@{host}/{path}
logging:
  level: warn
  file: ""
"""


@pytest.fixture(autouse=True)
def isolated_env(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Keep the user's config, logs and SSH session out of tests."""
    for name in _AMBIENT_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    monkeypatch.setenv("USER", "alice")


@pytest.fixture
def no_tailscale(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(tailscale, "local_tailscale_ip", lambda: "")


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Messages logged through loguru while the test runs."""
    messages: list[str] = []
    sink_id = logger.add(
        lambda m: messages.append(m.record["message"]), level="DEBUG"
    )
    yield messages
    try:
        logger.remove(sink_id)
    except ValueError:
        pass


@pytest.fixture
def client_config_file(tmp_path: Path) -> Path:
    p = tmp_path / "config.yaml"
    p.write_text(SAMPLE_CLIENT_YAML)
    return p


@pytest.fixture
def server_config_file(tmp_path: Path) -> Path:
    p = tmp_path / "server-config.yaml"
    p.write_text(SAMPLE_SERVER_YAML)
    return p
