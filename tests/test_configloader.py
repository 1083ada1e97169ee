"""Tests for rcode.config.loader."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from rcode.config import (
    ClientConfig,
    ConfigError,
    ServerConfig,
    find_config_file,
    load_client_config,
    load_server_config,
    save_config,
)


class TestFindConfigFile:
    def test_explicit_path(self, client_config_file: Path) -> None:
        assert find_config_file(str(client_config_file)) == client_config_file

    def test_explicit_path_missing(self) -> None:
        with pytest.raises(ConfigError, match="not found"):
            find_config_file("/nonexistent/config.yaml")

    def test_xdg_config(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        xdg = tmp_path / "xdg"
        cfg = xdg / "rcode" / "config.yaml"
        cfg.parent.mkdir(parents=True)
        cfg.write_text("default-editor: zed\n")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
        assert find_config_file() == cfg

    def test_server_file_name(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        xdg = tmp_path / "xdg"
        cfg = xdg / "rcode" / "server-config.yaml"
        cfg.parent.mkdir(parents=True)
        cfg.write_text("{}\n")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
        assert find_config_file(filename="server-config.yaml") == cfg

    def test_nothing_found(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "empty"))
        monkeypatch.setattr(Path, "is_file", lambda self: False)
        assert find_config_file() is None


class TestLoadClientConfig:
    def test_full_config(self, client_config_file: Path) -> None:
        cfg = load_client_config(str(client_config_file))
        assert cfg.hosts.server.primary == "192.168.1.10"
        assert cfg.hosts.server.fallback == "100.64.0.1"
        assert cfg.hosts.ssh.auto_detect.tailscale
        assert cfg.network.timeout == 1.5
        assert cfg.network.retry_attempts == 2
        assert cfg.default_editor == "vscode"
        assert cfg.logging.level == "debug"
        assert cfg.logging.file == ""

    def test_defaults_without_file(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(
            "rcode.config.loader.find_config_file", lambda *args: None
        )
        assert load_client_config() == ClientConfig()

    def test_empty_file(self, tmp_path: Path) -> None:
        p = tmp_path / "config.yaml"
        p.write_text("")
        assert load_client_config(str(p)) == ClientConfig()

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        p = tmp_path / "config.yaml"
        p.write_text("hosts: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_client_config(str(p))

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        p = tmp_path / "config.yaml"
        p.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="must be a YAML mapping"):
            load_client_config(str(p))

    def test_validation_error(self, tmp_path: Path) -> None:
        p = tmp_path / "config.yaml"
        p.write_text("network:\n  timeout: -1\n")
        with pytest.raises(ConfigError, match="Invalid configuration") as exc:
            load_client_config(str(p))
        assert exc.value.__cause__ is not None

    def test_legacy_keys_migrated(
        self, tmp_path: Path, log_messages: list[str]
    ) -> None:
        p = tmp_path / "config.yaml"
        p.write_text(
            "network:\n"
            "  primary_host: 192.168.1.100\n"
            "  fallback_host: 100.64.0.1\n"
            "ssh_host: laptop\n"
            "auto_detect_tailscale: false\n"
            "tailscale_host_pattern: '{hostname}'\n"
        )
        cfg = load_client_config(str(p))
        assert cfg.hosts.server.primary == "192.168.1.100"
        assert cfg.hosts.server.fallback == "100.64.0.1"
        assert cfg.hosts.ssh.host == "laptop"
        assert not cfg.hosts.ssh.auto_detect.tailscale
        assert cfg.hosts.ssh.auto_detect.tailscale_pattern == "{hostname}"
        assert any("network.primary-host" in m for m in log_messages)


class TestLoadServerConfig:
    def test_full_config(self, server_config_file: Path) -> None:
        cfg = load_server_config(str(server_config_file))
        assert cfg.server.host == "127.0.0.1"
        assert cfg.server.port == 4444
        assert cfg.server.allowed_ips == ["192.168.1.0/24", "100.64.0.5"]
        assert [e.name for e in cfg.editors] == ["cursor", "zed"]
        assert cfg.logging.level == "warning"

    def test_defaults_without_file(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(
            "rcode.config.loader.find_config_file", lambda *args: None
        )
        assert load_server_config() == ServerConfig()

    def test_bad_editor(self, tmp_path: Path) -> None:
        p = tmp_path / "server-config.yaml"
        p.write_text("editors:\n  - name: x\n    command: x {file}\n")
        with pytest.raises(ConfigError, match="unknown placeholder"):
            load_server_config(str(p))


class TestSaveConfig:
    def test_writes_kebab_case(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "config.yaml"
        save_config(ClientConfig(), target)
        data = yaml.safe_load(target.read_text())
        assert data["default-editor"] == "cursor"
        assert data["hosts"]["ssh"]["auto-detect"]["tailscale-pattern"] == (
            "{hostname-}tail"
        )
        assert not target.with_suffix(".tmp").exists()

    def test_round_trip(self, tmp_path: Path) -> None:
        target = tmp_path / "server-config.yaml"
        save_config(ServerConfig(), target)
        assert load_server_config(str(target)) == ServerConfig()
