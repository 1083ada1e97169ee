"""Tests for the rcode-server CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator
from unittest.mock import MagicMock, patch

import pytest
from loguru import logger
from typer.testing import CliRunner

from rcode.config import ServerConfig, load_server_config
from rcode.editor import NoEditorsError
from rcode.servercli import app
from rcode.service import ServiceError

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging() -> Iterator[None]:
    logger.remove()
    yield
    logger.remove()


@pytest.fixture
def served(monkeypatch: pytest.MonkeyPatch) -> list[ServerConfig]:
    configs: list[ServerConfig] = []
    monkeypatch.setattr("rcode.servercli.run_server", configs.append)
    return configs


class TestServe:
    def test_uses_config_file(
        self, served: list[ServerConfig], server_config_file: Path
    ) -> None:
        result = runner.invoke(app, ["serve", "--config", str(server_config_file)])
        assert result.exit_code == 0, result.output
        (cfg,) = served
        assert cfg.server.host == "127.0.0.1"
        assert cfg.server.port == 4444
        assert [e.name for e in cfg.editors] == ["cursor", "zed"]
        assert cfg.logging.level == "warning"

    def test_flag_overrides(
        self, served: list[ServerConfig], server_config_file: Path
    ) -> None:
        result = runner.invoke(
            app,
            [
                "serve",
                "--config",
                str(server_config_file),
                "--host",
                "0.0.0.0",
                "--port",
                "5555",
                "--log-level",
                "debug",
            ],
        )
        assert result.exit_code == 0, result.output
        cfg = served[0]
        assert cfg.server.host == "0.0.0.0"
        assert cfg.server.port == 5555
        assert cfg.server.allowed_ips == ["192.168.1.0/24", "100.64.0.5"]
        assert cfg.logging.level == "debug"

    def test_bind_environment(
        self,
        monkeypatch: pytest.MonkeyPatch,
        served: list[ServerConfig],
        server_config_file: Path,
    ) -> None:
        monkeypatch.setenv("RCODE_HOST", "10.1.2.3")
        result = runner.invoke(app, ["serve", "--config", str(server_config_file)])
        assert result.exit_code == 0, result.output
        assert served[0].server.host == "10.1.2.3"

    def test_invalid_port(
        self, served: list[ServerConfig], server_config_file: Path
    ) -> None:
        result = runner.invoke(
            app,
            ["serve", "--config", str(server_config_file), "--port", "70000"],
        )
        assert result.exit_code == 2
        assert served == []

    def test_invalid_config(self, served: list[ServerConfig], tmp_path: Path) -> None:
        bad = tmp_path / "server-config.yaml"
        bad.write_text("server:\n  allowed-ips: [not-an-ip]\n")
        result = runner.invoke(app, ["serve", "--config", str(bad)])
        assert result.exit_code == 2
        assert served == []

    def test_invalid_log_level_environment(
        self,
        monkeypatch: pytest.MonkeyPatch,
        served: list[ServerConfig],
        server_config_file: Path,
    ) -> None:
        monkeypatch.setenv("RCODE_LOG_LEVEL", "verbose")
        result = runner.invoke(app, ["serve", "--config", str(server_config_file)])
        assert result.exit_code == 2
        assert served == []

    def test_editor_setup_failure(
        self, monkeypatch: pytest.MonkeyPatch, server_config_file: Path
    ) -> None:
        def failing(config: ServerConfig) -> None:
            raise NoEditorsError("no editors configured")

        monkeypatch.setattr("rcode.servercli.run_server", failing)
        result = runner.invoke(app, ["serve", "--config", str(server_config_file)])
        assert result.exit_code == 1


class TestInitConfig:
    def test_writes_defaults(self, tmp_path: Path) -> None:
        target = tmp_path / "server-config.yaml"
        result = runner.invoke(app, ["init-config", "--path", str(target)])
        assert result.exit_code == 0, result.output
        cfg = load_server_config(str(target))
        assert cfg.server.port == 3339
        assert cfg.editors[0].name == "cursor"

    def test_refuses_overwrite(self, server_config_file: Path) -> None:
        result = runner.invoke(
            app, ["init-config", "--path", str(server_config_file)]
        )
        assert result.exit_code == 1
        assert load_server_config(str(server_config_file)).server.port == 4444


class TestVersion:
    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert result.output.strip() == "rcode-server 0.1.0"


class TestService:
    @patch("rcode.servercli.ServiceManager")
    def test_install(self, mock_manager: MagicMock, tmp_path: Path) -> None:
        unit = tmp_path / "rcode-server.service"
        mock_manager.return_value.install.return_value = unit
        result = runner.invoke(
            app, ["service", "install", "--config", str(tmp_path / "s.yaml")]
        )
        assert result.exit_code == 0, result.output
        assert f"Service installed at {unit}" in result.output
        kwargs = mock_manager.call_args.kwargs
        assert kwargs["config_path"] == str(tmp_path / "s.yaml")

    @patch("rcode.servercli.ServiceManager")
    def test_install_failure(self, mock_manager: MagicMock) -> None:
        mock_manager.return_value.install.side_effect = ServiceError(
            "unsupported operating system: win32"
        )
        result = runner.invoke(app, ["service", "install"])
        assert result.exit_code == 1
        assert "unsupported operating system" in result.output

    @pytest.mark.parametrize(
        "command, message",
        [
            ("uninstall", "Service uninstalled."),
            ("start", "Service started."),
            ("stop", "Service stopped."),
        ],
    )
    @patch("rcode.servercli.ServiceManager")
    def test_lifecycle(
        self, mock_manager: MagicMock, command: str, message: str
    ) -> None:
        result = runner.invoke(app, ["service", command])
        assert result.exit_code == 0, result.output
        assert message in result.output
        getattr(mock_manager.return_value, command).assert_called_once_with()

    @patch("rcode.servercli.ServiceManager")
    def test_start_not_installed(self, mock_manager: MagicMock) -> None:
        mock_manager.return_value.start.side_effect = ServiceError(
            "service not installed"
        )
        result = runner.invoke(app, ["service", "start"])
        assert result.exit_code == 1
        assert "Failed to start service" in result.output

    @pytest.mark.parametrize(
        "installed, running, exit_code, message",
        [
            (False, False, 1, "Service is not installed"),
            (True, True, 0, "Service is running"),
            (True, False, 1, "Service is installed but not running"),
        ],
    )
    @patch("rcode.servercli.ServiceManager")
    def test_status(
        self,
        mock_manager: MagicMock,
        installed: bool,
        running: bool,
        exit_code: int,
        message: str,
    ) -> None:
        mock_manager.return_value.is_installed.return_value = installed
        mock_manager.return_value.is_running.return_value = running
        result = runner.invoke(app, ["service", "status"])
        assert result.exit_code == exit_code
        assert message in result.output
