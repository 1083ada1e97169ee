"""Install rcode-server as a per-user systemd or launchd service."""

from __future__ import annotations

import importlib.resources
import os
import shlex
import shutil
import subprocess
import sys
from pathlib import Path

from jinja2 import Environment
from loguru import logger

from .config.loader import data_dir

SERVICE_NAME = "rcode-server"
LAUNCHD_LABEL = "io.github.rcode.rcode-server"
SYSTEMD_UNIT = f"{SERVICE_NAME}.service"
SERVICE_PATH_ENV = "/usr/local/bin:/usr/bin:/bin:/usr/sbin:/sbin"


class ServiceError(Exception):
    """Raised when the service cannot be managed."""


def _load_template(name: str) -> str:
    return (
        importlib.resources.files("rcode.templates")
        .joinpath(name)
        .read_text(encoding="utf-8")
    )


def _environment(*, xml: bool) -> Environment:
    return Environment(
        autoescape=xml,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


class ServiceManager:
    """Manage the rcode-server user service on Linux and macOS."""

    def __init__(
        self,
        binary_path: str = "",
        config_path: str = "",
        *,
        home: Path | None = None,
        platform: str | None = None,
    ) -> None:
        self.binary_path = binary_path
        self.config_path = config_path
        self.home = home or Path.home()
        self.platform = platform or sys.platform

    # ── Paths and rendering ───────────────────────────────────

    def _check_platform(self) -> str:
        match self.platform:
            case "darwin" | "linux":
                return self.platform
            case _:
                raise ServiceError(
                    f"unsupported operating system: {self.platform}"
                )

    @property
    def unit_path(self) -> Path:
        if self._check_platform() == "darwin":
            return self.home / "Library" / "LaunchAgents" / f"{LAUNCHD_LABEL}.plist"
        else:
            return self.home / ".config" / "systemd" / "user" / SYSTEMD_UNIT

    @property
    def log_dir(self) -> Path:
        return data_dir() / "logs"

    def find_binary(self) -> str:
        """Locate the rcode-server executable to run."""
        if self.binary_path and os.path.isabs(self.binary_path):
            if os.path.exists(self.binary_path):
                return self.binary_path
        found = shutil.which(self.binary_path or SERVICE_NAME)
        if found:
            return found
        candidates = [
            Path("/usr/local/bin") / SERVICE_NAME,
            Path("/usr/bin") / SERVICE_NAME,
            self.home / ".local" / "bin" / SERVICE_NAME,
            self.home / "bin" / SERVICE_NAME,
        ]
        for candidate in candidates:
            if candidate.exists():
                return str(candidate)
        raise ServiceError(
            f"{SERVICE_NAME} binary not found in PATH or common locations"
        )

    def program_arguments(self, binary: str) -> list[str]:
        args = [binary, "serve"]
        if self.config_path:
            args += ["--config", self.config_path]
        return args

    def render_unit(self, binary: str) -> str:
        """Render the service definition for the current platform."""
        args = self.program_arguments(binary)
        context = {
            "log_dir": str(self.log_dir),
            "path_env": SERVICE_PATH_ENV,
        }
        if self._check_platform() == "darwin":
            env = _environment(xml=True)
            template = env.from_string(
                _load_template("rcode-server.plist.j2")
            )
            return template.render(
                label=LAUNCHD_LABEL, program_arguments=args, **context
            )
        else:
            env = _environment(xml=False)
            template = env.from_string(
                _load_template("rcode-server.service.j2")
            )
            return template.render(exec_start=shlex.join(args), **context)

    # ── Lifecycle ─────────────────────────────────────────────

    def is_installed(self) -> bool:
        return self.unit_path.is_file()

    def install(self) -> Path:
        """Write the service definition and register it."""
        path = self.unit_path
        binary = self.find_binary()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self.log_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(self.render_unit(binary), encoding="utf-8")
            path.chmod(0o600)
        except OSError as e:
            raise ServiceError(f"failed to write {path}: {e}") from e
        logger.info(f"Wrote service definition {path}")

        if self.platform == "darwin":
            if not self._run(["launchctl", "load", str(path)], check=False):
                self._run(["launchctl", "unload", str(path)], check=False)
                self._run(["launchctl", "load", str(path)])
        else:
            self._run(["systemctl", "--user", "daemon-reload"])
            self._run(["systemctl", "--user", "enable", SYSTEMD_UNIT])
        return path

    def uninstall(self) -> None:
        path = self.unit_path
        if self.platform == "darwin":
            self._run(["launchctl", "unload", str(path)], check=False)
        else:
            self._run(["systemctl", "--user", "disable", SYSTEMD_UNIT], check=False)
            self._run(["systemctl", "--user", "stop", SYSTEMD_UNIT], check=False)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise ServiceError(f"failed to remove {path}: {e}") from e
        if self.platform == "linux":
            self._run(["systemctl", "--user", "daemon-reload"], check=False)
        logger.info(f"Removed service definition {path}")

    def start(self) -> None:
        if not self.is_installed():
            raise ServiceError(
                "service not installed, run 'rcode-server service install' first"
            )
        if self.platform == "darwin":
            self._run(["launchctl", "start", LAUNCHD_LABEL])
        else:
            self._run(["systemctl", "--user", "start", SYSTEMD_UNIT])

    def stop(self) -> None:
        self._check_platform()
        if self.platform == "darwin":
            self._run(["launchctl", "stop", LAUNCHD_LABEL])
        else:
            self._run(["systemctl", "--user", "stop", SYSTEMD_UNIT])

    def is_running(self) -> bool:
        self._check_platform()
        if self.platform == "darwin":
            return self._run(["launchctl", "list", LAUNCHD_LABEL], check=False)
        else:
            return self._run(
                ["systemctl", "--user", "is-active", "--quiet", SYSTEMD_UNIT],
                check=False,
            )

    def _run(self, args: list[str], *, check: bool = True) -> bool:
        """Run a service manager command; True when it succeeded."""
        logger.debug(f"Running {shlex.join(args)}")
        try:
            result = subprocess.run(args, capture_output=True, text=True)
        except OSError as e:
            raise ServiceError(f"cannot run {args[0]}: {e}") from e
        if result.returncode == 0:
            return True
        elif check:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            raise ServiceError(f"{shlex.join(args)} failed: {detail}")
        else:
            return False
