"""YAML configuration loading, parsing, and validation."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, TypeVar

import yaml
from loguru import logger
from pydantic import BaseModel, ValidationError

from .migration import migrate_client_payload
from .protocol import ClientConfig, ServerConfig

CLIENT_CONFIG_FILE = "config.yaml"
SERVER_CONFIG_FILE = "server-config.yaml"

_M = TypeVar("_M", bound=BaseModel)


class ConfigError(Exception):
    """Raised when configuration is invalid."""


def config_dir() -> Path:
    xdg = os.environ.get(
        "XDG_CONFIG_HOME",
        os.path.expanduser("~/.config"),
    )
    return Path(xdg) / "rcode"


def data_dir() -> Path:
    xdg = os.environ.get(
        "XDG_DATA_HOME",
        os.path.expanduser("~/.local/share"),
    )
    return Path(xdg) / "rcode"


def default_log_file(name: str) -> Path:
    return data_dir() / "logs" / name


def find_config_file(
    config_path: str | None = None,
    filename: str = CLIENT_CONFIG_FILE,
) -> Path | None:
    """Find the configuration file using search order.

    Order: explicit path > XDG_CONFIG_HOME > /etc/rcode/.
    An explicit path must exist; otherwise ``None`` means no file
    was found and built-in defaults apply.
    """
    if config_path is not None:
        p = Path(config_path).expanduser()
        if not p.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
        else:
            return p
    else:
        xdg_path = config_dir() / filename
        etc_path = Path("/etc/rcode") / filename
        if xdg_path.is_file():
            return xdg_path
        elif etc_path.is_file():
            return etc_path
        else:
            return None


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    if raw is None:
        return {}
    elif not isinstance(raw, dict):
        raise ConfigError("Config file must be a YAML mapping")
    else:
        return raw


def _validate(model: type[_M], raw: dict[str, Any], path: Path) -> _M:
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}:\n{e}") from e


def load_client_config(config_path: str | None = None) -> ClientConfig:
    """Load the client configuration, migrating legacy keys."""
    path = find_config_file(config_path, CLIENT_CONFIG_FILE)
    if path is None:
        logger.debug("No client config file found, using defaults")
        return ClientConfig()
    raw = _read_yaml(path)
    for warning in migrate_client_payload(raw):
        logger.warning(f"Deprecated setting in {path}: {warning}")
    return _validate(ClientConfig, raw, path)


def load_server_config(config_path: str | None = None) -> ServerConfig:
    """Load the server configuration."""
    path = find_config_file(config_path, SERVER_CONFIG_FILE)
    if path is None:
        logger.debug("No server config file found, using defaults")
        return ServerConfig()
    return _validate(ServerConfig, _read_yaml(path), path)


def save_config(config: BaseModel, path: Path) -> None:
    """Write *config* as YAML using the kebab-case keys."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = yaml.safe_dump(
        config.model_dump(mode="json", by_alias=True),
        default_flow_style=False,
        sort_keys=False,
    )
    tmp = path.with_suffix(".tmp")
    tmp.write_text(data, encoding="utf-8")
    tmp.replace(path)
