"""Environment variable overrides for loaded configuration.

Host overrides (``RCODE_SERVER_HOST``, ``RCODE_SSH_HOST`` and the
deprecated ``RCODE_HOST``) are not merged here: they are read by the
environment host source at resolution time.
"""

from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import ValidationError

from .loader import ConfigError
from .migration import MigrationWarning
from .protocol import ClientConfig, LogConfig, ServerConfig

LEGACY_HOST_ENV = "RCODE_HOST"
SERVER_HOST_ENV = "RCODE_SERVER_HOST"
SERVER_BIND_ENV = "RCODE_SERVER_BIND"
FALLBACK_HOST_ENV = "RCODE_FALLBACK_HOST"
TIMEOUT_ENV = "RCODE_TIMEOUT"
EDITOR_ENV = "RCODE_EDITOR"
LOG_LEVEL_ENV = "RCODE_LOG_LEVEL"


def _env(environ: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def _parse_seconds(value: str) -> float | None:
    text = value.strip().lower()
    for suffix, scale in (("ms", 0.001), ("s", 1.0), ("m", 60.0)):
        if text.endswith(suffix):
            text, factor = text[: -len(suffix)], scale
            break
    else:
        factor = 1.0
    try:
        seconds = float(text) * factor
    except ValueError:
        return None
    return seconds if seconds > 0 else None


def deprecated_environment_warnings(
    environ: Optional[Mapping[str, str]] = None,
) -> list[MigrationWarning]:
    """Report deprecated variables the client still honours."""
    env = _env(environ)
    if env.get(LEGACY_HOST_ENV) and not env.get(SERVER_HOST_ENV):
        return [
            MigrationWarning(
                field=LEGACY_HOST_ENV,
                message=(
                    f"{LEGACY_HOST_ENV} is deprecated for the client,"
                    f" use {SERVER_HOST_ENV} instead"
                ),
            )
        ]
    else:
        return []


def merge_client_environment(
    config: ClientConfig,
    environ: Optional[Mapping[str, str]] = None,
) -> ClientConfig:
    """Apply client overrides from the environment in place.

    Raises :class:`ConfigError` for an invalid ``RCODE_LOG_LEVEL``.
    """
    env = _env(environ)
    if fallback := env.get(FALLBACK_HOST_ENV):
        config.hosts.server.fallback = fallback
    if timeout := env.get(TIMEOUT_ENV):
        seconds = _parse_seconds(timeout)
        if seconds is not None:
            config.network.timeout = seconds
    if editor := env.get(EDITOR_ENV):
        config.default_editor = editor
    if level := env.get(LOG_LEVEL_ENV):
        config.logging = _with_level(config.logging, level)
    return config


def merge_server_environment(
    config: ServerConfig,
    environ: Optional[Mapping[str, str]] = None,
) -> list[MigrationWarning]:
    """Apply server overrides in place and return deprecations.

    On the server, ``RCODE_HOST`` used to mean the bind address.
    """
    env = _env(environ)
    warnings: list[MigrationWarning] = []
    if bind := env.get(SERVER_BIND_ENV):
        config.server.host = bind
    elif legacy := env.get(LEGACY_HOST_ENV):
        config.server.host = legacy
        warnings.append(
            MigrationWarning(
                field=LEGACY_HOST_ENV,
                message=(
                    f"{LEGACY_HOST_ENV} is deprecated for the server,"
                    f" use {SERVER_BIND_ENV} instead"
                ),
            )
        )
    if level := env.get(LOG_LEVEL_ENV):
        config.logging = _with_level(config.logging, level)
    return warnings


def _with_level(log: LogConfig, level: str) -> LogConfig:
    try:
        return LogConfig.model_validate(
            {**log.model_dump(), "level": level}
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid {LOG_LEVEL_ENV}: {level!r}") from e
