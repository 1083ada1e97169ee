"""Configuration types and loading."""

from .environment import (
    deprecated_environment_warnings,
    merge_client_environment,
    merge_server_environment,
)
from .loader import (
    CLIENT_CONFIG_FILE,
    SERVER_CONFIG_FILE,
    ConfigError,
    config_dir,
    default_log_file,
    find_config_file,
    load_client_config,
    load_server_config,
    save_config,
)
from .migration import MigrationWarning, migrate_client_payload
from .protocol import (
    DEFAULT_SERVER_PORT,
    AutoDetectConfig,
    ClientConfig,
    ClientNetworkConfig,
    EditorConfig,
    HostsConfig,
    LogConfig,
    ServerConfig,
    ServerHostConfig,
    ServerSettings,
    SshHostConfig,
)

__all__ = [
    "AutoDetectConfig",
    "CLIENT_CONFIG_FILE",
    "ClientConfig",
    "ClientNetworkConfig",
    "ConfigError",
    "DEFAULT_SERVER_PORT",
    "EditorConfig",
    "HostsConfig",
    "LogConfig",
    "MigrationWarning",
    "SERVER_CONFIG_FILE",
    "ServerConfig",
    "ServerHostConfig",
    "ServerSettings",
    "SshHostConfig",
    "config_dir",
    "default_log_file",
    "deprecated_environment_warnings",
    "find_config_file",
    "load_client_config",
    "load_server_config",
    "merge_client_environment",
    "merge_server_environment",
    "migrate_client_payload",
    "save_config",
]
