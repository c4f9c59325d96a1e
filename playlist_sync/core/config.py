"""
Configuration management for playlist-sync.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml, with environment variable
overrides (a .env file in the working directory is honored via python-dotenv).

The configuration file contains:
    - Server settings (bind address, SQLite path, bearer tokens)
    - Client settings (remote URL, token, local state file, debounce)
    - Logging settings (level, log directory, colors)

Every section is optional; missing values fall back to defaults so the
CLI works without any configuration file.

Example config.yaml:
    server:
      host: "127.0.0.1"
      port: 8080
      database_path: "~/.playlist-sync/server.db"
      tokens:
        "dev-token": "user-123"

    client:
      base_url: "http://127.0.0.1:8080"
      token: "dev-token"
      user_id: "user-123"
      state_file: "~/.playlist-sync/state.json"
      debounce_seconds: 1.0

    logging:
      level: "INFO"
      log_directory: null
      colored: true

Environment overrides:
    PLAYLIST_SYNC_HOST, PLAYLIST_SYNC_PORT, PLAYLIST_SYNC_DATABASE,
    PLAYLIST_SYNC_BASE_URL, PLAYLIST_SYNC_TOKEN, PLAYLIST_SYNC_USER_ID,
    PLAYLIST_SYNC_STATE_FILE, PLAYLIST_SYNC_LOG_LEVEL
"""

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from playlist_sync.core.constants import DEFAULT_DEBOUNCE_SECONDS
from playlist_sync.core.exceptions import ConfigError


# Default configuration file name (looked up in current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080
DEFAULT_DATABASE_PATH = "~/.playlist-sync/server.db"
DEFAULT_STATE_FILE = "~/.playlist-sync/state.json"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# env var -> (section, key)
ENV_OVERRIDES = {
    "PLAYLIST_SYNC_HOST": ("server", "host"),
    "PLAYLIST_SYNC_PORT": ("server", "port"),
    "PLAYLIST_SYNC_DATABASE": ("server", "database_path"),
    "PLAYLIST_SYNC_BASE_URL": ("client", "base_url"),
    "PLAYLIST_SYNC_TOKEN": ("client", "token"),
    "PLAYLIST_SYNC_USER_ID": ("client", "user_id"),
    "PLAYLIST_SYNC_STATE_FILE": ("client", "state_file"),
    "PLAYLIST_SYNC_LOG_LEVEL": ("logging", "level"),
}


@dataclass(frozen=True)
class ServerConfig:
    """
    Remote store server configuration.

    Attributes:
        host: Interface the aiohttp server binds to.
        port: TCP port, 1-65535.
        database_path: SQLite file path (~ expanded). Parent is created on serve.
        tokens: Bearer token -> user id. Requests with an unknown token get 401.
    """
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    database_path: Path = field(default_factory=lambda: Path(DEFAULT_DATABASE_PATH).expanduser())
    tokens: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ClientConfig:
    """
    Client-side sync configuration.

    Attributes:
        base_url: Root URL of the remote store server.
        token: Bearer token sent with every request. None means anonymous,
               in which case no remote sync is attempted.
        user_id: Account the token belongs to. New playlist ids are
                 namespaced with it. Required by `playlist-sync sync`.
        state_file: JSON file holding the local player state.
        debounce_seconds: Quiet period before a push is transmitted.
    """
    base_url: str = f"http://{DEFAULT_HOST}:{DEFAULT_PORT}"
    token: str | None = None
    user_id: str | None = None
    state_file: Path = field(default_factory=lambda: Path(DEFAULT_STATE_FILE).expanduser())
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS


@dataclass(frozen=True)
class LoggingConfig:
    """Logging configuration passed straight to setup_logging()."""
    level: str = "INFO"
    log_directory: Path | None = None
    colored: bool = True


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Example:
        config = load_config()
        print(f"Serving on {config.server.host}:{config.server.port}")
    """
    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(config_path: Path | None = None, use_environment: bool = True) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file. An explicit path
                     must exist; the implicit CWD/config.yaml may be absent.
        use_environment: Apply PLAYLIST_SYNC_* environment overrides
                         (after loading .env). Disabled in tests.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If an explicit file is missing, the YAML is invalid,
                     or a value has the wrong type or range.
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    raw_config: dict[str, Any] = {}
    if config_path.exists():
        raw_config = _read_yaml(config_path)
    elif explicit:
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    if use_environment:
        load_dotenv()
        raw_config = _apply_environment(raw_config, os.environ)

    _validate_config(raw_config)

    return Config(
        server=_parse_server_config(raw_config.get("server")),
        client=_parse_client_config(raw_config.get("client")),
        logging=_parse_logging_config(raw_config.get("logging")),
    )


def _read_yaml(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if raw_config is None:
        return {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    return raw_config


def _apply_environment(raw_config: dict[str, Any], environ) -> dict[str, Any]:
    """Return a copy of raw_config with PLAYLIST_SYNC_* variables applied."""
    merged = copy.deepcopy(raw_config)
    for env_var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(env_var)
        if value is None or value == "":
            continue
        target = merged.setdefault(section, {})
        if not isinstance(target, dict):
            # Leave it to _validate_config to report
            continue
        if env_var == "PLAYLIST_SYNC_PORT":
            try:
                value = int(value)
            except ValueError as e:
                raise ConfigError(
                    f"{env_var} must be an integer",
                    details={"env_var": env_var, "value": value}
                ) from e
        target[key] = value
    return merged


def _validate_config(raw_config: dict[str, Any]) -> None:
    for section in ("server", "client", "logging"):
        value = raw_config.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )


def _parse_server_config(section: dict[str, Any] | None) -> ServerConfig:
    """
    Parse the 'server' section.

    Raises:
        ConfigError: If port is out of range or tokens is not a str->str mapping.
    """
    if not section:
        return ServerConfig()

    host = section.get("host", DEFAULT_HOST)
    if not isinstance(host, str) or not host.strip():
        raise ConfigError(
            "'server.host' must be a non-empty string",
            details={"field": "server.host"}
        )

    port = section.get("port", DEFAULT_PORT)
    if not isinstance(port, int) or isinstance(port, bool) or not 1 <= port <= 65535:
        raise ConfigError(
            "'server.port' must be an integer between 1 and 65535",
            details={"field": "server.port", "value": port}
        )

    database_path = _parse_path(section.get("database_path", DEFAULT_DATABASE_PATH), "server.database_path")

    tokens = section.get("tokens") or {}
    if not isinstance(tokens, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in tokens.items()
    ):
        raise ConfigError(
            "'server.tokens' must map token strings to user id strings",
            details={"field": "server.tokens"}
        )

    return ServerConfig(
        host=host.strip(),
        port=port,
        database_path=database_path,
        tokens=dict(tokens),
    )


def _parse_client_config(section: dict[str, Any] | None) -> ClientConfig:
    """Parse the 'client' section, applying defaults for missing fields."""
    if not section:
        return ClientConfig()

    defaults = ClientConfig()

    base_url = section.get("base_url", defaults.base_url)
    if not isinstance(base_url, str) or not base_url.startswith(("http://", "https://")):
        raise ConfigError(
            "'client.base_url' must be an http(s) URL",
            details={"field": "client.base_url", "value": base_url}
        )

    token = section.get("token")
    if token is not None and (not isinstance(token, str) or not token.strip()):
        raise ConfigError(
            "'client.token' must be a non-empty string or null",
            details={"field": "client.token"}
        )

    user_id = section.get("user_id")
    if user_id is not None and (not isinstance(user_id, str) or not user_id.strip()):
        raise ConfigError(
            "'client.user_id' must be a non-empty string or null",
            details={"field": "client.user_id"}
        )

    state_file = _parse_path(section.get("state_file", DEFAULT_STATE_FILE), "client.state_file")

    debounce = section.get("debounce_seconds", defaults.debounce_seconds)
    if isinstance(debounce, bool) or not isinstance(debounce, (int, float)) or debounce < 0:
        raise ConfigError(
            "'client.debounce_seconds' must be a non-negative number",
            details={"field": "client.debounce_seconds", "value": debounce}
        )

    return ClientConfig(
        base_url=base_url.rstrip("/"),
        token=token.strip() if token else None,
        user_id=user_id.strip() if user_id else None,
        state_file=state_file,
        debounce_seconds=float(debounce),
    )


def _parse_logging_config(section: dict[str, Any] | None) -> LoggingConfig:
    """Parse the 'logging' section."""
    if not section:
        return LoggingConfig()

    level = section.get("level", "INFO")
    if not isinstance(level, str) or level.upper() not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"'logging.level' must be one of {', '.join(VALID_LOG_LEVELS)}",
            details={"field": "logging.level", "value": level}
        )

    raw_directory = section.get("log_directory")
    log_directory = None
    if raw_directory is not None:
        log_directory = _parse_path(raw_directory, "logging.log_directory")

    colored = section.get("colored", True)
    if not isinstance(colored, bool):
        raise ConfigError(
            "'logging.colored' must be true or false",
            details={"field": "logging.colored"}
        )

    return LoggingConfig(level=level.upper(), log_directory=log_directory, colored=colored)


def _parse_path(value: Any, field_name: str) -> Path:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{field_name}' must be a non-empty string",
            details={"field": field_name}
        )
    return Path(value.strip()).expanduser()
