"""
Runtime configuration for the bridge daemon.

Resolution order:
- Token: ``token`` from the config file, else ``DISCORD_BOT_TOKEN``
- Port: ``hookServerPort`` from the config file, else ``HOOK_SERVER_PORT``,
  else 18470
- Paths: ``MUDCODE_CONFIG_PATH`` / ``MUDCODE_STATE_PATH``, else files under
  ``~/.mudcode``
"""

import os
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_HOOK_SERVER_PORT = 18470
TOKEN_PREFIXES = ("bot ", "bearer ")


class ConfigError(Exception):
    """Raised when the daemon cannot be configured (e.g. no bot token)."""

    pass


@dataclass(frozen=True)
class RuntimeConfig:
    """Resolved configuration for one daemon process."""

    discord_token: str
    hook_server_port: int
    config_path: Path
    state_path: Path


class StoredConfig(BaseModel):
    """Subset of ``config.json`` the bridge cares about."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    token: str | None = None
    hook_server_port: int | None = Field(default=None, alias="hookServerPort")


def default_mudcode_dir() -> Path:
    return Path.home() / ".mudcode"


def _path_from_env(name: str, default_name: str) -> Path:
    override = os.environ.get(name, "")
    if override.strip():
        return Path(override)
    return default_mudcode_dir() / default_name


def resolve_config_path() -> Path:
    return _path_from_env("MUDCODE_CONFIG_PATH", "config.json")


def resolve_state_path() -> Path:
    return _path_from_env("MUDCODE_STATE_PATH", "state.json")


def read_stored_config(path: Path) -> StoredConfig:
    """Read the config file, treating a missing or malformed file as empty."""
    try:
        return StoredConfig.model_validate_json(path.read_bytes())
    except (OSError, ValidationError):
        return StoredConfig()


def normalize_discord_token(raw: str) -> str:
    """Clean up a bot token pasted from the developer portal.

    Handles surrounding quotes, a ``Bot``/``Bearer`` prefix and stray
    whitespace inside the token.
    """
    token = raw.strip()
    if not token:
        return ""

    if len(token) >= 2 and token[0] == token[-1] and token[0] in ("'", '"'):
        token = token[1:-1].strip()

    if token.lower().startswith(TOKEN_PREFIXES):
        parts = token.split(maxsplit=1)
        token = parts[1].strip() if len(parts) > 1 else ""

    return "".join(token.split())


def _valid_port(port: int | None) -> int | None:
    if port is not None and 0 < port <= 65535:
        return port
    return None


def _port_from_env() -> int | None:
    raw = os.environ.get("HOOK_SERVER_PORT")
    if raw is None:
        return None
    try:
        return _valid_port(int(raw.strip()))
    except ValueError:
        return None


def load_runtime_config(
    config_path: Path | None = None,
    state_path: Path | None = None,
) -> RuntimeConfig:
    """Build the runtime config from the config file and environment.

    Explicit paths take precedence over the environment and defaults.

    Raises:
        ConfigError: If no bot token is configured anywhere.
    """
    config_path = config_path or resolve_config_path()
    state_path = state_path or resolve_state_path()
    stored = read_stored_config(config_path)

    stored_token = normalize_discord_token(stored.token or "")
    env_token = normalize_discord_token(os.environ.get("DISCORD_BOT_TOKEN", ""))
    discord_token = stored_token or env_token
    if not discord_token:
        raise ConfigError(
            "Discord bot token not configured. "
            f"Set DISCORD_BOT_TOKEN or the token field in {config_path}"
        )

    hook_server_port = (
        _valid_port(stored.hook_server_port) or _port_from_env() or DEFAULT_HOOK_SERVER_PORT
    )

    return RuntimeConfig(
        discord_token=discord_token,
        hook_server_port=hook_server_port,
        config_path=config_path,
        state_path=state_path,
    )
