"""
SkySync Runtime Configuration

Runtime defaults and configuration merging logic.
Combines defaults, YAML config, and environment variables into
a frozen GatewaySettings object handed to the session and HTTP layers.
"""

import os
import shlex
import sys
from dataclasses import dataclass, field
from typing import Mapping, Optional

from skysync.configs.constants import CREDENTIAL_ENV_VARS, INHERITED_ENV_VARS, get_timeout
from skysync.configs.yaml_config import load_yaml_config
from skysync.exceptions import ConfigurationError

# --- Default Runtime Configuration ---

DEFAULT_CONFIG = {
    "host": "0.0.0.0",
    "port": 3002,
    "server_command": None,  # resolved to the bundled tool server
    "server_cwd": None,
    "call_timeout": None,
    "handshake_timeout": get_timeout("mcp_handshake"),
    "max_in_flight": 32,
    "max_queue": 256,
    "reconnect_attempts": 3,
    "reconnect_backoff_max": 8.0,
}

# env var -> (config key, parser)
_ENV_OVERRIDES = {
    "SKYSYNC_HOST": ("host", str),
    "SKYSYNC_PORT": ("port", int),
    "SKYSYNC_SERVER_COMMAND": ("server_command", shlex.split),
    "SKYSYNC_SERVER_CWD": ("server_cwd", str),
    "SKYSYNC_CALL_TIMEOUT": ("call_timeout", float),
    "SKYSYNC_MAX_IN_FLIGHT": ("max_in_flight", int),
    "SKYSYNC_MAX_QUEUE": ("max_queue", int),
    "SKYSYNC_RECONNECT_ATTEMPTS": ("reconnect_attempts", int),
}


def default_server_command() -> list[str]:
    """Command that runs the bundled MCP tool server on stdio."""
    return [sys.executable, "-m", "skysync.server"]


@dataclass(frozen=True)
class GatewaySettings:
    """Resolved gateway configuration."""

    host: str = "0.0.0.0"
    port: int = 3002
    server_command: tuple[str, ...] = field(default_factory=lambda: tuple(default_server_command()))
    server_cwd: Optional[str] = None
    server_env: Mapping[str, str] = field(default_factory=dict)
    call_timeout: Optional[float] = None
    handshake_timeout: float = 30.0
    max_in_flight: int = 32
    max_queue: int = 256
    reconnect_attempts: int = 3
    reconnect_backoff_max: float = 8.0
    supabase_url: str = ""
    supabase_key: str = ""

    def __post_init__(self) -> None:
        if not self.server_command:
            raise ConfigurationError("server_command must not be empty")
        if self.max_in_flight < 1:
            raise ConfigurationError("max_in_flight must be at least 1", {"max_in_flight": self.max_in_flight})
        if self.max_queue < 0:
            raise ConfigurationError("max_queue must not be negative", {"max_queue": self.max_queue})
        if self.reconnect_attempts < 0:
            raise ConfigurationError(
                "reconnect_attempts must not be negative",
                {"reconnect_attempts": self.reconnect_attempts},
            )
        if self.call_timeout is not None and self.call_timeout <= 0:
            raise ConfigurationError("call_timeout must be positive", {"call_timeout": self.call_timeout})


def build_server_env(environ: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """
    Build the tool server's environment from an explicit allow-list.

    Only process basics and the credentials the tool server needs are
    copied. Credentials that are unset are passed as empty strings so the
    server sees a consistent environment.
    """
    source = os.environ if environ is None else environ
    env = {name: source[name] for name in INHERITED_ENV_VARS if source.get(name)}
    for name in CREDENTIAL_ENV_VARS:
        env[name] = source.get(name, "")
    return env


def get_full_config(environ: Optional[Mapping[str, str]] = None) -> dict:
    """
    Get the merged gateway configuration.

    Priority (highest first):
    1. Environment variables (PORT, SKYSYNC_*)
    2. gateway section of config.yaml
    3. DEFAULT_CONFIG
    """
    source = os.environ if environ is None else environ
    config = dict(DEFAULT_CONFIG)

    yaml_gateway = load_yaml_config().get("gateway") or {}
    if isinstance(yaml_gateway, dict):
        for key, value in yaml_gateway.items():
            if key in config:
                config[key] = value

    # PORT is the conventional hosting variable; SKYSYNC_PORT wins over it
    if source.get("PORT"):
        config["port"] = source["PORT"]

    for env_name, (key, parse) in _ENV_OVERRIDES.items():
        raw = source.get(env_name)
        if not raw:
            continue
        try:
            config[key] = parse(raw)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {env_name}: {raw!r}") from e

    return config


def load_settings(environ: Optional[Mapping[str, str]] = None) -> GatewaySettings:
    """Resolve GatewaySettings from defaults, config.yaml and the environment."""
    source = os.environ if environ is None else environ
    config = get_full_config(source)

    command = config["server_command"] or default_server_command()
    if isinstance(command, str):
        command = shlex.split(command)

    try:
        call_timeout = config["call_timeout"]
        return GatewaySettings(
            host=str(config["host"]),
            port=int(config["port"]),
            server_command=tuple(str(part) for part in command),
            server_cwd=config["server_cwd"],
            server_env=build_server_env(source),
            call_timeout=float(call_timeout) if call_timeout is not None else None,
            handshake_timeout=float(config["handshake_timeout"]),
            max_in_flight=int(config["max_in_flight"]),
            max_queue=int(config["max_queue"]),
            reconnect_attempts=int(config["reconnect_attempts"]),
            reconnect_backoff_max=float(config["reconnect_backoff_max"]),
            supabase_url=source.get("SUPABASE_URL", ""),
            supabase_key=source.get("SUPABASE_SERVICE_KEY", ""),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid gateway configuration: {e}") from e
