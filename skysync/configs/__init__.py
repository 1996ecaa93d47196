"""
SkySync Configuration Module

Re-exports commonly used functions for cleaner imports across the codebase.
"""

# Logging (most commonly used)
from skysync.configs.logging import get_logger, parse_relayed_line, setup_logging

# Paths
from skysync.configs.paths import ensure_data_dir, get_data_path

# Constants
from skysync.configs.constants import TIMEOUTS, get_timeout

# YAML config
from skysync.configs.yaml_config import (
    DEFAULT_CONFIG_YAML,
    create_default_config,
    get_config_path,
    load_yaml_config,
)

# Runtime
from skysync.configs.runtime import (
    DEFAULT_CONFIG,
    GatewaySettings,
    build_server_env,
    get_full_config,
    load_settings,
)

__all__ = [
    # Logging
    "get_logger",
    "parse_relayed_line",
    "setup_logging",
    # Paths
    "get_data_path",
    "ensure_data_dir",
    # Constants
    "TIMEOUTS",
    "get_timeout",
    # YAML config
    "DEFAULT_CONFIG_YAML",
    "get_config_path",
    "load_yaml_config",
    "create_default_config",
    # Runtime
    "DEFAULT_CONFIG",
    "GatewaySettings",
    "build_server_env",
    "get_full_config",
    "load_settings",
]
