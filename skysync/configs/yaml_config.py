"""
SkySync YAML Configuration

Loading and the default template for ~/.skysync/config.yaml.
"""

from pathlib import Path

import yaml

from skysync.configs.paths import ensure_data_dir, get_data_path

# --- Default Config Template ---

DEFAULT_CONFIG_YAML = """\
# SkySync Configuration
# Edit this file to customize gateway behavior.
# Environment variables override every value here.

gateway:
  # HTTP listen address
  host: "0.0.0.0"
  port: 3002

  # Command used to launch the MCP tool server (stdio)
  # server_command: ["python", "-m", "skysync.server"]

  # Per-call timeout in seconds (null = wait until the subprocess exits)
  call_timeout: null

  # Backpressure: outstanding calls, and calls allowed to wait for a slot
  max_in_flight: 32
  max_queue: 256

  # Respawn attempts after the tool server dies (0 = stay disconnected)
  reconnect_attempts: 3
"""


def get_config_path() -> Path:
    """Get the path to config.yaml."""
    return get_data_path() / "config.yaml"


def load_yaml_config() -> dict:
    """
    Load configuration from ~/.skysync/config.yaml.

    Returns:
        Configuration dictionary (empty if file doesn't exist or is invalid)
    """
    config_path = get_config_path()
    if not config_path.exists():
        return {}

    try:
        loaded = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError:
        return {}
    return loaded if isinstance(loaded, dict) else {}


def create_default_config() -> bool:
    """
    Create default config.yaml if it doesn't exist.

    Returns:
        True if file was created, False if it already exists
    """
    config_path = get_config_path()
    if config_path.exists():
        return False

    ensure_data_dir()
    config_path.write_text(DEFAULT_CONFIG_YAML)
    return True
