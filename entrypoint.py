#!/usr/bin/env python3
"""
SkySync Container Entrypoint

Dispatches to the appropriate mode based on command line argument.

Modes:
  gateway - Run the HTTP gateway, which spawns the MCP server (default)
  server  - Run the MCP tool server on stdio
  init    - Write a default ~/.skysync/config.yaml if none exists
"""

import sys


def main():
    mode = sys.argv[1] if len(sys.argv) > 1 else "gateway"

    if mode == "gateway":
        from skysync.configs import get_logger, load_settings, setup_logging
        from skysync.controllers.http import run_server
        from skysync.exceptions import ConfigurationError

        # Initialize logging (must be called before get_logger)
        setup_logging()
        logger = get_logger("entrypoint")

        try:
            settings = load_settings()
        except ConfigurationError as e:
            logger.error(f"Invalid configuration: {e}")
            sys.exit(1)

        run_server(settings)

    elif mode == "server":
        from skysync.server import main as server_main
        server_main()

    elif mode == "init":
        from skysync.configs import create_default_config, get_config_path

        if create_default_config():
            print(f"Created {get_config_path()}")
        else:
            print(f"{get_config_path()} already exists, left unchanged")

    else:
        print(f"Unknown mode: {mode}", file=sys.stderr)
        print("Usage: entrypoint.py [gateway|server|init]", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
