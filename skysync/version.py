"""
Version Information

Build and version metadata reported by the gateway.
"""

import os

__version__ = "1.0.0"

GATEWAY_NAME = "skysync-gateway"


def get_current_version() -> dict:
    """
    Get current gateway version info.

    Returns:
        Dict with git_commit, build_time, version
    """
    return {
        "git_commit": os.environ.get("SKYSYNC_GIT_COMMIT", "unknown"),
        "build_time": os.environ.get("SKYSYNC_BUILD_TIME", "unknown"),
        "version": __version__,
    }
