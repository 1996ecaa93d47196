"""
SkySync

Gateway exposing an MCP flight-tools server over HTTP and JSON-RPC.
"""

from skysync.version import __version__

__all__ = ["__version__"]
