"""VideOracle HTTP Server.

Serves the verification market over a REST API.

Usage:
    # Start the server
    videoracle-server

    # Or with uvicorn directly
    uvicorn videoracle.server.app:create_app --factory --port 8430
"""

from .app import create_app
from .config import ServerSettings, get_settings

__all__ = [
    "ServerSettings",
    "create_app",
    "get_settings",
]
