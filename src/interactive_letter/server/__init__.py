"""
HTTP transport for the interactive letter.

Exposes node resolution, navigation, letters, identification capture,
cache administration and admin authentication over a Starlette app.
"""

from .app import (
    ContentServer,
    get_server_instance,
    node_json,
    start_content_server,
    stop_content_server,
)
from .auth import TokenInfo, TokenManager, bearer_token

__all__ = [
    "ContentServer",
    "node_json",
    "start_content_server",
    "stop_content_server",
    "get_server_instance",
    "TokenManager",
    "TokenInfo",
    "bearer_token",
]
