"""
Interactive Letter - a multi-language branching questionnaire served from Google Sheets,
with static fallback content, a TTL content cache and FastMCP/HTTP front ends.
"""

from .content import ContentCache, GraphResolver, NavigationResolver, StaticFallbackTable
from .models import ContentNode, LetterContent, Option

try:
    from importlib.metadata import version as _get_version
    __version__ = _get_version("interactive-letter")
except Exception:
    __version__ = "0.1.0"  # Fallback if metadata unavailable
__all__ = [
    "ContentCache",
    "GraphResolver",
    "NavigationResolver",
    "StaticFallbackTable",
    "ContentNode",
    "LetterContent",
    "Option",
]
