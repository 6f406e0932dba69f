"""
Localized content graph: normalization, fallback, caching and navigation.

Components:
- RowNormalizer: raw sheet rows to ContentNode / LetterContent
- StaticFallbackTable: embedded content used when the sheet is unavailable
- ContentCache: TTL cache with substring invalidation
- GraphResolver: ordered fallback chain for nodes and letters
- NavigationResolver: option selection to next node id

Usage:
    from interactive_letter.content import (
        ContentCache, GraphResolver, NavigationResolver, StaticFallbackTable,
    )

    resolver = GraphResolver(source, StaticFallbackTable.default(), ContentCache(ttl=300))
    node = await resolver.resolve("home", "fa")
    next_id = NavigationResolver(resolver).navigate(node, "option1", "fa")
"""

from .base import ContentError, InvalidSelection, MalformedRecord, NotFound
from .cache import CacheEntry, ContentCache, ContentCacheStats
from .navigation import NavigationResolver, find_option
from .normalizer import RowNormalizer
from .resolver import GraphResolver, letter_cache_key, node_cache_key
from .static_table import StaticFallbackTable, warn_on_uncovered_root

__all__ = [
    # Errors
    "ContentError",
    "NotFound",
    "InvalidSelection",
    "MalformedRecord",
    # Cache
    "ContentCache",
    "ContentCacheStats",
    "CacheEntry",
    # Resolution
    "RowNormalizer",
    "StaticFallbackTable",
    "warn_on_uncovered_root",
    "GraphResolver",
    "NavigationResolver",
    "find_option",
    "node_cache_key",
    "letter_cache_key",
]
