"""
Exceptions for content graph resolution.

NotFound and InvalidSelection are surfaced to callers verbatim.
MalformedRecord is raised and absorbed inside normalization so that one bad
row never aborts a whole batch.
"""

from __future__ import annotations


class ContentError(Exception):
    """Base class for content graph errors."""


class NotFound(ContentError):
    """Raised when a node has no resolvable variant anywhere in the fallback chain."""

    def __init__(self, node_id: str, language: str, kind: str = "node") -> None:
        self.node_id = node_id
        self.language = language
        self.kind = kind
        super().__init__(f"{kind.capitalize()} '{node_id}' not found for language '{language}'")


class InvalidSelection(ContentError):
    """Raised when the selected option id is not offered by the current node."""

    def __init__(self, node_id: str, option_id: str) -> None:
        self.node_id = node_id
        self.option_id = option_id
        super().__init__(f"Option '{option_id}' is not available on node '{node_id}'")


class MalformedRecord(ContentError):
    """Raised for a single raw record that cannot be normalized."""
