"""
External content sources for the interactive letter.

Currently supports:
- Google Sheets (service account, read-only values API)
"""

from .base import ContentSource, SourceUnavailable
from .google_sheets import GoogleSheetsSource, rows_from_values

__all__ = [
    "ContentSource",
    "SourceUnavailable",
    "GoogleSheetsSource",
    "rows_from_values",
]
