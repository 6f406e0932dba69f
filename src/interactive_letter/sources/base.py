"""
Abstract base class for external content sources.

The resolver only needs one capability from a source: return the raw rows of
a named sheet. Every failure a source can hit (network, auth, timeout, bad
payload) is reported as SourceUnavailable so the resolver can fall back.
"""

from abc import ABC, abstractmethod

from ..models import RawRecord


class SourceUnavailable(Exception):
    """Raised when a content source cannot deliver rows.

    Never surfaced to API callers: the resolver treats it as a cache-style
    miss and moves on to the next fallback tier.
    """


class ContentSource(ABC):
    """Abstract base class for spreadsheet-like row providers.

    Subclasses must implement:
    - name: A human-readable source name.
    - fetch_rows(): Return the rows of one sheet as header-keyed dicts.

    Implementations must bound their own I/O with a timeout.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable source name."""
        ...

    @abstractmethod
    async def fetch_rows(self, sheet_name: str) -> list[RawRecord]:
        """Fetch every data row of a sheet.

        Args:
            sheet_name: Title of the sheet (tab) to read.

        Returns:
            One dict per row, keyed by the sheet's header row.

        Raises:
            SourceUnavailable: If the rows cannot be fetched or parsed.
        """
        ...

    async def aclose(self) -> None:
        """Release any held resources. No-op by default."""
        return None


__all__ = [
    "ContentSource",
    "SourceUnavailable",
]
