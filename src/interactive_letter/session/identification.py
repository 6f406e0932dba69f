"""
In-memory capture of visitor identifiers (phone numbers) from the entry view.
"""

import logging
import threading
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger("interactive-letter")


class IdentificationRecord(BaseModel):
    """A phone number submitted at the entry view."""

    phone_number: str = Field(description="Phone number as entered, trimmed")
    timestamp: datetime = Field(default_factory=datetime.now, description="Submission time")


class IdentificationLog:
    """Thread-safe, process-local list of submitted phone numbers.

    Not persisted: a restart starts from an empty log.
    """

    def __init__(self) -> None:
        self._records: list[IdentificationRecord] = []
        self._lock = threading.Lock()

    def record(self, phone_number: Optional[str], timestamp: Optional[datetime] = None) -> IdentificationRecord:
        """Store a phone number.

        Raises:
            ValueError: If the phone number is missing or blank
        """
        cleaned = (phone_number or "").strip()
        if not cleaned:
            raise ValueError("Phone number is required.")

        entry = IdentificationRecord(phone_number=cleaned, timestamp=timestamp or datetime.now())
        with self._lock:
            self._records.append(entry)
            total = len(self._records)
        logger.info(f"Stored phone number ({total} total)")
        return entry

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def records(self) -> list[IdentificationRecord]:
        with self._lock:
            return list(self._records)


__all__ = [
    "IdentificationRecord",
    "IdentificationLog",
]
