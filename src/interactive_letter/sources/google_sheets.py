"""
Google Sheets content source.

Reads a sheet through the Sheets REST API (values endpoint) using a service
account bearer token, and maps the header row onto every data row. This is
the only module that talks to Google; everything it can hit is reported as
SourceUnavailable.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account

from ..models import RawRecord
from .base import ContentSource, SourceUnavailable

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger("interactive-letter")


SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets.readonly"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_TIMEOUT = 10.0


def rows_from_values(values: Any) -> list[RawRecord]:
    """Convert a Sheets ``values`` matrix into header-keyed row dicts.

    The first row is the header. Rows shorter than the header are padded
    with empty strings (the API trims trailing empty cells); fully empty
    rows are dropped.

    Args:
        values: The ``values`` array from a Sheets API response

    Returns:
        List of row dicts

    Raises:
        SourceUnavailable: If the matrix is not a list of lists
    """
    if not values:
        return []
    if not isinstance(values, list) or not all(isinstance(row, list) for row in values):
        raise SourceUnavailable("Malformed sheet payload: expected a list of rows")

    header = [str(cell).strip() for cell in values[0]]
    rows: list[RawRecord] = []
    for raw_row in values[1:]:
        if not any(str(cell).strip() for cell in raw_row):
            continue
        cells = list(raw_row) + [""] * (len(header) - len(raw_row))
        rows.append({
            column: cells[index]
            for index, column in enumerate(header)
            if column
        })
    return rows


def build_credentials(settings: Settings) -> service_account.Credentials | None:
    """Build service account credentials from settings.

    A credentials file takes precedence over inline email/private key.

    Returns:
        Credentials, or None if nothing is configured
    """
    if settings.service_account_file:
        return service_account.Credentials.from_service_account_file(
            settings.service_account_file, scopes=SHEETS_SCOPES
        )
    if settings.service_account_email and settings.private_key:
        info = {
            "type": "service_account",
            "client_email": settings.service_account_email,
            "private_key": settings.private_key,
            "token_uri": TOKEN_URI,
        }
        return service_account.Credentials.from_service_account_info(info, scopes=SHEETS_SCOPES)
    return None


class GoogleSheetsSource(ContentSource):
    """
    Content source backed by a Google spreadsheet.

    Each fetch opens a short-lived httpx client bounded by ``timeout``.
    The bearer token is refreshed in a worker thread when it is missing
    or expired.

    Attributes:
        spreadsheet_id: Spreadsheet identifier from its URL
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        spreadsheet_id: str,
        credentials: Any,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.timeout = timeout
        self._credentials = credentials

    @classmethod
    def from_settings(cls, settings: Settings) -> GoogleSheetsSource | None:
        """Create a source from settings, or None when sheets are not configured."""
        if not settings.sheets_enabled:
            logger.info("Google Sheets source disabled: no spreadsheet or credentials configured")
            return None
        try:
            credentials = build_credentials(settings)
        except (ValueError, OSError) as e:
            logger.error(f"Invalid Google service account credentials: {e}")
            return None
        if credentials is None:
            return None
        return cls(settings.spreadsheet_id, credentials, timeout=settings.source_timeout)

    @property
    def name(self) -> str:
        return f"Google Sheets ({self.spreadsheet_id})"

    async def _access_token(self) -> str:
        """Return a valid bearer token, refreshing it if needed."""
        if not self._credentials.valid:
            try:
                await asyncio.to_thread(self._credentials.refresh, GoogleAuthRequest())
            except (google_auth_exceptions.RefreshError, google_auth_exceptions.TransportError) as e:
                raise SourceUnavailable(f"Google authentication failed: {e}") from None
        return self._credentials.token

    async def fetch_rows(self, sheet_name: str) -> list[RawRecord]:
        """
        Fetch all rows of a sheet as header-keyed dicts.

        Args:
            sheet_name: Sheet (tab) title, e.g. "Questions"

        Returns:
            Row dicts in sheet order

        Raises:
            SourceUnavailable: On auth, transport, timeout, HTTP or payload errors
        """
        url = f"{SHEETS_API_BASE}/{self.spreadsheet_id}/values/{quote(sheet_name, safe='')}"
        token = await self._access_token()

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    url,
                    headers={"Authorization": f"Bearer {token}"},
                    params={"majorDimension": "ROWS"},
                )

                if response.status_code in (400, 404):
                    raise SourceUnavailable(f'Sheet with title "{sheet_name}" not found.')

                response.raise_for_status()
                payload = response.json()

        except httpx.TimeoutException:
            raise SourceUnavailable(
                f'Timed out reading sheet "{sheet_name}" after {self.timeout}s'
            ) from None
        except httpx.HTTPStatusError as e:
            raise SourceUnavailable(
                f"Google Sheets returned HTTP {e.response.status_code}: {e.response.reason_phrase}"
            ) from None
        except httpx.RequestError as e:
            raise SourceUnavailable(f"Failed to connect to Google Sheets: {e}") from None
        except ValueError as e:
            raise SourceUnavailable(f'Invalid JSON reading sheet "{sheet_name}": {e}') from None

        if not isinstance(payload, dict):
            raise SourceUnavailable("Malformed sheet payload: expected JSON object")

        rows = rows_from_values(payload.get("values", []))
        logger.debug(f"Fetched {len(rows)} rows from sheet '{sheet_name}'")
        return rows


__all__ = [
    "GoogleSheetsSource",
    "build_credentials",
    "rows_from_values",
    "SHEETS_API_BASE",
]
