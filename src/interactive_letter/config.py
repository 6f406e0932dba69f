"""
Runtime configuration for the interactive letter server.

Values come from the process environment (optionally populated from a
.env file by main.py via python-dotenv).
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in TRUTHY


def _env_str(env: Mapping[str, str], name: str, default: str = "") -> str:
    value = env.get(name)
    return value.strip() if value and value.strip() else default


class Settings(BaseModel):
    """Configuration for the content service."""

    spreadsheet_id: str = Field(default="", description="Google spreadsheet identifier")
    service_account_email: str = Field(default="", description="Service account client email")
    private_key: str = Field(default="", description="Service account PEM private key")
    service_account_file: Optional[str] = Field(
        default=None,
        description="Path to a service account JSON file (overrides email/key)"
    )
    questions_sheet: str = Field(default="Questions", description="Sheet holding question rows")
    letters_sheet: str = Field(default="Letter_Content", description="Sheet holding letter rows")
    default_language: str = Field(default="en", description="Fallback language code")
    root_node_id: str = Field(default="home", description="Entry node of the questionnaire")
    cache_ttl: float = Field(default=300.0, gt=0, description="Content cache TTL in seconds")
    source_timeout: float = Field(default=10.0, gt=0, description="Sheets request timeout in seconds")
    host: str = Field(default="0.0.0.0", description="HTTP bind address")
    port: int = Field(default=5000, description="HTTP port")
    http_enabled: bool = Field(default=True, description="Start the HTTP API alongside MCP")
    admin_username: str = Field(default="admin", description="Admin login name")
    admin_password: str = Field(default="admin123", description="Admin login password")
    token_ttl_hours: float = Field(default=24.0, gt=0, description="Admin token lifetime")

    @property
    def sheets_enabled(self) -> bool:
        """True when a spreadsheet and some credentials are configured."""
        has_credentials = bool(self.service_account_file) or bool(
            self.service_account_email and self.private_key
        )
        return bool(self.spreadsheet_id) and has_credentials

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            env: Mapping to read from; defaults to os.environ

        Raises:
            pydantic.ValidationError: If a numeric variable is not a number
        """
        env = os.environ if env is None else env
        return cls(
            spreadsheet_id=_env_str(env, "GOOGLE_SPREADSHEET_ID"),
            service_account_email=_env_str(env, "GOOGLE_SERVICE_ACCOUNT_EMAIL"),
            # Keys pasted into .env files carry literal "\n" sequences
            private_key=_env_str(env, "GOOGLE_PRIVATE_KEY").replace("\\n", "\n"),
            service_account_file=_env_str(env, "GOOGLE_SERVICE_ACCOUNT_FILE") or None,
            questions_sheet=_env_str(env, "LETTER_QUESTIONS_SHEET", "Questions"),
            letters_sheet=_env_str(env, "LETTER_LETTERS_SHEET", "Letter_Content"),
            default_language=_env_str(env, "LETTER_DEFAULT_LANGUAGE", "en"),
            root_node_id=_env_str(env, "LETTER_ROOT_NODE", "home"),
            cache_ttl=_env_str(env, "LETTER_CACHE_TTL", "300"),
            source_timeout=_env_str(env, "LETTER_SOURCE_TIMEOUT", "10.0"),
            host=_env_str(env, "HOST", "0.0.0.0"),
            port=_env_str(env, "PORT", "5000"),
            http_enabled=_env_bool(env, "LETTER_HTTP_ENABLED", True),
            admin_username=_env_str(env, "ADMIN_USERNAME", "admin"),
            admin_password=_env_str(env, "ADMIN_PASSWORD", "admin123"),
            token_ttl_hours=_env_str(env, "LETTER_TOKEN_TTL_HOURS", "24"),
        )


__all__ = ["Settings"]
