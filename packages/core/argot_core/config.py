"""
XML-RPC client configuration.

This module provides default settings for XML-RPC clients loaded from
environment variables.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Find .env file in project root
_env_file = Path(__file__).parent.parent.parent.parent / ".env"

# Upper bound mirrors the client's own timeout validation.
MAX_TIMEOUT_SECONDS = 365 * 24 * 60 * 60


class XmlRpcClientSettings(BaseSettings):
    """
    XML-RPC client defaults from environment variables.

    All settings are prefixed with XMLRPC_ in environment.
    """

    model_config = SettingsConfigDict(
        env_prefix="XMLRPC_",
        env_file=str(_env_file) if _env_file.exists() else None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str | None = None  # e.g., "https://blog.example.com/xmlrpc.php"
    user_agent: str = ""  # Empty keeps the client's built-in agent string
    timeout_seconds: float = Field(default=15.0, gt=0, lt=MAX_TIMEOUT_SECONDS)
    use_default_credentials: bool = False
    # Accept "text/xml; charset=..." responses instead of exactly "text/xml"
    allow_content_type_parameters: bool = False

    # Basic auth credentials applied to every request when both are set
    username: str = ""
    password: str = ""

    proxy: str | None = None  # e.g., "http://proxy.internal:3128"

    @field_validator("host", "proxy", mode="before")
    @classmethod
    def _blank_as_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def credentials(self) -> tuple[str, str] | None:
        """Basic auth pair, or None when not configured."""
        if self.username and self.password:
            return self.username, self.password
        return None


# Global instance
xmlrpc_client_settings = XmlRpcClientSettings()
