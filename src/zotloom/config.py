# zotloom/config.py
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_RETRY_AFTER,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    MIN_REQUEST_INTERVAL,
    ZOTERO_API_BASE_URL,
    ZOTERO_LOCAL_API_BASE_URL,
)


class LibraryKind(str, Enum):
    """The two kinds of Zotero library, valued by their URL path segment."""

    PERSONAL = "user"
    GROUP = "group"


class ZoteroSettings(BaseSettings):
    """
    Manages user-configurable settings for the Zotero client, loaded from
    environment variables (prefixed with 'ZOTERO_') or a .env file.

    The settings object is frozen: once a client has been built from it the
    configuration cannot change underneath the client.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "secrets.env"),  # Look in both .env and secrets.env
        env_file_encoding="utf-8",
        env_prefix="ZOTERO_",  # e.g. ZOTERO_API_KEY, ZOTERO_LIBRARY_ID
        extra="ignore",  # Ignore extra fields found in environment
        case_sensitive=False,
        frozen=True,
    )

    # --- Library & Credentials ---
    api_key: str = Field(
        default="", description="Zotero API key (may be empty in local mode)"
    )
    library_id: str = Field(default="", description="Zotero user or group ID")
    library_type: LibraryKind = Field(
        default=LibraryKind.PERSONAL,
        description="Library kind: 'user' (also 'personal') or 'group'",
    )

    # --- Addressing ---
    base_url: str = Field(
        default=ZOTERO_API_BASE_URL, description="Zotero Web API base URL"
    )
    local: bool = Field(
        default=False,
        description="Talk to the Zotero desktop local API instead of the web API",
    )
    local_base_url: str = Field(
        default=ZOTERO_LOCAL_API_BASE_URL,
        description="Loopback address of the Zotero desktop local API",
    )
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / "Zotero",
        description="Local Zotero data directory holding the 'storage' folder",
    )

    # --- Client Behavior Settings ---
    request_timeout: float = Field(
        default=DEFAULT_TIMEOUT, description="Default request timeout in seconds"
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT, description="User-Agent header for requests"
    )
    log_level: str = Field(default="INFO", description="Minimum loguru level")

    # --- Rate Limiting Settings ---
    min_request_interval: float = Field(
        default=MIN_REQUEST_INTERVAL,
        description="Minimum spacing between two requests, in seconds",
    )
    rate_limit_retry_after_default: float = Field(
        default=DEFAULT_RETRY_AFTER,
        description="Wait time in seconds if a 429 response carries no Retry-After header",
    )

    @field_validator("library_type", mode="before")
    @classmethod
    def accept_personal_alias(cls, v):
        # "personal" is the usual name for a user library.
        if isinstance(v, str) and v.strip().lower() in ("personal", "user"):
            return LibraryKind.PERSONAL
        return v

    @property
    def api_base_url(self) -> str:
        """The base address requests are sent to, without a trailing slash."""
        if self.local:
            return self.local_base_url.rstrip("/")
        return self.base_url.rstrip("/")

    @property
    def effective_library_id(self) -> str:
        """The library id, defaulting to '0' (the local user) in local mode."""
        if not self.library_id and self.local:
            return "0"
        return self.library_id

    @property
    def library_prefix(self) -> str:
        """Path prefix for library-scoped endpoints, e.g. 'users/123456'."""
        return f"{self.library_type.value}s/{self.effective_library_id}"


# Create a single, cached instance of settings
@lru_cache
def get_settings() -> ZoteroSettings:
    """
    Provides access to the application settings.

    Settings are loaded from environment variables (prefixed with 'ZOTERO_')
    or .env/secrets.env files. The instance is cached for performance.

    Returns:
        ZoteroSettings: The application settings instance.
    """
    return ZoteroSettings()
