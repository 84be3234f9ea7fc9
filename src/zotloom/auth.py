from typing import Protocol

import httpx

from .config import ZoteroSettings
from .constants import API_KEY_HEADER
from .exceptions import ConfigurationError
from .log_config import logger


class AuthStrategy(Protocol):
    """Protocol defining the interface for authentication strategies.

    Concrete implementations add the credential (if any) to an outgoing
    request. The protocol-version header is not their concern; the gateway
    sets it on every request.
    """

    async def async_authenticate(self, request: httpx.Request) -> None:
        """
        Asynchronously modifies the request to add authentication information.

        Args:
            request: The httpx.Request object to modify.
        """
        ...

    async def async_close(self) -> None:
        """
        Asynchronously closes any underlying resources used by the strategy.
        This method should be idempotent.
        """
        ...


class NoAuth:
    """Strategy for the Zotero desktop local API, which takes no credential.

    This strategy makes no modifications to the outgoing request.
    """

    async def async_authenticate(self, request: httpx.Request) -> None:
        """Does nothing as no authentication is needed."""
        logger.trace("Using NoAuth strategy, no credential applied.")

    async def async_close(self) -> None:
        """No resources to close for NoAuth, this method is a no-op."""


class ApiKeyAuth:
    """Implements AuthStrategy using a Zotero API key.

    The key is sent in the ``Zotero-API-Key`` header of every request.

    Attributes:
        _api_key: The Zotero API key.
    """

    def __init__(self, api_key: str | None):
        """Initializes ApiKeyAuth with the provided API key.

        Args:
            api_key: The Zotero API key.

        Raises:
            ConfigurationError: If the key is None or empty.
        """
        if not api_key:
            raise ConfigurationError("ApiKeyAuth requires a non-empty 'api_key'.")
        self._api_key: str = api_key
        logger.debug("ApiKeyAuth initialized.")

    async def async_authenticate(self, request: httpx.Request) -> None:
        """Adds the 'Zotero-API-Key' header to the request."""
        logger.trace("Authenticating request using ApiKeyAuth.")
        request.headers[API_KEY_HEADER] = self._api_key

    async def async_close(self) -> None:
        """No resources to close for ApiKeyAuth, this method is a no-op."""


def auth_from_settings(settings: ZoteroSettings) -> AuthStrategy:
    """Picks the strategy matching the settings.

    Local mode never sends a credential, even when one is configured.

    Raises:
        ConfigurationError: If the web API is targeted without an API key.
    """
    if settings.local:
        logger.info("Local API mode: requests are sent without an API key.")
        return NoAuth()
    if not settings.api_key:
        raise ConfigurationError(
            "ZOTERO_API_KEY is required unless ZOTERO_LOCAL is enabled."
        )
    return ApiKeyAuth(settings.api_key)
