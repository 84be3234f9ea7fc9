"""Main user-facing session class for interacting with a Zotero library."""

import httpx

from .auth import AuthStrategy
from .client import ZoteroClient
from .config import ZoteroSettings, get_settings
from .content import LocalContentResolver
from .log_config import configure_logging, logger
from .storage import LocalStorage


class ZoteroSession:
    """High-level session wiring a client and a local-first content resolver.

    This is the entry point for collaborators such as a tool-dispatch layer:
    it builds one :class:`ZoteroClient` (and therefore one rate governor) from
    the settings, and a :class:`LocalContentResolver` over the configured data
    directory. It supports asynchronous context management.

    Example:
    ```python
    async with ZoteroSession() as session:
        page = (await session.client.list_collections()).unwrap()
        text = await session.content.get_fulltext("ABCD2345")
    ```

    Attributes:
        client (ZoteroClient): The rate-governed API client.
        content (LocalContentResolver): Local-first attachment content access.
    """

    def __init__(
        self,
        settings: ZoteroSettings | None = None,
        auth_strategy: AuthStrategy | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        configure_logs: bool = True,
    ):
        """Initializes the session.

        Args:
            settings: Optional settings; loaded from the environment if None.
            auth_strategy: Optional explicit authentication strategy.
            http_client: Optional pre-configured httpx.AsyncClient.
            configure_logs: Configure loguru from ``settings.log_level``.
        """
        self._settings = settings or get_settings()
        if configure_logs:
            configure_logging(self._settings.log_level)

        self._client = ZoteroClient(
            self._settings, auth_strategy, http_client=http_client
        )
        self._content = LocalContentResolver(
            self._client, LocalStorage(self._settings.data_dir)
        )
        logger.info(
            f"ZoteroSession initialized for {self._settings.api_base_url} "
            f"({self._settings.library_prefix}), data dir {self._settings.data_dir}"
        )

    @property
    def client(self) -> ZoteroClient:
        return self._client

    @property
    def content(self) -> LocalContentResolver:
        return self._content

    async def close(self) -> None:
        """Closes the underlying HTTP client session."""
        await self._client.aclose()

    async def __aenter__(self) -> "ZoteroSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
