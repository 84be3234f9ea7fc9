"""Asynchronous client for the Zotero Web API v3.

:class:`ZoteroClient` is the public surface for library operations: listing
and creating collections, creating notes, fetching and searching items,
adding items to collections with optimistic concurrency, listing children,
and retrieving full text and attachment files.

Every operation funnels through one :class:`~zotloom.governor.RateGovernor`
per client instance and returns ``Ok(value=...)`` or ``Err(failure=...)``.
Transport errors raised by ``httpx`` propagate unmodified.
"""

import asyncio
import base64
import re
import ssl
import time
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any, Self, TypeVar
from urllib.parse import unquote

import certifi
import httpx
from pydantic import ValidationError as PydanticValidationError

from .auth import AuthStrategy, auth_from_settings
from .config import ZoteroSettings, get_settings
from .constants import (
    DEFAULT_BINARY_CONTENT_TYPE,
    DEFAULT_PAGE_SIZE,
    IF_UNMODIFIED_SINCE_VERSION_HEADER,
    ITERATE_PAGE_SIZE,
    SearchMode,
    SortDirection,
    SortField,
)
from .exceptions import ConfigurationError
from .gateway import RequestGateway
from .governor import Clock, RateGovernor, Sleep
from .log_config import logger
from .models import (
    BinaryContent,
    Collection,
    CollectionMembership,
    DerivedText,
    FullText,
    Item,
    Page,
    WriteOutcome,
)
from .pagination import PageRequest, build_page, iterate_pages
from .types import Err, Failure, FailureReason, Ok

T = TypeVar("T")

LAST_MODIFIED_VERSION_HEADER = "Last-Modified-Version"

_FILENAME_STAR_RE = re.compile(r"filename\*\s*=\s*([^']*)'[^']*'([^;]+)", re.IGNORECASE)
_FILENAME_RE = re.compile(r'filename\s*=\s*"?([^";]+)"?', re.IGNORECASE)


def filename_from_disposition(header: str | None) -> str | None:
    """Extracts the filename from a ``Content-Disposition`` header.

    The RFC 5987 ``filename*`` form wins over the plain ``filename`` form.
    """
    if not header:
        return None
    match = _FILENAME_STAR_RE.search(header)
    if match:
        encoding = match.group(1) or "utf-8"
        try:
            return unquote(match.group(2).strip().strip('"'), encoding=encoding)
        except LookupError:
            return unquote(match.group(2).strip().strip('"'))
    match = _FILENAME_RE.search(header)
    if match:
        return match.group(1).strip()
    return None


class ZoteroClient:
    """Asynchronous, rate-governed client for one Zotero library.

    Typical usage:
    ```python
    async with ZoteroClient(settings) as client:
        result = await client.search_items("attention is all you need")
        for item in result.unwrap().items:
            print(item.data.title)
    ```

    Attributes:
        _settings: The immutable settings this client was built from.
        _auth_strategy: Strategy adding the API key header (or nothing, locally).
        _http_client: The underlying httpx.AsyncClient.
        _should_close_client: Whether this instance owns ``_http_client``.
        _gateway: Builds, sends and classifies requests.
        _governor: Serializes requests; owns this instance's rate state.
    """

    def __init__(
        self,
        settings: ZoteroSettings | None = None,
        auth_strategy: AuthStrategy | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initializes the ZoteroClient.

        Args:
            settings: Client settings. If None, loaded via ``get_settings()``.
            auth_strategy: Optional explicit strategy. If None, ``ApiKeyAuth``
                is used for the web API and ``NoAuth`` in local mode.
            http_client: Optional pre-configured httpx.AsyncClient. A client
                passed in is not closed by ``aclose()``.
            clock: Monotonic clock used by the rate governor.
            sleep: Coroutine function used by the rate governor to wait.

        Raises:
            ConfigurationError: If no library id is configured outside local
                mode, or no API key is available for the web API.
        """
        self._settings: ZoteroSettings = settings or get_settings()
        if not self._settings.effective_library_id:
            raise ConfigurationError(
                "ZOTERO_LIBRARY_ID is required unless ZOTERO_LOCAL is enabled."
            )

        self._auth_strategy: AuthStrategy = auth_strategy or auth_from_settings(
            self._settings
        )
        logger.info(
            f"Using authentication strategy: {type(self._auth_strategy).__name__}"
        )

        self._should_close_client = http_client is None
        self._http_client = http_client or self._create_default_http_client()

        self._gateway = RequestGateway(
            self._settings, self._http_client, self._auth_strategy
        )
        self._governor = RateGovernor(
            self._gateway,
            min_interval=self._settings.min_request_interval,
            default_retry_after=self._settings.rate_limit_retry_after_default,
            clock=clock,
            sleep=sleep,
        )
        logger.debug(
            f"ZoteroClient initialized for {self._settings.api_base_url}/"
            f"{self._settings.library_prefix}"
        )

    def _create_default_http_client(self) -> httpx.AsyncClient:
        """Create a default httpx.AsyncClient with configured settings.

        File downloads answer with a redirect to storage, so redirects are
        followed.
        """
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        return httpx.AsyncClient(
            timeout=self._settings.request_timeout,
            verify=ssl_context,
            follow_redirects=True,
            headers={"User-Agent": self._settings.user_agent},
        )

    @property
    def settings(self) -> ZoteroSettings:
        return self._settings

    @property
    def governor(self) -> RateGovernor:
        return self._governor

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _library_path(self, *parts: str) -> str:
        return "/".join((self._settings.library_prefix, *parts))

    async def _call(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_data: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> Ok[httpx.Response] | Err:
        request_data = self._gateway.build(
            method, path, params=params, json_data=json_data, headers=headers
        )
        request = await self._gateway.prepare(request_data)
        response = await self._governor.execute(request)
        return await self._gateway.classify(response, operation)

    @staticmethod
    def _parse(
        operation: str, response: httpx.Response, parser: Callable[[Any], T]
    ) -> Ok[T] | Err:
        """Parses a JSON body, turning malformed payloads into a failure."""
        try:
            return Ok(value=parser(response.json()))
        except (TypeError, ValueError, PydanticValidationError) as e:
            logger.warning(f"{operation}: could not parse response body: {e}")
            return Err(
                failure=Failure(
                    operation=operation,
                    reason=FailureReason.INVALID_RESPONSE,
                    message="Unexpected response body",
                    status_code=response.status_code,
                    detail=str(e),
                )
            )

    @staticmethod
    def _check_write(operation: str, outcome: WriteOutcome) -> Ok[WriteOutcome] | Err:
        """Turns a write outcome with failed submissions into a domain failure."""
        if outcome.failed:
            first = next(iter(outcome.failed.values()))
            return Err(
                failure=Failure(
                    operation=operation,
                    reason=FailureReason.WRITE_REJECTED,
                    message="; ".join(outcome.failure_messages),
                    status_code=first.code,
                )
            )
        if not outcome.covers(1):
            logger.warning(f"{operation}: write response did not report submission 0")
        return Ok(value=outcome)

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def list_collections(
        self, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
    ) -> Ok[Page[Collection]] | Err:
        """List collections in the library, one page at a time.

        Args:
            limit: Page size (clamped to 1-100).
            offset: Number of collections to skip.

        Returns:
            A page of collections whose ``total_results`` comes from the
            ``Total-Results`` header (or the item count if it is missing).
        """
        operation = "listCollections"
        window = PageRequest(limit=limit, offset=offset)
        result = await self._call(
            operation,
            "GET",
            self._library_path("collections"),
            params={**window.to_params(), "format": "json"},
        )
        if isinstance(result, Err):
            return result

        response = result.value
        return self._parse(
            operation,
            response,
            lambda body: build_page(
                [Collection.model_validate(c) for c in body], response, window
            ),
        )

    async def create_collection(
        self, name: str, parent_collection: str | None = None
    ) -> Ok[WriteOutcome] | Err:
        """Create a collection, optionally nested under ``parent_collection``.

        A submission the service rejects is returned as a ``WRITE_REJECTED``
        failure even though the HTTP exchange succeeded.
        """
        operation = "createCollection"
        body: dict[str, Any] = {"name": name}
        if parent_collection:
            body["parentCollection"] = parent_collection

        result = await self._call(
            operation,
            "POST",
            self._library_path("collections"),
            json_data=[body],
        )
        if isinstance(result, Err):
            return result

        parsed = self._parse(operation, result.value, WriteOutcome.model_validate)
        if isinstance(parsed, Err):
            return parsed
        checked = self._check_write(operation, parsed.value)
        if isinstance(checked, Ok):
            logger.info(f"Created collection {name!r} as {checked.value.created_key}")
        return checked

    async def iterate_collections(
        self, page_size: int = ITERATE_PAGE_SIZE
    ) -> AsyncIterator[Collection]:
        """Yield every collection in the library.

        Raises:
            APIError: The typed exception of the first page that fails.
        """
        async for collection in iterate_pages(
            lambda window: self.list_collections(limit=window.limit, offset=window.offset),
            page_size=page_size,
        ):
            yield collection

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    async def create_note(
        self,
        note_html: str,
        collection_keys: Sequence[str] | None = None,
        tags: Sequence[str] | None = None,
    ) -> Ok[WriteOutcome] | Err:
        """Create a standalone note.

        Args:
            note_html: The note body as HTML.
            collection_keys: Collections to file the note in.
            tags: Tag names to attach.
        """
        operation = "createNote"
        body = {
            "itemType": "note",
            "note": note_html,
            "tags": [{"tag": tag} for tag in tags or []],
            "collections": list(collection_keys or []),
        }
        result = await self._call(
            operation,
            "POST",
            self._library_path("items"),
            json_data=[body],
        )
        if isinstance(result, Err):
            return result

        parsed = self._parse(operation, result.value, WriteOutcome.model_validate)
        if isinstance(parsed, Err):
            return parsed
        checked = self._check_write(operation, parsed.value)
        if isinstance(checked, Ok):
            logger.info(f"Created note {checked.value.created_key}")
        return checked

    async def get_item(self, item_key: str) -> Ok[Item] | Err:
        """Retrieve a single item by key."""
        operation = f"getItem({item_key})"
        result = await self._call(
            operation, "GET", self._library_path("items", item_key), params={"format": "json"}
        )
        if isinstance(result, Err):
            return result
        return self._parse(operation, result.value, Item.model_validate)

    async def add_item_to_collection(
        self, item_key: str, collection_key: str
    ) -> Ok[CollectionMembership] | Err:
        """Add an existing item to a collection.

        Fetches the item for its current version and collections. If the item
        is already in the collection nothing is written. Otherwise the item is
        patched with the collection appended, conditional on the fetched
        version; if another client modified the item in between, the result is
        a ``VERSION_CONFLICT`` failure and the caller must re-fetch and retry.
        """
        fetched = await self.get_item(item_key)
        if isinstance(fetched, Err):
            return fetched

        item = fetched.value
        current = list(item.data.collections)
        if collection_key in current:
            logger.info(f"Item {item_key} is already in collection {collection_key}")
            return Ok(
                value=CollectionMembership(
                    item_key=item_key,
                    collection_key=collection_key,
                    changed=False,
                    version=item.version,
                )
            )

        result = await self._call(
            f"addItemToCollection({item_key})",
            "PATCH",
            self._library_path("items", item_key),
            json_data={"collections": [*current, collection_key]},
            headers={IF_UNMODIFIED_SINCE_VERSION_HEADER: str(item.version)},
        )
        if isinstance(result, Err):
            return result

        new_version = result.value.headers.get(LAST_MODIFIED_VERSION_HEADER, "")
        logger.info(f"Added item {item_key} to collection {collection_key}")
        return Ok(
            value=CollectionMembership(
                item_key=item_key,
                collection_key=collection_key,
                changed=True,
                version=int(new_version) if new_version.isdigit() else item.version,
            )
        )

    async def search_items(
        self,
        query: str,
        *,
        qmode: SearchMode = "titleCreatorYear",
        item_type: str | None = None,
        tag: str | None = None,
        sort: SortField = "dateModified",
        direction: SortDirection = "desc",
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> Ok[Page[Item]] | Err:
        """Search items in the library.

        Args:
            query: Search string.
            qmode: ``titleCreatorYear`` (default) or ``everything``, which also
                searches full text.
            item_type: Zotero item type filter, e.g. ``journalArticle``.
            tag: Tag filter, passed through verbatim (``a || b`` for either,
                ``-a`` to exclude).
            sort: Sort field.
            direction: ``asc`` or ``desc``.
            limit: Page size (clamped to 1-100).
            offset: Number of results to skip.
        """
        operation = "searchItems"
        window = PageRequest(limit=limit, offset=offset)
        params: dict[str, Any] = {
            "q": query,
            "qmode": qmode,
            "sort": sort,
            "direction": direction,
            **window.to_params(),
            "format": "json",
        }
        if item_type:
            params["itemType"] = item_type
        if tag:
            params["tag"] = tag

        logger.debug(f"Searching items: {params}")
        result = await self._call(operation, "GET", self._library_path("items"), params=params)
        if isinstance(result, Err):
            return result

        response = result.value
        return self._parse(
            operation,
            response,
            lambda body: build_page(
                [Item.model_validate(i) for i in body], response, window
            ),
        )

    async def iterate_items(
        self, query: str, *, page_size: int = ITERATE_PAGE_SIZE, **filters: Any
    ) -> AsyncIterator[Item]:
        """Yield every item matching a search; ``filters`` as for ``search_items``.

        Raises:
            APIError: The typed exception of the first page that fails.
        """
        async for item in iterate_pages(
            lambda window: self.search_items(
                query, limit=window.limit, offset=window.offset, **filters
            ),
            page_size=page_size,
        ):
            yield item

    async def get_item_children(
        self, item_key: str, attachments_only: bool = False
    ) -> Ok[list[Item]] | Err:
        """List child items (attachments, notes) of a parent item."""
        operation = f"getItemChildren({item_key})"
        result = await self._call(
            operation,
            "GET",
            self._library_path("items", item_key, "children"),
            params={"format": "json"},
        )
        if isinstance(result, Err):
            return result

        parsed = self._parse(
            operation, result.value, lambda body: [Item.model_validate(i) for i in body]
        )
        if isinstance(parsed, Err) or not attachments_only:
            return parsed
        return Ok(value=[child for child in parsed.value if child.data.is_attachment])

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    async def get_fulltext(self, item_key: str) -> Ok[DerivedText | None] | Err:
        """Fetch the indexed full text of an attachment from the service.

        Returns:
            ``Ok(value=None)`` when the attachment has not been indexed (404);
            any other failure is returned as ``Err``.
        """
        operation = f"getFullText({item_key})"
        result = await self._call(
            operation, "GET", self._library_path("items", item_key, "fulltext")
        )
        if isinstance(result, Err):
            if result.failure.reason is FailureReason.NOT_FOUND:
                logger.info(f"No full text indexed for {item_key}")
                return Ok(value=None)
            return result

        parsed = self._parse(operation, result.value, FullText.model_validate)
        if isinstance(parsed, Err):
            return parsed
        return Ok(value=DerivedText.from_remote(item_key, parsed.value))

    async def download_attachment(self, item_key: str) -> Ok[BinaryContent] | Err:
        """Download an attachment file, base64-encoded.

        The filename comes from ``Content-Disposition`` and falls back to
        ``<item_key>.bin``.
        """
        operation = f"downloadAttachment({item_key})"
        result = await self._call(
            operation, "GET", self._library_path("items", item_key, "file")
        )
        if isinstance(result, Err):
            return result

        response = result.value
        content_type = response.headers.get("Content-Type", DEFAULT_BINARY_CONTENT_TYPE)
        filename = filename_from_disposition(
            response.headers.get("Content-Disposition")
        ) or f"{item_key}.bin"
        payload = response.content
        logger.debug(f"Downloaded {len(payload)} bytes for {item_key} as {filename}")
        return Ok(
            value=BinaryContent(
                key=item_key,
                filename=filename,
                content_type=content_type.split(";")[0].strip(),
                data=base64.b64encode(payload).decode("ascii"),
                source="remote",
                size=len(payload),
            )
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Close the underlying HTTP client (if owned) and the auth strategy."""
        if self._should_close_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            logger.debug("ZoteroClient internal HTTP client closed.")
        await self._auth_strategy.async_close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        await self.aclose()
