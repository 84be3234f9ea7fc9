"""Request gateway for the Zotero Web API.

The gateway is the only component that touches ``httpx`` directly. It turns
an operation's method, path and payload into an authenticated request
carrying the uniform Zotero header set, performs exactly one HTTP exchange
per call to :meth:`RequestGateway.send`, and classifies finished responses
into ``Ok``/``Err`` results.

Transport-level failures (connection refused, timeouts) are not classified:
``httpx`` raises them and they propagate to the caller unmodified.
"""

from collections.abc import Mapping
from http import HTTPStatus
from typing import Any
from uuid import uuid4

import httpx

from .auth import AuthStrategy
from .config import ZoteroSettings
from .constants import API_VERSION, API_VERSION_HEADER, WRITE_TOKEN_HEADER
from .log_config import logger
from .types import Err, Failure, FailureReason, Ok, RequestData

STATUS_REASONS: dict[int, tuple[FailureReason, str]] = {
    HTTPStatus.BAD_REQUEST: (
        FailureReason.MALFORMED_REQUEST,
        "Bad request, check parameters",
    ),
    HTTPStatus.FORBIDDEN: (
        FailureReason.AUTHORIZATION,
        "Forbidden, invalid API key or insufficient permissions",
    ),
    HTTPStatus.NOT_FOUND: (
        FailureReason.NOT_FOUND,
        "Not found, check the key or library ID",
    ),
    HTTPStatus.CONFLICT: (
        FailureReason.LIBRARY_LOCKED,
        "Conflict, the library is currently locked; try again later",
    ),
    HTTPStatus.PRECONDITION_FAILED: (
        FailureReason.VERSION_CONFLICT,
        "Precondition failed, item was modified by another client",
    ),
    HTTPStatus.REQUEST_ENTITY_TOO_LARGE: (
        FailureReason.PAYLOAD_TOO_LARGE,
        "Request too large",
    ),
    HTTPStatus.TOO_MANY_REQUESTS: (
        FailureReason.THROTTLED,
        "Rate limit exceeded",
    ),
    HTTPStatus.SERVICE_UNAVAILABLE: (
        FailureReason.SERVICE_UNAVAILABLE,
        "Zotero service temporarily unavailable",
    ),
}
"""Fixed status -> (reason, human-readable message) table."""


def describe_status(status_code: int) -> tuple[FailureReason, str]:
    """Looks up the failure category and message for a non-success status."""
    return STATUS_REASONS.get(
        status_code, (FailureReason.UNKNOWN_STATUS, f"HTTP {status_code}")
    )


class RequestGateway:
    """Builds, authenticates, sends and classifies Zotero API requests.

    Attributes:
        _settings: The client settings (base address, user agent).
        _http_client: The httpx.AsyncClient used to send requests.
        _auth_strategy: Strategy adding the credential header, if any.
    """

    def __init__(
        self,
        settings: ZoteroSettings,
        http_client: httpx.AsyncClient,
        auth_strategy: AuthStrategy,
    ):
        self._settings = settings
        self._http_client = http_client
        self._auth_strategy = auth_strategy
        self._base_url = settings.api_base_url

    def url_for(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    def build(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_data: Any | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> RequestData:
        """Describes a request with the uniform Zotero header set applied.

        Mutating requests get a fresh ``Zotero-Write-Token``.

        Args:
            method: HTTP method.
            path: Path relative to the API base address.
            params: Query parameters.
            json_data: JSON body for mutating requests.
            headers: Operation-specific headers, such as the version precondition.

        Returns:
            RequestData: The request description, not yet authenticated.
        """
        request_headers = {
            API_VERSION_HEADER: API_VERSION,
            "Content-Type": "application/json",
            "User-Agent": self._settings.user_agent,
        }
        if headers:
            request_headers.update(headers)
        request_data = RequestData(
            method=method.upper(),
            url=self.url_for(path),
            params=params,
            json_data=json_data,
            headers=request_headers,
        )
        if request_data.is_mutating:
            request_data.headers.setdefault(WRITE_TOKEN_HEADER, uuid4().hex)
        return request_data

    async def prepare(self, request_data: RequestData) -> httpx.Request:
        """Builds the httpx request and applies the authentication strategy."""
        request = request_data.build_request()
        await self._auth_strategy.async_authenticate(request)
        return request

    async def send(self, request: httpx.Request) -> httpx.Response:
        """Executes exactly one HTTP exchange.

        Raises:
            httpx.TransportError: On connection or timeout failures, unmodified.
        """
        logger.debug(f"Sending request: {request.method} {request.url}")
        logger.trace(f"Request Headers: {request.headers}")
        response = await self._http_client.send(request)
        logger.debug(f"Received response: {response.status_code} for {request.url}")
        logger.trace(f"Response Headers: {response.headers}")
        return response

    async def classify(
        self, response: httpx.Response, operation: str
    ) -> Ok[httpx.Response] | Err:
        """Maps a finished response to a result.

        Success responses pass through untouched. Any other status becomes a
        :class:`Failure` whose detail is the response body when it can be read.
        """
        if response.is_success:
            return Ok(value=response)

        reason, message = describe_status(response.status_code)
        failure = Failure(
            operation=operation,
            reason=reason,
            message=message,
            status_code=response.status_code,
            detail=await self._read_body(response),
        )
        logger.warning(f"Request failed: {failure}")
        return Err(failure=failure)

    @staticmethod
    async def _read_body(response: httpx.Response) -> str:
        # Diagnostics only; an unreadable body leaves the detail empty.
        try:
            await response.aread()
            return response.text.strip()
        except Exception as e:
            logger.debug(f"Could not read error response body: {e}")
            return ""
