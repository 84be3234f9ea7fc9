# zotloom/types.py
"""Core type definitions and data structures for the zotloom library.

This module defines the request description handed to the gateway and the
result values every layer boundary returns: ``Ok`` wraps a success value,
``Err`` wraps a :class:`Failure` describing what went wrong. Callers can
pattern-match the recoverable cases::

    match await client.add_item_to_collection(item_key, collection_key):
        case Ok(value=membership):
            ...
        case Err(failure=Failure(reason=FailureReason.VERSION_CONFLICT)):
            ...  # re-fetch and retry
        case Err(failure=failure):
            print(failure)
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Generic, NoReturn, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field

from .exceptions import APIError, exception_for

ValueT = TypeVar("ValueT")


class RequestData(BaseModel):
    """Encapsulates data for a single HTTP request to the Zotero API."""

    method: str
    url: str
    params: Mapping[str, Any] | None = None
    json_data: Any | None = None
    headers: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    @property
    def is_mutating(self) -> bool:
        return self.method.upper() in {"POST", "PUT", "PATCH", "DELETE"}

    def build_request(self) -> httpx.Request:
        """Builds an httpx.Request object from the stored data."""
        return httpx.Request(
            method=self.method,
            url=self.url,
            params=self.params,
            json=self.json_data,
            headers=self.headers,
        )


class FailureReason(str, Enum):
    """Category of a failed operation."""

    MALFORMED_REQUEST = "malformed_request"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    LIBRARY_LOCKED = "library_locked"
    VERSION_CONFLICT = "version_conflict"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    THROTTLED = "throttled"
    SERVICE_UNAVAILABLE = "service_unavailable"
    UNKNOWN_STATUS = "unknown_status"
    INVALID_RESPONSE = "invalid_response"
    WRITE_REJECTED = "write_rejected"
    NO_ATTACHMENT = "no_attachment"


class Failure(BaseModel):
    """A typed failure returned by a client operation.

    Attributes:
        operation: Label of the operation that failed, e.g. ``getItem(ABCD1234)``.
        reason: The failure category.
        message: Human-readable reason.
        status_code: HTTP status of the response, when the failure came from one.
        detail: Optional diagnostic text, usually the response body.
    """

    model_config = ConfigDict(frozen=True)

    operation: str
    reason: FailureReason
    message: str
    status_code: int | None = None
    detail: str = ""

    def __str__(self) -> str:
        text = f"{self.operation}: {self.message}"
        if self.detail:
            text += f" - {self.detail}"
        return text

    def to_exception(self) -> APIError:
        """Builds the exception matching this failure's reason."""
        return exception_for(self.reason)(str(self), failure=self)


class Ok(BaseModel, Generic[ValueT]):
    """Successful result of an operation."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: ValueT

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> ValueT:
        return self.value


class Err(BaseModel):
    """Failed result of an operation."""

    model_config = ConfigDict(frozen=True)

    failure: Failure

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> NoReturn:
        """Raises the typed exception for the wrapped failure."""
        raise self.failure.to_exception()
