# zotloom/models.py
"""Pydantic models for Zotero API objects and client results.

Models that mirror the Zotero wire format (``Collection``, ``Item``,
``WriteOutcome``, ``FullText``) keep the API's camelCase field names and
tolerate unknown fields, since Zotero item types carry many optional fields.
Models the client builds itself (``Page``, ``AttachmentDescriptor``,
``DerivedText``, ``BinaryContent``, ``CollectionMembership``) use snake_case.
"""

from pathlib import Path
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .constants import Provenance

DataT = TypeVar("DataT", bound=BaseModel)
ItemT = TypeVar("ItemT")


class Library(BaseModel):
    """The library block attached to every Zotero object."""

    model_config = ConfigDict(extra="allow")

    type: str
    id: int
    name: str = ""


class ResourceEnvelope(BaseModel, Generic[DataT]):
    """A fetched or created Zotero object.

    Attributes:
        key: The object key (8 characters, e.g. ``ABCD2345``).
        version: Monotonically increasing object version, used as the
            optimistic-concurrency precondition for writes.
        library: Library the object belongs to.
        data: The typed payload.
    """

    model_config = ConfigDict(extra="allow")

    key: str
    version: int
    library: Library | None = None
    data: DataT


class CollectionData(BaseModel):
    model_config = ConfigDict(extra="allow")

    key: str
    version: int = 0
    name: str
    # Zotero reports a top-level collection as `false`.
    parentCollection: str | bool = False

    @property
    def parent_key(self) -> str | None:
        return self.parentCollection if isinstance(self.parentCollection, str) else None


class Creator(BaseModel):
    model_config = ConfigDict(extra="allow")

    creatorType: str
    firstName: str | None = None
    lastName: str | None = None
    name: str | None = None


class Tag(BaseModel):
    model_config = ConfigDict(extra="allow")

    tag: str
    type: int | None = None


class ItemData(BaseModel):
    """Item payload. Attachment fields are only present on attachment items."""

    model_config = ConfigDict(extra="allow")

    key: str
    version: int = 0
    itemType: str
    title: str | None = None
    note: str | None = None
    creators: list[Creator] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)
    collections: list[str] = Field(default_factory=list)
    date: str | None = None
    abstractNote: str | None = None
    DOI: str | None = None
    url: str | None = None
    # Attachment fields
    parentItem: str | None = None
    contentType: str | None = None
    filename: str | None = None
    linkMode: str | None = None

    @property
    def is_attachment(self) -> bool:
        return self.itemType == "attachment"


class Collection(ResourceEnvelope[CollectionData]):
    """A Zotero collection."""


class Item(ResourceEnvelope[ItemData]):
    """A Zotero item (regular item, note or attachment)."""


class WriteFailure(BaseModel):
    code: int
    message: str


class WriteOutcome(BaseModel):
    """Result of a batch create/update request.

    Each map is keyed by the submission index as a string (``"0"``, ``"1"``, ...).
    An index appears in at most one map; ``covers`` checks that a batch of a
    given size was fully accounted for.
    """

    model_config = ConfigDict(extra="ignore")

    success: dict[str, str] = Field(default_factory=dict)
    unchanged: dict[str, str] = Field(default_factory=dict)
    failed: dict[str, WriteFailure] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_disjoint(self) -> "WriteOutcome":
        seen: set[str] = set()
        for index in (*self.success, *self.unchanged, *self.failed):
            if index in seen:
                raise ValueError(f"Submission index {index} appears in more than one map")
            seen.add(index)
        return self

    def covers(self, count: int) -> bool:
        """True when every index below ``count`` appears in one of the maps."""
        indices = {*self.success, *self.unchanged, *self.failed}
        return all(str(i) in indices for i in range(count))

    @property
    def created_key(self) -> str | None:
        """Key of the first written object, for single-element batches."""
        return next(iter(self.success.values()), None)

    @property
    def failure_messages(self) -> list[str]:
        return [f.message for f in self.failed.values()]


class Page(BaseModel, Generic[ItemT]):
    """One page of a paginated listing.

    ``total_results`` is whatever the server reported; the client does not
    check it against ``offset + len(items)``.
    """

    model_config = ConfigDict(populate_by_name=True)

    items: list[ItemT]
    total_results: int = Field(alias="totalResults")
    offset: int
    limit: int

    @model_validator(mode="after")
    def check_page_size(self) -> "Page[ItemT]":
        if len(self.items) > self.limit:
            raise ValueError(
                f"Page holds {len(self.items)} items but the limit is {self.limit}"
            )
        return self


class FullText(BaseModel):
    """Body of the ``items/<key>/fulltext`` endpoint."""

    model_config = ConfigDict(extra="allow")

    content: str
    indexedPages: int | None = None
    totalPages: int | None = None
    indexedChars: int | None = None
    totalChars: int | None = None


class DerivedText(BaseModel):
    """Extracted text of an attachment and where it was read from."""

    model_config = ConfigDict(frozen=True)

    key: str
    content: str
    source: Provenance
    indexed_pages: int | None = None
    total_pages: int | None = None
    indexed_chars: int | None = None
    total_chars: int | None = None

    @classmethod
    def from_remote(cls, key: str, full_text: FullText) -> "DerivedText":
        return cls(
            key=key,
            content=full_text.content,
            source="remote",
            indexed_pages=full_text.indexedPages,
            total_pages=full_text.totalPages,
            indexed_chars=full_text.indexedChars,
            total_chars=full_text.totalChars,
        )


class AttachmentDescriptor(BaseModel):
    """Summary of an attachment child.

    ``local_path`` and ``file_size`` are only set when the file was found in
    the local Zotero storage directory.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    content_type: str
    filename: str
    link_mode: str
    local_path: Path | None = None
    file_size: int | None = None

    @classmethod
    def from_item(cls, item: Item) -> "AttachmentDescriptor":
        data = item.data
        filename = data.filename or ""
        return cls(
            key=data.key,
            title=data.title or filename,
            content_type=data.contentType or "unknown",
            filename=filename,
            link_mode=data.linkMode or "unknown",
        )


class BinaryContent(BaseModel):
    """File content of an attachment, base64-encoded for transport."""

    model_config = ConfigDict(frozen=True)

    key: str
    filename: str
    content_type: str
    data: str
    source: Provenance
    local_path: Path | None = None
    size: int | None = None


class CollectionMembership(BaseModel):
    """Outcome of adding an item to a collection."""

    model_config = ConfigDict(frozen=True)

    item_key: str
    collection_key: str
    changed: bool
    version: int
