"""Local-first resolution of attachment content.

Attachment listings, full text and attachment files are read from the local
Zotero storage directory when the artifact is there, and fetched from the
Zotero API otherwise. Callers can pass ``force_remote=True`` to skip the
local probe.

Full text and file retrieval accept either an attachment key or the key of
a regular (parent) item. For a parent item the attachment is resolved from
its children: the first PDF attachment if there is one, else the first
attachment.
"""

import base64
import mimetypes

from .client import ZoteroClient
from .constants import DEFAULT_BINARY_CONTENT_TYPE, PDF_CONTENT_TYPE
from .log_config import logger
from .models import AttachmentDescriptor, BinaryContent, DerivedText, Item
from .storage import LocalStorage
from .types import Err, Failure, FailureReason, Ok


class LocalContentResolver:
    """Serves attachment content from local storage, falling back to the API.

    Attributes:
        _client: The rate-governed API client used on local misses.
        _storage: Probe of the local Zotero data directory.
    """

    def __init__(self, client: ZoteroClient, storage: LocalStorage):
        self._client = client
        self._storage = storage

    async def list_attachments(
        self, item_key: str, *, force_remote: bool = False
    ) -> Ok[list[AttachmentDescriptor]] | Err:
        """List the attachments of an item, noting which are stored locally.

        Args:
            item_key: Key of the parent item.
            force_remote: Skip local path detection.

        Returns:
            Descriptors with ``local_path`` and ``file_size`` set for
            attachments whose file exists in local storage.
        """
        children = await self._client.get_item_children(item_key, attachments_only=True)
        if isinstance(children, Err):
            return children

        attachments = []
        for child in children.value:
            descriptor = AttachmentDescriptor.from_item(child)
            if not force_remote:
                local_path = self._storage.find_attachment(descriptor.key, descriptor.filename)
                if local_path is not None:
                    descriptor = descriptor.model_copy(
                        update={
                            "local_path": local_path,
                            "file_size": self._storage.file_size(local_path),
                        }
                    )
            attachments.append(descriptor)

        logger.debug(f"Item {item_key} has {len(attachments)} attachment(s)")
        return Ok(value=attachments)

    async def get_fulltext(
        self, item_key: str, *, force_remote: bool = False
    ) -> Ok[DerivedText | None] | Err:
        """Get the extracted text of an attachment or of a parent item's attachment.

        Returns:
            ``Ok(value=None)`` when no text is available: the attachment has
            not been indexed, the key is unknown to the service, or a parent item
            has no attachments.
        """
        if not force_remote:
            local = self._local_fulltext(item_key)
            if local is not None:
                return Ok(value=local)

        resolved = await self._resolve_attachment(item_key)
        if isinstance(resolved, Err):
            if resolved.failure.reason in (
                FailureReason.NOT_FOUND,
                FailureReason.NO_ATTACHMENT,
            ):
                logger.info(f"No full text available for {item_key}")
                return Ok(value=None)
            return resolved

        attachment_key = resolved.value.key
        if attachment_key != item_key and not force_remote:
            local = self._local_fulltext(attachment_key)
            if local is not None:
                return Ok(value=local)

        return await self._client.get_fulltext(attachment_key)

    async def read_attachment(
        self, item_key: str, *, force_remote: bool = False
    ) -> Ok[BinaryContent] | Err:
        """Read an attachment file, from local storage when possible.

        The attachment item is always fetched first, since its stored filename
        locates the file on disk; a local hit still costs one rate-limited
        request.

        Returns:
            The file content, base64-encoded, with its provenance. A parent
            item without attachments yields a ``NO_ATTACHMENT`` failure.
        """
        resolved = await self._resolve_attachment(item_key)
        if isinstance(resolved, Err):
            return resolved

        attachment = resolved.value
        if not force_remote:
            local_path = self._storage.find_attachment(attachment.key, attachment.data.filename)
            payload = self._storage.read_bytes(local_path) if local_path else None
            if local_path is not None and payload is not None:
                filename = local_path.name
                content_type = (
                    attachment.data.contentType
                    or mimetypes.guess_type(filename)[0]
                    or DEFAULT_BINARY_CONTENT_TYPE
                )
                logger.info(f"Read attachment {attachment.key} from {local_path}")
                return Ok(
                    value=BinaryContent(
                        key=attachment.key,
                        filename=filename,
                        content_type=content_type,
                        data=base64.b64encode(payload).decode("ascii"),
                        source="local",
                        local_path=local_path,
                        size=len(payload),
                    )
                )

        return await self._client.download_attachment(attachment.key)

    def _local_fulltext(self, key: str) -> DerivedText | None:
        path = self._storage.find_fulltext(key)
        if path is None:
            return None
        content = self._storage.read_text(path)
        if content is None:
            return None
        logger.info(f"Read full text of {key} from {path}")
        return DerivedText(key=key, content=content, source="local")

    async def _resolve_attachment(self, item_key: str) -> Ok[Item] | Err:
        """Resolves a key to an attachment item, descending into children if needed."""
        fetched = await self._client.get_item(item_key)
        if isinstance(fetched, Err) or fetched.value.data.is_attachment:
            return fetched

        children = await self._client.get_item_children(item_key, attachments_only=True)
        if isinstance(children, Err):
            return children
        if not children.value:
            return Err(
                failure=Failure(
                    operation=f"resolveAttachment({item_key})",
                    reason=FailureReason.NO_ATTACHMENT,
                    message=f"No attachments found for item {item_key}",
                )
            )

        chosen = next(
            (c for c in children.value if c.data.contentType == PDF_CONTENT_TYPE),
            children.value[0],
        )
        logger.debug(f"Resolved item {item_key} to attachment {chosen.key}")
        return Ok(value=chosen)
