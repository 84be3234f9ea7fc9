"""Read-only access to the local Zotero data directory.

Zotero desktop keeps each stored attachment under
``<data_dir>/storage/<attachment key>/``: the original file by its filename,
and, once the attachment has been indexed, the extracted text in a
``.zotero-ft-cache`` file.

Every probe here degrades to "not available": a missing file, an unreadable
file or a failed ``stat`` is logged and reported as ``None``, never raised.
"""

from pathlib import Path

from .constants import FULLTEXT_CACHE_FILENAME
from .log_config import logger


class LocalStorage:
    """Probes ``<data_dir>/storage`` for cached attachment artifacts."""

    def __init__(self, data_dir: Path | str):
        self._root = Path(data_dir).expanduser() / "storage"
        logger.debug(f"LocalStorage rooted at {self._root}")

    @property
    def root(self) -> Path:
        return self._root

    def attachment_path(self, key: str, filename: str) -> Path:
        # Only the final component is used so a filename cannot leave the key's folder.
        return self._root / key / Path(filename).name

    def fulltext_path(self, key: str) -> Path:
        return self._root / key / FULLTEXT_CACHE_FILENAME

    def find_attachment(self, key: str, filename: str | None) -> Path | None:
        """Returns the stored file for an attachment, if present."""
        if not filename:
            return None
        return self._existing(self.attachment_path(key, filename))

    def find_fulltext(self, key: str) -> Path | None:
        """Returns the full-text cache file for an attachment, if present."""
        return self._existing(self.fulltext_path(key))

    @staticmethod
    def file_size(path: Path) -> int | None:
        try:
            return path.stat().st_size
        except OSError as e:
            logger.debug(f"Could not stat {path}: {e}")
            return None

    @staticmethod
    def read_text(path: Path) -> str | None:
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Could not read {path}, falling back to remote: {e}")
            return None

    @staticmethod
    def read_bytes(path: Path) -> bytes | None:
        try:
            return path.read_bytes()
        except OSError as e:
            logger.warning(f"Could not read {path}, falling back to remote: {e}")
            return None

    @staticmethod
    def _existing(path: Path) -> Path | None:
        try:
            if path.is_file():
                logger.debug(f"Local artifact found: {path}")
                return path
        except OSError as e:
            logger.debug(f"Could not probe {path}: {e}")
        return None
