"""zotloom: rate-governed asynchronous client for the Zotero Web API v3.

The package provides a client that serializes requests against Zotero's
rate rules, performs optimistic-concurrency writes, paginates listings, and
resolves attachment content from the local Zotero storage directory before
falling back to the API.
"""

__version__ = "0.1.0"

from .client import ZoteroClient
from .config import LibraryKind, ZoteroSettings, get_settings
from .content import LocalContentResolver
from .session import ZoteroSession
from .storage import LocalStorage
from .types import Err, Failure, FailureReason, Ok

__all__ = [
    "__version__",
    "Err",
    "Failure",
    "FailureReason",
    "LibraryKind",
    "LocalContentResolver",
    "LocalStorage",
    "Ok",
    "ZoteroClient",
    "ZoteroSession",
    "ZoteroSettings",
    "get_settings",
]
