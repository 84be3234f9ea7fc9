"""Constants used throughout the zotloom library.

This module defines the Zotero Web API wire constants (header names, protocol
version, base URLs), default client settings and the literals accepted for
search parameters.
"""

from typing import Literal

# Base URLs
ZOTERO_API_BASE_URL = "https://api.zotero.org"
ZOTERO_LOCAL_API_BASE_URL = "http://127.0.0.1:23119/api"

# Protocol
API_VERSION = "3"
API_VERSION_HEADER = "Zotero-API-Version"
API_KEY_HEADER = "Zotero-API-Key"
WRITE_TOKEN_HEADER = "Zotero-Write-Token"
IF_UNMODIFIED_SINCE_VERSION_HEADER = "If-Unmodified-Since-Version"
TOTAL_RESULTS_HEADER = "Total-Results"
BACKOFF_HEADER = "Backoff"
RETRY_AFTER_HEADER = "Retry-After"

# Default settings
DEFAULT_USER_AGENT = "zotloom/0.1.0"
DEFAULT_TIMEOUT: float = 30.0
MIN_REQUEST_INTERVAL: float = 1.0  # one request per second
DEFAULT_RETRY_AFTER: float = 5.0  # used when a 429 carries no Retry-After
DEFAULT_PAGE_SIZE: int = 25
MAX_PAGE_SIZE: int = 100
ITERATE_PAGE_SIZE: int = 100

# Local storage
FULLTEXT_CACHE_FILENAME = ".zotero-ft-cache"
PDF_CONTENT_TYPE = "application/pdf"
DEFAULT_BINARY_CONTENT_TYPE = "application/octet-stream"

# --- API Parameter Literals --- #

SearchMode = Literal["titleCreatorYear", "everything"]
SortField = Literal["dateModified", "dateAdded", "title", "creator", "date"]
SortDirection = Literal["asc", "desc"]
Provenance = Literal["local", "remote"]
