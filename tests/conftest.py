"""Shared fixtures for the zotloom test suite."""

import httpx
import pytest
import pytest_asyncio

from zotloom.client import ZoteroClient
from zotloom.config import LibraryKind, ZoteroSettings


class FakeClock:
    """Deterministic clock whose ``sleep`` advances time instead of waiting."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(**overrides) -> ZoteroSettings:
    values = {
        "api_key": "test-key",
        "library_id": "123456",
        "library_type": LibraryKind.PERSONAL,
    }
    values.update(overrides)
    return ZoteroSettings(_env_file=None, **values)


def item_json(key: str, **data) -> dict:
    """Builds a Zotero item object as returned by the API."""
    payload = {"key": key, "version": 1, "itemType": "journalArticle"}
    payload.update(data)
    return {
        "key": key,
        "version": payload["version"],
        "library": {"type": "user", "id": 123456, "name": "test"},
        "data": payload,
    }


def attachment_json(key: str, parent: str, **data) -> dict:
    values = {
        "itemType": "attachment",
        "parentItem": parent,
        "linkMode": "imported_file",
        "contentType": "application/pdf",
        "filename": f"{key.lower()}.pdf",
        "title": "Full Text PDF",
    }
    values.update(data)
    return item_json(key, **values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> ZoteroSettings:
    return make_settings()


@pytest_asyncio.fixture
async def client(settings, clock):
    """A client with an injected httpx client (mocked by pytest-httpx)."""
    async with httpx.AsyncClient() as http_client:
        yield ZoteroClient(
            settings, http_client=http_client, clock=clock, sleep=clock.sleep
        )
