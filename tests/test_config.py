from pathlib import Path

import pytest
from pydantic import ValidationError

from conftest import make_settings
from zotloom.config import LibraryKind, ZoteroSettings


def test_defaults():
    settings = ZoteroSettings(_env_file=None)

    assert settings.api_base_url == "https://api.zotero.org"
    assert settings.library_type is LibraryKind.PERSONAL
    assert settings.min_request_interval == 1.0
    assert settings.rate_limit_retry_after_default == 5.0
    assert settings.data_dir == Path.home() / "Zotero"
    assert not settings.local


def test_settings_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("ZOTERO_API_KEY", "env-key")
    monkeypatch.setenv("ZOTERO_LIBRARY_ID", "4242")
    monkeypatch.setenv("ZOTERO_LIBRARY_TYPE", "group")
    monkeypatch.setenv("ZOTERO_DATA_DIR", str(tmp_path))

    settings = ZoteroSettings(_env_file=None)

    assert settings.api_key == "env-key"
    assert settings.library_type is LibraryKind.GROUP
    assert settings.library_prefix == "groups/4242"
    assert settings.data_dir == tmp_path


def test_local_mode_addressing():
    settings = make_settings(local=True, library_id="")

    assert settings.api_base_url == "http://127.0.0.1:23119/api"
    assert settings.effective_library_id == "0"
    assert settings.library_prefix == "users/0"


def test_local_mode_keeps_explicit_library_id():
    assert make_settings(local=True, library_id="77").library_prefix == "users/77"


def test_base_url_trailing_slash_is_stripped():
    settings = make_settings(base_url="https://zotero.example.org/")
    assert settings.api_base_url == "https://zotero.example.org"


@pytest.mark.parametrize("value", ["personal", "Personal", "user"])
def test_personal_library_type_aliases(value):
    settings = make_settings(library_type=value, library_id="42")

    assert settings.library_type is LibraryKind.PERSONAL
    assert settings.library_prefix == "users/42"


def test_invalid_library_type():
    with pytest.raises(ValidationError):
        make_settings(library_type="team")


def test_settings_are_frozen():
    settings = make_settings()
    with pytest.raises(ValidationError):
        settings.api_key = "other"
