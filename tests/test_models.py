import pytest
from pydantic import ValidationError

from conftest import attachment_json, item_json
from zotloom.models import (
    AttachmentDescriptor,
    Collection,
    DerivedText,
    FullText,
    Item,
    Page,
    WriteOutcome,
)


def test_item_keeps_unknown_fields():
    item = Item.model_validate(
        item_json("ABCD2345", title="T", publicationTitle="Nature", extra="x")
    )

    assert item.data.title == "T"
    assert item.data.model_extra["publicationTitle"] == "Nature"
    assert not item.data.is_attachment


def test_attachment_item():
    item = Item.model_validate(attachment_json("ATT12345", "ABCD2345"))

    assert item.data.is_attachment
    assert item.data.parentItem == "ABCD2345"
    assert item.data.contentType == "application/pdf"


def test_collection_parent_key():
    top = Collection.model_validate(
        {"key": "C1", "version": 1, "data": {"key": "C1", "name": "Top", "parentCollection": False}}
    )
    nested = Collection.model_validate(
        {"key": "C2", "version": 1, "data": {"key": "C2", "name": "Sub", "parentCollection": "C1"}}
    )

    assert top.data.parent_key is None
    assert nested.data.parent_key == "C1"


def test_write_outcome_success():
    outcome = WriteOutcome.model_validate(
        {"success": {"0": "AAAA1111", "1": "BBBB2222"}, "unchanged": {}, "failed": {}}
    )

    assert outcome.created_key == "AAAA1111"
    assert outcome.covers(2)
    assert not outcome.covers(3)
    assert outcome.failure_messages == []


def test_write_outcome_mixed():
    outcome = WriteOutcome.model_validate(
        {
            "success": {"0": "AAAA1111"},
            "unchanged": {"1": "BBBB2222"},
            "failed": {"2": {"code": 413, "message": "Item too long"}},
        }
    )

    assert outcome.covers(3)
    assert outcome.failure_messages == ["Item too long"]
    assert outcome.failed["2"].code == 413


def test_write_outcome_rejects_overlapping_indices():
    with pytest.raises(ValidationError, match="more than one map"):
        WriteOutcome.model_validate(
            {"success": {"0": "AAAA1111"}, "failed": {"0": {"code": 400, "message": "x"}}}
        )


def test_page_accepts_wire_alias():
    page = Page.model_validate(
        {"items": [1, 2], "totalResults": 10, "offset": 0, "limit": 2}
    )
    assert page.total_results == 10


def test_page_rejects_more_items_than_limit():
    with pytest.raises(ValidationError, match="limit"):
        Page(items=[1, 2, 3], total_results=3, offset=0, limit=2)


def test_derived_text_from_remote():
    full_text = FullText.model_validate(
        {"content": "abc", "indexedChars": 3, "totalChars": 3}
    )

    text = DerivedText.from_remote("ATT12345", full_text)

    assert text.source == "remote"
    assert text.indexed_chars == 3
    assert text.indexed_pages is None


def test_derived_text_rejects_unknown_source():
    with pytest.raises(ValidationError):
        DerivedText(key="ATT12345", content="abc", source="cache")


def test_attachment_descriptor_defaults():
    item = Item.model_validate(
        attachment_json(
            "ATT12345", "ABCD2345", title=None, contentType=None, linkMode=None
        )
    )

    descriptor = AttachmentDescriptor.from_item(item)

    assert descriptor.title == "att12345.pdf"
    assert descriptor.content_type == "unknown"
    assert descriptor.link_mode == "unknown"
    assert descriptor.local_path is None
