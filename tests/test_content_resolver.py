import base64

import pytest

from docunlock.exceptions import NoContent, NotFound
from docunlock.models import Section
from docunlock.models.content_location import ExternalContent, InlineContent, ObjectStoreContent
from docunlock.services.content_resolver import resolve_content

PDF = b"%PDF-1.4\nhello\n%%EOF\n"


def _section(**fields):
    return Section(
        textbook_id=1,
        section_number=1,
        resource_id="book-001",
        title="Intro",
        price_minor_units=1000,
        **fields,
    )


def test_inline_bytes_are_decoded():
    content = resolve_content(_section(pdf_blob=base64.b64encode(PDF).decode()))

    assert isinstance(content.location, InlineContent)
    assert content.data == PDF
    assert content.mime_type == "application/pdf"
    assert content.storage_method == "d1_blob"


def test_inline_wins_over_pointer():
    content = resolve_content(_section(
        pdf_blob=base64.b64encode(PDF).decode(),
        r2_key="pdfs/book/book-001.pdf",
        r2_url="https://pub.example/pdfs/book/book-001.pdf",
        external_key="ext/book-001",
    ))
    assert content.data == PDF


def test_object_store_pointer():
    content = resolve_content(_section(
        r2_key="pdfs/book/book-001.pdf",
        r2_url="https://pub.example/pdfs/book/book-001.pdf",
        external_key="ext/book-001",
    ))

    assert isinstance(content.location, ObjectStoreContent)
    assert content.data is None
    assert content.pointer_payload() == {
        "storage_method": "r2_bucket",
        "r2_key": "pdfs/book/book-001.pdf",
        "r2_url": "https://pub.example/pdfs/book/book-001.pdf",
        "mime_type": "application/pdf",
    }


def test_external_pointer():
    content = resolve_content(_section(external_key="ext/book-001"))

    assert isinstance(content.location, ExternalContent)
    assert content.pointer_payload()["external_key"] == "ext/book-001"


def test_empty_row_has_no_content():
    with pytest.raises(NoContent):
        resolve_content(_section())


def test_missing_section():
    with pytest.raises(NotFound):
        resolve_content(None)
