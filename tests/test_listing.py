import time
from datetime import datetime

import pytest

from bucket.app.services.content_types import attachment_disposition, resolve_content_type
from bucket.app.services.listing import (
    LISTING_HEAD,
    LISTING_TAIL,
    encode_href,
    format_timestamp,
    render_listing,
    render_row,
)
from bucket.app.services.storage_manager import StoredFile
from bucket.config import BucketSettings


@pytest.mark.parametrize("name, href", [
    ("report.csv", "report.csv"),
    ("a b.txt", "a%20b.txt"),
    ("café.txt", "caf%C3%A9.txt"),
    ("x&y (1).txt", "x&y%20(1).txt"),
    ("100%.txt", "100%25.txt"),
    ('say "hi"', "say%20%22hi%22"),
])
def test_encode_href(name, href):
    assert encode_href(name) == href


@pytest.mark.parametrize("name", ["what?.txt", "star*.txt", "c:d.txt"])
def test_encode_href_escapes_every_byte_for_problem_characters(name):
    href = encode_href(name)
    assert href == "".join(f"%{ord(c):02X}" for c in name)


def test_encode_href_fallback_uses_utf8_bytes():
    assert encode_href("é?") == "%C3%A9%3F"


def test_render_row():
    created = time.time()
    row = render_row(StoredFile("x&y<1>.txt", 12, created)).decode("ascii")

    assert row.startswith('<TR><TD><A HREF="/x&amp;y%3C1%3E.txt">x&amp;y&lt;1&gt;.txt</A></TD><TD>12</TD><TD>')
    assert row.endswith("</TD></TR>")

    date = row[len(row) - len("</TD></TR>") - len(format_timestamp(created)):-len("</TD></TR>")]
    assert datetime.fromisoformat(date).timestamp() == pytest.approx(created)


def test_render_row_non_ascii_name():
    row = render_row(StoredFile("café", 1, 0.0))
    assert b">caf&#233;</A>" in row
    assert b'HREF="/caf%C3%A9"' in row


@pytest.mark.asyncio
async def test_render_listing_streams_rows_in_order():
    files = [StoredFile("a.txt", 1, 0.0), StoredFile("b.txt", 2, 0.0)]
    chunks = [chunk async for chunk in render_listing(files)]

    assert chunks[0] == LISTING_HEAD
    assert chunks[-1] == LISTING_TAIL
    assert len(chunks) == 4
    assert b"a.txt" in chunks[1]
    assert b"b.txt" in chunks[2]


def test_resolve_content_type_first_match():
    settings = BucketSettings(content_types=[
        (r"\.json$", "application/json"),
        (r"json", "text/plain"),
        (r".*", "text/x-anything"),
    ])
    assert resolve_content_type("data.json", settings.content_types) == "application/json"
    assert resolve_content_type("json.txt", settings.content_types) == "text/plain"
    assert resolve_content_type("other", settings.content_types) == "text/x-anything"


def test_resolve_content_type_no_rules():
    assert resolve_content_type("data.json", ()) is None


def test_attachment_disposition():
    assert attachment_disposition("blob.bin") == 'attachment; filename="blob.bin"'
    assert attachment_disposition("résumé.pdf") == "attachment; filename*=utf-8''r%C3%A9sum%C3%A9.pdf"
    assert attachment_disposition('a"b') == "attachment; filename*=utf-8''a%22b"
