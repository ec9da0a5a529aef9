"""HTML index of the web root."""
import html
from datetime import datetime
from typing import AsyncIterator, Iterable
from urllib.parse import quote

from bucket.app.services.storage_manager import StoredFile

LISTING_HEAD = (
    b'<!DOCTYPE HTML PUBLIC "-//IETF//DTD HTML//EN"><HTML><HEAD><TITLE>bucket</TITLE></HEAD>'
    b'<BODY><TABLE><TR><TH>name</TH><TH>length</TH><TH>date</TH></TR>'
)
LISTING_TAIL = b'</TABLE></BODY></HTML>'

# Punctuation left alone when path-encoding a name
HREF_SAFE = "!$&'()*+,;=:@?"

# Characters that force a full percent-escape of the href
PROBLEM_HREF_CHARACTERS = ("?", "*", ":")


def encode_href(name: str) -> str:
    href = quote(name, safe=HREF_SAFE, errors="surrogateescape")
    if any(c in href for c in PROBLEM_HREF_CHARACTERS):
        href = "".join(f"%{b:02X}" for b in name.encode("utf-8", "surrogateescape"))
    return href


def format_timestamp(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp).astimezone().isoformat()


def render_row(file: StoredFile) -> bytes:
    href = html.escape(encode_href(file.name))
    name = html.escape(file.name)
    row = (
        f'<TR><TD><A HREF="/{href}">{name}</A></TD>'
        f'<TD>{file.length}</TD><TD>{format_timestamp(file.created)}</TD></TR>'
    )
    return row.encode("ascii", "xmlcharrefreplace")


async def render_listing(files: Iterable[StoredFile]) -> AsyncIterator[bytes]:
    """Yield the listing document one table row at a time."""
    yield LISTING_HEAD
    for file in files:
        yield render_row(file)
    yield LISTING_TAIL
