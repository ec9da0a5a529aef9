from typing import Optional, Sequence
from urllib.parse import quote

from bucket.config import ContentTypeRule

OCTET_STREAM = "application/octet-stream"


def resolve_content_type(name: str, rules: Sequence[ContentTypeRule]) -> Optional[str]:
    """Return the type of the first rule whose pattern matches the name, if any."""
    for rule in rules:
        if rule.pattern.search(name):
            return rule.content_type
    return None


def attachment_disposition(filename: str) -> str:
    """Build a Content-Disposition value that forces a download of filename."""
    quoted = quote(filename, errors="surrogateescape")
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'
