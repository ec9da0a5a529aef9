"""Validation of stored file names.

URL paths and multipart filenames are checked by two separate routines:
`sanitize_path` rejects a URL path outright, `upload_filename` first reduces
a client supplied filename to its basename and only then rejects it.
"""
import os
from typing import FrozenSet, Optional

from bucket import config
from bucket.errors import MalformedRequest, PathRejected

POSIX_RESERVED_CHARACTERS = frozenset("\0/")
WINDOWS_RESERVED_CHARACTERS = frozenset('"<>|:*?\\/\0') | frozenset(chr(c) for c in range(1, 32))

RESERVED_CHARACTERS = WINDOWS_RESERVED_CHARACTERS if os.name == "nt" else POSIX_RESERVED_CHARACTERS

# Separators recognised in client supplied names, whatever the host
PATH_SEPARATORS = (":", "/", "\\")

# Names that resolve to the web root or its parent, and the upload staging directory
RESERVED_NAMES = (".", "..", config.STAGING_DIR_NAME)


def contains_reserved(name: str, reserved: FrozenSet[str] = RESERVED_CHARACTERS) -> bool:
    return any(c in reserved for c in name)


def basename(name: str) -> str:
    """Return the text after the last ':', '/' or '\\'."""
    index = max(name.rfind(sep) for sep in PATH_SEPARATORS)
    return name[index + 1:]


def is_root(path: str, sep: str = os.sep) -> bool:
    return path == sep


def sanitize_path(raw_path: Optional[str], sep: str = os.sep,
                  reserved: FrozenSet[str] = RESERVED_CHARACTERS) -> str:
    """Translate a request path to the host separator and validate it.

    Returns either the root or the root followed by a single name. Raises
    MalformedRequest for an unrooted path and PathRejected when any character
    after the leading separator is reserved. A multi-segment path is only
    rejected when the host separator is itself reserved, which holds on
    POSIX and Windows.
    """
    path = raw_path or "/"

    if sep != "/":
        path = path.replace("/", sep)

    if not path.startswith(sep):
        raise MalformedRequest()

    if len(path) > 1:
        name = path[1:]
        if contains_reserved(name, reserved) or name in RESERVED_NAMES:
            raise PathRejected()

    return path


def upload_filename(declared: Optional[str], reserved: FrozenSet[str] = RESERVED_CHARACTERS) -> str:
    """Reduce a multipart filename to a storable name, or raise MalformedRequest."""
    name = basename(declared or "")

    if not name or name in RESERVED_NAMES or contains_reserved(name, reserved):
        raise MalformedRequest()

    return name
