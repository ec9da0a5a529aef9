"""Configuration settings for the Bucket server."""
import json
import os
import re
from pathlib import Path
from typing import NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Directory paths
WEB_ROOT = os.getenv("BUCKET_WEB_ROOT", "./wwwroot")
# Uploads are staged under WEB_ROOT/STAGING_DIR_NAME unless BUCKET_TEMP_DIR is set,
# which must then share a filesystem with WEB_ROOT
TEMP_DIR = os.getenv("BUCKET_TEMP_DIR") or None
STAGING_DIR_NAME = ".bucket-tmp"
LOG_DIR = os.getenv("BUCKET_LOG_DIR", "logs")

# Settings file and the section read from it
SETTINGS_FILE = os.getenv("BUCKET_SETTINGS", "./appsettings.json")
SETTINGS_SECTION = "Bucket"

# Listener
HOST = os.getenv("BUCKET_HOST", "0.0.0.0")
PORT = int(os.getenv("BUCKET_PORT", "8000"))

# Streaming
CHUNK_SIZE = 64 * 1024  # 64KB


class ContentTypeRule(NamedTuple):
    pattern: re.Pattern
    content_type: str


class BucketSettings(BaseModel):
    """The `Bucket` section of the settings file.

    `authorization` of None disables the Authorization check entirely, an
    empty tuple rejects every request. `content_types` keeps the order of the
    settings file because the first matching pattern wins.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    authorization: Optional[Tuple[str, ...]] = Field(default=None, alias="Authorization")
    www_authenticate: Optional[str] = Field(default=None, alias="WWW-Authenticate")
    content_types: Tuple[ContentTypeRule, ...] = Field(default=(), alias="Content-Type")

    @field_validator("authorization", mode="before")
    @classmethod
    def single_authorization(cls, v):
        if isinstance(v, str):
            return (v,)
        return v

    @field_validator("content_types", mode="before")
    @classmethod
    def compile_content_types(cls, v):
        if v is None:
            return ()
        pairs = v.items() if isinstance(v, dict) else v
        rules = []
        for pattern, content_type in pairs:
            # null values are skipped rather than mapped
            if content_type is None:
                continue
            if isinstance(pattern, str):
                try:
                    pattern = re.compile(pattern)
                except re.error as e:
                    raise ValueError(f"Invalid content type pattern {pattern!r}: {e}")
            rules.append((pattern, content_type))
        return rules


def load_settings(path: Union[str, Path, None] = None) -> BucketSettings:
    """Read the Bucket section from a JSON settings file.

    A missing file yields the defaults: no authorization and no content type rules.
    """
    settings_path = Path(path if path is not None else SETTINGS_FILE)
    if not settings_path.exists():
        return BucketSettings()

    with open(settings_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    section = data.get(SETTINGS_SECTION) or {}
    return BucketSettings.model_validate(section)
