"""Failures the request handler turns into a bare status code."""
from typing import Dict, Optional

from fastapi import HTTPException


class BucketError(HTTPException):
    status_code = 500

    def __init__(self, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=self.status_code, headers=headers)


class MalformedRequest(BucketError):
    """Unrooted path, non-form POST, bad Content-Length or upload filename."""
    status_code = 400


class AuthorizationFailure(BucketError):
    status_code = 401

    def __init__(self, challenge: Optional[str] = None):
        super().__init__(headers={"WWW-Authenticate": challenge} if challenge else None)


class PathRejected(BucketError):
    """Reserved characters in the URL path."""
    status_code = 403


class NotFound(BucketError):
    status_code = 404


class MethodNotSupported(BucketError):
    status_code = 405


class LengthRequired(BucketError):
    status_code = 411


class WriteIncomplete(BucketError):
    """Bytes on disk differ from the declared length."""
    status_code = 507
