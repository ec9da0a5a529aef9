import os
from typing import AsyncIterator, Optional

from fastapi import Request
from fastapi.responses import Response, StreamingResponse
# Request.form() yields starlette UploadFile instances, not the fastapi subclass
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from bucket import config
from bucket.app.services.content_types import OCTET_STREAM, attachment_disposition, resolve_content_type
from bucket.app.services.listing import render_listing
from bucket.app.services.naming import basename, is_root, sanitize_path, upload_filename
from bucket.app.services.storage_manager import StorageManager
from bucket.config import BucketSettings
from bucket.errors import (
    AuthorizationFailure,
    LengthRequired,
    MalformedRequest,
    MethodNotSupported,
    NotFound,
)
from bucket.logger_config import setup_logger

logger = setup_logger()

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def has_form_content_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type in FORM_CONTENT_TYPES


def parse_content_length(value: str) -> int:
    """Parse a Content-Length header, raising MalformedRequest if it is not a byte count."""
    try:
        length = int(value)
    except ValueError:
        raise MalformedRequest()
    if length < 0:
        raise MalformedRequest()
    return length


async def read_upload(upload: UploadFile, chunk_size: int = config.CHUNK_SIZE) -> AsyncIterator[bytes]:
    await upload.seek(0)
    while chunk := await upload.read(chunk_size):
        yield chunk


class RequestHandler:
    """Serves the web root as a flat object store.

    One instance handles every request: authorize, sanitize the path, then
    dispatch on the method. Handled failures are raised as BucketError and
    rendered as a bare status code by the application.
    """

    def __init__(self, settings: BucketSettings, storage: StorageManager):
        self.settings = settings
        self.storage = storage

    async def handle(self, request: Request) -> Response:
        self.authorize(request.method, request.headers.get("authorization"))

        logger.info(f"{request.method} {request.url.path}")

        path = sanitize_path(request.url.path)

        if request.method == "GET":
            if is_root(path):
                return await self.list_files()
            return await self.download(path)
        if request.method == "POST":
            return await self.upload(request)
        if request.method == "PUT":
            return await self.replace(request, path)
        if request.method == "DELETE":
            return await self.delete(path)

        raise MethodNotSupported()

    def authorize(self, method: str, authorization: Optional[str]):
        accepted = self.settings.authorization
        if accepted is None:
            return

        if authorization is None or authorization not in accepted:
            logger.info(f"Unauthorized {method} request")
            raise AuthorizationFailure(self.settings.www_authenticate)

    async def list_files(self) -> Response:
        # Enumerate before the response starts so that failures surface as errors
        files = await self.storage.list_files()
        return StreamingResponse(render_listing(files), headers={"content-type": "text/html"})

    async def download(self, path: str) -> Response:
        try:
            st = await self.storage.stat_file(path)
        except FileNotFoundError as e:
            logger.info(f"File not found {e.filename}")
            raise NotFound() from e

        headers = {"content-length": str(st.st_size)}

        content_type = resolve_content_type(basename(path), self.settings.content_types)
        if content_type is None:
            content_type = OCTET_STREAM
            headers["content-disposition"] = attachment_disposition(path[1:])
        headers["content-type"] = content_type

        return StreamingResponse(self.storage.iter_file(path), headers=headers)

    async def upload(self, request: Request) -> Response:
        if not has_form_content_type(request.headers.get("content-type")):
            raise MalformedRequest()

        try:
            form = await request.form()
        except (StarletteHTTPException, MultiPartException) as e:
            logger.info(f"Unreadable form: {e}")
            raise MalformedRequest() from e

        try:
            return await self.store_form(request.method, form)
        finally:
            await form.close()

    async def store_form(self, method: str, form: FormData) -> Response:
        """Store each file part in order, stopping at the first one that fails.

        Parts stored before a failure stay stored. The response is 201 when
        any part created a file, 204 when every part replaced one.
        """
        created = False
        stored = 0

        for _, value in form.multi_items():
            if not isinstance(value, UploadFile):
                continue

            filename = upload_filename(value.filename)
            logger.info(f"{method} {filename}")

            declared = value.size if value.size is not None else 0
            if await self.storage.store(os.sep + filename, read_upload(value), declared):
                created = True
            stored += 1

        if not stored:
            raise MalformedRequest()

        return Response(status_code=201 if created else 204)

    async def replace(self, request: Request, path: str) -> Response:
        if is_root(path):
            raise MethodNotSupported()

        content_length = request.headers.get("content-length")
        if content_length is None:
            raise LengthRequired()
        length = parse_content_length(content_length)

        created = await self.storage.store(path, request.stream(), length)
        return Response(status_code=201 if created else 204)

    async def delete(self, path: str) -> Response:
        if is_root(path):
            raise MethodNotSupported()

        try:
            await self.storage.delete(path)
        except FileNotFoundError as e:
            logger.info(f"File not found {e.filename}")
            raise NotFound() from e

        return Response(status_code=204)
