from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Union

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import Response

from bucket import config
from bucket.app.services.request_handler import RequestHandler
from bucket.app.services.storage_manager import StorageManager
from bucket.config import BucketSettings, load_settings
from bucket.errors import BucketError
from bucket.logger_config import setup_logger

# Logger setup
logger = setup_logger()

# Every path goes to the handler, which answers 405 itself for methods it does not serve
CATCH_ALL = "/{path:path}"
ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "TRACE"]


async def bucket_error_handler(request: Request, exc: BucketError) -> Response:
    """Render a handled failure as its status code and headers, without a body."""
    return Response(status_code=exc.status_code, headers=exc.headers)


def create_app(
    settings: Optional[BucketSettings] = None,
    web_root: Union[str, Path, None] = None,
    temp_dir: Union[str, Path, None] = None,
) -> FastAPI:
    """Build the application around a single RequestHandler.

    Args:
        settings: The Bucket section. Read from config.SETTINGS_FILE if omitted.
        web_root: Directory served as the object namespace. Defaults to config.WEB_ROOT.
        temp_dir: Staging directory for uploads. Defaults to config.TEMP_DIR, or a
            hidden directory inside the web root when that is unset.
    """
    if settings is None:
        settings = load_settings(config.SETTINGS_FILE)

    web_root = Path(web_root if web_root is not None else config.WEB_ROOT).absolute()
    if temp_dir is None:
        temp_dir = config.TEMP_DIR or web_root / config.STAGING_DIR_NAME

    storage_manager = StorageManager(web_root, Path(temp_dir).absolute())
    request_handler = RequestHandler(settings, storage_manager)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await storage_manager.initialize()
        yield

    # The documentation routes would shadow stored files of the same name
    app = FastAPI(title="Bucket", lifespan=lifespan, openapi_url=None, docs_url=None, redoc_url=None)
    app.state.storage_manager = storage_manager
    app.state.request_handler = request_handler

    app.add_exception_handler(BucketError, bucket_error_handler)
    app.add_route(CATCH_ALL, request_handler.handle, methods=ROUTED_METHODS, include_in_schema=False)

    return app


def run():
    logger.info("Starting Bucket server...")
    logger.info(f"Web root: {config.WEB_ROOT}")
    logger.info(f"Temporary directory: {config.TEMP_DIR or config.STAGING_DIR_NAME + ' in the web root'}")
    logger.info(f"Settings file: {config.SETTINGS_FILE}")
    uvicorn.run(create_app(), host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
