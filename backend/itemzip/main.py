"""Main module of the itemzip FastAPI application."""

from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from itemzip.api.v1.api import api_router
from itemzip.core.config import settings
from itemzip.core.exceptions import ItemZipError
from itemzip.core.logging import logger
from itemzip.platform.items import InMemoryItemService, ItemService
from itemzip.platform.storage import FileStorage, get_file_storages
from itemzip.schemas.item import ItemType


async def item_zip_exception_handler(request: Request, exc: ItemZipError) -> JSONResponse:
    """Map an import/export error to its status code and JSON body."""
    log = logger.with_context(path=request.url.path, error_code=exc.code)
    if exc.status_code >= 500:
        log.error(f"{type(exc).__name__}: {exc.message}", exc_info=exc)
    else:
        log.warning(f"{type(exc).__name__}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app(
    item_service: Optional[ItemService] = None,
    storages: Optional[Dict[ItemType, FileStorage]] = None,
) -> FastAPI:
    """Build the application.

    Args:
        item_service: Item store of the host (in-memory when omitted)
        storages: File storage backends (built from settings when omitted)
    """
    app = FastAPI(title=settings.PROJECT_NAME)
    app.state.item_service = item_service or InMemoryItemService()
    app.state.storages = storages if storages is not None else get_file_storages()

    app.add_exception_handler(ItemZipError, item_zip_exception_handler)
    app.include_router(api_router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8001, log_level=settings.LOG_LEVEL.lower())
