"""Public (unauthenticated) export endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from itemzip.api import deps
from itemzip.api.v1.endpoints.archives import archive_response
from itemzip.core.logging import ContextualLogger
from itemzip.core.zip_service import zip_service
from itemzip.platform.archive.builder import ContentRetriever
from itemzip.platform.items import ItemService

router = APIRouter()


@router.get("/zip-export/{item_id}")
async def export_public_zip(
    item_id: str,
    item_service: ItemService = Depends(deps.get_item_service),
    retriever: ContentRetriever = Depends(deps.get_content_retriever),
    logger: ContextualLogger = Depends(deps.get_logger),
) -> StreamingResponse:
    """Download a publicly visible item as a zip archive.

    Items that exist but are not public answer 404, like missing ones.
    """
    archive = await zip_service.export_item(
        item_id, item_service, retriever, logger.with_context(public=True), public=True
    )
    return archive_response(archive)
