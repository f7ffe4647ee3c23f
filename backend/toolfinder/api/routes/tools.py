"""Tool Routes — synchronous tool admission, search and admin deletion.

Invariants:
    - POST /add: 201 added; 400 invalid URL, rejected or unreachable site;
      409 duplicate (existing tool in body); 500 otherwise
    - DELETE keeps problem rows, nulling their matched_tool_id
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from toolfinder.api.dependencies import get_catalog, get_tool_extraction
from toolfinder.core.domain_types import ExtractionStatus, ToolId
from toolfinder.schemas.catalog import ToolAdd, ToolResponse
from toolfinder.services.catalog_gateway import SqlCatalogGateway
from toolfinder.services.tool_extraction import ToolExtraction

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/tools", tags=["tools"])

_STATUS_CODES = {
    ExtractionStatus.ADDED: status.HTTP_201_CREATED,
    ExtractionStatus.INVALID_URL: status.HTTP_400_BAD_REQUEST,
    ExtractionStatus.REJECTED: status.HTTP_400_BAD_REQUEST,
    ExtractionStatus.UNREACHABLE: status.HTTP_400_BAD_REQUEST,
    ExtractionStatus.DUPLICATE: status.HTTP_409_CONFLICT,
    ExtractionStatus.EXTRACTION_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@router.post("/add")
async def add_tool(
    body: ToolAdd, extraction: ToolExtraction = Depends(get_tool_extraction),
):
    result = await extraction.add_tool(body.url)
    if not result.added:
        logger.info(f"Tool not added ({result.status.value}): {body.url}")
    return JSONResponse(
        status_code=_STATUS_CODES[result.status],
        content=jsonable_encoder(result.to_dict()),
    )


@router.get("/search")
async def search_tools(
    q: str | None = Query(None),
    limit: int = Query(10, ge=1, le=100),
    catalog: SqlCatalogGateway = Depends(get_catalog),
):
    tools = await catalog.search_tools(q, limit)
    return {
        "success": True,
        "tools": [ToolResponse(**t) for t in tools],
        "count": len(tools),
    }


@router.delete("/{tool_id}")
async def delete_tool(
    tool_id: UUID, catalog: SqlCatalogGateway = Depends(get_catalog),
):
    await catalog.delete_tool(ToolId(tool_id))
    return {"success": True}
