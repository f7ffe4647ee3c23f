"""Problem Routes — synchronous submission from the web UI and the problem list.

Invariants:
    - POST /submit runs the resolution funnel in-request, persists once, returns 201
    - GET lists newest first with the matched tool summary embedded
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from toolfinder.api.dependencies import get_catalog, get_funnel
from toolfinder.core.domain_types import ProblemStatus, problem_status_for
from toolfinder.schemas.catalog import ProblemResponse, ProblemSubmit
from toolfinder.services.catalog_gateway import SqlCatalogGateway
from toolfinder.services.resolution_funnel import ResolutionFunnel

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/problems", tags=["problems"])


@router.post("/submit", status_code=status.HTTP_201_CREATED)
async def submit_problem(
    body: ProblemSubmit,
    funnel: ResolutionFunnel = Depends(get_funnel),
    catalog: SqlCatalogGateway = Depends(get_catalog),
):
    """Match a problem against the catalog and record it."""
    outcome = await funnel.resolve(body.description)
    problem = await catalog.insert_problem(
        body.description, problem_status_for(outcome.status), outcome.matched_tool_id,
    )
    return {
        "success": True,
        "problem": ProblemResponse(**problem),
        "match": outcome.to_dict(),
    }


@router.get("")
async def list_problems(
    status_filter: ProblemStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    catalog: SqlCatalogGateway = Depends(get_catalog),
):
    problems = await catalog.list_problems(status_filter, limit)
    return {
        "success": True,
        "problems": [ProblemResponse(**p) for p in problems],
        "count": len(problems),
    }
