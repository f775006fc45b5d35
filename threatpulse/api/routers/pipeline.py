"""Pipeline API router — manual trigger for one ingestion-and-correlation run."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from threatpulse.api.dependencies import get_feed_client, get_pipeline_session_factory
from threatpulse.core.config import get_settings
from threatpulse.core.limiter import limiter
from threatpulse.core.logging import get_logger
from threatpulse.pipeline.feed import NvdFeedClient
from threatpulse.pipeline.orchestrator import run_once
from threatpulse.schemas.pipeline import PipelineRunSummary, RunStage

logger = get_logger(__name__)

router = APIRouter(prefix="/pipeline", tags=["pipeline"])

FactoryDep = Annotated[async_sessionmaker[AsyncSession], Depends(get_pipeline_session_factory)]
FeedDep = Annotated[NvdFeedClient, Depends(get_feed_client)]

_FAILURE_STATUS = {
    RunStage.FETCH_FAILED: status.HTTP_502_BAD_GATEWAY,
    RunStage.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@router.post(
    "/run",
    response_model=PipelineRunSummary,
    responses={502: {"model": PipelineRunSummary}, 503: {"model": PipelineRunSummary}},
)
@limiter.limit(lambda: get_settings().pipeline_trigger_rate_limit)
async def trigger_run(
    request: Request,
    factory: FactoryDep,
    feed_client: FeedDep,
    site_id: Annotated[list[uuid.UUID] | None, Query()] = None,
) -> PipelineRunSummary | JSONResponse:
    """Run the pipeline once and return its summary.

    Failed runs still carry the summary body, with a 502 when the feed
    could not be fetched and a 503 when the store could not be read.
    """
    logger.info("Manual pipeline run requested", site_ids=[str(s) for s in site_id or []])
    summary = await run_once(site_ids=site_id, session_factory=factory, feed_client=feed_client)
    if summary.success:
        return summary
    return JSONResponse(
        status_code=_FAILURE_STATUS.get(summary.stage, status.HTTP_500_INTERNAL_SERVER_ERROR),
        content=summary.model_dump(mode="json"),
    )
