"""API routes for video analysis and stored matches."""

import logging
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status

from ...config import settings
from ...core.insights_engine import InsightsEngine
from ...models import (
    AnalyzeVideoRequest,
    AnalyzeVideoResponse,
    PipelineMode,
    VideoMatchesResponse
)
from ...services.similarity_matcher import SimilarityMatcher
from ...services.video_store import VideoStore
from ...utils.error_handling import log_error
from ...utils.text_utils import retrieve_video_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/videos", tags=["videos"])


def get_store(request: Request) -> VideoStore:
    return request.app.state.store


def get_engine(request: Request) -> InsightsEngine:
    """Engine sharing the application's store, built on first use."""
    if request.app.state.engine is None:
        logger.info("Initializing YouTube Insights Engine")
        request.app.state.engine = InsightsEngine(store=request.app.state.store)
    return request.app.state.engine


async def run_analysis(engine: InsightsEngine, url: str, mode: PipelineMode) -> None:
    """Background run; failures are logged since nobody awaits the result."""
    try:
        await engine.run(url, mode)
    except Exception as e:
        log_error(e, context="run_analysis", extra={"url": url, "mode": mode.value})


@router.post(
    "/analyze",
    response_model=AnalyzeVideoResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Schedule a pipeline run for a video"
)
async def analyze_video(
    request: AnalyzeVideoRequest,
    background_tasks: BackgroundTasks,
    engine: InsightsEngine = Depends(get_engine)
):
    """
    Validate the video URL and run the pipeline in the background.

    Args:
        request: Video URL and run mode

    Returns:
        The resolved video id and the accepted mode

    Raises:
        InvalidVideoIdError: If the URL holds no video id (400)
    """
    video_id = retrieve_video_id(request.url)
    logger.info(f"Scheduling {request.mode.value} run for {video_id}")

    background_tasks.add_task(run_analysis, engine, request.url, request.mode)

    return AnalyzeVideoResponse(video_id=video_id, mode=request.mode)


@router.get(
    "/{video_id}/matches",
    response_model=VideoMatchesResponse,
    summary="Topic to comment matches of a processed video"
)
async def get_video_matches(
    video_id: str,
    k: Optional[int] = Query(None, ge=1, le=50, description="Comments per topic or question"),
    store: VideoStore = Depends(get_store)
):
    """
    Compute matches from stored embeddings, best match first.

    No provider is called: the video must have been processed before.
    """
    info = await store.load_video_info(video_id)
    if info is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Video {video_id} not found"
        )

    top_k = k or settings.similarity_top_k
    matcher = SimilarityMatcher(store, top_k=top_k)

    matches = [
        await matcher.match(video_id, embedding)
        for embedding in await store.get_transcript_embeddings(video_id)
    ]

    return VideoMatchesResponse(
        video_id=video_id,
        video_title=info.video_title,
        k=top_k,
        matches=matcher.rank_results(matches)
    )
