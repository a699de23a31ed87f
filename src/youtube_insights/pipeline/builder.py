"""Wiring of the application nodes into the run graph."""

import logging
from typing import Optional

from ..flow import DEFAULT_MAX_VISITS, PARALLEL_MAX_VISITS, Flow
from ..models import PipelineMode
from ..services.embedding_service import EmbeddingBatcher
from ..services.llm_service import LLMService
from ..services.renderer import HTMLRenderer
from ..services.similarity_matcher import SimilarityMatcher
from ..services.youtube_service import YouTubeIngestionService
from .content import ContentBatchFlow, ProcessContent
from .preprocess import CommentsEmbedsProcessing, ExtractTopicsAndQuestions, ProcessYoutubeURL
from .render import RenderSimilarityReport, RenderTopicSummary
from .similarity import SimilarityBatchFlow, TopicsSimilaritySearch

logger = logging.getLogger(__name__)


def build_pipeline(
    url: str,
    ingestion: YouTubeIngestionService,
    llm: LLMService,
    batcher: EmbeddingBatcher,
    matcher: SimilarityMatcher,
    renderer: HTMLRenderer,
    top_k: int = 3,
    max_visits: int = DEFAULT_MAX_VISITS,
    parallel_max_visits: int = PARALLEL_MAX_VISITS,
    max_concurrency: Optional[int] = None
) -> Flow:
    """
    Build the full run graph.

    ``preprocess`` (ingest, topics, comments) emits the run mode:
    ``similarity`` fans out over topic and question vectors and renders the
    match report, ``content`` fans out over topics and renders the summary.

    Args:
        url: Video URL or id
        ingestion: YouTube collaborator
        llm: Completion collaborator
        batcher: Embedding batcher
        matcher: Comment matcher bound to the run's store
        renderer: HTML renderer
        top_k: Comments per topic or question
        max_visits: Per-node visit cap of the sequential flows
        parallel_max_visits: Per-node visit cap inside each fan-out branch
        max_concurrency: Bound on concurrently running branches

    Returns:
        Top-level flow
    """
    process_url = ProcessYoutubeURL(url, ingestion)
    process_url.next(ExtractTopicsAndQuestions(llm, batcher)).next(CommentsEmbedsProcessing(batcher))
    preprocess = Flow(process_url, name="Preprocess", max_visits=max_visits)

    similarity = SimilarityBatchFlow(
        TopicsSimilaritySearch(matcher),
        top_k=top_k,
        name="SimilarityBatch",
        max_visits=parallel_max_visits,
        max_concurrency=max_concurrency
    )
    similarity.next(RenderSimilarityReport(renderer))

    content = ContentBatchFlow(
        ProcessContent(llm),
        name="ContentBatch",
        max_visits=parallel_max_visits,
        max_concurrency=max_concurrency
    )
    content.next(RenderTopicSummary(renderer))

    preprocess.on(PipelineMode.SIMILARITY.value, similarity)
    preprocess.on(PipelineMode.CONTENT.value, content)

    pipeline = Flow(preprocess, name="YoutubeInsights", max_visits=max_visits)
    logger.debug(f"Built pipeline with {len(pipeline.nodes)} stages")
    return pipeline
