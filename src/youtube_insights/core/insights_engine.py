"""Main YouTube insights engine."""

import logging
from typing import Optional, Union

from ..config import Settings, settings as default_settings
from ..flow import Memory
from ..models import PipelineMode
from ..pipeline import build_pipeline
from ..services.embedding_service import EmbeddingBatcher, EmbeddingClient, OpenAIEmbeddingClient
from ..services.llm_service import LLMService
from ..services.renderer import HTMLRenderer
from ..services.similarity_matcher import SimilarityMatcher
from ..services.video_store import VideoStore
from ..services.youtube_service import YouTubeIngestionService
from ..utils.error_handling import NodeExecutionError, log_error

logger = logging.getLogger(__name__)


class InsightsEngine:
    """
    Runs the insights pipeline for one video at a time.

    Orchestrates:
    1. Ingestion of video details, transcript and comments
    2. Topic and question extraction with embeddings
    3. Comment embeddings
    4. Either topic to comment similarity search or simplified content
    5. HTML rendering
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        ingestion: Optional[YouTubeIngestionService] = None,
        llm: Optional[LLMService] = None,
        embedding_client: Optional[EmbeddingClient] = None,
        renderer: Optional[HTMLRenderer] = None,
        store: Optional[VideoStore] = None
    ):
        """
        Initialize the insights engine.

        Collaborators that are not given are built from ``settings``.

        Args:
            settings: Application settings
            ingestion: YouTube ingestion service
            llm: LLM completion service
            embedding_client: Embedding provider
            renderer: HTML renderer
            store: Open store to use instead of opening one per run (left open)
        """
        logger.info("Initializing YouTube Insights Engine")

        self.settings = settings or default_settings

        self.ingestion = ingestion or YouTubeIngestionService(
            api_key=self.settings.youtube_api_key,
            transcript_languages=self.settings.transcript_languages
        )
        self.llm = llm or LLMService(
            api_key=self.settings.openai_api_key,
            model=self.settings.llm_model
        )
        self.batcher = EmbeddingBatcher(
            embedding_client or OpenAIEmbeddingClient(
                api_key=self.settings.openai_api_key,
                model=self.settings.embedding_model,
                dimensions=self.settings.embedding_dimension
            ),
            batch_size=self.settings.embedding_batch_size,
            pacing_seconds=self.settings.embedding_pacing_seconds,
            max_attempts=self.settings.embedding_max_attempts
        )
        self.renderer = renderer or HTMLRenderer(self.settings.output_dir)
        self.store = store

    async def run(self, url: str, mode: Union[PipelineMode, str] = PipelineMode.SIMILARITY) -> Memory:
        """
        Run the pipeline for one video.

        Args:
            url: Video URL or id
            mode: Stage run after pre-processing

        Returns:
            Final memory of the run (``video_id``, ``topics``, results and ``output_path``)
        """
        mode = PipelineMode(mode)
        logger.info(f"Starting {mode.value} run for {url}")

        store = self.store or await VideoStore.create(
            self.settings.database_url,
            dimension=self.settings.embedding_dimension,
            metric=self.settings.similarity_metric
        )

        try:
            pipeline = build_pipeline(
                url,
                ingestion=self.ingestion,
                llm=self.llm,
                batcher=self.batcher,
                matcher=SimilarityMatcher(store, top_k=self.settings.similarity_top_k),
                renderer=self.renderer,
                top_k=self.settings.similarity_top_k,
                max_visits=self.settings.flow_max_visits,
                parallel_max_visits=self.settings.parallel_max_visits,
                max_concurrency=self.settings.parallel_max_concurrency
            )

            memory = Memory({"store": store, "mode": mode})
            await pipeline.run(memory)

            logger.info(f"Finished {mode.value} run, output at {memory.get('output_path')}")
            return memory

        except Exception as e:
            if not isinstance(e, NodeExecutionError):
                log_error(e, context="InsightsEngine.run", extra={"url": url, "mode": mode.value})
            raise

        finally:
            if store is not self.store:
                await store.close()
