"""Similarity stage: match every topic and question against the comments."""

import logging
from typing import Any, Dict, List, Optional

from ..flow import Memory, Node, ParallelFlow
from ..models import EmbeddingVector
from ..services.similarity_matcher import SimilarityMatcher
from ..services.video_store import VideoStore

logger = logging.getLogger(__name__)


class SimilarityBatchFlow(ParallelFlow):
    """One branch per stored topic or question vector."""

    def __init__(
        self,
        start: Node,
        results_key: str = "topic_matches",
        top_k: int = 3,
        **kwargs
    ):
        super().__init__(start, results_key, **kwargs)
        self.top_k = top_k

    async def prepare(self, memory: Memory) -> List[EmbeddingVector]:
        store: VideoStore = memory["store"]
        vectors = await store.get_transcript_embeddings(memory["video_id"])
        logger.info(f"Searching comments for {len(vectors)} topics and questions")
        return vectors

    def branch_params(self, memory: Memory, item: Any, index: int) -> Dict[str, Any]:
        return {"vss_limit": self.top_k}


class TopicsSimilaritySearch(Node):
    """Rank the comments nearest to the branch's topic or question."""

    def __init__(self, matcher: SimilarityMatcher, name: Optional[str] = None):
        super().__init__(name)
        self.matcher = matcher

    async def prepare(self, memory: Memory) -> Dict[str, Any]:
        return {
            "video_id": memory["video_id"],
            "embedding": memory["item"],
            "k": memory.get("vss_limit")
        }

    async def execute(self, prep_res: Dict[str, Any]):
        return await self.matcher.match(prep_res["video_id"], prep_res["embedding"], k=prep_res["k"])

    async def finalize(self, memory: Memory, prep_res: Any, exec_res: Any) -> Optional[str]:
        memory.slot.set(exec_res)
        return None
