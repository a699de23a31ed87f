"""Similarity matching of transcript topics and questions against comments."""

import logging
from typing import List, Optional

from ..config import settings
from ..models import EmbeddingVector, RankedComment, SimilarityMatch
from .video_store import VideoStore

logger = logging.getLogger(__name__)


class SimilarityMatcher:
    """
    Matches a topic or question vector against a video's comment vectors.

    Provides:
    - Top-K nearest comments, ascending by distance
    - Replies attached to each ranked comment by exact parent id
    - Result ranking for reports
    """

    def __init__(self, store: VideoStore, top_k: Optional[int] = None):
        """
        Initialize similarity matcher.

        Args:
            store: Store holding comment vectors and replies
            top_k: Default number of comments per match
        """
        self.store = store
        self.top_k = top_k if top_k is not None else settings.similarity_top_k

    async def match(
        self,
        video_id: str,
        embedding: EmbeddingVector,
        k: Optional[int] = None
    ) -> SimilarityMatch:
        """
        Find the comments closest to one topic or question.

        Args:
            video_id: Video whose comments are searched
            embedding: Stored topic or question vector
            k: Number of comments to return (uses ``top_k`` if not provided)

        Returns:
            At most ``k`` ranked comments, nearest first, each with its replies
        """
        k = self.top_k if k is None else k
        neighbours = await self.store.nearest_comments(video_id, embedding.vector, k)

        ranked = []
        for comment, distance in neighbours:
            replies = await self.store.get_replies(comment.id)
            ranked.append(RankedComment(
                comment_id=comment.id,
                text=comment.text_display,
                parent_id=comment.parent_id,
                like_count=comment.like_count,
                distance=distance,
                replies=replies
            ))

        logger.debug(f"Matched {embedding.id} to {len(ranked)} comments (k={k})")

        return SimilarityMatch(
            topic_id=embedding.id,
            topic_text=embedding.text,
            parent_id=embedding.parent_id,
            k=k,
            ranked=ranked
        )

    def rank_results(self, matches: List[Optional[SimilarityMatch]]) -> List[SimilarityMatch]:
        """
        Order matches by their nearest comment.

        Empty slots are dropped; matches without comments go last.
        """
        present = [match for match in matches if match is not None]
        return sorted(
            present,
            key=lambda match: (match.best_distance is None, match.best_distance or 0.0)
        )
