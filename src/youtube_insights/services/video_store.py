"""Persistent store for videos, comments and vectors, with FAISS search."""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple
import faiss
import numpy as np
from sqlalchemy import func, select

from ..config import settings
from ..database import Base, create_engine_and_sessionmaker
from ..models import CommentData, EmbeddingVector, TopicQuestions, YoutubeInfo
from ..tables import Comment, CommentEmbedding, Transcript, TranscriptEmbedding, Video
from ..utils.error_handling import ValidationError

logger = logging.getLogger(__name__)


class VideoStore:
    """
    Keyed storage of ingested videos and their embeddings.

    Provides:
    - Upserts into the video, transcript and comment tables
    - Topic/question and comment embedding tables keyed by id
    - Parent/child lookups by exact ``parent_id``
    - Distance-ordered top-K retrieval of comment vectors

    Every call takes the same lock: the SQLite driver does not support
    concurrent sessions, and fan-out branches share this handle.
    """

    def __init__(self, engine, session_factory, dimension: int = 768, metric: str = "cosine"):
        """
        Initialize store. Use ``VideoStore.create`` to also create the tables.

        Args:
            engine: Async SQLAlchemy engine
            session_factory: Session factory bound to ``engine``
            dimension: Vector size enforced on every write
            metric: Distance metric (cosine or euclidean)
        """
        if metric not in ("cosine", "euclidean"):
            raise ValueError("metric must be 'cosine' or 'euclidean'")

        self.engine = engine
        self.session_factory = session_factory
        self.dimension = dimension
        self.metric = metric
        self._lock = asyncio.Lock()
        self._comment_indexes: Dict[str, Tuple[faiss.Index, List[str]]] = {}

    @classmethod
    async def create(
        cls,
        database_url: Optional[str] = None,
        dimension: Optional[int] = None,
        metric: Optional[str] = None
    ) -> "VideoStore":
        """Open the database and create missing tables."""
        engine, session_factory = create_engine_and_sessionmaker(database_url or settings.database_url)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        store = cls(
            engine,
            session_factory,
            dimension=dimension or settings.embedding_dimension,
            metric=metric or settings.similarity_metric
        )
        logger.info(f"Opened video store ({store.metric}, dim={store.dimension})")
        return store

    async def close(self) -> None:
        await self.engine.dispose()
        self._comment_indexes.clear()

    # Videos, transcripts and comments

    async def video_exists(self, video_id: str) -> bool:
        async with self._lock, self.session_factory() as session:
            return await session.get(Video, video_id) is not None

    async def save_video_info(self, info: YoutubeInfo) -> None:
        """Upsert the video row, its transcript and all its comments."""
        async with self._lock, self.session_factory() as session:
            await session.merge(Video(
                id=info.video_id,
                title=info.video_title,
                thumbnail_url=info.thumbnail_url
            ))
            await session.merge(Transcript(video_id=info.video_id, original=info.transcript))

            for position, comment in enumerate(info.comments):
                await session.merge(Comment(
                    id=comment.id,
                    video_id=info.video_id,
                    text_display=comment.text_display,
                    parent_id=comment.parent_id,
                    like_count=comment.like_count,
                    published_at=comment.published_at,
                    total_reply_count=comment.total_reply_count,
                    position=position
                ))

            await session.commit()

        logger.debug(f"Saved video {info.video_id} with {len(info.comments)} comments")

    async def load_video_info(self, video_id: str) -> Optional[YoutubeInfo]:
        """Rebuild the ingested record of a stored video."""
        async with self._lock, self.session_factory() as session:
            video = await session.get(Video, video_id)
            if video is None:
                return None

            transcript = await session.get(Transcript, video_id)
            result = await session.execute(
                select(Comment)
                .where(Comment.video_id == video_id)
                .order_by(Comment.position)
            )
            comments = [self._to_comment_data(row) for row in result.scalars()]

        return YoutubeInfo(
            video_id=video.id,
            video_title=video.title or "",
            thumbnail_url=video.thumbnail_url or "",
            transcript=transcript.original if transcript else "",
            comments=comments
        )

    async def get_top_level_comments(self, video_id: str) -> List[CommentData]:
        async with self._lock, self.session_factory() as session:
            result = await session.execute(
                select(Comment)
                .where(Comment.video_id == video_id, Comment.parent_id.is_(None))
                .order_by(Comment.position)
            )
            return [self._to_comment_data(row) for row in result.scalars()]

    async def get_replies(self, comment_id: str) -> List[CommentData]:
        """Comments whose ``parent_id`` equals ``comment_id``, in ingestion order."""
        async with self._lock, self.session_factory() as session:
            result = await session.execute(
                select(Comment)
                .where(Comment.parent_id == comment_id)
                .order_by(Comment.position)
            )
            return [self._to_comment_data(row) for row in result.scalars()]

    async def save_html_summary(self, video_id: str, html: str) -> None:
        async with self._lock, self.session_factory() as session:
            video = await session.get(Video, video_id)
            if video is None:
                raise ValidationError(f"Unknown video {video_id}", field="video_id")
            video.html_summary = html
            await session.commit()

    # Transcript embeddings

    async def count_transcript_embeddings(self, video_id: str) -> int:
        async with self._lock, self.session_factory() as session:
            result = await session.execute(
                select(func.count()).select_from(TranscriptEmbedding)
                .where(TranscriptEmbedding.video_id == video_id)
            )
            return result.scalar_one()

    async def insert_transcript_embeddings(self, video_id: str, vectors: Sequence[EmbeddingVector]) -> None:
        """Store topic and question vectors, keeping their order."""
        rows = [
            TranscriptEmbedding(
                id=vector.id,
                video_id=video_id,
                parent_id=vector.parent_id,
                text=vector.text,
                embedding=self._check_dimension(vector.vector, vector.id),
                position=position
            )
            for position, vector in enumerate(vectors)
        ]

        async with self._lock, self.session_factory() as session:
            session.add_all(rows)
            await session.commit()

        logger.info(f"Inserted {len(rows)} transcript embeddings for {video_id}")

    async def get_transcript_embeddings(self, video_id: str) -> List[EmbeddingVector]:
        async with self._lock, self.session_factory() as session:
            result = await session.execute(
                select(TranscriptEmbedding)
                .where(TranscriptEmbedding.video_id == video_id)
                .order_by(TranscriptEmbedding.position)
            )
            return [
                EmbeddingVector(
                    id=row.id,
                    parent_id=row.parent_id,
                    text=row.text,
                    vector=row.embedding.tolist()
                )
                for row in result.scalars()
            ]

    async def get_topic_tree(self, video_id: str) -> List[TopicQuestions]:
        """Topics in stored order, each with the questions parented to it."""
        vectors = await self.get_transcript_embeddings(video_id)

        topics: Dict[str, TopicQuestions] = {}
        for vector in vectors:
            if vector.is_topic:
                topics[vector.id] = TopicQuestions(title=vector.text, questions=[])

        for vector in vectors:
            if not vector.is_topic and vector.parent_id in topics:
                topics[vector.parent_id].questions.append(vector.text)

        return list(topics.values())

    # Comment embeddings

    async def count_comment_embeddings(self, video_id: str) -> int:
        async with self._lock, self.session_factory() as session:
            result = await session.execute(
                select(func.count()).select_from(CommentEmbedding)
                .where(CommentEmbedding.video_id == video_id)
            )
            return result.scalar_one()

    async def insert_comment_embeddings(self, video_id: str, vectors: Sequence[EmbeddingVector]) -> None:
        """Store one vector per top-level comment, keyed by comment id."""
        rows = [
            CommentEmbedding(
                comment_id=vector.id,
                video_id=video_id,
                text=vector.text,
                embedding=self._check_dimension(vector.vector, vector.id),
                position=position
            )
            for position, vector in enumerate(vectors)
        ]

        async with self._lock, self.session_factory() as session:
            session.add_all(rows)
            await session.commit()
            self._comment_indexes.pop(video_id, None)

        logger.info(f"Inserted {len(rows)} comment embeddings for {video_id}")

    async def nearest_comments(
        self,
        video_id: str,
        vector: Sequence[float],
        k: int
    ) -> List[Tuple[CommentData, float]]:
        """
        Find the ``k`` stored comment vectors nearest to ``vector``.

        Args:
            video_id: Video whose comments are searched
            vector: Query vector
            k: Maximum number of results

        Returns:
            ``(comment, distance)`` pairs, nearest first
        """
        if k <= 0:
            return []

        query = self._check_dimension(vector, "query").reshape(1, -1).copy()

        async with self._lock:
            index, comment_ids = await self._get_comment_index(video_id)
            if index.ntotal == 0:
                return []

            if self.metric == "cosine":
                faiss.normalize_L2(query)

            scores, positions = index.search(query, min(k, index.ntotal))

            neighbours: List[Tuple[str, float]] = []
            for score, position in zip(scores[0], positions[0]):
                if position == -1:  # No more results
                    break
                if self.metric == "cosine":
                    distance = 1.0 - float(score)
                else:
                    distance = float(np.sqrt(max(float(score), 0.0)))
                neighbours.append((comment_ids[position], distance))

            async with self.session_factory() as session:
                result = await session.execute(
                    select(Comment).where(Comment.id.in_([comment_id for comment_id, _ in neighbours]))
                )
                comments = {row.id: self._to_comment_data(row) for row in result.scalars()}

        return [
            (comments[comment_id], distance)
            for comment_id, distance in neighbours
            if comment_id in comments
        ]

    async def _get_comment_index(self, video_id: str) -> Tuple[faiss.Index, List[str]]:
        # Caller holds the lock
        cached = self._comment_indexes.get(video_id)
        if cached is not None:
            return cached

        async with self.session_factory() as session:
            result = await session.execute(
                select(CommentEmbedding.comment_id, CommentEmbedding.embedding)
                .where(CommentEmbedding.video_id == video_id)
                .order_by(CommentEmbedding.position)
            )
            rows = result.all()

        if self.metric == "cosine":
            index = faiss.IndexFlatIP(self.dimension)
        else:
            index = faiss.IndexFlatL2(self.dimension)

        comment_ids = [row.comment_id for row in rows]
        if rows:
            matrix = np.ascontiguousarray(np.vstack([row.embedding for row in rows]), dtype=np.float32)
            if self.metric == "cosine":
                faiss.normalize_L2(matrix)
            index.add(matrix)

        self._comment_indexes[video_id] = (index, comment_ids)
        logger.debug(f"Built comment index for {video_id} with {index.ntotal} vectors")
        return index, comment_ids

    def _check_dimension(self, vector: Sequence[float], label: str) -> np.ndarray:
        array = np.asarray(vector, dtype=np.float32)
        if array.ndim != 1 or array.shape[0] != self.dimension:
            raise ValidationError(
                f"Vector {label} has shape {array.shape}, expected ({self.dimension},)",
                field="vector"
            )
        return array

    @staticmethod
    def _to_comment_data(row: Comment) -> CommentData:
        return CommentData(
            id=row.id,
            text_display=row.text_display or "",
            parent_id=row.parent_id,
            like_count=row.like_count or 0,
            published_at=row.published_at,
            total_reply_count=row.total_reply_count
        )
