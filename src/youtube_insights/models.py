"""Data models for the YouTube insights pipeline."""

from enum import Enum
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator


class PipelineMode(str, Enum):
    """Which fan-out stage runs after pre-processing."""

    SIMILARITY = "similarity"
    CONTENT = "content"


class CommentData(BaseModel):
    """A normalized top-level comment or reply."""

    id: str
    text_display: str = ""
    parent_id: Optional[str] = Field(None, description="Set for replies only")
    like_count: int = 0
    published_at: Optional[datetime] = None
    total_reply_count: Optional[int] = Field(None, description="Top-level comments only")

    @field_validator("parent_id", mode="before")
    @classmethod
    def empty_parent_is_none(cls, v):
        """Top-level comments sometimes carry an empty parent id."""
        return v or None


class YoutubeInfo(BaseModel):
    """Everything ingested for one video."""

    video_id: str
    video_title: str = ""
    thumbnail_url: str = ""
    transcript: str = ""
    comments: List[CommentData] = Field(default_factory=list)

    @property
    def youtube_url(self) -> str:
        """Full YouTube URL."""
        return f"https://www.youtube.com/watch?v={self.video_id}"


class TopicQuestions(BaseModel):
    """A transcript topic with the questions derived from it."""

    title: str
    questions: List[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("topic title cannot be empty")
        return v

    @field_validator("questions", mode="before")
    @classmethod
    def strip_questions(cls, v):
        if v is None:
            return []
        return [str(q).strip() for q in v if q is not None and str(q).strip()]


class EmbeddingVector(BaseModel):
    """A stored vector. ``parent_id`` is None for topics and top-level comments."""

    id: str
    parent_id: Optional[str] = None
    text: str
    vector: List[float]

    @property
    def is_topic(self) -> bool:
        return self.parent_id is None


class RankedComment(BaseModel):
    """One comment returned by a nearest-neighbour query."""

    comment_id: str
    text: str
    parent_id: Optional[str] = None
    like_count: int = 0
    distance: float
    replies: List[CommentData] = Field(default_factory=list)


class SimilarityMatch(BaseModel):
    """Ranked comments for one topic or question, nearest first."""

    topic_id: str
    topic_text: str
    parent_id: Optional[str] = Field(None, description="Topic id when the match is for a question")
    k: int
    ranked: List[RankedComment] = Field(default_factory=list)

    @property
    def comment_ids(self) -> List[str]:
        return [comment.comment_id for comment in self.ranked]

    @property
    def best_distance(self) -> Optional[float]:
        """Distance of the nearest comment, None when nothing matched."""
        return self.ranked[0].distance if self.ranked else None


class ProcessedQuestion(BaseModel):
    """A question rephrased and answered by the LLM."""

    original: str
    rephrased: str
    answer: str


class ProcessedTopic(BaseModel):
    """A topic rewritten for the summary page."""

    title: str
    rephrased_title: str
    questions: List[ProcessedQuestion] = Field(default_factory=list)


class AnalyzeVideoRequest(BaseModel):
    """Request to run the pipeline for a video."""

    url: str = Field(..., min_length=1, max_length=500)
    mode: PipelineMode = PipelineMode.SIMILARITY


class AnalyzeVideoResponse(BaseModel):
    """Acknowledgement for a scheduled pipeline run."""

    video_id: str
    mode: PipelineMode
    status: str = "accepted"
    requested_at: datetime = Field(default_factory=datetime.utcnow)


class VideoMatchesResponse(BaseModel):
    """Topic to comment matches computed from stored embeddings."""

    video_id: str
    video_title: str
    k: int
    matches: List[SimilarityMatch]
