"""Database tables for videos, comments and their embeddings."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text, Index

from .database import Base, VectorType


class Video(Base):
    """Ingested YouTube video."""

    __tablename__ = "videos"

    id = Column(String(32), primary_key=True)
    title = Column(String(500), nullable=True)
    thumbnail_url = Column(String(500), nullable=True)
    html_summary = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Video {self.id}: {self.title}>"


class Transcript(Base):
    """Full transcript text of a video."""

    __tablename__ = "transcripts"

    video_id = Column(String(32), ForeignKey("videos.id", ondelete="CASCADE"), primary_key=True)
    original = Column(Text, nullable=False)


class Comment(Base):
    """Top-level comment or reply."""

    __tablename__ = "comments"

    id = Column(String(100), primary_key=True)
    video_id = Column(String(32), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)
    text_display = Column(Text, nullable=True)
    parent_id = Column(String(100), nullable=True, index=True)  # NULL for top-level comments
    like_count = Column(Integer, default=0, nullable=False)
    published_at = Column(DateTime, nullable=True)
    total_reply_count = Column(Integer, nullable=True)
    position = Column(Integer, nullable=False, default=0)  # ingestion order

    def __repr__(self):
        return f"<Comment {self.id} parent={self.parent_id}>"


class TranscriptEmbedding(Base):
    """Topic (parent_id NULL) or question embedding derived from a transcript."""

    __tablename__ = "transcript_embeddings"

    id = Column(String(32), primary_key=True)  # topic id or "<topicId>.<questionId>"
    video_id = Column(String(32), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    parent_id = Column(String(32), nullable=True)
    text = Column(Text, nullable=False)
    embedding = Column(VectorType, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_transcript_embeddings_video_position', 'video_id', 'position'),
    )


class CommentEmbedding(Base):
    """Embedding of a top-level comment together with its replies."""

    __tablename__ = "comment_embeddings"

    comment_id = Column(String(100), ForeignKey("comments.id", ondelete="CASCADE"), primary_key=True)
    video_id = Column(String(32), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    embedding = Column(VectorType, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
