"""Shared pytest fixtures for testing."""
import zlib
from typing import Callable, List

import numpy as np
import pytest
import pytest_asyncio

from youtube_insights.config import Settings
from youtube_insights.models import CommentData, YoutubeInfo
from youtube_insights.services.video_store import VideoStore

DIMENSION = 768
IN_MEMORY_URL = "sqlite+aiosqlite:///:memory:"

TOPICS_RESPONSE = """Here are the topics:

```yaml
topics:
  - title: |
      Training neural networks
    questions:
      - |
        Why do networks need so much data?
      - |
        What is backpropagation?
  - title: |
      Overfitting
    questions:
      - |
        How can we tell a model overfits?
      - |
        Does more data always help?
```
"""

CONTENT_RESPONSE = """```yaml
rephrased_title: |
  How computers learn
questions:
  - original: |
      Why do networks need so much data?
    rephrased: |
      Why do computers need lots of examples?
    answer: |
      Like you learn a song by hearing it many times.
  - original: |
      What is backpropagation?
    rephrased: |
      How does a computer fix its mistakes?
    answer: |
      It checks its answer and nudges itself a little.
```
"""


def deterministic_vector(text: str, dimension: int = DIMENSION) -> np.ndarray:
    """Unit vector seeded by the text, identical across runs."""
    rng = np.random.default_rng(zlib.crc32(text.encode("utf-8")))
    vector = rng.standard_normal(dimension).astype(np.float32)
    return vector / np.linalg.norm(vector)


class FakeEmbeddingClient:
    """Embedding provider returning text-seeded vectors and recording batches."""

    def __init__(self, dimension: int = DIMENSION):
        self.dimension = dimension
        self.calls: List[List[str]] = []

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        return [deterministic_vector(text, self.dimension).tolist() for text in texts]


def default_responder(prompt: str) -> str:
    if "content simplifier" in prompt:
        return CONTENT_RESPONSE
    return TOPICS_RESPONSE


class FakeLLM:
    """LLM answering every prompt through ``responder``."""

    def __init__(self, responder: Callable[[str], str] = default_responder):
        self.responder = responder
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.responder(prompt)


class FakeIngestion:
    """Ingestion service serving a fixed video."""

    def __init__(self, info: YoutubeInfo):
        self.info = info
        self.calls: List[str] = []

    async def fetch_video_info(self, video_id: str) -> YoutubeInfo:
        self.calls.append(video_id)
        return self.info.model_copy(update={"video_id": video_id})


@pytest.fixture
def sample_video_id():
    """Sample YouTube video ID."""
    return "dQw4w9WgXcQ"


@pytest.fixture
def sample_comments():
    """Three top-level comments; the first one has two replies."""
    return [
        CommentData(id="c1", text_display="Great explanation of backpropagation", like_count=10, total_reply_count=2),
        CommentData(id="r1", text_display="Agreed, very clear", parent_id="c1", like_count=2),
        CommentData(id="r2", text_display="The diagrams helped", parent_id="c1", like_count=1),
        CommentData(id="c2", text_display="Overfitting part was confusing", like_count=4, total_reply_count=0),
        CommentData(id="c3", text_display="What camera do you use?", like_count=0, total_reply_count=0),
    ]


@pytest.fixture
def sample_video_info(sample_video_id, sample_comments):
    """Sample ingested video."""
    return YoutubeInfo(
        video_id=sample_video_id,
        video_title="Understanding Machine Learning",
        thumbnail_url="https://i.ytimg.com/vi/dQw4w9WgXcQ/maxresdefault.jpg",
        transcript="Today we train neural networks and talk about overfitting.",
        comments=sample_comments
    )


@pytest.fixture
def fake_embedding_client():
    return FakeEmbeddingClient()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_ingestion(sample_video_info):
    return FakeIngestion(sample_video_info)


@pytest.fixture
def test_settings(tmp_path):
    """Settings for offline runs: in-memory store, no pacing, no log files."""
    return Settings(
        openai_api_key="test-openai-key",
        youtube_api_key="test-youtube-key",
        database_url=IN_MEMORY_URL,
        embedding_pacing_seconds=0,
        output_dir=str(tmp_path / "output"),
        log_dir=None
    )


@pytest_asyncio.fixture
async def store():
    """Empty in-memory store with 768-dimensional cosine search."""
    video_store = await VideoStore.create(IN_MEMORY_URL, dimension=DIMENSION, metric="cosine")
    yield video_store
    await video_store.close()
