"""Pre-processing nodes: ingestion, topic extraction and comment embedding."""

import logging
from typing import Any, Dict, List, Optional
import yaml

from ..flow import Memory, Node
from ..models import EmbeddingVector, PipelineMode, TopicQuestions
from ..services.embedding_service import EmbeddingBatcher
from ..services.llm_service import LLMService, parse_topics, parse_yaml_document
from ..services.video_store import VideoStore
from ..services.youtube_service import YouTubeIngestionService
from ..utils.text_utils import make_id, retrieve_video_id
from .prompts import build_topics_prompt

logger = logging.getLogger(__name__)


class ProcessYoutubeURL(Node):
    """Resolve the video id and load the video, ingesting it on first sight."""

    def __init__(self, url: str, ingestion: YouTubeIngestionService, name: Optional[str] = None):
        super().__init__(name)
        self.url = url
        self.ingestion = ingestion

    async def prepare(self, memory: Memory) -> Dict[str, Any]:
        video_id = retrieve_video_id(self.url)
        memory["video_id"] = video_id
        return {"video_id": video_id, "store": memory["store"]}

    async def execute(self, prep_res: Dict[str, Any]):
        store: VideoStore = prep_res["store"]
        video_id = prep_res["video_id"]

        if await store.video_exists(video_id):
            logger.info(f"Video {video_id} already stored, skipping ingestion")
            return await store.load_video_info(video_id)

        info = await self.ingestion.fetch_video_info(video_id)
        await store.save_video_info(info)
        return info

    async def finalize(self, memory: Memory, prep_res: Any, exec_res: Any) -> Optional[str]:
        memory["youtube_info"] = exec_res
        return None


class ExtractTopicsAndQuestions(Node):
    """
    Derive topics and questions from the transcript and store their vectors.

    Vectors are stored flattened as ``[topic1, q1.1, q1.2, topic2, ...]``;
    topic ids are random and question ids are ``"<topicId>.<questionId>"``.
    """

    def __init__(self, llm: LLMService, batcher: EmbeddingBatcher, name: Optional[str] = None):
        super().__init__(name)
        self.llm = llm
        self.batcher = batcher

    async def prepare(self, memory: Memory) -> Dict[str, Any]:
        store: VideoStore = memory["store"]
        video_id = memory["video_id"]
        return {
            "store": store,
            "video_id": video_id,
            "info": memory["youtube_info"],
            "existing": await store.count_transcript_embeddings(video_id)
        }

    async def execute(self, prep_res: Dict[str, Any]) -> List[TopicQuestions]:
        store: VideoStore = prep_res["store"]
        video_id = prep_res["video_id"]

        if prep_res["existing"]:
            logger.info("Transcript embeddings have already been generated and saved")
            return await store.get_topic_tree(video_id)

        info = prep_res["info"]
        response = await self.llm.complete(build_topics_prompt(info.video_title, info.transcript))
        topics = parse_topics(parse_yaml_document(response))

        texts: List[str] = []
        for topic in topics:
            texts.append(topic.title)
            texts.extend(topic.questions)

        embeddings = await self.batcher.embed(texts)

        vectors: List[EmbeddingVector] = []
        position = 0
        for topic in topics:
            topic_id = make_id()
            vectors.append(EmbeddingVector(
                id=topic_id,
                text=topic.title,
                vector=embeddings[position].tolist()
            ))
            position += 1

            for question in topic.questions:
                vectors.append(EmbeddingVector(
                    id=f"{topic_id}.{make_id()}",
                    parent_id=topic_id,
                    text=question,
                    vector=embeddings[position].tolist()
                ))
                position += 1

        await store.insert_transcript_embeddings(video_id, vectors)
        return topics

    async def finalize(self, memory: Memory, prep_res: Any, exec_res: Any) -> Optional[str]:
        memory["topics"] = exec_res
        logger.info(f"Working with {len(exec_res)} topics")
        return None


def comment_document(text: str, replies: List[str]) -> str:
    """YAML text embedded for one top-level comment and its replies."""
    entry: Dict[str, Any] = {"mainComment": text}
    if replies:
        entry["replies"] = replies
    return yaml.safe_dump(entry, sort_keys=False, allow_unicode=True)


class CommentsEmbedsProcessing(Node):
    """
    Embed each top-level comment together with its replies.

    Emits the run mode so the enclosing flow picks the fan-out stage.
    """

    actions = frozenset({PipelineMode.SIMILARITY.value, PipelineMode.CONTENT.value})

    def __init__(self, batcher: EmbeddingBatcher, name: Optional[str] = None):
        super().__init__(name)
        self.batcher = batcher

    async def prepare(self, memory: Memory) -> Dict[str, Any]:
        store: VideoStore = memory["store"]
        video_id = memory["video_id"]

        if await store.count_comment_embeddings(video_id):
            return {"store": store, "video_id": video_id, "documents": None}

        documents = []
        for comment in await store.get_top_level_comments(video_id):
            replies = await store.get_replies(comment.id)
            documents.append((
                comment.id,
                comment_document(comment.text_display, [reply.text_display for reply in replies])
            ))

        logger.debug(f"Prepared {len(documents)} comment documents")
        return {"store": store, "video_id": video_id, "documents": documents}

    async def execute(self, prep_res: Dict[str, Any]) -> int:
        documents = prep_res["documents"]
        if documents is None:
            logger.info("Comment embeddings have already been generated and saved")
            return 0

        embeddings = await self.batcher.embed([text for _, text in documents])
        vectors = [
            EmbeddingVector(id=comment_id, text=text, vector=embedding.tolist())
            for (comment_id, text), embedding in zip(documents, embeddings)
        ]
        await prep_res["store"].insert_comment_embeddings(prep_res["video_id"], vectors)
        return len(vectors)

    async def finalize(self, memory: Memory, prep_res: Any, exec_res: Any) -> Optional[str]:
        mode = PipelineMode(memory.get("mode", PipelineMode.SIMILARITY))
        logger.info(f"Stored {exec_res} new comment embeddings, continuing with {mode.value}")
        return mode.value
