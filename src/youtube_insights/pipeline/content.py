"""Content stage: rephrase each topic and answer its questions."""

import logging
from typing import Any, Dict, List, Optional

from ..flow import Memory, Node, ParallelFlow
from ..models import ProcessedTopic, TopicQuestions
from ..services.llm_service import LLMService, parse_processed_topic, parse_yaml_document
from ..services.video_store import VideoStore
from ..utils.text_utils import truncate_text
from .prompts import build_content_prompt

logger = logging.getLogger(__name__)

# Characters of transcript quoted in each content prompt
TRANSCRIPT_EXCERPT_CHARS = 12_000


class ContentBatchFlow(ParallelFlow):
    """One branch per topic of the stored topic tree."""

    def __init__(self, start: Node, results_key: str = "processed_topics", **kwargs):
        super().__init__(start, results_key, **kwargs)

    async def prepare(self, memory: Memory) -> List[TopicQuestions]:
        store: VideoStore = memory["store"]
        topics = await store.get_topic_tree(memory["video_id"])
        logger.info(f"Processing content for {len(topics)} topics")
        return topics


class ProcessContent(Node):
    """Ask the LLM for a simpler title, rephrased questions and short answers."""

    def __init__(self, llm: LLMService, name: Optional[str] = None):
        super().__init__(name)
        self.llm = llm

    async def prepare(self, memory: Memory) -> Dict[str, Any]:
        topic: TopicQuestions = memory["item"]
        info = memory["youtube_info"]
        return {
            "topic": topic,
            "prompt": build_content_prompt(
                info.video_title,
                topic.title,
                topic.questions,
                truncate_text(info.transcript, TRANSCRIPT_EXCERPT_CHARS)
            )
        }

    async def execute(self, prep_res: Dict[str, Any]) -> ProcessedTopic:
        response = await self.llm.complete(prep_res["prompt"])
        return parse_processed_topic(parse_yaml_document(response), prep_res["topic"])

    async def finalize(self, memory: Memory, prep_res: Any, exec_res: Any) -> Optional[str]:
        memory.slot.set(exec_res)
        return None
