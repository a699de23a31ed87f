"""Terminal nodes writing the HTML output of a run."""

import logging
from typing import Any, Dict, Optional

from ..flow import Memory, Node
from ..services.renderer import HTMLRenderer

logger = logging.getLogger(__name__)


class _RenderNode(Node):
    """Render completed slots, save the page and record where it went."""

    results_key = ""

    def __init__(self, renderer: HTMLRenderer, name: Optional[str] = None):
        super().__init__(name)
        self.renderer = renderer

    async def prepare(self, memory: Memory) -> Dict[str, Any]:
        results = memory.get(self.results_key) or []
        completed = [result for result in results if result is not None]
        if len(completed) < len(results):
            logger.warning(f"Rendering {len(completed)} of {len(results)} results, the rest failed")

        return {
            "info": memory["youtube_info"],
            "results": completed,
            "store": memory["store"]
        }

    def render(self, info, results) -> str:
        raise NotImplementedError

    async def execute(self, prep_res: Dict[str, Any]):
        info = prep_res["info"]
        html = self.render(info, prep_res["results"])
        path = self.renderer.write(info, html)
        await prep_res["store"].save_html_summary(info.video_id, html)
        return path

    async def finalize(self, memory: Memory, prep_res: Any, exec_res: Any) -> Optional[str]:
        memory["output_path"] = exec_res
        return None


class RenderSimilarityReport(_RenderNode):
    """Render topic to comment matches, nearest first within each topic."""

    results_key = "topic_matches"

    def render(self, info, results) -> str:
        return self.renderer.render_similarity_report(info, results)


class RenderTopicSummary(_RenderNode):
    """Render the simplified topics with their answered questions."""

    results_key = "processed_topics"

    def render(self, info, results) -> str:
        return self.renderer.render_topic_summary(info, results)
