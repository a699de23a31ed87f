"""HTML rendering of topic summaries and similarity reports."""

import logging
from pathlib import Path
from typing import List, Optional

from jinja2 import DictLoader, Environment

from ..config import settings
from ..models import ProcessedTopic, SimilarityMatch, YoutubeInfo
from ..utils.text_utils import slugify

logger = logging.getLogger(__name__)

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>{{ video_title }}</title>
    <style>
        body { background-color: #f7fafc; font-family: sans-serif; margin: 0; padding: 1rem; }
        main { max-width: 48rem; margin: 0 auto; background: #fff; border-radius: 1rem; padding: 1.5rem; }
        h1, h2, h3 { font-weight: 700; margin-bottom: 0.5rem; }
        ul { list-style-type: disc; margin-left: 1.5rem; margin-bottom: 1.5rem; }
        li { margin-bottom: 1rem; }
        img { max-width: 100%; border-radius: 0.75rem; margin-bottom: 1.5rem; }
        .meta { color: #718096; font-size: 0.85rem; }
        .replies { margin-top: 0.5rem; }
    </style>
</head>
<body>
<main>
    <a href="{{ video_url }}"><h1>{{ video_title }}</h1></a>
    {% if thumbnail_url %}
    <img src="{{ thumbnail_url }}" alt="{{ video_title }}" />
    {% endif %}
{% block content %}{% endblock %}
</main>
</body>
</html>
"""

TOPIC_SUMMARY_TEMPLATE = """{% extends "page.html" %}
{% block content %}
{% for topic in topics %}
    <h2>{{ topic.rephrased_title or topic.title }}</h2>
    <ul>
    {% for question in topic.questions %}
        <li><strong title="{{ question.original }}">{{ question.rephrased }}</strong><br />
        <div>{{ question.answer }}</div></li>
    {% endfor %}
    </ul>
{% endfor %}
{% endblock %}
"""

SIMILARITY_REPORT_TEMPLATE = """{% extends "page.html" %}
{% block content %}
{% for match in matches %}
    {% set heading = "h2" if match.parent_id is none else "h3" %}
    <{{ heading }}>{{ match.topic_text }}</{{ heading }}>
    {% if match.ranked %}
    <ul>
    {% for comment in match.ranked %}
        <li>{{ comment.text }} <span class="meta">(distance {{ "%.4f"|format(comment.distance) }}, {{ comment.like_count }} likes)</span>
        {% if comment.replies %}
            <ul class="replies">
            {% for reply in comment.replies %}
                <li>{{ reply.text_display }} <span class="meta">({{ reply.like_count }} likes)</span></li>
            {% endfor %}
            </ul>
        {% endif %}
        </li>
    {% endfor %}
    </ul>
    {% else %}
    <p class="meta">No matching comments.</p>
    {% endif %}
{% endfor %}
{% endblock %}
"""

TEMPLATES = {
    "page.html": PAGE_TEMPLATE,
    "topic_summary.html": TOPIC_SUMMARY_TEMPLATE,
    "similarity_report.html": SIMILARITY_REPORT_TEMPLATE,
}


class HTMLRenderer:
    """
    Renders pipeline results as standalone HTML pages.

    Templates are autoescaped, so text coming from the video, its comments or
    the LLM never reaches the page as markup.
    """

    def __init__(self, output_dir: Optional[str] = None):
        self.output_dir = Path(output_dir or settings.output_dir)
        self.env = Environment(
            loader=DictLoader(TEMPLATES),
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True
        )

    def render_topic_summary(self, info: YoutubeInfo, topics: List[ProcessedTopic]) -> str:
        """
        Render rephrased topics with their question and answer bullets.

        Args:
            info: Ingested video
            topics: Processed topics, in display order

        Returns:
            HTML document
        """
        return self._render("topic_summary.html", info, topics=topics)

    def render_similarity_report(self, info: YoutubeInfo, matches: List[SimilarityMatch]) -> str:
        """
        Render each topic or question with the comments closest to it.

        Args:
            info: Ingested video
            matches: One match per topic or question

        Returns:
            HTML document
        """
        return self._render("similarity_report.html", info, matches=matches)

    def write(self, info: YoutubeInfo, html: str) -> Path:
        """
        Save a rendered page as ``<output_dir>/<slug of title>.html``.

        Returns:
            Path of the written file
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{slugify(info.video_title or info.video_id)}.html"
        path.write_text(html, encoding="utf-8")

        logger.info(f"Wrote {path}")
        return path

    def _render(self, template_name: str, info: YoutubeInfo, **context) -> str:
        template = self.env.get_template(template_name)
        return template.render(
            video_title=info.video_title or info.video_id,
            video_url=info.youtube_url,
            thumbnail_url=info.thumbnail_url,
            **context
        )
