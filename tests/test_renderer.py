"""Tests for HTML rendering."""
from youtube_insights.models import (
    CommentData,
    ProcessedQuestion,
    ProcessedTopic,
    RankedComment,
    SimilarityMatch
)
from youtube_insights.services.renderer import HTMLRenderer


class TestHTMLRenderer:
    """Test cases for HTMLRenderer."""

    def test_topic_summary(self, tmp_path, sample_video_info):
        renderer = HTMLRenderer(str(tmp_path))
        topics = [ProcessedTopic(
            title="Overfitting",
            rephrased_title="When computers memorise <too much>",
            questions=[ProcessedQuestion(original="Why?", rephrased="Why does it happen?", answer="Because & so.")]
        )]

        html = renderer.render_topic_summary(sample_video_info, topics)

        assert "Understanding Machine Learning" in html
        assert "When computers memorise &lt;too much&gt;" in html
        assert "Because &amp; so." in html
        assert sample_video_info.thumbnail_url in html
        assert "https://www.youtube.com/watch?v=dQw4w9WgXcQ" in html

    def test_similarity_report(self, tmp_path, sample_video_info):
        """Test that ranked comments and their replies are listed."""
        renderer = HTMLRenderer(str(tmp_path))
        matches = [
            SimilarityMatch(
                topic_id="T1",
                topic_text="Backpropagation",
                k=3,
                ranked=[RankedComment(
                    comment_id="c1",
                    text="Great explanation",
                    like_count=10,
                    distance=0.1234,
                    replies=[CommentData(id="r1", text_display="Agreed <3", parent_id="c1")]
                )]
            ),
            SimilarityMatch(topic_id="T1.Q1", topic_text="Why?", parent_id="T1", k=3),
        ]

        html = renderer.render_similarity_report(sample_video_info, matches)

        assert "<h2>Backpropagation</h2>" in html
        assert "<h3>Why?</h3>" in html
        assert "distance 0.1234" in html
        assert "Agreed &lt;3" in html
        assert "No matching comments." in html

    def test_write(self, tmp_path, sample_video_info):
        renderer = HTMLRenderer(str(tmp_path / "out"))

        path = renderer.write(sample_video_info, "<html></html>")

        assert path == tmp_path / "out" / "understanding-machine-learning.html"
        assert path.read_text(encoding="utf-8") == "<html></html>"

    def test_markup_in_comments_is_escaped(self, tmp_path, sample_video_info):
        """Test that comment text cannot inject markup into the page."""
        renderer = HTMLRenderer(str(tmp_path))
        matches = [SimilarityMatch(
            topic_id="T1",
            topic_text="<b>Topic</b>",
            k=1,
            ranked=[RankedComment(comment_id="c1", text="<script>alert(1)</script>", distance=0.5)]
        )]

        html = renderer.render_similarity_report(sample_video_info, matches)

        assert "<script>" not in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
        assert "<h2>&lt;b&gt;Topic&lt;/b&gt;</h2>" in html
