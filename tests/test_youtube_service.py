"""Tests for YouTube ingestion."""
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from youtube_transcript_api._errors import TranscriptsDisabled

from youtube_insights.services.youtube_service import YouTubeIngestionService, extract_comment_data
from youtube_insights.utils.error_handling import ConfigurationError, ExternalServiceError


def thread(comment_id, text, replies=None, total_reply_count=0):
    item = {
        "snippet": {
            "topLevelComment": {
                "id": comment_id,
                "snippet": {"textDisplay": text, "likeCount": 3, "publishedAt": "2024-01-15T10:00:00Z"}
            },
            "totalReplyCount": total_reply_count
        }
    }
    if replies:
        item["replies"] = {"comments": [
            {
                "id": reply_id,
                "snippet": {"textDisplay": reply_text, "parentId": comment_id, "likeCount": 1}
            }
            for reply_id, reply_text in replies
        ]}
    return item


class TestExtractCommentData:
    """Test cases for flattening comment thread pages."""

    def test_top_level_then_replies(self):
        """Test that replies follow their top-level comment."""
        page = {"items": [
            thread("c1", "First", replies=[("r1", "Reply one"), ("r2", "Reply two")], total_reply_count=2),
            thread("c2", "Second"),
        ]}

        comments = extract_comment_data(page)

        assert [c.id for c in comments] == ["c1", "r1", "r2", "c2"]
        assert comments[0].parent_id is None
        assert comments[0].total_reply_count == 2
        assert comments[1].parent_id == "c1"
        assert comments[1].total_reply_count is None
        assert comments[0].published_at.year == 2024

    def test_empty_page(self):
        assert extract_comment_data({}) == []


class TestYouTubeIngestionService:
    """Test cases for YouTubeIngestionService."""

    @pytest.fixture
    def youtube_client(self):
        """Mock YouTube Data API client with two comment pages."""
        client = MagicMock()
        client.videos.return_value.list.return_value.execute.return_value = {
            "items": [{
                "snippet": {
                    "title": "Understanding Machine Learning",
                    "thumbnails": {
                        "high": {"url": "https://i.ytimg.com/high.jpg"},
                        "default": {"url": "https://i.ytimg.com/default.jpg"}
                    }
                }
            }]
        }
        client.commentThreads.return_value.list.return_value.execute.side_effect = [
            {"items": [thread("c1", "First")], "nextPageToken": "page-2"},
            {"items": [thread("c2", "Second", replies=[("r1", "Reply")], total_reply_count=1)]},
        ]
        return client

    @pytest.fixture
    def service(self, youtube_client):
        with patch('youtube_insights.services.youtube_service.build') as mock_build, \
                patch('youtube_insights.services.youtube_service.YouTubeTranscriptApi') as mock_api:
            mock_build.return_value = youtube_client
            mock_api.return_value.fetch.return_value = [
                SimpleNamespace(text="Hello and welcome"),
                SimpleNamespace(text="  "),
                SimpleNamespace(text="Machine learning basics"),
            ]
            yield YouTubeIngestionService(api_key="test_key", transcript_languages=["en"])

    def test_requires_api_key(self):
        with patch('youtube_insights.services.youtube_service.settings') as mock_settings:
            mock_settings.youtube_api_key = ""

            with pytest.raises(ConfigurationError):
                YouTubeIngestionService()

    @pytest.mark.asyncio
    async def test_fetch_video_info(self, service, youtube_client):
        """Test that every comment page is drained and the transcript joined."""
        info = await service.fetch_video_info("dQw4w9WgXcQ")

        assert info.video_title == "Understanding Machine Learning"
        assert info.thumbnail_url == "https://i.ytimg.com/high.jpg"
        assert info.transcript == "Hello and welcome Machine learning basics"
        assert [c.id for c in info.comments] == ["c1", "c2", "r1"]

        calls = youtube_client.commentThreads.return_value.list.call_args_list
        assert len(calls) == 2
        assert "pageToken" not in calls[0].kwargs
        assert calls[1].kwargs["pageToken"] == "page-2"

    @pytest.mark.asyncio
    async def test_unknown_video(self, service, youtube_client):
        youtube_client.videos.return_value.list.return_value.execute.return_value = {"items": []}

        with pytest.raises(ExternalServiceError):
            await service.fetch_video_info("dQw4w9WgXcQ")

    @pytest.mark.asyncio
    async def test_transcript_unavailable(self, service):
        service.transcripts.fetch.side_effect = TranscriptsDisabled("dQw4w9WgXcQ")

        with pytest.raises(ExternalServiceError) as exc_info:
            await service.fetch_video_info("dQw4w9WgXcQ")

        assert exc_info.value.details["reason"] == "TranscriptsDisabled"
