"""YouTube ingestion service: video details, transcript and comment threads."""

import asyncio
import logging
from typing import Any, Dict, List, Optional
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from youtube_transcript_api import YouTubeTranscriptApi
from youtube_transcript_api._errors import CouldNotRetrieveTranscript

from ..config import settings
from ..models import CommentData, YoutubeInfo
from ..utils.error_handling import ConfigurationError, ExternalServiceError

logger = logging.getLogger(__name__)

THUMBNAIL_PREFERENCE = ("maxres", "standard", "high", "medium", "default")


def extract_comment_data(thread_list: Dict[str, Any]) -> List[CommentData]:
    """
    Flatten one ``commentThreads.list`` page.

    Each top-level comment is followed by its replies. Only top-level
    comments carry ``total_reply_count``.

    Args:
        thread_list: Raw API response page

    Returns:
        Comments in page order
    """
    comments = []

    for item in thread_list.get("items", []):
        snippet = item.get("snippet", {})
        top_level = snippet.get("topLevelComment", {})
        top_snippet = top_level.get("snippet", {})

        comments.append(CommentData(
            id=top_level["id"],
            text_display=top_snippet.get("textDisplay", ""),
            parent_id=top_snippet.get("parentId"),
            like_count=top_snippet.get("likeCount", 0),
            published_at=top_snippet.get("publishedAt"),
            total_reply_count=snippet.get("totalReplyCount")
        ))

        for reply in item.get("replies", {}).get("comments", []):
            reply_snippet = reply.get("snippet", {})
            comments.append(CommentData(
                id=reply["id"],
                text_display=reply_snippet.get("textDisplay", ""),
                parent_id=reply_snippet.get("parentId") or top_level["id"],
                like_count=reply_snippet.get("likeCount", 0),
                published_at=reply_snippet.get("publishedAt"),
                total_reply_count=None
            ))

    return comments


class YouTubeIngestionService:
    """
    Collects everything the pipeline needs about one video.

    Fetches:
    - Title and thumbnail from the YouTube Data API
    - Transcript text from the public caption tracks
    - Every comment thread, following page tokens to the end
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        transcript_languages: Optional[List[str]] = None
    ):
        """
        Initialize ingestion service.

        Args:
            api_key: YouTube Data API key (uses settings if not provided)
            transcript_languages: Caption languages in order of preference
        """
        self.api_key = api_key or settings.youtube_api_key
        if not self.api_key:
            raise ConfigurationError("YouTube API key is required", setting="youtube_api_key")

        self.youtube = build('youtube', 'v3', developerKey=self.api_key)
        self.transcripts = YouTubeTranscriptApi()
        self.transcript_languages = transcript_languages or settings.transcript_languages
        self.page_size = settings.comments_page_size

    async def fetch_video_info(self, video_id: str) -> YoutubeInfo:
        """
        Ingest a video.

        Args:
            video_id: YouTube video ID

        Returns:
            Video title, thumbnail, transcript and flattened comments
        """
        logger.info(f"Ingesting video {video_id}")

        details = await asyncio.to_thread(self._get_video_details, video_id)
        transcript = await asyncio.to_thread(self._get_transcript, video_id)
        comments = await asyncio.to_thread(self._get_all_comments, video_id)

        logger.info(
            f"Ingested {video_id}: {len(transcript)} transcript chars, {len(comments)} comments"
        )

        return YoutubeInfo(
            video_id=video_id,
            video_title=details["title"],
            thumbnail_url=details["thumbnail_url"],
            transcript=transcript,
            comments=comments
        )

    def _get_video_details(self, video_id: str) -> Dict[str, str]:
        try:
            response = self.youtube.videos().list(
                part='snippet,contentDetails',
                id=video_id
            ).execute()
        except HttpError as e:
            raise ExternalServiceError(f"Failed to load video details: {e}", service="youtube") from e

        items = response.get('items', [])
        if not items:
            raise ExternalServiceError(
                f"Video {video_id} not found",
                service="youtube",
                details={"video_id": video_id}
            )

        snippet = items[0].get('snippet', {})
        thumbnails = snippet.get('thumbnails', {})
        thumbnail_url = next(
            (thumbnails[size]['url'] for size in THUMBNAIL_PREFERENCE if size in thumbnails),
            ""
        )

        return {"title": snippet.get('title', ""), "thumbnail_url": thumbnail_url}

    def _get_transcript(self, video_id: str) -> str:
        try:
            fetched = self.transcripts.fetch(video_id, languages=self.transcript_languages)
        except CouldNotRetrieveTranscript as e:
            raise ExternalServiceError(
                f"No transcript available for {video_id}",
                service="youtube_transcript",
                details={"reason": type(e).__name__}
            ) from e

        return ' '.join(snippet.text.strip() for snippet in fetched if snippet.text.strip())

    def _get_all_comments(self, video_id: str) -> List[CommentData]:
        comments: List[CommentData] = []
        page_token = None
        pages = 0

        while True:
            request_args = {
                "part": "snippet,replies",
                "videoId": video_id,
                "order": "relevance",
                "textFormat": "plainText",
                "maxResults": self.page_size
            }
            if page_token:
                request_args["pageToken"] = page_token

            try:
                page = self.youtube.commentThreads().list(**request_args).execute()
            except HttpError as e:
                logger.error(f"Error retrieving comment threads for {video_id}: {e}")
                raise ExternalServiceError(f"Failed to load comments: {e}", service="youtube") from e

            comments.extend(extract_comment_data(page))
            pages += 1

            page_token = page.get('nextPageToken')
            if not page_token:
                break

        logger.debug(f"Read {len(comments)} comments from {pages} pages")
        return comments
