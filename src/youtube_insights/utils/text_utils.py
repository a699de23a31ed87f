"""Text utilities for video identifiers, ids and output paths."""

import re
import secrets
import string
import unicodedata

from .error_handling import InvalidVideoIdError

VIDEO_ID_LENGTH = 11

_VIDEO_ID_PATTERN = re.compile(
    r'(?:youtu\.be/|youtube\.com/(?:shorts/|embed/|v/|watch\?v=|ytscreeningroom\?v=)'
    r'|youtube\.com/(?:.*?[?&]v=))([^"&?/\s]{11})',
    re.IGNORECASE
)
_PLAIN_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]{11}$')

ID_ALPHABET = string.ascii_letters + string.digits


def retrieve_video_id(source: str) -> str:
    """
    Extract a video ID from a YouTube URL or a bare ID.

    Args:
        source: Video URL or video ID

    Returns:
        The 11-character video ID

    Raises:
        InvalidVideoIdError: If no video ID can be found
    """
    source = (source or "").strip()

    if _PLAIN_ID_PATTERN.match(source):
        return source

    match = _VIDEO_ID_PATTERN.search(source)
    if match:
        return match.group(1)

    raise InvalidVideoIdError(source)


def make_id(length: int = VIDEO_ID_LENGTH) -> str:
    """Random alphanumeric identifier."""
    return ''.join(secrets.choice(ID_ALPHABET) for _ in range(length))


def slugify(text: str, max_length: int = 80) -> str:
    """
    Turn a video title into a safe file name stem.

    Args:
        text: Input text
        max_length: Maximum slug length

    Returns:
        Lowercase slug, ``"untitled"`` when nothing usable remains
    """
    text = unicodedata.normalize('NFKD', text or "").encode('ascii', 'ignore').decode('ascii')
    text = re.sub(r'[^\w\s-]', '', text.lower())
    text = re.sub(r'[-\s_]+', '-', text).strip('-')
    return text[:max_length].rstrip('-') or "untitled"


def truncate_text(text: str, max_length: int = 300) -> str:
    """
    Truncate text to maximum length, breaking at word boundaries.

    Args:
        text: Text to truncate
        max_length: Maximum length in characters

    Returns:
        Truncated text with ellipsis if needed
    """
    if len(text) <= max_length:
        return text

    # Find the last space before max_length
    truncated = text[:max_length].rsplit(' ', 1)[0]
    return f"{truncated}..."
