import logging
import re
from dataclasses import dataclass

import requests

from .config import require_configured
from .errors import UpstreamError, VideoNotFound

logger = logging.getLogger(__name__)

YOUTUBE_VIDEOS_LIST = "https://www.googleapis.com/youtube/v3/videos"

_VIDEO_ID_RE = re.compile(
    r"(?:youtube(?:-nocookie)?\.com/(?:watch\?(?:[^#\s]*&)?v=|embed/|v/|shorts/)|youtu\.be/)"
    r"([A-Za-z0-9_-]+)"
)

THUMBNAIL_PREFERENCE = ("maxres", "high", "standard", "medium", "default")


def extract_video_id(url: str) -> str | None:
    """
    Pull the 11-character video ID out of a shared YouTube URL.
    Returns None when nothing matches or the matched segment has the wrong length.
    """
    match = _VIDEO_ID_RE.search(url or "")
    if not match:
        return None
    video_id = match.group(1)
    return video_id if len(video_id) == 11 else None


@dataclass
class VideoMetadata:
    original_title: str
    thumbnail_url: str


def pick_thumbnail_url(thumbnails: dict) -> str | None:
    for size in THUMBNAIL_PREFERENCE:
        url = (thumbnails.get(size) or {}).get("url")
        if url:
            return url
    return None


def _api_error_message(response: requests.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return response.reason or f"HTTP {response.status_code}"


class YouTubeMetadataFetcher:
    def __init__(self, api_key: str | None, session: requests.Session, timeout: float | None = None):
        self.api_key = api_key
        self.session = session
        self.timeout = timeout

    def fetch(self, video_id: str) -> VideoMetadata:
        logger.info("Fetching YouTube metadata for %s", video_id)
        api_key = require_configured(self.api_key, "YOUTUBE_API_KEY")
        params = {"part": "snippet", "id": video_id, "key": api_key}
        try:
            response = self.session.get(YOUTUBE_VIDEOS_LIST, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"YouTube API request failed: {e.__class__.__name__}") from e

        if not response.ok:
            message = _api_error_message(response)
            logger.error("YouTube API error for %s: %s", video_id, message)
            raise UpstreamError(f"YouTube API request failed: {message}")

        items = response.json().get("items") or []
        if not items:
            raise VideoNotFound("Video not found")

        snippet = items[0].get("snippet") or {}
        thumbnail_url = pick_thumbnail_url(snippet.get("thumbnails") or {})
        if not thumbnail_url:
            raise UpstreamError("Video has no thumbnail")

        return VideoMetadata(
            original_title=snippet.get("title", ""),
            thumbnail_url=thumbnail_url,
        )
