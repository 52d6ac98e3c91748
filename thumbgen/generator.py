import base64
import json
import logging
import re

import requests
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .config import require_configured
from .errors import (
    ImageFetchFailed,
    ParseError,
    TitleGenerationFailed,
    UpstreamError,
)

logger = logging.getLogger(__name__)

_QUOTED_RE = re.compile(r'"([^"]+)"')
_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;[^,]*)?;base64,(?P<data>.*)$", re.DOTALL)

DEFAULT_MIME_TYPE = "image/jpeg"


def build_title_prompt(num: int = 3, context: str | None = None) -> str:
    if context:
        source = f"Based on this video title: \"{context}\", generate {num} new viral YouTube titles."
        specifics = "- The same subject as the original title, but bigger and bolder\n"
    else:
        source = f"Based on this image, generate {num} viral YouTube titles."
        specifics = "- Specific actions and objects from the image\n"

    return (
        "You are a title writer for one of the biggest challenge channels on YouTube.\n"
        f"{source}\n"
        "Focus on:\n"
        "- High stakes or big rewards ($1M, survival challenges)\n"
        f"{specifics}"
        "- Curiosity and urgency\n"
        "- Big numbers and extremes\n"
        "- Short, punchy phrases\n"
        f"Return ONLY a JSON array of {num} strings, nothing else.\n"
        'Example format: ["I Spent $1M On This Insane Challenge!", '
        '"Last To Leave Gets $500,000!", "World\'s Most Dangerous Stunt Ever!"]'
    )


def _load_json_list(text: str) -> list | None:
    candidates = [text]
    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end != -1 and end > start:
        candidates.append(text[start:end + 1])
    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(value, list):
            return value
    return None


def parse_generated_list(raw: str, limit: int = 3, strict: bool = False) -> list[str]:
    """
    Turn a model reply into at most `limit` short strings.

    Stage one parses the reply as a JSON array, either the whole text or the
    slice between the first '[' and the last ']' (models like code fences).
    Stage two, skipped when strict, salvages double-quoted substrings, or
    failing that the first non-empty lines.
    """
    text = (raw or "").strip()

    items = _load_json_list(text)
    if items is not None:
        titles = [str(item).strip() for item in items if str(item).strip()]
        if titles:
            return titles[:limit]
        raise ParseError("Reply contained an empty list")

    if strict:
        raise ParseError("Reply is not a JSON array")

    logger.warning("Reply was not valid JSON, falling back to heuristic extraction")
    titles = [t.strip() for t in _QUOTED_RE.findall(text) if t.strip()]
    if not titles:
        titles = [line.strip() for line in text.splitlines() if line.strip()]
    if not titles:
        raise ParseError("Reply contained no usable text")
    return titles[:limit]


def merge_titles(*groups: list[str]) -> list[str]:
    merged: list[str] = []
    for group in groups:
        for title in group:
            if title not in merged:
                merged.append(title)
    return merged


def fetch_image(url: str, session: requests.Session | None = None, timeout: float | None = None) -> tuple[bytes, str]:
    """Download an image and return (bytes, mime type). data: URLs are decoded in place."""
    match = _DATA_URL_RE.match(url)
    if match:
        try:
            data = base64.b64decode(match.group("data"), validate=True)
        except ValueError as e:
            raise ImageFetchFailed("Failed to fetch image: invalid data URL") from e
        return data, match.group("mime") or DEFAULT_MIME_TYPE

    if session is None:
        with requests.Session() as own_session:
            return fetch_image(url, session=own_session, timeout=timeout)

    try:
        response = session.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise ImageFetchFailed(f"Failed to fetch image: {e.__class__.__name__}") from e
    if not response.ok:
        raise ImageFetchFailed(f"Failed to fetch image: {response.reason or response.status_code}")

    mime_type = response.headers.get("Content-Type", "").split(";")[0].strip()
    if not mime_type.startswith("image/"):
        mime_type = DEFAULT_MIME_TYPE
    return response.content, mime_type


class TitleGenerator:
    """Vision and text captioners backed by Gemini."""

    def __init__(
        self,
        client: genai.Client | None,
        vision_model: str,
        text_model: str,
        num_titles: int = 3,
        strict: bool = False,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ):
        self.client = client
        self.vision_model = vision_model
        self.text_model = text_model
        self.num_titles = num_titles
        self.strict = strict
        self.session = session
        self.timeout = timeout

    def caption_image(self, image_url: str) -> list[str]:
        logger.info("Captioning image with %s", self.vision_model)
        image, mime_type = fetch_image(image_url, session=self.session, timeout=self.timeout)
        contents = [
            types.Part.from_bytes(data=image, mime_type=mime_type),
            build_title_prompt(self.num_titles),
        ]
        return self._generate(self.vision_model, contents)

    def caption_text(self, context: str) -> list[str]:
        logger.info("Captioning text context with %s", self.text_model)
        return self._generate(self.text_model, build_title_prompt(self.num_titles, context=context))

    def _generate(self, model: str, contents) -> list[str]:
        try:
            client = require_configured(self.client, "GEMINI_API_KEY")
            response = client.models.generate_content(model=model, contents=contents)
        except genai_errors.APIError as e:
            logger.error("Gemini API error: %s", e.message)
            raise UpstreamError(f"Gemini API request failed: {e.message or 'Unknown error'}") from e

        text = (response.text or "").strip()
        if not text:
            raise TitleGenerationFailed("Invalid response format from Gemini")
        logger.debug("Gemini raw reply: %s", text)

        try:
            return parse_generated_list(text, limit=self.num_titles, strict=self.strict)
        except ParseError as e:
            raise TitleGenerationFailed(f"Failed to parse generated titles: {e}") from e
