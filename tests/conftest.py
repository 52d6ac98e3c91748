from types import SimpleNamespace

import pytest

from thumbgen.agent_graph import Services
from thumbgen.config import Settings
from thumbgen.generator import TitleGenerator
from thumbgen.store import ResultStore, ThumbnailUploader
from thumbgen.thumbnails import DalleProvider, ImagenProvider, ThumbnailGenerator
from thumbgen.youtube import YouTubeMetadataFetcher

VIDEO_ID = "dQw4w9WgXcQ"
THUMBNAIL_URL = f"https://i.ytimg.com/vi/{VIDEO_ID}/maxresdefault.jpg"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=b"", headers=None, reason="OK"):
        self.status_code = status_code
        self._payload = payload
        self.content = content
        self.headers = headers or {}
        self.reason = reason

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    """Routes GETs by URL prefix and records every call."""

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.calls = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self):
        self.closed = True

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        for prefix, response in self.routes.items():
            if url.startswith(prefix):
                return response
        return FakeResponse(404, reason="Not Found")


class FakeModels:
    def __init__(self, replies=None, images=None):
        self.replies = list(replies or [])
        self.images = images
        self.content_calls = []
        self.image_calls = []

    def generate_content(self, model, contents):
        self.content_calls.append((model, contents))
        reply = self.replies.pop(0) if self.replies else '["A", "B", "C"]'
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(text=reply)

    def generate_images(self, model, prompt, config=None):
        self.image_calls.append((model, prompt, config))
        return self.images


class FakeGenai:
    def __init__(self, replies=None, images=None):
        self.models = FakeModels(replies, images)


class FakeImages:
    def __init__(self, url="https://images.example.com/thumb.png"):
        self.url = url
        self.calls = []

    def generate(self, **kwargs):
        self.calls.append(kwargs)
        data = [SimpleNamespace(url=self.url)] if self.url else []
        return SimpleNamespace(data=data)


class FakeOpenAI:
    def __init__(self, url="https://images.example.com/thumb.png"):
        self.images = FakeImages(url)


class FakeTable:
    def __init__(self, client, name):
        self.client = client
        self.name = name

    def insert(self, row):
        self.client.inserted.append((self.name, row))
        return self

    def execute(self):
        if self.client.fail:
            raise RuntimeError("database unavailable")
        return SimpleNamespace(data=[{"id": 1, **self.client.inserted[-1][1]}])


STORAGE_URL = "https://project.supabase.co/storage/v1/object/public"


class FakeBucket:
    def __init__(self, storage, name):
        self.storage = storage
        self.name = name

    def upload(self, path, file, file_options=None):
        if self.storage.fail:
            raise RuntimeError("bucket not found")
        self.storage.uploads.append((self.name, path, file, file_options))
        return SimpleNamespace(path=path)

    def get_public_url(self, path):
        return f"{STORAGE_URL}/{self.name}/{path}"


class FakeStorage:
    def __init__(self, fail=False):
        self.fail = fail
        self.uploads = []

    def from_(self, bucket):
        return FakeBucket(self, bucket)


class FakeSupabase:
    def __init__(self, fail=False, storage_fail=False):
        self.fail = fail
        self.inserted = []
        self.storage = FakeStorage(storage_fail)

    def table(self, name):
        return FakeTable(self, name)


def youtube_payload(title="I Survived 100 Days", thumbnails=None):
    if thumbnails is None:
        thumbnails = {
            "high": {"url": f"https://i.ytimg.com/vi/{VIDEO_ID}/hqdefault.jpg"},
            "maxres": {"url": THUMBNAIL_URL},
        }
    return {"items": [{"snippet": {"title": title, "thumbnails": thumbnails}}]}


def default_routes():
    return {
        "https://www.googleapis.com/youtube/v3/videos": FakeResponse(payload=youtube_payload()),
        "https://i.ytimg.com/": FakeResponse(content=b"jpeg-bytes", headers={"Content-Type": "image/jpeg"}),
        "https://uploads.example.com/": FakeResponse(content=b"png-bytes", headers={"Content-Type": "image/png"}),
    }


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        youtube_api_key="yt-key",
        gemini_api_key="gemini-key",
        openai_api_key="openai-key",
    )


@pytest.fixture
def make_services(settings):
    """Build a Services bundle wired to fakes. Keyword arguments override parts of it."""

    def _make(session=None, genai_client=None, openai_client=None, supabase=None, **overrides):
        cfg = settings.model_copy(update=overrides)
        session = session or FakeSession(default_routes())
        genai_client = genai_client or FakeGenai()
        supabase = supabase if supabase is not None else FakeSupabase()
        services = Services(
            metadata=YouTubeMetadataFetcher(cfg.youtube_api_key, session=session),
            titles=TitleGenerator(
                genai_client,
                vision_model=cfg.vision_model_name,
                text_model=cfg.text_model_name,
                num_titles=cfg.num_titles,
                strict=cfg.strict_title_parsing,
                session=session,
            ),
            thumbnails=ThumbnailGenerator({
                "dalle": DalleProvider(openai_client or FakeOpenAI()),
                "imagen": ImagenProvider(genai_client, uploader=ThumbnailUploader(supabase, bucket=cfg.supabase_bucket)),
            }),
            store=ResultStore(supabase, table=cfg.supabase_table),
            settings=cfg,
        )
        services.session = session
        services.genai = genai_client
        return services

    return _make
