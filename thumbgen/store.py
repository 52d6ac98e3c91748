import base64
import logging
import uuid
from dataclasses import asdict, dataclass, field

from supabase import Client, create_client

from .config import Settings
from .errors import PersistenceError, UpstreamError

logger = logging.getLogger(__name__)

_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}


@dataclass
class ThumbnailRecord:
    youtube_url: str | None = None
    uploaded_image_path: str | None = None
    custom_prompt: str | None = None
    original_title: str | None = None
    generated_titles: list[str] = field(default_factory=list)
    generated_thumbnail_url: str | None = None

    def to_row(self) -> dict:
        """Column values for the insert. id and created_at are filled in by the database."""
        row = {k: v for k, v in asdict(self).items() if v is not None}
        if not self.generated_titles:
            row.pop("generated_titles", None)
        return row


class ResultStore:
    def __init__(self, client: Client | None, table: str = "thumbnails"):
        self.client = client
        self.table = table

    def insert(self, record: ThumbnailRecord) -> dict:
        try:
            result = self.client.table(self.table).insert(record.to_row()).execute()
        except Exception as e:
            raise PersistenceError(f"Insert into {self.table} failed: {e}") from e
        rows = getattr(result, "data", None) or []
        return rows[0] if rows else {}

    def save(self, record: ThumbnailRecord) -> bool:
        """Best-effort insert. Failures are logged and reported as False."""
        if self.client is None:
            logger.info("Supabase not configured, skipping insert into %s", self.table)
            return False
        try:
            self.insert(record)
        except PersistenceError:
            logger.exception("Failed to store thumbnail record")
            return False
        return True


class ThumbnailUploader:
    """Puts generated image bytes in a storage bucket and hands back the public URL."""

    def __init__(self, client: Client | None, bucket: str = "thumbnails", prefix: str = "generated"):
        self.client = client
        self.bucket = bucket
        self.prefix = prefix

    def upload(self, data: bytes, mime_type: str = "image/png") -> str:
        if self.client is None:
            # No storage configured: the image travels inline.
            logger.info("Supabase not configured, returning generated image as a data URL")
            return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"

        extension = _EXTENSIONS.get(mime_type, "png")
        path = f"{self.prefix}/{uuid.uuid4().hex}.{extension}"
        bucket = self.client.storage.from_(self.bucket)
        try:
            bucket.upload(path, data, {"content-type": mime_type})
        except Exception as e:
            logger.error("Upload of %s to bucket %s failed: %s", path, self.bucket, e)
            raise UpstreamError(f"Thumbnail upload failed: {e}") from e
        return bucket.get_public_url(path)


def create_supabase_client(settings: Settings) -> Client | None:
    if settings.supabase_url and settings.supabase_service_key:
        return create_client(settings.supabase_url, settings.supabase_service_key)
    return None
