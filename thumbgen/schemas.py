import logging
from dataclasses import dataclass
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidInput
from .youtube import extract_video_id

logger = logging.getLogger(__name__)

ModelName = Literal["dalle", "imagen"]


class GenerationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    youtube_url: str | None = Field(None, alias="youtubeUrl")
    uploaded_image_url: str | None = Field(None, alias="uploadedImageUrl")
    custom_prompt: str | None = Field(None, alias="customPrompt")
    model: ModelName = "dalle"

    @field_validator("youtube_url", "uploaded_image_url", "custom_prompt")
    @classmethod
    def blank_is_absent(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("model", mode="before")
    @classmethod
    def default_model(cls, v):
        return v or "dalle"


@dataclass(frozen=True)
class ByVideoUrl:
    url: str
    video_id: str


@dataclass(frozen=True)
class ByUploadedImage:
    url: str


@dataclass(frozen=True)
class ByPrompt:
    prompt: str
    model: ModelName = "dalle"


Branch = Union[ByVideoUrl, ByUploadedImage, ByPrompt]


def plan_branches(req: GenerationRequest, policy: str = "exclusive") -> list[Branch]:
    """
    Turn the optional request fields into the branches to run.

    With the "exclusive" policy a YouTube URL takes precedence and an uploaded
    image is ignored. With "combine" both are captioned and their titles merged.
    A custom prompt always runs alongside either of them.
    """
    branches: list[Branch] = []

    if req.youtube_url:
        video_id = extract_video_id(req.youtube_url)
        if not video_id:
            raise InvalidInput("Invalid YouTube URL")
        branches.append(ByVideoUrl(url=req.youtube_url, video_id=video_id))

    if req.uploaded_image_url:
        if branches and policy == "exclusive":
            logger.info("Ignoring uploaded image, YouTube URL takes precedence")
        else:
            branches.append(ByUploadedImage(url=req.uploaded_image_url))

    if req.custom_prompt:
        branches.append(ByPrompt(prompt=req.custom_prompt, model=req.model))

    if not branches:
        raise InvalidInput("No YouTube URL, image URL or custom prompt provided")
    return branches


class GenerationData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    original_title: str | None = Field(None, alias="originalTitle")
    generated_titles: list[str] | None = Field(None, alias="generatedTitles")
    generated_thumbnail_url: str | None = Field(None, alias="generatedThumbnailUrl")


class GenerationResponse(BaseModel):
    success: bool
    data: GenerationData | None = None
    error: str | None = None

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
