import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TypedDict

import openai
import requests
from google import genai
from langgraph.graph import END, START, StateGraph

from .config import Settings
from .generator import TitleGenerator, merge_titles
from .schemas import (
    Branch,
    ByPrompt,
    ByUploadedImage,
    ByVideoUrl,
    GenerationData,
    GenerationRequest,
    plan_branches,
)
from .store import ResultStore, ThumbnailRecord, ThumbnailUploader, create_supabase_client
from .thumbnails import DalleProvider, ImagenProvider, ThumbnailGenerator
from .youtube import YouTubeMetadataFetcher

logger = logging.getLogger(__name__)


class OrchestratorState(TypedDict, total=False):
    branches: list
    youtube_url: str
    uploaded_image_url: str
    custom_prompt: str
    original_title: str
    generated_titles: list
    generated_thumbnail_url: str
    persisted: bool


@dataclass
class Services:
    metadata: YouTubeMetadataFetcher
    titles: TitleGenerator
    thumbnails: ThumbnailGenerator
    store: ResultStore
    settings: Settings


def build_services(settings: Settings) -> Services:
    session = requests.Session()
    gemini = genai.Client(api_key=settings.gemini_api_key) if settings.gemini_api_key else None
    openai_client = openai.OpenAI(api_key=settings.openai_api_key) if settings.openai_api_key else None
    supabase = create_supabase_client(settings)

    return Services(
        metadata=YouTubeMetadataFetcher(settings.youtube_api_key, session=session, timeout=settings.http_timeout),
        titles=TitleGenerator(
            gemini,
            vision_model=settings.vision_model_name,
            text_model=settings.text_model_name,
            num_titles=settings.num_titles,
            strict=settings.strict_title_parsing,
            session=session,
            timeout=settings.http_timeout,
        ),
        thumbnails=ThumbnailGenerator({
            "dalle": DalleProvider(
                openai_client,
                model=settings.dalle_model_name,
                size=settings.dalle_size,
                quality=settings.dalle_quality,
            ),
            "imagen": ImagenProvider(
                gemini,
                model=settings.imagen_model_name,
                uploader=ThumbnailUploader(supabase, bucket=settings.supabase_bucket),
            ),
        }),
        store=ResultStore(supabase, table=settings.supabase_table),
        settings=settings,
    )


def _branch(state: OrchestratorState, kind: type) -> Branch | None:
    for branch in state.get("branches", []):
        if isinstance(branch, kind):
            return branch
    return None


def _caption_video(services: Services, thumbnail_url: str, title: str) -> list[str]:
    settings = services.settings
    jobs = []
    if settings.caption_video_thumbnail:
        jobs.append((services.titles.caption_image, thumbnail_url))
    if settings.caption_video_title:
        jobs.append((services.titles.caption_text, title))
    if not jobs:
        return []
    if len(jobs) == 1:
        fn, arg = jobs[0]
        return fn(arg)

    # Both calls run to completion before either result (or error) is used.
    with ThreadPoolExecutor(max_workers=len(jobs)) as pool:
        futures = [pool.submit(fn, arg) for fn, arg in jobs]
        wait(futures)
    return merge_titles(*(f.result() for f in futures))


def build_agent_graph(services: Services):
    def video_node(state: OrchestratorState) -> OrchestratorState:
        branch = _branch(state, ByVideoUrl)
        if branch is None:
            return state
        meta = services.metadata.fetch(branch.video_id)
        state["original_title"] = meta.original_title
        titles = _caption_video(services, meta.thumbnail_url, meta.original_title)
        state["generated_titles"] = merge_titles(state.get("generated_titles", []), titles)
        return state

    def uploaded_image_node(state: OrchestratorState) -> OrchestratorState:
        branch = _branch(state, ByUploadedImage)
        if branch is None:
            return state
        titles = services.titles.caption_image(branch.url)
        state["generated_titles"] = merge_titles(state.get("generated_titles", []), titles)
        return state

    def prompt_node(state: OrchestratorState) -> OrchestratorState:
        branch = _branch(state, ByPrompt)
        if branch is None:
            return state
        thumbnail = services.thumbnails.generate(branch.prompt, branch.model)
        state["generated_thumbnail_url"] = thumbnail.url
        if services.settings.caption_generated_thumbnail:
            state["generated_titles"] = services.titles.caption_image(thumbnail.url)
        return state

    def persist_node(state: OrchestratorState) -> OrchestratorState:
        record = ThumbnailRecord(
            youtube_url=state.get("youtube_url"),
            uploaded_image_path=state.get("uploaded_image_url"),
            custom_prompt=state.get("custom_prompt"),
            original_title=state.get("original_title"),
            generated_titles=state.get("generated_titles", []),
            generated_thumbnail_url=state.get("generated_thumbnail_url"),
        )
        state["persisted"] = services.store.save(record)
        return state

    workflow = StateGraph(OrchestratorState)
    workflow.add_node("video", video_node)
    workflow.add_node("uploaded_image", uploaded_image_node)
    workflow.add_node("prompt", prompt_node)
    workflow.add_node("persist", persist_node)

    workflow.add_edge(START, "video")
    workflow.add_edge("video", "uploaded_image")
    workflow.add_edge("uploaded_image", "prompt")
    workflow.add_edge("prompt", "persist")
    workflow.add_edge("persist", END)

    return workflow.compile()


class ThumbnailOrchestrator:
    def __init__(self, services: Services):
        self.services = services
        self.graph = build_agent_graph(services)

    def run(self, req: GenerationRequest) -> GenerationData:
        branches = plan_branches(req, policy=self.services.settings.branch_policy)
        logger.info("Running branches: %s", ", ".join(type(b).__name__ for b in branches))

        initial_state: OrchestratorState = {"branches": branches}
        if req.youtube_url:
            initial_state["youtube_url"] = req.youtube_url
        if req.uploaded_image_url:
            initial_state["uploaded_image_url"] = req.uploaded_image_url
        if req.custom_prompt:
            initial_state["custom_prompt"] = req.custom_prompt

        final_state = self.graph.invoke(initial_state)

        return GenerationData(
            original_title=final_state.get("original_title"),
            generated_titles=final_state.get("generated_titles") or None,
            generated_thumbnail_url=final_state.get("generated_thumbnail_url"),
        )
