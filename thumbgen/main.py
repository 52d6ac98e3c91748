import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .agent_graph import ThumbnailOrchestrator, build_services
from .config import get_settings
from .errors import ThumbgenError
from .schemas import GenerationRequest, GenerationResponse

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

logging.basicConfig(level=get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="thumbgen")


@lru_cache
def get_orchestrator() -> ThumbnailOrchestrator:
    return ThumbnailOrchestrator(build_services(get_settings()))


def _error(status_code: int, message: str) -> JSONResponse:
    body = GenerationResponse(success=False, error=message).to_json()
    return JSONResponse(body, status_code=status_code, headers=CORS_HEADERS)


@app.exception_handler(ThumbgenError)
async def thumbgen_error_handler(_request: Request, exc: ThumbgenError):
    if exc.status_code >= 500:
        logger.error("Generation failed: %s", exc.message)
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return _error(400, message)


@app.exception_handler(Exception)
async def unexpected_error_handler(_request: Request, exc: Exception):
    # ServerErrorMiddleware re-raises and logs the traceback.
    return _error(500, str(exc) or "An unexpected error occurred")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.options("/")
@app.options("/generate-thumbnail")
def preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@app.post("/")
@app.post("/generate-thumbnail")
def generate_thumbnail(req: GenerationRequest, orchestrator: ThumbnailOrchestrator = Depends(get_orchestrator)):
    logger.info(
        "Request received: youtubeUrl=%s uploadedImageUrl=%s customPrompt=%s model=%s",
        bool(req.youtube_url), bool(req.uploaded_image_url), bool(req.custom_prompt), req.model,
    )
    data = orchestrator.run(req)
    return JSONResponse(GenerationResponse(success=True, data=data).to_json(), headers=CORS_HEADERS)
