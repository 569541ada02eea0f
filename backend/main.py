import logging
from contextlib import asynccontextmanager
from typing import Any

from api.dependencies import get_app_settings, get_orchestrator
from api.routes import analyze, assets, export, generate
from fastapi import APIRouter
from config import AppMode, Settings, get_settings
from fastapi import Depends, FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import JSONResponse
from middleware.cache_control import CacheControlMiddleware
from schemas.common import HealthResponse
from services.orchestrator import GenerationOrchestrator
from services.storage import LocalStorage
from starlette.requests import Request

APP_VERSION = "1.0.0"

settings = get_settings()

# Logging setup
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Quiet noisy loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("google_genai").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events - startup and shutdown"""

    # === STARTUP ===
    logger.info(f"Starting Mockup Studio in {settings.APP_MODE.value} mode...")
    logger.info(f"Storage directory: {LocalStorage.get_instance().base_dir}")

    # Initialize the Gemini client (Google GenAI SDK)
    try:
        if settings.ai_configured:
            from services.gemini import GeminiClient

            GeminiClient.get_instance()
            logger.info(
                "Gemini client initialized (image=%s, fallback=%s, text=%s)",
                settings.GEMINI_IMAGE_MODEL,
                settings.GEMINI_IMAGE_FALLBACK_MODEL,
                settings.GEMINI_TEXT_MODEL,
            )
        else:
            logger.warning("No GOOGLE_API_KEY configured. Set it in .env")
    except Exception as e:
        logger.warning(f"Failed to initialize Gemini client: {e}")
        logger.warning("Analysis and generation will not be available")

    yield

    # === SHUTDOWN ===
    logger.info("Shutting down Mockup Studio...")


app = FastAPI(
    title="Mockup Studio",
    description="Turns app screenshots into photorealistic marketing mockups with SEO metadata",
    version=APP_VERSION,
    lifespan=lifespan,
    debug=(settings.APP_MODE == AppMode.DEV),
)

MAX_ERROR_STRING_CHARS = 400
MAX_ERROR_CONTAINER_ITEMS = 50
MAX_ERROR_DEPTH = 8


def _truncate_string(value: str, max_chars: int = MAX_ERROR_STRING_CHARS) -> str:
    if len(value) <= max_chars:
        return value
    return f"{value[:max_chars]}...(truncated)"


def _sanitize_for_json(value: Any, *, _depth: int = 0) -> Any:
    """
    Make sure error payloads are always UTF-8 encodable.

    RequestValidationError details can echo user-provided strings, including
    a whole settings JSON document. Unpaired surrogates would crash the JSON
    encoder and large inputs would be reflected back in full, so both are
    neutralized here.
    """
    if _depth > MAX_ERROR_DEPTH:
        return "<max depth reached>"
    if value is None:
        return None
    if isinstance(value, (int, float, bool)):
        return value
    if isinstance(value, str):
        safe = value.encode("utf-8", errors="replace").decode("utf-8", errors="replace")
        return _truncate_string(safe)
    if isinstance(value, bytes):
        return _truncate_string(value.decode("utf-8", errors="replace"))
    if isinstance(value, list):
        out = [_sanitize_for_json(v, _depth=_depth + 1) for v in value[:MAX_ERROR_CONTAINER_ITEMS]]
        if len(value) > MAX_ERROR_CONTAINER_ITEMS:
            out.append(f"... ({len(value) - MAX_ERROR_CONTAINER_ITEMS} more items truncated)")
        return out
    if isinstance(value, (tuple, set)):
        return _sanitize_for_json(list(value), _depth=_depth)
    if isinstance(value, dict):
        items = list(value.items())
        out: dict[str, Any] = {}
        for k, v in items[:MAX_ERROR_CONTAINER_ITEMS]:
            out[str(_sanitize_for_json(k, _depth=_depth + 1))] = _sanitize_for_json(v, _depth=_depth + 1)
        if len(items) > MAX_ERROR_CONTAINER_ITEMS:
            out["__truncated__"] = f"{len(items) - MAX_ERROR_CONTAINER_ITEMS} more keys truncated"
        return out
    # Validation contexts can carry exception instances
    try:
        return _sanitize_for_json(str(value), _depth=_depth + 1)
    except Exception:
        return "<unserializable>"


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    safe_errors = _sanitize_for_json(exc.errors())
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": safe_errors},
    )

# Middlewares (order matters - first added = last executed)
# 1. Cache-Control per request class for the offline cache layer
app.add_middleware(CacheControlMiddleware)

# 2. Request logging (development only)
if settings.APP_MODE == AppMode.DEV:
    from middleware.logging import RequestLoggingMiddleware, configure_request_logging
    configure_request_logging(settings.LOG_LEVEL)
    app.add_middleware(RequestLoggingMiddleware)

# 3. CORS middleware - must be last (first to process incoming requests)
allow_credentials = "*" not in settings.CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Total-Items"],
)

# Generated mockups are served straight from local storage
app.mount(
    "/storage",
    StaticFiles(directory=str(LocalStorage.get_instance().base_dir)),
    name="storage",
)

# API Routes - versioned under /api/v1/
api_v1_router = APIRouter(prefix="/api/v1")

api_v1_router.include_router(analyze.router)
api_v1_router.include_router(generate.router)
api_v1_router.include_router(assets.router)
api_v1_router.include_router(export.router)

app.include_router(api_v1_router)


@app.get("/")
async def root():
    """API landing page"""
    return {
        "name": "Mockup Studio API",
        "version": APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", response_model=HealthResponse)
async def health_check(
    app_settings: Settings = Depends(get_app_settings),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        version=APP_VERSION,
        ai_configured=app_settings.ai_configured,
        run_state=orchestrator.state.value,
    )


@app.get("/api/v1/info")
async def api_info():
    """API information endpoint."""
    return {
        "name": "Mockup Studio",
        "version": APP_VERSION,
        "api_version": "v1",
        "mode": settings.APP_MODE.value,
        "features": {
            "screenshot_analysis": True,
            "ab_testing": True,
            "seo_metadata": True,
            "bulk_export": True,
        },
        "endpoints": {
            "analyze": "/api/v1/analyze",
            "generate": "/api/v1/generate",
            "assets": "/api/v1/assets",
            "export": "/api/v1/export/zip",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=(settings.APP_MODE == AppMode.DEV),
    )
