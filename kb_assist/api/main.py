"""FastAPI application entry point."""

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables before importing runtime config/services.
load_dotenv()

from .config import settings
from .logging_config import setup_logging

setup_logging(settings.log_dir, settings.log_level)

import logging

from ..errors import (
    IngestionError,
    KbAssistError,
    StorageError,
    UnsupportedProvider,
    UpstreamError,
    UpstreamTimeout,
    ValidationError,
)
from .routers import knowledge

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Knowledge Base Assistant API",
    description="Retrieval-augmented question answering over a two-tier knowledge base",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(knowledge.router)

logger.info("=" * 80)
logger.info("FastAPI Application Started")
logger.info("CORS Origins: %s", settings.cors_origins)
logger.info("Vector DB: %s", settings.vector_db_path)
logger.info("=" * 80)


def status_code_for(error: KbAssistError) -> int:
    """HTTP status for a pipeline error."""
    if isinstance(error, IngestionError):
        return 500
    if isinstance(error, (ValidationError, UnsupportedProvider)):
        return 400
    if isinstance(error, UpstreamTimeout):
        return 504
    if isinstance(error, UpstreamError):
        return 502
    if isinstance(error, StorageError):
        return 503
    return 500


@app.exception_handler(KbAssistError)
async def kb_assist_error_handler(request: Request, exc: KbAssistError):
    """Single error message with the failing stage; no partial answer."""
    body = {"error": exc.message, "stage": exc.stage}
    if isinstance(exc, IngestionError):
        body["stored"] = exc.stored
        body["total"] = exc.total
    status_code = status_code_for(exc)
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, status_code, exc)
    return JSONResponse(status_code=status_code, content=body)


@app.on_event("startup")
async def startup_event():
    """Initialize config files and the vector store on startup."""
    logger.info("=== Application startup initialization ===")

    from .dependencies import get_rag_config_service, get_vector_store

    rag_cfg = get_rag_config_service()
    logger.info("RAG config ready: %s", rag_cfg.config_path)

    try:
        store = get_vector_store()
        logger.info("SQLite vector storage ready: %s", store.db_path)
    except StorageError as e:
        logger.warning("Failed to initialize vector storage: %s", e)


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Knowledge Base Assistant API",
        "docs": "/docs",
        "health": "/api/health",
    }
