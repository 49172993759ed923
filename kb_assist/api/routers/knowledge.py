"""
Knowledge API Router

Provides ingestion, question answering and provider directory endpoints.
"""
from fastapi import APIRouter, HTTPException, Depends
from typing import List
import asyncio
import logging

from ..models.rag import (
    AskRequest,
    AskResponse,
    IngestRequest,
    IngestResponse,
    ProviderInfo,
)
from ..dependencies import (
    get_generation_service,
    get_ingest_service,
    get_rag_service,
    get_vector_store,
)
from ..services.generation_service import GenerationService
from ..services.ingest_service import IngestService
from ..services.rag_service import RagService
from ..services.vector_store_service import VectorStoreService
from ...errors import KbAssistError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["knowledge"])


@router.get("/health")
async def health_check(store: VectorStoreService = Depends(get_vector_store)):
    """Health check endpoint (vector store reachable)."""
    reachable = await asyncio.to_thread(store.ping)
    if not reachable:
        raise HTTPException(status_code=503, detail="Vector store unreachable")
    return {"status": "ok"}


@router.get("/providers", response_model=List[ProviderInfo])
async def list_providers(service: GenerationService = Depends(get_generation_service)):
    """List supported generation providers"""
    return service.list_providers()


@router.post("/ingest", response_model=IngestResponse)
async def ingest_document(
    data: IngestRequest,
    service: IngestService = Depends(get_ingest_service),
):
    """Chunk, embed and store one document"""
    try:
        result = await service.ingest(data.layer, data.org_id, data.filename, data.text)
        return result.to_dict()
    except KbAssistError:
        raise
    except Exception as e:
        logger.error(f"Failed to ingest {data.filename}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/ask", response_model=AskResponse)
async def ask_question(
    data: AskRequest,
    service: RagService = Depends(get_rag_service),
):
    """Answer a question from the knowledge base"""
    try:
        result = await service.ask(
            data.question,
            org_id=data.org_id,
            k1=data.k1,
            k2=data.k2,
            max_ctx=data.max_ctx,
            provider=data.provider,
            model=data.model,
            options=data.llm_options,
            timeout=data.timeout_seconds,
        )
        return result.to_dict()
    except KbAssistError:
        raise
    except Exception as e:
        logger.error(f"Failed to answer question: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))
