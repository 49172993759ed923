"""
Knowledge base request/response models

Defines Pydantic models for the ingest, ask and provider directory endpoints.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from ...providers.types import GenerationOptions


class IngestRequest(BaseModel):
    """Ingest an already extracted plain-text document"""
    layer: str = Field(..., description="Target tier: domain or org")
    org_id: Optional[str] = Field(None, description="Organization id (required for the org tier)")
    filename: str = Field(..., min_length=1, description="Original filename, stored as chunk source")
    text: str = Field(..., description="Document text")


class IngestedChunk(BaseModel):
    """One stored chunk"""
    id: str = Field(..., description="Chunk record id")
    part: int = Field(..., ge=1, description="1-based part number")


class IngestResponse(BaseModel):
    """Ingestion outcome"""
    layer: str = Field(..., description="Tier the chunks were stored in")
    table: str = Field(..., description="Backing table")
    stored: int = Field(default=0, description="Number of stored chunks")
    chunks: List[IngestedChunk] = Field(default_factory=list, description="Stored chunks in chunk order")
    elapsed_ms: int = Field(default=0, description="Elapsed time in milliseconds")


class AskRequest(BaseModel):
    """Question answering request"""
    question: str = Field(..., min_length=1, description="User question")
    org_id: Optional[str] = Field(None, description="Organization id; enables the org tier")
    k1: Optional[int] = Field(None, ge=0, le=50, description="Org-tier hit limit; unset uses config")
    k2: Optional[int] = Field(None, ge=0, le=50, description="Domain-tier hit limit; unset uses config")
    max_ctx: Optional[int] = Field(None, ge=0, le=100, description="Context entries kept after merge; unset uses config")
    provider: Optional[str] = Field(None, description="Generation provider key")
    model: Optional[str] = Field(None, description="Generation model override")
    llm_options: Optional[GenerationOptions] = Field(None, description="Generation option overrides")
    timeout_seconds: Optional[float] = Field(None, gt=0, le=600, description="Generation timeout override")


class AskUsage(BaseModel):
    """Provider, model and per-tier hit counts"""
    provider: str
    model: str
    org_id: Optional[str] = None
    org_hits: int = 0
    domain_hits: int = 0


class ContextEntry(BaseModel):
    """Context entry used in the prompt"""
    id: str
    source: Optional[str] = None
    distance: float = 0.0


class AskResponse(BaseModel):
    """Answer with usage, context and timings"""
    answer: str
    usage: AskUsage
    context: List[ContextEntry] = Field(default_factory=list)
    timings_ms: Dict[str, int] = Field(default_factory=dict)
    request_id: str = ""


class ProviderInfo(BaseModel):
    """Provider directory entry (no secrets)"""
    key: str
    label: str
    default_model: str
