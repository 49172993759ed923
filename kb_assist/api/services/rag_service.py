"""
RAG Service

Answers a question from the knowledge base: query embedding, parallel
tier search, merge, prompt rendering and watchdog-guarded generation.
"""
import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...errors import ValidationError
from ...providers import GenerationOptions
from .context_assembly_service import merge_tier_results
from .embedding_service import EmbeddingService
from .generation_service import GenerationService
from .prompt_service import render_prompt
from .rag_config_service import RagConfig
from .step_watchdog import with_deadline
from .vector_store_service import SearchResult, VectorStoreService

logger = logging.getLogger(__name__)


@dataclass
class AskResult:
    """Answer plus the context and usage that produced it"""
    answer: str
    provider: str
    model: str
    org_id: Optional[str]
    org_hits: int
    domain_hits: int
    context: List[SearchResult] = field(default_factory=list)
    timings_ms: Dict[str, int] = field(default_factory=dict)
    request_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "usage": {
                "provider": self.provider,
                "model": self.model,
                "org_id": self.org_id,
                "org_hits": self.org_hits,
                "domain_hits": self.domain_hits,
            },
            "context": [
                {"id": item.id, "source": item.source, "distance": item.distance}
                for item in self.context
            ],
            "timings_ms": dict(self.timings_ms),
            "request_id": self.request_id,
        }


class RagService:
    """Question answering over the two-tier knowledge base"""

    def __init__(
        self,
        vector_store: VectorStoreService,
        embedding_service: EmbeddingService,
        generation_service: GenerationService,
        config: Optional[RagConfig] = None,
    ):
        self.vector_store = vector_store
        self.embedding_service = embedding_service
        self.generation_service = generation_service
        self.config = config or RagConfig()

    async def _search_tiers(
        self,
        query_vector: List[float],
        org_id: Optional[str],
        k1: int,
        k2: int,
        request_id: str,
        timings: Dict[str, int],
    ):
        search_timeout = self.config.timeouts.search_seconds

        async def _no_org_hits() -> List[SearchResult]:
            return []

        if org_id:
            org_search = with_deadline(
                "search_org",
                search_timeout,
                lambda: asyncio.to_thread(self.vector_store.search_org, org_id, query_vector, k1),
                request_id=request_id,
                timings=timings,
            )
        else:
            org_search = _no_org_hits()

        domain_search = with_deadline(
            "search_domain",
            search_timeout,
            lambda: asyncio.to_thread(self.vector_store.search_domain, query_vector, k2),
            request_id=request_id,
            timings=timings,
        )
        return await asyncio.gather(org_search, domain_search)

    async def ask(
        self,
        question: str,
        *,
        org_id: Optional[str] = None,
        k1: Optional[int] = None,
        k2: Optional[int] = None,
        max_ctx: Optional[int] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
        timeout: Optional[float] = None,
    ) -> AskResult:
        """
        Answer a question from retrieved context.

        Args:
            question: User question
            org_id: Enables the org tier for this organization
            k1: Org-tier hit limit (default from config)
            k2: Domain-tier hit limit (default from config)
            max_ctx: Context entries kept after merge (default from config)
            provider: Generation provider key (default from settings)
            model: Generation model (default from settings or provider)
            options: Generation option overrides
            timeout: Generation deadline override in seconds

        Returns:
            AskResult

        Raises:
            ValidationError: Empty question
            UnsupportedProvider: Unknown provider, before any network call
            KbAssistError: Stage-labeled failure of embed, search, prompt or generate
        """
        question = (question or "").strip()
        if not question:
            raise ValidationError("Question is empty")

        retrieval = self.config.retrieval
        timeouts = self.config.timeouts
        k1 = retrieval.org_top_k if k1 is None else k1
        k2 = retrieval.domain_top_k if k2 is None else k2
        max_ctx = retrieval.max_context if max_ctx is None else max_ctx
        org_id = (org_id or "").strip() or None
        generate_timeout = timeout or timeouts.generate_seconds
        margin = timeouts.watchdog_margin_seconds

        definition = self.generation_service.resolve_provider(provider)
        model_id = self.generation_service.resolve_model(definition, model)

        request_id = uuid.uuid4().hex[:8]
        timings: Dict[str, int] = {}
        started = time.perf_counter()
        logger.info(f"[{request_id}] ask: {question[:120]!r} org={org_id} provider={definition.kind.value}")

        query_vector = await with_deadline(
            "embed",
            timeouts.embed_seconds + margin,
            lambda: self.embedding_service.embed(question, timeout=timeouts.embed_seconds),
            request_id=request_id,
            timings=timings,
        )

        org_hits, domain_hits = await self._search_tiers(
            query_vector, org_id, k1, k2, request_id, timings
        )
        context = merge_tier_results(org_hits, domain_hits, max_ctx)

        prompt = await with_deadline(
            "build_prompt",
            timeouts.prompt_seconds,
            lambda: render_prompt(context, question),
            request_id=request_id,
            timings=timings,
        )

        response = await with_deadline(
            "generate",
            generate_timeout + margin,
            lambda: self.generation_service.generate(
                definition.kind, model_id, prompt, options, generate_timeout
            ),
            request_id=request_id,
            timings=timings,
        )

        timings["total"] = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"[{request_id}] done in {timings['total']}ms: "
            f"org_hits={len(org_hits)} domain_hits={len(domain_hits)} context={len(context)}"
        )
        return AskResult(
            answer=response.content,
            provider=definition.kind.value,
            model=model_id,
            org_id=org_id,
            org_hits=len(org_hits),
            domain_hits=len(domain_hits),
            context=context,
            timings_ms=timings,
            request_id=request_id,
        )
