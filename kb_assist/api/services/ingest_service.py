"""
Ingest Service

Splits a document into chunks, embeds every chunk under a concurrency cap
and upserts the results into the selected tier.
"""
import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

from ...errors import IngestionError, MissingOrgId, ValidationError
from .bounded_executor import map_limit
from .chunking_service import chunk_text
from .embedding_service import EmbeddingService
from .rag_config_service import RagConfig
from .vector_store_service import Tier, VectorStoreService

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 10


@dataclass
class IngestResult:
    """Outcome of one document ingestion"""
    tier: Tier
    table: str
    stored: int
    chunks: List[Tuple[str, int]] = field(default_factory=list)
    elapsed_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layer": self.tier.value,
            "table": self.table,
            "stored": self.stored,
            "chunks": [{"id": chunk_id, "part": part} for chunk_id, part in self.chunks],
            "elapsed_ms": self.elapsed_ms,
        }


class IngestService:
    """Document ingestion into the two-tier vector store"""

    def __init__(
        self,
        vector_store: VectorStoreService,
        embedding_service: EmbeddingService,
        config: Optional[RagConfig] = None,
        concurrency: Optional[int] = None,
    ):
        self.vector_store = vector_store
        self.embedding_service = embedding_service
        self.config = config or RagConfig()
        self.concurrency = concurrency or self.config.ingestion.concurrency

    def _chunk_id(self, tier: Tier, org_id: Optional[str], filename: str, part: int) -> str:
        if self.config.ingestion.id_strategy == "stable":
            key = f"{tier.value}:{org_id or ''}:{filename}:{part}"
            return str(uuid.uuid5(uuid.NAMESPACE_URL, key))
        return str(uuid.uuid4())

    async def ingest(
        self,
        tier: Union[str, Tier],
        org_id: Optional[str],
        filename: str,
        text: str,
    ) -> IngestResult:
        """
        Ingest one plain-text document.

        Args:
            tier: "domain" or "org"
            org_id: Organization id, required for the org tier
            filename: Original filename, stored as the chunk source
            text: Extracted document text

        Returns:
            IngestResult with the stored chunk ids in chunk order

        Raises:
            ValidationError: Invalid tier, missing org id or empty text
            IngestionError: A chunk failed; chunks stored before it remain
        """
        tier = Tier.parse(tier)
        org_id = (org_id or "").strip() or None
        if tier is Tier.ORG and not org_id:
            raise MissingOrgId("org_id is required for the org tier")
        if tier is Tier.DOMAIN:
            org_id = None
        if not text or not text.strip():
            raise ValidationError("Document text is empty")
        filename = (filename or "").strip() or "document"

        chunking = self.config.chunking
        chunks = chunk_text(text, chunking.max_words, chunking.overlap_words)
        total = len(chunks)
        kb_version = date.today().isoformat()
        embed_timeout = self.config.timeouts.embed_seconds
        started = time.perf_counter()
        stored = 0

        logger.info(
            f"Ingesting {filename} into {tier.value}"
            f"{f' (org {org_id})' if org_id else ''}: {total} chunks, concurrency={self.concurrency}"
        )

        async def _embed_and_store(chunk: str, index: int) -> Tuple[str, int]:
            nonlocal stored
            part = index + 1
            chunk_id = self._chunk_id(tier, org_id, filename, part)
            embedding = await self.embedding_service.embed(chunk, timeout=embed_timeout)
            metadata = {
                "source": filename,
                "layer": tier.value,
                "org_id": org_id,
                "part": part,
                "total_parts": total,
                "kb_version": kb_version,
            }
            await asyncio.to_thread(
                self.vector_store.upsert, tier, chunk_id, chunk, metadata, embedding
            )
            stored += 1
            if stored % PROGRESS_EVERY == 0 or stored == total:
                logger.info(f"  {filename}: {stored}/{total} chunks stored")
            return chunk_id, part

        try:
            results = await map_limit(chunks, self.concurrency, _embed_and_store)
        except Exception as e:
            logger.error(f"Ingestion of {filename} failed after {stored}/{total} chunks: {e}")
            raise IngestionError(stored, total, e) from e

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(f"Ingested {filename}: {total} chunks into {tier.table} in {elapsed_ms}ms")
        return IngestResult(
            tier=tier,
            table=tier.table,
            stored=len(results),
            chunks=list(results),
            elapsed_ms=elapsed_ms,
        )
