"""Unit tests for document ingestion."""

import asyncio
from datetime import date

import pytest

from kb_assist.api.services.embedding_service import EmbeddingService
from kb_assist.api.services.ingest_service import IngestService
from kb_assist.api.services.vector_store_service import Tier
from kb_assist.errors import (
    EmbeddingUnavailable,
    IngestionError,
    InvalidTier,
    MissingOrgId,
    ValidationError,
)

TWELVE_WORDS = "one two three four five six seven eight nine ten eleven twelve"


def _service(vector_store, embeddings, rag_config, concurrency=None):
    return IngestService(
        vector_store,
        EmbeddingService(embeddings),
        config=rag_config,
        concurrency=concurrency,
    )


@pytest.mark.asyncio
async def test_ingest_stores_chunks_with_metadata(vector_store, fake_embeddings, rag_config):
    service = _service(vector_store, fake_embeddings, rag_config)

    result = await service.ingest("org", "acme", "manual.txt", TWELVE_WORDS)

    assert result.tier is Tier.ORG
    assert result.table == "kb_org"
    assert result.stored == 3
    assert [part for _, part in result.chunks] == [1, 2, 3]
    assert vector_store.count("org", org_id="acme") == 3

    first_id = result.chunks[0][0]
    record = vector_store.get("org", first_id)
    assert record.text == "one two three four five"
    assert record.metadata == {
        "source": "manual.txt",
        "layer": "org",
        "org_id": "acme",
        "part": 1,
        "total_parts": 3,
        "kb_version": date.today().isoformat(),
    }
    assert sorted(fake_embeddings.calls) == sorted(
        ["one two three four five", "five six seven eight nine", "nine ten eleven twelve"]
    )


@pytest.mark.asyncio
async def test_domain_ingest_ignores_org_id(vector_store, fake_embeddings, rag_config):
    service = _service(vector_store, fake_embeddings, rag_config)

    result = await service.ingest("domain", "acme", "faq.md", "short text")

    record = vector_store.get("domain", result.chunks[0][0])
    assert "org_id" not in record.metadata
    assert record.metadata["layer"] == "domain"
    assert result.to_dict()["chunks"] == [{"id": result.chunks[0][0], "part": 1}]


@pytest.mark.asyncio
async def test_random_ids_create_new_records_on_reupload(vector_store, fake_embeddings, rag_config):
    service = _service(vector_store, fake_embeddings, rag_config)

    await service.ingest("domain", None, "faq.md", TWELVE_WORDS)
    await service.ingest("domain", None, "faq.md", TWELVE_WORDS)

    assert vector_store.count("domain") == 6


@pytest.mark.asyncio
async def test_stable_ids_replace_records_on_reupload(vector_store, fake_embeddings, rag_config):
    rag_config.ingestion.id_strategy = "stable"
    service = _service(vector_store, fake_embeddings, rag_config)

    first = await service.ingest("org", "acme", "faq.md", TWELVE_WORDS)
    second = await service.ingest("org", "acme", "faq.md", TWELVE_WORDS)
    other_org = await service.ingest("org", "beta", "faq.md", TWELVE_WORDS)

    assert first.chunks == second.chunks
    assert first.chunks != other_org.chunks
    assert vector_store.count("org") == 6


@pytest.mark.asyncio
async def test_concurrency_cap_is_respected(vector_store, rag_config):
    active = 0
    peak = 0

    class _SlowEmbeddings:
        async def aembed_query(self, text):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return [1.0, float(len(text))]

    service = _service(vector_store, _SlowEmbeddings(), rag_config, concurrency=2)
    text = " ".join(f"w{i}" for i in range(60))

    result = await service.ingest("domain", None, "big.txt", text)

    assert result.stored == 15
    assert peak <= 2


@pytest.mark.asyncio
async def test_failure_reports_prior_successes(vector_store, rag_config):
    class _FailingThirdChunk:
        async def aembed_query(self, text):
            if text.startswith("nine"):
                raise ConnectionError("embedding server down")
            return [1.0, 0.5]

    service = _service(vector_store, _FailingThirdChunk(), rag_config, concurrency=1)

    with pytest.raises(IngestionError) as exc:
        await service.ingest("domain", None, "manual.txt", TWELVE_WORDS)

    assert exc.value.stored == 2
    assert exc.value.total == 3
    assert isinstance(exc.value.cause, EmbeddingUnavailable)
    # Chunks stored before the failure stay persisted
    assert vector_store.count("domain") == 2


@pytest.mark.asyncio
async def test_input_validation(vector_store, fake_embeddings, rag_config):
    service = _service(vector_store, fake_embeddings, rag_config)

    with pytest.raises(MissingOrgId):
        await service.ingest("org", "  ", "a.txt", "text")
    with pytest.raises(InvalidTier):
        await service.ingest("global", None, "a.txt", "text")
    with pytest.raises(ValidationError):
        await service.ingest("domain", None, "a.txt", "   ")
    assert fake_embeddings.calls == []
