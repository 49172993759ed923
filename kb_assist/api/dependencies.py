"""Service construction for the HTTP layer (one shared instance per process)."""

from functools import lru_cache

from .config import settings
from .services.embedding_service import EmbeddingService
from .services.generation_service import GenerationService
from .services.ingest_service import IngestService
from .services.rag_config_service import RagConfigService
from .services.rag_service import RagService
from .services.vector_store_service import VectorStoreService
from ..providers import ProviderKind


@lru_cache(maxsize=1)
def get_rag_config_service() -> RagConfigService:
    return RagConfigService(str(settings.rag_config_path))


@lru_cache(maxsize=1)
def get_vector_store() -> VectorStoreService:
    return VectorStoreService(settings.vector_db_path, dimension=settings.embedding_dim)


@lru_cache(maxsize=1)
def get_embedding_service() -> EmbeddingService:
    return EmbeddingService(
        config=get_rag_config_service().config.embedding,
        ollama_url=settings.ollama_url,
        default_model=settings.embed_model,
    )


@lru_cache(maxsize=1)
def get_generation_service() -> GenerationService:
    config = get_rag_config_service().config
    return GenerationService(
        settings,
        default_provider=settings.provider,
        default_model=settings.gen_model,
        default_options=config.generation.to_options(),
        base_urls={ProviderKind.OLLAMA: settings.ollama_url},
    )


def get_ingest_service() -> IngestService:
    """Dependency injection for IngestService."""
    return IngestService(
        get_vector_store(),
        get_embedding_service(),
        config=get_rag_config_service().config,
        concurrency=settings.embed_concurrency,
    )


def get_rag_service() -> RagService:
    """Dependency injection for RagService."""
    return RagService(
        get_vector_store(),
        get_embedding_service(),
        get_generation_service(),
        config=get_rag_config_service().config,
    )
