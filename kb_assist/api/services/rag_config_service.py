"""
RAG Config Service

Manages the YAML-backed tunables for ingestion, retrieval and generation.
"""
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

from ...providers.types import GenerationOptions

logger = logging.getLogger(__name__)


@dataclass
class EmbeddingConfig:
    provider: str = "ollama"
    model: str = ""
    base_url: str = ""
    api_key: str = ""


@dataclass
class ChunkingConfig:
    max_words: int = 700
    overlap_words: int = 120


@dataclass
class RetrievalConfig:
    org_top_k: int = 3
    domain_top_k: int = 3
    max_context: int = 4


@dataclass
class TimeoutConfig:
    embed_seconds: float = 15.0
    search_seconds: float = 15.0
    prompt_seconds: float = 2.0
    generate_seconds: float = 60.0
    watchdog_margin_seconds: float = 5.0


@dataclass
class IngestionConfig:
    concurrency: int = 3
    id_strategy: str = "random"


@dataclass
class GenerationDefaults:
    temperature: float = 0.2
    top_p: float = 0.9
    top_k: int = 40
    num_ctx: int = 1024
    max_tokens: int = 256

    def to_options(self) -> GenerationOptions:
        return GenerationOptions(**asdict(self))


@dataclass
class RagConfig:
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    generation: GenerationDefaults = field(default_factory=GenerationDefaults)


_SECTIONS = {
    'embedding': EmbeddingConfig,
    'chunking': ChunkingConfig,
    'retrieval': RetrievalConfig,
    'timeouts': TimeoutConfig,
    'ingestion': IngestionConfig,
    'generation': GenerationDefaults,
}


class RagConfigService:
    """Service for managing RAG configuration"""

    def __init__(self, config_path: Optional[str] = None):
        if config_path is None:
            config_path = Path("data/state/rag_config.yaml")
        self.config_path = Path(config_path)
        self._ensure_config_exists()
        self.config = self._load_config()

    def _ensure_config_exists(self) -> None:
        """Create default config file if it doesn't exist"""
        if self.config_path.exists():
            return
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        default_data = asdict(RagConfig())
        with open(self.config_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(default_data, f, allow_unicode=True, sort_keys=False)
        logger.info(f"Created default RAG config at {self.config_path}")

    @staticmethod
    def _build_section(section_cls, data: Dict):
        """Build one section dataclass, ignoring unknown keys."""
        defaults = section_cls()
        values = {}
        for key in asdict(defaults):
            value = data.get(key)
            values[key] = getattr(defaults, key) if value is None else value
        return section_cls(**values)

    def _load_config(self) -> RagConfig:
        """Load configuration from YAML file"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}

            sections = {}
            for name, section_cls in _SECTIONS.items():
                section_data = data.get(name) or {}
                if not isinstance(section_data, dict):
                    raise ValueError(f"Section '{name}' must be a mapping")
                sections[name] = self._build_section(section_cls, section_data)
            return RagConfig(**sections)
        except Exception as e:
            logger.error(f"Failed to load RAG config: {e}")
            return RagConfig()

    def reload_config(self):
        """Reload configuration from file"""
        self.config = self._load_config()

    def save_config(self, updates: Dict):
        """Merge nested section updates into the YAML file and reload"""
        with open(self.config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        for section_key, section_updates in updates.items():
            if section_key not in _SECTIONS or not isinstance(section_updates, dict):
                continue
            section = data.setdefault(section_key, {})
            for key, value in section_updates.items():
                if value is not None:
                    section[key] = value

        with open(self.config_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)

        self.reload_config()
        logger.info("RAG config updated successfully")
