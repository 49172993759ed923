"""
Base LLM Adapter

Abstract base class for generation provider adapters.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from langchain_core.messages import HumanMessage

from .types import GenerationOptions, LLMResponse, ProviderDefinition


class BaseLLMAdapter(ABC):
    """
    Abstract base class for LLM adapters.

    Each adapter handles a specific SDK/API protocol: it maps the common
    GenerationOptions onto native parameter names, builds a LangChain chat
    model, and translates SDK failures into the backend/transport/timeout
    error classes.
    """

    @abstractmethod
    def native_params(self, options: GenerationOptions) -> Dict[str, Any]:
        """
        Map common options onto the backend's native parameter names.

        Args:
            options: Fully resolved generation options

        Returns:
            Dictionary of constructor kwargs understood by the SDK model
        """
        pass

    @abstractmethod
    def create_llm(
        self,
        model: str,
        base_url: str,
        api_key: Optional[str],
        options: GenerationOptions,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Create an LLM instance for this adapter.

        Args:
            model: Model ID to use
            base_url: API base URL
            api_key: API key for authentication (None for local servers)
            options: Fully resolved generation options
            timeout: Transport-level timeout in seconds

        Returns:
            LLM instance (ChatOllama, ChatOpenAI, ...)
        """
        pass

    @abstractmethod
    def translate_error(self, provider: ProviderDefinition, exc: Exception, timeout: Optional[float]) -> Exception:
        """
        Convert an SDK exception into a generation error.

        Returns:
            GenerationTimeout, GenerationBackendError or GenerationTransportError,
            or the original exception when it is not a provider failure
        """
        pass

    async def invoke(self, llm: Any, prompt: str) -> LLMResponse:
        """
        Send a single-turn prompt and collect the complete response.

        Args:
            llm: LLM instance created by create_llm()
            prompt: Rendered prompt text

        Returns:
            LLMResponse with normalized content
        """
        from .adapters.utils import content_to_text, extract_usage

        response = await llm.ainvoke([HumanMessage(content=prompt)])
        metadata = getattr(response, "response_metadata", None) or {}
        return LLMResponse(
            content=content_to_text(getattr(response, "content", response)),
            finish_reason=metadata.get("finish_reason") or metadata.get("done_reason"),
            usage=extract_usage(response),
            raw=response,
        )
