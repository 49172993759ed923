"""
Ollama SDK Adapter

Adapter for Ollama local models using langchain-ollama.
"""
import logging
from typing import Any, Dict, Optional

import httpx
from ollama import ResponseError

from ...errors import GenerationBackendError, GenerationTimeout, GenerationTransportError
from ..base import BaseLLMAdapter
from ..types import GenerationOptions, ProviderDefinition

logger = logging.getLogger(__name__)


class OllamaAdapter(BaseLLMAdapter):
    """
    Adapter for Ollama local models.

    Ollama takes its sampling options under native names (num_ctx,
    num_predict, top_k); no credentials are sent.
    """

    def native_params(self, options: GenerationOptions) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if options.temperature is not None:
            params["temperature"] = options.temperature
        if options.top_p is not None:
            params["top_p"] = options.top_p
        if options.top_k is not None:
            params["top_k"] = options.top_k
        if options.num_ctx is not None:
            params["num_ctx"] = options.num_ctx
        # Token cap is called num_predict on Ollama
        if options.max_tokens is not None:
            params["num_predict"] = options.max_tokens
        return params

    def create_llm(
        self,
        model: str,
        base_url: str,
        api_key: Optional[str],
        options: GenerationOptions,
        timeout: Optional[float] = None,
    ):
        """
        Create a ChatOllama instance.

        Args:
            model: Model name (llama3.2, qwen3, etc.)
            base_url: Ollama server URL (default: http://localhost:11434)
            api_key: Not used for Ollama (local)
            options: Resolved generation options
            timeout: Transport timeout passed to the underlying httpx client

        Returns:
            ChatOllama instance
        """
        from langchain_ollama import ChatOllama

        llm_kwargs: Dict[str, Any] = {
            "model": model,
            "base_url": base_url or "http://localhost:11434",
            **self.native_params(options),
        }
        if timeout is not None:
            llm_kwargs["client_kwargs"] = {"timeout": timeout}

        return ChatOllama(**llm_kwargs)

    def translate_error(self, provider: ProviderDefinition, exc: Exception, timeout: Optional[float]) -> Exception:
        name = provider.kind.value
        if isinstance(exc, ResponseError):
            return GenerationBackendError(name, getattr(exc, "status_code", None), str(exc.error))
        if isinstance(exc, httpx.TimeoutException):
            return GenerationTimeout(name, timeout or 0.0)
        if isinstance(exc, httpx.HTTPStatusError):
            return GenerationBackendError(name, exc.response.status_code, exc.response.text)
        if isinstance(exc, (httpx.TransportError, ConnectionError)):
            logger.warning(f"Cannot reach Ollama: {exc}")
            return GenerationTransportError(name, str(exc) or type(exc).__name__)
        return exc
