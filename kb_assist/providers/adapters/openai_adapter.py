"""
OpenAI SDK Adapter

Adapter for OpenAI and OpenAI-compatible APIs (Groq, Mistral, etc.)
"""
import logging
from typing import Any, Dict, Optional

import openai
from langchain_openai import ChatOpenAI

from ...errors import GenerationBackendError, GenerationTimeout, GenerationTransportError
from ..base import BaseLLMAdapter
from ..types import GenerationOptions, ProviderDefinition

logger = logging.getLogger(__name__)


class OpenAIAdapter(BaseLLMAdapter):
    """
    Adapter for OpenAI SDK.

    Supports OpenAI API and chat-completions compatible providers. Bearer
    auth is handled by the SDK from ``api_key``. ``top_k`` and ``num_ctx``
    have no chat-completions equivalent and are not sent.
    """

    def native_params(self, options: GenerationOptions) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if options.temperature is not None:
            params["temperature"] = options.temperature
        if options.top_p is not None:
            params["top_p"] = options.top_p
        if options.max_tokens is not None:
            params["max_tokens"] = options.max_tokens
        return params

    def create_llm(
        self,
        model: str,
        base_url: str,
        api_key: Optional[str],
        options: GenerationOptions,
        timeout: Optional[float] = None,
    ) -> ChatOpenAI:
        """
        Create a ChatOpenAI instance.

        Args:
            model: Model ID to use
            base_url: API base URL
            api_key: API key for authentication
            options: Resolved generation options
            timeout: Request timeout in seconds

        Returns:
            ChatOpenAI instance
        """
        llm_kwargs: Dict[str, Any] = {
            "model": model,
            "base_url": base_url,
            "api_key": api_key or "",
            "streaming": False,
            # Failures are reported, never retried
            "max_retries": 0,
            **self.native_params(options),
        }
        if timeout is not None:
            llm_kwargs["timeout"] = timeout

        return ChatOpenAI(**llm_kwargs)

    def translate_error(self, provider: ProviderDefinition, exc: Exception, timeout: Optional[float]) -> Exception:
        name = provider.kind.value
        # APITimeoutError subclasses APIConnectionError, check it first
        if isinstance(exc, openai.APITimeoutError):
            return GenerationTimeout(name, timeout or 0.0)
        if isinstance(exc, openai.APIStatusError):
            return GenerationBackendError(name, exc.status_code, exc.message)
        if isinstance(exc, openai.APIConnectionError):
            logger.warning(f"Cannot reach {name} at {provider.base_url}: {exc}")
            return GenerationTransportError(name, str(exc))
        return exc
