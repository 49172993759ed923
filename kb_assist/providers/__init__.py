"""
Generation Provider Layer

This package provides a unified interface over the supported text-generation
backends.

Key components:
- types: Provider kinds, typed generation options, normalized responses
- builtin: Closed provider directory
- registry: Adapter lookup without text matching
- adapters: SDK-specific implementations

Usage:
    from kb_assist.providers import get_builtin_provider, get_adapter, ProviderKind

    provider = get_builtin_provider(ProviderKind.OLLAMA)
    adapter = get_adapter(provider)
    llm = adapter.create_llm(
        model=provider.default_model,
        base_url=provider.base_url,
        api_key=None,
        options=GenerationOptions.defaults(),
        timeout=60.0,
    )
    response = await adapter.invoke(llm, "Hello")
"""
from .types import (
    ApiProtocol,
    AuthScheme,
    GenerationOptions,
    LLMResponse,
    ProviderDefinition,
    ProviderKind,
    TokenUsage,
)
from .builtin import (
    BUILTIN_PROVIDERS,
    get_builtin_provider,
    list_providers,
    parse_provider_kind,
)
from .registry import (
    AdapterRegistry,
    get_adapter,
)
from .base import BaseLLMAdapter

__all__ = [
    # Types
    "ApiProtocol",
    "AuthScheme",
    "GenerationOptions",
    "LLMResponse",
    "ProviderDefinition",
    "ProviderKind",
    "TokenUsage",
    # Builtin
    "BUILTIN_PROVIDERS",
    "get_builtin_provider",
    "list_providers",
    "parse_provider_kind",
    # Registry
    "AdapterRegistry",
    "get_adapter",
    # Base
    "BaseLLMAdapter",
]
