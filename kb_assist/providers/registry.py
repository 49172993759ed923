"""
Adapter Registry

Resolves a provider definition to the SDK adapter that speaks its protocol.
"""
import logging
from typing import Dict, Type

from .base import BaseLLMAdapter
from .types import ApiProtocol, ProviderDefinition
from .adapters import OllamaAdapter, OpenAIAdapter

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """
    Lookup tables from sdk_class name and wire protocol to adapter class.

    An explicit ``sdk_class`` on the definition wins; the protocol is the
    fallback.
    """

    _adapters: Dict[str, Type[BaseLLMAdapter]] = {
        "openai": OpenAIAdapter,
        "ollama": OllamaAdapter,
    }

    _protocol_adapters: Dict[ApiProtocol, str] = {
        ApiProtocol.OPENAI: "openai",
        ApiProtocol.OLLAMA: "ollama",
    }

    @classmethod
    def get(cls, sdk_type: str) -> BaseLLMAdapter:
        """
        Instantiate the adapter registered as ``sdk_type``.

        Raises:
            KeyError: If nothing is registered under the name
        """
        return cls._adapters[sdk_type]()

    @classmethod
    def get_for_provider(cls, provider: ProviderDefinition) -> BaseLLMAdapter:
        """Adapter for a provider definition."""
        if provider.sdk_class in cls._adapters:
            logger.debug(f"{provider.kind.value}: adapter from sdk_class {provider.sdk_class}")
            return cls.get(provider.sdk_class)

        sdk_type = cls._protocol_adapters[provider.protocol]
        logger.debug(f"{provider.kind.value}: adapter from protocol {provider.protocol.value} -> {sdk_type}")
        return cls.get(sdk_type)


def get_adapter(provider: ProviderDefinition) -> BaseLLMAdapter:
    """Convenience entry point for adapter lookup."""
    return AdapterRegistry.get_for_provider(provider)
