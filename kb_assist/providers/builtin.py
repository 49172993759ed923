"""
Built-in Provider Definitions

Pre-configured generation backends with their endpoint, auth convention
and default model.
"""
from typing import List, Optional, Union

from .types import ApiProtocol, AuthScheme, ProviderDefinition, ProviderKind


BUILTIN_PROVIDERS: dict[ProviderKind, ProviderDefinition] = {
    ProviderKind.OLLAMA: ProviderDefinition(
        kind=ProviderKind.OLLAMA,
        label="Local (Ollama)",
        protocol=ApiProtocol.OLLAMA,
        base_url="http://localhost:11434",
        auth=AuthScheme.NONE,
        sdk_class="ollama",
        default_model="llama3.2:3b-instruct-q4_0",
    ),

    ProviderKind.GROQ: ProviderDefinition(
        kind=ProviderKind.GROQ,
        label="Groq (fast Llama)",
        protocol=ApiProtocol.OPENAI,
        base_url="https://api.groq.com/openai/v1",
        api_key_setting="groq_api_key",
        sdk_class="openai",
        default_model="llama-3.1-8b-instant",
    ),

    ProviderKind.OPENAI: ProviderDefinition(
        kind=ProviderKind.OPENAI,
        label="OpenAI",
        protocol=ApiProtocol.OPENAI,
        base_url="https://api.openai.com/v1",
        api_key_setting="openai_api_key",
        sdk_class="openai",
        default_model="gpt-4o-mini",
    ),

    ProviderKind.MISTRAL: ProviderDefinition(
        kind=ProviderKind.MISTRAL,
        label="Mistral",
        protocol=ApiProtocol.OPENAI,
        base_url="https://api.mistral.ai/v1",
        api_key_setting="mistral_api_key",
        sdk_class="openai",
        default_model="open-mixtral-8x7b",
    ),
}


def parse_provider_kind(value: Union[str, ProviderKind, None]) -> Optional[ProviderKind]:
    """Case-insensitive lookup of a provider key; None when unknown."""
    if isinstance(value, ProviderKind):
        return value
    if not value:
        return None
    try:
        return ProviderKind(str(value).strip().upper())
    except ValueError:
        return None


def get_builtin_provider(kind: ProviderKind) -> Optional[ProviderDefinition]:
    """Get a built-in provider definition by kind."""
    return BUILTIN_PROVIDERS.get(kind)


def list_providers() -> List[dict]:
    """Provider directory: keys, labels and default models, no secrets."""
    return [definition.directory_entry() for definition in BUILTIN_PROVIDERS.values()]
