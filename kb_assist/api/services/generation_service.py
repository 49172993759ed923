"""
Generation Service

Routes a rendered prompt to one of the built-in generation providers and
normalizes the answer.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from ...errors import GenerationBackendError, GenerationTimeout, KbAssistError, UnsupportedProvider
from ...providers import (
    AuthScheme,
    BaseLLMAdapter,
    GenerationOptions,
    LLMResponse,
    ProviderDefinition,
    ProviderKind,
    get_adapter,
    get_builtin_provider,
    list_providers,
    parse_provider_kind,
)

logger = logging.getLogger(__name__)


class GenerationService:
    """Provider dispatch with option mapping, deadline and error translation"""

    def __init__(
        self,
        credentials: Any = None,
        *,
        default_provider: str = ProviderKind.OLLAMA.value,
        default_model: str = "",
        default_options: Optional[GenerationOptions] = None,
        base_urls: Optional[Dict[ProviderKind, str]] = None,
        adapter_lookup: Callable[[ProviderDefinition], BaseLLMAdapter] = get_adapter,
    ):
        """
        Args:
            credentials: Object exposing ``api_key_for(setting_name)`` (Settings)
            default_provider: Provider used when a request names none
            default_model: Model used when a request names none ("" = provider default)
            default_options: Base option set that request options override
            base_urls: Endpoint overrides per provider (e.g. the local Ollama URL)
            adapter_lookup: Adapter factory, replaceable in tests
        """
        self.credentials = credentials
        self.default_provider = default_provider
        self.default_model = default_model
        self.default_options = default_options or GenerationOptions.defaults()
        self.base_urls = dict(base_urls or {})
        self._adapter_lookup = adapter_lookup

    def resolve_provider(self, provider: Union[str, ProviderKind, None]) -> ProviderDefinition:
        """
        Look up a provider definition, falling back to the default provider.

        Raises:
            UnsupportedProvider: If the key is not in the provider directory
        """
        requested = provider or self.default_provider
        kind = parse_provider_kind(requested)
        definition = get_builtin_provider(kind) if kind else None
        if definition is None:
            raise UnsupportedProvider(str(requested))
        return definition

    def resolve_model(self, definition: ProviderDefinition, model: Optional[str]) -> str:
        if model:
            return model
        if self.default_model and definition.kind.value == str(self.default_provider).upper():
            return self.default_model
        return definition.default_model

    def _api_key(self, definition: ProviderDefinition) -> Optional[str]:
        if definition.auth == AuthScheme.NONE:
            return None
        api_key = None
        if self.credentials is not None:
            api_key = self.credentials.api_key_for(definition.api_key_setting)
        if not api_key:
            logger.warning(f"No API key configured for {definition.kind.value} ({definition.api_key_setting})")
        return api_key

    def list_providers(self) -> List[dict]:
        """Provider directory entries (key, label, default model)."""
        return list_providers()

    async def generate(
        self,
        provider: Union[str, ProviderKind, None],
        model: Optional[str],
        prompt: str,
        options: Optional[GenerationOptions] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """
        Generate an answer for ``prompt``.

        Args:
            provider: Provider key (case-insensitive); None uses the default
            model: Model ID; None uses the configured or provider default
            prompt: Rendered prompt
            options: Request-level option overrides
            timeout: Deadline in seconds for the backend call

        Returns:
            LLMResponse with the answer text in ``content``

        Raises:
            UnsupportedProvider: Unknown provider, raised before any network call
            GenerationTimeout: Deadline expired; the in-flight call is cancelled
            GenerationBackendError: Backend answered with an error or no API key is configured
            GenerationTransportError: Backend could not be reached
        """
        definition = self.resolve_provider(provider)
        adapter = self._adapter_lookup(definition)
        model_id = self.resolve_model(definition, model)
        resolved = self.default_options.merge_with(options)
        base_url = self.base_urls.get(definition.kind) or definition.base_url

        api_key = self._api_key(definition)
        if definition.auth == AuthScheme.BEARER and not api_key:
            raise GenerationBackendError(definition.kind.value, None, "API key not configured")

        llm = adapter.create_llm(
            model=model_id,
            base_url=base_url,
            api_key=api_key,
            options=resolved,
            timeout=timeout,
        )
        logger.info(f"Generating with {definition.kind.value}/{model_id} (timeout={timeout})")

        try:
            call = adapter.invoke(llm, prompt)
            if timeout is not None:
                return await asyncio.wait_for(call, timeout)
            return await call
        except asyncio.TimeoutError:
            raise GenerationTimeout(definition.kind.value, timeout or 0.0) from None
        except KbAssistError:
            raise
        except Exception as e:
            translated = adapter.translate_error(definition, e, timeout)
            if translated is e:
                raise
            raise translated from e
