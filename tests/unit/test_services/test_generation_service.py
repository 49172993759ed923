"""Unit tests for provider routing in GenerationService."""

import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage

from kb_assist.api.services.generation_service import GenerationService
from kb_assist.api.services.step_watchdog import with_deadline
from kb_assist.errors import (
    GenerationBackendError,
    GenerationTimeout,
    GenerationTransportError,
    UnsupportedProvider,
)
from kb_assist.providers import GenerationOptions, ProviderKind
from kb_assist.providers.adapters import OpenAIAdapter


class _Credentials:
    def __init__(self, **keys):
        self.keys = keys

    def api_key_for(self, setting_name):
        return self.keys.get(setting_name)


class _FakeLLM:
    def __init__(self, reply="answer", error=None, delay=0.0, **kwargs):
        self.kwargs = kwargs
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts = []

    async def ainvoke(self, messages):
        self.prompts.append(messages[0].content)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.reply, response_metadata={"finish_reason": "stop"})


class _RecordingAdapter(OpenAIAdapter):
    """OpenAI adapter that builds a fake chat model instead of ChatOpenAI."""

    def __init__(self, **llm_kwargs):
        self.llm_kwargs = llm_kwargs
        self.created = []

    def create_llm(self, model, base_url, api_key, options, timeout=None):
        llm = _FakeLLM(
            model=model,
            base_url=base_url,
            api_key=api_key,
            options=options,
            timeout=timeout,
            **self.llm_kwargs,
        )
        self.created.append(llm)
        return llm


def _service(adapter, **kwargs):
    lookups = []

    def _lookup(definition):
        lookups.append(definition.kind)
        return adapter

    service = GenerationService(
        _Credentials(groq_api_key="gsk", openai_api_key="sk", mistral_api_key="ms"),
        adapter_lookup=_lookup,
        **kwargs,
    )
    return service, lookups


@pytest.mark.asyncio
async def test_unsupported_provider_fails_before_any_call():
    adapter = _RecordingAdapter()
    service, lookups = _service(adapter)

    with pytest.raises(UnsupportedProvider) as exc:
        await service.generate("FOO", None, "prompt", timeout=1.0)

    assert exc.value.provider == "FOO"
    assert lookups == []
    assert adapter.created == []


@pytest.mark.asyncio
async def test_generate_returns_normalized_answer_and_passes_credentials():
    adapter = _RecordingAdapter(reply="42")
    service, lookups = _service(adapter)

    response = await service.generate("groq", None, "What is it?", timeout=5.0)

    assert response.content == "42"
    assert response.finish_reason == "stop"
    assert lookups == [ProviderKind.GROQ]
    llm = adapter.created[0]
    assert llm.kwargs["model"] == "llama-3.1-8b-instant"
    assert llm.kwargs["api_key"] == "gsk"
    assert llm.kwargs["base_url"] == "https://api.groq.com/openai/v1"
    assert llm.kwargs["timeout"] == 5.0
    assert llm.prompts == ["What is it?"]


@pytest.mark.asyncio
async def test_request_options_override_defaults_field_by_field():
    adapter = _RecordingAdapter()
    service, _ = _service(adapter)

    await service.generate("OPENAI", "gpt-4o", "p", GenerationOptions(temperature=0.7))

    options = adapter.created[0].kwargs["options"]
    assert options.temperature == 0.7
    assert options.top_p == 0.9
    assert options.max_tokens == 256
    assert adapter.created[0].kwargs["model"] == "gpt-4o"


@pytest.mark.asyncio
async def test_default_provider_and_model_fallbacks():
    adapter = _RecordingAdapter()
    service, lookups = _service(
        adapter,
        default_provider="OLLAMA",
        default_model="qwen2.5:3b",
        base_urls={ProviderKind.OLLAMA: "http://gpu-box:11434"},
    )

    await service.generate(None, None, "p")
    await service.generate("mistral", None, "p")

    assert lookups == [ProviderKind.OLLAMA, ProviderKind.MISTRAL]
    ollama_llm, mistral_llm = adapter.created
    assert ollama_llm.kwargs["model"] == "qwen2.5:3b"
    assert ollama_llm.kwargs["base_url"] == "http://gpu-box:11434"
    assert ollama_llm.kwargs["api_key"] is None
    # Configured model only applies to the default provider
    assert mistral_llm.kwargs["model"] == "open-mixtral-8x7b"


@pytest.mark.asyncio
@pytest.mark.parametrize("provider", ["GROQ", "OPENAI", "MISTRAL"])
async def test_missing_api_key_fails_before_building_the_model(provider):
    adapter = _RecordingAdapter()
    service = GenerationService(_Credentials(), adapter_lookup=lambda definition: adapter)

    with pytest.raises(GenerationBackendError) as exc:
        await service.generate(provider, None, "p", timeout=1.0)

    assert exc.value.provider == provider
    assert exc.value.status is None
    assert "API key not configured" in exc.value.detail
    assert adapter.created == []


@pytest.mark.asyncio
async def test_missing_api_key_is_reported_under_generate_stage():
    service = GenerationService(None)

    with pytest.raises(GenerationBackendError) as exc:
        await with_deadline("generate", 1.0, lambda: service.generate("GROQ", None, "hi", timeout=1.0))

    assert exc.value.stage == "generate"


@pytest.mark.asyncio
async def test_deadline_expiry_raises_generation_timeout():
    adapter = _RecordingAdapter(delay=1.0)
    service, _ = _service(adapter)

    with pytest.raises(GenerationTimeout) as exc:
        await service.generate("OPENAI", None, "p", timeout=0.02)
    assert exc.value.provider == "OPENAI"


def _request():
    return httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


@pytest.mark.parametrize(
    "error,expected",
    [
        (openai.APITimeoutError(request=_request()), GenerationTimeout),
        (openai.APIConnectionError(request=_request()), GenerationTransportError),
        (
            openai.APIStatusError(
                "rate limited",
                response=httpx.Response(429, request=_request()),
                body=None,
            ),
            GenerationBackendError,
        ),
    ],
)
@pytest.mark.asyncio
async def test_sdk_errors_are_translated(error, expected):
    adapter = _RecordingAdapter(error=error)
    service, _ = _service(adapter)

    with pytest.raises(expected) as exc:
        await service.generate("OPENAI", None, "p", timeout=5.0)
    assert exc.value.__cause__ is error


@pytest.mark.asyncio
async def test_backend_error_carries_status():
    error = openai.APIStatusError(
        "invalid api key",
        response=httpx.Response(401, request=_request()),
        body=None,
    )
    adapter = _RecordingAdapter(error=error)
    service, _ = _service(adapter)

    with pytest.raises(GenerationBackendError) as exc:
        await service.generate("OPENAI", None, "p")
    assert exc.value.status == 401
    assert "invalid api key" in exc.value.detail


@pytest.mark.asyncio
async def test_unrelated_errors_propagate_unchanged():
    adapter = _RecordingAdapter(error=KeyError("oops"))
    service, _ = _service(adapter)

    with pytest.raises(KeyError):
        await service.generate("OPENAI", None, "p")


@pytest.mark.asyncio
async def test_ollama_adapter_is_selected_by_default_lookup(monkeypatch):
    created = []

    class FakeChatOllama(_FakeLLM):
        def __init__(self, **kwargs):
            super().__init__(reply="local answer", **kwargs)
            created.append(self)

    monkeypatch.setattr("langchain_ollama.ChatOllama", FakeChatOllama)
    service = GenerationService(SimpleNamespace(api_key_for=lambda name: None))

    response = await service.generate("ollama", None, "p", timeout=3.0)

    assert response.content == "local answer"
    assert created[0].kwargs["model"] == "llama3.2:3b-instruct-q4_0"
    assert created[0].kwargs["num_predict"] == 256
    assert created[0].kwargs["client_kwargs"] == {"timeout": 3.0}


def test_list_providers_has_no_secrets():
    service = GenerationService(_Credentials(openai_api_key="sk-secret"))

    providers = service.list_providers()

    assert [p["key"] for p in providers] == ["OLLAMA", "GROQ", "OPENAI", "MISTRAL"]
    assert "sk-secret" not in str(providers)
