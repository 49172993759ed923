"""
Provider Types and Data Models

Defines enums and Pydantic models for the generation provider layer.
"""
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ProviderKind(str, Enum):
    """Closed set of supported generation backends"""
    OLLAMA = "OLLAMA"      # Local Ollama server
    GROQ = "GROQ"          # Groq (OpenAI-compatible)
    OPENAI = "OPENAI"      # OpenAI
    MISTRAL = "MISTRAL"    # Mistral (OpenAI-compatible)


class ApiProtocol(str, Enum):
    """Wire protocol spoken by a backend"""
    OLLAMA = "ollama"      # /api/chat, native option names
    OPENAI = "openai"      # /chat/completions


class AuthScheme(str, Enum):
    """How credentials are attached to requests"""
    NONE = "none"          # Local server, no credentials
    BEARER = "bearer"      # Authorization: Bearer <key>


class TokenUsage(BaseModel):
    """Token usage information from a generation response."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["TokenUsage"]:
        """Create TokenUsage from provider-specific dict format."""
        if not data:
            return None
        prompt = data.get("prompt_tokens", data.get("input_tokens", 0)) or 0
        completion = data.get("completion_tokens", data.get("output_tokens", 0)) or 0
        return cls(
            prompt_tokens=prompt,
            completion_tokens=completion,
            total_tokens=data.get("total_tokens", 0) or (prompt + completion),
        )


class GenerationOptions(BaseModel):
    """
    Common generation option set.

    Adapters translate these names onto their backend's native parameters.
    Fields left as None are filled from the configured defaults.
    """
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0, description="Sampling temperature")
    top_p: Optional[float] = Field(default=None, gt=0.0, le=1.0, description="Nucleus sampling mass")
    top_k: Optional[int] = Field(default=None, ge=1, description="Top-k sampling cutoff")
    num_ctx: Optional[int] = Field(default=None, ge=1, description="Context window size in tokens")
    max_tokens: Optional[int] = Field(default=None, ge=1, description="Cap on generated tokens")

    @classmethod
    def defaults(cls) -> "GenerationOptions":
        """Option values used when neither config nor request sets a field."""
        return cls(temperature=0.2, top_p=0.9, top_k=40, num_ctx=1024, max_tokens=256)

    def merge_with(self, override: Optional["GenerationOptions"]) -> "GenerationOptions":
        """
        Apply an override field by field; set, non-null override values win.

        Args:
            override: Options to override with (request-level options)

        Returns:
            New merged GenerationOptions instance
        """
        if override is None:
            return self.model_copy()

        merged = self.model_dump()
        for key, value in override.model_dump(exclude_unset=True).items():
            if value is not None:
                merged[key] = value
        return GenerationOptions(**merged)


class ProviderDefinition(BaseModel):
    """
    Built-in provider definition.

    Carries everything needed to reach the backend: endpoint, auth
    convention, wire protocol and default model.
    """
    kind: ProviderKind = Field(..., description="Provider key")
    label: str = Field(..., description="Human-readable name")
    protocol: ApiProtocol = Field(default=ApiProtocol.OPENAI, description="API protocol type")
    base_url: str = Field(..., description="Default API base URL")
    auth: AuthScheme = Field(default=AuthScheme.BEARER, description="Credential scheme")
    api_key_setting: Optional[str] = Field(default=None, description="Settings field holding the API key")
    sdk_class: str = Field(default="openai", description="SDK adapter class to use")
    default_model: str = Field(..., description="Model used when none is requested")

    def directory_entry(self) -> dict:
        """Public, secret-free listing entry."""
        return {
            "key": self.kind.value,
            "label": self.label,
            "default_model": self.default_model,
        }


class LLMResponse(BaseModel):
    """
    Represents a complete generation response.

    Normalizes output from different providers into a common format.
    """
    content: str = Field(default="", description="Answer text")
    finish_reason: Optional[str] = Field(default=None, description="Finish reason")
    usage: Optional[TokenUsage] = Field(default=None, description="Token usage information")
    raw: Optional[Any] = Field(default=None, exclude=True, description="Raw response from provider")
