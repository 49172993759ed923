"""
Error taxonomy

Every failure raised by the ingestion and query pipelines derives from
KbAssistError. Errors carry an optional stage label so a failure can be
attributed to the step (embed, search_org, generate, ...) that produced it.
"""
from typing import Optional


class KbAssistError(Exception):
    """Base error for knowledge base operations."""

    def __init__(self, message: str = "", *, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def tag_stage(self, stage: str) -> "KbAssistError":
        """Attach a stage label unless an inner step already set one."""
        if not self.stage:
            self.stage = stage
        return self

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


# ==================== Validation ====================

class ValidationError(KbAssistError):
    """Malformed or missing input. Not retried."""


class InvalidEmbeddingShape(ValidationError):
    """Embedding is not an array of values."""


class MissingOrgId(ValidationError):
    """Org-tier record or query without an organization identifier."""


class InvalidTier(ValidationError):
    """Unknown tier selector."""


class EmbeddingDimensionMismatch(ValidationError):
    """Embedding length differs from the tier's fixed dimension."""

    def __init__(self, expected: int, actual: int, *, stage: Optional[str] = None):
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}",
            stage=stage,
        )
        self.expected = expected
        self.actual = actual


class UnsupportedProvider(KbAssistError):
    """Requested generation provider is not in the provider directory."""

    def __init__(self, provider: str, *, stage: Optional[str] = None):
        super().__init__(f"Unsupported provider: {provider}", stage=stage)
        self.provider = provider


# ==================== Upstream ====================

class UpstreamTimeout(KbAssistError):
    """An external call exceeded its deadline."""


class StepTimeout(UpstreamTimeout):
    """Watchdog deadline fired before the wrapped step completed."""

    def __init__(self, label: str, timeout: float):
        super().__init__(f"{label} timed out after {timeout:g}s", stage=label)
        self.label = label
        self.timeout = timeout


class GenerationTimeout(UpstreamTimeout):
    """Generation backend call aborted on its own deadline."""

    def __init__(self, provider: str, timeout: float, *, stage: Optional[str] = None):
        super().__init__(f"{provider} generation timed out after {timeout:g}s", stage=stage)
        self.provider = provider
        self.timeout = timeout


class UpstreamError(KbAssistError):
    """An external service reported a failure."""


class EmbeddingUnavailable(UpstreamError):
    """Embedding service errored or did not answer in time."""

    def __init__(self, message: str, *, timed_out: bool = False, stage: Optional[str] = None):
        super().__init__(message, stage=stage)
        self.timed_out = timed_out


class EmbeddingTimeout(EmbeddingUnavailable, UpstreamTimeout):
    """Embedding call exceeded its deadline."""

    def __init__(self, timeout: float, *, stage: Optional[str] = None):
        super().__init__(f"Embedding timed out after {timeout:g}s", timed_out=True, stage=stage)
        self.timeout = timeout


class EmbeddingShapeError(UpstreamError):
    """Embedding service answered with something that is not a numeric vector."""


class GenerationBackendError(UpstreamError):
    """Generation backend answered with an error status."""

    def __init__(
        self,
        provider: str,
        status: Optional[int],
        detail: str,
        *,
        stage: Optional[str] = None,
    ):
        status_text = f" ({status})" if status is not None else ""
        super().__init__(f"{provider} backend error{status_text}: {detail}", stage=stage)
        self.provider = provider
        self.status = status
        self.detail = detail


class GenerationTransportError(UpstreamError):
    """Generation backend could not be reached."""

    def __init__(self, provider: str, detail: str, *, stage: Optional[str] = None):
        super().__init__(f"{provider} transport error: {detail}", stage=stage)
        self.provider = provider
        self.detail = detail


# ==================== Storage ====================

class StorageError(KbAssistError):
    """Vector store unreachable or rejected a statement."""


class IngestionError(KbAssistError):
    """Ingestion batch failed; earlier chunks stay persisted."""

    def __init__(self, stored: int, total: int, cause: BaseException, *, stage: Optional[str] = None):
        super().__init__(
            f"Ingestion failed after {stored}/{total} chunks: {cause}",
            stage=stage or getattr(cause, "stage", None),
        )
        self.stored = stored
        self.total = total
        self.cause = cause
