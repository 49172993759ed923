"""
Shared utilities for LLM adapters.
"""
from typing import Any, Optional

from ..types import TokenUsage


def content_to_text(content: Any) -> str:
    """Flatten LangChain message content (str or content blocks) to plain text.

    Args:
        content: ``message.content`` as returned by a chat model.

    Returns:
        Concatenated text; non-text blocks are skipped.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") in (None, "text"):
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return str(content)


def extract_usage(payload: Any) -> Optional[TokenUsage]:
    """Read token usage from usage_metadata, then response_metadata."""
    usage_metadata = getattr(payload, "usage_metadata", None)
    if isinstance(usage_metadata, dict) and usage_metadata:
        return TokenUsage.from_dict(usage_metadata)

    response_metadata = getattr(payload, "response_metadata", None) or {}
    raw_usage = response_metadata.get("token_usage") or response_metadata.get("usage")
    return TokenUsage.from_dict(raw_usage)
