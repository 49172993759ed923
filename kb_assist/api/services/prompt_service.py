"""
Prompt Service

Renders retrieved context and the user question into one grounded prompt.
"""
from typing import Any, Sequence

PROMPT_TEMPLATE = """You are a helpful assistant. Use ONLY the provided context. If information is missing, say what is missing and ask for it.

[CONTEXT]
{context}

[QUESTION]
{question}

[INSTRUCTIONS]
- Cite sources with their label in parentheses when relevant.
- If the context does not contain the answer, say so explicitly.
- Prefer concise step-by-step answers."""


def _entry_label(entry: Any, position: int) -> str:
    metadata = getattr(entry, "metadata", None) or {}
    return str(metadata.get("source") or getattr(entry, "id", None) or f"doc#{position}")


def render_context_line(entry: Any, position: int) -> str:
    """Render one entry as ``- (<label>) <text>`` with collapsed whitespace."""
    body = " ".join(str(getattr(entry, "text", "") or "").split())
    return f"- ({_entry_label(entry, position)}) {body}"


def render_prompt(context_entries: Sequence[Any], question: str) -> str:
    """
    Build the generation prompt.

    Args:
        context_entries: Hits in the order they should appear (already ranked)
        question: User question

    Returns:
        Prompt text
    """
    context = "\n".join(
        render_context_line(entry, position)
        for position, entry in enumerate(context_entries, start=1)
    )
    return PROMPT_TEMPLATE.format(context=context, question=str(question or "").strip()).strip()
