"""
Chunking Service

Word-window splitter used by ingestion. Word counts stand in for tokens.
"""
from typing import List

from ...errors import ValidationError


def chunk_text(text: str, max_words: int = 700, overlap_words: int = 120) -> List[str]:
    """
    Split text into overlapping windows of at most ``max_words`` words.

    Each window starts ``max(1, max_words - overlap_words)`` words after the
    previous one; splitting stops with the first window that reaches the end
    of the text. Whitespace inside a window is collapsed to single spaces.

    Args:
        text: Plain text body
        max_words: Window size in words
        overlap_words: Words shared by consecutive windows

    Returns:
        Ordered list of chunk strings (empty for blank text)
    """
    if max_words < 1:
        raise ValidationError(f"max_words must be >= 1, got {max_words}")
    if overlap_words < 0:
        raise ValidationError(f"overlap_words must be >= 0, got {overlap_words}")

    words = (text or "").split()
    step = max(1, max_words - overlap_words)

    chunks: List[str] = []
    start = 0
    while start < len(words):
        window = " ".join(words[start:start + max_words])
        if window.strip():
            chunks.append(window)
        if start + max_words >= len(words):
            break
        start += step
    return chunks
