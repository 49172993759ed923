"""
LLM Adapters

This package contains SDK adapters for the supported generation backends.
"""
from .openai_adapter import OpenAIAdapter
from .ollama_adapter import OllamaAdapter

__all__ = [
    "OpenAIAdapter",
    "OllamaAdapter",
]
