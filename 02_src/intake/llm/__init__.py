"""LLM module."""

from .extractor import FieldExtractor, IFieldExtractor
from .llm_provider import ILLMProvider, LLMProvider

__all__ = ["ILLMProvider", "LLMProvider", "IFieldExtractor", "FieldExtractor"]
