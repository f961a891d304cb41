"""LLM backends."""

from .azure_openai import AzureOpenAIClient

__all__ = ["AzureOpenAIClient"]
