"""Embedding provider implementations.

OpenAIEmbeddingProvider calls ``text-embedding-3-small`` (1536 dims) or any
OpenAI-compatible endpoint configured through ``OPENAI_BASE_URL``.
"""

from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
