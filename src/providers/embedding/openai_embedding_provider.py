"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Requests use a fixed model (``text-embedding-3-small`` by default), a
bounded timeout and **no automatic retries**: every failure is surfaced
as a typed :class:`~src.utils.errors.EmbeddingError` subclass so the
caller can tell a retryable network/upstream failure from bad input.
"""

from __future__ import annotations

from typing import Any

import openai
import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.utils.errors import (
    EmbeddingAPIError,
    EmbeddingTransportError,
    EmptyInputError,
    MalformedResponseError,
    MissingCredentialsError,
)

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-3-small"

_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Parameters
    ----------
    settings:
        Supplies the API key, optional base URL, model and timeout.
    client:
        Pre-built ``openai.AsyncOpenAI``; one is created from *settings*
        when omitted.
    """

    def __init__(self, settings: Settings, client: Any | None = None) -> None:
        self._api_key = settings.openai_api_key
        self._model = settings.openai_embedding_model or _DEFAULT_MODEL
        self._dimension = _MODEL_DIMENSIONS.get(self._model, 1536)
        self._timeout = settings.embedding_timeout
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

        if client is not None:
            self._client = client
        elif self._api_key:
            client_kwargs: dict[str, Any] = {
                "api_key": self._api_key,
                "timeout": self._timeout,
                "max_retries": 0,
            }
            if settings.openai_base_url:
                client_kwargs["base_url"] = settings.openai_base_url
            self._client = openai.AsyncOpenAI(**client_kwargs)
        else:
            # Without a key every call fails fast with MissingCredentialsError.
            self._client = None

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        """Generate the embedding vector for *text*."""
        if not text or not text.strip():
            raise EmptyInputError(provider_name=self.get_provider_name())
        vectors = await self._request([text])
        return vectors[0]

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in one request; an empty list short-circuits."""
        if not texts:
            return []
        if any(not t or not t.strip() for t in texts):
            raise EmptyInputError(provider_name=self.get_provider_name())
        return await self._request(texts)

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _request(self, texts: list[str]) -> list[list[float]]:
        if not self._api_key or self._client is None:
            raise MissingCredentialsError(provider_name=self.get_provider_name())

        payload: str | list[str] = texts[0] if len(texts) == 1 else texts
        try:
            response = await self._client.embeddings.create(input=payload, model=self._model)
        except openai.APIConnectionError as exc:
            # APITimeoutError is a subclass of APIConnectionError.
            raise EmbeddingTransportError(
                message=f"Embedding request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIStatusError as exc:
            raise EmbeddingAPIError(
                message=_status_error_message(exc),
                provider_name=self.get_provider_name(),
                status_code=exc.status_code,
            ) from exc
        except openai.APIError as exc:
            raise MalformedResponseError(
                message=f"Invalid embedding response: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        vectors = self._vectors_from(response, expected=len(texts))
        usage = getattr(response, "usage", None)
        logger.debug(
            "embedding_created",
            model=self._model,
            provider=self._provider_label,
            inputs=len(texts),
            tokens=getattr(usage, "total_tokens", None),
        )
        return vectors

    def _vectors_from(self, response: Any, expected: int) -> list[list[float]]:
        data = getattr(response, "data", None) or []
        vectors: list[list[float]] = []
        for item in data:
            embedding = getattr(item, "embedding", None)
            if not embedding:
                break
            vectors.append([float(v) for v in embedding])
        if len(vectors) != expected:
            raise MalformedResponseError(
                message="Invalid embedding response format",
                provider_name=self.get_provider_name(),
            )
        return vectors


def _status_error_message(exc: openai.APIStatusError) -> str:
    """Prefer the upstream ``error.message`` over the generic status text."""
    body = exc.body if isinstance(exc.body, dict) else {}
    error = body.get("error", body)
    detail = error.get("message") if isinstance(error, dict) else None
    if not detail:
        detail = f"Unknown error (status code: {exc.status_code})"
    return f"API request failed: {detail}"
