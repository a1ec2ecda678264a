"""Embedding backends: Gemini REST, local sentence-transformers, and offline hashing."""

from __future__ import annotations

import hashlib
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from brew_buddy.config import DEFAULT_EMBEDDING_MODEL, EmbeddingSettings
from brew_buddy.search.models import Vector

_WORD = re.compile(r"\w+")


class EmbeddingError(Exception):
    """The backend could not produce a vector."""


class EmbeddingAuthError(EmbeddingError):
    """The backend rejected the credential."""


class EmbeddingRateLimitError(EmbeddingError):
    """The backend is throttling requests."""


class Embedder(Protocol):
    """Embedding backend interface."""

    model_name: str

    def embed(self, texts: list[str]) -> list[Vector]:
        """Encode texts into fixed-length vectors."""
        raise NotImplementedError


class GeminiEmbedder:
    """Gemini ``embedContent`` client with a bounded per-request timeout."""

    def __init__(
        self,
        *,
        api_key: str,
        model_name: str = "text-embedding-004",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_seconds: float = 8.0,
        transport: httpx.BaseTransport | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("GEMINI_API_KEY environment variable is required.")
        self.model_name = model_name
        self._logger = logger or logging.getLogger(__name__)
        self._endpoint = f"{base_url.rstrip('/')}/models/{model_name}:embedContent"
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 5.0)),
            headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
            transport=transport,
        )

    def embed(self, texts: list[str]) -> list[Vector]:
        return [self._embed_single(text) for text in texts]

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GeminiEmbedder:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _embed_single(self, text: str) -> Vector:
        payload = {
            "model": f"models/{self.model_name}",
            "content": {"parts": [{"text": text}]},
        }
        self._logger.debug("Requesting embedding from %s (%d chars)", self.model_name, len(text))
        try:
            response = self._client.post(self._endpoint, json=payload)
        except httpx.TimeoutException as error:
            raise EmbeddingError(f"Embedding request timed out: {error}") from error
        except httpx.HTTPError as error:
            raise EmbeddingError(f"Embedding request failed: {error}") from error

        if response.status_code in {401, 403}:
            raise EmbeddingAuthError(
                f"Embedding backend rejected the API key (HTTP {response.status_code}).",
            )
        if response.status_code == 429:
            raise EmbeddingRateLimitError("Embedding backend rate limit exceeded (HTTP 429).")
        if not response.is_success:
            raise EmbeddingError(
                f"Embedding backend returned HTTP {response.status_code}: "
                f"{_short(response.text)}",
            )

        try:
            body = response.json()
        except ValueError as error:
            raise EmbeddingError("Embedding backend returned invalid JSON.") from error
        embedding = body.get("embedding") if isinstance(body, dict) else None
        values = embedding.get("values") if isinstance(embedding, dict) else None
        if not isinstance(values, list) or not values:
            raise EmbeddingError("Embedding backend returned an empty embedding.")
        try:
            vector = [float(value) for value in values]
        except (TypeError, ValueError) as error:
            raise EmbeddingError("Embedding backend returned non-numeric values.") from error
        if not all(math.isfinite(value) for value in vector):
            raise EmbeddingError("Embedding backend returned non-finite values.")
        return vector


@dataclass(slots=True)
class HashingEmbedder:
    """Offline embedder using signed feature hashing of words and character trigrams.

    Deterministic and dependency-free, so tests and air-gapped runs can embed
    the catalog without a network backend. Vectors are L2-normalized.
    """

    model_name: str = "hashing"
    dimensions: int = 384
    ngram_size: int = 3

    def embed(self, texts: list[str]) -> list[Vector]:
        return [self._vectorize(text) for text in texts]

    def _vectorize(self, text: str) -> Vector:
        vector = [0.0] * self.dimensions
        for feature in self._features(text):
            digest = hashlib.blake2b(feature.encode("utf-8"), digest_size=8).digest()
            bucket = int.from_bytes(digest[:4], "little") % self.dimensions
            vector[bucket] += 1.0 if digest[4] & 1 else -1.0

        norm = math.sqrt(sum(value * value for value in vector))
        if norm == 0:
            return vector
        return [value / norm for value in vector]

    def _features(self, text: str) -> list[str]:
        features: list[str] = []
        for word in _WORD.findall((text or "").lower()):
            features.append(f"w:{word}")
            padded = f" {word} "
            features.extend(
                f"c:{padded[index : index + self.ngram_size]}"
                for index in range(max(1, len(padded) - self.ngram_size + 1))
            )
        return features


class SentenceTransformerEmbedder:
    """Local sentence-transformers model; the package is imported only when selected."""

    def __init__(self, model_name: str) -> None:
        from sentence_transformers import SentenceTransformer  # type: ignore

        self.model_name = model_name
        self._model: Any = SentenceTransformer(model_name)

    def embed(self, texts: list[str]) -> list[Vector]:
        encoded = self._model.encode(texts, normalize_embeddings=True)
        return [[float(value) for value in row] for row in encoded]


def build_embedder(
    settings: EmbeddingSettings,
    *,
    logger: logging.Logger | None = None,
) -> Embedder:
    """Build the configured embedder."""

    if settings.backend == "gemini":
        return GeminiEmbedder(
            api_key=settings.api_key or "",
            model_name=settings.model_name,
            base_url=settings.base_url,
            timeout_seconds=settings.request_timeout_seconds,
            logger=logger,
        )
    if settings.backend == "hashing":
        if settings.model_name == DEFAULT_EMBEDDING_MODEL:
            return HashingEmbedder()
        return HashingEmbedder(model_name=settings.model_name)
    if settings.backend == "sentence-transformers":
        try:
            return SentenceTransformerEmbedder(model_name=settings.model_name)
        except (ImportError, ModuleNotFoundError, OSError, RuntimeError, ValueError) as error:
            raise RuntimeError(
                f"Failed to initialize embedding model {settings.model_name}. "
                "Install brew-buddy[local-embeddings] or pick another backend.",
            ) from error
    raise ValueError(f"Unknown embedding backend: {settings.backend!r}")


def embed_one(embedder: Embedder, text: str) -> Vector:
    """Embed a single text; an empty result is a backend failure."""

    vectors = embedder.embed([text])
    if not vectors or not vectors[0]:
        raise EmbeddingError("Embedding backend returned no vector.")
    return vectors[0]


def close_embedder(embedder: Embedder) -> None:
    close = getattr(embedder, "close", None)
    if callable(close):
        close()


def _short(text: str, limit: int = 200) -> str:
    text = text.strip()
    return text if len(text) <= limit else text[:limit] + "..."
