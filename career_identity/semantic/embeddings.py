from __future__ import annotations

import asyncio
import hashlib
import math
import os
import re
from functools import lru_cache
from typing import Protocol

import numpy as np
from openai import AsyncOpenAI
from sentence_transformers import SentenceTransformer

from career_identity.core.config import settings

_TOKEN_PATTERN = re.compile(r"[a-z0-9\+#]+")
_OPENAI_BATCH_SIZE = 512


class EmbeddingProvider(Protocol):
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Return vector embeddings for input texts."""


class OpenAIEmbeddingProvider:
    def __init__(self, model: str = "text-embedding-3-small", api_key: str | None = None) -> None:
        key = (api_key or os.getenv("OPENAI_API_KEY") or "").strip()
        if not key:
            raise RuntimeError("OPENAI_API_KEY is missing")
        self.model = model
        self._client = AsyncOpenAI(
            api_key=key,
            base_url=(os.getenv("OPENAI_BASE_URL") or None),
            timeout=float(os.getenv("OPENAI_TIMEOUT_S", "60")),
            max_retries=int(os.getenv("OPENAI_MAX_RETRIES", "2")),
        )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for start in range(0, len(texts), _OPENAI_BATCH_SIZE):
            batch = texts[start : start + _OPENAI_BATCH_SIZE]
            response = await self._client.embeddings.create(model=self.model, input=batch)
            ordered = sorted(response.data, key=lambda item: item.index)
            vectors.extend(list(item.embedding) for item in ordered)
        return vectors


class SentenceTransformerEmbeddingProvider:
    _model_cache: dict[str, SentenceTransformer] = {}

    def __init__(self, model_name: str = "sentence-transformers/all-MiniLM-L6-v2") -> None:
        self.model_name = model_name

    @classmethod
    def _get_model(cls, model_name: str) -> SentenceTransformer:
        if model_name not in cls._model_cache:
            cls._model_cache[model_name] = SentenceTransformer(model_name)
        return cls._model_cache[model_name]

    def _encode(self, texts: list[str]) -> list[list[float]]:
        model = self._get_model(self.model_name)
        embs = model.encode(texts, normalize_embeddings=True, show_progress_bar=False)
        return np.asarray(embs, dtype="float32").tolist()

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return await asyncio.to_thread(self._encode, texts)


class SimpleEmbeddingProvider:
    def __init__(self, dimension: int = 64) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be greater than 0")
        self.dimension = dimension

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [self._embed_single(text) for text in texts]

    def _embed_single(self, text: str) -> list[float]:
        vector = [0.0] * self.dimension
        tokens = _TOKEN_PATTERN.findall(text.lower())
        for token in tokens:
            digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
            index = int(digest[:8], 16) % self.dimension
            vector[index] += 1.0

        norm = math.sqrt(sum(value * value for value in vector))
        if norm <= 0:
            return vector
        return [value / norm for value in vector]


@lru_cache(maxsize=1)
def get_embedding_provider() -> EmbeddingProvider:
    if settings.embedding_provider == "local":
        return SentenceTransformerEmbeddingProvider(settings.local_embedding_model)
    if settings.embedding_provider == "simple":
        return SimpleEmbeddingProvider(settings.simple_embedding_dimension)
    return OpenAIEmbeddingProvider(settings.embedding_model)


async def generate_embeddings(texts: list[str]) -> list[list[float]]:
    if not texts:
        return []
    clean = [(text or "").replace("\n", " ").strip() for text in texts]
    return await get_embedding_provider().embed(clean)


async def generate_embedding(text: str) -> list[float]:
    vectors = await generate_embeddings([text])
    return vectors[0]


def cosine_similarity(left: list[float], right: list[float]) -> float:
    if len(left) != len(right):
        return 0.0
    a = np.asarray(left, dtype="float64")
    b = np.asarray(right, dtype="float64")
    left_norm = float(np.linalg.norm(a))
    right_norm = float(np.linalg.norm(b))
    if left_norm <= 0 or right_norm <= 0:
        return 0.0
    return float(a @ b) / (left_norm * right_norm)
