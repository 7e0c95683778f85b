"""
Embeddings Module

WHAT ARE EMBEDDINGS:
Embeddings convert text into vectors (lists of numbers) that capture meaning.
Similar texts have similar vectors, so related documents can be found with
vector math instead of keyword matching.

WHAT THIS MODULE PROVIDES:
1. cosine_similarity: the similarity score used for every ranking decision
2. EmbeddingClient: thin async wrapper over the Azure OpenAI embeddings API
3. EmbeddingCache: bounded LRU memo from exact input text to its vector
4. EmbeddingProvider: cache + client, never raises, returns None when the
   model is unavailable, the text is empty, or the call fails

DISTANCE METRIC:
- Cosine Similarity: Measures angle between vectors
  - 1.0 = identical direction
  - 0.0 = perpendicular (unrelated)
  - -1.0 = opposite (rare in practice)

A zero vector has no direction. Its similarity is reported as NaN and
passes_threshold() rejects it, so it can never count as a match.
"""

import asyncio
import logging
import math
import threading
from collections import OrderedDict
from typing import Dict, List, Optional, Protocol

import numpy as np
from openai import AsyncAzureOpenAI

from config.settings import get_settings

logger = logging.getLogger(__name__)

EmbeddingVector = List[float]


def cosine_similarity(vec1: EmbeddingVector, vec2: EmbeddingVector) -> float:
    """
    Calculate cosine similarity between two vectors.

    FORMULA:
    cosine_similarity = (A · B) / (||A|| * ||B||)

    Returns NaN when either vector has zero magnitude.

    EXAMPLE:
    A = [1, 0, 0], B = [1, 0, 0]  ->  1.0
    A = [1, 0, 0], B = [0, 1, 0]  ->  0.0
    """
    a = np.asarray(vec1, dtype=float)
    b = np.asarray(vec2, dtype=float)

    magnitude_a = np.linalg.norm(a)
    magnitude_b = np.linalg.norm(b)

    if magnitude_a == 0 or magnitude_b == 0:
        return float("nan")

    return float(np.dot(a, b) / (magnitude_a * magnitude_b))


def passes_threshold(score: float, threshold: float) -> bool:
    """A score qualifies only if it is finite and at least `threshold`."""
    return math.isfinite(score) and score >= threshold


class EmbeddingCapability(Protocol):
    """Anything that can turn text into a vector. May raise on failure."""

    async def embed(self, text: str) -> EmbeddingVector:
        ...


class EmbeddingClient:
    """
    Client for generating embeddings using Azure OpenAI.

    Errors from the SDK propagate; EmbeddingProvider is the point of call
    that catches and logs them.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        deployment: Optional[str] = None,
        api_version: Optional[str] = None
    ):
        """
        Initialize the embedding client.

        Args:
            endpoint: Azure OpenAI endpoint (defaults to settings)
            api_key: API key (defaults to settings)
            deployment: Deployment name (defaults to settings)
            api_version: API version (defaults to settings)
        """
        settings = get_settings()

        self.endpoint = endpoint or settings.azure.endpoint
        self.api_key = api_key or settings.azure.api_key
        self.deployment = deployment or settings.azure.embedding_deployment
        self.api_version = api_version or settings.azure.api_version

        self.client = AsyncAzureOpenAI(
            azure_endpoint=self.endpoint,
            api_key=self.api_key,
            api_version=self.api_version
        )

    async def embed(self, text: str) -> EmbeddingVector:
        """Generate the embedding vector for a single text."""
        response = await self.client.embeddings.create(
            input=text,
            model=self.deployment  # In Azure, this is the deployment name
        )
        return list(response.data[0].embedding)


class EmbeddingCache:
    """
    Bounded LRU cache from exact text to embedding vector.

    Shared by every request a service instance handles. Reads and writes
    are guarded by a lock; two concurrent misses for the same text may both
    compute it, and the last write wins.
    """

    def __init__(self, max_entries: int = 2048):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, EmbeddingVector]" = OrderedDict()
        self._lock = threading.Lock()
        self._stats = {"hits": 0, "misses": 0, "evictions": 0}

    def get(self, text: str) -> Optional[EmbeddingVector]:
        with self._lock:
            vector = self._entries.get(text)
            if vector is None:
                self._stats["misses"] += 1
                return None
            self._entries.move_to_end(text)
            self._stats["hits"] += 1
            return vector

    def set(self, text: str, vector: EmbeddingVector) -> None:
        with self._lock:
            self._entries[text] = vector
            self._entries.move_to_end(text)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
                self._stats["evictions"] += 1

    def __contains__(self, text: str) -> bool:
        with self._lock:
            return text in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, int]:
        """Return hit/miss/eviction counters and current size."""
        with self._lock:
            return {**self._stats, "size": len(self._entries)}


class EmbeddingProvider:
    """
    Memoized, failure-tolerant access to an embedding capability.

    get_embedding() returns None instead of raising when:
    - the text is empty
    - no capability is configured (client is None)
    - the call fails or exceeds the per-call timeout
    """

    def __init__(
        self,
        client: Optional[EmbeddingCapability] = None,
        cache: Optional[EmbeddingCache] = None,
        timeout_seconds: Optional[float] = None
    ):
        self.client = client
        self.cache = cache if cache is not None else EmbeddingCache()
        self.timeout_seconds = timeout_seconds

    @property
    def available(self) -> bool:
        return self.client is not None

    async def get_embedding(self, text: str) -> Optional[EmbeddingVector]:
        if not text or self.client is None:
            return None

        cached = self.cache.get(text)
        if cached is not None:
            logger.debug("Embedding cache hit (%d chars)", len(text))
            return cached

        try:
            vector = await asyncio.wait_for(
                self.client.embed(text), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning("Embedding call timed out after %ss", self.timeout_seconds)
            return None
        except Exception:
            logger.exception("Embedding error")
            return None

        if vector is None or len(vector) == 0:
            logger.warning("Embedding capability returned an empty vector")
            return None

        vector = [float(x) for x in vector]
        self.cache.set(text, vector)
        return vector
