"""
Retriever Module

Semantic search over an in-memory document collection.

SEARCH FLOW:
1. Narrow the collection by tag (any shared tag keeps a document)
2. A blank query with tags returns the tag matches as they are
3. Otherwise rank by embedding similarity, or fall back to substring match

Two interchangeable retrievers implement step 3:
- EmbeddingRetriever: embeds the query and each document, keeps documents
  at or above the similarity threshold, best first
- KeywordRetriever: case-insensitive substring match, collection order

BOUNDED FAN-OUT:
Per-document (and per-chunk) embeddings run concurrently, at most
`max_concurrency` at a time. Ranking sorts by similarity, then by original
position, so the output never depends on which call finished first.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import (
    Awaitable, Callable, Generic, Iterable, List, Optional, Sequence, TypeVar,
)

from teamkb.chunking import Document
from teamkb.embeddings import (
    EmbeddingProvider, EmbeddingVector, cosine_similarity, passes_threshold,
)
from teamkb.heuristics import ScoringFunction, fallback_search, substring_score

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ScoredCandidate(Generic[T]):
    """An item paired with its similarity score and original position."""
    item: T
    score: float
    index: int


def filter_by_tags(documents: Iterable[Document], tags: Iterable[str]) -> List[Document]:
    """Documents sharing at least one tag with `tags`; all documents if `tags` is empty."""
    wanted = set(tags or ())
    if not wanted:
        return list(documents)
    return [doc for doc in documents if wanted.intersection(doc.tags)]


async def score_all(
    query_vector: EmbeddingVector,
    items: Sequence[T],
    vector_for: Callable[[T], Awaitable[Optional[EmbeddingVector]]],
    max_concurrency: int = 4,
    timeout_seconds: Optional[float] = None
) -> List[Optional[float]]:
    """
    Similarity of every item to the query, in item order.

    An item whose vector is unavailable, or whose dimension differs from the
    query's, scores None.

    Raises:
        asyncio.TimeoutError: if the whole batch exceeds `timeout_seconds`;
            the outstanding calls are cancelled and nothing is returned
    """
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def score_one(item: T) -> Optional[float]:
        async with semaphore:
            vector = await vector_for(item)
        if vector is None:
            return None
        if len(vector) != len(query_vector):
            logger.warning(
                "Skipping vector of dimension %d (query has %d)",
                len(vector), len(query_vector),
            )
            return None
        return cosine_similarity(query_vector, vector)

    batch = asyncio.gather(*(score_one(item) for item in items))
    return await asyncio.wait_for(batch, timeout=timeout_seconds)


def rank_candidates(
    items: Sequence[T],
    scores: Sequence[Optional[float]],
    threshold_for: Callable[[T], float],
    top_k: int
) -> List[ScoredCandidate[T]]:
    """Keep items that clear their threshold; best score first, ties by position."""
    kept = [
        ScoredCandidate(item=item, score=score, index=index)
        for index, (item, score) in enumerate(zip(items, scores))
        if score is not None and passes_threshold(score, threshold_for(item))
    ]
    kept.sort(key=lambda c: (-c.score, c.index))
    return kept[:top_k]


class EmbeddingRetriever:
    """Rank documents by embedding similarity to the query."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        threshold: float = 0.6,
        top_k: int = 10,
        max_concurrency: int = 4,
        timeout_seconds: Optional[float] = None
    ):
        self.provider = provider
        self.threshold = threshold
        self.top_k = top_k
        self.max_concurrency = max_concurrency
        self.timeout_seconds = timeout_seconds

    async def _document_vector(self, doc: Document) -> Optional[EmbeddingVector]:
        # Stored vectors are kept current by the storage layer
        if doc.embedding is not None and len(doc.embedding) > 0:
            return list(doc.embedding)
        return await self.provider.get_embedding(doc.search_text())

    async def search(self, query: str, documents: Sequence[Document]) -> List[Document]:
        query_vector = await self.provider.get_embedding(query)
        if query_vector is None:
            logger.info("Query embedding unavailable, search is inconclusive")
            return []

        try:
            scores = await score_all(
                query_vector,
                documents,
                self._document_vector,
                max_concurrency=self.max_concurrency,
                timeout_seconds=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning("Document scoring timed out after %ss", self.timeout_seconds)
            return []

        ranked = rank_candidates(documents, scores, lambda _: self.threshold, self.top_k)
        logger.debug("Semantic search kept %d of %d documents", len(ranked), len(documents))
        return [candidate.item for candidate in ranked]


class KeywordRetriever:
    """Substring match over title, body, summary and tags."""

    def __init__(self, scorer: ScoringFunction = substring_score):
        self.scorer = scorer

    async def search(self, query: str, documents: Sequence[Document]) -> List[Document]:
        return fallback_search(query, documents, scorer=self.scorer)
