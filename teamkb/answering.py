"""
Answer Synthesis

Retrieval-augmented question answering over the document collection.

RAG FLOW:
┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐
│ Question │───▶│Embedding │───▶│  Score   │───▶│  Top 3   │
│          │    │          │    │  chunks  │    │  chunks  │
└──────────┘    └──────────┘    └──────────┘    └────┬─────┘
                                                     ▼
┌──────────┐    ┌──────────────┐    ┌──────────────────────┐
│  Answer  │◀───│ Groundedness │◀───│ Chat model, prompt   │
│          │    │ check        │    │ with excerpts only   │
└──────────┘    └──────────────┘    └──────────────────────┘

Every failure along the way (no question vector, no chunk above its
threshold, scoring deadline, generation error, ungrounded answer) hands the
question to the keyword heuristic instead.

CHUNK THRESHOLDS:
Chunks longer than `long_chunk_chars` must reach `long_chunk_threshold`;
shorter chunks need only `answer_threshold`.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from teamkb.chunking import Chunk, Document, SentenceChunker
from teamkb.embeddings import EmbeddingProvider, EmbeddingVector
from teamkb.generator import GenerationCapability, build_grounded_prompt
from teamkb.heuristics import (
    NOT_ENOUGH_INFORMATION, ScoringFunction, fallback_answer, keyword_overlap_score,
)
from teamkb.retriever import rank_candidates, score_all

logger = logging.getLogger(__name__)

EXCERPT_PREFIX_CHARS = 20


def is_grounded(
    answer: Optional[str],
    excerpts: Sequence[Chunk],
    fallback_phrase: str = NOT_ENOUGH_INFORMATION
) -> bool:
    """
    Whether a generated answer can be traced back to its excerpts.

    The answer must be non-empty, must not contain the fallback phrase, and
    must either mention an excerpt's source title or quote the first
    characters of an excerpt (case-insensitive).
    """
    if not answer or not answer.strip():
        return False

    lowered = answer.lower()
    if fallback_phrase.lower() in lowered:
        return False

    cites_title = any(
        chunk.title and chunk.title.lower() in lowered for chunk in excerpts
    )
    quotes_excerpt = any(
        chunk.text and chunk.text[:EXCERPT_PREFIX_CHARS].lower() in lowered
        for chunk in excerpts
    )
    return cites_title or quotes_excerpt


class HeuristicAnswerSynthesizer:
    """Answer with the best keyword-matching sentence in the corpus."""

    def __init__(self, scorer: ScoringFunction = keyword_overlap_score):
        self.scorer = scorer

    async def answer(self, question: str, documents: Sequence[Document]) -> str:
        return fallback_answer(question, documents, scorer=self.scorer)


class RAGAnswerSynthesizer:
    """Answer from the top-scoring chunks through the chat model."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        generator: GenerationCapability,
        fallback: Optional[HeuristicAnswerSynthesizer] = None,
        chunker: Optional[SentenceChunker] = None,
        answer_threshold: float = 0.6,
        long_chunk_threshold: float = 0.75,
        long_chunk_chars: int = 200,
        top_k: int = 3,
        max_concurrency: int = 4,
        generation_timeout_seconds: Optional[float] = None,
        scoring_timeout_seconds: Optional[float] = None
    ):
        self.provider = provider
        self.generator = generator
        self.fallback = fallback or HeuristicAnswerSynthesizer()
        self.chunker = chunker or SentenceChunker()
        self.answer_threshold = answer_threshold
        self.long_chunk_threshold = long_chunk_threshold
        self.long_chunk_chars = long_chunk_chars
        self.top_k = top_k
        self.max_concurrency = max_concurrency
        self.generation_timeout_seconds = generation_timeout_seconds
        self.scoring_timeout_seconds = scoring_timeout_seconds

    def threshold_for(self, chunk: Chunk) -> float:
        if len(chunk.text) > self.long_chunk_chars:
            return self.long_chunk_threshold
        return self.answer_threshold

    async def _chunk_vector(self, chunk: Chunk) -> Optional[EmbeddingVector]:
        return await self.provider.get_embedding(chunk.text)

    async def _top_chunks(
        self, question_vector: EmbeddingVector, chunks: List[Chunk]
    ) -> List[Chunk]:
        scores = await score_all(
            question_vector,
            chunks,
            self._chunk_vector,
            max_concurrency=self.max_concurrency,
            timeout_seconds=self.scoring_timeout_seconds,
        )
        ranked = rank_candidates(chunks, scores, self.threshold_for, self.top_k)
        return [candidate.item for candidate in ranked]

    async def _generate(self, prompt: str) -> Optional[str]:
        try:
            return await asyncio.wait_for(
                self.generator.generate(prompt),
                timeout=self.generation_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Answer generation timed out after %ss", self.generation_timeout_seconds
            )
        except Exception:
            logger.exception("Answer generation failed, using fallback")
        return None

    async def answer(self, question: str, documents: Sequence[Document]) -> str:
        chunks = list(self.chunker.chunk_all(list(documents)))

        question_vector = await self.provider.get_embedding(question)
        if question_vector is None:
            logger.info("Question embedding unavailable, using fallback")
            return await self.fallback.answer(question, documents)

        try:
            excerpts = await self._top_chunks(question_vector, chunks)
        except asyncio.TimeoutError:
            logger.warning(
                "Chunk scoring exceeded %ss, discarding partial scores",
                self.scoring_timeout_seconds,
            )
            return await self.fallback.answer(question, documents)

        if not excerpts:
            logger.info("No chunk cleared its threshold (%d scored)", len(chunks))
            return await self.fallback.answer(question, documents)

        answer = await self._generate(build_grounded_prompt(question, excerpts))
        answer = (answer or "").strip()

        if not is_grounded(answer, excerpts):
            logger.info("Generated answer is not grounded in its excerpts, using fallback")
            return await self.fallback.answer(question, documents)

        return answer
