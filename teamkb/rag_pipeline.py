"""
Knowledge Service - The Complete Retrieval Engine

This module puts the components together behind the operations the rest of
the knowledge-base application calls:

- semantic_search(query, tags, documents) -> documents
- answer_question(question, documents) -> answer text
- generate_summary / generate_tags / prepare_document for newly saved content

Inputs are supplied in memory by the storage layer; nothing here persists.

LIVE vs FALLBACK:
create_knowledge_service() decides once, at construction, whether the AI
models are available:

    credentials present  ->  EmbeddingRetriever + RAGAnswerSynthesizer
                             + GenerativeEnricher
    credentials missing  ->  KeywordRetriever + HeuristicAnswerSynthesizer
                             + HeuristicEnricher

KnowledgeService itself never checks availability. It validates input,
applies tag filtering, delegates, and never raises to its caller.
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from config.settings import Settings, get_settings
from teamkb.answering import HeuristicAnswerSynthesizer, RAGAnswerSynthesizer
from teamkb.chunking import Document, SentenceChunker
from teamkb.embeddings import (
    EmbeddingCache, EmbeddingCapability, EmbeddingClient, EmbeddingProvider,
)
from teamkb.enrichment import GenerativeEnricher, HeuristicEnricher
from teamkb.generator import GenerationCapability, Generator
from teamkb.heuristics import fallback_answer, fallback_search
from teamkb.retriever import EmbeddingRetriever, KeywordRetriever, filter_by_tags

logger = logging.getLogger(__name__)

NO_QUESTION_MESSAGE = "Please provide a question to answer."
NO_DOCUMENTS_MESSAGE = "No documents available to answer your question."


class Retriever(Protocol):
    async def search(self, query: str, documents: Sequence[Document]) -> List[Document]:
        ...


class AnswerSynthesizer(Protocol):
    async def answer(self, question: str, documents: Sequence[Document]) -> str:
        ...


class Enricher(Protocol):
    async def summarize(self, content: str) -> str:
        ...

    async def extract_tags(self, content: str) -> List[str]:
        ...


class KnowledgeService:
    """
    Semantic search and grounded question answering over documents.

    USAGE:
        service = create_knowledge_service()

        hits = await service.semantic_search("vacation policy", {"hr"}, documents)
        answer = await service.answer_question("How many days off?", documents)
    """

    def __init__(
        self,
        retriever: Retriever,
        answerer: AnswerSynthesizer,
        enricher: Enricher,
        provider: EmbeddingProvider
    ):
        self.retriever = retriever
        self.answerer = answerer
        self.enricher = enricher
        self.provider = provider

    async def semantic_search(
        self,
        query: str,
        tags: Optional[Iterable[str]],
        documents: Sequence[Document]
    ) -> List[Document]:
        """
        Find documents relevant to a query, optionally narrowed by tags.

        - tags only (blank query): every document sharing a tag, in order
        - neither query nor tags: nothing
        - otherwise: the retriever's ranking of the tag-filtered documents
        """
        tag_filter = set(tags or ())
        candidates = filter_by_tags(documents or [], tag_filter)
        if not candidates:
            return []

        if not query or not query.strip():
            return candidates if tag_filter else []

        try:
            return await self.retriever.search(query, candidates)
        except Exception:
            logger.exception("Semantic search failed, using keyword match")
            return fallback_search(query, candidates)

    async def answer_question(self, question: str, documents: Sequence[Document]) -> str:
        """Answer a question from the documents, citing only what they say."""
        if not question or not question.strip():
            return NO_QUESTION_MESSAGE
        if not documents:
            return NO_DOCUMENTS_MESSAGE

        try:
            return await self.answerer.answer(question, documents)
        except Exception:
            logger.exception("Question answering failed, using fallback")
            return fallback_answer(question, documents)

    async def generate_summary(self, content: str) -> str:
        return await self.enricher.summarize(content)

    async def generate_tags(self, content: str) -> List[str]:
        return await self.enricher.extract_tags(content)

    async def prepare_document(
        self,
        title: str,
        content: str,
        tags: Optional[List[str]] = None,
        document_id: Optional[str] = None
    ) -> Document:
        """
        Build a Document ready for storage.

        WHAT HAPPENS:
        1. Summarize the content
        2. Merge the given tags with generated ones (first occurrence wins)
        3. Embed "title summary content" for later semantic search
        """
        summary = await self.generate_summary(content)
        generated = await self.generate_tags(content)
        all_tags = list(dict.fromkeys([*(tags or []), *generated]))

        document = Document(
            id=document_id or uuid.uuid4().hex,
            title=title,
            body=content,
            summary=summary,
            tags=all_tags,
        )
        document.embedding = await self.provider.get_embedding(document.search_text())
        logger.info(
            "Prepared document %s with %d tags (embedded: %s)",
            document.id, len(all_tags), document.embedding is not None,
        )
        return document

    def get_stats(self) -> Dict[str, Any]:
        """Which variants are active, plus embedding cache counters."""
        return {
            "retriever": type(self.retriever).__name__,
            "answerer": type(self.answerer).__name__,
            "enricher": type(self.enricher).__name__,
            "embedding_cache": self.provider.cache.stats(),
        }


def create_knowledge_service(
    settings: Optional[Settings] = None,
    embedding_client: Optional[EmbeddingCapability] = None,
    generator: Optional[GenerationCapability] = None,
    cache: Optional[EmbeddingCache] = None
) -> KnowledgeService:
    """
    Create a KnowledgeService from settings.

    Explicit `embedding_client` / `generator` arguments take precedence over
    the Azure clients built from settings. Search goes live when an embedding
    client exists; answering goes live only when both exist.
    """
    settings = settings or get_settings()
    runtime = settings.runtime
    retrieval = settings.retrieval

    if settings.azure.is_configured:
        if embedding_client is None:
            embedding_client = EmbeddingClient(
                endpoint=settings.azure.endpoint,
                api_key=settings.azure.api_key,
                deployment=settings.azure.embedding_deployment,
                api_version=settings.azure.api_version,
            )
        if generator is None:
            generator = Generator(
                endpoint=settings.azure.endpoint,
                api_key=settings.azure.api_key,
                deployment=settings.azure.chat_deployment,
                api_version=settings.azure.api_version,
            )

    provider = EmbeddingProvider(
        client=embedding_client,
        cache=cache if cache is not None else EmbeddingCache(runtime.embedding_cache_size),
        timeout_seconds=runtime.request_timeout_seconds,
    )
    heuristic_answerer = HeuristicAnswerSynthesizer()

    if embedding_client is not None:
        retriever = EmbeddingRetriever(
            provider,
            threshold=retrieval.search_threshold,
            top_k=retrieval.search_top_k,
            max_concurrency=runtime.max_concurrency,
            timeout_seconds=runtime.scoring_timeout_seconds,
        )
    else:
        retriever = KeywordRetriever()

    if embedding_client is not None and generator is not None:
        answerer = RAGAnswerSynthesizer(
            provider,
            generator,
            fallback=heuristic_answerer,
            chunker=SentenceChunker(settings.chunking.sentences_per_chunk),
            answer_threshold=retrieval.answer_threshold,
            long_chunk_threshold=retrieval.long_chunk_threshold,
            long_chunk_chars=retrieval.long_chunk_chars,
            top_k=retrieval.answer_top_k,
            max_concurrency=runtime.max_concurrency,
            generation_timeout_seconds=runtime.request_timeout_seconds,
            scoring_timeout_seconds=runtime.scoring_timeout_seconds,
        )
    else:
        answerer = heuristic_answerer

    if generator is not None:
        enricher = GenerativeEnricher(generator, timeout_seconds=runtime.request_timeout_seconds)
    else:
        enricher = HeuristicEnricher()

    service = KnowledgeService(retriever, answerer, enricher, provider)
    logger.info("Knowledge service ready: %s", service.get_stats())
    return service
