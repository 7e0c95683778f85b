# Retrieval and grounded-answer engine for the team knowledge base
from .chunking import Chunk, Document, DocumentLoader, SentenceChunker, split_sentences
from .embeddings import EmbeddingCache, EmbeddingClient, EmbeddingProvider, cosine_similarity
from .heuristics import fallback_answer, fallback_search, keyword_overlap_score, substring_score
from .retriever import EmbeddingRetriever, KeywordRetriever
from .generator import Generator, build_grounded_prompt
from .answering import HeuristicAnswerSynthesizer, RAGAnswerSynthesizer, is_grounded
from .enrichment import GenerativeEnricher, HeuristicEnricher
from .rag_pipeline import KnowledgeService, create_knowledge_service
