import pytest

from conftest import QUERY_VECTOR, FakeEmbedder, FakeGenerator, at_similarity
from teamkb.answering import HeuristicAnswerSynthesizer, RAGAnswerSynthesizer
from teamkb.chunking import Document
from teamkb.embeddings import EmbeddingCache
from teamkb.enrichment import GenerativeEnricher, HeuristicEnricher
from teamkb.rag_pipeline import (
    NO_DOCUMENTS_MESSAGE, NO_QUESTION_MESSAGE, create_knowledge_service,
)
from teamkb.retriever import EmbeddingRetriever, KeywordRetriever


@pytest.fixture
def tagged_corpus():
    return [
        Document(id="1", title="First", body="Alpha.", tags=["x", "y"]),
        Document(id="2", title="Second", body="Beta.", tags=["z"]),
        Document(id="3", title="Third", body="Gamma.", tags=["x"]),
    ]


class TestVariantSelection:
    def test_no_capabilities_selects_heuristics(self, settings):
        service = create_knowledge_service(settings)
        assert isinstance(service.retriever, KeywordRetriever)
        assert isinstance(service.answerer, HeuristicAnswerSynthesizer)
        assert isinstance(service.enricher, HeuristicEnricher)

    def test_both_capabilities_select_live_variants(self, settings):
        service = create_knowledge_service(
            settings, embedding_client=FakeEmbedder(), generator=FakeGenerator()
        )
        assert isinstance(service.retriever, EmbeddingRetriever)
        assert isinstance(service.answerer, RAGAnswerSynthesizer)
        assert isinstance(service.enricher, GenerativeEnricher)

    def test_embeddings_without_generation(self, settings):
        service = create_knowledge_service(settings, embedding_client=FakeEmbedder())
        assert isinstance(service.retriever, EmbeddingRetriever)
        assert isinstance(service.answerer, HeuristicAnswerSynthesizer)

    def test_injected_cache_is_used(self, settings):
        cache = EmbeddingCache(max_entries=3)
        service = create_knowledge_service(settings, cache=cache)
        assert service.provider.cache is cache
        assert service.get_stats()["embedding_cache"]["size"] == 0


class TestSemanticSearch:
    @pytest.mark.asyncio
    async def test_empty_collection(self, settings):
        service = create_knowledge_service(
            settings, embedding_client=FakeEmbedder(default=QUERY_VECTOR)
        )
        assert await service.semantic_search("anything", {"x"}, []) == []
        assert await service.semantic_search("anything", set(), []) == []

    @pytest.mark.asyncio
    async def test_tags_only_returns_filtered_in_order(self, settings, tagged_corpus):
        embedder = FakeEmbedder(default=QUERY_VECTOR)
        service = create_knowledge_service(settings, embedding_client=embedder)

        results = await service.semantic_search("", {"x"}, tagged_corpus)

        assert [d.id for d in results] == ["1", "3"]
        assert embedder.calls == []

    @pytest.mark.asyncio
    async def test_tag_only_scenario(self, settings):
        corpus = [
            Document(id="1", title="A", body="a.", tags=["x", "y"]),
            Document(id="2", title="B", body="b.", tags=["z"]),
        ]
        service = create_knowledge_service(settings)
        assert await service.semantic_search("", {"x"}, corpus) == [corpus[0]]

    @pytest.mark.asyncio
    async def test_no_criteria_returns_empty(self, settings, tagged_corpus):
        service = create_knowledge_service(settings)
        assert await service.semantic_search("   ", set(), tagged_corpus) == []

    @pytest.mark.asyncio
    async def test_no_tag_match_returns_empty(self, settings, tagged_corpus):
        service = create_knowledge_service(settings)
        assert await service.semantic_search("alpha", {"missing"}, tagged_corpus) == []

    @pytest.mark.asyncio
    async def test_substring_fallback_without_embeddings(self, settings, pets_corpus):
        service = create_knowledge_service(settings)
        assert await service.semantic_search("dogs", set(), pets_corpus) == pets_corpus

    @pytest.mark.asyncio
    async def test_tags_narrow_semantic_ranking(self, settings, tagged_corpus):
        embedder = FakeEmbedder(vectors={"query": QUERY_VECTOR}, default=at_similarity(0.8))
        service = create_knowledge_service(settings, embedding_client=embedder)

        results = await service.semantic_search("query", ["x"], tagged_corpus)

        assert [d.id for d in results] == ["1", "3"]
        assert tagged_corpus[1].search_text() not in embedder.calls

    @pytest.mark.asyncio
    async def test_retriever_crash_degrades_to_keyword_match(self, settings, pets_corpus):
        class BrokenRetriever:
            async def search(self, query, documents):
                raise RuntimeError("boom")

        service = create_knowledge_service(settings)
        service.retriever = BrokenRetriever()

        assert await service.semantic_search("dogs", None, pets_corpus) == pets_corpus


class TestAnswerQuestion:
    @pytest.mark.asyncio
    async def test_blank_question(self, settings, pets_corpus):
        service = create_knowledge_service(settings)
        assert await service.answer_question("", pets_corpus) == NO_QUESTION_MESSAGE
        assert await service.answer_question("  ", pets_corpus) == NO_QUESTION_MESSAGE

    @pytest.mark.asyncio
    async def test_no_documents(self, settings):
        service = create_knowledge_service(
            settings, embedding_client=FakeEmbedder(), generator=FakeGenerator()
        )
        assert await service.answer_question("Anything?", []) == NO_DOCUMENTS_MESSAGE

    @pytest.mark.asyncio
    async def test_heuristic_answer_without_models(self, settings, pets_corpus):
        service = create_knowledge_service(settings)
        assert await service.answer_question("What about dogs?", pets_corpus) == (
            'Based on the document "Doc1", here\'s what I found: Dogs are loyal.'
        )

    @pytest.mark.asyncio
    async def test_grounded_answer_is_returned(self, settings, pets_corpus):
        embedder = FakeEmbedder(
            vectors={"What about dogs?": QUERY_VECTOR}, default=at_similarity(0.9)
        )
        generator = FakeGenerator(reply="Per Doc1, dogs are loyal.")
        service = create_knowledge_service(settings, embedding_client=embedder, generator=generator)

        assert await service.answer_question("What about dogs?", pets_corpus) == (
            "Per Doc1, dogs are loyal."
        )

    @pytest.mark.asyncio
    async def test_answerer_crash_degrades_to_heuristic(self, settings, pets_corpus):
        class BrokenAnswerer:
            async def answer(self, question, documents):
                raise RuntimeError("boom")

        service = create_knowledge_service(settings)
        service.answerer = BrokenAnswerer()

        answer = await service.answer_question("What about dogs?", pets_corpus)
        assert answer.startswith('Based on the document "Doc1"')


class TestPrepareDocument:
    @pytest.mark.asyncio
    async def test_heuristic_preparation(self, settings):
        service = create_knowledge_service(settings)

        doc = await service.prepare_document(
            "Deploys", "Deploys happen weekly. Rollbacks need approval.", tags=["ops", "deploys"],
            document_id="42",
        )

        assert doc.id == "42"
        assert doc.summary == "Deploys happen weekly. Rollbacks need approval."
        assert doc.tags == ["ops", "deploys", "happen", "weekly", "rollbacks", "need"]
        assert doc.embedding is None

    @pytest.mark.asyncio
    async def test_live_preparation_embeds_search_text(self, settings):
        embedder = FakeEmbedder(default=[0.5, 0.5])
        generator = FakeGenerator(reply="ops, deploys , release")
        service = create_knowledge_service(settings, embedding_client=embedder, generator=generator)

        doc = await service.prepare_document("Deploys", "Deploys happen weekly.", tags=["ops"])

        assert doc.tags == ["ops", "deploys", "release"]
        assert doc.summary == "ops, deploys , release"
        assert doc.embedding == [0.5, 0.5]
        assert embedder.calls == [doc.search_text()]
        assert len(doc.id) == 32
