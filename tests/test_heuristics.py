from teamkb.chunking import Document
from teamkb.heuristics import (
    NOT_ENOUGH_INFORMATION,
    fallback_answer,
    fallback_search,
    fallback_summary,
    fallback_tags,
    keyword_overlap_score,
    substring_score,
    tokenize,
)


def test_tokenize_lowercases_and_drops_punctuation():
    assert tokenize("What about DOGS?") == ["what", "about", "dogs"]


def test_keyword_overlap_counts_substring_hits():
    assert keyword_overlap_score("Dogs are loyal.", "What about dogs?") == 1.0
    assert keyword_overlap_score("Cats are great.", "What about dogs?") == 0.0


def test_substring_score():
    assert substring_score("Dogs are loyal.", "DOGS") == 1.0
    assert substring_score("Dogs are loyal.", "cats") == 0.0
    assert substring_score("Dogs are loyal.", "   ") == 0.0


def test_substring_score_keeps_surrounding_spaces():
    assert substring_score("hotdogs rule", " dogs") == 0.0
    assert substring_score("Cats and dogs", " dogs") == 1.0


class TestFallbackAnswer:
    def test_quotes_best_sentence(self, pets_corpus):
        assert fallback_answer("What about dogs?", pets_corpus) == (
            'Based on the document "Doc1", here\'s what I found: Dogs are loyal.'
        )

    def test_no_overlap_returns_not_enough_information(self, pets_corpus):
        assert fallback_answer("quantum", pets_corpus) == NOT_ENOUGH_INFORMATION

    def test_first_seen_wins_ties(self):
        docs = [
            Document(id="1", title="First", body="Budget approved. Nothing else."),
            Document(id="2", title="Second", body="Budget approved again."),
        ]
        assert fallback_answer("budget", docs) == (
            'Based on the document "First", here\'s what I found: Budget approved.'
        )

    def test_higher_score_later_in_corpus_wins(self):
        docs = [
            Document(id="1", title="First", body="The budget is set."),
            Document(id="2", title="Second", body="The budget review is in March."),
        ]
        answer = fallback_answer("When is the budget review?", docs)
        assert answer.startswith('Based on the document "Second"')

    def test_empty_inputs(self, pets_corpus):
        assert fallback_answer("", pets_corpus) == NOT_ENOUGH_INFORMATION
        assert fallback_answer("dogs", []) == NOT_ENOUGH_INFORMATION


class TestFallbackSearch:
    def test_matches_body(self, pets_corpus):
        assert fallback_search("dogs", pets_corpus) == pets_corpus

    def test_matches_title_summary_and_tags_in_order(self):
        docs = [
            Document(id="1", title="Onboarding", body="x"),
            Document(id="2", title="Other", body="y", summary="covers onboarding"),
            Document(id="3", title="Misc", body="z", tags=["Onboarding-2024"]),
            Document(id="4", title="Unrelated", body="nothing here"),
        ]
        assert [d.id for d in fallback_search("ONBOARDING", docs)] == ["1", "2", "3"]

    def test_custom_scorer(self, pets_corpus):
        never = lambda text, query: 0.0
        assert fallback_search("dogs", pets_corpus, scorer=never) == []


def test_fallback_summary_takes_first_three_sentences():
    text = "One. Two. Three. Four."
    assert fallback_summary(text) == "One. Two. Three."


def test_fallback_tags_skip_short_and_stop_words():
    text = "This release improves search. Search results load faster with caching."
    assert fallback_tags(text) == ["release", "improves", "search", "results", "load"]
