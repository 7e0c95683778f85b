"""
Fallback Heuristics

Deterministic, non-AI substitutes used whenever the embedding or generation
models are unavailable, fail, or produce an answer that cannot be traced
back to the documents.

Each heuristic is built on a scoring function with the shape
`score(text, query) -> float`, so the fallback path can be tested without
any model in the loop.
"""

import re
from typing import Callable, List, Optional, Sequence

from teamkb.chunking import Document, split_sentences

ScoringFunction = Callable[[str, str], float]

NOT_ENOUGH_INFORMATION = (
    "I don't have enough information in the available documents to answer this question."
)

TAG_STOP_WORDS = frozenset(
    ["the", "and", "that", "have", "for", "not", "you", "with", "this"]
)

WORD_SPLIT = re.compile(r"\W+")


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens, duplicates kept."""
    return [t for t in WORD_SPLIT.split(text.lower()) if t]


def keyword_overlap_score(text: str, query: str) -> float:
    """Number of query tokens that occur as substrings of `text`."""
    haystack = text.lower()
    return float(sum(1 for token in tokenize(query) if token in haystack))


def substring_score(text: str, query: str) -> float:
    """1.0 if the whole query occurs in `text` (case-insensitive), else 0.0."""
    if not query or not query.strip():
        return 0.0
    return 1.0 if query.lower() in text.lower() else 0.0


def fallback_answer(
    question: str,
    documents: Sequence[Document],
    scorer: ScoringFunction = keyword_overlap_score
) -> str:
    """
    Quote the single best-matching sentence in the corpus.

    Sentences are visited document by document, in order; the first sentence
    to reach the highest score wins ties.
    """
    if not question or not question.strip() or not documents:
        return NOT_ENOUGH_INFORMATION

    best_score = 0.0
    best: Optional[tuple] = None

    for doc in documents:
        for sentence in split_sentences(doc.body):
            score = scorer(sentence, question)
            if score > best_score:
                best_score = score
                best = (doc, sentence)

    if best is None:
        return NOT_ENOUGH_INFORMATION

    doc, sentence = best
    return f'Based on the document "{doc.title}", here\'s what I found: {sentence}'


def fallback_search(
    query: str,
    documents: Sequence[Document],
    scorer: ScoringFunction = substring_score
) -> List[Document]:
    """Documents whose title, body, summary or any tag match the query, in order."""
    results = []
    for doc in documents:
        fields = [doc.title or "", doc.body or "", doc.summary or ""] + list(doc.tags)
        if any(scorer(value, query) > 0 for value in fields):
            results.append(doc)
    return results


def fallback_summary(content: str, max_sentences: int = 3) -> str:
    """The first few sentences of the content."""
    return " ".join(split_sentences(content)[:max_sentences])


def fallback_tags(content: str, max_tags: int = 5) -> List[str]:
    """Distinct words longer than three letters, in order of appearance."""
    words = [
        w for w in tokenize(content)
        if len(w) > 3 and w not in TAG_STOP_WORDS
    ]
    return list(dict.fromkeys(words))[:max_tags]
