"""
Shared test fixtures: scripted stand-ins for the embedding and chat models.

No test touches the network; every vector and every reply is scripted.
"""

import asyncio
import math

import pytest

from config.settings import Settings
from teamkb.chunking import Document


class FakeEmbedder:
    """Returns scripted vectors and records every text it was asked to embed."""

    def __init__(self, vectors=None, default=None, fail_on=(), delays=None):
        self.vectors = dict(vectors or {})
        self.default = default
        self.fail_on = set(fail_on)
        self.delays = dict(delays or {})
        self.calls = []

    async def embed(self, text):
        self.calls.append(text)
        delay = self.delays.get(text)
        if delay:
            await asyncio.sleep(delay)
        if text in self.fail_on:
            raise RuntimeError("embedding service unavailable")
        if text in self.vectors:
            return self.vectors[text]
        if self.default is not None:
            return self.default
        raise RuntimeError(f"no vector scripted for {text!r}")


class FakeGenerator:
    """Returns a fixed reply (or raises) and records every prompt."""

    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


def at_similarity(score):
    """A unit vector whose cosine similarity to [1, 0] is `score`."""
    return [score, math.sqrt(1.0 - score * score)]


QUERY_VECTOR = [1.0, 0.0]


@pytest.fixture
def settings():
    """Default settings with no Azure credentials."""
    return Settings()


@pytest.fixture
def pets_corpus():
    return [
        Document(
            id="1",
            title="Doc1",
            body="Cats are great. Dogs are loyal. Birds can fly.",
        )
    ]
