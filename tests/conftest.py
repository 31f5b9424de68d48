"""
Shared pytest fixtures for Markov chain tests.
"""
from typing import Dict, List

import numpy as np
import pytest

from parrot.services import chain_cache, message_store
from parrot.services.chain_cache import ChainCache
from parrot.services.message_store import InMemoryMessageStore


# Messages as they would come out of the store for two users
SAMPLE_MESSAGES = {
    "1001": [
        "the cat sat on the mat.",
        "the dog ran in the park!",
        "honestly I think the cat is smarter than the dog",
        "did you see the game last night?",
        "hi there",
    ],
    "1002": [
        "good morning everyone, coffee time!",
        "I agree. Coffee first then work",
        "ok",
        "anyone up for a game tonight?",
    ],
}


@pytest.fixture
def sample_messages() -> Dict[str, List[str]]:
    """Stored messages keyed by user id."""
    return {uid: list(texts) for uid, texts in SAMPLE_MESSAGES.items()}


@pytest.fixture
def sample_corpus() -> List[str]:
    """Two short messages with a shared start word."""
    return ["the cat sat on the mat.", "the dog ran in the park!"]


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator for reproducible draws."""
    return np.random.default_rng(42)


@pytest.fixture
def memory_store(sample_messages) -> InMemoryMessageStore:
    """In-memory store with both sample users opted in."""
    return InMemoryMessageStore(sample_messages, opted_in=sample_messages.keys())


@pytest.fixture(autouse=True)
def isolated_singletons(memory_store, monkeypatch):
    """Give each test its own store and chain cache."""
    monkeypatch.setattr(message_store, "_store", memory_store)
    monkeypatch.setattr(chain_cache, "_cache", ChainCache(max_size=8))
    yield


class FixedRandom:
    """Stand-in generator returning a fixed uniform value."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value

    def integers(self, low, high=None):
        return low if high is not None else 0
