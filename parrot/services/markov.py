"""
First-order Markov chain text generator (CPU-only).
Learns word transitions from a user's messages and generates sentences
that mimic their phrasing. The chain is rebuilt from raw text on each load.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Set, Union

import numpy as np

from parrot.config import settings
from .weighted import WeightedCollection, WeightedElement, get_rng

logger = logging.getLogger(__name__)

# Marks "the sample ended after this word". Never a dictionary key.
END_WORD = "\x00END_WORD\x00"

END_WORD_STOPS = (".", "!", "?")

# A sentence ending in any of these is left as-is
TERMINAL_CHARS = frozenset(".!?`+>-=_:@~;'#[]{}()/|\\")

# Appended when the punctuation draw comes back empty
PUNCTUATION_FALLBACK = "@@@@@@@"

# Sentence-ending frequencies sampled from real user messages
SENTENCE_ENDS = WeightedCollection([
    WeightedElement(".", 0.4369),
    WeightedElement("!", 0.1660),
    WeightedElement("?", 0.2733),
    WeightedElement("!!", 0.0132),
    WeightedElement("??", 0.0114),
    WeightedElement("!?", 0.0027),
    WeightedElement("...", 0.0965),
])


class InputTooShortError(ValueError):
    """Raised when a training sample has too few tokens to carry transitions."""

    def __init__(self, sample: str, token_count: int, min_tokens: int = 3):
        super().__init__(
            f"Input {sample!r} is too short: {token_count} tokens, need at least {min_tokens}"
        )
        self.sample = sample
        self.token_count = token_count
        self.min_tokens = min_tokens


def is_end_word(word: str) -> bool:
    return word.endswith(END_WORD_STOPS)


class MarkovChain:
    """
    Word-level Markov chain trained once and read-only afterwards.

    Training marks tokens ending in . ! ? as end words that transition to
    END_WORD instead of the next token, so sentences inside one message
    are never fused together.

    Usage:
        chain = MarkovChain(["the cat sat on the mat.", "the dog ran in the park!"])
        chain.generate_one()   # "the dog ran in the mat."
        chain.generate_many()  # one to five sentences
    """

    def __init__(
        self,
        samples: Iterable[str] = (),
        skip_short: bool = True,
        min_tokens: int = 3,
        max_words: int = 100,
        rng: Optional[np.random.Generator] = None,
    ):
        """
        Build the chain from raw text samples.

        Args:
            samples: Message bodies to learn from
            skip_short: Drop samples under min_tokens and keep going.
                When False the first short sample aborts the build.
            min_tokens: Minimum whitespace-separated tokens per sample
            max_words: Maximum words appended to a single generated sentence
            rng: Random generator; defaults to one per calling thread.
                An injected generator is shared by every caller, so pass one
                only for seeded tests or single-threaded use.
        """
        self.min_tokens = min_tokens
        self.max_words = max_words
        self._rng = rng

        self.transitions: Dict[str, WeightedCollection] = {}
        self.start_words: List[str] = []
        self._start_set: Set[str] = set()
        self.end_words: Set[str] = set()

        self.sample_count = 0
        self.skipped_count = 0

        for sample in samples:
            try:
                self._parse_sample(sample)
                self.sample_count += 1
            except InputTooShortError as e:
                if not skip_short:
                    raise
                self.skipped_count += 1
                logger.debug(f"[Markov] Skipping sample: {e}")

    # --- training ---
    def _tokenize(self, text: str) -> List[str]:
        return text.split()

    def _parse_sample(self, sample: str):
        tokens = self._tokenize(sample)
        if len(tokens) < self.min_tokens:
            raise InputTooShortError(sample, len(tokens), self.min_tokens)

        last = len(tokens) - 1
        for i, word in enumerate(tokens):
            if i == 0 and word not in self._start_set:
                self._start_set.add(word)
                self.start_words.append(word)

            if is_end_word(word):
                self.end_words.add(word)
                self._record(word, END_WORD)
                continue

            if i == last:
                self._record(word, END_WORD)
                break

            next_word = tokens[i + 1]
            if not next_word:
                continue
            self._record(word, next_word)

    def _record(self, word: str, follow_word: str):
        followers = self.transitions.get(word)
        if followers is None:
            self.transitions[word] = WeightedCollection([WeightedElement(follow_word, 1)])
            return

        existing = followers.get(follow_word)
        if existing is None:
            followers.add(WeightedElement(follow_word, 1))
        else:
            followers.update(existing, existing.weight + 1)

    # --- generation ---
    @property
    def is_empty(self) -> bool:
        return not self.start_words

    def _random(self) -> np.random.Generator:
        return self._rng or get_rng()

    def _walk(self, rng: np.random.Generator) -> List[str]:
        word = self.start_words[int(rng.integers(len(self.start_words)))]
        sentence = [word]

        for _ in range(self.max_words):
            followers = self.transitions.get(word)
            if followers is None:
                break
            drawn = followers.draw_random(rng)
            if drawn is None or drawn.value == END_WORD:
                break
            word = drawn.value
            sentence.append(word)
            if word in self.end_words:
                break
        else:
            logger.warning(f"[Markov] Walk hit the {self.max_words} word limit, stopping")

        return sentence

    def generate_one(self) -> str:
        """
        Generate a single sentence.

        Returns:
            The sentence, ending in punctuation. Empty string for an empty chain.
        """
        if self.is_empty:
            return ""

        rng = self._random()
        text = " ".join(self._walk(rng))
        logger.debug(f"[Markov] Generated: {text}")

        if text and text[-1] not in TERMINAL_CHARS:
            end = SENTENCE_ENDS.draw_random(rng)
            if end is None:
                logger.warning("[Markov] No sentence end drawn, using fallback marker")
                text += PUNCTUATION_FALLBACK
            else:
                text += end.value
        return text

    def generate_many(
        self,
        min_sentences: int = 1,
        max_sentences: int = 5,
    ) -> str:
        """
        Generate between min_sentences and max_sentences sentences (inclusive),
        joined by a single space.
        """
        if self.is_empty:
            return ""

        count = int(self._random().integers(min_sentences, max_sentences + 1))
        return " ".join(self.generate_one() for _ in range(count))

    def stats(self) -> Dict[str, int]:
        return {
            "samples": self.sample_count,
            "skipped": self.skipped_count,
            "words": len(self.transitions),
            "start_words": len(self.start_words),
            "end_words": len(self.end_words),
            "transitions": sum(len(f) for f in self.transitions.values()),
        }


def train_from_corpus(lines: List[str], **kwargs) -> MarkovChain:
    return MarkovChain(lines, **kwargs)


def load(user_ids: Union[int, str, Iterable[Union[int, str]]], store, **kwargs) -> MarkovChain:
    """
    Build a chain from every stored message of the given users.

    Args:
        user_ids: One user identifier or a collection of them (blended chain)
        store: Message store providing get_by_users()
        **kwargs: Overrides for MarkovChain options

    Returns:
        A freshly built MarkovChain
    """
    if isinstance(user_ids, (int, str)):
        user_ids = [user_ids]
    ids = sorted({str(u) for u in user_ids})

    options = {
        "skip_short": settings.MARKOV_SKIP_SHORT_INPUTS,
        "min_tokens": settings.MARKOV_MIN_TOKENS,
        "max_words": settings.MARKOV_MAX_WORDS,
    }
    options.update(kwargs)

    samples = store.get_by_users(ids)
    chain = MarkovChain(samples, **options)
    logger.info(
        f"[Markov] Loaded chain for {ids}: "
        f"{chain.sample_count} samples, {chain.skipped_count} skipped"
    )
    return chain
