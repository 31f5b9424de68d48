"""
Weighted sampling structures for the Markov chain.

A WeightedCollection is an insertion-ordered list of (value, weight) pairs
with a side index for O(1) lookup. Draws are proportional to weight.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

import numpy as np


class DuplicateValueError(ValueError):
    """Raised when adding a value that is already in the collection."""

    def __init__(self, value: str):
        super().__init__(f"Value {value!r} is already present in the collection")
        self.value = value


class NotFoundError(KeyError):
    """Raised when updating a value that is not in the collection."""

    def __init__(self, value: str):
        super().__init__(value)
        self.value = value

    def __str__(self) -> str:
        return f"Value {self.value!r} is not present in the collection"


_local = threading.local()


def get_rng() -> np.random.Generator:
    """Return the random generator owned by the calling thread."""
    rng = getattr(_local, "rng", None)
    if rng is None:
        rng = np.random.default_rng()
        _local.rng = rng
    return rng


@dataclass(frozen=True)
class WeightedElement:
    value: str
    weight: float

    def __post_init__(self):
        if self.weight <= 0:
            raise ValueError(f"Weight must be positive, got {self.weight} for {self.value!r}")


class WeightedCollection:
    """
    Ordered multiset of WeightedElements keyed by value.

    Usage:
        wc = WeightedCollection()
        wc.add(WeightedElement("cat", 1))
        wc.update(wc.get("cat"), 2)
        element = wc.draw_random()
    """

    def __init__(self, elements: Optional[List[WeightedElement]] = None):
        self._elements: List[WeightedElement] = []
        self._index: Dict[str, int] = {}
        self._total_weight: float = 0.0
        for element in elements or []:
            self.add(element)

    @property
    def total_weight(self) -> float:
        return self._total_weight

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[WeightedElement]:
        return iter(self._elements)

    def __contains__(self, value: object) -> bool:
        return value in self._index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, WeightedCollection):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self) -> str:
        return f"WeightedCollection({self._elements!r})"

    def add(self, element: WeightedElement):
        if element.value in self._index:
            raise DuplicateValueError(element.value)
        self._index[element.value] = len(self._elements)
        self._elements.append(element)
        self._total_weight += element.weight

    def get(self, value: str) -> Optional[WeightedElement]:
        position = self._index.get(value)
        if position is None:
            return None
        return self._elements[position]

    def update(self, element: WeightedElement, new_weight: float) -> WeightedElement:
        """
        Replace the weight of an existing element in place.

        Args:
            element: Element (or any element with the same value) to update
            new_weight: Replacement weight, must be positive

        Returns:
            The stored replacement element
        """
        position = self._index.get(element.value)
        if position is None:
            raise NotFoundError(element.value)
        old = self._elements[position]
        replacement = WeightedElement(old.value, new_weight)
        self._elements[position] = replacement
        self._total_weight += replacement.weight - old.weight
        return replacement

    def draw_random(self, rng: Optional[np.random.Generator] = None) -> Optional[WeightedElement]:
        """
        Select an element with probability weight / total_weight.

        Returns None only when the collection is empty.
        """
        if not self._elements:
            return None

        rng = rng or get_rng()
        r = rng.random() * self._total_weight
        cumulative = 0.0
        for element in self._elements:
            cumulative += element.weight
            if cumulative > r:
                return element
        # Float accumulation can land a hair under r
        return self._elements[-1]

    def as_dict(self) -> Dict[str, float]:
        return {e.value: e.weight for e in self._elements}
