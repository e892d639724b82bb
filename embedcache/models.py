"""Core data models for embedding records, collections and service stats."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

import numpy as np


def _now() -> int:
    return int(time.time())


@dataclass(eq=False)
class EmbeddingRecord:
    """A single stored embedding with optional source text."""

    values: np.ndarray
    text: str = ""
    timestamp: int = field(default_factory=_now)

    def __post_init__(self):
        self.values = np.asarray(self.values, dtype=np.float32).reshape(-1)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EmbeddingRecord):
            return NotImplemented
        return (
            self.text == other.text
            and self.timestamp == other.timestamp
            and np.array_equal(self.values, other.values, equal_nan=True)
        )


@dataclass
class EmbeddingCollection:
    """A named, versioned batch of embedding records of one dimension."""

    model_name: str
    model_version: str
    dimension: int
    records: list[EmbeddingRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)

    def vectors_and_texts(self) -> tuple[list[np.ndarray], list[str] | None]:
        """Split into vectors and texts.

        Texts are ``None`` when no record carries text. Otherwise the list is
        full length, with empty strings for records that have none.
        """
        vectors = [r.values.copy() for r in self.records]
        if not any(r.text for r in self.records):
            return vectors, None
        return vectors, [r.text for r in self.records]


@dataclass
class SimilarityResult:
    """A candidate and its cosine similarity to a query."""

    id: str
    score: float


@dataclass
class EmbeddingStats:
    """Counters accumulated by an EmbeddingService."""

    embeddings_count: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    encode_errors: int = 0
    processing_time: float = 0.0

    @property
    def hit_rate(self) -> float:
        total = self.cache_hits + self.cache_misses
        return self.cache_hits / total if total else 0.0

    def to_dict(self) -> dict:
        return {
            "embeddings_count": self.embeddings_count,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "encode_errors": self.encode_errors,
            "processing_time": self.processing_time,
            "hit_rate": self.hit_rate,
        }
