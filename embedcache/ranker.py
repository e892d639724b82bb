"""Similarity ranking of candidate vectors against a query."""

from __future__ import annotations

import math
from collections.abc import Iterable

from embedcache.errors import DimensionMismatch
from embedcache.models import SimilarityResult
from embedcache.vector_math import as_vector, cosine_similarity


def _sort_key(result: SimilarityResult) -> tuple[int, float]:
    # NaN scores sort after every real score
    if math.isnan(result.score):
        return (1, 0.0)
    return (0, -result.score)


def rank(query, candidates: Iterable[tuple[str, object]]) -> list[SimilarityResult]:
    """Score candidates by cosine similarity, highest first.

    The sort is stable: equal scores keep their input order. A NaN score
    (from NaN components in the query or a candidate) sorts after every real
    score, and NaN results keep their input order among themselves.
    """
    query = as_vector(query)
    results = []
    for cand_id, vec in candidates:
        try:
            score = cosine_similarity(query, vec)
        except DimensionMismatch as exc:
            raise DimensionMismatch(f"Candidate {cand_id!r}: {exc}") from exc
        results.append(SimilarityResult(id=cand_id, score=score))
    results.sort(key=_sort_key)
    return results


def top_k(ranked: list[SimilarityResult], k: int) -> list[SimilarityResult]:
    """Return the first ``k`` results (fewer if there are not enough)."""
    if k <= 0:
        return []
    return ranked[:k]
