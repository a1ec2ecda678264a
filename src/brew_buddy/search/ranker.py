"""Exhaustive cosine-similarity ranking of stored item vectors."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence

from brew_buddy.embedding.codec import VectorDecodeError, decode_vector
from brew_buddy.search.models import ItemVector, SearchMatch

DEFAULT_TOP_K = 5


def cosine_similarity(left: Sequence[float], right: Sequence[float]) -> float:
    """Cosine of the angle between two vectors.

    Mismatched lengths, empty vectors, and zero-magnitude vectors score 0.
    The result is not clamped, so opposed vectors score below zero.
    """

    if len(left) != len(right) or not left:
        return 0.0

    dot = sum(l_value * r_value for l_value, r_value in zip(left, right, strict=True))
    left_norm = math.sqrt(sum(value * value for value in left))
    right_norm = math.sqrt(sum(value * value for value in right))
    if left_norm == 0 or right_norm == 0:
        return 0.0
    return dot / (left_norm * right_norm)


def rank(
    query_vector: Sequence[float],
    candidates: Iterable[ItemVector],
    *,
    logger: logging.Logger | None = None,
) -> list[SearchMatch]:
    """Score every candidate and order by descending similarity.

    Equal scores are ordered by URL so results do not depend on store order.
    Candidates whose stored blob cannot be decoded are skipped.
    """

    log = logger or logging.getLogger(__name__)
    matches: list[SearchMatch] = []
    for candidate in candidates:
        try:
            vector = decode_vector(candidate.embedding)
        except VectorDecodeError as error:
            log.warning("Skipping %s: %s", candidate.url, error)
            continue
        matches.append(SearchMatch(item=candidate, score=cosine_similarity(query_vector, vector)))

    matches.sort(key=lambda match: (-match.score, match.item.url))
    return matches


def top_matches(
    query_vector: Sequence[float],
    candidates: Iterable[ItemVector],
    *,
    limit: int = DEFAULT_TOP_K,
    logger: logging.Logger | None = None,
) -> list[SearchMatch]:
    return rank(query_vector, candidates, logger=logger)[: max(0, limit)]
