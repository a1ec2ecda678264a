from __future__ import annotations

import logging

import allure
import pytest

from brew_buddy.embedding.codec import encode_vector
from brew_buddy.search.models import ItemVector
from brew_buddy.search.ranker import cosine_similarity, rank, top_matches

pytestmark = [
    allure.epic("Vibe Search"),
    allure.feature("Similarity Ranking"),
]


def _item(url: str, vector: list[float] | bytes) -> ItemVector:
    blob = vector if isinstance(vector, bytes) else encode_vector(vector)
    return ItemVector(url=url, name=url.rsplit("/", 1)[-1], origin="", description="", embedding=blob)


def test_cosine_similarity_of_identical_vectors_is_one() -> None:
    assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)


def test_cosine_similarity_is_symmetric() -> None:
    left, right = [0.3, -1.0, 2.0], [1.5, 0.5, -0.25]

    assert cosine_similarity(left, right) == pytest.approx(cosine_similarity(right, left))


def test_cosine_similarity_is_not_clamped() -> None:
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)


@pytest.mark.parametrize(
    ("left", "right"),
    [
        ([1.0, 2.0], [1.0, 2.0, 3.0]),
        ([], []),
        ([0.0, 0.0], [1.0, 1.0]),
    ],
)
def test_cosine_similarity_degenerate_cases_score_zero(
    left: list[float],
    right: list[float],
) -> None:
    assert cosine_similarity(left, right) == 0.0


def test_rank_orders_by_descending_score() -> None:
    candidates = [
        _item("https://example.com/far", [0.0, 1.0]),
        _item("https://example.com/near", [1.0, 0.1]),
        _item("https://example.com/opposite", [-1.0, 0.0]),
    ]

    ranked = rank([1.0, 0.0], candidates)

    assert [match.item.url.rsplit("/", 1)[-1] for match in ranked] == ["near", "far", "opposite"]
    assert ranked[-1].percent == pytest.approx(-100.0)


def test_rank_breaks_ties_by_url() -> None:
    candidates = [
        _item("https://example.com/b", [2.0, 0.0]),
        _item("https://example.com/a", [1.0, 0.0]),
    ]

    ranked = rank([1.0, 0.0], candidates)

    assert [match.item.url for match in ranked] == ["https://example.com/a", "https://example.com/b"]


def test_rank_skips_corrupt_blobs(caplog: pytest.LogCaptureFixture) -> None:
    candidates = [
        _item("https://example.com/ok", [1.0, 0.0]),
        _item("https://example.com/broken", b"\x00\x01\x02"),
    ]

    with caplog.at_level(logging.WARNING):
        ranked = rank([1.0, 0.0], candidates)

    assert [match.item.url for match in ranked] == ["https://example.com/ok"]
    assert "https://example.com/broken" in caplog.text


def test_top_matches_truncates_to_limit() -> None:
    candidates = [_item(f"https://example.com/{index}", [1.0, float(index)]) for index in range(8)]

    assert len(top_matches([1.0, 0.0], candidates)) == 5
    assert len(top_matches([1.0, 0.0], candidates, limit=2)) == 2
    assert top_matches([1.0, 0.0], [], limit=3) == []
