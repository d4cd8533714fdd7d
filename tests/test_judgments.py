"""Tests for judgments and the hit/rating join."""

import pytest

from rank_eval.judgments import (
    DuplicateHitError,
    DuplicateJudgmentError,
    Hit,
    Judgment,
    RatedHit,
    join_hits_with_ratings,
    unrated_documents,
)


def _hits(*doc_ids, collection="test"):
    return [Hit(collection, d) for d in doc_ids]


def test_join_keeps_order_and_length():
    hits = _hits("3", "1", "2", "9")
    judgments = [Judgment("test", "1", 2), Judgment("test", "2", 0), Judgment("test", "3", 1)]

    joined = join_hits_with_ratings(hits, judgments)

    assert len(joined) == len(hits)
    assert [rh.hit for rh in joined] == hits
    assert [rh.rating for rh in joined] == [1, 2, 0, None]


def test_join_matches_on_collection_and_doc_id():
    hits = [Hit("a", "1"), Hit("b", "1")]
    judgments = [Judgment("b", "1", 3)]

    joined = join_hits_with_ratings(hits, judgments)

    assert joined[0].rating is None
    assert joined[1].rating == 3


def test_join_empty_inputs():
    assert join_hits_with_ratings([], []) == []
    assert join_hits_with_ratings([], [Judgment("test", "1", 1)]) == []
    assert [rh.rating for rh in join_hits_with_ratings(_hits("1", "2"), [])] == [None, None]


def test_join_rejects_duplicate_judgments():
    judgments = [Judgment("test", "1", 1), Judgment("test", "1", 0)]
    with pytest.raises(DuplicateJudgmentError, match="test/1"):
        join_hits_with_ratings(_hits("1"), judgments)


def test_duplicate_judgment_error_is_value_error():
    assert issubclass(DuplicateJudgmentError, ValueError)


def test_negative_rating_rejected():
    with pytest.raises(ValueError):
        Judgment("test", "1", -1)


def test_unrated_documents_in_rank_order():
    joined = [
        RatedHit(Hit("test", "5")),
        RatedHit(Hit("test", "1"), 1),
        RatedHit(Hit("test", "3")),
    ]
    assert unrated_documents(joined) == [("test", "5"), ("test", "3")]


def test_join_rejects_repeated_hits():
    hits = _hits("a", "b", "a")
    with pytest.raises(DuplicateHitError, match="test/a"):
        join_hits_with_ratings(hits, [Judgment("test", "a", 1)])


def test_same_doc_in_different_collections_is_not_repeated():
    joined = join_hits_with_ratings([Hit("x", "a"), Hit("y", "a")], [])
    assert len(joined) == 2
