"""
Judgments, hits, and the join between them.

A query's ranked hits are joined with its relevance judgments into
RatedHit pairs. The join keeps every hit and never reorders: index 0
is always the top-ranked result. Hits without a matching judgment get
``rating=None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

# Collection used when an input format carries no collection column
DEFAULT_COLLECTION = "default"

DocumentKey = Tuple[str, str]


class DuplicateJudgmentError(ValueError):
    """Raised when a judgment set rates the same document more than once."""
    pass


class DuplicateHitError(ValueError):
    """Raised when a hit list contains the same document more than once."""
    pass


@dataclass(frozen=True)
class Judgment:
    """
    Relevance rating for one (collection, doc_id) pair within a query.

    Ratings are non-negative integers; a document counts as relevant for a
    metric when its rating is >= the metric's relevant_rating_threshold.
    """
    collection: str
    doc_id: str
    rating: int

    def __post_init__(self):
        if not isinstance(self.rating, int) or isinstance(self.rating, bool):
            raise ValueError(f"Rating for {self.doc_id!r} must be an integer, got {self.rating!r}")
        if self.rating < 0:
            raise ValueError(f"Rating for {self.doc_id!r} must be non-negative, got {self.rating}")

    @property
    def key(self) -> DocumentKey:
        return (self.collection, self.doc_id)


@dataclass(frozen=True)
class Hit:
    """One search result. Rank is implied by its position in the hit list."""
    collection: str
    doc_id: str
    score: Optional[float] = None

    @property
    def key(self) -> DocumentKey:
        return (self.collection, self.doc_id)


@dataclass(frozen=True)
class RatedHit:
    """A hit paired with its rating, or None when the hit is unjudged."""
    hit: Hit
    rating: Optional[int] = None

    @property
    def is_rated(self) -> bool:
        return self.rating is not None


def index_judgments(judgments: Iterable[Judgment]) -> Dict[DocumentKey, int]:
    """
    Map (collection, doc_id) -> rating.

    Raises:
        DuplicateJudgmentError: If a document is rated more than once.
    """
    ratings: Dict[DocumentKey, int] = {}
    duplicates: List[DocumentKey] = []
    for j in judgments:
        if j.key in ratings:
            duplicates.append(j.key)
            continue
        ratings[j.key] = j.rating

    if duplicates:
        shown = ", ".join(f"{c}/{d}" for c, d in duplicates[:5])
        if len(duplicates) > 5:
            shown += f" ... and {len(duplicates) - 5} more"
        raise DuplicateJudgmentError(f"Duplicate judgments for: {shown}")

    return ratings


def join_hits_with_ratings(
    hits: Sequence[Hit],
    judgments: Iterable[Judgment],
) -> List[RatedHit]:
    """
    Pair every hit with its judgment rating, preserving rank order.

    The result has exactly one RatedHit per input hit.

    Raises:
        DuplicateJudgmentError: If the judgment set is ambiguous.
        DuplicateHitError: If a document appears twice in the hits.
    """
    seen = set()
    for h in hits:
        if h.key in seen:
            raise DuplicateHitError(f"Document {h.collection}/{h.doc_id} appears more than once in the hits")
        seen.add(h.key)

    ratings = index_judgments(judgments)
    return [RatedHit(hit=h, rating=ratings.get(h.key)) for h in hits]


def unrated_documents(rated_hits: Sequence[RatedHit]) -> List[DocumentKey]:
    """Keys of hits that carry no judgment, in rank order."""
    return [rh.hit.key for rh in rated_hits if not rh.is_rated]
