"""Per-query evaluation result."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

from .judgments import DocumentKey, RatedHit, unrated_documents

if TYPE_CHECKING:
    from .metrics import MetricDetail


class EvalQueryQuality:
    """
    Score of one query under one metric.

    Holds the scalar score, the metric-specific detail record and the joined
    hit/rating list used to compute it. The detail is attached exactly once,
    right after scoring; a result without details is not complete.
    """

    def __init__(
        self,
        query_id: str,
        metric_score: float,
        hits_and_ratings: Sequence[RatedHit] = (),
    ):
        self._query_id = query_id
        self._metric_score = float(metric_score)
        self._hits_and_ratings = tuple(hits_and_ratings)
        self._metric_details: Optional["MetricDetail"] = None

    @property
    def query_id(self) -> str:
        return self._query_id

    @property
    def metric_score(self) -> float:
        return self._metric_score

    @property
    def hits_and_ratings(self) -> tuple[RatedHit, ...]:
        return self._hits_and_ratings

    @property
    def is_complete(self) -> bool:
        return self._metric_details is not None

    @property
    def metric_details(self) -> "MetricDetail":
        if self._metric_details is None:
            raise RuntimeError(f"Metric details for query {self._query_id!r} have not been set")
        return self._metric_details

    def set_metric_details(self, details: "MetricDetail") -> None:
        """Attach the detail record. Can only be called once."""
        if self._metric_details is not None:
            raise RuntimeError(f"Metric details for query {self._query_id!r} are already set")
        self._metric_details = details

    @property
    def unrated_docs(self) -> List[DocumentKey]:
        return unrated_documents(self._hits_and_ratings)

    def to_dict(self) -> Dict[str, Any]:
        """Plain structure for reporting. Unrated docs are listed as 'collection/doc_id'."""
        return {
            "query_id": self._query_id,
            "metric_score": self._metric_score,
            "metric_details": self.metric_details.to_dict(),
            "unrated_docs": [f"{c}/{d}" for c, d in self.unrated_docs],
        }

    def __eq__(self, other):
        if not isinstance(other, EvalQueryQuality):
            return NotImplemented
        return (
            self._query_id == other._query_id
            and self._metric_score == other._metric_score
            and self._hits_and_ratings == other._hits_and_ratings
            and self._metric_details == other._metric_details
        )

    __hash__ = None

    def __repr__(self):
        return (
            f"EvalQueryQuality(query_id={self._query_id!r}, "
            f"metric_score={self._metric_score!r}, "
            f"metric_details={self._metric_details!r})"
        )
