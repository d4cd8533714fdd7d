"""
Ranking quality metrics.

The set of metrics is closed: each kind is a frozen dataclass carrying its
own configuration, and ``evaluate()`` dispatches on the concrete type.

Provides:
- RecallAtK: relevant documents retrieved / relevant documents judged
- MeanAveragePrecisionAtK: precision at each relevant rank, averaged over
  the retrieved documents
- RecallDetail / MeanAveragePrecisionDetail: per-query breakdowns
- combine(): macro-average of per-query scores
- metric_from_dict() / metric_to_dict(): structured configuration

Metrics never truncate the hit list. ``forced_search_size`` tells the caller
how many top hits to pass in.
"""

from __future__ import annotations

from dataclasses import dataclass
from statistics import mean
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .judgments import Hit, Judgment, RatedHit, join_hits_with_ratings
from .query_quality import EvalQueryQuality


DEFAULT_RELEVANT_RATING_THRESHOLD = 1
DEFAULT_IGNORE_UNLABELED = False
DEFAULT_K = 10

CONFIG_FIELDS = ("relevant_rating_threshold", "ignore_unlabeled", "k")


def _check_config(name: str, threshold: Any, ignore_unlabeled: Any, k: Any) -> None:
    if not isinstance(threshold, int) or isinstance(threshold, bool):
        raise ValueError(f"Relevant rating threshold for {name} must be an integer, got {threshold!r}")
    if threshold < 0:
        raise ValueError(f"Relevant rating threshold for {name} must be a non-negative integer, got {threshold}")
    if not isinstance(ignore_unlabeled, bool):
        raise ValueError(f"ignore_unlabeled for {name} must be a boolean, got {ignore_unlabeled!r}")
    if not isinstance(k, int) or isinstance(k, bool):
        raise ValueError(f"Window size k for {name} must be an integer, got {k!r}")
    if k <= 0:
        raise ValueError(f"Window size k for {name} must be positive, got {k}")


# =============================================================================
# Metric configurations
# =============================================================================


@dataclass(frozen=True)
class RecallAtK:
    """
    Recall@K.

    Args:
        relevant_rating_threshold: Ratings >= this value count as relevant.
        ignore_unlabeled: If True, unjudged hits count neither as true nor
            false positives. If False, they are false positives.
        k: Number of top hits the caller should evaluate.
    """
    name: ClassVar[str] = "recall"

    relevant_rating_threshold: int = DEFAULT_RELEVANT_RATING_THRESHOLD
    ignore_unlabeled: bool = DEFAULT_IGNORE_UNLABELED
    k: int = DEFAULT_K

    def __post_init__(self):
        _check_config(self.name, self.relevant_rating_threshold, self.ignore_unlabeled, self.k)

    @property
    def forced_search_size(self) -> Optional[int]:
        return self.k

    def evaluate(self, query_id: str, hits: Sequence[Hit], judgments: Iterable[Judgment]) -> EvalQueryQuality:
        return evaluate(self, query_id, hits, judgments)

    def combine(self, scores: Iterable[float]) -> float:
        return combine(scores)


@dataclass(frozen=True)
class MeanAveragePrecisionAtK:
    """
    Mean average precision @K.

    Note: the accumulated precision is divided by the number of retrieved
    documents (true + false positives), not by the number of relevant
    judgments. Results therefore differ from the textbook MAP definition.
    """
    name: ClassVar[str] = "mean_average_precision"

    relevant_rating_threshold: int = DEFAULT_RELEVANT_RATING_THRESHOLD
    ignore_unlabeled: bool = DEFAULT_IGNORE_UNLABELED
    k: int = DEFAULT_K

    def __post_init__(self):
        _check_config(self.name, self.relevant_rating_threshold, self.ignore_unlabeled, self.k)

    @property
    def forced_search_size(self) -> Optional[int]:
        return self.k

    def evaluate(self, query_id: str, hits: Sequence[Hit], judgments: Iterable[Judgment]) -> EvalQueryQuality:
        return evaluate(self, query_id, hits, judgments)

    def combine(self, scores: Iterable[float]) -> float:
        return combine(scores)


Metric = Union[RecallAtK, MeanAveragePrecisionAtK]

METRICS: Dict[str, type] = {
    RecallAtK.name: RecallAtK,
    MeanAveragePrecisionAtK.name: MeanAveragePrecisionAtK,
}


# =============================================================================
# Detail records
# =============================================================================


@dataclass(frozen=True)
class RecallDetail:
    """Recall@K breakdown: relevant hits retrieved out of counted hits retrieved."""
    name: ClassVar[str] = RecallAtK.name

    relevant_retrieved: int
    retrieved: int

    def __post_init__(self):
        _check_counts(self.relevant_retrieved, self.retrieved)

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {self.name: {
            "relevant_docs_retrieved": self.relevant_retrieved,
            "docs_retrieved": self.retrieved,
        }}


@dataclass(frozen=True)
class MeanAveragePrecisionDetail:
    """MAP@K breakdown: relevant hits retrieved out of counted hits retrieved."""
    name: ClassVar[str] = MeanAveragePrecisionAtK.name

    relevant_retrieved: int
    retrieved: int

    def __post_init__(self):
        _check_counts(self.relevant_retrieved, self.retrieved)

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {self.name: {
            "relevant_docs_retrieved": self.relevant_retrieved,
            "docs_retrieved": self.retrieved,
        }}


MetricDetail = Union[RecallDetail, MeanAveragePrecisionDetail]

DETAILS: Dict[str, type] = {
    RecallDetail.name: RecallDetail,
    MeanAveragePrecisionDetail.name: MeanAveragePrecisionDetail,
}


def _check_counts(relevant_retrieved: int, retrieved: int) -> None:
    if relevant_retrieved < 0 or retrieved < 0:
        raise ValueError(f"Detail counts must be non-negative, got {relevant_retrieved}/{retrieved}")
    if relevant_retrieved > retrieved:
        raise ValueError(
            f"relevant_docs_retrieved ({relevant_retrieved}) exceeds docs_retrieved ({retrieved})"
        )


def detail_from_dict(data: Dict[str, Any]) -> MetricDetail:
    """Parse ``{kind: {relevant_docs_retrieved, docs_retrieved}}``. Extra fields are ignored."""
    kind, fields = _single_entry(data, "detail")
    if kind not in DETAILS:
        raise ValueError(f"Unknown metric detail '{kind}'. Valid: {sorted(DETAILS)}")
    try:
        return DETAILS[kind](
            relevant_retrieved=int(fields["relevant_docs_retrieved"]),
            retrieved=int(fields["docs_retrieved"]),
        )
    except KeyError as e:
        raise ValueError(f"Metric detail '{kind}' is missing field {e.args[0]!r}") from None


# =============================================================================
# Scoring
# =============================================================================


def _count_retrieved(
    rated_hits: Sequence[RatedHit],
    threshold: int,
    ignore_unlabeled: bool,
) -> List[Optional[bool]]:
    """
    Classify each hit: True = relevant, False = counted as false positive,
    None = unlabeled and ignored.
    """
    outcome: List[Optional[bool]] = []
    for rh in rated_hits:
        if rh.rating is not None:
            outcome.append(rh.rating >= threshold)
        elif ignore_unlabeled:
            outcome.append(None)
        else:
            outcome.append(False)
    return outcome


def _recall_at_k(
    metric: RecallAtK,
    rated_hits: Sequence[RatedHit],
    judgments: Sequence[Judgment],
) -> Tuple[float, RecallDetail]:
    outcome = _count_retrieved(rated_hits, metric.relevant_rating_threshold, metric.ignore_unlabeled)
    true_positives = sum(1 for o in outcome if o is True)
    false_positives = sum(1 for o in outcome if o is False)

    # Denominator is every relevant judgment, retrieved or not
    relevant_docs = sum(1 for j in judgments if j.rating >= metric.relevant_rating_threshold)

    recall = 0.0
    if true_positives > 0 and relevant_docs > 0:
        recall = true_positives / relevant_docs

    return recall, RecallDetail(true_positives, true_positives + false_positives)


def _mean_average_precision_at_k(
    metric: MeanAveragePrecisionAtK,
    rated_hits: Sequence[RatedHit],
) -> Tuple[float, MeanAveragePrecisionDetail]:
    outcome = _count_retrieved(rated_hits, metric.relevant_rating_threshold, metric.ignore_unlabeled)
    true_positives = 0
    false_positives = 0
    precision_sum = 0.0

    # Rank positions are 1-based; ignored unlabeled hits still occupy their rank
    for position, o in enumerate(outcome, start=1):
        if o is True:
            true_positives += 1
            precision_sum += true_positives / position
        elif o is False:
            false_positives += 1

    score = 0.0
    if precision_sum > 0.0:
        score = precision_sum / (true_positives + false_positives)

    return score, MeanAveragePrecisionDetail(true_positives, true_positives + false_positives)


def evaluate(
    metric: Metric,
    query_id: str,
    hits: Sequence[Hit],
    judgments: Iterable[Judgment],
) -> EvalQueryQuality:
    """
    Score one query's hits against its judgments.

    All hits passed in are evaluated; truncate to ``metric.forced_search_size``
    beforehand.

    Raises:
        DuplicateJudgmentError: If a document is judged twice.
        TypeError: If metric is not a known metric kind.
    """
    judgments = list(judgments)
    rated_hits = join_hits_with_ratings(hits, judgments)

    if isinstance(metric, RecallAtK):
        score, details = _recall_at_k(metric, rated_hits, judgments)
    elif isinstance(metric, MeanAveragePrecisionAtK):
        score, details = _mean_average_precision_at_k(metric, rated_hits)
    else:
        raise TypeError(f"Unsupported metric: {metric!r}")

    quality = EvalQueryQuality(query_id, score, rated_hits)
    quality.set_metric_details(details)
    return quality


def combine(scores: Iterable[float]) -> float:
    """Macro-average of per-query scores. An empty sequence gives 0.0."""
    values = [float(s) for s in scores]
    return mean(values) if values else 0.0


# =============================================================================
# Structured configuration
# =============================================================================


def _single_entry(data: Dict[str, Any], what: str) -> Tuple[str, Dict[str, Any]]:
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"Expected a {what} mapping with exactly one metric name, got {data!r}")
    kind, fields = next(iter(data.items()))
    if fields is None:
        fields = {}
    if not isinstance(fields, dict):
        raise ValueError(f"Fields for '{kind}' must be a mapping, got {fields!r}")
    return kind, fields


def metric_from_dict(data: Dict[str, Any]) -> Metric:
    """
    Build a metric from ``{kind: {relevant_rating_threshold, ignore_unlabeled, k}}``.

    Missing fields take their defaults.

    Raises:
        ValueError: For unknown kinds, unknown fields or invalid values.
    """
    kind, fields = _single_entry(data, "metric")
    if kind not in METRICS:
        raise ValueError(f"Unknown metric '{kind}'. Valid: {sorted(METRICS)}")

    unknown = set(fields) - set(CONFIG_FIELDS)
    if unknown:
        raise ValueError(f"Unknown field(s) for metric '{kind}': {sorted(unknown)}")

    return METRICS[kind](**fields)


def metric_to_dict(metric: Metric) -> Dict[str, Dict[str, Any]]:
    return {metric.name: {
        "relevant_rating_threshold": metric.relevant_rating_threshold,
        "ignore_unlabeled": metric.ignore_unlabeled,
        "k": metric.k,
    }}
