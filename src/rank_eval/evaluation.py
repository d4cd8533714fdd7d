"""
Run-level evaluation: score every query of a run with one metric.

Each query's hits are cut to the metric's forced search size, joined with
that query's judgments and scored. The corpus score is the mean of the
per-query scores. Queries present on only one side (run or qrels) are
handled according to an ``on_missing`` policy:

- error: raise ValueError
- warn: print a warning to stderr and skip them
- skip: skip them silently
- default: evaluate them with the missing side treated as empty
"""

import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Sequence, get_args

from .judgments import Hit, Judgment, DocumentKey
from .metrics import Metric, combine, evaluate, metric_to_dict
from .query_quality import EvalQueryQuality

OnMissing = Literal["error", "warn", "skip", "default"]
ON_MISSING_POLICIES = list(get_args(OnMissing))


@dataclass
class RankEvalResult:
    """Per-query qualities for one metric, plus the corpus-level score."""

    metric: Metric
    query_qualities: Dict[str, EvalQueryQuality] = field(default_factory=dict)

    @property
    def query_ids(self) -> List[str]:
        return list(self.query_qualities.keys())

    @property
    def metric_score(self) -> float:
        """Mean over per-query scores (0.0 when no query was evaluated)."""
        return combine(q.metric_score for q in self.query_qualities.values())

    @property
    def unrated_docs(self) -> Dict[str, List[DocumentKey]]:
        """query_id -> unjudged hits, for queries that have any."""
        return {
            qid: q.unrated_docs
            for qid, q in self.query_qualities.items()
            if q.unrated_docs
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metric": metric_to_dict(self.metric),
            "metric_score": self.metric_score,
            "details": {qid: q.to_dict() for qid, q in self.query_qualities.items()},
        }


class RankEvaluator:
    """Evaluate a whole run (query_id -> ranked hits) against qrels with one metric."""

    def __init__(self, metric: Metric, on_missing: OnMissing = "error"):
        if on_missing not in ON_MISSING_POLICIES:
            raise ValueError(
                f"Unknown on_missing policy {on_missing!r}. Valid: {', '.join(ON_MISSING_POLICIES)}"
            )
        self.metric = metric
        self.on_missing = on_missing

    def window(self, hits: Sequence[Hit]) -> Sequence[Hit]:
        """Cut hits down to the metric's forced search size, if it has one."""
        size = self.metric.forced_search_size
        if size is None:
            return hits
        return hits[:size]

    def evaluate_query(
        self,
        query_id: str,
        hits: Sequence[Hit],
        judgments: Sequence[Judgment],
    ) -> EvalQueryQuality:
        return evaluate(self.metric, query_id, self.window(hits), judgments)

    def _resolve_queries(
        self,
        run_queries: Sequence[str],
        qrels_queries: Sequence[str],
    ) -> List[str]:
        """Determine which queries to evaluate given the on_missing policy.

        Run order is kept; qrels-only queries follow in qrels order.
        """
        qrels_set = set(qrels_queries)
        run_set = set(run_queries)
        run_only = [q for q in run_queries if q not in qrels_set]
        qrels_only = [q for q in qrels_queries if q not in run_set]

        if run_only or qrels_only:
            if self.on_missing == "error":
                parts = []
                if run_only:
                    parts.append(f"run-only: {sorted(run_only)}")
                if qrels_only:
                    parts.append(f"qrels-only: {sorted(qrels_only)}")
                raise ValueError(f"Query mismatch: {'; '.join(parts)}")
            elif self.on_missing == "warn":
                if run_only:
                    print(f"Warning: queries without judgments (skipped): {sorted(run_only)}", file=sys.stderr)
                if qrels_only:
                    print(f"Warning: judged queries without hits (skipped): {sorted(qrels_only)}", file=sys.stderr)

        if self.on_missing in ("warn", "skip"):
            return [q for q in run_queries if q in qrels_set]
        return list(run_queries) + qrels_only

    def evaluate(
        self,
        run: Mapping[str, Sequence[Hit]],
        qrels: Mapping[str, Sequence[Judgment]],
    ) -> RankEvalResult:
        """
        Evaluate every query and collect the results.

        Args:
            run: query_id -> hits in rank order (full lists; windowing happens here)
            qrels: query_id -> judgments

        Raises:
            ValueError: On query mismatch with on_missing="error".
            DuplicateJudgmentError: If a query's judgments rate a document twice.
            DuplicateHitError: If a query's hits contain a document twice.
        """
        query_ids = self._resolve_queries(list(run.keys()), list(qrels.keys()))

        result = RankEvalResult(metric=self.metric)
        for query_id in query_ids:
            result.query_qualities[query_id] = self.evaluate_query(
                query_id,
                run.get(query_id, []),
                qrels.get(query_id, []),
            )
        return result
