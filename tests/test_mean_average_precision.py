import unittest

from rank_eval.judgments import Hit, Judgment
from rank_eval.metrics import MeanAveragePrecisionAtK, MeanAveragePrecisionDetail

IRRELEVANT_RATING_0 = 0
RELEVANT_RATING_1 = 1


def rated_docs(*ratings):
    return [Judgment("test", str(i), r) for i, r in enumerate(ratings)]


def to_hits(judgments):
    return [Hit(j.collection, j.doc_id) for j in judgments]


def unlabeled_hits(n):
    return [Hit("test", str(i)) for i in range(n)]


class TestMeanAveragePrecisionAtK(unittest.TestCase):
    def test_map_at_three(self):
        rated = rated_docs(IRRELEVANT_RATING_0, IRRELEVANT_RATING_0, RELEVANT_RATING_1)
        evaluated = MeanAveragePrecisionAtK().evaluate("id", to_hits(rated), rated)
        # (1/3) / 3 retrieved
        self.assertAlmostEqual(0.111111, evaluated.metric_score, 5)
        self.assertEqual(MeanAveragePrecisionDetail(1, 3), evaluated.metric_details)

    def test_map_at_five_with_one_irrelevant(self):
        rated = rated_docs(1, 1, 0, 1, 1)
        evaluated = MeanAveragePrecisionAtK().evaluate("id", to_hits(rated), rated)
        # (1/1 + 2/2 + 3/4 + 4/5) / 5 = 3.55 / 5
        self.assertAlmostEqual(0.71, evaluated.metric_score, 5)
        self.assertEqual(4, evaluated.metric_details.relevant_retrieved)
        self.assertEqual(5, evaluated.metric_details.retrieved)

    def test_normalizes_by_retrieved_not_relevant(self):
        """Dividing by retrieved docs: one relevant hit at rank 1 of 2 gives 0.5, not 1.0."""
        rated = rated_docs(1, 0, 1)
        evaluated = MeanAveragePrecisionAtK().evaluate("id", to_hits(rated)[:2], rated)
        self.assertAlmostEqual(0.5, evaluated.metric_score, 5)
        self.assertEqual(MeanAveragePrecisionDetail(1, 2), evaluated.metric_details)

    def test_relevance_threshold(self):
        rated = rated_docs(0, 1, 2, 3, 4)
        evaluated = MeanAveragePrecisionAtK(2, False, 5).evaluate("id", to_hits(rated), rated)
        # (1/3 + 2/4 + 3/5) / 5
        self.assertAlmostEqual((1 / 3 + 2 / 4 + 3 / 5) / 5, evaluated.metric_score, 5)
        self.assertEqual(3, evaluated.metric_details.relevant_retrieved)
        self.assertEqual(5, evaluated.metric_details.retrieved)

    def test_ignore_unlabeled(self):
        rated = rated_docs(RELEVANT_RATING_1, RELEVANT_RATING_1)
        hits = to_hits(rated) + [Hit("test", "2")]

        evaluated = MeanAveragePrecisionAtK().evaluate("id", hits, rated)
        self.assertAlmostEqual(2 / 3, evaluated.metric_score, 5)
        self.assertEqual(MeanAveragePrecisionDetail(2, 3), evaluated.metric_details)

        evaluated = MeanAveragePrecisionAtK(1, True, 10).evaluate("id", hits, rated)
        self.assertAlmostEqual(2 / 2, evaluated.metric_score, 5)
        self.assertEqual(MeanAveragePrecisionDetail(2, 2), evaluated.metric_details)

    def test_ignored_unlabeled_hit_still_takes_a_rank(self):
        rated = [Judgment("test", "1", 1)]
        hits = [Hit("test", "0"), Hit("test", "1")]
        evaluated = MeanAveragePrecisionAtK(1, True, 10).evaluate("id", hits, rated)
        # relevant doc sits at rank 2: precision 1/2, one retrieved doc counted
        self.assertAlmostEqual(0.5, evaluated.metric_score, 5)
        self.assertEqual(MeanAveragePrecisionDetail(1, 1), evaluated.metric_details)

    def test_no_rated_docs(self):
        evaluated = MeanAveragePrecisionAtK().evaluate("id", unlabeled_hits(5), [])
        self.assertEqual(0.0, evaluated.metric_score)
        self.assertEqual(MeanAveragePrecisionDetail(0, 5), evaluated.metric_details)

        evaluated = MeanAveragePrecisionAtK(1, True, 10).evaluate("id", unlabeled_hits(5), [])
        self.assertEqual(0.0, evaluated.metric_score)
        self.assertEqual(MeanAveragePrecisionDetail(0, 0), evaluated.metric_details)

    def test_no_results(self):
        evaluated = MeanAveragePrecisionAtK().evaluate("id", [], [])
        self.assertEqual(0.0, evaluated.metric_score)
        self.assertEqual(MeanAveragePrecisionDetail(0, 0), evaluated.metric_details)

    def test_leading_irrelevant_hit_never_raises_score(self):
        cases = [(1,), (1, 1), (0, 1), (1, 0, 1), (1, 1, 0, 1, 1), (0, 0, 2)]
        for ratings in cases:
            rated = rated_docs(*ratings)
            hits = to_hits(rated)
            judgments = rated + [Judgment("test", "junk", 0)]
            metric = MeanAveragePrecisionAtK()

            before = metric.evaluate("id", hits, judgments).metric_score
            after = metric.evaluate("id", [Hit("test", "junk")] + hits, judgments).metric_score
            self.assertLessEqual(after, before, ratings)

    def test_score_is_bounded(self):
        for ratings in [(0,), (1,), (1, 1, 1), (0, 2, 0, 5), (3, 0, 0, 0, 0, 0)]:
            rated = rated_docs(*ratings)
            hits = to_hits(rated) + [Hit("test", "unlabeled")]
            for threshold in range(0, 4):
                for ignore in (True, False):
                    evaluated = MeanAveragePrecisionAtK(threshold, ignore, 10).evaluate("id", hits, rated)
                    self.assertGreaterEqual(evaluated.metric_score, 0.0)
                    self.assertLessEqual(evaluated.metric_score, 1.0)
                    details = evaluated.metric_details
                    self.assertLessEqual(details.relevant_retrieved, details.retrieved)

    def test_combine(self):
        self.assertAlmostEqual(0.3, MeanAveragePrecisionAtK().combine([0.1, 0.2, 0.6]), 10)

    def test_forced_search_size(self):
        self.assertEqual(10, MeanAveragePrecisionAtK().forced_search_size)
        self.assertEqual(3, MeanAveragePrecisionAtK(k=3).forced_search_size)

    def test_invalid_relevant_threshold(self):
        with self.assertRaises(ValueError):
            MeanAveragePrecisionAtK(-1, False, 10)

    def test_invalid_k(self):
        with self.assertRaises(ValueError):
            MeanAveragePrecisionAtK(1, False, -10)
