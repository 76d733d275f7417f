"""
Unit tests for the score adjustment engine.
Covers the no-activity, multi-activity and single-activity branches and the weight mapping.
"""
import itertools
import unittest
from normalize.models import ActivityRecord, AdjustedCounts, ScoreBreakdown
from scoring.metrics import compute_adjusted_counts, adjust, calculate_scores


def _record(pr_feature=0, pr_doc=0, pr_typo=0, issue_feature=0, issue_doc=0):
    rec = ActivityRecord()
    rec.pull_requests.update(bug_and_feat=pr_feature, doc=pr_doc, typo=pr_typo)
    rec.issues.update(bug_and_feat=issue_feature, doc=issue_doc)
    return rec


class TestAdjustedCounts(unittest.TestCase):
    def test_no_activity_is_all_zero(self):
        self.assertEqual(compute_adjusted_counts(0, 0, 0, 0, 0), AdjustedCounts(0, 0, 0, 0, 0))
        self.assertEqual(adjust('nobody', ActivityRecord()), ScoreBreakdown('nobody', 0, 0, 0, 0, 0, 0))

    def test_doc_prs_capped_by_feature_prs(self):
        counts = compute_adjusted_counts(2, 10, 0, 0, 0)
        self.assertEqual(counts.pr_doc, 6)
        self.assertEqual(adjust('a', _record(pr_feature=2, pr_doc=10)).total_score, 18)

    def test_single_doc_pr_uses_raw_counts(self):
        self.assertEqual(adjust('a', _record(pr_doc=1)).total_score, 2)

    def test_issues_only_are_not_capped(self):
        s = adjust('a', _record(issue_feature=5))
        self.assertEqual(s.issue_feature_score, 10)
        self.assertEqual(s.total_score, 10)

    def test_virtual_feature_pr_is_exactly_one(self):
        # no feature PR but doc PRs: caps use one virtual feature PR
        counts = compute_adjusted_counts(0, 7, 5, 0, 0)
        self.assertEqual(counts, AdjustedCounts(0, 3, 3, 0, 0))
        s = adjust('a', _record(pr_doc=7, pr_typo=5))
        self.assertEqual(s.pr_feature_score, 0)
        self.assertEqual(s.total_score, 3 * 2 + 3 * 1)

    def test_typo_only_prs_are_zeroed(self):
        # typo PRs do not earn the virtual feature PR
        self.assertEqual(compute_adjusted_counts(0, 0, 4, 0, 0), AdjustedCounts(0, 0, 0, 0, 0))

    def test_issue_cap_prefers_feature_issues(self):
        # valid PRs = 1 feature -> at most 4 issues, feature/bug issues first
        counts = compute_adjusted_counts(1, 0, 0, 3, 5)
        self.assertEqual(counts, AdjustedCounts(1, 0, 0, 3, 1))

    def test_issue_cap_counts_capped_doc_prs(self):
        counts = compute_adjusted_counts(1, 5, 1, 40, 0)
        # valid PRs = 1 + min(5, 3) + min(1, 3) = 5 -> 20 issues
        self.assertEqual(counts, AdjustedCounts(1, 3, 1, 20, 0))

    def test_one_pr_and_many_issues_takes_multi_branch(self):
        counts = compute_adjusted_counts(0, 0, 1, 10, 0)
        # typo PR without feature PR: effective 0, so everything but the feature count is capped to 0
        self.assertEqual(counts, AdjustedCounts(0, 0, 0, 0, 0))

    def test_one_pr_and_one_issue_is_single_activity(self):
        self.assertEqual(compute_adjusted_counts(0, 0, 1, 1, 0), AdjustedCounts(0, 0, 1, 1, 0))

    def test_weights(self):
        s = adjust('w', _record(pr_feature=1, pr_doc=1, pr_typo=1, issue_feature=1, issue_doc=1))
        self.assertEqual(s, ScoreBreakdown('w', 3, 2, 1, 2, 1, 9))

    def test_negative_counts_rejected(self):
        with self.assertRaises(ValueError):
            compute_adjusted_counts(-1, 0, 0, 0, 0)

    def test_adjust_does_not_mutate_record(self):
        rec = _record(pr_feature=1, pr_doc=9, issue_doc=30)
        before = rec.to_dict()
        adjust('a', rec)
        self.assertEqual(rec.to_dict(), before)


class TestAdjustmentProperties(unittest.TestCase):
    GRID = list(itertools.product(range(4), range(5), range(5), range(6), range(6)))

    def test_capping_never_increases_counts(self):
        for raw in self.GRID:
            adjusted = compute_adjusted_counts(*raw)
            for a, r in zip(adjusted, raw):
                self.assertLessEqual(a, r, f"raw={raw} adjusted={adjusted}")

    def test_more_feature_prs_never_lower_the_score(self):
        for pr_feature, pr_doc, pr_typo, issue_feature, issue_doc in self.GRID:
            if pr_feature == 0:
                continue
            lower = adjust('p', _record(pr_feature, pr_doc, pr_typo, issue_feature, issue_doc)).total_score
            higher = adjust('p', _record(pr_feature + 1, pr_doc, pr_typo, issue_feature, issue_doc)).total_score
            self.assertGreaterEqual(higher, lower, (pr_feature, pr_doc, pr_typo, issue_feature, issue_doc))

    def test_first_feature_pr_with_few_issues_never_lowers_the_score(self):
        for _, pr_doc, pr_typo, issue_feature, issue_doc in self.GRID:
            if issue_feature + issue_doc > 4:
                continue
            lower = adjust('p', _record(0, pr_doc, pr_typo, issue_feature, issue_doc)).total_score
            higher = adjust('p', _record(1, pr_doc, pr_typo, issue_feature, issue_doc)).total_score
            self.assertGreaterEqual(higher, lower, (pr_doc, pr_typo, issue_feature, issue_doc))

    def test_first_feature_pr_brings_issue_cap_into_play(self):
        # issues-only participants are uncapped; one feature PR caps them at 4 issues
        self.assertEqual(adjust('p', _record(issue_feature=6)).total_score, 12)
        self.assertEqual(adjust('p', _record(pr_feature=1, issue_feature=6)).total_score, 3 + 4 * 2)

    def test_total_is_sum_of_buckets(self):
        for raw in self.GRID[::7]:
            s = adjust('p', _record(*raw))
            self.assertEqual(s.total_score, sum(s[1:6]))


class TestCalculateScores(unittest.TestCase):
    def test_sorted_descending_per_repo(self):
        participants = {
            'repo': {
                'low': _record(issue_doc=1),
                'high': _record(pr_feature=3),
                'mid': _record(pr_doc=1),
            },
            'total': {'x': _record(pr_feature=1)},
        }
        scores = calculate_scores(participants)
        self.assertEqual([s.participant for s in scores['repo']], ['high', 'mid', 'low'])
        self.assertEqual(scores['total'][0].total_score, 3)

    def test_ties_keep_map_order(self):
        participants = {'repo': {'b': _record(pr_feature=1), 'a': _record(pr_feature=1)}}
        self.assertEqual([s.participant for s in calculate_scores(participants)['repo']], ['b', 'a'])


if __name__ == '__main__':
    unittest.main()
