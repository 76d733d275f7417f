"""
Data models for activity items, per-participant activity records and score results.
"""

from typing import List, Optional, Dict, NamedTuple


PR_BUCKETS = ('bug_and_feat', 'doc', 'typo')
ISSUE_BUCKETS = ('bug_and_feat', 'doc')


class ActivityItem:
    """
    A single issue or pull request as listed by the activity source.
    """
    def __init__(self, author: str, is_pull_request: bool, labels: Optional[List[str]] = None, merged_at: Optional[str] = None, state_reason: Optional[str] = None):
        self.author = author
        self.is_pull_request = is_pull_request
        self.labels = list(labels or [])  # ordered; only the first one is consulted
        self.merged_at = merged_at  # pull requests only
        self.state_reason = state_reason  # plain issues only: completed, reopened, not_planned, ... or None while open

    def __repr__(self):
        kind = 'PR' if self.is_pull_request else 'Issue'
        return f"ActivityItem({kind}, author={self.author!r}, labels={self.labels!r})"


class ActivityRecord:
    """
    Raw counts for one participant in one repository.
    Counts only ever grow while ingesting.
    """
    def __init__(self):
        self.pull_requests: Dict[str, int] = {b: 0 for b in PR_BUCKETS}
        self.issues: Dict[str, int] = {b: 0 for b in ISSUE_BUCKETS}

    def increment(self, kind: str, bucket: str):
        counts = self.pull_requests if kind == 'pull_requests' else self.issues
        if bucket not in counts:
            raise KeyError(f"Unknown {kind} bucket: {bucket}")
        counts[bucket] += 1

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {'pull_requests': dict(self.pull_requests), 'issues': dict(self.issues)}

    def __eq__(self, other):
        if not isinstance(other, ActivityRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"ActivityRecord({self.to_dict()})"


class AdjustedCounts(NamedTuple):
    """Activity counts after the anti-gaming caps have been applied."""
    pr_feature: int
    pr_doc: int
    pr_typo: int
    issue_feature: int
    issue_doc: int


class ScoreBreakdown(NamedTuple):
    """Weighted per-bucket scores and the total for one participant."""
    participant: str
    pr_feature_score: int
    pr_doc_score: int
    pr_typo_score: int
    issue_feature_score: int
    issue_doc_score: int
    total_score: int


class RankedScore(NamedTuple):
    """One row of a repository score table as handed to the renderer."""
    rank: int
    participant: str
    pr_feature_score: int
    pr_doc_score: int
    pr_typo_score: int
    issue_feature_score: int
    issue_doc_score: int
    total_score: int
    rate: str
