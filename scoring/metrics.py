"""
Score adjustment engine.
Turns raw per-participant activity counts into capped, weighted score breakdowns.
"""
from typing import Dict
from normalize.models import ActivityRecord, AdjustedCounts, ScoreBreakdown
from .utils import WEIGHTS

# doc and typo PRs each count for at most this many per feature/bug PR
DOC_PR_CAP_PER_FEATURE = 3
# issues count for at most this many per valid PR
ISSUE_CAP_PER_PR = 4


def compute_adjusted_counts(pr_feature: int, pr_doc: int, pr_typo: int, issue_feature: int, issue_doc: int) -> AdjustedCounts:
    """
    Apply the anti-gaming caps to raw counts.

    With at least one PR and more than one PR or issue, doc and typo PRs are capped relative
    to feature/bug PRs and issues relative to the PRs that survived the cap. A participant
    with doc PRs but no feature/bug PR is credited with exactly one virtual feature PR for
    the cap only (it is not scored). Everyone else keeps their raw counts.
    """
    for name, value in (('pr_feature', pr_feature), ('pr_doc', pr_doc), ('pr_typo', pr_typo), ('issue_feature', issue_feature), ('issue_doc', issue_doc)):
        if value < 0:
            raise ValueError(f"{name} must be non-negative, got {value}")

    total_pr = pr_feature + pr_doc + pr_typo
    total_issue = issue_feature + issue_doc

    if total_pr == 0 and total_issue == 0:
        return AdjustedCounts(0, 0, 0, 0, 0)

    if total_pr > 0 and (total_pr > 1 or total_issue > 1):
        effective_feature = 1 if (pr_feature == 0 and pr_doc > 0) else pr_feature
        doc = min(pr_doc, DOC_PR_CAP_PER_FEATURE * effective_feature)
        typo = min(pr_typo, DOC_PR_CAP_PER_FEATURE * effective_feature)
        valid_pr = effective_feature + doc + typo
        valid_issue = min(total_issue, ISSUE_CAP_PER_PR * valid_pr)
        adjusted_issue_feature = min(issue_feature, valid_issue)
        return AdjustedCounts(
            pr_feature=pr_feature,
            pr_doc=doc,
            pr_typo=typo,
            issue_feature=adjusted_issue_feature,
            issue_doc=valid_issue - adjusted_issue_feature,
        )

    return AdjustedCounts(pr_feature, pr_doc, pr_typo, issue_feature, issue_doc)


def adjust(participant: str, record: ActivityRecord) -> ScoreBreakdown:
    """Compute the weighted score breakdown for one participant's activity record."""
    counts = compute_adjusted_counts(
        record.pull_requests.get('bug_and_feat', 0) or 0,
        record.pull_requests.get('doc', 0) or 0,
        record.pull_requests.get('typo', 0) or 0,
        record.issues.get('bug_and_feat', 0) or 0,
        record.issues.get('doc', 0) or 0,
    )
    pr_feature = counts.pr_feature * WEIGHTS['pr_feature_bug']
    pr_doc = counts.pr_doc * WEIGHTS['pr_doc']
    pr_typo = counts.pr_typo * WEIGHTS['pr_typo']
    issue_feature = counts.issue_feature * WEIGHTS['issue_feature_bug']
    issue_doc = counts.issue_doc * WEIGHTS['issue_doc']
    return ScoreBreakdown(
        participant,
        pr_feature,
        pr_doc,
        pr_typo,
        issue_feature,
        issue_doc,
        pr_feature + pr_doc + pr_typo + issue_feature + issue_doc,
    )


def calculate_scores(participants: Dict[str, Dict[str, ActivityRecord]]) -> Dict[str, list]:
    """
    Score every repository map (the 'total' map included).
    Returns repo name -> list of ScoreBreakdown sorted by total score, highest first.
    Ties keep their map order.
    """
    all_scores: Dict[str, list] = {}
    for repo_name, repo_activities in participants.items():
        scores = [adjust(login, record) for login, record in repo_activities.items()]
        scores.sort(key=lambda s: s.total_score, reverse=True)
        all_scores[repo_name] = scores
    return all_scores
