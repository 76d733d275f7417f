"""
Normalization utility helpers.
Turn raw GitHub issue-list payloads into normalize.models entities.
"""
from typing import Dict, Any, List
from normalize.models import ActivityItem


def _extract_label_names(raw_labels: Any) -> List[str]:
    """Return label names in their original order. GitHub may send label objects or bare strings."""
    if not isinstance(raw_labels, list):
        return []
    names = []
    for label in raw_labels:
        if isinstance(label, dict):
            names.append(label.get('name') or '')
        elif isinstance(label, str):
            names.append(label)
    return names


def normalize_activity_item(raw: Dict[str, Any]) -> ActivityItem:
    """Create an ActivityItem from a raw entry of GET /repos/{owner}/{repo}/issues.

    The issues endpoint lists pull requests too; those carry a 'pull_request' object
    whose 'merged_at' is null until the PR is merged.
    """
    author = (raw.get('user') or {}).get('login') or ''
    pr_part = raw.get('pull_request')
    is_pr = pr_part is not None
    merged_at = pr_part.get('merged_at') if isinstance(pr_part, dict) else None
    return ActivityItem(
        author=author,
        is_pull_request=is_pr,
        labels=_extract_label_names(raw.get('labels')),
        merged_at=merged_at,
        state_reason=None if is_pr else raw.get('state_reason'),
    )
