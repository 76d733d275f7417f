"""
Label classification: map an activity item to the activity-record bucket it increments.

Only the first attached label is consulted. An issue labelled ["invalid", "bug"] therefore
counts for nothing even though "bug" is a scoring label.
"""
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple
from normalize.models import ActivityItem
from .utils import DEFAULT_LABELS


class LabelBucket(str, Enum):
    FEATURE_BUG = 'feature_bug'
    DOC = 'doc'
    TYPO = 'typo'
    IGNORED = 'ignored'


# issue resolution reasons that still count; None means the issue is open
COUNTED_STATE_REASONS = ('completed', None, 'reopened')

# record field names per bucket
_PR_FIELDS = {
    LabelBucket.FEATURE_BUG: 'bug_and_feat',
    LabelBucket.DOC: 'doc',
    LabelBucket.TYPO: 'typo',
}
_ISSUE_FIELDS = {
    LabelBucket.FEATURE_BUG: 'bug_and_feat',
    LabelBucket.DOC: 'doc',
}


def classify_labels(labels: Sequence[str], vocabulary: Optional[Dict[str, str]] = None) -> LabelBucket:
    """Return the bucket for the first label, or IGNORED when there is none or it is not a scoring label."""
    if not labels:
        return LabelBucket.IGNORED
    vocab = DEFAULT_LABELS if vocabulary is None else vocabulary
    bucket = vocab.get(labels[0])
    return LabelBucket(bucket) if bucket else LabelBucket.IGNORED


def classify_item(item: ActivityItem, vocabulary: Optional[Dict[str, str]] = None) -> Optional[Tuple[str, str]]:
    """Return the (kind, field) increment for an item, or None when it contributes nothing.

    kind is 'pull_requests' or 'issues'. Unmerged PRs and issues closed as not planned
    (or any other unlisted reason) contribute nothing. Issues have no typo bucket.
    """
    if item.is_pull_request:
        if item.merged_at is None:
            return None
        field = _PR_FIELDS.get(classify_labels(item.labels, vocabulary))
        return ('pull_requests', field) if field else None

    if item.state_reason not in COUNTED_STATE_REASONS:
        return None
    field = _ISSUE_FIELDS.get(classify_labels(item.labels, vocabulary))
    return ('issues', field) if field else None
