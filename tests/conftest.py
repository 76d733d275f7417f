import sys
import os

# Add project root to sys.path so tests can import top-level packages like 'ingest', 'scoring', 'storage'.
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from normalize.models import ActivityItem  # noqa: E402


def pr(author, *labels, merged=True):
    return ActivityItem(author, True, list(labels), merged_at='2025-01-01T00:00:00Z' if merged else None)


def issue(author, *labels, reason=None):
    return ActivityItem(author, False, list(labels), state_reason=reason)

