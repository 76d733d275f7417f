"""
Scoring utility functions.
Provides the fixed bucket weights and loading of the YAML settings used by ingestion and scoring.
"""
from typing import Dict, Iterable, Optional
import os
import yaml

# filename used for the settings YAML configuration
SETTINGS_FILENAME = 'settings.yaml'

WEIGHTS = {
    'pr_feature_bug': 3,
    'pr_doc': 2,
    'pr_typo': 1,
    'issue_feature_bug': 2,
    'issue_doc': 1,
}

# course instructors; their own PRs and issues are not ranked
DEFAULT_EXCLUDE_USERS = frozenset({'kyagrd', 'kyahnu'})

# label name -> bucket name; any other label is ignored
DEFAULT_LABELS = {
    'bug': 'feature_bug',
    'enhancement': 'feature_bug',
    'documentation': 'doc',
    'typo': 'typo',
}

BUCKET_NAMES = ('feature_bug', 'doc', 'typo')


class Settings:
    """
    Ingestion settings: who is excluded from ranking and which labels count.
    """
    def __init__(self, exclude_users: Optional[Iterable[str]] = None, labels: Optional[Dict[str, str]] = None):
        self.exclude_users = frozenset(DEFAULT_EXCLUDE_USERS if exclude_users is None else exclude_users)
        self.labels = dict(DEFAULT_LABELS if labels is None else labels)
        unknown = sorted({b for b in self.labels.values() if b not in BUCKET_NAMES})
        if unknown:
            raise ValueError(f"Unknown label bucket(s) {unknown}; expected one of {list(BUCKET_NAMES)}")

    def with_extra_excludes(self, extra: Iterable[str]) -> 'Settings':
        return Settings(exclude_users=set(self.exclude_users) | set(extra or []), labels=self.labels)

    def __repr__(self):
        return f"Settings(exclude_users={sorted(self.exclude_users)}, labels={self.labels})"


def default_settings_path() -> str:
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), 'config', SETTINGS_FILENAME)


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Load settings from a YAML file if it exists, otherwise return defaults.

    Recognised keys: 'exclude_users' (list of logins) and 'labels' (label -> bucket).
    Keys left out of the file keep their defaults.
    """
    if not path:
        path = default_settings_path()
    if not os.path.exists(path):
        return Settings()
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping, got {type(data).__name__}")
    exclude = data.get('exclude_users')
    labels = data.get('labels')
    return Settings(
        exclude_users=[str(u) for u in exclude] if exclude is not None else None,
        labels={str(k): str(v) for k, v in labels.items()} if isinstance(labels, dict) else None,
    )
