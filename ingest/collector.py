"""
Ingestion collector: pull every issue/PR page of each repository, classify the items and
accumulate per-participant activity records.

Repositories are read concurrently, one task per repository. Each task owns its repository
map; the cross-repository totals go through a lock-protected accumulator.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List, Optional, Tuple
from normalize.models import ActivityRecord
from scoring.classify import classify_item
from scoring.utils import Settings
from .github import PER_PAGE

logger = logging.getLogger(__name__)

TOTAL_KEY = 'total'


def init_participant(records: Dict[str, ActivityRecord], login: str) -> ActivityRecord:
    """Return the participant's record, creating a zeroed one on first sight."""
    record = records.get(login)
    if record is None:
        record = records[login] = ActivityRecord()
    return record


class TotalAccumulator:
    """Cross-repository totals shared by all repository tasks."""

    def __init__(self):
        self._records: Dict[str, ActivityRecord] = {}
        self._lock = threading.Lock()

    def ensure(self, login: str):
        with self._lock:
            init_participant(self._records, login)

    def increment(self, login: str, kind: str, field: str):
        with self._lock:
            init_participant(self._records, login).increment(kind, field)

    def snapshot(self) -> Dict[str, ActivityRecord]:
        with self._lock:
            return dict(self._records)


def split_repo_path(repo_path: str) -> Tuple[str, str]:
    """Split 'owner/repo' into its parts."""
    parts = repo_path.strip().split('/')
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Repository must be given as owner/repo, got {repo_path!r}")
    return parts[0], parts[1]


class ActivityCollector:
    """
    Build activity-record maps for one or more repositories.

    source must provide list_activity(owner, repo, page, per_page) -> list of ActivityItem
    (see ingest.github.GitHubClient).
    """

    def __init__(self, source, settings: Optional[Settings] = None, per_page: int = PER_PAGE, max_workers: Optional[int] = None):
        self.source = source
        self.settings = settings or Settings()
        self.per_page = per_page
        self.max_workers = max_workers

    def collect_repo(self, owner: str, repo: str, totals: Optional[TotalAccumulator] = None) -> Dict[str, ActivityRecord]:
        """Read every page of one repository and return its participant map.

        Pages are requested one after another; the first page shorter than per_page ends the
        listing. When totals is given every increment is mirrored into it.
        """
        records: Dict[str, ActivityRecord] = {}
        stats = {('pull_requests', 'bug_and_feat'): 0, ('pull_requests', 'doc'): 0, ('pull_requests', 'typo'): 0, ('issues', 'bug_and_feat'): 0, ('issues', 'doc'): 0}
        page = 1
        while True:
            items = self.source.list_activity(owner, repo, page, self.per_page)
            for item in items:
                login = item.author
                if login in self.settings.exclude_users:
                    continue
                record = init_participant(records, login)
                if totals is not None:
                    totals.ensure(login)

                increment = classify_item(item, self.settings.labels)
                if increment is None:
                    continue
                kind, field = increment
                record.increment(kind, field)
                if totals is not None:
                    totals.increment(login, kind, field)
                stats[increment] += 1

            if len(items) < self.per_page:
                break
            page += 1

        logger.debug(
            "%s/%s: feat/bug PRs %d, doc PRs %d, typo PRs %d, feat/bug issues %d, doc issues %d, participants %d",
            owner, repo,
            stats[('pull_requests', 'bug_and_feat')], stats[('pull_requests', 'doc')], stats[('pull_requests', 'typo')],
            stats[('issues', 'bug_and_feat')], stats[('issues', 'doc')], len(records),
        )
        return records

    def collect(self, repo_paths: Iterable[str]) -> Dict[str, Dict[str, ActivityRecord]]:
        """
        Ingest every repository and return repo name -> participant map.

        A 'total' map summing all repositories is added when two or more are given. All
        repository tasks run to completion before the first failure is raised, so no partial
        result is ever returned.
        """
        paths: List[str] = list(repo_paths)
        targets = list(dict.fromkeys(split_repo_path(p) for p in paths))
        if len(targets) < len(paths):
            logger.warning("Ignoring %d repeated repositories", len(paths) - len(targets))
        totals = TotalAccumulator() if len(targets) >= 2 else None
        logger.info("Collecting PRs and issues from %d repositories", len(targets))

        results: Dict[Tuple[str, str], Dict[str, ActivityRecord]] = {}
        first_error: Optional[BaseException] = None
        workers = self.max_workers or max(1, len(targets))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(self.collect_repo, owner, repo, totals): (owner, repo) for owner, repo in targets}
            for future in as_completed(futures):
                owner, repo = futures[future]
                try:
                    results[(owner, repo)] = future.result()
                except Exception as exc:
                    logger.warning("Ingestion of %s/%s failed: %s", owner, repo, exc)
                    if first_error is None:
                        first_error = exc

        if first_error is not None:
            raise first_error

        participants: Dict[str, Dict[str, ActivityRecord]] = {}
        for owner, repo in targets:
            participants[repo] = results[(owner, repo)]
        if totals is not None:
            participants[TOTAL_KEY] = totals.snapshot()
        return participants
