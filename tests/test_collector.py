"""
Tests for the ingestion collector using an in-memory activity source.
"""
import threading
import unittest
import pytest
from conftest import pr, issue
from ingest.collector import ActivityCollector, TotalAccumulator, split_repo_path, init_participant
from ingest.errors import NotFound, RateLimited
from normalize.models import ActivityRecord
from scoring.utils import Settings


class FakeSource:
    """Serves pre-built pages per 'owner/repo'; records each request."""

    def __init__(self, pages, errors=None):
        self.pages = pages
        self.errors = errors or {}
        self.calls = []
        self._lock = threading.Lock()

    def list_activity(self, owner, repo, page, per_page):
        key = f"{owner}/{repo}"
        with self._lock:
            self.calls.append((key, page, per_page))
        if key in self.errors:
            raise self.errors[key]
        repo_pages = self.pages.get(key, [])
        return list(repo_pages[page - 1]) if page <= len(repo_pages) else []


class TestCollectRepo(unittest.TestCase):
    def test_counts_per_bucket(self):
        items = [
            pr('alice', 'bug'),
            pr('alice', 'enhancement'),
            pr('alice', 'documentation'),
            pr('alice', 'typo'),
            pr('alice', 'bug', merged=False),
            issue('alice', 'bug'),
            issue('alice', 'documentation', reason='completed'),
            issue('alice', 'documentation', reason='not_planned'),
            issue('bob', 'question'),
        ]
        source = FakeSource({'o/r': [items]})
        result = ActivityCollector(source).collect(['o/r'])

        self.assertEqual(list(result.keys()), ['r'])
        alice = result['r']['alice']
        self.assertEqual(alice.pull_requests, {'bug_and_feat': 2, 'doc': 1, 'typo': 1})
        self.assertEqual(alice.issues, {'bug_and_feat': 1, 'doc': 1})
        # bob only filed an ignored issue: zeroed record
        self.assertEqual(result['r']['bob'], ActivityRecord())

    def test_excluded_users_get_no_record(self):
        source = FakeSource({'o/r': [[pr('kyagrd', 'bug'), issue('kyahnu', 'bug'), pr('carol', 'bug')]]})
        result = ActivityCollector(source).collect(['o/r'])
        self.assertEqual(set(result['r']), {'carol'})

    def test_custom_exclusion_set(self):
        source = FakeSource({'o/r': [[pr('kyagrd', 'bug'), pr('bot', 'bug')]]})
        result = ActivityCollector(source, Settings(exclude_users=['bot'])).collect(['o/r'])
        self.assertEqual(set(result['r']), {'kyagrd'})

    def test_paginates_until_short_page(self):
        full = [issue(f"user{i}", 'bug') for i in range(3)]
        source = FakeSource({'o/r': [full, full, [issue('last', 'bug')]]})
        result = ActivityCollector(source, per_page=3).collect(['o/r'])
        self.assertEqual([c[1] for c in source.calls], [1, 2, 3])
        self.assertEqual(result['r']['user0'].issues['bug_and_feat'], 2)
        self.assertEqual(result['r']['last'].issues['bug_and_feat'], 1)

    def test_exactly_full_last_page_requests_one_more(self):
        full = [issue('a', 'bug'), issue('b', 'bug')]
        source = FakeSource({'o/r': [full]})
        ActivityCollector(source, per_page=2).collect(['o/r'])
        self.assertEqual([c[1] for c in source.calls], [1, 2])


class TestCollectMany(unittest.TestCase):
    def test_single_repo_has_no_total(self):
        source = FakeSource({'o/r': [[pr('a', 'bug')]]})
        self.assertNotIn('total', ActivityCollector(source).collect(['o/r']))

    def test_total_map_sums_repositories(self):
        source = FakeSource({
            'o/one': [[pr('alice', 'bug'), issue('alice', 'documentation'), pr('bob', 'typo')]],
            'o/two': [[pr('alice', 'bug'), pr('alice', 'documentation'), pr('kyagrd', 'bug')]],
        })
        result = ActivityCollector(source).collect(['o/one', 'o/two'])
        self.assertEqual(list(result.keys()), ['one', 'two', 'total'])
        total_alice = result['total']['alice']
        self.assertEqual(total_alice.pull_requests, {'bug_and_feat': 2, 'doc': 1, 'typo': 0})
        self.assertEqual(total_alice.issues, {'bug_and_feat': 0, 'doc': 1})
        self.assertEqual(result['total']['bob'].pull_requests['typo'], 1)
        self.assertNotIn('kyagrd', result['total'])
        # per-repo and total records are distinct objects
        self.assertIsNot(result['one']['alice'], total_alice)
        self.assertEqual(result['one']['alice'].pull_requests['bug_and_feat'], 1)

    def test_repeated_repository_is_read_once(self):
        source = FakeSource({'o/r': [[pr('alice', 'bug')]]})
        result = ActivityCollector(source).collect(['o/r', ' o/r'])
        self.assertEqual(list(result.keys()), ['r'])
        self.assertEqual(result['r']['alice'].pull_requests['bug_and_feat'], 1)
        self.assertEqual(source.calls, [('o/r', 1, 100)])

    def test_failure_in_one_repo_fails_the_run(self):
        source = FakeSource({'o/good': [[pr('a', 'bug')]]}, errors={'o/bad': NotFound('o/bad', 404, 'Not Found')})
        with self.assertRaises(NotFound):
            ActivityCollector(source).collect(['o/good', 'o/bad'])
        # the other repository was still read to completion
        self.assertIn(('o/good', 1, 100), source.calls)

    def test_rate_limit_propagates(self):
        source = FakeSource({}, errors={'o/r': RateLimited('o/r', 403, 'API rate limit exceeded')})
        with self.assertRaises(RateLimited):
            ActivityCollector(source).collect(['o/r'])

    def test_bad_identifier_rejected_before_requests(self):
        source = FakeSource({})
        with self.assertRaises(ValueError):
            ActivityCollector(source).collect(['just-a-name'])
        self.assertEqual(source.calls, [])


class TestTotalAccumulator(unittest.TestCase):
    def test_concurrent_increments_are_not_lost(self):
        acc = TotalAccumulator()
        threads_n, per_thread = 8, 500

        def worker():
            for _ in range(per_thread):
                acc.ensure('shared')
                acc.increment('shared', 'pull_requests', 'bug_and_feat')

        threads = [threading.Thread(target=worker) for _ in range(threads_n)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(acc.snapshot()['shared'].pull_requests['bug_and_feat'], threads_n * per_thread)

    def test_ensure_is_idempotent(self):
        acc = TotalAccumulator()
        acc.increment('a', 'issues', 'doc')
        acc.ensure('a')
        self.assertEqual(acc.snapshot()['a'].issues['doc'], 1)


def test_init_participant_is_idempotent():
    records = {}
    first = init_participant(records, 'x')
    first.increment('issues', 'doc')
    assert init_participant(records, 'x') is first
    assert records['x'].issues['doc'] == 1


@pytest.mark.parametrize('value', ['owner', 'a/b/c', '/repo', 'owner/'])
def test_split_repo_path_rejects(value):
    with pytest.raises(ValueError):
        split_repo_path(value)


def test_split_repo_path():
    assert split_repo_path(' octo/hello ') == ('octo', 'hello')
