"""
GitHub client implementing the activity source: lists issues and pull requests of a repository
page by page, validates tokens and looks up display names.
Works unauthenticated when no token is given (with GitHub's much lower rate limit).
"""
import logging
from typing import List, Dict, Any, Optional
from normalize.models import ActivityItem
from normalize.util import normalize_activity_item
from storage.cache import cached_get, Cache
from .errors import error_for_status, AuthFailure, NotFound, RateLimited, UnexpectedUpstream

logger = logging.getLogger(__name__)

PER_PAGE = 100


class GitHubClient:
    """Simple GitHub REST client used by the collector and the display-name cache."""

    def __init__(self, token: Optional[str] = None, base_url: str = None, cache: Optional[Cache] = None, offline: bool = False):
        self.token = token
        self.base_url = (base_url or "https://api.github.com").rstrip('/')
        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"
        self.cache = cache
        self.offline = offline

    def _get(self, url: str, params: Dict[str, Any] = None, cache_key: str = None) -> Dict[str, Any]:
        return cached_get(url, headers=self.headers, params=params, cache=self.cache, cache_key=cache_key, offline=self.offline)

    def list_raw_activity(self, owner: str, repo: str, page: int, per_page: int = PER_PAGE) -> List[Dict[str, Any]]:
        """One page of GET /repos/{owner}/{repo}/issues (state=all), which includes pull requests."""
        url = f"{self.base_url}/repos/{owner}/{repo}/issues"
        params = {"state": "all", "per_page": per_page, "page": page}
        key = f"github:issues:{owner}/{repo}:page:{page}:per:{per_page}"
        res = self._get(url, params=params, cache_key=key)
        status = res.get('status', 0)
        if status != 200:
            raise error_for_status(f"{owner}/{repo}", status, res.get('response'), res.get('headers'))
        data = res.get('response')
        if not isinstance(data, list):
            raise UnexpectedUpstream(f"{owner}/{repo}", status, f"expected a list of issues, got {type(data).__name__}")
        return data

    def list_activity(self, owner: str, repo: str, page: int, per_page: int = PER_PAGE) -> List[ActivityItem]:
        return [normalize_activity_item(raw) for raw in self.list_raw_activity(owner, repo, page, per_page) if isinstance(raw, dict)]

    def validate_token(self):
        """Check the configured token against GET /user. Without a token this only logs."""
        if not self.token:
            logger.info("No GitHub token configured; continuing unauthenticated")
            return
        logger.info("Validating GitHub token")
        res = cached_get(f"{self.base_url}/user", headers=self.headers)
        status = res.get('status', 0)
        if status == 200:
            logger.info("GitHub token is valid")
            return
        detail = res.get('response')
        if status == 401:
            raise AuthFailure('token', status, detail)
        if status == 403:
            raise RateLimited('token', status, detail)
        if status == 404:
            raise NotFound('token', status, detail, message="GitHub API endpoint /user not found; check the API base URL.")
        raise error_for_status('token', status, detail, res.get('headers'))

    def get_user_name(self, login: str) -> Optional[str]:
        """Return the display name of a GitHub user, or None if they have not set one."""
        res = self._get(f"{self.base_url}/users/{login}", cache_key=f"github:user:{login}")
        status = res.get('status', 0)
        if status != 200:
            raise error_for_status(f"user {login}", status, res.get('response'), res.get('headers'))
        data = res.get('response') or {}
        return data.get('name') if isinstance(data, dict) else None
