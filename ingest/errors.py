"""
Errors raised while pulling activity from GitHub.
Each carries the repository (or resource) and HTTP status so the CLI can suggest a remedy.
"""
from typing import Any, Optional


class IngestError(Exception):
    """Base class for activity-source failures."""

    def __init__(self, repo: str, status: Optional[int] = None, detail: Any = None, message: Optional[str] = None):
        self.repo = repo
        self.status = status
        self.detail = detail
        super().__init__(message or self.default_message())

    def default_message(self) -> str:
        return f"GitHub request for {self.repo} failed (status {self.status}): {self.detail}"


class NotFound(IngestError):
    def default_message(self) -> str:
        return f"Repository {self.repo} was not found. Check the owner/repo identifier."


class RateLimited(IngestError):
    def default_message(self) -> str:
        return (
            f"GitHub API rate limit reached while reading {self.repo}. "
            "Run with a token (--token or GITHUB_TOKEN), replay cached responses (--use-cache), "
            "or try again later."
        )


class AuthFailure(IngestError):
    def default_message(self) -> str:
        return (
            f"GitHub rejected the token while reading {self.repo}. "
            "It is expired or invalid; create a new one in the GitHub settings."
        )


class TransportFailure(IngestError):
    def default_message(self) -> str:
        return (
            f"Network problem or no response from GitHub while reading {self.repo}: {self.detail}. "
            "Check the connection and try again."
        )


class UnexpectedUpstream(IngestError):
    def default_message(self) -> str:
        return (
            f"GitHub API returned status {self.status} for {self.repo}: {self.detail}. "
            "If this persists check https://www.githubstatus.com."
        )


def _is_rate_limit_response(status: int, body: Any, headers: Optional[dict]) -> bool:
    if status == 429:
        return True
    if status != 403:
        return False
    remaining = (headers or {}).get('X-RateLimit-Remaining')
    if remaining is not None and str(remaining).strip() == '0':
        return True
    message = body.get('message', '') if isinstance(body, dict) else str(body or '')
    return 'rate limit' in message.lower()


def error_for_status(repo: str, status: int, body: Any = None, headers: Optional[dict] = None) -> IngestError:
    """Map a non-2xx (or status 0 for transport errors) response to an IngestError."""
    detail = body.get('message') if isinstance(body, dict) and body.get('message') else body
    if not status:
        return TransportFailure(repo, status, detail)
    if status == 404:
        return NotFound(repo, status, detail)
    if status == 401:
        return AuthFailure(repo, status, detail)
    if _is_rate_limit_response(status, body, headers):
        return RateLimited(repo, status, detail)
    return UnexpectedUpstream(repo, status, detail)
