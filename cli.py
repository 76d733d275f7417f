"""
CLI entry point for contrib_score. Wires the pipeline: ingest -> score -> rank -> report
"""

import argparse
import json
import logging
import os
import sys
from ingest.collector import ActivityCollector
from ingest.errors import IngestError
from ingest.github import GitHubClient
from scoring.metrics import calculate_scores
from scoring.ranking import rank_scores, average_score
from scoring.utils import load_settings
from report.renderer import render_text, write_reports, FORMATS
from storage.cache import Cache, DEFAULT_CACHE_PATH, DEFAULT_TTL_SECONDS
from storage.retry import configure_retry
from storage.user_info import update_user_info, load_user_info, DEFAULT_USER_INFO_PATH

logger = logging.getLogger(__name__)


def _print_json(obj):
    print(json.dumps(obj, indent=2, default=str))


def _clear_cache(cache: Cache, force: bool):
    if not force:
        confirm = input(f"Are you sure you want to clear the cache at {cache.path}? This cannot be undone. [y/N]: ")
        if confirm.strip().lower() not in ("y", "yes"):
            print("Aborted cache clear.")
            return
    cache.clear()
    print(f"Cleared cache at {cache.path}")


def _handle_cache_actions(args) -> bool:
    """Run cache inspection/maintenance flags. Returns True if one was handled (the CLI then exits)."""
    if not (args.cache_info or args.cache_clear):
        return False
    with Cache(args.cache or DEFAULT_CACHE_PATH) as cache:
        if args.cache_info:
            _print_json(cache.stats())
        if args.cache_clear:
            _clear_cache(cache, args.force)
    return True


def _resolve_formats(requested) -> list:
    if not requested:
        return ['text']
    if 'all' in requested:
        return list(FORMATS)
    # keep first-seen order, drop repeats
    return list(dict.fromkeys(requested))


def _open_cache(args):
    if args.use_cache or args.cache:
        ttl = args.cache_ttl if args.cache_ttl is not None else DEFAULT_TTL_SECONDS
        return Cache(args.cache or DEFAULT_CACHE_PATH, ttl_seconds=ttl)
    return None


def run_pipeline(args, client: GitHubClient, settings) -> dict:
    """Collect, score and rank. Returns the pieces the report writers need."""
    if not args.use_cache:
        client.validate_token()
    participants = ActivityCollector(client, settings).collect(args.repos)
    all_scores = calculate_scores(participants)
    tables = {repo: rank_scores(scores) for repo, scores in all_scores.items()}
    averages = {repo: average_score(scores, repo) for repo, scores in all_scores.items()}

    users_info = None
    if args.names:
        users_info = load_user_info(args.user_info) if args.use_cache else update_user_info(client, all_scores, args.user_info)
    return {'participants': participants, 'tables': tables, 'averages': averages, 'users_info': users_info}


def write_output(result: dict, args):
    """Print text tables to stdout and write the requested report files."""
    for repo, rows in result['tables'].items():
        print(render_text(repo, rows, result['users_info']))
        average = result['averages'].get(repo)
        print(f"{repo} average score: {average:.2f}\n" if average is not None else f"{repo}: no participants\n")

    paths = write_reports(
        result['tables'], result['participants'], _resolve_formats(args.format), args.out_dir, result['users_info'], result['averages']
    )
    for p in paths:
        print(f"Wrote report to {p}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rank contributors of GitHub repositories by merged PRs and resolved issues")
    parser.add_argument("repos", nargs="*", help="Repositories as owner/repo")
    parser.add_argument("--token", type=str, default=None, help="GitHub token (defaults to env GITHUB_TOKEN)")
    parser.add_argument("--format", action="append", choices=FORMATS + ('all',), help="Report file format; repeat for several, 'all' for every format (default text)")
    parser.add_argument("--out-dir", type=str, default="results", help="Directory for report files (one sub-directory per repository)")
    parser.add_argument("--config", type=str, default=None, help="Settings YAML (exclude_users, labels). Defaults to config/settings.yaml")
    parser.add_argument("--exclude", action="append", default=[], help="Additional login to exclude from ranking (repeatable)")
    parser.add_argument("--names", action="store_true", help="Show participants as login(name) using the display-name cache")
    parser.add_argument("--user-info", type=str, default=DEFAULT_USER_INFO_PATH, help="Path to the display-name cache JSON")
    parser.add_argument("--cache", type=str, default="", help="Path to SQLite response cache (optional)")
    parser.add_argument("--use-cache", action="store_true", help="Only use cached responses; never call the GitHub API")
    parser.add_argument("--cache-ttl", type=float, default=None, help="Ignore cached responses older than this many seconds (default env CONTRIB_CACHE_TTL)")
    # retry/backoff knobs; CONTRIB_MAX_RETRIES, CONTRIB_BACKOFF_BASE, CONTRIB_MAX_BACKOFF set the defaults
    parser.add_argument("--max-retries", type=int, default=None, help="Maximum attempts per HTTP request")
    parser.add_argument("--backoff-base", type=float, default=None, help="Base backoff seconds")
    parser.add_argument("--max-backoff", type=float, default=None, help="Maximum backoff in seconds")
    parser.add_argument("--cache-info", action="store_true", help="Show cache statistics and exit")
    parser.add_argument("--cache-clear", action="store_true", help="Clear the response cache and exit")
    parser.add_argument("--force", action="store_true", help="Do not ask for confirmation (with --cache-clear)")
    parser.add_argument("--log-level", type=str, default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    configure_retry(max_retries=args.max_retries, backoff_base=args.backoff_base, max_backoff=args.max_backoff)

    if _handle_cache_actions(args):
        return 0
    if not args.repos:
        parser.error("at least one repository (owner/repo) is required")

    try:
        settings = load_settings(args.config).with_extra_excludes(args.exclude)
    except (OSError, ValueError) as exc:
        parser.error(f"invalid settings: {exc}")

    token = args.token or os.getenv('GITHUB_TOKEN')
    cache = _open_cache(args)
    client = GitHubClient(token, cache=cache, offline=args.use_cache)
    try:
        result = run_pipeline(args, client, settings)
    except ValueError as exc:
        parser.error(str(exc))
    except IngestError as exc:
        logger.debug("ingestion failed", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        if cache:
            cache.close()

    write_output(result, args)
    return 0


if __name__ == "__main__":
    sys.exit(main())
