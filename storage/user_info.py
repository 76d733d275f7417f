"""
On-disk cache of participant display names (user_info.json), keyed by GitHub login.
Missing names are fetched once and stored as '*' when the user has none.
"""
import json
import logging
import os
from typing import Dict, List, Mapping
from ingest.errors import IngestError, RateLimited
from normalize.models import ScoreBreakdown

logger = logging.getLogger(__name__)

DEFAULT_USER_INFO_PATH = 'user_info.json'
UNKNOWN_NAME = '*'


def load_user_info(path: str = DEFAULT_USER_INFO_PATH) -> Dict[str, str]:
    if not os.path.exists(path):
        logger.info("%s not found, a new one will be created", path)
        return {}
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    logger.debug("Loaded %s", path)
    return dict(data) if isinstance(data, dict) else {}


def save_user_info(users_info: Mapping[str, str], path: str = DEFAULT_USER_INFO_PATH):
    out_dir = os.path.dirname(path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(dict(users_info), f, indent=4, ensure_ascii=False)
    logger.info("Updated %s", path)


def update_user_info(client, all_scores: Mapping[str, List[ScoreBreakdown]], path: str = DEFAULT_USER_INFO_PATH) -> Dict[str, str]:
    """Fetch names for every participant not yet in the cache file and save it.

    A rate limit aborts the update (nothing further could be fetched); any other failure for a
    single user records UNKNOWN_NAME for them.
    """
    users_info = load_user_info(path)
    for repo_scores in all_scores.values():
        for s in repo_scores:
            login = s.participant
            if login in users_info:
                continue
            logger.debug("Fetching user info for %s", login)
            try:
                users_info[login] = client.get_user_name(login) or UNKNOWN_NAME
            except RateLimited:
                raise
            except IngestError as exc:
                logger.error("Failed to fetch user info for %s: %s", login, exc)
                users_info[login] = UNKNOWN_NAME
    save_user_info(users_info, path)
    return users_info


def display_label(login: str, users_info: Mapping[str, str]) -> str:
    """'login(name)' when a real name is known, otherwise the login."""
    name = users_info.get(login)
    if not name or name == UNKNOWN_NAME:
        return login
    return f"{login}({name})"

