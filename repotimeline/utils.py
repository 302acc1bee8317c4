"""
Shared utility functions for repotimeline.
"""
import re
from datetime import datetime, timezone
from typing import Optional, Tuple, Union

# HTTPS / scheme-less: https://github.com/owner/repo(.git)(/tree/...)
_URL_PATTERN = re.compile(
    r"^(?:https?://)?(?:www\.)?github\.com/([^/\s]+)/([^/\s]+?)(?:\.git)?(?:/.*)?$"
)
# SSH: git@github.com:owner/repo.git
_SSH_PATTERN = re.compile(r"^git@github\.com:([^/\s]+)/([^/\s]+?)(?:\.git)?/?$")
# Shorthand: owner/repo
_SHORT_PATTERN = re.compile(r"^([A-Za-z0-9][A-Za-z0-9-]*)/([A-Za-z0-9_.-]+?)(?:\.git)?$")

_OWNER_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9-]*$")
_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def parse_repo_url(url: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Parses a GitHub reference to extract the owner and repository name.
    Handles HTTPS, SSH and ``owner/name`` shorthand formats.

    Args:
        url (str): The GitHub repository URL or shorthand.

    Returns:
        tuple: A tuple (owner, repo) or (None, None) if parsing fails.
    """
    if not url or not isinstance(url, str):
        return None, None

    url = url.strip()
    for pattern in (_URL_PATTERN, _SSH_PATTERN, _SHORT_PATTERN):
        match = pattern.match(url)
        if match:
            owner, name = match.groups()
            if _OWNER_PATTERN.match(owner) and _NAME_PATTERN.match(name) and name not in ('.', '..'):
                return owner, name
            return None, None

    return None, None


def canonical_url(owner: str, name: str) -> str:
    """Canonical HTTPS URL for a GitHub repository."""
    return f"https://github.com/{owner}/{name}"


def to_utc(value: datetime) -> datetime:
    """Normalize a datetime to timezone-aware UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp (including GitHub's trailing ``Z``) into
    an aware UTC datetime.

    Returns None for empty input; raises ValueError for unparseable strings.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return to_utc(datetime.fromisoformat(text))


def format_timestamp(value: datetime) -> str:
    """Serialize a datetime as a sortable UTC ISO-8601 string."""
    return to_utc(value).isoformat()


def short_hash(commit_hash: Optional[str], length: int = 7) -> str:
    """Abbreviated commit hash for display."""
    return (commit_hash or '')[:length]
