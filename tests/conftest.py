"""
Shared fixtures for repotimeline tests.

The hosting API is replaced by FakeGitHubClient, which serves canned
branches and commit windows and records every call.
"""

from datetime import datetime, timedelta, timezone

import pytest

from repotimeline.exit_codes import UpstreamUnavailable
from repotimeline.infra.github_client import GitHubBranch, GitHubCommit

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def gh_commit(sha, parents=(), minutes=0, message=None, author='alice'):
    """A GitHubCommit authored ``minutes`` after BASE_TIME."""
    return GitHubCommit(
        hash=sha,
        author_name=author,
        message=message if message is not None else f"commit {sha}",
        authored_at=BASE_TIME + timedelta(minutes=minutes),
        parent_hashes=tuple(parents),
    )


class FakeGitHubClient:
    """
    In-memory hosting client.

    ``windows`` maps branch name to its commits, newest first like the API.
    Branch names in ``failing`` raise UpstreamUnavailable from list_commits.
    """

    def __init__(self, windows=None, failing=(), branches_error=None):
        self.windows = dict(windows or {})
        self.failing = set(failing)
        self.branches_error = branches_error
        self.calls = []

    def list_branches(self, owner, name, page_size=100):
        self.calls.append(('list_branches', owner, name))
        if self.branches_error is not None:
            raise self.branches_error
        return [
            GitHubBranch(name=branch, head_hash=commits[0].hash if commits else '0' * 40)
            for branch, commits in self.windows.items()
        ]

    def list_commits(self, owner, name, ref, limit=50):
        self.calls.append(('list_commits', owner, name, ref, limit))
        if ref in self.failing:
            raise UpstreamUnavailable(f"commits for {ref} unavailable", 502)
        return list(self.windows.get(ref, []))[:limit]


@pytest.fixture
def make_commit():
    return gh_commit


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / 'timeline.db'


@pytest.fixture
def config(db_path):
    """Default config pointed at a per-test database."""
    from repotimeline.config import get_default_config
    cfg = get_default_config()
    cfg['database']['path'] = str(db_path)
    cfg['general']['max_concurrent_operations'] = 1
    return cfg


@pytest.fixture
def main_feature_windows():
    """
    main:    A <- B
    feature: A <- B <- C, where C merges B and A

    A and B are on both branches; C is a merge commit only on feature.
    """
    a = gh_commit('a' * 40, minutes=0, message='Initial commit')
    b = gh_commit('b' * 40, parents=['a' * 40], minutes=10, message='Add parser')
    c = gh_commit('c' * 40, parents=['b' * 40, 'a' * 40], minutes=20, message='Merge main into feature')
    return {
        'main': [b, a],
        'feature': [c, b, a],
    }


@pytest.fixture
def fake_client(main_feature_windows):
    return FakeGitHubClient(main_feature_windows)


@pytest.fixture
def fake_client_factory():
    return FakeGitHubClient
