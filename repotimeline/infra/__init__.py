"""
Infrastructure layer for repotimeline.

Contains abstractions for external systems:
- GitHubClient: GitHub REST API access (branches, commit windows)

These provide clean interfaces that can be mocked for testing.
"""

from .github_client import (
    GitHubBranch,
    GitHubClient,
    GitHubCommit,
    RateLimitStatus,
)

__all__ = [
    'GitHubBranch',
    'GitHubClient',
    'GitHubCommit',
    'RateLimitStatus',
]
