"""Shared pytest fixtures for PR comment pipe tests.

Fixture Organization:
    - Transport fixtures: AsyncMock transport standing in for the network
    - Sample data fixtures: credential and pull request reference
    - Environment fixtures: isolated env vars and working directory per test
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from pr_comment.config import reset_settings
from pr_comment.connectors.bitbucket.api import Credential
from pr_comment.connectors.bitbucket.comments import PullRequestRef

# Add tests directory to sys.path so test modules in subdirectories can import
# bitbucket_test_helpers
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from bitbucket_test_helpers import make_response  # noqa: E402

PIPE_ENV_VARS = (
    "BITBUCKET_USERNAME",
    "BITBUCKET_APP_PASSWORD",
    "BITBUCKET_PR_ID",
    "BITBUCKET_WORKSPACE",
    "BITBUCKET_REPO_SLUG",
    "CONTENT_TEXT",
    "CONTENT_FILE",
    "COMMENT_IDENTIFIER",
    "PR_COMMENT_LOG_LEVEL",
    "PR_COMMENT_LOG_FORMAT",
)


@pytest.fixture
def credential():
    """Credential used for all request tests."""
    return Credential(username="testuser", password="testpass")


@pytest.fixture
def pr_ref():
    """Pull request reference for comment tests."""
    return PullRequestRef(workspace="acme", repository="widgets", id=7)


@pytest.fixture
def transport():
    """Transport whose send() is an AsyncMock; set return_value/side_effect per test."""
    mock_transport = Mock()
    mock_transport.send = AsyncMock(return_value=make_response({}))
    return mock_transport


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Clear pipe variables, run in an empty cwd (no .env), reset cached settings."""
    for name in PIPE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def pipe_env(monkeypatch):
    """Complete, valid pipe environment."""
    values = {
        "BITBUCKET_USERNAME": "pipe-user",
        "BITBUCKET_APP_PASSWORD": "app-secret",
        "BITBUCKET_PR_ID": "42",
        "BITBUCKET_WORKSPACE": "acme",
        "BITBUCKET_REPO_SLUG": "widgets",
        "CONTENT_TEXT": "Build passed",
    }
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    return values
