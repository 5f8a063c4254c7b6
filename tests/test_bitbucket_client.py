"""Tests for the Bitbucket client and cached commit service."""

import sys
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from envreport.bitbucket_client import BitbucketClient
from envreport.cache import TtlCache
from envreport.commits import CommitService
from envreport.config import BitbucketConfig
from envreport.errors import ApiError, AuthenticationError, NotFoundError


def _build_client() -> BitbucketClient:
    config = BitbucketConfig(workspace="ws", repository="repo", username="bot", app_password="secret")
    return BitbucketClient(config=config)


def _response(status_code: int, payload: dict | None = None, headers: dict | None = None):
    response = Mock()
    response.status_code = status_code
    response.text = ""
    response.headers = headers or {}
    response.json.return_value = payload if payload is not None else {}
    return response


def _commit(commit_hash: str, **overrides) -> dict:
    item = {
        "hash": commit_hash,
        "message": "Fix things\n",
        "date": "2026-03-01T10:00:00+00:00",
        "author": {"raw": "Dev <dev@example.com>", "user": {"display_name": "Dev One", "username": "dev1"}},
    }
    item.update(overrides)
    return item


def test_get_commits_maps_fields_and_requests_branch_url():
    """Verify commit payloads map to models and the branch is part of the URL."""
    client = _build_client()
    client._session.get = Mock(return_value=_response(200, {"values": [_commit("abcdef1234567")]}))

    commits = client.get_commits("feature/login", page_length=5)

    args, kwargs = client._session.get.call_args
    assert args[0] == "https://api.bitbucket.org/2.0/repositories/ws/repo/commits/feature/login"
    assert kwargs["params"] == {"pagelen": 5}
    commit = commits[0]
    assert commit.shortCommitId == "abcdef1"
    assert commit.message == "Fix things"
    assert commit.author == "Dev One"
    assert commit.authorUsername == "dev1"
    assert commit.commitUrl == "https://bitbucket.org/ws/repo/commits/abcdef1234567"
    assert commit.commitDate is not None


def test_author_falls_back_to_raw_then_unknown():
    """Verify author display falls back to the raw author string, then 'Unknown'."""
    client = _build_client()
    payload = {
        "values": [
            _commit("1111111", author={"raw": "Raw Person"}),
            _commit("2222222", author={}),
        ]
    }
    client._session.get = Mock(return_value=_response(200, payload))

    commits = client.get_commits("main")

    assert [c.author for c in commits] == ["Raw Person", "Unknown"]
    assert commits[1].authorUsername == ""


def test_get_commits_paged_follows_next_links_up_to_max_pages():
    """Verify paging follows next links and reports remaining pages."""
    client = _build_client()
    client._session.get = Mock(
        side_effect=[
            _response(200, {"values": [_commit("a" * 40)], "next": "https://next/2"}),
            _response(200, {"values": [_commit("b" * 40)], "next": "https://next/3"}),
        ]
    )

    result = client.get_commits_paged("main", page_length=1, max_pages=2)

    assert result.totalCommits == 2
    assert result.pagesFetched == 2
    assert result.commitsPerPage == 1
    assert result.hasMorePages is True
    assert result.nextPageUrl == "https://next/3"
    assert client._session.get.call_args.args[0] == "https://next/2"


def test_get_commits_paged_stops_when_no_next_link():
    """Verify paging stops at the last page."""
    client = _build_client()
    client._session.get = Mock(return_value=_response(200, {"values": [_commit("c" * 40)]}))

    result = client.get_commits_paged("main", max_pages=10)

    assert result.pagesFetched == 1
    assert result.hasMorePages is False
    assert result.nextPageUrl is None
    assert client._session.get.call_count == 1


def test_status_mapping():
    """Verify 401, 404 and other errors map to distinct exceptions."""
    client = _build_client()

    client._session.get = Mock(return_value=_response(401))
    with pytest.raises(AuthenticationError):
        client.get_commits("main")

    client._session.get = Mock(return_value=_response(404))
    with pytest.raises(NotFoundError):
        client.get_commits("missing")

    client._session.get = Mock(return_value=_response(400))
    with pytest.raises(ApiError) as excinfo:
        client.get_commits("main")
    assert excinfo.value.status_code == 400


def test_retries_rate_limit_before_succeeding():
    """Verify HTTP 429 is retried."""
    client = _build_client()
    client._session.get = Mock(side_effect=[_response(429), _response(200, {"values": []})])

    with patch("envreport.http_client.time.sleep") as sleep_mock:
        assert client.get_commits("main") == []

    sleep_mock.assert_called_once_with(1)


def test_commit_service_caches_per_branch_and_shape():
    """Verify commit lookups are cached per branch, page length and page limit."""
    client = Mock()
    client.workspace = "ws"
    client.repository = "repo"
    client.get_commits.return_value = []
    client.get_commits_paged.return_value = Mock(totalCommits=0, pagesFetched=1, hasMorePages=False)
    service = CommitService(client=client, cache=TtlCache())

    service.commits("main", 30)
    service.commits("main", 30)
    service.commits("main", 10)
    service.paged_commits("main", 30, 2)
    service.paged_commits("main", 30, 2)

    assert client.get_commits.call_count == 2
    client.get_commits_paged.assert_called_once_with("main", 30, 2)


def test_commit_service_does_not_cache_failures():
    """Verify a failed lookup is retried on the next call."""
    client = Mock()
    client.workspace = "ws"
    client.repository = "repo"
    client.get_commits.side_effect = [NotFoundError("missing"), []]
    service = CommitService(client=client, cache=TtlCache())

    with pytest.raises(NotFoundError):
        service.commits("main")
    assert service.commits("main") == []
