"""Bitbucket Cloud REST v2 client for branch commit history."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import requests
from requests.auth import HTTPBasicAuth

from .ado_client import parse_datetime
from .config import BitbucketConfig
from .http_client import get_json
from .models import BitbucketCommit, PagedCommits

BITBUCKET_API = "https://api.bitbucket.org/2.0"


class BitbucketClient:
    """Reads commits of one configured Bitbucket repository."""

    _MAX_RETRIES = 3
    _MAX_BACKOFF_SECONDS = 10

    def __init__(self, config: BitbucketConfig, timeout_seconds: int = 30) -> None:
        self._config = config
        self._timeout_seconds = timeout_seconds
        self._session = requests.Session()
        self._session.auth = HTTPBasicAuth(config.username, config.app_password)
        self._session.headers.update({"Accept": "application/json"})

    @property
    def workspace(self) -> str:
        return self._config.workspace

    @property
    def repository(self) -> str:
        return self._config.repository

    def _commits_url(self, branch_name: str) -> str:
        return (
            f"{BITBUCKET_API}/repositories/{self._config.workspace}/"
            f"{self._config.repository}/commits/{quote(branch_name, safe='/')}"
        )

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET ``url`` with retries on network errors and 408/429/5xx.

        Raises:
            AuthenticationError: On HTTP 401/403.
            NotFoundError: On HTTP 404 (unknown branch or repository).
            ApiError: On any other failure.
        """
        return get_json(
            self._session,
            url,
            service="Bitbucket",
            timeout_seconds=self._timeout_seconds,
            max_retries=self._MAX_RETRIES,
            max_backoff_seconds=self._MAX_BACKOFF_SECONDS,
            params=params,
            auth_message="Unauthorized: check Bitbucket credentials in configuration",
        )

    def _to_commit(self, item: Dict[str, Any]) -> BitbucketCommit:
        commit_hash = str(item.get("hash") or "")
        author = item.get("author") or {}
        user = author.get("user") or {}
        return BitbucketCommit(
            commitId=commit_hash,
            shortCommitId=commit_hash[:7],
            message=str(item.get("message") or "").strip(),
            author=user.get("display_name") or author.get("raw") or "Unknown",
            authorUsername=str(user.get("username") or ""),
            commitDate=parse_datetime(item.get("date")),
            commitUrl=(
                f"https://bitbucket.org/{self._config.workspace}/"
                f"{self._config.repository}/commits/{commit_hash}"
            ),
        )

    def _fetch_page(
        self, url: str, params: Optional[Dict[str, Any]] = None
    ) -> Tuple[List[BitbucketCommit], Optional[str]]:
        payload = self._get_json(url, params=params)
        commits = [self._to_commit(item) for item in payload.get("values") or []]
        return commits, payload.get("next")

    def get_commits(self, branch_name: str, page_length: int = 30) -> List[BitbucketCommit]:
        """Return the first page of commits reachable from ``branch_name``."""
        commits, _ = self._fetch_page(self._commits_url(branch_name), {"pagelen": page_length})
        return commits

    def get_commits_paged(
        self, branch_name: str, page_length: int = 30, max_pages: int = 10
    ) -> PagedCommits:
        """Follow ``next`` links for up to ``max_pages`` pages of commits."""
        commits, next_url = self._fetch_page(
            self._commits_url(branch_name), {"pagelen": page_length}
        )
        pages_fetched = 1

        while next_url and pages_fetched < max_pages:
            page, next_url = self._fetch_page(next_url)
            commits.extend(page)
            pages_fetched += 1

        return PagedCommits(
            commits=commits,
            totalCommits=len(commits),
            pagesFetched=pages_fetched,
            commitsPerPage=page_length,
            hasMorePages=bool(next_url),
            nextPageUrl=next_url,
        )
