"""Cached Bitbucket commit lookups."""

from __future__ import annotations

import logging
from typing import List

from .bitbucket_client import BitbucketClient
from .cache import COMMITS_TTL, Cache
from .models import BitbucketCommit, PagedCommits

logger = logging.getLogger(__name__)


class CommitService:
    """Serves branch commit history through the shared cache."""

    def __init__(self, client: BitbucketClient, cache: Cache) -> None:
        self._client = client
        self._cache = cache

    def _key(self, branch_name: str, *parts: int) -> str:
        suffix = ":".join(str(part) for part in parts)
        return (
            f"bitbucket-commits:{self._client.workspace}:{self._client.repository}:"
            f"{branch_name}:{suffix}"
        )

    def commits(self, branch_name: str, page_length: int = 30) -> List[BitbucketCommit]:
        commits = self._cache.get_or_create(
            self._key(branch_name, page_length),
            COMMITS_TTL,
            5,
            lambda: self._client.get_commits(branch_name, page_length),
        )
        logger.info(
            "Retrieved branch commits",
            extra={"branch": branch_name, "commits": len(commits)},
        )
        return commits

    def paged_commits(
        self, branch_name: str, page_length: int = 30, max_pages: int = 10
    ) -> PagedCommits:
        result = self._cache.get_or_create(
            self._key(branch_name, page_length, max_pages),
            COMMITS_TTL,
            5,
            lambda: self._client.get_commits_paged(branch_name, page_length, max_pages),
        )
        logger.info(
            "Retrieved paged branch commits",
            extra={
                "branch": branch_name,
                "commits": result.totalCommits,
                "pages": result.pagesFetched,
                "has_more_pages": result.hasMorePages,
            },
        )
        return result
