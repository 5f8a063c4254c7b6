"""Per-branch build summaries for a pipeline definition."""

from __future__ import annotations

import logging
from typing import Dict, List

from .ado_client import AdoClient
from .cache import PIPELINE_BRANCHES_TTL, Cache
from .models import Build, PipelineBranchInfo
from .ordering import latest, sort_by_time
from .query import is_ascending

logger = logging.getLogger(__name__)

BRANCH_SORT_FIELDS = (
    "latestbuildfinishtime",
    "latestbuildstarttime",
    "branchname",
    "totalbuilds",
)


def group_by_branch(builds: List[Build]) -> List[PipelineBranchInfo]:
    """Summarize builds per source branch, keeping first-seen branch order."""
    groups: Dict[str, List[Build]] = {}
    for build in builds:
        groups.setdefault(build.sourceBranch, []).append(build)

    branches: List[PipelineBranchInfo] = []
    for branch_name, branch_builds in groups.items():
        newest = latest(branch_builds, lambda build: build.finishTime)
        if newest is None:
            continue
        branches.append(
            PipelineBranchInfo(
                branchName=branch_name,
                latestBuildId=newest.id,
                latestBuildNumber=newest.buildNumber,
                latestBuildStatus=newest.status,
                latestBuildResult=newest.result,
                latestBuildStartTime=newest.startTime,
                latestBuildFinishTime=newest.finishTime,
                latestBuildSourceVersion=newest.sourceVersion,
                totalBuilds=len(branch_builds),
            )
        )
    return branches


def sort_branches(
    branches: List[PipelineBranchInfo], sort_by: str, sort_order: str
) -> List[PipelineBranchInfo]:
    """Sort branch summaries; an unrecognized field falls back to finish time, newest first."""
    field = (sort_by or "").lower()
    descending = not is_ascending(sort_order)

    if field == "latestbuildfinishtime":
        return sort_by_time(branches, lambda info: info.latestBuildFinishTime, descending)
    if field == "latestbuildstarttime":
        return sort_by_time(branches, lambda info: info.latestBuildStartTime, descending)
    if field == "branchname":
        return sorted(branches, key=lambda info: info.branchName, reverse=descending)
    if field == "totalbuilds":
        return sorted(branches, key=lambda info: info.totalBuilds, reverse=descending)
    return sort_by_time(branches, lambda info: info.latestBuildFinishTime, True)


class PipelineBranchAggregator:
    """Reports the latest build of every branch a pipeline recently built.

    Args:
        ado_client: Azure DevOps client used for the builds query.
        cache: Cache shared with the report aggregator.
        fail_soft: When ``True`` an upstream failure is logged and yields an
            empty list; when ``False`` it propagates to the caller.
    """

    def __init__(self, ado_client: AdoClient, cache: Cache, fail_soft: bool = True) -> None:
        self._ado_client = ado_client
        self._cache = cache
        self._fail_soft = fail_soft

    def branches_for(
        self,
        definition_id: int,
        top: int = 300,
        sort_by: str = "latestBuildFinishTime",
        sort_order: str = "desc",
    ) -> List[PipelineBranchInfo]:
        key = f"pipeline-branches:{definition_id}:{top}:{sort_by.lower()}:{sort_order.lower()}"

        def produce() -> List[PipelineBranchInfo]:
            builds = self._ado_client.list_builds(definition_id, top)
            branches = group_by_branch(builds)
            logger.info(
                "Grouped pipeline builds by branch",
                extra={
                    "definition_id": definition_id,
                    "builds": len(builds),
                    "branches": len(branches),
                },
            )
            return sort_branches(branches, sort_by, sort_order)

        try:
            return self._cache.get_or_create(key, PIPELINE_BRANCHES_TTL, 5, produce)
        except Exception:
            if not self._fail_soft:
                raise
            logger.exception(
                "Error fetching pipeline branches for definition %s",
                definition_id,
                extra={"definition_id": definition_id},
            )
            return []
