"""Environment report aggregation.

This module joins Azure DevOps environments with their deployment records,
the builds those records point at, and the variable group that shares the
environment's name:
- The primary deployment is the record with the latest finish time.
- Up to three earlier succeeded deployments are attached as history.
- Secret variables are redacted and a portal URL is derived per report.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from .ado_client import AdoClient
from .cache import (
    BUILD_TTL,
    DEPLOYMENT_RECORDS_TTL,
    ENVIRONMENTS_TTL,
    VARIABLE_GROUPS_TTL,
    Cache,
)
from .errors import EnvReportError, NotFoundError
from .models import Build, DeploymentRecord, Environment, EnvironmentReport, VariableGroup
from .ordering import is_earlier, latest, sort_by_time
from .portal import portal_url

logger = logging.getLogger(__name__)

SUCCEEDED = "succeeded"
MAX_HISTORICAL_DEPLOYMENTS = 3

ENVIRONMENTS_KEY = "environments"
VARIABLE_GROUPS_KEY = "variablegroups"


def deployments_key(environment_id: int) -> str:
    return f"deployments:{environment_id}"


def build_key(build_id: int) -> str:
    return f"build:{build_id}"


def find_variable_group(
    groups: List[VariableGroup], environment_name: str
) -> Optional[VariableGroup]:
    """Return the first group whose name equals ``environment_name`` ignoring case."""
    wanted = environment_name.lower()
    return next((group for group in groups if group.name.lower() == wanted), None)


def select_history(
    records: List[DeploymentRecord], primary: DeploymentRecord
) -> List[DeploymentRecord]:
    """Pick up to three succeeded records finished strictly before ``primary``."""
    # A missing finish time ranks earliest, so it precedes any timed primary.
    earlier = [
        record
        for record in records
        if record.result.lower() == SUCCEEDED
        and is_earlier(record.finishTime, primary.finishTime)
    ]
    ordered = sort_by_time(earlier, lambda record: record.finishTime, descending=True)
    return ordered[:MAX_HISTORICAL_DEPLOYMENTS]


class ReportAggregator:
    """Builds ``EnvironmentReport`` objects from cached Azure DevOps reads."""

    def __init__(self, ado_client: AdoClient, cache: Cache) -> None:
        self._ado_client = ado_client
        self._cache = cache

    def _environments(self) -> List[Environment]:
        return self._cache.get_or_create(
            ENVIRONMENTS_KEY, ENVIRONMENTS_TTL, 10, self._ado_client.list_environments
        )

    def _variable_groups(self) -> List[VariableGroup]:
        return self._cache.get_or_create(
            VARIABLE_GROUPS_KEY, VARIABLE_GROUPS_TTL, 15, self._ado_client.list_variable_groups
        )

    def _deployment_records(self, environment_id: int) -> List[DeploymentRecord]:
        return self._cache.get_or_create(
            deployments_key(environment_id),
            DEPLOYMENT_RECORDS_TTL,
            5,
            lambda: self._ado_client.list_deployment_records(environment_id),
        )

    def _build(self, build_id: int) -> Optional[Build]:
        def fetch() -> Optional[Build]:
            try:
                return self._ado_client.get_build(build_id)
            except NotFoundError:
                logger.warning("Build not found", extra={"build_id": build_id})
                return None

        return self._cache.get_or_create(build_key(build_id), BUILD_TTL, 1, fetch)

    def _fetch_top_level(
        self, include_variable_groups: bool
    ) -> Tuple[List[Environment], List[VariableGroup]]:
        if not include_variable_groups:
            return self._environments(), []

        with ThreadPoolExecutor(max_workers=2) as executor:
            environments_future = executor.submit(self._environments)
            groups_future = executor.submit(self._variable_groups)
            return environments_future.result(), groups_future.result()

    def build_reports(
        self,
        environment_name: Optional[str] = None,
        stage_name: Optional[str] = None,
        result: Optional[str] = None,
        include_variable_groups: bool = True,
    ) -> List[EnvironmentReport]:
        """Assemble one report per environment that has a matching deployment.

        Failures fetching environments, variable groups or an environment's
        deployment records propagate. Failures assembling a single report
        degrade to a report with empty build fields.
        """
        environments, variable_groups = self._fetch_top_level(include_variable_groups)
        logger.info(
            "Fetched top-level collections",
            extra={
                "environments": len(environments),
                "variable_groups": len(variable_groups),
            },
        )

        if environment_name:
            needle = environment_name.lower()
            environments = [env for env in environments if needle in env.name.lower()]

        reports: List[EnvironmentReport] = []

        for environment in environments:
            group = (
                find_variable_group(variable_groups, environment.name)
                if include_variable_groups
                else None
            )

            records = self._deployment_records(environment.id)
            if stage_name:
                stage_needle = stage_name.lower()
                records = [r for r in records if stage_needle in r.stageName.lower()]

            candidates = records
            if result:
                wanted = result.lower()
                candidates = [r for r in records if r.result.lower() == wanted]

            primary = latest(candidates, lambda record: record.finishTime)
            if primary is None:
                logger.debug(
                    "No matching deployment for environment",
                    extra={"environment_id": environment.id},
                )
                continue

            report = self._assemble(environment, primary, group)
            report.historicalDeployments = [
                self._assemble(environment, record, group)
                for record in select_history(records, primary)
            ]
            reports.append(report)

        logger.info("Built environment reports", extra={"reports": len(reports)})
        return reports

    def _assemble(
        self,
        environment: Environment,
        record: DeploymentRecord,
        group: Optional[VariableGroup],
    ) -> EnvironmentReport:
        report = EnvironmentReport(
            environmentId=environment.id,
            environmentName=environment.name,
            environmentLastModifiedBy=environment.lastModifiedBy,
            environmentLastModifiedOn=environment.lastModifiedOn,
            deploymentRecordId=record.id,
            deploymentRecordEnvironmentId=record.environmentId,
            deploymentRecordStageName=record.stageName,
            deploymentRecordDefinitionId=record.definitionId,
            deploymentRecordDefinitionName=record.definitionName,
            deploymentRecordOwnerId=record.ownerId,
            deploymentRecordOwnerName=record.ownerName,
            deploymentRecordResult=record.result,
            deploymentRecordFinishTime=record.finishTime,
            variableGroupId=group.id if group else 0,
            variableGroupName=group.name if group else "",
            variableGroupVariables=group.redacted_variables() if group else {},
            portalUrl=portal_url(environment.name, group.variables if group else None),
        )

        try:
            build = self._build(record.ownerId)
        except Exception as exc:
            # A single unresolvable build only blanks this report's build fields.
            logger.warning(
                "Failed to get build details for deployment record %s: %s",
                record.id,
                exc,
                extra={"deployment_record_id": record.id, "build_id": record.ownerId},
                exc_info=not isinstance(exc, EnvReportError),
            )
            return report

        if build is not None:
            report.buildId = build.id
            report.buildNumber = build.buildNumber
            report.buildStatus = build.status
            report.buildStartTime = build.startTime
            report.buildSourceBranch = build.sourceBranch
            report.buildSourceVersion = build.sourceVersion
            report.buildTriggerMessage = build.triggerMessage
            report.buildTriggerRepository = build.triggerRepository

        return report
