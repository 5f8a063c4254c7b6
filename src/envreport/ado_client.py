"""Azure DevOps REST API client for environment, build and variable-group data."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from requests.auth import HTTPBasicAuth

from .config import AzureDevOpsConfig
from .errors import DataValidationError
from .http_client import get_json
from .models import Build, DeploymentRecord, Environment, VariableGroup, VariableValue


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse ISO8601 timestamps (``Z`` suffix, 7-digit fractions) into aware datetimes."""
    if not value:
        return None
    if not isinstance(value, str):
        raise DataValidationError(f"Unparseable timestamp: {value!r}")

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    if "." in normalized:
        # Azure DevOps emits up to 7 fractional digits; fromisoformat accepts 6.
        head, _, tail = normalized.partition(".")
        digits = ""
        while tail and tail[0].isdigit():
            digits, tail = digits + tail[0], tail[1:]
        normalized = f"{head}.{digits[:6].ljust(6, '0')}{tail}"

    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise DataValidationError(f"Unparseable timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


class AdoClient:
    """Small, typed client for the Azure DevOps environment and build APIs."""

    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30

    def __init__(self, config: AzureDevOpsConfig, timeout_seconds: int = 30) -> None:
        """Initialize an authenticated Azure DevOps API client.

        Args:
            config: Validated settings including org/project/PAT/api-version.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._config = config
        self._timeout_seconds = timeout_seconds
        self._base_url = (
            f"https://dev.azure.com/{config.organization}/{config.project}/_apis"
        )

        self._session = requests.Session()
        self._session.auth = HTTPBasicAuth("", config.pat)
        self._session.headers.update({"Accept": "application/json"})

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below ``_apis``."""
        return f"{self._base_url}/{path.lstrip('/')}"

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Execute a GET request with retry logic for 408/429/5xx responses.

        Raises:
            AuthenticationError: On HTTP 401/403.
            NotFoundError: On HTTP 404.
            ApiError: If the request repeatedly fails, returns another HTTP
                error status, or does not return a JSON object.
        """
        url = self._build_url(path)
        query = dict(params or {})
        query["api-version"] = self._config.api_version

        return get_json(
            self._session,
            url,
            service="Azure DevOps",
            timeout_seconds=self._timeout_seconds,
            max_retries=self._MAX_RETRIES,
            max_backoff_seconds=self._MAX_BACKOFF_SECONDS,
            params=query,
        )

    def list_environments(self) -> List[Environment]:
        """List pipeline environments in the configured project."""
        payload = self._get_json("distributedtask/environments")
        environments: List[Environment] = []

        for item in payload.get("value", []):
            env_id = item.get("id")
            if env_id is None:
                continue
            modified_by = item.get("lastModifiedBy") or {}
            environments.append(
                Environment(
                    id=int(env_id),
                    name=str(item.get("name") or ""),
                    lastModifiedBy=str(modified_by.get("uniqueName") or ""),
                    lastModifiedOn=parse_datetime(item.get("lastModifiedOn")),
                )
            )

        return environments

    def list_deployment_records(self, environment_id: int) -> List[DeploymentRecord]:
        """List deployment records for one environment."""
        payload = self._get_json(
            f"distributedtask/environments/{environment_id}/environmentdeploymentrecords"
        )
        records: List[DeploymentRecord] = []

        for item in payload.get("value", []):
            record_id = item.get("id")
            if record_id is None:
                raise DataValidationError(
                    "Azure DevOps deployment record payload is missing 'id': "
                    f"environment_id={environment_id}, payload={item}"
                )
            definition = item.get("definition") or {}
            owner = item.get("owner") or {}
            records.append(
                DeploymentRecord(
                    id=int(record_id),
                    environmentId=int(item.get("environmentId") or environment_id),
                    stageName=str(item.get("stageName") or ""),
                    definitionId=int(definition.get("id") or 0),
                    definitionName=str(definition.get("name") or ""),
                    ownerId=int(owner.get("id") or 0),
                    ownerName=str(owner.get("name") or ""),
                    result=str(item.get("result") or ""),
                    finishTime=parse_datetime(item.get("finishTime")),
                )
            )

        return records

    def list_variable_groups(self) -> List[VariableGroup]:
        """List variable groups in the configured project."""
        payload = self._get_json("distributedtask/variablegroups")
        groups: List[VariableGroup] = []

        for item in payload.get("value", []):
            group_id = item.get("id")
            if group_id is None:
                continue
            variables = {
                str(name): VariableValue(
                    value="" if (variable or {}).get("value") is None else str(variable["value"]),
                    isSecret=bool((variable or {}).get("isSecret", False)),
                )
                for name, variable in (item.get("variables") or {}).items()
            }
            groups.append(
                VariableGroup(id=int(group_id), name=str(item.get("name") or ""), variables=variables)
            )

        return groups

    def get_build(self, build_id: int) -> Build:
        """Fetch a single build by id.

        Raises:
            NotFoundError: If the build no longer exists.
        """
        return self._parse_build(self._get_json(f"build/builds/{build_id}"))

    def list_builds(self, definition_id: int, top: int) -> List[Build]:
        """List up to ``top`` completed builds of a definition, newest finish first."""
        payload = self._get_json(
            "build/builds",
            params={
                "definitions": definition_id,
                "$top": top,
                "maxBuildsPerDefinition": top,
                "queryOrder": "finishTimeDescending",
                "statusFilter": "completed",
            },
        )
        return [self._parse_build(item) for item in payload.get("value", [])]

    def _parse_build(self, item: Dict[str, Any]) -> Build:
        build_id = item.get("id")
        if build_id is None:
            raise DataValidationError(f"Azure DevOps build payload is missing 'id': payload={item}")
        try:
            build_id = int(build_id)
        except (TypeError, ValueError) as exc:
            raise DataValidationError(f"Azure DevOps build id is not an integer: {build_id!r}") from exc

        trigger_info = item.get("triggerInfo") or {}
        if not isinstance(trigger_info, dict):
            trigger_info = {}
        return Build(
            id=build_id,
            buildNumber=str(item.get("buildNumber") or ""),
            status=str(item.get("status") or ""),
            result=str(item.get("result") or ""),
            startTime=parse_datetime(item.get("startTime")),
            finishTime=parse_datetime(item.get("finishTime")),
            sourceBranch=str(item.get("sourceBranch") or ""),
            sourceVersion=str(item.get("sourceVersion") or ""),
            triggerMessage=str(trigger_info.get("ci.message") or ""),
            triggerRepository=str(trigger_info.get("ci.triggerRepository") or ""),
        )
