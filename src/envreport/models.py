"""Domain models for Azure DevOps environment reporting.

Upstream dataclasses model only the subset of API payload fields that the
report and pipeline views need. Field names follow the camelCase used by the
upstream payloads and by the JSON the service returns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")

HIDDEN_VALUE = "[HIDDEN]"


@dataclass(slots=True)
class Environment:
    """Represents a deployment target tracked by Azure DevOps."""

    id: int
    name: str
    lastModifiedBy: str
    lastModifiedOn: Optional[datetime]


@dataclass(slots=True)
class DeploymentRecord:
    """Represents one deployment attempt against an environment."""

    id: int
    environmentId: int
    stageName: str
    definitionId: int
    definitionName: str
    ownerId: int
    ownerName: str
    result: str
    finishTime: Optional[datetime]


@dataclass(slots=True)
class Build:
    """Represents the build fields surfaced on reports and branch views."""

    id: int
    buildNumber: str
    status: str
    result: str
    startTime: Optional[datetime]
    finishTime: Optional[datetime]
    sourceBranch: str
    sourceVersion: str
    triggerMessage: str = ""
    triggerRepository: str = ""


@dataclass(slots=True)
class VariableValue:
    value: str
    isSecret: bool = False


@dataclass(slots=True)
class VariableGroup:
    """Represents a named set of pipeline variables, some possibly secret."""

    id: int
    name: str
    variables: Dict[str, VariableValue] = field(default_factory=dict)

    def redacted_variables(self) -> Dict[str, str]:
        """Return variable values with every secret replaced by ``HIDDEN_VALUE``."""
        return {
            name: HIDDEN_VALUE if variable.isSecret else variable.value
            for name, variable in self.variables.items()
        }


@dataclass(slots=True)
class EnvironmentReport:
    """Flattened view of one environment, one deployment, its build and variables."""

    environmentId: int
    environmentName: str
    environmentLastModifiedBy: str
    environmentLastModifiedOn: Optional[datetime]
    deploymentRecordId: int
    deploymentRecordEnvironmentId: int
    deploymentRecordStageName: str
    deploymentRecordDefinitionId: int
    deploymentRecordDefinitionName: str
    deploymentRecordOwnerId: int
    deploymentRecordOwnerName: str
    deploymentRecordResult: str
    deploymentRecordFinishTime: Optional[datetime]
    buildId: int = 0
    buildNumber: str = ""
    buildStatus: str = ""
    buildStartTime: Optional[datetime] = None
    buildSourceBranch: str = ""
    buildSourceVersion: str = ""
    buildTriggerMessage: str = ""
    buildTriggerRepository: str = ""
    variableGroupId: int = 0
    variableGroupName: str = ""
    variableGroupVariables: Dict[str, str] = field(default_factory=dict)
    portalUrl: Optional[str] = None
    historicalDeployments: List["EnvironmentReport"] = field(default_factory=list)


@dataclass(slots=True)
class PipelineBranchInfo:
    """Latest completed build of one source branch for a pipeline definition."""

    branchName: str
    latestBuildId: int
    latestBuildNumber: str
    latestBuildStatus: str
    latestBuildResult: str
    latestBuildStartTime: Optional[datetime]
    latestBuildFinishTime: Optional[datetime]
    latestBuildSourceVersion: str
    totalBuilds: int


@dataclass
class PagedResponse(Generic[T]):
    """One page of a sorted collection plus paging metadata."""

    data: List[T]
    totalCount: int
    pageNumber: int
    pageSize: int
    totalPages: int
    hasNextPage: bool
    hasPreviousPage: bool


@dataclass(slots=True)
class BitbucketCommit:
    """Simplified commit entry returned to API consumers."""

    commitId: str
    shortCommitId: str
    message: str
    author: str
    authorUsername: str
    commitDate: Optional[datetime]
    commitUrl: str


@dataclass(slots=True)
class PagedCommits:
    """Commits gathered across one or more Bitbucket result pages."""

    commits: List[BitbucketCommit]
    totalCommits: int
    pagesFetched: int
    commitsPerPage: int
    hasMorePages: bool
    nextPageUrl: Optional[str] = None
