"""HTTP API for environment reports, pipeline branches and branch commits."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Path, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from . import __version__
from .ado_client import AdoClient
from .bitbucket_client import BitbucketClient
from .cache import TtlCache
from .commits import CommitService
from .config import Settings
from .errors import AuthenticationError, NotFoundError, QueryValidationError
from .pipelines import BRANCH_SORT_FIELDS, PipelineBranchAggregator
from .query import REPORT_SORT_FIELDS, query, validate_paging, validate_sort
from .reports import ReportAggregator

logger = logging.getLogger(__name__)

APP_NAME = "azure-devops-environment-reporter"
GENERIC_ERROR = "An error occurred while processing your request"


@dataclass
class Services:
    """Collaborators shared by every request handled by one app instance."""

    cache: TtlCache
    reports: ReportAggregator
    pipelines: PipelineBranchAggregator
    commits: Optional[CommitService] = None


def build_services(settings: Settings) -> Services:
    """Wire upstream clients and aggregators around a single shared cache."""
    cache = TtlCache(size_limit=settings.cache_size_limit)
    ado_client = AdoClient(config=settings.azure_devops, timeout_seconds=settings.timeout_seconds)

    commits: Optional[CommitService] = None
    if settings.bitbucket is not None:
        bitbucket_client = BitbucketClient(
            config=settings.bitbucket, timeout_seconds=settings.timeout_seconds
        )
        commits = CommitService(client=bitbucket_client, cache=cache)

    return Services(
        cache=cache,
        reports=ReportAggregator(ado_client=ado_client, cache=cache),
        pipelines=PipelineBranchAggregator(ado_client=ado_client, cache=cache),
        commits=commits,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


router = APIRouter()


@router.get("/health")
def health() -> Dict[str, Any]:
    return {
        "status": "Healthy",
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        "version": __version__,
    }


@router.get("/api/EnvironmentReport")
def environment_report(
    environment_name: Optional[str] = Query(None, alias="environmentName"),
    stage_name: Optional[str] = Query(None, alias="stageName"),
    result: Optional[str] = Query("succeeded"),
    page_number: int = Query(1, alias="pageNumber"),
    page_size: int = Query(40, alias="pageSize"),
    include_variable_groups: bool = Query(True, alias="includeVariableGroups"),
    sort_by: str = Query("deploymentFinishTime", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    services: Services = Depends(get_services),
):
    """Paged, filtered and sorted environment reports."""
    try:
        validate_paging(page_number, page_size)
        validate_sort(sort_by, sort_order, REPORT_SORT_FIELDS)
    except QueryValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info(
        "Getting environment reports",
        extra={
            "environment_name": environment_name,
            "stage_name": stage_name,
            "result": result,
            "page_number": page_number,
            "page_size": page_size,
            "include_variable_groups": include_variable_groups,
        },
    )

    try:
        reports = services.reports.build_reports(
            environment_name=environment_name,
            stage_name=stage_name,
            result=result,
            include_variable_groups=include_variable_groups,
        )
    except AuthenticationError as exc:
        logger.error("Azure DevOps rejected credentials", extra={"error": str(exc)})
        raise HTTPException(
            status_code=401, detail="Unauthorized: check Azure DevOps credentials in configuration"
        ) from exc
    except Exception as exc:
        logger.exception("Error occurred while getting environment reports")
        raise HTTPException(status_code=500, detail=GENERIC_ERROR) from exc

    page = query(reports, sort_by, sort_order, page_number, page_size)
    logger.info(
        "Retrieved environment reports",
        extra={"returned": len(page.data), "page_number": page.pageNumber, "total_pages": page.totalPages},
    )
    return page


@router.get("/api/Pipeline/{definitionId}/branches")
def pipeline_branches(
    definition_id: int = Path(..., alias="definitionId"),
    top: int = Query(300),
    sort_by: str = Query("latestBuildFinishTime", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    services: Services = Depends(get_services),
):
    """Latest build of each branch recently built by a pipeline definition."""
    if definition_id <= 0:
        raise HTTPException(status_code=400, detail="Definition ID must be greater than 0.")
    if top < 1:
        raise HTTPException(status_code=400, detail="top must be 1 or greater.")
    try:
        validate_sort(sort_by, sort_order, BRANCH_SORT_FIELDS)
    except QueryValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    try:
        return services.pipelines.branches_for(definition_id, top, sort_by, sort_order)
    except Exception as exc:
        logger.exception(
            "Error occurred while getting pipeline branches",
            extra={"definition_id": definition_id},
        )
        raise HTTPException(status_code=500, detail=GENERIC_ERROR) from exc


@router.get("/api/Bitbucket/commits/{branch_name:path}")
def branch_commits(
    branch_name: str,
    page_length: int = Query(30, alias="pageLength"),
    max_pages: Optional[int] = Query(None, alias="maxPages"),
    services: Services = Depends(get_services),
):
    """Commits of a branch: a flat list, or a paged envelope when ``maxPages`` is given."""
    if not branch_name.strip():
        raise HTTPException(status_code=400, detail="Branch name cannot be empty")
    if page_length < 1 or page_length > 100:
        raise HTTPException(status_code=400, detail="Page length must be between 1 and 100")
    if max_pages is not None and (max_pages < 1 or max_pages > 10):
        raise HTTPException(status_code=400, detail="Max pages must be between 1 and 10")
    if services.commits is None:
        raise HTTPException(status_code=503, detail="Bitbucket integration is not configured")

    try:
        if max_pages is None:
            return services.commits.commits(branch_name, page_length)
        return services.commits.paged_commits(branch_name, page_length, max_pages)
    except NotFoundError as exc:
        logger.warning("Branch not found", extra={"branch": branch_name})
        raise HTTPException(status_code=404, detail=f"Branch not found: {branch_name}") from exc
    except AuthenticationError as exc:
        logger.error("Unauthorized access to Bitbucket API")
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Error occurred while getting commits", extra={"branch": branch_name})
        raise HTTPException(status_code=500, detail=GENERIC_ERROR) from exc


@router.post("/api/cache/clear")
def clear_cache(services: Services = Depends(get_services)) -> Dict[str, str]:
    try:
        services.cache.clear()
    except Exception as exc:
        logger.exception("Failed to clear cache")
        raise HTTPException(status_code=500, detail="Failed to clear cache") from exc
    return {"message": "Cache cleared successfully"}


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def create_app(services: Services, cors_origins: Sequence[str] = ()) -> FastAPI:
    """Create the FastAPI application around pre-built ``services``."""
    app = FastAPI(title=APP_NAME, version=__version__)
    app.state.services = services

    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(cors_origins),
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(router)
    return app
