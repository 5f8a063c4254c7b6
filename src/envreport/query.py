"""Sorting and paging for environment reports."""

from __future__ import annotations

import math
from typing import List, Sequence, TypeVar

from .errors import QueryValidationError
from .models import EnvironmentReport, PagedResponse
from .ordering import sort_by_time

T = TypeVar("T")

DEPLOYMENT_FINISH_TIME = "deploymentfinishtime"
BUILD_START_TIME = "buildstarttime"
REPORT_SORT_FIELDS = (DEPLOYMENT_FINISH_TIME, BUILD_START_TIME)
SORT_ORDERS = ("asc", "desc")

MAX_PAGE_SIZE = 100


def is_ascending(sort_order: str) -> bool:
    return (sort_order or "").lower() == "asc"


def validate_sort(sort_by: str, sort_order: str, allowed_fields: Sequence[str]) -> None:
    """Reject sort parameters not in ``allowed_fields`` (lower-cased) or ``asc``/``desc``.

    Raises:
        QueryValidationError: On an unknown field or order.
    """
    if (sort_by or "").lower() not in allowed_fields:
        raise QueryValidationError(f"Invalid sortBy value: {sort_by!r}.")
    if (sort_order or "").lower() not in SORT_ORDERS:
        raise QueryValidationError("Invalid sortOrder value. Valid values are: asc, desc")


def validate_paging(page_number: int, page_size: int) -> None:
    """Reject paging parameters outside the HTTP-facing bounds.

    Raises:
        QueryValidationError: If ``page_number < 1`` or ``page_size`` is outside ``[1, 100]``.
    """
    if page_number < 1:
        raise QueryValidationError("Page number must be 1 or greater.")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise QueryValidationError(f"Page size must be between 1 and {MAX_PAGE_SIZE}.")


def sort_reports(
    reports: Sequence[EnvironmentReport], sort_by: str, sort_order: str
) -> List[EnvironmentReport]:
    """Sort reports; an unrecognized field falls back to finish time, newest first."""
    field = (sort_by or "").lower()
    descending = not is_ascending(sort_order)

    if field == BUILD_START_TIME:
        return sort_by_time(reports, lambda report: report.buildStartTime, descending)
    if field == DEPLOYMENT_FINISH_TIME:
        return sort_by_time(reports, lambda report: report.deploymentRecordFinishTime, descending)
    return sort_by_time(reports, lambda report: report.deploymentRecordFinishTime, True)


def paginate(items: Sequence[T], page_number: int, page_size: int) -> PagedResponse[T]:
    """Slice one page out of ``items``, clamping the page number and size."""
    page_number = max(1, page_number)
    page_size = max(1, min(MAX_PAGE_SIZE, page_size))

    total_count = len(items)
    total_pages = math.ceil(total_count / page_size)
    start = (page_number - 1) * page_size

    return PagedResponse(
        data=list(items[start:start + page_size]),
        totalCount=total_count,
        pageNumber=page_number,
        pageSize=page_size,
        totalPages=total_pages,
        hasNextPage=page_number < total_pages,
        hasPreviousPage=page_number > 1,
    )


def query(
    reports: Sequence[EnvironmentReport],
    sort_by: str = "deploymentFinishTime",
    sort_order: str = "desc",
    page_number: int = 1,
    page_size: int = 40,
) -> PagedResponse[EnvironmentReport]:
    """Sort ``reports`` and return the requested page with paging metadata."""
    return paginate(sort_reports(reports, sort_by, sort_order), page_number, page_size)
