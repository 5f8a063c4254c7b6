"""GET-with-retry helper shared by the Azure DevOps and Bitbucket clients."""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

import requests

from .errors import ApiError, AuthenticationError, NotFoundError

RETRYABLE_STATUS_CODES = frozenset({408, 429})


def is_retryable_status(status_code: int) -> bool:
    return status_code in RETRYABLE_STATUS_CODES or 500 <= status_code <= 599


def backoff_seconds(response: Optional[requests.Response], attempt: int, ceiling: int) -> int:
    """Compute exponential backoff seconds, honoring Retry-After when available."""
    retry_after_header = response.headers.get("Retry-After") if response is not None else None
    if retry_after_header:
        try:
            return min(ceiling, max(1, int(retry_after_header)))
        except ValueError:
            pass

    return min(ceiling, 2 ** (attempt - 1))


def get_json(
    session: requests.Session,
    url: str,
    *,
    service: str,
    timeout_seconds: int,
    max_retries: int,
    max_backoff_seconds: int,
    params: Optional[Dict[str, Any]] = None,
    auth_message: Optional[str] = None,
) -> Dict[str, Any]:
    """GET ``url`` and return its JSON object, retrying network errors and 408/429/5xx.

    Args:
        service: Upstream name used in error messages.
        auth_message: Replaces the default 401/403 error message.

    Raises:
        AuthenticationError: On HTTP 401/403.
        NotFoundError: On HTTP 404.
        ApiError: If the request repeatedly fails, returns another HTTP
            error status, or does not return a JSON object.
    """
    last_error: Optional[Exception] = None

    for attempt in range(1, max_retries + 1):
        try:
            response = session.get(url, params=params, timeout=timeout_seconds)
        except requests.RequestException as exc:
            last_error = exc
            if attempt == max_retries:
                raise ApiError(f"{service} request failed after retries: GET {url}") from exc
            time.sleep(backoff_seconds(None, attempt, max_backoff_seconds))
            continue

        status_code = response.status_code
        if is_retryable_status(status_code) and attempt < max_retries:
            time.sleep(backoff_seconds(response, attempt, max_backoff_seconds))
            continue

        if status_code in (401, 403):
            raise AuthenticationError(
                auth_message
                or f"{service} rejected the configured credentials: GET {url} returned {status_code}"
            )
        if status_code == 404:
            raise NotFoundError(f"{service} resource not found: GET {url}")
        if status_code >= 400:
            raise ApiError(
                f"{service} API request failed: GET {url} returned {status_code} - {response.text}",
                status_code=status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ApiError(f"{service} API returned invalid JSON: GET {url}") from exc
        if not isinstance(payload, dict):
            raise ApiError(f"{service} API returned unexpected payload shape: GET {url}")
        return payload

    raise ApiError(f"{service} request failed after retries: GET {url}") from last_error
