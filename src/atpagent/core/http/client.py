from __future__ import annotations

import os
import threading
from typing import Any

import httpx

from .errors import AtpHTTPNetworkError, AtpHTTPStatusError

_DEFAULT_TIMEOUT_S = 45.0
_DEFAULT_CONNECT_TIMEOUT_S = 5.0
_DEFAULT_USER_AGENT = "atpagent/0.1"
_ERROR_BODY_LIMIT = 500

_client: httpx.Client | None = None
_client_lock = threading.Lock()


def _build_timeout(total_s: float) -> httpx.Timeout:
    total = max(0.1, total_s)
    return httpx.Timeout(total, connect=min(_DEFAULT_CONNECT_TIMEOUT_S, total))


def get_http_client() -> httpx.Client:
    global _client
    if _client is not None:
        return _client

    with _client_lock:
        if _client is None:
            user_agent = os.getenv("ATP_HTTP_USER_AGENT", _DEFAULT_USER_AGENT)
            _client = httpx.Client(timeout=_build_timeout(_DEFAULT_TIMEOUT_S), headers={"User-Agent": user_agent})
    return _client


def post_json(
    url: str,
    payload: dict[str, Any],
    *,
    headers: dict[str, str] | None = None,
    timeout_s: float | None = None,
) -> Any:
    """POST ``payload`` once and return the decoded JSON body.

    There is no retry: a transport error or a non-2xx status is raised to the
    caller as an ``AtpHTTPError`` subclass.
    """
    client = get_http_client()
    try:
        response = client.post(
            url,
            json=payload,
            headers=headers,
            timeout=_build_timeout(timeout_s) if timeout_s is not None else httpx.USE_CLIENT_DEFAULT,
        )
    except httpx.HTTPError as exc:
        raise AtpHTTPNetworkError(f"HTTP request error for {url}: {exc.__class__.__name__}") from exc

    if not 200 <= response.status_code < 300:
        raise AtpHTTPStatusError(
            f"HTTP status {response.status_code} for {url}",
            status_code=response.status_code,
            body=response.text[:_ERROR_BODY_LIMIT],
        )

    try:
        return response.json()
    except ValueError as exc:
        raise AtpHTTPStatusError(f"Invalid JSON body from {url}", status_code=response.status_code) from exc
