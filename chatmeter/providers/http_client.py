"""
Shared HTTP client helpers for provider adapters.

Provides consistent timeouts and error mapping so provider adapters raise
stable ``ProviderError`` instances, each tagged transient or permanent,
without leaking stack traces. There are no per-request retries here; the
provider gateway owns the single fallback attempt.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from chatmeter.core import (
    ProviderAuthError,
    ProviderBadResponseError,
    ProviderError,
    ProviderRateLimitedError,
    ProviderTimeoutError,
    ProviderUnavailableError,
    get_logger,
    request_id_ctx,
)

logger = get_logger(__name__)


def create_http_client(
    base_url: str,
    timeout_seconds: int,
    headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Build an AsyncClient with consistent timeout settings.

    Args:
        base_url: Base URL for the provider.
        timeout_seconds: Total timeout for requests.
        headers: Default headers to include.
        transport: Optional transport (used by tests with MockTransport).
    """
    timeout = httpx.Timeout(
        timeout_seconds, connect=timeout_seconds, read=timeout_seconds, write=timeout_seconds
    )
    base = base_url.rstrip("/")
    return httpx.AsyncClient(
        base_url=base,
        timeout=timeout,
        headers=headers or {},
        transport=transport,
    )


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    payload: dict[str, Any],
    *,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """
    POST a JSON body and map transport failures to provider errors.

    Timeouts and network failures are transient; anything else raised by
    httpx is permanent.
    """
    headers = dict(headers or {})
    request_id = request_id_ctx.get()
    if request_id and "X-Request-ID" not in headers:
        headers["X-Request-ID"] = request_id

    try:
        return await client.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as exc:
        raise ProviderTimeoutError(details={"reason": str(exc)}) from exc
    except (httpx.ConnectError, httpx.NetworkError) as exc:
        raise ProviderUnavailableError(details={"reason": str(exc)}) from exc
    except httpx.HTTPError as exc:
        raise ProviderError("Provider request failed", details={"reason": str(exc)}) from exc


def raise_for_status(response: httpx.Response) -> None:
    """
    Map HTTP status codes to stable provider error types.
    """
    status = response.status_code
    if status < 400:
        return

    details = _safe_error_details(response)
    logger.warning("Provider HTTP error", data=details)

    if status in (401, 403):
        raise ProviderAuthError(details=details)
    if status == 429:
        raise ProviderRateLimitedError(details=details)
    if status >= 500:
        raise ProviderUnavailableError(details=details)
    raise ProviderError("Provider rejected the request", details=details)


def parse_json(response: httpx.Response) -> dict[str, Any]:
    """
    Parse a JSON object body with consistent error handling.
    """
    try:
        data = response.json()
    except json.JSONDecodeError as exc:
        snippet = response.text[:500] if response.text else ""
        raise ProviderBadResponseError(details={"body": snippet}) from exc
    if not isinstance(data, dict):
        raise ProviderBadResponseError(details={"body": response.text[:500]})
    return data


def parse_usage(
    data: dict[str, Any], input_key: str, output_key: str
) -> tuple[int | None, int | None]:
    """
    Read token counts from a response's ``usage`` block.

    A missing block or key yields ``None`` so the caller can estimate.
    Anything else that is not an integer count is a bad response.
    """
    usage = data.get("usage")
    if usage is None:
        return None, None
    if not isinstance(usage, dict):
        raise ProviderBadResponseError(details={"reason": "usage is not an object"})

    counts: list[int | None] = []
    for key in (input_key, output_key):
        value = usage.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
            raise ProviderBadResponseError(
                details={"reason": f"usage.{key} is not an integer", "value": repr(value)[:50]}
            )
        counts.append(value)
    return counts[0], counts[1]


def _safe_error_details(response: httpx.Response) -> dict[str, Any]:
    """Return a small, non-sensitive error payload for debugging."""
    return {
        "status": response.status_code,
        "body": response.text[:300] if response.text else "",
        "url": str(response.request.url),
    }
