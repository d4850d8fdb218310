"""Shared HTTP helpers for the cloud adapters.

Maps httpx transport failures and HTTP status codes onto the subsync error
taxonomy, so each adapter only deals with its own API shape.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import httpx

from subsync.core.errors import (
    AuthError,
    ConflictError,
    NetworkError,
    NotConfiguredError,
    QuotaExceededError,
    RemoteError,
)


@contextmanager
def translate_transport_errors(service: str) -> Iterator[None]:
    """Turn httpx timeouts and connection failures into ``NetworkError``."""
    try:
        yield
    except httpx.TimeoutException as exc:
        raise NetworkError(f"{service} request timed out", timeout=True) from exc
    except httpx.TransportError as exc:
        raise NetworkError(f"{service} is unreachable: {exc}") from exc


def check_response(response: httpx.Response, service: str) -> httpx.Response:
    """Return *response* when successful, else raise the mapped error."""
    if response.is_success:
        return response
    raise status_error(response, service)


def status_error(response: httpx.Response, service: str) -> RemoteError:
    status = response.status_code
    detail = _error_detail(response)
    if status == 401:
        return AuthError(f"{service} rejected the token (401): {detail}")
    if status == 403:
        if response.headers.get("x-ratelimit-remaining") == "0":
            return QuotaExceededError(f"{service} rate limit exhausted: {detail}")
        return AuthError(f"{service} denied access (403): {detail}")
    if status == 429:
        return QuotaExceededError(f"{service} rate limit exhausted: {detail}")
    if status == 404:
        return NotConfiguredError(f"{service} target not found (404): {detail}")
    if status in (409, 412):
        return ConflictError(f"{service} reported a conflicting write ({status}): {detail}")
    if status == 413:
        return QuotaExceededError(f"{service} payload too large (413): {detail}")
    return NetworkError(f"{service} returned HTTP {status}: {detail}")


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)[:200]
    return str(body)[:200]
