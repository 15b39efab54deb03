"""Thin async JSON client for the EduMatch REST API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from edumatch.config import DEFAULT_API_BASE_URL, REQUEST_TIMEOUT_SEC
from edumatch.errors import AuthError, NetworkError, NotFoundError, ServerError

LOGGER = logging.getLogger(__name__)


class ApiClient:
    """Wrap :class:`httpx.AsyncClient` and translate failures into domain errors.

    Transport failures and timeouts raise :class:`NetworkError`; 401/403 raise
    :class:`AuthError`; 404/409 raise :class:`NotFoundError`; every other
    non-2xx status raises :class:`ServerError`.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        *,
        token: Optional[str] = None,
        timeout: float = REQUEST_TIMEOUT_SEC,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return str(self._client.base_url)

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self._request("GET", path, params=params)

    async def post_json(self, path: str, payload: Dict[str, Any]) -> Any:
        return await self._request("POST", path, json=payload)

    async def put_json(self, path: str, payload: Dict[str, Any]) -> Any:
        return await self._request("PUT", path, json=payload)

    async def delete_json(self, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        if payload is None:
            return await self._request("DELETE", path)
        return await self._request("DELETE", path, json=payload)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            LOGGER.warning("%s %s timed out", method, path)
            raise NetworkError(f"{method} {path} timed out") from exc
        except httpx.TransportError as exc:
            LOGGER.warning("%s %s failed: %s", method, path, exc)
            raise NetworkError(f"Cannot reach {self.base_url}: {exc}") from exc

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise _status_error(response) from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ServerError(f"{method} {path} returned invalid JSON", response.status_code) from exc


def _status_error(response: httpx.Response) -> Exception:
    status = response.status_code
    message = _error_message(response) or f"HTTP {status}"
    if status in (401, 403):
        return AuthError(message)
    if status in (404, 409):
        return NotFoundError(message)
    return ServerError(message, status)


def _error_message(response: httpx.Response) -> Optional[str]:
    """Pull a readable message out of ``{"error": {"code", "message"}}`` bodies."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("message") or error.get("code")
    if isinstance(error, str):
        return error
    return body.get("message")
