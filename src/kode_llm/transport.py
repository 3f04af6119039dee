"""Minimal httpx transport for adapter payloads.

Posts the dict built by ``create_request`` to ``profile.base_url + path``
and hands back either the parsed JSON body or the live streaming response.
Failures are translated into :mod:`kode_llm.errors` types; nothing here
retries.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from kode_llm.errors import (
    NetworkError,
    ProviderError,
    RequestTimeoutError,
    error_from_status,
)
from kode_llm.models import ModelProfile

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 600.0


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _model(payload: dict[str, Any]) -> str | None:
    model = payload.get("model")
    return model if isinstance(model, str) else None


def _to_provider_error(
    response: httpx.Response, body: bytes, path: str, payload: dict[str, Any]
) -> ProviderError:
    decoded: dict[str, Any] | None = None
    message = body.decode("utf-8", errors="replace")[:500]
    try:
        parsed = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        parsed = None
    if isinstance(parsed, dict):
        decoded = parsed
        error = parsed.get("error")
        if isinstance(error, dict) and error.get("message"):
            message = str(error["message"])
    return error_from_status(
        response.status_code,
        message or f"HTTP {response.status_code}",
        endpoint=path,
        model=_model(payload),
        body=decoded,
        retry_after=_retry_after(response),
    )


class HTTPTransport:
    """Send adapter payloads over HTTP for one model profile.

    Args:
        profile: Supplies ``base_url`` and the optional bearer ``api_key``.
        timeout: Request timeout in seconds.
        client: Optional pre-built ``httpx.AsyncClient`` (not closed here).
    """

    def __init__(
        self,
        profile: ModelProfile,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._profile = profile
        self._timeout = timeout
        self._client = client

    def _url(self, path: str) -> str:
        return self._profile.base_url.rstrip("/") + "/" + path.lstrip("/")

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._profile.api_key:
            headers["Authorization"] = f"Bearer {self._profile.api_key}"
        return headers

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    async def post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST *payload* and return the decoded JSON body.

        Raises:
            ProviderError: On a non-2xx status (subclass chosen by status).
            RequestTimeoutError: If the request timed out.
            NetworkError: On any other transport failure.
        """
        logger.debug("POST %s model=%s", path, payload.get("model"))
        try:
            async with self._session() as client:
                response = await client.post(
                    self._url(path), json=payload, headers=self._headers()
                )
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(
                str(exc), endpoint=path, model=_model(payload)
            ) from exc
        except httpx.TransportError as exc:
            raise NetworkError(str(exc)) from exc

        if response.status_code >= 400:
            raise _to_provider_error(response, response.content, path, payload)
        return response.json()

    @asynccontextmanager
    async def stream(
        self, path: str, payload: dict[str, Any]
    ) -> AsyncIterator[httpx.Response]:
        """Open a streaming POST and yield the live response.

        The body is left unread so an adapter can decode it incrementally;
        the connection is closed when the context exits.

        Raises:
            ProviderError: On a non-2xx status (subclass chosen by status).
            RequestTimeoutError: If the request timed out.
            NetworkError: On any other transport failure.
        """
        logger.debug("POST %s (stream) model=%s", path, payload.get("model"))
        try:
            async with self._session() as client:
                async with client.stream(
                    "POST", self._url(path), json=payload, headers=self._headers()
                ) as response:
                    if response.status_code >= 400:
                        body = await response.aread()
                        raise _to_provider_error(response, body, path, payload)
                    yield response
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(
                str(exc), endpoint=path, model=_model(payload)
            ) from exc
        except httpx.TransportError as exc:
            raise NetworkError(str(exc)) from exc
