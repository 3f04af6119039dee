"""Exceptions raised by the kode-llm transport, SSE decoder and adapters.

Retryability is reported, never acted on: the caller owns the retry policy.
"""

from __future__ import annotations

from typing import Any

# Statuses worth retrying besides 5xx.
_RETRYABLE_STATUSES = frozenset({408, 409, 429})


class KodeError(Exception):
    """Base exception for kode-llm."""

    @property
    def is_retryable(self) -> bool:
        return False


class ProviderError(KodeError):
    """The model endpoint answered a request with an error.

    Attributes:
        status_code: HTTP status, or None when no response arrived.
        endpoint: Request path the payload was posted to.
        model: ``model`` field of the payload, if any.
        error_code: ``error.code`` (or ``error.type``) from the body.
        retry_after: Seconds from the ``Retry-After`` header.
        body: Decoded JSON error body.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
        model: str | None = None,
        error_code: str | None = None,
        retry_after: float | None = None,
        body: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint
        self.model = model
        self.error_code = error_code
        self.retry_after = retry_after
        self.body = body

    @property
    def is_retryable(self) -> bool:
        if self.status_code is None:
            return False
        return self.status_code >= 500 or self.status_code in _RETRYABLE_STATUSES

    def __str__(self) -> str:
        message = super().__str__()
        where = " ".join(
            part
            for part in (
                str(self.status_code) if self.status_code is not None else "",
                self.endpoint,
                f"model={self.model}" if self.model else "",
            )
            if part
        )
        return f"{message} ({where})" if where else message


class AuthenticationError(ProviderError):
    """401/403: the API key was missing, wrong or not allowed."""


class RateLimitError(ProviderError):
    """429: quota or rate limit hit; see ``retry_after``."""


class ServerError(ProviderError):
    """5xx from the endpoint."""


class RequestTimeoutError(ProviderError):
    """The request or stream timed out before a response completed."""

    @property
    def is_retryable(self) -> bool:
        return True


class NetworkError(KodeError):
    """Connection-level failure (refused, reset, DNS)."""

    @property
    def is_retryable(self) -> bool:
        return True


class AbortError(KodeError):
    """Stream consumption was cancelled by the caller."""


class StreamError(KodeError):
    """A raw response could not be consumed as a stream."""


class ConfigurationError(KodeError):
    """A model profile or setting is unusable."""


def error_from_status(
    status_code: int,
    message: str,
    *,
    endpoint: str = "",
    model: str | None = None,
    body: dict[str, Any] | None = None,
    retry_after: float | None = None,
) -> ProviderError:
    """Build the ProviderError subclass for an HTTP error status.

    Statuses without a dedicated subclass give a plain ProviderError whose
    retryability follows the status.
    """
    if status_code in (401, 403):
        cls: type[ProviderError] = AuthenticationError
    elif status_code == 429:
        cls = RateLimitError
    elif status_code >= 500:
        cls = ServerError
    else:
        cls = ProviderError
    error_code = None
    if body is not None:
        error = body.get("error")
        if isinstance(error, dict):
            code = error.get("code") or error.get("type")
            if isinstance(code, str):
                error_code = code
    return cls(
        message,
        status_code=status_code,
        endpoint=endpoint,
        model=model,
        error_code=error_code,
        retry_after=retry_after,
        body=body,
    )
