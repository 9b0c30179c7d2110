"""
OSS transport error classes.

Every failed HTTP response is surfaced to callers as a TransportError (or one
of its status-specific subclasses). Network failures are NOT wrapped here:
they surface as the underlying httpx exceptions because they carry no
server-side diagnostic payload.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional


class TransportError(Exception):
    """
    A non-2xx response from the storage service.

    Carries everything needed to correlate the failure with server-side logs:
    the status code, the request id returned by the service, the parsed error
    document (if the body could be parsed) and the raw body text.

    Attributes are read-only once the error has been constructed.
    """

    def __init__(
        self,
        status_code: int,
        *,
        request_id: Optional[str] = None,
        code: Optional[str] = None,
        message: Optional[str] = None,
        body: str = "",
        error: Optional[Mapping[str, Any]] = None,
        verb: Optional[str] = None,
        resource: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
    ):
        self._status_code = status_code
        self._request_id = request_id
        self._code = code
        self._message = message
        self._body = body
        self._error = dict(error) if error is not None else None
        self._verb = verb
        self._resource = resource
        self._headers = dict(headers or {})
        super().__init__(self._describe())

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def request_id(self) -> Optional[str]:
        return self._request_id

    @property
    def code(self) -> Optional[str]:
        return self._code

    @property
    def message(self) -> Optional[str]:
        return self._message

    @property
    def body(self) -> str:
        return self._body

    @property
    def error(self) -> Optional[dict]:
        """Parsed error document, or None when the body was not structured."""
        return dict(self._error) if self._error is not None else None

    @property
    def verb(self) -> Optional[str]:
        return self._verb

    @property
    def resource(self) -> Optional[str]:
        return self._resource

    @property
    def headers(self) -> dict:
        return dict(self._headers)

    def _describe(self) -> str:
        parts = [f"HTTP {self._status_code}"]
        if self._verb or self._resource:
            parts.append(f"{self._verb or '?'} {self._resource or '/'}")
        if self._code:
            parts.append(f"code={self._code}")
        if self._message:
            parts.append(f"message={self._message}")
        parts.append(f"request_id={self._request_id or '-'}")
        return ", ".join(parts)


class AccessDeniedError(TransportError):
    """
    Authentication or authorization failure.

    Raised for:
    - HTTP 401 Unauthorized
    - HTTP 403 Forbidden (bad signature, expired token, missing permission)
    """


class NotFoundError(TransportError):
    """
    Bucket or object does not exist.

    Raised for HTTP 404 (NoSuchBucket, NoSuchKey, ...).
    """


class ConflictError(TransportError):
    """
    Request conflicts with the current state of the resource.

    Raised for HTTP 409 (BucketAlreadyExists, PositionNotEqualToLength, ...).
    """


class RateLimitedError(TransportError):
    """Raised for HTTP 429 Too Many Requests."""


class StreamProtocolError(Exception):
    """
    The producer of a streaming body raised.

    The producer runs on its own thread; its exception is captured and
    re-raised from the consumer's next read() so it is never lost. The
    original exception is available as ``__cause__``.
    """


class StreamClosedError(Exception):
    """A write was attempted on a stream session that has been closed."""


__all__ = [
    "TransportError",
    "AccessDeniedError",
    "NotFoundError",
    "ConflictError",
    "RateLimitedError",
    "StreamProtocolError",
    "StreamClosedError",
]
