"""
Request construction.

RequestSpec describes one call in storage terms (verb, bucket, key,
sub-resources, options); RequestBuilder turns it into a PreparedRequest with
the final URL, query string, default headers and body source. No I/O happens
here.
"""
from __future__ import annotations

import mimetypes
import posixpath
import time
from dataclasses import dataclass, field
from email.utils import formatdate
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Union

from .canonical import query_string, request_url, resource_path
from .settings import Settings
from .signer import content_md5
from .stream import StreamWriter, iter_readable

__all__ = [
    "VERBS",
    "DEFAULT_CONTENT_TYPE",
    "STS_HEADER",
    "RequestSpec",
    "PreparedRequest",
    "RequestBuilder",
    "guess_content_type",
    "is_streaming_body",
]

VERBS = ("GET", "PUT", "POST", "DELETE", "HEAD", "OPTIONS")

DEFAULT_CONTENT_TYPE = "application/octet-stream"
STS_HEADER = "x-oss-security-token"

# Types the service assigns that the platform mimetypes table may lack
_CONTENT_TYPES = {
    ".js": "application/javascript",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xltx": "application/vnd.openxmlformats-officedocument.spreadsheetml.template",
    ".potx": "application/vnd.openxmlformats-officedocument.presentationml.template",
    ".ppsx": "application/vnd.openxmlformats-officedocument.presentationml.slideshow",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".sldx": "application/vnd.openxmlformats-officedocument.presentationml.slide",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".dotx": "application/vnd.openxmlformats-officedocument.wordprocessingml.template",
    ".xlam": "application/vnd.ms-excel.addin.macroEnabled.12",
    ".xlsb": "application/vnd.ms-excel.sheet.binary.macroEnabled.12",
    ".apk": "application/vnd.android.package-archive",
}

Body = Union[bytes, bytearray, str, StreamWriter, Any]


def guess_content_type(key: Optional[str]) -> str:
    """
    Content type for an object key, from its extension.

    Falls back to application/octet-stream for keys without a known extension.
    """
    if not key:
        return DEFAULT_CONTENT_TYPE
    ext = posixpath.splitext(key)[1].lower()
    if not ext:
        return DEFAULT_CONTENT_TYPE
    if ext in _CONTENT_TYPES:
        return _CONTENT_TYPES[ext]
    guessed, _ = mimetypes.guess_type(f"file{ext}", strict=False)
    return guessed or DEFAULT_CONTENT_TYPE


def is_streaming_body(body: Any) -> bool:
    """True for bodies sent incrementally: streams, file-likes, iterables of bytes."""
    if body is None or isinstance(body, (bytes, bytearray, memoryview, str)):
        return False
    return hasattr(body, "read") or isinstance(body, Iterable)


@dataclass(frozen=True)
class RequestSpec:
    """
    One storage API call.

    Invariants:
    - verb is one of VERBS (normalized to upper case)
    - key requires bucket
    """
    verb: str
    bucket: Optional[str] = None
    key: Optional[str] = None
    sub_res: Mapping[str, Any] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[Body] = None

    def __post_init__(self) -> None:
        verb = (self.verb or "").upper()
        if verb not in VERBS:
            raise ValueError(f"Unsupported HTTP verb: {self.verb!r}. Expected one of: {', '.join(VERBS)}")
        object.__setattr__(self, "verb", verb)

        if self.key and not self.bucket:
            raise ValueError("An object key requires a bucket")

        object.__setattr__(self, "sub_res", dict(self.sub_res or {}))
        object.__setattr__(self, "query", dict(self.query or {}))
        object.__setattr__(self, "headers", dict(self.headers or {}))

    @property
    def resource(self) -> str:
        return resource_path(self.bucket, self.key)


@dataclass
class PreparedRequest:
    """Output of RequestBuilder, ready to be signed and sent."""
    method: str
    url: str
    headers: Dict[str, str]
    content: Optional[Union[bytes, Iterable[bytes]]]
    resource: str
    sub_res: Dict[str, Any]
    streaming: bool = False


def _pop_header(headers: Dict[str, str], name: str) -> Optional[str]:
    """Remove a header regardless of case; returns the last value seen."""
    value = None
    for existing in [k for k in headers if k.lower() == name.lower()]:
        value = headers.pop(existing)
    return value


class RequestBuilder:
    """Builds PreparedRequests for one Settings instance."""

    def __init__(self, settings: Settings, *, clock: Callable[[], float] = time.time):
        self._settings = settings
        self._clock = clock

    def build(self, spec: RequestSpec) -> PreparedRequest:
        """
        Resolve URL, query and headers for ``spec``.

        Header defaults:
        - User-Agent and Date are always set by the builder
        - Content-Type defaults to application/octet-stream
        - x-oss-security-token when an STS token is configured
        - Content-MD5 for in-memory bodies, Transfer-Encoding: chunked for
          streaming bodies (never both)
        """
        settings = self._settings
        headers = dict(spec.headers)

        _pop_header(headers, "User-Agent")
        _pop_header(headers, "Date")
        headers["User-Agent"] = settings.user_agent
        headers["Date"] = formatdate(self._clock(), usegmt=True)

        content_type = _pop_header(headers, "Content-Type")
        headers["Content-Type"] = content_type or DEFAULT_CONTENT_TYPE

        if settings.sts_token:
            _pop_header(headers, STS_HEADER)
            headers[STS_HEADER] = settings.sts_token

        content: Optional[Union[bytes, Iterable[bytes]]] = None
        streaming = False
        body = spec.body
        if body is not None:
            if is_streaming_body(body):
                streaming = True
                _pop_header(headers, "Content-Length")
                _pop_header(headers, "Content-MD5")
                _pop_header(headers, "Transfer-Encoding")
                headers["Transfer-Encoding"] = "chunked"
                if isinstance(body, StreamWriter) or not hasattr(body, "read"):
                    content = body
                else:
                    content = iter_readable(body)
            else:
                content = body.encode("utf-8") if isinstance(body, str) else bytes(body)
                _pop_header(headers, "Transfer-Encoding")
                _pop_header(headers, "Content-MD5")
                headers["Content-MD5"] = content_md5(content)

        url = request_url(settings.endpoint, spec.bucket, spec.key, settings.cname)
        query = query_string(spec.sub_res, spec.query)
        if query:
            url = f"{url}?{query}"

        return PreparedRequest(
            method=spec.verb,
            url=url,
            headers=headers,
            content=content,
            resource=spec.resource,
            sub_res=dict(spec.sub_res),
            streaming=streaming,
        )
