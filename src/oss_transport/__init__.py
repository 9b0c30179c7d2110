"""
HTTP transport core for the OSS object-storage API.

Builds signed requests, streams request and response bodies, and maps failed
responses to TransportError.
"""
from .errors import (
    AccessDeniedError,
    ConflictError,
    NotFoundError,
    RateLimitedError,
    StreamClosedError,
    StreamProtocolError,
    TransportError,
)
from .http import HTTP, ResponseEnvelope
from .request import RequestBuilder, RequestSpec
from .settings import VERSION as __version__
from .settings import Settings, create_settings_from_env
from .stream import StreamWriter

__all__ = [
    "HTTP",
    "ResponseEnvelope",
    "RequestBuilder",
    "RequestSpec",
    "Settings",
    "create_settings_from_env",
    "StreamWriter",
    "TransportError",
    "AccessDeniedError",
    "ConflictError",
    "NotFoundError",
    "RateLimitedError",
    "StreamClosedError",
    "StreamProtocolError",
]
