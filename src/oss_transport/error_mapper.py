"""
Map failed responses to TransportError.

The service answers errors with an XML ``<Error>`` document (some gateways
and mock servers answer JSON instead). Parsing is best effort: a body that
is empty or malformed still yields a TransportError carrying the status,
request id and raw text.
"""
from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, Mapping, Optional, Type, Union

from .errors import (
    AccessDeniedError,
    ConflictError,
    NotFoundError,
    RateLimitedError,
    TransportError,
)

__all__ = ["REQUEST_ID_HEADER", "parse_error_body", "error_class_for", "map_error"]

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "x-oss-request-id"

_STATUS_ERRORS: Dict[int, Type[TransportError]] = {
    401: AccessDeniedError,
    403: AccessDeniedError,
    404: NotFoundError,
    409: ConflictError,
    429: RateLimitedError,
}


def error_class_for(status_code: int) -> Type[TransportError]:
    return _STATUS_ERRORS.get(status_code, TransportError)


def _local_name(tag: str) -> str:
    # "{namespace}Code" -> "Code"
    return tag.rsplit("}", 1)[-1]


def _field_value(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def parse_error_body(text: str) -> Optional[Dict[str, Optional[str]]]:
    """
    Parse an error document into a flat dict.

    Accepts the XML form (``<Error><Code>..</Code>..</Error>``, namespaced or
    not) or a JSON object. Returns None when the body is neither.
    """
    stripped = text.lstrip("\ufeff").strip()
    if not stripped:
        return None

    if stripped.startswith("<"):
        try:
            root = ET.fromstring(stripped)
        except ET.ParseError:
            return None
        return {_local_name(child.tag): (child.text or "").strip() for child in root}

    if stripped.startswith("{"):
        try:
            data = json.loads(stripped)
        except ValueError:
            return None
        if isinstance(data, dict):
            return {str(k): _field_value(v) for k, v in data.items()}

    return None


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def map_error(
    status_code: int,
    headers: Mapping[str, str],
    body: Union[bytes, str, None],
    *,
    verb: Optional[str] = None,
    resource: Optional[str] = None,
) -> TransportError:
    """
    Build the TransportError for a failed response. Never raises.

    The request id comes from the x-oss-request-id header, falling back to
    the RequestId field of the parsed body.
    """
    if isinstance(body, (bytes, bytearray)):
        text = bytes(body).decode("utf-8", errors="replace")
    else:
        text = body or ""

    try:
        parsed = parse_error_body(text)
    except Exception as e:  # malformed bodies must not mask the HTTP failure
        logger.debug(f"Could not parse error body for {verb} {resource}: {e}")
        parsed = None

    request_id = _header(headers, REQUEST_ID_HEADER)
    if not request_id and parsed:
        request_id = parsed.get("RequestId") or None

    error_cls = error_class_for(status_code)
    return error_cls(
        status_code,
        request_id=request_id,
        code=parsed.get("Code") if parsed else None,
        message=parsed.get("Message") if parsed else None,
        body=text,
        error=parsed,
        verb=verb,
        resource=resource,
        headers=dict(headers.items()),
    )
