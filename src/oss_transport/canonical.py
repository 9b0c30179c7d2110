"""
Canonical request representation.

Builds the string the service recomputes when it verifies a signature, plus
the resource path, request URL and query string derived from the same
bucket/object/sub-resource triple. Everything here is a pure function of its
arguments; any divergence from the server's rules (ordering, escaping, case)
breaks authentication silently.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional
from urllib.parse import quote, urlencode

__all__ = [
    "HEADER_PREFIX",
    "canonical_string",
    "canonical_headers",
    "canonical_resource",
    "resource_path",
    "request_url",
    "query_string",
]

HEADER_PREFIX = "x-oss-"


def _is_bare(value: Any) -> bool:
    # Valueless sub-resources (e.g. ?acl) are rendered as the bare key
    return value is None or value == "" or isinstance(value, bool)


def resource_path(bucket: Optional[str], key: Optional[str]) -> str:
    """
    Resource path used in the canonical string.

    Returns "/" without a bucket, "/bucket/" for the bucket itself and
    "/bucket/key" for an object. The key is not escaped.
    """
    if not bucket:
        if key:
            raise ValueError("an object key requires a bucket")
        return "/"
    return f"/{bucket}/{key or ''}"


def canonical_headers(headers: Mapping[str, str]) -> str:
    """Vendor headers as sorted ``name:value\\n`` lines, names lower-cased."""
    selected = []
    for name, value in headers.items():
        key = name.lower().strip()
        if key.startswith(HEADER_PREFIX):
            selected.append((key, str(value).strip()))
    return "".join(f"{k}:{v}\n" for k, v in sorted(selected))


def canonical_resource(resource: str, sub_res: Optional[Mapping[str, Any]] = None) -> str:
    """Resource path followed by the sorted sub-resources, if any."""
    pairs = []
    for key in sorted(sub_res or {}):
        value = sub_res[key]
        pairs.append(key if _is_bare(value) else f"{key}={value}")
    if pairs:
        return f"{resource}?{'&'.join(pairs)}"
    return resource


def canonical_string(
    verb: str,
    headers: Mapping[str, str],
    resource: str,
    sub_res: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Build the string to sign.

    Layout::

        VERB\\n
        Content-MD5\\n
        Content-Type\\n
        Date\\n
        x-oss-a:value\\n        (zero or more, sorted by name)
        /bucket/key?sub1&sub2=v

    Header names are matched case-insensitively; a missing Content-MD5,
    Content-Type or Date contributes an empty line.
    """
    lowered = {str(k).lower(): v for k, v in headers.items()}
    content_md5 = lowered.get("content-md5") or ""
    content_type = lowered.get("content-type") or ""
    date = lowered.get("date") or ""

    return (
        f"{verb.upper()}\n{content_md5}\n{content_type}\n{date}\n"
        f"{canonical_headers(headers)}{canonical_resource(resource, sub_res)}"
    )


def request_url(endpoint: str, bucket: Optional[str], key: Optional[str], cname: bool = False) -> str:
    """
    Resolve the URL for a bucket/object.

    Virtual-hosted style (``scheme://bucket.host/key``) unless the endpoint
    is a custom domain (``cname``), in which case the bucket is implied by
    the host. Object keys are fully percent-escaped, including "/".
    """
    scheme, host = endpoint.split("://", 1)
    url = f"{scheme}://"
    if bucket and not cname:
        url += f"{bucket}."
    url += host
    if key:
        url += "/" + quote(key, safe="")
    else:
        url += "/"
    return url


def query_string(
    sub_res: Optional[Mapping[str, Any]] = None,
    query: Optional[Mapping[str, Any]] = None,
) -> str:
    """
    Merge sub-resources and query options into a query string.

    Sub-resources come first in insertion order; an explicit query option
    with the same name replaces the sub-resource value.
    """
    merged = dict(sub_res or {})
    merged.update(query or {})

    parts = []
    for key, value in merged.items():
        if _is_bare(value):
            parts.append(quote(str(key), safe=""))
        else:
            parts.append(urlencode({key: value}))
    return "&".join(parts)
