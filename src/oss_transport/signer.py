"""
Request signing.

OSS signature version 1: base64(HMAC-SHA1(secret, canonical string)),
sent as ``Authorization: OSS <access-key-id>:<signature>``.
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from typing import Any, Dict, Mapping, Optional, Union

from .canonical import canonical_string
from .settings import Settings

__all__ = ["sign", "authorization", "content_md5", "sign_request"]

logger = logging.getLogger(__name__)


def sign(secret: str, canonical: str) -> str:
    """Base64-encoded HMAC-SHA1 of the canonical string."""
    digest = hmac.new(secret.encode("utf-8"), canonical.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def authorization(access_key_id: str, signature: str) -> str:
    return f"OSS {access_key_id}:{signature}"


def content_md5(data: Union[bytes, bytearray, memoryview]) -> str:
    """Base64 of the raw MD5 digest, as expected in Content-MD5."""
    return base64.b64encode(hashlib.md5(data).digest()).decode("ascii")


def sign_request(
    headers: Dict[str, str],
    verb: str,
    resource: str,
    sub_res: Optional[Mapping[str, Any]],
    settings: Settings,
) -> bool:
    """
    Add the Authorization header to ``headers`` in place.

    When the settings carry no access key id/secret pair the request is sent
    unauthenticated: nothing is added and False is returned.

    Returns:
        True if the request was signed
    """
    if not settings.has_credentials:
        logger.debug(f"Signing skipped for {verb} {resource}: no credentials configured")
        return False

    canonical = canonical_string(verb, headers, resource, sub_res)
    logger.debug(f"String to sign: {canonical!r}")
    signature = sign(settings.access_key_secret, canonical)
    headers["Authorization"] = authorization(settings.access_key_id, signature)
    return True
