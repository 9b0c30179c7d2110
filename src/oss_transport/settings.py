"""
Settings and configuration for the OSS transport.

Centralizes configuration values and provides validation with fail-fast behavior.
Settings are read-only and shared by every request issued through one client.
"""
from __future__ import annotations

import os
import platform
import re
from dataclasses import dataclass, field
from typing import Optional

__all__ = ["Settings", "create_settings_from_env", "default_user_agent", "VERSION"]

VERSION = "0.1.0"

OPEN_TIMEOUT = 10.0
READ_TIMEOUT = 120.0


def default_user_agent() -> str:
    """User-Agent identifying the SDK and the Python runtime."""
    return (
        f"oss-transport/{VERSION} "
        f"python-{platform.python_version()}/{platform.system().lower()}-{platform.machine()}"
    )


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for the OSS transport.

    Endpoint:
        endpoint: Service endpoint URL; "http://" is assumed when no scheme is given
        cname: Endpoint is a custom domain bound to a bucket, so the bucket is
            not prepended as a subdomain

    Credentials:
        access_key_id: Access key id placed in the Authorization header
        access_key_secret: Secret used to sign requests
        sts_token: Optional STS security token sent as x-oss-security-token

    HTTP:
        open_timeout: Connect timeout in seconds
        read_timeout: Read timeout in seconds
        http_retry: Attempts made by the retry layer on network errors (0=no retry)
        user_agent: User-Agent header value, fixed at construction
    """
    endpoint: str
    access_key_id: Optional[str] = None
    access_key_secret: Optional[str] = None
    sts_token: Optional[str] = None
    cname: bool = False
    open_timeout: float = OPEN_TIMEOUT
    read_timeout: float = READ_TIMEOUT
    http_retry: int = 0
    user_agent: str = field(default_factory=default_user_agent)

    def __post_init__(self):
        """Validate and normalize settings on construction."""
        if not self.endpoint:
            raise ValueError("endpoint is required")

        endpoint = self.endpoint.strip()
        if not re.match(r"^https?://", endpoint):
            endpoint = f"http://{endpoint}"
        endpoint = endpoint.rstrip("/")

        # scheme://host[:port], no path
        if not re.match(r"^https?://[a-zA-Z0-9.-]+(?::[0-9]+)?$", endpoint):
            raise ValueError(f"Invalid endpoint format: {self.endpoint}")
        object.__setattr__(self, "endpoint", endpoint)

        if self.open_timeout <= 0:
            raise ValueError(f"open_timeout must be positive, got {self.open_timeout}")

        if self.read_timeout <= 0:
            raise ValueError(f"read_timeout must be positive, got {self.read_timeout}")

        if self.http_retry < 0:
            raise ValueError(f"http_retry must be non-negative, got {self.http_retry}")

        if not self.user_agent:
            raise ValueError("user_agent must not be empty")

    @property
    def scheme(self) -> str:
        return self.endpoint.split("://", 1)[0]

    @property
    def host(self) -> str:
        return self.endpoint.split("://", 1)[1]

    @property
    def has_credentials(self) -> bool:
        """True when requests can be signed."""
        return bool(self.access_key_id and self.access_key_secret)


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - OSS_ENDPOINT (required)
        - OSS_ACCESS_KEY_ID (optional)
        - OSS_ACCESS_KEY_SECRET (optional)
        - OSS_SECURITY_TOKEN (optional)
        - OSS_CNAME (default: false)
        - OSS_OPEN_TIMEOUT (default: 10)
        - OSS_READ_TIMEOUT (default: 120)
        - OSS_HTTP_RETRY (default: 0)
        - OSS_USER_AGENT (optional, overrides the computed User-Agent)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid or required values missing

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    endpoint = os.getenv("OSS_ENDPOINT")
    if not endpoint:
        raise ValueError("OSS_ENDPOINT environment variable is required")

    user_agent = os.getenv("OSS_USER_AGENT") or default_user_agent()

    return Settings(
        endpoint=endpoint,
        access_key_id=os.getenv("OSS_ACCESS_KEY_ID") or None,
        access_key_secret=os.getenv("OSS_ACCESS_KEY_SECRET") or None,
        sts_token=os.getenv("OSS_SECURITY_TOKEN") or None,
        cname=str_to_bool(os.getenv("OSS_CNAME", "false")),
        open_timeout=get_float("OSS_OPEN_TIMEOUT", OPEN_TIMEOUT),
        read_timeout=get_float("OSS_READ_TIMEOUT", READ_TIMEOUT),
        http_retry=get_int("OSS_HTTP_RETRY", 0),
        user_agent=user_agent,
    )
