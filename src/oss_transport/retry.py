"""
Retry layer on top of the transport.

The transport itself never retries. Callers that want resilience against
transient network failures wrap execute() with execute_with_retries().
Server errors (TransportError) are never retried here, and neither are
streaming bodies, which cannot be replayed.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from .http import HTTP, ChunkCallback, ResponseEnvelope
from .request import RequestSpec, is_streaming_body

__all__ = ["RETRYABLE_ERRORS", "execute_with_retries"]

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (httpx.ConnectError, httpx.TimeoutException)


def execute_with_retries(
    http: HTTP,
    spec: RequestSpec,
    on_chunk: Optional[ChunkCallback] = None,
    *,
    attempts: int,
    wait: Optional[wait_base] = None,
) -> ResponseEnvelope:
    """
    Execute ``spec``, retrying connection failures and timeouts.

    Args:
        http: Transport to execute with
        spec: Request to send
        on_chunk: Passed through to HTTP.execute
        attempts: Total attempts; values <= 1 disable retrying
        wait: tenacity wait strategy (defaults to exponential backoff, 1-10s)

    Raises:
        The last exception once attempts are exhausted
    """
    if attempts <= 1 or is_streaming_body(spec.body):
        return http.execute(spec, on_chunk)

    # Chunks already handed to on_chunk cannot be taken back, so only
    # failures before the connection was established are retried then.
    retryable = RETRYABLE_ERRORS if on_chunk is None else (httpx.ConnectError, httpx.ConnectTimeout)

    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait or wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(retryable),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return retrying(http.execute, spec, on_chunk)
