"""
HTTP transport for the OSS RESTful API.

Handles the protocol details every storage operation shares:
- builds and signs each request
- streams successful response bodies to a callback without buffering them
- reads error bodies fully and raises a TransportError carrying the request id
- sends streaming request bodies with chunked transfer encoding

Example::

    with HTTP(settings) as http:
        http.put(bucket="bucket", key="object", body=b"hello")

        with open("out", "wb") as f:
            http.get(bucket="bucket", key="object", on_chunk=f.write)

        def produce(stream):
            stream.write(b"hello ")
            stream.write(b"world")

        http.put(bucket="bucket", key="object", body=http.streaming_body(produce))
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import httpx

from .error_mapper import REQUEST_ID_HEADER, map_error
from .errors import StreamProtocolError
from .request import PreparedRequest, RequestBuilder, RequestSpec
from .settings import Settings
from .signer import sign_request
from .stream import Producer, StreamWriter

__all__ = ["HTTP", "ResponseEnvelope"]

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[bytes], Any]


@dataclass(frozen=True)
class ResponseEnvelope:
    """
    Result of a successful request.

    ``body`` holds the decoded body when it was buffered; it is None when the
    chunks were delivered to an ``on_chunk`` callback instead (``streamed``).
    """
    status_code: int
    headers: httpx.Headers
    body: Optional[bytes] = None
    streamed: bool = False

    @property
    def request_id(self) -> Optional[str]:
        return self.headers.get(REQUEST_ID_HEADER)


class HTTP:
    """
    Executes storage API requests over one httpx connection pool.

    Settings are read-only and shared by all requests; each streaming upload
    owns its own StreamWriter. No retries happen at this layer.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            settings: Endpoint, credentials and timeouts
            transport: httpx transport override (e.g. httpx.MockTransport in tests)
            clock: Source of the Date header timestamp
        """
        self.settings = settings
        self.builder = RequestBuilder(settings, clock=clock)
        self.client = httpx.Client(
            timeout=httpx.Timeout(
                connect=settings.open_timeout,
                read=settings.read_timeout,
                write=settings.read_timeout,
                pool=settings.open_timeout,
            ),
            follow_redirects=False,
            transport=transport,
        )

    @staticmethod
    def streaming_body(producer: Producer) -> StreamWriter:
        """Wrap a producer callable as a streaming request body."""
        return StreamWriter(producer)

    def execute(self, spec: RequestSpec, on_chunk: Optional[ChunkCallback] = None) -> ResponseEnvelope:
        """
        Send one request and handle the response by status.

        Args:
            spec: The request to send
            on_chunk: Called with each decoded body chunk of a successful
                response; when omitted the body is buffered into the envelope

        Returns:
            ResponseEnvelope for status < 300

        Raises:
            TransportError: For status >= 300, after the error body was read
            httpx.RequestError: Connection, DNS or timeout failures, unwrapped
            StreamProtocolError: If a streaming body's producer raised
        """
        prepared = self.builder.build(spec)
        signed = sign_request(prepared.headers, prepared.method, prepared.resource, prepared.sub_res, self.settings)

        logger.debug(
            f"Send HTTP request, verb: {prepared.method}, resource: {prepared.resource}, "
            f"sub_res: {prepared.sub_res}, streaming: {prepared.streaming}, signed: {signed}"
        )

        try:
            return self._send(prepared, on_chunk)
        except httpx.RequestError as e:
            logger.error(f"Network error on {prepared.method} {prepared.resource}: {e!r}")
            raise
        except StreamProtocolError as e:
            logger.error(f"Stream producer failed on {prepared.method} {prepared.resource}: {e}")
            raise
        finally:
            if isinstance(prepared.content, StreamWriter):
                prepared.content.close()

    def _send(self, prepared: PreparedRequest, on_chunk: Optional[ChunkCallback]) -> ResponseEnvelope:
        request = self.client.build_request(
            prepared.method,
            prepared.url,
            headers=prepared.headers,
            content=prepared.content,
        )
        response = self.client.send(request, stream=True)
        try:
            # Decided from the status line alone, before any body bytes
            if response.status_code >= 300:
                response.read()
                error = map_error(
                    response.status_code,
                    response.headers,
                    response.content,
                    verb=prepared.method,
                    resource=prepared.resource,
                )
                logger.error(str(error))
                raise error

            if on_chunk is not None:
                for chunk in response.iter_bytes():
                    on_chunk(chunk)
                envelope = ResponseEnvelope(response.status_code, response.headers, None, True)
            else:
                envelope = ResponseEnvelope(response.status_code, response.headers, response.read(), False)
        finally:
            response.close()

        logger.debug(
            f"Received HTTP response, code: {envelope.status_code}, "
            f"request_id: {envelope.request_id}, streamed: {envelope.streamed}"
        )
        return envelope

    def get(self, bucket: Optional[str] = None, key: Optional[str] = None, **options) -> ResponseEnvelope:
        return self._call("GET", bucket, key, **options)

    def put(self, bucket: Optional[str] = None, key: Optional[str] = None, **options) -> ResponseEnvelope:
        return self._call("PUT", bucket, key, **options)

    def post(self, bucket: Optional[str] = None, key: Optional[str] = None, **options) -> ResponseEnvelope:
        return self._call("POST", bucket, key, **options)

    def delete(self, bucket: Optional[str] = None, key: Optional[str] = None, **options) -> ResponseEnvelope:
        return self._call("DELETE", bucket, key, **options)

    def head(self, bucket: Optional[str] = None, key: Optional[str] = None, **options) -> ResponseEnvelope:
        return self._call("HEAD", bucket, key, **options)

    def options(self, bucket: Optional[str] = None, key: Optional[str] = None, **options) -> ResponseEnvelope:
        return self._call("OPTIONS", bucket, key, **options)

    def _call(
        self,
        verb: str,
        bucket: Optional[str],
        key: Optional[str],
        *,
        sub_res: Optional[Mapping[str, Any]] = None,
        query: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
        on_chunk: Optional[ChunkCallback] = None,
    ) -> ResponseEnvelope:
        spec = RequestSpec(
            verb=verb,
            bucket=bucket,
            key=key,
            sub_res=sub_res or {},
            query=query or {},
            headers=headers or {},
            body=body,
        )
        return self.execute(spec, on_chunk)

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
