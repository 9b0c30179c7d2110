"""
Streaming request bodies.

StreamWriter turns a push-style producer (a callable that calls
``stream.write(chunk)`` as data becomes available) into a pull-style,
file-like object that httpx reads chunk by chunk while sending a chunked
request body.

The producer runs on its own thread, but production and consumption never
overlap: the producer only runs while the consumer is blocked inside
``read()``, and it suspends after every ``write()`` until the consumer asks
for more. Bytes are delivered in exactly the order they were written, and at
most one write's worth of data is buffered beyond what the consumer asked for.

Example::

    def produce(stream):
        for line in lines:
            stream.write(line)

    http.put(bucket="b", key="k", body=StreamWriter(produce))
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, IO, Iterator, Optional, Union

from .errors import StreamClosedError, StreamProtocolError

__all__ = ["StreamWriter", "iter_readable", "CHUNK_SIZE"]

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024  # 64 KiB, matches httpx's streaming read size

Producer = Callable[["StreamWriter"], None]


class StreamWriter:
    """
    Single-producer, single-consumer handoff between ``write()`` and ``read()``.

    The producer thread is started lazily by the first ``read()``. If the
    request is abandoned before the body is fully consumed, ``close()`` wakes
    a producer suspended in ``write()`` with StreamClosedError so its thread
    can exit; no other cancellation signal reaches the producer.
    """

    def __init__(self, producer: Optional[Producer] = None, *, chunk_size: int = CHUNK_SIZE):
        """
        Args:
            producer: Callable receiving this stream; writes the body and returns.
                Without a producer the stream only yields what was written
                to it beforehand.
            chunk_size: Size of the chunks yielded when iterating
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self._producer = producer
        self._chunk_size = chunk_size
        self._buffer = bytearray()

        # Strict alternation: consumer releases _resume and waits on
        # _suspended; producer does the reverse inside write().
        self._resume = threading.Semaphore(0)
        self._suspended = threading.Semaphore(0)
        self._read_lock = threading.Lock()

        self._thread: Optional[threading.Thread] = None
        self._finished = producer is None
        self._error: Optional[Exception] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def finished(self) -> bool:
        """True once the producer has returned (or raised)."""
        return self._finished

    def readable(self) -> bool:
        return True

    def write(self, chunk: Union[bytes, bytearray, memoryview, str]) -> "StreamWriter":
        """
        Append ``chunk`` to the body and suspend until the consumer reads again.

        Raises:
            StreamClosedError: If the session was closed by the consumer
        """
        if self._closed:
            raise StreamClosedError("write() on a closed stream")

        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")

        if self._producer is None:
            # Pre-filled stream, nothing to suspend
            self._buffer += chunk
            return self

        if threading.current_thread() is not self._thread:
            raise RuntimeError("write() must be called from the stream producer")

        self._buffer += chunk
        self._suspended.release()
        self._resume.acquire()

        if self._closed:
            raise StreamClosedError("stream closed while producer was suspended")
        return self

    def read(self, size: Optional[int] = None) -> bytes:
        """
        Read up to ``size`` bytes, resuming the producer as needed.

        With a positive ``size``, blocks until ``size`` bytes have been
        produced or the producer has finished, in which case the remainder is
        returned. ``b""`` signals end of stream. With ``size`` None or
        negative, drains the producer to exhaustion and returns everything.

        Raises:
            StreamProtocolError: If the producer raised
            RuntimeError: If called concurrently from two consumers
        """
        if self._closed:
            raise ValueError("read() on a closed stream")
        if size is not None and size < 0:
            size = None
        if size == 0:
            return b""

        if not self._read_lock.acquire(blocking=False):
            raise RuntimeError("StreamWriter does not support concurrent reads")
        try:
            out = bytearray()
            while True:
                if size is None:
                    out += self._buffer
                    self._buffer.clear()
                else:
                    wanted = size - len(out)
                    out += self._buffer[:wanted]
                    del self._buffer[:wanted]
                    if len(out) >= size:
                        break

                if self._finished:
                    break
                self._resume_producer()

            if self._error is not None:
                error, self._error = self._error, None
                raise StreamProtocolError(f"stream producer failed: {error}") from error

            return bytes(out)
        finally:
            self._read_lock.release()

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read(self._chunk_size)
            if not chunk:
                return
            yield chunk

    def close(self) -> None:
        """Discard the session, waking a suspended producer so it can exit."""
        if self._closed:
            return
        self._closed = True
        self._buffer.clear()
        if self._thread is not None and not self._finished:
            logger.debug("Stream closed before producer finished")
            self._resume.release()

    def _resume_producer(self) -> None:
        if self._thread is None:
            self._thread = threading.Thread(
                target=self._run, name="oss-stream-producer", daemon=True
            )
            self._thread.start()
        self._resume.release()
        self._suspended.acquire()

    def _run(self) -> None:
        self._resume.acquire()
        try:
            if not self._closed:
                self._producer(self)
        except StreamClosedError:
            logger.debug("Stream producer stopped: session closed")
        except Exception as e:
            self._error = e
        finally:
            self._finished = True
            self._suspended.release()

    def __repr__(self) -> str:
        return f"<StreamWriter buffered={len(self._buffer)} finished={self._finished} closed={self._closed}>"


def iter_readable(source: IO[bytes], chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """
    Iterate a file-like object in chunks.

    Wrapping a file this way hides its size from httpx, so the body is sent
    with chunked transfer encoding and no Content-Length.
    """
    while True:
        chunk = source.read(chunk_size)
        if not chunk:
            return
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        yield chunk
