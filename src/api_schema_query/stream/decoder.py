"""NDJSON stream decoding.

Byte chunks are decoded incrementally, so a multi-byte UTF-8 character split
across two chunks decodes correctly, and lines are parsed as soon as their
terminating newline arrives.
"""

import asyncio
import codecs
import json
import logging
import re
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable
from typing import Any

from api_schema_query.errors import StreamDecodeError, StreamTransportError

logger = logging.getLogger(__name__)

LINE_SPLIT = re.compile(r"\r?\n")

ByteStream = AsyncIterable[bytes] | Iterable[bytes]


class LineBuffer:
    """Accumulates decoded text and hands out complete lines."""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)()
        self._pending = ""

    def feed(self, chunk: bytes) -> list[str]:
        self._pending += self._decoder.decode(chunk)
        lines = LINE_SPLIT.split(self._pending)
        self._pending = lines.pop()
        return [line for line in lines if line.strip()]

    def finish(self) -> list[str]:
        self._pending += self._decoder.decode(b"", final=True)
        rest, self._pending = self._pending, ""
        return [line for line in LINE_SPLIT.split(rest) if line.strip()]


_END = object()


async def _iterate(stream: ByteStream) -> AsyncIterator[bytes]:
    if hasattr(stream, "__aiter__"):
        async for chunk in stream:
            yield chunk
        return
    # blocking reads run in a worker thread so the loop can still see cancel
    chunks = iter(stream)
    while True:
        chunk = await asyncio.to_thread(next, chunks, _END)
        if chunk is _END:
            return
        yield chunk


async def iter_lines(stream: ByteStream, cancel: asyncio.Event | None = None) -> AsyncIterator[str]:
    """Yield complete non-blank lines of a byte stream.

    Stops without flushing the partial last line when *cancel* is set.
    """
    buffer = LineBuffer()
    reader = _iterate(stream)
    try:
        while True:
            if cancel is not None and cancel.is_set():
                logger.warning("Stream cancelled")
                return
            try:
                chunk = await reader.__anext__()
            except StopAsyncIteration:
                break
            except Exception as e:
                raise StreamTransportError(f"Stream read failed: {e}") from e
            for line in buffer.feed(chunk):
                yield line
        for line in buffer.finish():
            yield line
    finally:
        await reader.aclose()
        close = getattr(stream, "aclose", None) or getattr(stream, "close", None)
        if close is not None:
            result = close()
            if asyncio.iscoroutine(result):
                await result


async def consume_stream(
    stream: ByteStream,
    on_message: Callable[[Any], None],
    on_error: Callable[[Exception], None] | None = None,
    on_complete: Callable[[], None] | None = None,
    cancel: asyncio.Event | None = None,
) -> None:
    """Parse an NDJSON byte stream and call *on_message* for each record.

    A line that is not valid JSON is reported to *on_error* and skipped. A
    failing read ends consumption; it is reported to *on_error*, or raised
    when no error callback is given. *on_complete* runs only when the stream
    ends on its own, not when it is cancelled.
    """
    lines = iter_lines(stream, cancel)
    try:
        async for line in lines:
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                if on_error is None:
                    logger.warning("Skipping invalid NDJSON line: %s", e)
                else:
                    on_error(StreamDecodeError(line, e))
                continue
            on_message(record)
    except StreamTransportError as e:
        if on_error is None:
            raise
        on_error(e)
        return
    finally:
        await lines.aclose()

    if cancel is not None and cancel.is_set():
        return
    if on_complete is not None:
        on_complete()


async def collect_stream_lines(stream: ByteStream, cancel: asyncio.Event | None = None) -> list[str]:
    """Read a stream to the end and return its raw non-blank lines."""
    return [line async for line in iter_lines(stream, cancel)]
