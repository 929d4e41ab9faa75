"""Run an endpoint through a transport and deliver its rows."""

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict

from api_schema_query.errors import StreamTransportError
from api_schema_query.schema.base import Endpoint
from api_schema_query.stream.decoder import consume_stream

logger = logging.getLogger(__name__)


class TransportResult(BaseModel):
    """What a transport call returns: a value or byte stream, the raw response, or an error."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    data: Any = None
    response: Any = None
    error: Any = None


Transport = Callable[[dict[str, Any]], Any]


async def call_transport(transport: Transport, args: dict[str, Any]) -> TransportResult:
    result = transport(args)
    if inspect.isawaitable(result):
        result = await result
    if isinstance(result, TransportResult):
        return result
    return TransportResult.model_validate(result)


def _release(response: Any) -> None:
    close = getattr(response, "close", None)
    if callable(close):
        close()


async def fetch_rows(
    transport: Transport,
    endpoint: Endpoint,
    args: dict[str, Any],
    on_row: Callable[[Any], None],
    on_error: Callable[[Exception], None] | None = None,
    on_complete: Callable[[], None] | None = None,
    cancel: asyncio.Event | None = None,
) -> None:
    """Call *transport* for *endpoint* and hand every resulting row to *on_row*.

    Streaming endpoints are decoded record by record; other endpoints deliver
    their list items, or the single value, as rows.
    """

    def fail(error: Exception) -> None:
        if on_error is None:
            raise error
        on_error(error)

    try:
        result = await call_transport(transport, args)
    except Exception as e:
        logger.info("%s raised: %s", endpoint.operation_id, e)
        error = StreamTransportError(f"{endpoint.operation_id} failed: {e}")
        error.__cause__ = e
        fail(error)
        return
    if result.error:
        logger.info("%s failed: %s", endpoint.operation_id, result.error)
        fail(StreamTransportError(f"{endpoint.operation_id} failed: {result.error}"))
        return

    if endpoint.streaming:
        data = result.data
        try:
            if data is None or getattr(data, "locked", False):
                fail(StreamTransportError("Data stream locked or not available"))
                return
            await consume_stream(data, on_row, on_error, on_complete, cancel)
        finally:
            _release(result.response)
        return

    rows = result.data if isinstance(result.data, list) else [result.data]
    for row in rows:
        on_row(row)
    if on_complete is not None:
        on_complete()
