"""HTTP transport built on requests."""

import logging
from typing import Any

import requests

from api_schema_query import config
from api_schema_query.schema.base import Endpoint
from api_schema_query.stream.client import TransportResult

logger = logging.getLogger(__name__)


class ResponseStream:
    """Byte chunks of a streamed response; closing it releases the connection."""

    def __init__(self, response: requests.Response, chunk_size: int = config.STREAM_CHUNK_SIZE):
        self.response = response
        self._chunks = response.iter_content(chunk_size=chunk_size)

    def __iter__(self):
        return self._chunks

    def close(self) -> None:
        close = getattr(self._chunks, "close", None)
        if close is not None:
            close()
        self.response.close()


class RequestsTransport:
    """Sends endpoint requests built by ``build_full_request``."""

    def __init__(self, base_url: str = config.BASE_URL, token: str = config.API_TOKEN, session: requests.Session | None = None):
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def for_endpoint(self, endpoint: Endpoint):
        """Return the per-operation callable for *endpoint*."""

        def call(args: dict[str, Any]) -> TransportResult:
            return self.send(endpoint, args)

        return call

    def send(self, endpoint: Endpoint, args: dict[str, Any]) -> TransportResult:
        path = endpoint.path
        for name, value in (args.get("path") or {}).items():
            path = path.replace(f"{{{name}}}", requests.utils.quote(str(value), safe=""))

        stream = bool(args.get("stream_response"))
        throw = args.get("throw_on_error", True)
        logger.debug("%s %s", endpoint.method, path)
        try:
            response = self.session.request(
                endpoint.method,
                f"{self.base_url}{path}",
                params=args.get("query"),
                json=args.get("body"),
                stream=stream,
                timeout=config.REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            if throw:
                raise
            return TransportResult(error=e)

        if not response.ok:
            error = _error_body(response)
            response.close()
            if throw:
                response.raise_for_status()
            return TransportResult(response=response, error=error)

        if stream:
            return TransportResult(data=ResponseStream(response), response=response)
        try:
            data = response.json() if response.content else None
        except ValueError as e:
            logger.info("%s returned a body that is not JSON", endpoint.operation_id)
            if throw:
                raise
            return TransportResult(response=response, error=e)
        return TransportResult(data=data, response=response)


def _error_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
