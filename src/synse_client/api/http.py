"""HTTP transport for the Synse Server REST API.

Each operation maps to one request. Versioned routes are prefixed with
the API version reported by ``/version``, which is resolved once per
client, lazily, on the first versioned call.

Features:
- Exponential backoff retry on connection failures and timeouts
- Error bodies decoded into ServerError with the server's fields preserved
- Newline-delimited JSON replay of cached readings into a stream sink
"""

from __future__ import annotations

import json
import queue
import threading
from collections.abc import Iterable, Iterator
from typing import Any, List, Optional, Type, TypeVar

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from synse_client.config.settings import ClientOptions
from synse_client.models import (
    Config,
    ErrorResponse,
    Info,
    Plugin,
    PluginHealth,
    PluginMeta,
    Read,
    ReadCacheOptions,
    ReadOptions,
    ReadStreamOptions,
    Scan,
    ScanOptions,
    Status,
    TagsOptions,
    Transaction,
    Transport,
    Version,
    Write,
)

from .client import WriteInput, write_payload
from .endpoints import ENDPOINTS, build_url, versioned_path
from .exceptions import (
    ConnectionError,
    ProtocolError,
    RequestTimeoutError,
    ServerError,
    UnsupportedOperationError,
)
from .session import retry_from_options
from .streams import StreamSubscription
from .tls import create_ssl_context

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def iter_json_values(chunks: Iterable[str]) -> Iterator[Any]:
    """Decode a stream of concatenated JSON values.

    Values may be separated by newlines or any other whitespace and may
    span chunk boundaries.

    Raises:
        ProtocolError: If trailing data is not valid JSON.
    """
    decoder = json.JSONDecoder()
    buffer = ""
    for chunk in chunks:
        buffer += chunk
        while True:
            buffer = buffer.lstrip()
            if not buffer:
                break
            try:
                value, end = decoder.raw_decode(buffer)
            except json.JSONDecodeError:
                break
            yield value
            buffer = buffer[end:]

    if buffer.strip():
        raise ProtocolError(f"failed to decode JSON stream near: {buffer[:100]!r}")


class HTTPClient:
    """Client for the Synse Server HTTP API.

    Attributes:
        options: Immutable client options.
        scheme: ``https`` when TLS is enabled, ``http`` otherwise.
        base_url: Scheme and address of the server.

    Example:
        with HTTPClient(ClientOptions(address="localhost:5000")) as client:
            for device in client.scan():
                print(device.id, device.type)
    """

    transport = Transport.HTTP

    def __init__(self, options: ClientOptions) -> None:
        """Initialize the HTTP client.

        Args:
            options: Validated client options.

        Raises:
            ConfigurationError: TLS certificates cannot be loaded.
        """
        self.options = options
        self._ssl_context = create_ssl_context(options.tls)
        self.scheme = "https" if options.tls.enabled else "http"
        self.base_url = build_url(self.scheme, options.address)
        self._http_client: Optional[httpx.Client] = None
        self._client_lock = threading.Lock()
        self._api_version: Optional[str] = None
        self._version_lock = threading.Lock()
        self._retry = retry_from_options(options.retry)

    @property
    def http_client(self) -> httpx.Client:
        """Lazy-initialize the pooled HTTP client."""
        with self._client_lock:
            if self._http_client is None:
                self._http_client = httpx.Client(
                    base_url=self.base_url,
                    timeout=self.options.timeout,
                    verify=self._ssl_context if self._ssl_context is not None else True,
                )
            return self._http_client

    @property
    def api_version(self) -> Optional[str]:
        """The cached API version, or None before resolution."""
        return self._api_version

    def open(self) -> None:
        """No-op; HTTP connections are opened per request."""
        logger.debug("http_open_noop", base_url=self.base_url)

    def close(self) -> None:
        """Close pooled connections. The client stays usable."""
        with self._client_lock:
            if self._http_client is not None:
                self._http_client.close()
                self._http_client = None
        logger.debug("http_closed", base_url=self.base_url)

    def get_options(self) -> ClientOptions:
        return self.options

    def status(self) -> Status:
        return self._get(ENDPOINTS.status, Status)

    def version(self) -> Version:
        return self._get(ENDPOINTS.version, Version)

    def config(self) -> Config:
        return self._get(self._versioned(ENDPOINTS.config), Config)

    def plugins(self) -> List[PluginMeta]:
        return self._get(self._versioned(ENDPOINTS.plugins), List[PluginMeta])

    def plugin(self, plugin_id: str) -> Plugin:
        return self._get(self._versioned(ENDPOINTS.plugin, plugin_id), Plugin)

    def plugin_health(self) -> PluginHealth:
        return self._get(self._versioned(ENDPOINTS.plugin_health), PluginHealth)

    def scan(self, options: Optional[ScanOptions] = None) -> List[Scan]:
        params = (options or ScanOptions()).to_query_params()
        return self._get(self._versioned(ENDPOINTS.scan), List[Scan], params=params)

    def tags(self, options: Optional[TagsOptions] = None) -> List[str]:
        params = (options or TagsOptions()).to_query_params()
        return self._get(self._versioned(ENDPOINTS.tags), List[str], params=params)

    def info(self, device_id: str) -> Info:
        return self._get(self._versioned(ENDPOINTS.info, device_id), Info)

    def read(self, options: Optional[ReadOptions] = None) -> List[Read]:
        params = (options or ReadOptions()).to_query_params()
        return self._get(self._versioned(ENDPOINTS.read), List[Read], params=params)

    def read_device(self, device_id: str, options: Optional[ReadOptions] = None) -> List[Read]:
        params = (options or ReadOptions()).to_query_params()
        return self._get(
            self._versioned(ENDPOINTS.read_device, device_id), List[Read], params=params
        )

    def read_cache(
        self,
        options: Optional[ReadCacheOptions] = None,
        sink: Optional[queue.Queue] = None,
    ) -> StreamSubscription:
        """Replay cached readings into the sink.

        The request and its status check happen before this returns, so
        server errors are raised here. The body is then decoded by a
        background thread, and the stream ends with the body.

        Args:
            options: Optional start/end bounds for the replay.
            sink: Queue receiving Read records. A bounded queue sized by
                ``websocket.stream_buffer_size`` is created when omitted.

        Returns:
            The StreamSubscription feeding the sink.
        """
        if sink is None:
            sink = queue.Queue(maxsize=self.options.websocket.stream_buffer_size)
        params = (options or ReadCacheOptions()).to_query_params()
        path = self._versioned(ENDPOINTS.read_cache)

        response = self._send("GET", path, params=params, stream=True)
        subscription = StreamSubscription(sink, bounded=True)

        pump = threading.Thread(
            target=self._pump_cache,
            args=(response, subscription),
            name="synse-readcache",
            daemon=True,
        )
        pump.start()
        return subscription

    def read_stream(
        self,
        options: Optional[ReadStreamOptions] = None,
        sink: Optional[queue.Queue] = None,
        stop: Optional[threading.Event] = None,
    ) -> StreamSubscription:
        """Not offered by the HTTP API.

        Raises:
            UnsupportedOperationError: Always.
        """
        raise UnsupportedOperationError(
            "read_stream is not available over HTTP",
            hint="Use a WebSocket client for live reading streams.",
        )

    def write_async(self, device_id: str, data: Iterable[WriteInput]) -> List[Write]:
        return self._post(
            self._versioned(ENDPOINTS.write_async, device_id),
            write_payload(data),
            List[Write],
        )

    def write_sync(self, device_id: str, data: Iterable[WriteInput]) -> List[Transaction]:
        return self._post(
            self._versioned(ENDPOINTS.write_sync, device_id),
            write_payload(data),
            List[Transaction],
        )

    def transactions(self) -> List[str]:
        return self._get(self._versioned(ENDPOINTS.transactions), List[str])

    def transaction(self, transaction_id: str) -> Transaction:
        return self._get(self._versioned(ENDPOINTS.transaction, transaction_id), Transaction)

    def _resolve_api_version(self) -> str:
        """Return the cached API version, asking the server the first time.

        A failed lookup leaves the cache empty so the next call tries again.
        """
        with self._version_lock:
            if self._api_version is None:
                try:
                    version = self.version()
                except Exception as e:
                    logger.warning(
                        "api_version_resolution_failed",
                        base_url=self.base_url,
                        error=str(e),
                    )
                    raise
                if not version.api_version:
                    raise ProtocolError("version response did not include an api_version")
                self._api_version = version.api_version
                logger.info(
                    "api_version_resolved",
                    base_url=self.base_url,
                    api_version=self._api_version,
                    server_version=version.version,
                )
            return self._api_version

    def _versioned(self, route: str, item_id: Optional[str] = None) -> str:
        return versioned_path(self._resolve_api_version(), route, item_id)

    def _get(self, path: str, model: Type[T], **kwargs: Any) -> T:
        response = self._send("GET", path, **kwargs)
        return self._decode(response, model)

    def _post(self, path: str, body: Any, model: Type[T]) -> T:
        response = self._send("POST", path, json=body)
        return self._decode(response, model)

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
        stream: bool = False,
    ) -> httpx.Response:
        """Send a request with the retry policy applied.

        Raises:
            RequestTimeoutError: The request timed out on every attempt.
            ConnectionError: The server could not be reached, or answered
                with an error status and no error body.
            ServerError: The server answered with an error body.
        """
        client = self.http_client
        request = client.build_request(method, path, params=params, json=json)

        try:
            response = self._retry(client.send)(request, stream=stream)
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                message=f"{method} {path} timed out",
                timeout=self.options.timeout,
            ) from e
        except httpx.RequestError as e:
            raise ConnectionError(
                message=f"failed to make a request to synse server: {e}",
            ) from e

        logger.debug(
            "http_response",
            method=method,
            path=path,
            status=response.status_code,
        )

        if response.is_success:
            return response

        try:
            if stream:
                response.read()
            self._raise_for_error(response)
        finally:
            response.close()
        return response

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        """Classify a non-success response."""
        error = ErrorResponse()
        try:
            error = ErrorResponse.model_validate(response.json())
        except ValueError:
            pass

        if not error.is_empty():
            raise ServerError(error)

        raise ConnectionError(
            message=f"API error: {response.status_code} {response.reason_phrase}",
        )

    @staticmethod
    def _decode(response: httpx.Response, model: Type[T]) -> T:
        """Validate a JSON body against a record type.

        Raises:
            ProtocolError: The body is not JSON or does not fit the schema.
        """
        try:
            return TypeAdapter(model).validate_python(response.json())
        except (ValueError, ValidationError) as e:
            raise ProtocolError(
                f"failed to decode response from {response.request.url.path}: {e}"
            ) from e

    @staticmethod
    def _pump_cache(response: httpx.Response, subscription: StreamSubscription) -> None:
        """Decode a readcache body into the subscription until it ends."""
        try:
            for payload in iter_json_values(response.iter_text()):
                if not subscription.offer(payload):
                    return
            subscription.finish()
        except ProtocolError as e:
            subscription.finish(e)
        except httpx.TimeoutException as e:
            subscription.finish(RequestTimeoutError(message=f"readcache stream timed out: {e}"))
        except httpx.HTTPError as e:
            subscription.finish(ConnectionError(message=f"readcache stream failed: {e}"))
        finally:
            response.close()

    def __enter__(self) -> "HTTPClient":
        """Enter context manager."""
        self.open()
        return self

    def __exit__(
        self,
        exc_type: Any,
        exc_val: Any,
        exc_tb: Any,
    ) -> None:
        """Exit context manager - close pooled connections."""
        self.close()
