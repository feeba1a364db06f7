"""Shared fixtures: client options and a loopback Synse WebSocket server."""

from __future__ import annotations

import asyncio
import json
import os
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Union

import pytest
import websockets
from websockets.asyncio.server import ServerConnection, serve

from synse_client.config import ClientOptions

Frame = Union[str, Dict[str, Any]]
Responder = Callable[[Dict[str, Any]], Optional[List[Frame]]]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep SYNSE_* variables and stray .env files out of every test."""
    for name in list(os.environ):
        if name.startswith("SYNSE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def options() -> ClientOptions:
    """Options for a local server with fast, retry-free requests."""
    return ClientOptions(
        address="localhost:5000",
        timeout=1.0,
        retry={"count": 0, "wait_time": 0.0, "max_wait_time": 0.0},
    )


class MockSynseServer:
    """Synse WebSocket peer running on its own loop in a background thread.

    Every request frame is recorded and handed to the responder, whose
    returned frames are sent back on the same connection.
    """

    def __init__(self, responder: Responder) -> None:
        self.responder = responder
        self.received: List[Dict[str, Any]] = []
        self.paths: List[str] = []
        self.port: Optional[int] = None
        self._connections: set = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stopped: Optional[asyncio.Event] = None
        self._ready = threading.Event()
        self._thread = threading.Thread(target=self._run, name="mock-synse", daemon=True)

    @property
    def address(self) -> str:
        return f"127.0.0.1:{self.port}"

    def start(self) -> "MockSynseServer":
        self._thread.start()
        if not self._ready.wait(timeout=5):
            raise RuntimeError("mock server did not start")
        return self

    def _run(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._serve())
        finally:
            self._loop.close()

    async def _serve(self) -> None:
        self._stopped = asyncio.Event()
        async with serve(self._handler, "127.0.0.1", 0) as server:
            self.port = next(iter(server.sockets)).getsockname()[1]
            self._ready.set()
            await self._stopped.wait()

    async def _handler(self, connection: ServerConnection) -> None:
        self.paths.append(connection.request.path)
        self._connections.add(connection)
        try:
            async for message in connection:
                request = json.loads(message)
                self.received.append(request)
                for frame in self.responder(request) or []:
                    await connection.send(frame if isinstance(frame, str) else json.dumps(frame))
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            self._connections.discard(connection)

    def _call(self, coroutine: Any) -> None:
        assert self._loop is not None
        asyncio.run_coroutine_threadsafe(coroutine, self._loop).result(timeout=5)

    def push(self, frame: Frame) -> None:
        """Send an unsolicited frame to every connected client."""
        message = frame if isinstance(frame, str) else json.dumps(frame)

        async def broadcast() -> None:
            for connection in list(self._connections):
                await connection.send(message)

        self._call(broadcast())

    def disconnect(self) -> None:
        """Close every client connection from the server side."""

        async def close_all() -> None:
            for connection in list(self._connections):
                await connection.close()

        self._call(close_all())

    def requests_for(self, event: str) -> List[Dict[str, Any]]:
        return [r for r in self.received if r.get("event") == event]

    def stop(self) -> None:
        if self._loop is not None and self._stopped is not None:
            self._loop.call_soon_threadsafe(self._stopped.set)
        self._thread.join(timeout=5)


@pytest.fixture
def synse_server():
    """Factory fixture starting a MockSynseServer with the given responder."""
    servers: List[MockSynseServer] = []

    def start(responder: Responder) -> MockSynseServer:
        server = MockSynseServer(responder).start()
        servers.append(server)
        return server

    yield start

    for server in servers:
        server.stop()


def _wait_for(condition: Callable[[], bool], timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


@pytest.fixture
def wait_for():
    """Poll until condition() is true or the timeout passes."""
    return _wait_for
