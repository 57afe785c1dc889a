# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import signal
import socket
import threading
import time

import pytest

from pgcurl import procedures
from pgcurl.config import CurlSettings
from pgcurl.errors import CurlCode, PerformError, TransferCancelledError
from pgcurl.session import CurlSession

PARTIAL_RESPONSE = b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\nContent-Length: 100\r\n\r\nabc"
PROXY_ENV = ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy")


class StallingServer:
    """Accepts one request, sends ``payload`` and then holds the connection open."""

    def __init__(self, payload: bytes):
        self.payload = payload
        self.release = threading.Event()
        self._sock = socket.create_server(("127.0.0.1", 0))
        self._sock.settimeout(10)
        self.port = self._sock.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    @property
    def url(self) -> str:
        return f"http://127.0.0.1:{self.port}/stall"

    def _serve(self) -> None:
        try:
            conn, _ = self._sock.accept()
        except OSError:
            return
        with conn:
            try:
                conn.settimeout(10)
                received = b""
                while b"\r\n\r\n" not in received:
                    chunk = conn.recv(4096)
                    if not chunk:
                        return
                    received += chunk
                if self.payload:
                    conn.sendall(self.payload)
                self.release.wait(10)
            except OSError:
                return

    def close(self) -> None:
        self.release.set()
        self._sock.close()
        self._thread.join(5)


@pytest.fixture
def stalling_server(monkeypatch):
    for name in PROXY_ENV:
        monkeypatch.delenv(name, raising=False)
    servers: list[StallingServer] = []

    def start(payload: bytes = b"") -> str:
        server = StallingServer(payload)
        servers.append(server)
        return server.url

    yield start
    for server in servers:
        server.close()


@pytest.fixture
def network_session():
    session = CurlSession(CurlSettings(trap_sigint=False, poll_interval=0.05))
    yield session
    session.close()


@pytest.mark.parametrize("payload", [b"", PARTIAL_RESPONSE], ids=["before-headers", "mid-body"])
def test_cancel_aborts_stalled_transfer(stalling_server, network_session, payload):
    network_session.set_option_string("CURLOPT_URL", stalling_server(payload))
    timer = threading.Timer(0.3, network_session.cancel_token.cancel)
    timer.start()
    started = time.monotonic()

    with pytest.raises(TransferCancelledError) as excinfo:
        network_session.perform()

    timer.join()
    assert time.monotonic() - started < 3
    assert excinfo.value.code is CurlCode.ABORTED_BY_CALLBACK
    assert not network_session.cancel_token.is_cancelled()
    assert network_session.handle._client is None


def test_timeout_ms_applies_while_stalled(stalling_server, network_session):
    network_session.set_option_string("CURLOPT_URL", stalling_server(PARTIAL_RESPONSE))
    network_session.set_option_long("CURLOPT_TIMEOUT_MS", 300)
    started = time.monotonic()

    with pytest.raises(PerformError) as excinfo:
        network_session.perform()

    assert time.monotonic() - started < 3
    assert excinfo.value.code is CurlCode.OPERATION_TIMEDOUT


@pytest.mark.skipif(not hasattr(signal, "pthread_kill"), reason="requires signal.pthread_kill")
def test_sigint_aborts_stalled_perform(stalling_server):
    url = stalling_server()
    gd = {}
    procedures.process_init(gd, CurlSettings(trap_sigint=True, poll_interval=0.05))
    try:
        procedures.set_option_string(gd, "CURLOPT_URL", url)
        timer = threading.Timer(0.3, signal.pthread_kill, args=(threading.main_thread().ident, signal.SIGINT))
        timer.start()
        started = time.monotonic()

        with pytest.raises(TransferCancelledError):
            procedures.perform(gd)

        timer.join()
        assert time.monotonic() - started < 3
        assert not procedures.get_session(gd).cancel_token.is_cancelled()
    finally:
        procedures.process_teardown(gd)
