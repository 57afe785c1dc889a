# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import logging
import socket
import ssl

import httpx
import pytest

from pgcurl.config import DEFAULT_USER_AGENT, CurlSettings, load_curl_settings
from pgcurl.errors import (
    CurlCode,
    MissingArgumentError,
    PerformError,
    PgCurlError,
    TransferCancelledError,
    UnsupportedOptionError,
    categorize_exception,
    curl_strerror,
)
from pgcurl.http.models import TransferResult
from pgcurl.log import DEFAULT_LOG_LEVEL, ENGINE_LOGGERS, resolve_level, setup_logging

_ENV_VARS = (
    "PGCURL_CONNECT_TIMEOUT",
    "PGCURL_USER_AGENT",
    "PGCURL_VERIFY_SSL",
    "PGCURL_MAX_BODY_BYTES",
    "PGCURL_UPLOAD_CHUNK_SIZE",
    "PGCURL_MAX_REDIRECTS",
    "PGCURL_TRAP_SIGINT",
    "PGCURL_POLL_INTERVAL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_settings_defaults(clean_env):
    settings = load_curl_settings()
    assert settings == CurlSettings()
    assert settings.connect_timeout == 300.0
    assert settings.max_redirects == 30
    assert settings.trap_sigint is True
    assert DEFAULT_USER_AGENT.startswith("pgcurl/")


def test_settings_from_env(clean_env):
    clean_env.setenv("PGCURL_CONNECT_TIMEOUT", "12.5")
    clean_env.setenv("PGCURL_USER_AGENT", "agent/1")
    clean_env.setenv("PGCURL_VERIFY_SSL", "no")
    clean_env.setenv("PGCURL_MAX_BODY_BYTES", "1024")
    clean_env.setenv("PGCURL_UPLOAD_CHUNK_SIZE", "10")
    clean_env.setenv("PGCURL_MAX_REDIRECTS", "3")
    clean_env.setenv("PGCURL_TRAP_SIGINT", "0")
    clean_env.setenv("PGCURL_POLL_INTERVAL", "0.25")

    settings = load_curl_settings()

    assert settings.connect_timeout == 12.5
    assert settings.user_agent == "agent/1"
    assert settings.verify_ssl is False
    assert settings.max_body_bytes == 1024
    assert settings.upload_chunk_size == 10
    assert settings.max_redirects == 3
    assert settings.trap_sigint is False
    assert settings.poll_interval == 0.25


def test_invalid_env_values_fall_back(clean_env):
    clean_env.setenv("PGCURL_CONNECT_TIMEOUT", "soon")
    clean_env.setenv("PGCURL_MAX_BODY_BYTES", "-5")
    clean_env.setenv("PGCURL_UPLOAD_CHUNK_SIZE", "0")
    clean_env.setenv("PGCURL_MAX_REDIRECTS", "lots")
    clean_env.setenv("PGCURL_USER_AGENT", "")
    clean_env.setenv("PGCURL_POLL_INTERVAL", "-1")

    settings = load_curl_settings()

    assert settings.connect_timeout == 300.0
    assert settings.max_body_bytes == 0
    assert settings.upload_chunk_size == 64 * 1024
    assert settings.max_redirects == 30
    assert settings.user_agent is None
    assert settings.poll_interval == 0.1


@pytest.fixture
def restore_loggers():
    names = ("pgcurl",) + ENGINE_LOGGERS
    saved = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


def test_setup_logging_levels(restore_loggers):
    assert setup_logging("not-a-level") == logging.WARNING
    assert setup_logging("info") == logging.INFO
    assert logging.getLogger("pgcurl").level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING

    assert setup_logging("debug") == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.DEBUG


def test_resolve_level_reads_env_default():
    assert resolve_level("error") == logging.ERROR
    assert resolve_level(None) == resolve_level(DEFAULT_LOG_LEVEL)


def _request() -> httpx.Request:
    return httpx.Request("GET", "http://example.test/")


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (httpx.UnsupportedProtocol("nope"), CurlCode.UNSUPPORTED_PROTOCOL),
        (httpx.InvalidURL("bad"), CurlCode.URL_MALFORMAT),
        (httpx.TooManyRedirects("loop", request=_request()), CurlCode.TOO_MANY_REDIRECTS),
        (httpx.ReadTimeout("slow", request=_request()), CurlCode.OPERATION_TIMEDOUT),
        (httpx.ConnectTimeout("slow", request=_request()), CurlCode.OPERATION_TIMEDOUT),
        (httpx.ProxyError("proxy"), CurlCode.COULDNT_RESOLVE_PROXY),
        (httpx.ConnectError("[Errno 111] Connection refused"), CurlCode.COULDNT_CONNECT),
        (httpx.ConnectError("[Errno -2] Name or service not known"), CurlCode.COULDNT_RESOLVE_HOST),
        (httpx.DecodingError("bad gzip"), CurlCode.BAD_CONTENT_ENCODING),
        (
            httpx.RemoteProtocolError("Server disconnected without sending a response."),
            CurlCode.GOT_NOTHING,
        ),
        (httpx.RemoteProtocolError("peer closed connection"), CurlCode.RECV_ERROR),
        (httpx.WriteError("broken pipe"), CurlCode.SEND_ERROR),
        (httpx.ReadError("reset"), CurlCode.RECV_ERROR),
        (ConnectionResetError("reset"), CurlCode.COULDNT_CONNECT),
        (RuntimeError("boom"), CurlCode.UNKNOWN_ERROR),
    ],
)
def test_categorize_exception(exc, expected):
    assert categorize_exception(exc) is expected


def test_categorize_exception_follows_cause_chain():
    try:
        try:
            raise ssl.SSLCertVerificationError("certificate verify failed")
        except ssl.SSLError as inner:
            raise httpx.ConnectError("handshake failed") from inner
    except httpx.ConnectError as exc:
        assert categorize_exception(exc) is CurlCode.PEER_FAILED_VERIFICATION

    try:
        try:
            raise socket.gaierror(-2, "Name or service not known")
        except OSError as inner:
            raise httpx.ConnectError("lookup failed") from inner
    except httpx.ConnectError as exc:
        assert categorize_exception(exc) is CurlCode.COULDNT_RESOLVE_HOST


def test_curl_strerror():
    assert curl_strerror(CurlCode.OK) == "No error"
    assert curl_strerror(CurlCode.COULDNT_RESOLVE_HOST) == "Couldn't resolve host name"
    assert curl_strerror(None) == "Unknown error"
    for code in CurlCode:
        assert curl_strerror(code)


def test_transfer_result_strerror():
    assert TransferResult(ok=True).strerror == "No error"
    failed = TransferResult(ok=False, code=CurlCode.OPERATION_TIMEDOUT, error_message="after 5 ms")
    assert failed.strerror == "Timeout was reached (after 5 ms)"


def test_error_hierarchy():
    assert issubclass(MissingArgumentError, ValueError)
    assert issubclass(UnsupportedOptionError, PgCurlError)
    assert issubclass(TransferCancelledError, PerformError)
    err = UnsupportedOptionError("CURLOPT_FOO")
    assert str(err) == "unsupported option CURLOPT_FOO"
    assert err.name == "CURLOPT_FOO"
    assert PerformError("x").code is CurlCode.UNKNOWN_ERROR
