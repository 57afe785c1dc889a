# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Result codes and exception types."""

from __future__ import annotations

from enum import Enum


class CurlCode(str, Enum):
    OK = "CURLE_OK"
    UNSUPPORTED_PROTOCOL = "CURLE_UNSUPPORTED_PROTOCOL"
    URL_MALFORMAT = "CURLE_URL_MALFORMAT"
    COULDNT_RESOLVE_PROXY = "CURLE_COULDNT_RESOLVE_PROXY"
    COULDNT_RESOLVE_HOST = "CURLE_COULDNT_RESOLVE_HOST"
    COULDNT_CONNECT = "CURLE_COULDNT_CONNECT"
    WRITE_ERROR = "CURLE_WRITE_ERROR"
    READ_ERROR = "CURLE_READ_ERROR"
    OPERATION_TIMEDOUT = "CURLE_OPERATION_TIMEDOUT"
    ABORTED_BY_CALLBACK = "CURLE_ABORTED_BY_CALLBACK"
    BAD_FUNCTION_ARGUMENT = "CURLE_BAD_FUNCTION_ARGUMENT"
    TOO_MANY_REDIRECTS = "CURLE_TOO_MANY_REDIRECTS"
    UNKNOWN_OPTION = "CURLE_UNKNOWN_OPTION"
    GOT_NOTHING = "CURLE_GOT_NOTHING"
    SSL_CONNECT_ERROR = "CURLE_SSL_CONNECT_ERROR"
    PEER_FAILED_VERIFICATION = "CURLE_PEER_FAILED_VERIFICATION"
    SEND_ERROR = "CURLE_SEND_ERROR"
    RECV_ERROR = "CURLE_RECV_ERROR"
    BAD_CONTENT_ENCODING = "CURLE_BAD_CONTENT_ENCODING"
    UNKNOWN_ERROR = "CURLE_UNKNOWN_ERROR"


_STRERROR = {
    CurlCode.OK: "No error",
    CurlCode.UNSUPPORTED_PROTOCOL: "Unsupported protocol",
    CurlCode.URL_MALFORMAT: "URL using bad/illegal format or missing URL",
    CurlCode.COULDNT_RESOLVE_PROXY: "Couldn't resolve proxy name",
    CurlCode.COULDNT_RESOLVE_HOST: "Couldn't resolve host name",
    CurlCode.COULDNT_CONNECT: "Couldn't connect to server",
    CurlCode.WRITE_ERROR: "Failed writing received data to disk/application",
    CurlCode.READ_ERROR: "Failed to open/read local data from file/application",
    CurlCode.OPERATION_TIMEDOUT: "Timeout was reached",
    CurlCode.ABORTED_BY_CALLBACK: "Operation was aborted by an application callback",
    CurlCode.BAD_FUNCTION_ARGUMENT: "A libcurl function was given a bad argument",
    CurlCode.TOO_MANY_REDIRECTS: "Number of redirects hit maximum amount",
    CurlCode.UNKNOWN_OPTION: "An unknown option was passed in to libcurl",
    CurlCode.GOT_NOTHING: "Server returned nothing (no headers, no data)",
    CurlCode.SSL_CONNECT_ERROR: "SSL connect error",
    CurlCode.PEER_FAILED_VERIFICATION: "SSL peer certificate or SSH remote key was not OK",
    CurlCode.SEND_ERROR: "Failed sending data to the peer",
    CurlCode.RECV_ERROR: "Failure when receiving data from the peer",
    CurlCode.BAD_CONTENT_ENCODING: "Unrecognized or bad HTTP Content or Transfer-Encoding",
    CurlCode.UNKNOWN_ERROR: "Unknown error",
}


def curl_strerror(code: CurlCode | None) -> str:
    """Human readable description of a result code, worded like libcurl."""
    if code is None:
        return _STRERROR[CurlCode.UNKNOWN_ERROR]
    return _STRERROR.get(code, _STRERROR[CurlCode.UNKNOWN_ERROR])


def _cause_chain(exc: BaseException):
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def categorize_exception(exc: BaseException) -> CurlCode:
    """
    Map Python/httpx exceptions raised during a transfer to a CurlCode.
    """
    import socket
    import ssl as ssl_module

    import httpx

    for cause in _cause_chain(exc):
        if isinstance(cause, ssl_module.SSLCertVerificationError):
            return CurlCode.PEER_FAILED_VERIFICATION
        if isinstance(cause, (ssl_module.SSLError, ssl_module.CertificateError)):
            return CurlCode.SSL_CONNECT_ERROR
        if isinstance(cause, socket.gaierror):
            return CurlCode.COULDNT_RESOLVE_HOST

    if isinstance(exc, httpx.UnsupportedProtocol):
        return CurlCode.UNSUPPORTED_PROTOCOL
    if isinstance(exc, httpx.InvalidURL):
        return CurlCode.URL_MALFORMAT
    if isinstance(exc, httpx.TooManyRedirects):
        return CurlCode.TOO_MANY_REDIRECTS
    if isinstance(exc, httpx.TimeoutException):
        return CurlCode.OPERATION_TIMEDOUT
    if isinstance(exc, httpx.ProxyError):
        return CurlCode.COULDNT_RESOLVE_PROXY
    if isinstance(exc, httpx.ConnectError):
        message = str(exc).lower()
        if "name or service not known" in message or "nodename nor servname" in message or "getaddrinfo" in message:
            return CurlCode.COULDNT_RESOLVE_HOST
        return CurlCode.COULDNT_CONNECT
    if isinstance(exc, httpx.DecodingError):
        return CurlCode.BAD_CONTENT_ENCODING
    if isinstance(exc, httpx.RemoteProtocolError):
        if "without sending" in str(exc).lower():
            return CurlCode.GOT_NOTHING
        return CurlCode.RECV_ERROR
    if isinstance(exc, (httpx.LocalProtocolError, httpx.WriteError)):
        return CurlCode.SEND_ERROR
    if isinstance(exc, (httpx.ReadError, httpx.CloseError)):
        return CurlCode.RECV_ERROR
    if isinstance(exc, ConnectionError):
        return CurlCode.COULDNT_CONNECT

    return CurlCode.UNKNOWN_ERROR


class PgCurlError(RuntimeError):
    """Base class for every fatal error raised by a pgcurl operation."""


class MissingArgumentError(PgCurlError, ValueError):
    """A required argument was missing (SQL NULL) or empty."""


class UnsupportedOptionError(PgCurlError, ValueError):
    """The option or info name is not on the allow-list."""

    def __init__(self, name: str):
        super().__init__(f"unsupported option {name}")
        self.name = name


class OptionValueError(PgCurlError, ValueError):
    """The engine rejected an option value."""

    def __init__(self, message: str, code: CurlCode = CurlCode.BAD_FUNCTION_ARGUMENT):
        super().__init__(message)
        self.code = code


class HandleNotInitializedError(PgCurlError):
    """Info was requested before any handle existed."""


class PerformError(PgCurlError):
    """The transfer did not complete successfully."""

    def __init__(self, message: str, code: CurlCode = CurlCode.UNKNOWN_ERROR):
        super().__init__(message)
        self.code = code


class TransferCancelledError(PerformError):
    """The transfer was aborted through the session's cancellation token."""


class BufferLimitError(PgCurlError):
    """The download buffer would grow past its configured limit."""


__all__ = [
    "BufferLimitError",
    "CurlCode",
    "HandleNotInitializedError",
    "MissingArgumentError",
    "OptionValueError",
    "PerformError",
    "PgCurlError",
    "TransferCancelledError",
    "UnsupportedOptionError",
    "categorize_exception",
    "curl_strerror",
]
