# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
httpx-backed easy handle.

EasyHandle gives httpx the shape of a libcurl easy handle: options are
recorded with ``setopt`` (returning a CurlCode instead of raising), applied
to an ``httpx.Request`` by ``perform``, and the outcome is read back with
``getinfo``. The httpx.Client (and so its connection pool) lives as long as
the handle and survives ``reset``.

A transfer runs on a worker thread while the calling thread polls the
progress callback, so cancellation does not depend on the server sending
data.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config import CurlSettings, load_curl_settings
from ..errors import BufferLimitError, CurlCode, categorize_exception
from .headers import split_header_line
from .models import (
    DEFAULT_PROTOCOLS,
    EasyOptions,
    Info,
    Option,
    TransferInfo,
    TransferResult,
)

logger = logging.getLogger(__name__)

SUPPORTED_ENCODINGS = "gzip, deflate"
BODYLESS_METHODS = frozenset({"HEAD"})


class _TransferAborted(Exception):
    def __init__(self, code: CurlCode, detail: str | None = None):
        super().__init__(detail or code.value)
        self.code = code
        self.detail = detail


@dataclass
class _TransferState:
    """Shared between the polling thread and the transfer worker."""

    info: TransferInfo
    dltotal: int = 0
    abandoned: bool = False
    error: Exception | None = None
    done: threading.Event = field(default_factory=threading.Event)
    lock: threading.Lock = field(default_factory=threading.Lock)


def _flag(value: Any) -> bool:
    if not isinstance(value, int):
        raise TypeError(f"expected an integer flag, got {type(value).__name__}")
    return bool(value)


def _long_at_least(minimum: int) -> Callable[[Any], int]:
    def convert(value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"expected an integer, got {type(value).__name__}")
        if value < minimum:
            raise ValueError(f"{value} is below {minimum}")
        return value

    return convert


def _string(value: Any) -> str | None:
    if value is not None and not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value


def _header_safe_string(value: Any) -> str | None:
    value = _string(value)
    if value is not None and ("\r" in value or "\n" in value):
        raise ValueError("CR/LF in header value")
    return value


def _callback(value: Any) -> Any:
    if value is not None and not callable(value):
        raise TypeError("expected a callable")
    return value


def _opaque(value: Any) -> Any:
    return value


def _header_lines(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)):
        raise TypeError("expected a sequence of header lines")
    lines = list(value)
    for line in lines:
        _header_safe_string(line)
    return lines


def _protocols(value: Any) -> frozenset[str]:
    if isinstance(value, str):
        value = value.split(",")
    protocols = frozenset(str(item).strip().lower() for item in value if str(item).strip())
    if not protocols or not protocols <= DEFAULT_PROTOCOLS:
        raise ValueError(f"unsupported protocols {sorted(protocols)}")
    return protocols


_SETTERS: dict[Option, tuple[str, Callable[[Any], Any]]] = {
    Option.URL: ("url", _string),
    Option.USERAGENT: ("user_agent", _header_safe_string),
    Option.ACCEPT_ENCODING: ("accept_encoding", _header_safe_string),
    Option.CUSTOMREQUEST: ("custom_request", _header_safe_string),
    Option.HTTPHEADER: ("http_header", _header_lines),
    Option.UPLOAD: ("upload", _flag),
    Option.READFUNCTION: ("read_function", _callback),
    Option.READDATA: ("read_data", _opaque),
    Option.INFILESIZE: ("infile_size", _long_at_least(-1)),
    Option.WRITEFUNCTION: ("write_function", _callback),
    Option.WRITEDATA: ("write_data", _opaque),
    Option.XFERINFOFUNCTION: ("progress_function", _callback),
    Option.NOPROGRESS: ("no_progress", _flag),
    Option.PROTOCOLS: ("protocols", _protocols),
    Option.CONNECTTIMEOUT: ("connect_timeout", _long_at_least(0)),
    Option.TIMEOUT_MS: ("timeout_ms", _long_at_least(0)),
    Option.FORBID_REUSE: ("forbid_reuse", _flag),
    Option.FOLLOWLOCATION: ("follow_location", _flag),
    Option.MAXREDIRS: ("max_redirs", _long_at_least(-1)),
    Option.POST: ("post", _flag),
    Option.NOBODY: ("nobody", _flag),
}

_INFO_FIELDS: dict[Info, str] = {
    Info.RESPONSE_CODE: "response_code",
    Info.CONTENT_TYPE: "content_type",
    Info.EFFECTIVE_URL: "effective_url",
    Info.TOTAL_TIME: "total_time",
    Info.SIZE_DOWNLOAD: "size_download",
    Info.SIZE_UPLOAD: "size_upload",
    Info.REDIRECT_COUNT: "redirect_count",
}


def _content_length(response: httpx.Response) -> int:
    try:
        return max(int(response.headers.get("content-length", "0")), 0)
    except ValueError:
        return 0


def _merge_custom_headers(builtin: list[tuple[str, str]], lines: list[str]) -> list[tuple[str, str]]:
    """
    Apply user header lines on top of the built-in ones.

    A user header replaces a built-in header of the same name; ``"Name:"``
    with no value removes the built-in header and sends nothing.
    """
    custom: list[tuple[str, str]] = []
    overridden: set[str] = set()
    for line in lines:
        name, value = split_header_line(line)
        if not name:
            continue
        overridden.add(name.lower())
        if value:
            custom.append((name, value))
    merged = [(name, value) for name, value in builtin if name.lower() not in overridden]
    return merged + custom


class EasyHandle:
    """One reusable HTTP request context backed by an httpx.Client."""

    def __init__(
        self,
        settings: CurlSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.settings = settings or load_curl_settings()
        self.options = EasyOptions()
        self.info = TransferInfo()
        self._transport = transport
        self._client: httpx.Client | None = None

    def setopt(self, option: Option, value: Any) -> CurlCode:
        entry = _SETTERS.get(option)
        if entry is None:
            return CurlCode.UNKNOWN_OPTION
        attribute, convert = entry
        try:
            converted = convert(value)
        except (TypeError, ValueError) as exc:
            logger.debug("setopt(%s) rejected: %s", option.value, exc)
            return CurlCode.BAD_FUNCTION_ARGUMENT
        setattr(self.options, attribute, converted)

        if option is Option.POST:
            self.options.http_request = "POST" if converted else "GET"
        elif option is Option.UPLOAD:
            self.options.http_request = "PUT" if converted else "GET"
        elif option is Option.NOBODY:
            if converted:
                self.options.http_request = "HEAD"
            elif self.options.http_request == "HEAD":
                self.options.http_request = "GET"
        return CurlCode.OK

    def getinfo(self, info: Info) -> Any:
        return getattr(self.info, _INFO_FIELDS[info])

    def reset(self) -> None:
        """Restore default options; live connections are kept."""
        self.options = EasyOptions()
        self.info = TransferInfo()

    def close(self) -> None:
        self._drop_connections()
        self.options = EasyOptions()

    def perform(self) -> TransferResult:
        started = time.monotonic()
        self.info = TransferInfo()
        try:
            request = self._build_request(started)
            self._check_progress(started, 0, 0, max(self.options.infile_size, 0), 0)
            self._run_transfer(request, started)
        except _TransferAborted as exc:
            result = TransferResult(ok=False, code=exc.code, error_message=exc.detail)
        except Exception as exc:  # noqa: BLE001
            result = TransferResult(
                ok=False,
                code=categorize_exception(exc),
                error_message=str(exc) or None,
                error_type=type(exc).__name__,
            )
        else:
            result = TransferResult(ok=True)

        self.info.total_time = time.monotonic() - started
        if self.options.forbid_reuse:
            self._drop_connections()
        logger.debug(
            "perform %s -> %s (status=%s, %d bytes in %.3fs)",
            self.options.url,
            result.code.value,
            self.info.response_code,
            self.info.size_download,
            self.info.total_time,
        )
        return result

    def _drop_connections(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _client_for_transfer(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                transport=self._transport,
                verify=self.settings.verify_ssl,
            )
        max_redirs = self.options.max_redirs
        self._client.max_redirects = max_redirs if max_redirs >= 0 else self.settings.max_redirects
        return self._client

    def _timeout(self) -> httpx.Timeout:
        opts = self.options
        connect = float(opts.connect_timeout) if opts.connect_timeout > 0 else self.settings.connect_timeout
        total = opts.timeout_ms / 1000.0 if opts.timeout_ms > 0 else None
        if total is not None:
            connect = min(connect, total)
        return httpx.Timeout(total, connect=connect)

    def _check_progress(self, started: float, dltotal: int, dlnow: int, ultotal: int, ulnow: int) -> None:
        opts = self.options
        if opts.timeout_ms > 0:
            elapsed_ms = (time.monotonic() - started) * 1000.0
            if elapsed_ms > opts.timeout_ms:
                raise _TransferAborted(
                    CurlCode.OPERATION_TIMEDOUT,
                    f"Operation timed out after {int(elapsed_ms)} milliseconds with {dlnow} bytes received",
                )
        if not opts.no_progress and opts.progress_function is not None:
            if opts.progress_function(dltotal, dlnow, ultotal, ulnow):
                raise _TransferAborted(CurlCode.ABORTED_BY_CALLBACK, "Callback aborted")

    def _build_request(self, started: float) -> httpx.Request:
        opts = self.options
        raw_url = (opts.url or "").strip()
        if not raw_url:
            raise _TransferAborted(CurlCode.URL_MALFORMAT, "No URL set")
        if "://" not in raw_url:
            raw_url = f"http://{raw_url}"
        try:
            url = httpx.URL(raw_url)
        except httpx.InvalidURL as exc:
            raise _TransferAborted(CurlCode.URL_MALFORMAT, str(exc)) from exc
        scheme = url.scheme.lower()
        if scheme not in opts.protocols:
            raise _TransferAborted(CurlCode.UNSUPPORTED_PROTOCOL, f'Protocol "{scheme}" not supported or disabled')
        if not url.host:
            raise _TransferAborted(CurlCode.URL_MALFORMAT, "No host part in the URL")

        headers: list[tuple[str, str]] = [("Accept", "*/*")]
        user_agent = opts.user_agent if opts.user_agent is not None else self.settings.user_agent
        if user_agent:
            headers.append(("User-Agent", user_agent))
        if opts.accept_encoding is not None:
            headers.append(("Accept-Encoding", opts.accept_encoding or SUPPORTED_ENCODINGS))

        content: Iterator[bytes] | None = None
        if opts.http_request in ("POST", "PUT") and opts.read_function is not None:
            content = self._upload_stream(started, self.info)
            if opts.infile_size >= 0:
                headers.append(("Content-Length", str(opts.infile_size)))

        method = opts.custom_request or opts.http_request
        return httpx.Request(
            method,
            url,
            headers=_merge_custom_headers(headers, opts.http_header),
            content=content,
            extensions={"timeout": self._timeout().as_dict()},
        )

    def _upload_stream(self, started: float, info: TransferInfo) -> Iterator[bytes]:
        opts = self.options
        chunk_size = self.settings.upload_chunk_size
        ultotal = max(opts.infile_size, 0)
        while True:
            self._check_progress(started, 0, 0, ultotal, info.size_upload)
            try:
                chunk = opts.read_function(opts.read_data, chunk_size)
            except Exception as exc:  # noqa: BLE001
                raise _TransferAborted(CurlCode.READ_ERROR, str(exc)) from exc
            if not chunk:
                return
            if not isinstance(chunk, (bytes, bytearray)):
                raise _TransferAborted(CurlCode.READ_ERROR, "read callback returned a non-bytes chunk")
            info.size_upload += len(chunk)
            yield bytes(chunk)

    def _run_transfer(self, request: httpx.Request, started: float) -> None:
        """
        Run the blocking transfer on a worker thread and poll progress meanwhile.

        The calling thread wakes every ``settings.poll_interval`` seconds to run
        the progress check, so a cancellation or deadline takes effect even
        while the socket is idle. An aborted transfer is abandoned: its
        connections are dropped and any data the worker still receives is
        discarded.
        """
        state = _TransferState(info=self.info)
        client = self._client_for_transfer()
        worker = threading.Thread(
            target=self._transfer_worker,
            args=(client, request, started, state),
            name="pgcurl-transfer",
            daemon=True,
        )
        worker.start()
        ultotal = max(self.options.infile_size, 0)
        while not state.done.wait(self.settings.poll_interval):
            try:
                self._check_progress(started, state.dltotal, state.info.size_download, ultotal, state.info.size_upload)
            except _TransferAborted:
                self._abandon(state)
                raise
        if state.error is not None:
            raise state.error

    def _abandon(self, state: _TransferState) -> None:
        with state.lock:
            state.abandoned = True
        logger.debug("Abandoning in-flight transfer to %s", self.options.url)
        self._drop_connections()

    def _transfer_worker(
        self,
        client: httpx.Client,
        request: httpx.Request,
        started: float,
        state: _TransferState,
    ) -> None:
        try:
            self._transfer(client, request, started, state)
        except Exception as exc:  # noqa: BLE001
            state.error = exc
        finally:
            state.done.set()

    def _transfer(self, client: httpx.Client, request: httpx.Request, started: float, state: _TransferState) -> None:
        opts = self.options
        info = state.info
        response = client.send(request, stream=True, follow_redirects=opts.follow_location)
        try:
            info.response_code = response.status_code
            info.content_type = response.headers.get("content-type")
            info.effective_url = str(response.url)
            info.redirect_count = len(response.history)
            info.headers = list(response.headers.multi_items())
            if opts.nobody or request.method in BODYLESS_METHODS:
                return
            state.dltotal = _content_length(response)
            ultotal = max(opts.infile_size, 0)
            for chunk in self._body_chunks(response):
                if not chunk:
                    continue
                self._write(chunk, state)
                self._check_progress(started, state.dltotal, info.size_download, ultotal, info.size_upload)
        finally:
            response.close()

    def _body_chunks(self, response: httpx.Response) -> Iterator[bytes]:
        if response.is_stream_consumed:
            # Transports may hand back a response that is already in memory.
            yield response.content
            return
        if self.options.accept_encoding is not None:
            yield from response.iter_bytes()
        else:
            yield from response.iter_raw()

    def _write(self, chunk: bytes, state: _TransferState) -> None:
        opts = self.options
        with state.lock:
            if state.abandoned:
                raise _TransferAborted(CurlCode.ABORTED_BY_CALLBACK, "transfer abandoned")
            if opts.write_function is None:
                state.info.size_download += len(chunk)
                return
            try:
                written = opts.write_function(opts.write_data, chunk)
            except BufferLimitError as exc:
                raise _TransferAborted(CurlCode.WRITE_ERROR, str(exc)) from exc
            if written != len(chunk):
                raise _TransferAborted(
                    CurlCode.WRITE_ERROR, f"write callback accepted {written} of {len(chunk)} bytes"
                )
            state.info.size_download += len(chunk)


__all__ = ["EasyHandle", "SUPPORTED_ENCODINGS"]
