# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Per-connection request context.

CurlSession owns everything a database connection needs to drive one HTTP
request at a time: the easy handle, the header list, the upload and download
buffers and the cancellation token. Nothing is process-global; each
connection (or thread) gets its own session.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .cancellation import CancellationToken
from .config import CurlSettings, load_curl_settings
from .errors import (
    CurlCode,
    HandleNotInitializedError,
    MissingArgumentError,
    OptionValueError,
    PerformError,
    TransferCancelledError,
    curl_strerror,
)
from .http.buffers import DownloadBuffer, UploadBuffer, write_callback
from .http.handle import EasyHandle
from .http.headers import HeaderList
from .http.models import DEFAULT_PROTOCOLS, Info, Option
from .http.options import (
    RESPONSE_INFO,
    matches,
    resolve_long_info,
    resolve_long_option,
    resolve_string_info,
    resolve_string_option,
)

logger = logging.getLogger(__name__)


def _require(value: Any, argument: str) -> Any:
    if value is None:
        raise MissingArgumentError(f"argument {argument} must not be null!")
    return value


def _describe(value: Any) -> str:
    if isinstance(value, (str, int)):
        return f", {value}"
    return ""


class CurlSession:
    """Explicit replacement for a process-wide curl handle and its buffers."""

    def __init__(
        self,
        settings: CurlSettings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        cancel_token: CancellationToken | None = None,
    ):
        self.settings = settings or load_curl_settings()
        self.handle: EasyHandle | None = None
        self.headers = HeaderList()
        self.upload = UploadBuffer()
        self.download = DownloadBuffer(max_bytes=self.settings.max_body_bytes)
        self.cancel_token = cancel_token or CancellationToken()
        self._transport = transport

    # Handle lifecycle

    def _new_handle(self) -> EasyHandle:
        return EasyHandle(self.settings, transport=self._transport)

    def ensure_handle(self) -> EasyHandle:
        if self.handle is None:
            logger.debug("Creating easy handle lazily")
            self.handle = self._new_handle()
        return self.handle

    def easy_init(self) -> bool:
        if self.handle is not None:
            self.handle.close()
        self.headers.clear()
        self.handle = self._new_handle()
        return self.handle is not None

    def easy_reset(self) -> None:
        if self.handle is not None:
            self.handle.reset()
        self.headers.clear()

    def easy_cleanup(self) -> None:
        if self.handle is not None:
            self.handle.close()
            self.handle = None
        self.headers.clear()

    def close(self) -> None:
        """Release the handle and every buffer; the session can be reused afterwards."""
        self.easy_cleanup()
        self.upload.reset()
        self.download.clear()

    def __enter__(self) -> CurlSession:
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        self.close()

    # Configuration

    def setopt(self, option: Option, value: Any) -> None:
        """Apply one engine option, raising OptionValueError when the engine refuses it."""
        code = self.ensure_handle().setopt(option, value)
        if code is not CurlCode.OK:
            raise OptionValueError(
                f"curl_easy_setopt({option.value}{_describe(value)}): {curl_strerror(code)}",
                code=code,
            )

    def append_header(self, name: str | None, value: str | None) -> bool:
        return self.headers.append(name, value)

    def set_option_string(self, option: str | None, value: str | None) -> bool:
        option = _require(option, "option")
        value = _require(value, "parameter")
        spec = resolve_string_option(option)
        if not isinstance(value, str):
            raise OptionValueError(f"curl_easy_setopt({option}): expected text, got {type(value).__name__}")
        logger.debug("set_option_string %s -> %s", option, spec.name)
        spec.apply(self, value)
        return True

    def set_option_long(self, option: str | None, value: int | None) -> bool:
        option = _require(option, "option")
        value = _require(value, "parameter")
        spec = resolve_long_option(option)
        if isinstance(value, bool) or not isinstance(value, int):
            raise OptionValueError(f"curl_easy_setopt({option}): expected an integer, got {type(value).__name__}")
        logger.debug("set_option_long %s -> %s=%d", option, spec.name, value)
        spec.apply(self, value)
        return True

    # Execution

    def _progress_probe(self, _dltotal: int, _dlnow: int, _ultotal: int, _ulnow: int) -> bool:
        return self.cancel_token.is_cancelled()

    def perform(self) -> bool:
        handle = self.ensure_handle()
        self.download.clear()
        self.upload.rewind()
        self.setopt(Option.WRITEFUNCTION, write_callback)
        self.setopt(Option.WRITEDATA, self.download)
        self.setopt(Option.XFERINFOFUNCTION, self._progress_probe)
        self.setopt(Option.NOPROGRESS, 0)
        self.setopt(Option.PROTOCOLS, DEFAULT_PROTOCOLS)
        self.setopt(Option.HTTPHEADER, self.headers.snapshot())

        logger.debug("perform %s", handle.options.url)
        result = handle.perform()
        # A cancellation is consumed by the perform it was raised during.
        cancelled = self.cancel_token.is_cancelled()
        if cancelled:
            self.cancel_token.reset()
        if result.ok:
            return True

        message = f"curl_easy_perform: {result.strerror}"
        if cancelled and result.code is CurlCode.ABORTED_BY_CALLBACK:
            logger.warning("Transfer to %s cancelled", handle.options.url)
            raise TransferCancelledError(message, code=result.code)
        raise PerformError(message, code=result.code)

    # Introspection

    def _require_handle(self) -> EasyHandle:
        if self.handle is None:
            raise HandleNotInitializedError("call pg_curl_easy_init before!")
        return self.handle

    def getinfo(self, info: Info) -> Any:
        return self._require_handle().getinfo(info)

    def response_body(self) -> bytes:
        """Raw bytes written by the server during the last perform."""
        self._require_handle()
        return self.download.getvalue()

    def get_info_string(self, info: str | None) -> str | None:
        """
        Read a text info value.

        ``CURLINFO_RESPONSE`` decodes the body as UTF-8 with ``surrogateescape``.
        A body that is not valid UTF-8 yields lone surrogates, which a database
        ``text`` value cannot hold; use :meth:`response_body` (SQL
        ``pg_curl_easy_getinfo_bytea``) for binary bodies.
        """
        info = _require(info, "info")
        self._require_handle()
        if matches(info, RESPONSE_INFO):
            return self.download.getvalue().decode("utf-8", errors="surrogateescape")
        value = resolve_string_info(info).read(self)
        return None if value is None else str(value)

    def get_info_long(self, info: str | None) -> int:
        info = _require(info, "info")
        self._require_handle()
        return int(resolve_long_info(info).read(self))


__all__ = ["CurlSession"]
