# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Option, info and result models shared by the easy handle and the dispatcher."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import CurlCode, curl_strerror

ReadFunction = Callable[[Any, int], bytes]
WriteFunction = Callable[[Any, bytes], int]
# (dltotal, dlnow, ultotal, ulnow) -> truthy to abort
ProgressFunction = Callable[[int, int, int, int], Any]

DEFAULT_PROTOCOLS = frozenset({"http", "https"})


class Option(str, Enum):
    """Every option the engine understands, including the internal ones."""

    URL = "CURLOPT_URL"
    USERAGENT = "CURLOPT_USERAGENT"
    ACCEPT_ENCODING = "CURLOPT_ACCEPT_ENCODING"
    CUSTOMREQUEST = "CURLOPT_CUSTOMREQUEST"
    HTTPHEADER = "CURLOPT_HTTPHEADER"
    UPLOAD = "CURLOPT_UPLOAD"
    READFUNCTION = "CURLOPT_READFUNCTION"
    READDATA = "CURLOPT_READDATA"
    INFILESIZE = "CURLOPT_INFILESIZE"
    WRITEFUNCTION = "CURLOPT_WRITEFUNCTION"
    WRITEDATA = "CURLOPT_WRITEDATA"
    XFERINFOFUNCTION = "CURLOPT_XFERINFOFUNCTION"
    NOPROGRESS = "CURLOPT_NOPROGRESS"
    PROTOCOLS = "CURLOPT_PROTOCOLS"
    CONNECTTIMEOUT = "CURLOPT_CONNECTTIMEOUT"
    TIMEOUT_MS = "CURLOPT_TIMEOUT_MS"
    FORBID_REUSE = "CURLOPT_FORBID_REUSE"
    FOLLOWLOCATION = "CURLOPT_FOLLOWLOCATION"
    MAXREDIRS = "CURLOPT_MAXREDIRS"
    POST = "CURLOPT_POST"
    NOBODY = "CURLOPT_NOBODY"


class Info(str, Enum):
    RESPONSE_CODE = "CURLINFO_RESPONSE_CODE"
    CONTENT_TYPE = "CURLINFO_CONTENT_TYPE"
    EFFECTIVE_URL = "CURLINFO_EFFECTIVE_URL"
    TOTAL_TIME = "CURLINFO_TOTAL_TIME"
    SIZE_DOWNLOAD = "CURLINFO_SIZE_DOWNLOAD"
    SIZE_UPLOAD = "CURLINFO_SIZE_UPLOAD"
    REDIRECT_COUNT = "CURLINFO_REDIRECT_COUNT"


@dataclass
class EasyOptions:
    """Pending configuration of one easy handle; defaults match a fresh libcurl handle."""

    url: str | None = None
    user_agent: str | None = None
    accept_encoding: str | None = None
    custom_request: str | None = None
    http_header: list[str] = field(default_factory=list)
    http_request: str = "GET"
    upload: bool = False
    post: bool = False
    nobody: bool = False
    read_function: ReadFunction | None = None
    read_data: Any = None
    infile_size: int = -1
    write_function: WriteFunction | None = None
    write_data: Any = None
    progress_function: ProgressFunction | None = None
    no_progress: bool = True
    protocols: frozenset[str] = DEFAULT_PROTOCOLS
    connect_timeout: int = 0
    timeout_ms: int = 0
    forbid_reuse: bool = False
    follow_location: bool = False
    max_redirs: int = -1


@dataclass
class TransferInfo:
    """Metadata captured from the most recent transfer."""

    response_code: int = 0
    content_type: str | None = None
    effective_url: str | None = None
    total_time: float = 0.0
    size_download: int = 0
    size_upload: int = 0
    redirect_count: int = 0
    headers: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class TransferResult:
    """Outcome of EasyHandle.perform; ``ok`` is False for transport-level failures only."""

    ok: bool
    code: CurlCode = CurlCode.OK
    error_message: str | None = None
    error_type: str | None = None

    @property
    def strerror(self) -> str:
        base = curl_strerror(self.code)
        if self.error_message and self.error_message != base:
            return f"{base} ({self.error_message})"
        return base
