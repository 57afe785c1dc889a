# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
pgcurl package entrypoint.

pgcurl exposes a libcurl-style "easy" interface (init, setopt, perform,
getinfo, cleanup) over httpx so that SQL-level callers can configure and run
HTTP(S) requests from a database session. Each connection owns a
CurlSession; the procedures module binds those sessions to the host's
per-connection storage.
"""

from .cancellation import CancellationToken, interrupt_on_signal
from .config import CurlSettings, load_curl_settings
from .errors import (
    CurlCode,
    HandleNotInitializedError,
    MissingArgumentError,
    OptionValueError,
    PerformError,
    PgCurlError,
    TransferCancelledError,
    UnsupportedOptionError,
)
from .http import EasyHandle, HeaderList, Info, Option
from .log import setup_logging
from .session import CurlSession
from .version import __version__

__all__ = [
    "CancellationToken",
    "CurlCode",
    "CurlSession",
    "CurlSettings",
    "EasyHandle",
    "HandleNotInitializedError",
    "HeaderList",
    "Info",
    "MissingArgumentError",
    "Option",
    "OptionValueError",
    "PerformError",
    "PgCurlError",
    "TransferCancelledError",
    "UnsupportedOptionError",
    "interrupt_on_signal",
    "load_curl_settings",
    "setup_logging",
    "__version__",
]
