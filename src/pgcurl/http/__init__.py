# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Easy-handle engine exports."""

from .buffers import DownloadBuffer, UploadBuffer, read_callback, write_callback
from .handle import EasyHandle
from .headers import HeaderList, split_header_line
from .models import EasyOptions, Info, Option, TransferInfo, TransferResult
from .options import (
    LONG_INFOS,
    LONG_OPTIONS,
    STRING_INFOS,
    STRING_OPTIONS,
    resolve_long_info,
    resolve_long_option,
    resolve_string_info,
    resolve_string_option,
)

__all__ = [
    "DownloadBuffer",
    "EasyHandle",
    "EasyOptions",
    "HeaderList",
    "Info",
    "LONG_INFOS",
    "LONG_OPTIONS",
    "Option",
    "STRING_INFOS",
    "STRING_OPTIONS",
    "TransferInfo",
    "TransferResult",
    "UploadBuffer",
    "read_callback",
    "resolve_long_info",
    "resolve_long_option",
    "resolve_string_info",
    "resolve_string_option",
    "split_header_line",
    "write_callback",
]
