# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Upload/download buffers and the streaming callbacks bound to them."""

from __future__ import annotations

from ..errors import BufferLimitError


class UploadBuffer:
    """Request body source: bytes plus a read cursor."""

    def __init__(self, data: bytes = b"") -> None:
        self._data = bytearray(data)
        self.cursor = 0

    def reset(self, data: bytes = b"") -> None:
        self._data = bytearray(data)
        self.cursor = 0

    def rewind(self) -> None:
        self.cursor = 0

    def read(self, size: int) -> bytes:
        if size <= 0:
            return b""
        chunk = bytes(self._data[self.cursor : self.cursor + size])
        self.cursor += len(chunk)
        return chunk

    @property
    def remaining(self) -> int:
        return len(self._data) - self.cursor

    def __len__(self) -> int:
        return len(self._data)


class DownloadBuffer:
    """Response body sink; ``max_bytes`` of 0 means unlimited."""

    def __init__(self, max_bytes: int = 0) -> None:
        self._data = bytearray()
        self.max_bytes = max_bytes

    def write(self, chunk: bytes) -> int:
        if self.max_bytes and len(self._data) + len(chunk) > self.max_bytes:
            raise BufferLimitError(f"response body exceeds {self.max_bytes} bytes")
        self._data.extend(chunk)
        return len(chunk)

    def clear(self) -> None:
        self._data = bytearray()

    def getvalue(self) -> bytes:
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)


def read_callback(source: UploadBuffer, size: int) -> bytes:
    """READFUNCTION bound to an UploadBuffer passed as READDATA."""
    return source.read(size)


def write_callback(sink: DownloadBuffer, chunk: bytes) -> int:
    """WRITEFUNCTION bound to a DownloadBuffer passed as WRITEDATA."""
    return sink.write(chunk)


__all__ = ["DownloadBuffer", "UploadBuffer", "read_callback", "write_callback"]
