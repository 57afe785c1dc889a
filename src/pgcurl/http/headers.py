# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header accumulation.

Headers are kept as libcurl keeps its slist: an ordered list of raw
``"Name: Value"`` lines. Nothing is merged or deduplicated here; the same
name appended twice is sent twice.
"""

from __future__ import annotations

from collections.abc import Iterator

from ..errors import MissingArgumentError, OptionValueError


def _require(value: str | None, argument: str) -> str:
    if value is None or value == "":
        raise MissingArgumentError(f"{argument} argument must not be null or empty")
    return str(value)


def split_header_line(line: str) -> tuple[str, str]:
    """Split a ``"Name: Value"`` line on the first colon."""
    name, sep, value = line.partition(":")
    if not sep:
        return line.strip(), ""
    return name.strip(), value.strip()


class HeaderList:
    """Ordered, append-only list of formatted header lines."""

    def __init__(self) -> None:
        self._lines: list[str] = []

    def append(self, name: str | None, value: str | None) -> bool:
        name = _require(name, "name")
        value = _require(value, "value")
        for part in (name, value):
            if "\r" in part or "\n" in part:
                raise OptionValueError(f"header {name!r} must not contain CR or LF")
        self._lines.append(f"{name}: {value}")
        return True

    def clear(self) -> None:
        self._lines = []

    def snapshot(self) -> list[str]:
        """Return a copy that stays valid after the list is cleared."""
        return list(self._lines)

    def as_pairs(self) -> list[tuple[str, str]]:
        return [split_header_line(line) for line in self._lines]

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._lines))

    def __len__(self) -> int:
        return len(self._lines)

    def __bool__(self) -> bool:
        return bool(self._lines)


__all__ = ["HeaderList", "split_header_line"]
