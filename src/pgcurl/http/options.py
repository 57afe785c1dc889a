# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Allow-listed option and info dispatch.

Callers name options with free text; only the entries in these tables are
ever translated into engine calls. A name matches an entry when it starts
with the entry's canonical name, ignoring case, and the first matching entry
in table order wins.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..errors import UnsupportedOptionError
from .buffers import read_callback
from .models import Info, Option

if TYPE_CHECKING:
    from ..session import CurlSession


class ValueKind(str, Enum):
    STRING = "string"
    LONG = "long"


@dataclass(frozen=True)
class OptionSpec:
    name: str
    kind: ValueKind
    apply: Callable[["CurlSession", Any], None]


@dataclass(frozen=True)
class InfoSpec:
    name: str
    kind: ValueKind
    read: Callable[["CurlSession"], Any]


def _forward(option: Option) -> Callable[["CurlSession", Any], None]:
    def apply(session: "CurlSession", value: Any) -> None:
        session.setopt(option, value)

    return apply


def _apply_read_data(session: "CurlSession", value: str) -> None:
    payload = value.encode("utf-8")
    session.upload.reset(payload)
    session.setopt(Option.UPLOAD, 1)
    session.setopt(Option.READFUNCTION, read_callback)
    session.setopt(Option.READDATA, session.upload)
    session.setopt(Option.INFILESIZE, len(payload))


def _getinfo(info: Info) -> Callable[["CurlSession"], Any]:
    def read(session: "CurlSession") -> Any:
        return session.getinfo(info)

    return read


STRING_OPTIONS: tuple[OptionSpec, ...] = (
    OptionSpec(Option.READDATA.value, ValueKind.STRING, _apply_read_data),
    OptionSpec(Option.URL.value, ValueKind.STRING, _forward(Option.URL)),
    OptionSpec(Option.USERAGENT.value, ValueKind.STRING, _forward(Option.USERAGENT)),
    OptionSpec(Option.ACCEPT_ENCODING.value, ValueKind.STRING, _forward(Option.ACCEPT_ENCODING)),
    OptionSpec(Option.CUSTOMREQUEST.value, ValueKind.STRING, _forward(Option.CUSTOMREQUEST)),
)

LONG_OPTIONS: tuple[OptionSpec, ...] = (
    OptionSpec(Option.CONNECTTIMEOUT.value, ValueKind.LONG, _forward(Option.CONNECTTIMEOUT)),
    OptionSpec(Option.TIMEOUT_MS.value, ValueKind.LONG, _forward(Option.TIMEOUT_MS)),
    OptionSpec(Option.FORBID_REUSE.value, ValueKind.LONG, _forward(Option.FORBID_REUSE)),
    OptionSpec(Option.FOLLOWLOCATION.value, ValueKind.LONG, _forward(Option.FOLLOWLOCATION)),
    OptionSpec(Option.MAXREDIRS.value, ValueKind.LONG, _forward(Option.MAXREDIRS)),
    OptionSpec(Option.POST.value, ValueKind.LONG, _forward(Option.POST)),
    OptionSpec(Option.INFILESIZE.value, ValueKind.LONG, _forward(Option.INFILESIZE)),
    OptionSpec(Option.NOBODY.value, ValueKind.LONG, _forward(Option.NOBODY)),
)

# CURLINFO_RESPONSE is answered from the download buffer by the session.
RESPONSE_INFO = "CURLINFO_RESPONSE"

STRING_INFOS: tuple[InfoSpec, ...] = (
    InfoSpec(Info.CONTENT_TYPE.value, ValueKind.STRING, _getinfo(Info.CONTENT_TYPE)),
)

LONG_INFOS: tuple[InfoSpec, ...] = (
    InfoSpec(Info.RESPONSE_CODE.value, ValueKind.LONG, _getinfo(Info.RESPONSE_CODE)),
)


def matches(name: str, canonical: str) -> bool:
    """Case-insensitive prefix test: ``name`` must begin with ``canonical``."""
    return name.upper().startswith(canonical.upper())


def _resolve(table, name: str):  # noqa: ANN001, ANN202
    for spec in table:
        if matches(name, spec.name):
            return spec
    raise UnsupportedOptionError(name)


def resolve_string_option(name: str) -> OptionSpec:
    return _resolve(STRING_OPTIONS, name)


def resolve_long_option(name: str) -> OptionSpec:
    return _resolve(LONG_OPTIONS, name)


def resolve_string_info(name: str) -> InfoSpec:
    return _resolve(STRING_INFOS, name)


def resolve_long_info(name: str) -> InfoSpec:
    return _resolve(LONG_INFOS, name)


def _validate_table(table, kind: ValueKind) -> None:  # noqa: ANN001
    seen: set[str] = set()
    for spec in table:
        if spec.kind is not kind:
            raise ValueError(f"{spec.name} is registered as {spec.kind.value}, expected {kind.value}")
        if spec.name in seen:
            raise ValueError(f"{spec.name} registered twice")
        seen.add(spec.name)


_validate_table(STRING_OPTIONS, ValueKind.STRING)
_validate_table(LONG_OPTIONS, ValueKind.LONG)
_validate_table(STRING_INFOS, ValueKind.STRING)
_validate_table(LONG_INFOS, ValueKind.LONG)


__all__ = [
    "InfoSpec",
    "LONG_INFOS",
    "LONG_OPTIONS",
    "OptionSpec",
    "RESPONSE_INFO",
    "STRING_INFOS",
    "STRING_OPTIONS",
    "ValueKind",
    "matches",
    "resolve_long_info",
    "resolve_long_option",
    "resolve_string_info",
    "resolve_string_option",
]
