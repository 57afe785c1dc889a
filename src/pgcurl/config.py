# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for pgcurl."""

import os
from dataclasses import dataclass

from .version import __version__

DEFAULT_USER_AGENT = f"pgcurl/{__version__}"


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _optional_str_env(name: str, default: str | None) -> str | None:
    value = os.getenv(name)
    if value is None:
        return default
    return value or None


@dataclass
class CurlSettings:
    """Engine defaults applied underneath the per-handle options."""

    connect_timeout: float = 300.0
    user_agent: str | None = None
    verify_ssl: bool = True
    max_body_bytes: int = 0
    upload_chunk_size: int = 64 * 1024
    max_redirects: int = 30
    trap_sigint: bool = True
    poll_interval: float = 0.1

    @classmethod
    def from_env(cls) -> "CurlSettings":
        """Create settings from environment variables (evaluated at call time)."""
        connect_timeout = _float_env("PGCURL_CONNECT_TIMEOUT", cls.connect_timeout)
        if connect_timeout <= 0:
            connect_timeout = cls.connect_timeout
        max_body_bytes = _int_env("PGCURL_MAX_BODY_BYTES", cls.max_body_bytes)
        if max_body_bytes < 0:
            max_body_bytes = cls.max_body_bytes
        upload_chunk_size = _int_env("PGCURL_UPLOAD_CHUNK_SIZE", cls.upload_chunk_size)
        if upload_chunk_size <= 0:
            upload_chunk_size = cls.upload_chunk_size
        max_redirects = _int_env("PGCURL_MAX_REDIRECTS", cls.max_redirects)
        if max_redirects < 0:
            max_redirects = cls.max_redirects
        poll_interval = _float_env("PGCURL_POLL_INTERVAL", cls.poll_interval)
        if poll_interval <= 0:
            poll_interval = cls.poll_interval
        return cls(
            connect_timeout=connect_timeout,
            user_agent=_optional_str_env("PGCURL_USER_AGENT", cls.user_agent),
            verify_ssl=_bool_env("PGCURL_VERIFY_SSL", cls.verify_ssl),
            max_body_bytes=max_body_bytes,
            upload_chunk_size=upload_chunk_size,
            max_redirects=max_redirects,
            trap_sigint=_bool_env("PGCURL_TRAP_SIGINT", cls.trap_sigint),
            poll_interval=poll_interval,
        )


def load_curl_settings() -> CurlSettings:
    """Load engine settings from environment with libcurl-like defaults."""
    return CurlSettings.from_env()
