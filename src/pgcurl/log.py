# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging helpers for pgcurl."""

from __future__ import annotations

import logging
import os

DEFAULT_LOG_LEVEL = os.getenv("PGCURL_LOG_LEVEL", "WARNING").upper()

# httpx logs one INFO record per request; only let it through when debugging.
ENGINE_LOGGERS = ("httpx", "httpcore")


def resolve_level(level: str | None = None) -> int:
    name = (level or DEFAULT_LOG_LEVEL).upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.WARNING


def setup_logging(level: str | None = None) -> int:
    """Configure pgcurl logging and return the effective level."""
    effective_level = resolve_level(level)
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("pgcurl").setLevel(effective_level)
    engine_level = logging.DEBUG if effective_level <= logging.DEBUG else logging.WARNING
    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(engine_level)
    return effective_level


__all__ = ["ENGINE_LOGGERS", "resolve_level", "setup_logging"]
