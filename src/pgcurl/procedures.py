# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Database-callable procedures.

Each procedure takes the host's per-connection storage mapping (PL/Python's
``GD``) as its first argument and operates on the CurlSession kept there, so
two connections never share a handle, a header list or a buffer.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from contextlib import ExitStack
from typing import Any

from .cancellation import interrupt_on_signal
from .config import CurlSettings
from .session import CurlSession

logger = logging.getLogger(__name__)

SESSION_KEY = "pgcurl.session"
INTERRUPT_KEY = "pgcurl.interrupt"

Store = MutableMapping[str, Any]


def process_init(store: Store, settings: CurlSettings | None = None) -> CurlSession:
    """Create the connection's session and trap SIGINT into its cancellation token."""
    session = store.get(SESSION_KEY)
    if session is None:
        session = CurlSession(settings)
        store[SESSION_KEY] = session
    if session.settings.trap_sigint and INTERRUPT_KEY not in store:
        stack = ExitStack()
        installed = stack.enter_context(interrupt_on_signal(session.cancel_token))
        store[INTERRUPT_KEY] = stack
        logger.debug("Interrupt handler %s", "installed" if installed else "skipped")
    return session


def process_teardown(store: Store) -> None:
    """Restore the previous interrupt handler and release the session."""
    stack = store.pop(INTERRUPT_KEY, None)
    if stack is not None:
        stack.close()
    session = store.pop(SESSION_KEY, None)
    if session is not None:
        session.close()


def get_session(store: Store) -> CurlSession:
    session = store.get(SESSION_KEY)
    if session is None:
        session = process_init(store)
    return session


def easy_init(store: Store) -> bool:
    return get_session(store).easy_init()


def easy_reset(store: Store) -> None:
    get_session(store).easy_reset()


def easy_cleanup(store: Store) -> None:
    get_session(store).easy_cleanup()


def append_header(store: Store, name: str | None, value: str | None) -> bool:
    return get_session(store).append_header(name, value)


def set_option_string(store: Store, option: str | None, value: str | None) -> bool:
    return get_session(store).set_option_string(option, value)


def set_option_long(store: Store, option: str | None, value: int | None) -> bool:
    return get_session(store).set_option_long(option, value)


def perform(store: Store) -> bool:
    return get_session(store).perform()


def get_info_string(store: Store, info: str | None) -> str | None:
    return get_session(store).get_info_string(info)


def get_info_long(store: Store, info: str | None) -> int:
    return get_session(store).get_info_long(info)


def response_body(store: Store) -> bytes:
    return get_session(store).response_body()


__all__ = [
    "INTERRUPT_KEY",
    "SESSION_KEY",
    "append_header",
    "easy_cleanup",
    "easy_init",
    "easy_reset",
    "get_info_long",
    "get_info_string",
    "get_session",
    "perform",
    "process_init",
    "process_teardown",
    "response_body",
    "set_option_long",
    "set_option_string",
]
