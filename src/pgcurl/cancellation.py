# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Cooperative cancellation for in-flight transfers.

A transfer polls its session's CancellationToken from the progress probe; an
interrupt signal (or any other thread) flips the token and the next poll
aborts the transfer.
"""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class CancellationToken:
    """Thread-safe flag checked by the transfer's progress probe."""

    def __init__(self) -> None:
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()
        self.signum: int | None = None

    def cancel(self, signum: int | None = None) -> None:
        """Request cancellation; ``signum`` records the interrupting signal, if any."""
        with self._lock:
            self.signum = signum
            self._is_cancelled.set()

    def is_cancelled(self) -> bool:
        return self._is_cancelled.is_set()

    def reset(self) -> None:
        with self._lock:
            self.signum = None
            self._is_cancelled.clear()


@contextmanager
def interrupt_on_signal(token: CancellationToken, signum: int = signal.SIGINT) -> Iterator[bool]:
    """
    Cancel ``token`` when ``signum`` arrives, restoring the previous handler on exit.

    Python only lets the main thread install signal handlers; elsewhere the
    context is a no-op and yields False.
    """
    if threading.current_thread() is not threading.main_thread():
        logger.debug("Not on the main thread; signal %s left untouched", signum)
        yield False
        return

    def _handler(received: int, _frame) -> None:  # noqa: ANN001
        token.cancel(received)

    previous = signal.signal(signum, _handler)
    try:
        yield True
    finally:
        signal.signal(signum, previous if previous is not None else signal.SIG_DFL)


__all__ = ["CancellationToken", "interrupt_on_signal"]
