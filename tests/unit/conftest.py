# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from dataclasses import replace

import httpx
import pytest

from pgcurl.config import CurlSettings
from pgcurl.session import CurlSession


def echo_handler(request: httpx.Request) -> httpx.Response:
    body = request.read()
    payload = {
        "method": request.method,
        "url": str(request.url),
        "headers": [[key.decode(), value.decode()] for key, value in request.headers.raw],
        "body": body.decode("utf-8", errors="replace"),
        "body_length": len(body),
    }
    return httpx.Response(200, json=payload)


@pytest.fixture
def settings() -> CurlSettings:
    return CurlSettings(trap_sigint=False)


@pytest.fixture
def make_session(settings):
    sessions: list[CurlSession] = []

    def factory(handler=echo_handler, **overrides) -> CurlSession:
        session_settings = replace(settings, **overrides) if overrides else settings
        session = CurlSession(session_settings, transport=httpx.MockTransport(handler))
        sessions.append(session)
        return session

    yield factory
    for session in sessions:
        session.close()


@pytest.fixture
def session(make_session) -> CurlSession:
    return make_session()
