# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import httpx
import pytest

from pgcurl.config import CurlSettings
from pgcurl.errors import CurlCode
from pgcurl.http.handle import EasyHandle, _merge_custom_headers
from pgcurl.http.models import Info, Option, TransferResult


@pytest.fixture
def handle():
    easy = EasyHandle(CurlSettings(trap_sigint=False), transport=httpx.MockTransport(lambda r: httpx.Response(204)))
    yield easy
    easy.close()


def test_setopt_returns_codes(handle):
    assert handle.setopt(Option.URL, "http://example.test/") is CurlCode.OK
    assert handle.setopt(Option.URL, 42) is CurlCode.BAD_FUNCTION_ARGUMENT
    assert handle.setopt(Option.TIMEOUT_MS, -1) is CurlCode.BAD_FUNCTION_ARGUMENT
    assert handle.setopt(Option.MAXREDIRS, -1) is CurlCode.OK
    assert handle.setopt(Option.MAXREDIRS, -2) is CurlCode.BAD_FUNCTION_ARGUMENT
    assert handle.setopt(Option.USERAGENT, "bad\r\nvalue") is CurlCode.BAD_FUNCTION_ARGUMENT
    assert handle.setopt(Option.WRITEFUNCTION, "not callable") is CurlCode.BAD_FUNCTION_ARGUMENT
    assert handle.setopt(Option.PROTOCOLS, {"ftp"}) is CurlCode.BAD_FUNCTION_ARGUMENT
    assert handle.options.url == "http://example.test/"


def test_rejected_value_leaves_option_untouched(handle):
    handle.setopt(Option.CONNECTTIMEOUT, 5)
    assert handle.setopt(Option.CONNECTTIMEOUT, "five") is CurlCode.BAD_FUNCTION_ARGUMENT
    assert handle.options.connect_timeout == 5


@pytest.mark.parametrize(
    ("calls", "expected"),
    [
        ([(Option.POST, 1)], "POST"),
        ([(Option.POST, 1), (Option.POST, 0)], "GET"),
        ([(Option.UPLOAD, 1)], "PUT"),
        ([(Option.UPLOAD, 1), (Option.POST, 1)], "POST"),
        ([(Option.NOBODY, 1)], "HEAD"),
        ([(Option.NOBODY, 1), (Option.NOBODY, 0)], "GET"),
        ([(Option.POST, 1), (Option.NOBODY, 0)], "POST"),
    ],
)
def test_method_transitions(handle, calls, expected):
    for option, value in calls:
        assert handle.setopt(option, value) is CurlCode.OK
    assert handle.options.http_request == expected


def test_reset_restores_defaults(handle):
    handle.setopt(Option.URL, "http://example.test/")
    handle.setopt(Option.POST, 1)
    assert handle.perform().ok
    assert handle.getinfo(Info.RESPONSE_CODE) == 204

    handle.reset()

    assert handle.options.url is None
    assert handle.options.http_request == "GET"
    assert handle.getinfo(Info.RESPONSE_CODE) == 0


def test_perform_records_transfer_info(handle):
    handle.setopt(Option.URL, "http://example.test/a")
    result = handle.perform()
    assert result == TransferResult(ok=True)
    assert handle.getinfo(Info.EFFECTIVE_URL) == "http://example.test/a"
    assert handle.getinfo(Info.REDIRECT_COUNT) == 0
    assert handle.getinfo(Info.TOTAL_TIME) >= 0


def test_perform_without_url(handle):
    result = handle.perform()
    assert not result.ok
    assert result.code is CurlCode.URL_MALFORMAT
    assert result.strerror == "URL using bad/illegal format or missing URL (No URL set)"


def test_connect_timeout_falls_back_to_settings(handle):
    assert handle._timeout().connect == 300.0
    handle.setopt(Option.CONNECTTIMEOUT, 7)
    assert handle._timeout().connect == 7.0
    assert handle._timeout().read is None
    handle.setopt(Option.TIMEOUT_MS, 2500)
    timeout = handle._timeout()
    assert timeout.read == 2.5
    assert timeout.connect == 2.5


def test_merge_custom_headers():
    builtin = [("Accept", "*/*"), ("User-Agent", "pgcurl")]
    merged = _merge_custom_headers(builtin, ["accept: text/html", "User-Agent:", "X-Extra: 1"])
    assert merged == [("accept", "text/html"), ("X-Extra", "1")]


def test_merge_custom_headers_keeps_builtin_order():
    builtin = [("Accept", "*/*"), ("User-Agent", "pgcurl")]
    assert _merge_custom_headers(builtin, []) == builtin
