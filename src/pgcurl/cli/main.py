# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""pgcurl CLI."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from ..config import DEFAULT_USER_AGENT, CurlSettings, load_curl_settings
from ..ddl import render_plpython_ddl
from ..errors import PgCurlError
from ..http.headers import split_header_line
from ..http.models import Info
from ..log import setup_logging
from ..session import CurlSession

CLI_TEXT_TRUNCATION_BYTES = 4096


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run pgcurl easy-handle requests outside the database")
    subcommands = parser.add_subparsers(dest="command", required=True)

    fetch = subcommands.add_parser("fetch", help="Configure a session, perform it and print the response")
    fetch.add_argument("url", help="Target URL")
    fetch.add_argument("-X", "--request", help="Custom request method (CURLOPT_CUSTOMREQUEST)")
    fetch.add_argument(
        "-H",
        "--header",
        action="append",
        default=[],
        help='Extra header, "Name: Value" (repeatable)',
    )
    fetch.add_argument("-d", "--data", help="Request body; sends a POST (CURLOPT_READDATA + CURLOPT_POST)")
    fetch.add_argument("-A", "--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header")
    fetch.add_argument("-L", "--location", action="store_true", help="Follow redirects")
    fetch.add_argument("--max-redirs", type=int, help="Maximum redirects to follow (-1 for the default cap)")
    fetch.add_argument("--connect-timeout", type=int, help="Connect timeout in seconds")
    fetch.add_argument("--timeout-ms", type=int, help="Total transfer timeout in milliseconds")
    fetch.add_argument("--compressed", action="store_true", help="Request and decode compressed responses")
    fetch.add_argument("-I", "--head", action="store_true", help="Send a HEAD request (CURLOPT_NOBODY)")
    fetch.add_argument(
        "-k",
        "--insecure",
        action="store_true",
        help="Skip TLS verification (useful for lab/self-signed targets)",
    )
    fetch.add_argument("--json", action="store_true", help="Print a JSON summary instead of the raw body")

    ddl = subcommands.add_parser("ddl", help="Print PL/Python CREATE FUNCTION statements")
    ddl.add_argument("--schema", default="public", help="Schema for the generated functions")
    return parser


def _truncate_text_bytes(text: str, max_bytes: int) -> str:
    raw = text.encode("utf-8", errors="surrogateescape")
    if len(raw) <= max_bytes:
        return text
    suffix = "...[truncated]"
    suffix_bytes = suffix.encode("utf-8")
    keep = max_bytes - len(suffix_bytes)
    if keep <= 0:
        return suffix_bytes[:max_bytes].decode("utf-8", errors="ignore")
    prefix = raw[:keep].decode("utf-8", errors="ignore")
    return prefix + suffix


def configure_session(session: CurlSession, args: argparse.Namespace) -> None:
    """Translate CLI flags into the same option calls a SQL caller would make."""
    session.set_option_string("CURLOPT_URL", args.url)
    if args.user_agent:
        session.set_option_string("CURLOPT_USERAGENT", args.user_agent)
    if args.compressed:
        session.set_option_string("CURLOPT_ACCEPT_ENCODING", "")
    if args.data is not None:
        session.set_option_string("CURLOPT_READDATA", args.data)
        session.set_option_long("CURLOPT_POST", 1)
    if args.request:
        session.set_option_string("CURLOPT_CUSTOMREQUEST", args.request)
    if args.location:
        session.set_option_long("CURLOPT_FOLLOWLOCATION", 1)
    if args.max_redirs is not None:
        session.set_option_long("CURLOPT_MAXREDIRS", args.max_redirs)
    if args.connect_timeout is not None:
        session.set_option_long("CURLOPT_CONNECTTIMEOUT", args.connect_timeout)
    if args.timeout_ms is not None:
        session.set_option_long("CURLOPT_TIMEOUT_MS", args.timeout_ms)
    if args.head:
        session.set_option_long("CURLOPT_NOBODY", 1)
    for line in args.header:
        name, value = split_header_line(line)
        session.append_header(name, value)


def _summary(session: CurlSession) -> dict[str, Any]:
    body = session.get_info_string("CURLINFO_RESPONSE") or ""
    return {
        "response_code": session.get_info_long("CURLINFO_RESPONSE_CODE"),
        "content_type": session.get_info_string("CURLINFO_CONTENT_TYPE"),
        "effective_url": session.getinfo(Info.EFFECTIVE_URL),
        "total_time": round(session.getinfo(Info.TOTAL_TIME), 6),
        "size_download": session.getinfo(Info.SIZE_DOWNLOAD),
        "body": _truncate_text_bytes(body, CLI_TEXT_TRUNCATION_BYTES),
    }


def _print_json(data: dict[str, Any]) -> None:
    json.dump(data, sys.stdout, indent=2, sort_keys=True, ensure_ascii=True)
    sys.stdout.write("\n")


def _fetch(args: argparse.Namespace) -> int:
    settings: CurlSettings = load_curl_settings()
    if args.insecure:
        settings.verify_ssl = False

    with CurlSession(settings) as session:
        session.easy_init()
        configure_session(session, args)
        session.perform()
        if args.json:
            _print_json(_summary(session))
        else:
            sys.stdout.buffer.write(session.response_body())
            sys.stdout.flush()
    return 0


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "ddl":
        sys.stdout.write(render_plpython_ddl(args.schema))
        return 0

    try:
        return _fetch(args)
    except PgCurlError as exc:
        print(f"pgcurl: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
