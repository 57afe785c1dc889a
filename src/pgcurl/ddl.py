# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""PL/Python bindings for the procedures in :mod:`pgcurl.procedures`."""

from __future__ import annotations

import re
from dataclasses import dataclass

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class SqlFunction:
    name: str
    arguments: tuple[tuple[str, str], ...]
    returns: str
    call: str
    volatility: str = "VOLATILE"
    comment: str | None = None


SQL_FUNCTIONS: tuple[SqlFunction, ...] = (
    SqlFunction("pg_curl_easy_init", (), "boolean", "easy_init(GD)"),
    SqlFunction("pg_curl_easy_reset", (), "void", "easy_reset(GD)"),
    SqlFunction("pg_curl_easy_cleanup", (), "void", "easy_cleanup(GD)"),
    SqlFunction(
        "pg_curl_slist_append",
        (("name", "text"), ("value", "text")),
        "boolean",
        "append_header(GD, name, value)",
    ),
    SqlFunction(
        "pg_curl_easy_setopt_char",
        (("option", "text"), ("parameter", "text")),
        "boolean",
        "set_option_string(GD, option, parameter)",
    ),
    SqlFunction(
        "pg_curl_easy_setopt_long",
        (("option", "text"), ("parameter", "bigint")),
        "boolean",
        "set_option_long(GD, option, parameter)",
    ),
    SqlFunction("pg_curl_easy_perform", (), "boolean", "perform(GD)"),
    SqlFunction(
        "pg_curl_easy_getinfo_char",
        (("info", "text"),),
        "text",
        "get_info_string(GD, info)",
        comment="CURLINFO_RESPONSE must be valid UTF-8 here; use pg_curl_easy_getinfo_bytea for binary bodies.",
    ),
    SqlFunction("pg_curl_easy_getinfo_long", (("info", "text"),), "bigint", "get_info_long(GD, info)"),
    SqlFunction(
        "pg_curl_easy_getinfo_bytea",
        (),
        "bytea",
        "response_body(GD)",
        comment="Raw response body of the last perform, byte for byte.",
    ),
    SqlFunction("pg_curl_teardown", (), "void", "process_teardown(GD)"),
)


def _checked_identifier(name: str) -> str:
    if not _IDENTIFIER_RE.match(name):
        raise ValueError(f"invalid SQL identifier: {name!r}")
    return name


def _sql_literal(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def render_function(function: SqlFunction, schema: str = "public") -> str:
    qualified = f"{_checked_identifier(schema)}.{function.name}"
    signature = ", ".join(f"{arg} {sql_type}" for arg, sql_type in function.arguments)
    statement = (
        f"CREATE OR REPLACE FUNCTION {qualified}({signature})\n"
        f"RETURNS {function.returns}\n"
        f"LANGUAGE plpython3u {function.volatility}\n"
        "AS $$\n"
        "from pgcurl import procedures\n"
        f"return procedures.{function.call}\n"
        "$$;\n"
    )
    if function.comment:
        arg_types = ", ".join(sql_type for _, sql_type in function.arguments)
        statement += f"COMMENT ON FUNCTION {qualified}({arg_types}) IS {_sql_literal(function.comment)};\n"
    return statement


def render_plpython_ddl(schema: str = "public") -> str:
    """Render the CREATE FUNCTION statements for every procedure."""
    header = "-- pgcurl PL/Python bindings\nCREATE EXTENSION IF NOT EXISTS plpython3u;\n"
    return "\n".join([header] + [render_function(function, schema) for function in SQL_FUNCTIONS])


__all__ = ["SQL_FUNCTIONS", "SqlFunction", "render_function", "render_plpython_ddl"]
