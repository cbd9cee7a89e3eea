"""Content-aware request body formatting.

The content kind is picked from the request headers:

* ``X-Request-Type: GraphQL`` -> GraphQL query (+ optional JSON variables)
* ``Content-Type: application/json`` -> JSON
* ``Content-Type: application/x-www-form-urlencoded`` -> one pair per line
* anything else -> trimmed, otherwise untouched

``{{name}}`` placeholders are not valid JSON or GraphQL, so before a body
is handed to a pretty-printer each unquoted placeholder is swapped for a
quoted marker string and swapped back afterwards.
"""

import json
import re
from enum import Enum

from graphql import GraphQLError, print_ast
from graphql import parse as parse_graphql

from http_fmt.errors import FormatError
from http_fmt.parser.base import Request

JSON_INDENT = 2

# Quoted strings are matched first so placeholders inside them are skipped.
PLACEHOLDER_SCAN = re.compile(r'"""[\s\S]*?"""|"(?:\\.|[^"\\\n])*"|\{\{[^{}\n]*\}\}')

# Blank line followed by what looks like a JSON object: start of GraphQL variables.
GRAPHQL_VARIABLES_SPLIT = re.compile(r"\n[ \t]*\n(?=\s*\{)")


class ContentKind(str, Enum):
    JSON = "json"
    GRAPHQL = "graphql"
    FORM = "form"
    RAW = "raw"


def content_kind(request: Request) -> ContentKind:
    """Select the formatting policy for a request body from its headers."""
    request_type = (request.get_header("X-Request-Type") or "").strip().lower()
    if request_type == "graphql":
        return ContentKind.GRAPHQL
    media_type = (request.get_header("Content-Type") or "").split(";")[0].strip().lower()
    if media_type == "application/json":
        return ContentKind.JSON
    if media_type == "application/x-www-form-urlencoded":
        return ContentKind.FORM
    return ContentKind.RAW


def format_body(request: Request) -> str:
    """Return the canonical body of a request ('' when there is none).

    Raises:
        FormatError: If a JSON or GraphQL body cannot be parsed.
    """
    body = (request.body or "").strip()
    if not body:
        return ""
    kind = content_kind(request)
    if kind == ContentKind.JSON:
        return format_json(body)
    if kind == ContentKind.GRAPHQL:
        return format_graphql(body)
    if kind == ContentKind.FORM:
        return format_form(body)
    return body


def format_json(body: str) -> str:
    protected = PlaceholderGuard(body)
    try:
        data = json.loads(protected.text)
    except json.JSONDecodeError as e:
        raise FormatError(f"{e.msg} (line {e.lineno}, column {e.colno})", ContentKind.JSON.value) from e
    formatted = json.dumps(data, indent=JSON_INDENT, ensure_ascii=False)
    return protected.restore(formatted).strip()


def format_graphql(body: str) -> str:
    query, variables = split_graphql_body(body)

    protected = PlaceholderGuard(query)
    try:
        document = parse_graphql(protected.text)
    except GraphQLError as e:
        raise FormatError(e.message, ContentKind.GRAPHQL.value) from e
    parts = [protected.restore(print_ast(document)).strip()]

    if variables:
        parts.append(format_json(variables))
    return "\n\n".join(parts).strip()


def split_graphql_body(body: str) -> tuple[str, str | None]:
    """Split a GraphQL body into the query and the optional JSON variables."""
    parts = GRAPHQL_VARIABLES_SPLIT.split(body, maxsplit=1)
    if len(parts) == 2:
        return parts[0].strip(), parts[1].strip()
    return body.strip(), None


def format_form(body: str) -> str:
    flat = re.sub(r"\s+", "", body)
    pairs = [pair for pair in flat.split("&") if pair]
    if len(pairs) <= 1:
        return body.strip()
    return "\n&".join(pairs)


class PlaceholderGuard:
    """Swaps unquoted ``{{...}}`` placeholders for quoted marker strings.

    Every occurrence gets its own marker, numbered in order of appearance.
    The marker prefix is chosen so that it does not already occur in the
    text.
    """

    def __init__(self, text: str):
        self.prefix = _free_prefix(text)
        self.placeholders: list[tuple[str, str]] = []
        self.text = PLACEHOLDER_SCAN.sub(self._replace, text)

    def _replace(self, match: re.Match) -> str:
        token = match.group(0)
        if not token.startswith("{{"):
            return token
        marker = f"{self.prefix}{len(self.placeholders)}__"
        self.placeholders.append((marker, token))
        return f'"{marker}"'

    def restore(self, text: str) -> str:
        for marker, token in self.placeholders:
            text = text.replace(f'"{marker}"', token).replace(marker, token)
        return text


def _free_prefix(text: str) -> str:
    index = 0
    while f"__HTTPFMT{index}_" in text:
        index += 1
    return f"__HTTPFMT{index}_"
