"""Unified document model for .http files.

The extractor (http files) and every converter (OpenAPI, Postman, Bruno)
produce these models; the serializer in ``http_fmt.generator.http``
turns them back into canonical text.
"""

import re
from enum import Enum

from pydantic import BaseModel

DEFAULT_METHOD = "GET"
DEFAULT_HTTP_VERSION = "HTTP/1.1"

# Comment text that the grammar would read back as `@key` metadata
_METADATA_LIKE = re.compile(r"@[A-Za-z_$]")


class BodyKind(str, Enum):
    """Body classification assigned by the grammar."""

    JSON = "json"
    GRAPHQL = "graphql"
    FORM = "form"
    XML = "xml"
    EXTERNAL = "external"
    RAW = "raw"
    NONE = "none"


class Variable(BaseModel):
    """A `@key = value` declaration."""

    key: str
    value: str = ""


class Header(BaseModel):
    key: str
    value: str = ""


class Metadata(BaseModel):
    """A structured `# @key value` comment."""

    key: str
    value: str = ""


class ScriptRef(BaseModel):
    """Pre- or post-request script.

    ``inline`` scripts hold the script source itself, otherwise
    ``script`` is a path to an external file.
    """

    script: str
    inline: bool = False


class Request(BaseModel):
    method: str = DEFAULT_METHOD
    url: str
    http_version: str = DEFAULT_HTTP_VERSION
    headers: list[Header] = []
    body: str | None = None
    body_kind: BodyKind = BodyKind.NONE

    def get_header(self, key: str) -> str | None:
        """Return the value of the first header matching ``key`` (case-insensitive)."""
        for header in self.headers:
            if header.key.lower() == key.lower():
                return header.value
        return None


class Block(BaseModel):
    """One request unit with its comments, metadata and scripts."""

    request_separator_text: str | None = None
    comments: list[str] = []
    metadata: list[Metadata] = []
    request: Request | None = None
    pre_request_scripts: list[ScriptRef] = []
    post_request_scripts: list[ScriptRef] = []
    response_redirect: str | None = None

    def is_empty(self) -> bool:
        has_url = self.request is not None and bool(self.request.url)
        return not (has_url or self.metadata or self.comments)


class Document(BaseModel):
    variables: list[Variable] = []
    blocks: list[Block] = []


class NamedDocument(BaseModel):
    """A converted Document and the file stem it is written under."""

    name: str
    document: Document


def comment_lines(text: str | None) -> list[str]:
    """Turn free text into `# ...` comment lines, one per non-empty line.

    Lines that would read back as ``@key`` metadata are prefixed with ``- ``.
    """
    if not text:
        return []
    lines = [line.strip() for line in str(text).splitlines() if line.strip()]
    return [f"# - {line}" if _METADATA_LIKE.match(line) else f"# {line}" for line in lines]


def metadata_name(name: str) -> str:
    """Slug a display name into a `@name` value, e.g. ``Get user`` -> ``GET_USER``."""
    return "_".join(name.split()).upper()
