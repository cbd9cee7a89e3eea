"""Bruno collection converter.

A Bruno collection is a directory holding ``bruno.json``, request files
(``*.bru``) in nested folders and optional ``environments/*.bru`` files.
One Document is produced per environment (or a single one without
environments), each holding the full request tree.

A ``.bru`` file is a list of top-level sections::

    meta {
      name: Get user
      seq: 1
    }

    get {
      url: {{host}}/users/1
      body: none
    }

Sections open with ``name {`` (or ``name [`` for lists) at the start of a
line and close with an unindented ``}`` (or ``]``).
"""

import json
import logging
import re
import textwrap
from pathlib import Path

from pydantic import BaseModel

from http_fmt.errors import SchemaError
from http_fmt.parser.base import (
    Block,
    Document,
    Header,
    Metadata,
    NamedDocument,
    Request,
    ScriptRef,
    Variable,
    comment_lines,
    metadata_name,
)
from http_fmt.parser.urls import fold_url

logger = logging.getLogger(__name__)

COLLECTION_FILE = "bruno.json"
ENVIRONMENTS_DIR = "environments"
DEFAULT_COLLECTION_NAME = "bruno-collection"
REQUEST_EXTENSION = ".bru"
MAX_DEPTH = 64
MAX_SEQUENCE = 2**31

HTTP_METHODS = ("get", "post", "put", "delete", "patch")

SECTION_START = re.compile(r"^([\w:.-]+)[ \t]*([{\[])[ \t]*$")
SECTION_CLOSERS = {"{": "}", "[": "]"}

# `body:` mode in the method section -> body section name
BODY_SECTIONS = {
    "json": "body:json",
    "graphql": "body:graphql",
    "formUrlEncoded": "body:form-urlencoded",
    "text": "body:text",
    "xml": "body:xml",
}
BODY_CONTENT_TYPES = {
    "body:json": "application/json",
    "body:graphql": "application/json",
    "body:form-urlencoded": "application/x-www-form-urlencoded",
    "body:text": "text/plain",
    "body:xml": "application/xml",
}

PRE_REQUEST_SECTIONS = ("script", "script:pre-request")
POST_REQUEST_SECTIONS = ("script:post-response", "tests")


class BrunoCollection(BaseModel):
    """Contents of ``bruno.json``."""

    name: str = DEFAULT_COLLECTION_NAME
    version: str | None = None
    ignore: list[str] = []


class BrunoEnvironment(BaseModel):
    name: str
    variables: list[Variable] = []


class BruSection(BaseModel):
    name: str
    lines: list[str] = []

    def text(self) -> str:
        """Section content with the section indentation removed."""
        return textwrap.dedent("\n".join(self.lines)).strip()

    def pairs(self) -> list[tuple[str, str]]:
        """``key: value`` lines, values stripped of surrounding quotes."""
        result = []
        for line in self.lines:
            key, sep, value = line.strip().partition(":")
            if not sep or not key.strip():
                continue
            result.append((key.strip(), _unquote(value.strip())))
        return result

    def items(self) -> list[str]:
        """Entries of a ``name [ ... ]`` list section."""
        entries = (_unquote(line.strip().rstrip(",").strip()) for line in self.lines)
        return [entry for entry in entries if entry]


def parse_bruno(collection_dir: Path) -> list[NamedDocument]:
    """Convert a Bruno collection directory into named Documents.

    Names are ``<collection>.<environment>``, or ``<collection>`` when the
    collection has no environments.
    """
    if not collection_dir.is_dir():
        raise SchemaError(f"{collection_dir}: a Bruno collection must be a directory")

    collection = read_collection_info(collection_dir)
    environments = read_environments(collection_dir)
    if not environments:
        return [NamedDocument(name=collection.name, document=build_document(collection_dir, collection))]

    return [
        NamedDocument(
            name=f"{collection.name}.{environment.name}",
            document=build_document(collection_dir, collection, environment),
        )
        for environment in environments
    ]


def build_document(
    collection_dir: Path,
    collection: BrunoCollection,
    environment: BrunoEnvironment | None = None,
) -> Document:
    variables = list(environment.variables) if environment else []
    return Document(variables=variables, blocks=collect_blocks(collection_dir, collection))


def read_collection_info(collection_dir: Path) -> BrunoCollection:
    path = collection_dir / COLLECTION_FILE
    if not path.is_file():
        logger.warning("%s not found, using default collection name", path)
        return BrunoCollection()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SchemaError(f"{path}: not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SchemaError(f"{path}: expected a JSON object")
    return BrunoCollection(
        name=str(data.get("name") or DEFAULT_COLLECTION_NAME),
        version=str(data["version"]) if data.get("version") is not None else None,
        ignore=[str(entry) for entry in data.get("ignore") or []],
    )


def read_environments(collection_dir: Path) -> list[BrunoEnvironment]:
    env_dir = collection_dir / ENVIRONMENTS_DIR
    if not env_dir.is_dir():
        return []
    return [
        BrunoEnvironment(name=path.stem, variables=parse_environment(path.read_text(encoding="utf-8")))
        for path in sorted(env_dir.glob(f"*{REQUEST_EXTENSION}"))
    ]


def parse_environment(text: str) -> list[Variable]:
    """Variables of an environment file; secret variables are declared empty."""
    variables = []
    for section in read_sections(text):
        if section.name == "vars":
            variables.extend(
                Variable(key=key, value=value) for key, value in section.pairs() if not key.startswith("~")
            )
        elif section.name == "vars:secret":
            variables.extend(Variable(key=name) for name in section.items() if not name.startswith("~"))
    return variables


def read_sections(text: str) -> list[BruSection]:
    """Split ``.bru`` text into its top-level sections."""
    sections = []
    current: BruSection | None = None
    closer = ""
    for line in text.replace("\r\n", "\n").split("\n"):
        if current is None:
            match = SECTION_START.match(line.rstrip())
            if match:
                current = BruSection(name=match.group(1))
                closer = SECTION_CLOSERS[match.group(2)]
            continue
        if line.rstrip() == closer:
            sections.append(current)
            current = None
            continue
        current.lines.append(line)
    if current is not None:
        raise SchemaError(f"Unterminated section {current.name!r}")
    return sections


def collect_blocks(collection_dir: Path, collection: BrunoCollection) -> list[Block]:
    """Walk the collection depth-first: each folder's requests, then its subfolders."""
    skipped = {ENVIRONMENTS_DIR, *collection.ignore}
    blocks: list[Block] = []
    stack = [(collection_dir, 0)]
    while stack:
        directory, depth = stack.pop()
        requests = []
        subdirs = []
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if entry.is_symlink() or entry.name in skipped:
                continue
            if entry.is_dir():
                subdirs.append(entry)
            elif entry.suffix == REQUEST_EXTENSION:
                parsed = parse_request_file(entry, collection_dir)
                if parsed is not None:
                    requests.append(parsed)

        requests.sort(key=lambda item: item[0])
        blocks.extend(block for _, block in requests)

        if subdirs and depth + 1 > MAX_DEPTH:
            raise SchemaError(f"Folder nesting deeper than {MAX_DEPTH} at {directory}")
        stack.extend((subdir, depth + 1) for subdir in reversed(subdirs))
    return blocks


def parse_request_file(path: Path, collection_dir: Path) -> tuple[tuple[int, str], Block] | None:
    """Parse one request file into ``(sort key, Block)``.

    Files without a method section (``folder.bru``, ``collection.bru``)
    return None.
    """
    sections = read_sections(path.read_text(encoding="utf-8"))
    by_name: dict[str, BruSection] = {}
    for section in sections:
        by_name.setdefault(section.name, section)

    method_section = next((s for s in sections if s.name in HTTP_METHODS), None)
    if method_section is None:
        logger.debug("Skipping %s: no request section", path)
        return None

    relative = path.relative_to(collection_dir).with_suffix("").as_posix()
    http = dict(method_section.pairs())
    url = http.get("url", "")
    if not url:
        raise SchemaError(f"{relative}: {method_section.name} section has no url")

    meta = dict(by_name["meta"].pairs()) if "meta" in by_name else {}
    name = meta.get("name", "")
    docs = by_name["docs"].text() if "docs" in by_name else ""

    headers = []
    if "headers" in by_name:
        headers = [Header(key=k, value=v) for k, v in by_name["headers"].pairs() if not k.startswith("~")]
    _add_auth_header(http.get("auth", ""), by_name, headers)
    body = _build_body(http.get("body", ""), by_name, headers)

    comments = [*comment_lines(name), *comment_lines(docs)]
    folder = path.parent.relative_to(collection_dir).as_posix()
    if folder != ".":
        comments.insert(0, f"# Folder: {folder}")

    block = Block(
        comments=comments,
        metadata=[Metadata(key="name", value=metadata_name(name))] if name else [],
        request=Request(
            method=method_section.name.upper(),
            url=fold_url(url),
            headers=headers,
            body=body,
        ),
        pre_request_scripts=_scripts(by_name, PRE_REQUEST_SECTIONS),
        post_request_scripts=_scripts(by_name, POST_REQUEST_SECTIONS),
    )
    return (_sequence(meta.get("seq")), path.name), block


def _build_body(mode: str, by_name: dict[str, BruSection], headers: list[Header]) -> str | None:
    if mode == "none":
        return None
    section_name = BODY_SECTIONS.get(mode)
    if section_name is None:
        # no (known) mode: take the first body section present
        section_name = next((name for name in BODY_CONTENT_TYPES if name in by_name), None)
    if section_name is None or section_name not in by_name:
        return None

    section = by_name[section_name]
    if section_name == "body:json":
        body = section.text()
        if body and not body.startswith(("{", "[")):
            body = "{\n" + textwrap.indent(body, "  ") + "\n}"
    elif section_name == "body:graphql":
        body = section.text()
        variables = by_name["body:graphql:vars"].text() if "body:graphql:vars" in by_name else ""
        if body and variables:
            body += "\n\n" + variables
        _set_default_header(headers, "Accept", "application/json")
        _set_default_header(headers, "X-Request-Type", "GraphQL")
    elif section_name == "body:form-urlencoded":
        body = "&".join(f"{k}={v}" for k, v in section.pairs() if not k.startswith("~"))
    else:
        body = section.text()

    if not body:
        return None
    _set_default_header(headers, "Content-Type", BODY_CONTENT_TYPES[section_name])
    return body


def _add_auth_header(mode: str, by_name: dict[str, BruSection], headers: list[Header]) -> None:
    if mode == "bearer" and "auth:bearer" in by_name:
        token = dict(by_name["auth:bearer"].pairs()).get("token", "")
        _set_default_header(headers, "Authorization", f"Bearer {token}".strip())
    elif mode == "basic" and "auth:basic" in by_name:
        credentials = dict(by_name["auth:basic"].pairs())
        user = credentials.get("username", "")
        password = credentials.get("password", "")
        _set_default_header(headers, "Authorization", f"Basic {user}:{password}")


def _scripts(by_name: dict[str, BruSection], names: tuple[str, ...]) -> list[ScriptRef]:
    scripts = []
    for name in names:
        code = by_name[name].text() if name in by_name else ""
        if code:
            scripts.append(ScriptRef(script=code, inline=True))
    return scripts


def _set_default_header(headers: list[Header], key: str, value: str) -> None:
    if not any(h.key.lower() == key.lower() for h in headers):
        headers.append(Header(key=key, value=value))


def _sequence(value: str | None) -> int:
    try:
        return int(value) if value is not None else MAX_SEQUENCE
    except ValueError:
        return MAX_SEQUENCE


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value
