"""Postman Collection v2.x converter.

Converts a Postman collection export into a single Document: enabled
collection variables become ``@key = value`` declarations, folders with a
description become comment-only blocks, and every request becomes a block.
"""

import json
import logging
from pathlib import Path

from http_fmt.errors import SchemaError
from http_fmt.parser.base import (
    Block,
    Document,
    Header,
    Metadata,
    NamedDocument,
    Request,
    Variable,
    comment_lines,
    metadata_name,
)
from http_fmt.parser.urls import fold_url

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_NAME = "postman-collection"
MAX_FOLDER_DEPTH = 64

# Raw body `options.raw.language` -> Content-Type
RAW_CONTENT_TYPES = {
    "json": "application/json",
    "javascript": "application/javascript",
    "xml": "application/xml",
    "text": "text/plain",
}


def parse_postman(file_path: Path) -> list[NamedDocument]:
    """Parse a Postman collection file into one named Document."""
    text = file_path.read_text(encoding="utf-8")
    try:
        collection = json.loads(text)
    except json.JSONDecodeError as e:
        raise SchemaError(f"{file_path}: not valid JSON: {e}") from e

    name, document = build_document(collection)
    return [NamedDocument(name=name, document=document)]


def build_document(collection: dict) -> tuple[str, Document]:
    """Build ``(collection name, Document)`` from a loaded collection."""
    if not isinstance(collection, dict) or not isinstance(collection.get("item"), list):
        raise SchemaError("Postman collection has no item list")

    info = collection.get("info") or {}
    name = str(info.get("name") or DEFAULT_COLLECTION_NAME)

    variables = [
        Variable(key=str(var["key"]), value=_text(var.get("value")))
        for var in collection.get("variable") or []
        if isinstance(var, dict) and var.get("key") and _enabled(var)
    ]
    return name, Document(variables=variables, blocks=_collect_blocks(collection["item"]))


def _collect_blocks(items: list) -> list[Block]:
    """Depth-first walk over folders and requests, in collection order."""
    blocks: list[Block] = []
    stack = [(iter(items), "")]
    while stack:
        entries, folder_path = stack[-1]
        item = next(entries, None)
        if item is None:
            stack.pop()
            continue
        if not isinstance(item, dict):
            continue

        if "item" in item:
            name = str(item.get("name") or "")
            path = f"{folder_path}/{name}" if folder_path else name
            description = _description(item.get("description"))
            if description:
                blocks.append(Block(comments=[f"# Folder: {path}", *comment_lines(description)]))
            if len(stack) >= MAX_FOLDER_DEPTH:
                raise SchemaError(f"Folder nesting deeper than {MAX_FOLDER_DEPTH} at {path}")
            stack.append((iter(item["item"] or []), path))
        elif "request" in item:
            blocks.append(_build_block(item))
    return blocks


def _build_block(item: dict) -> Block:
    req = item["request"]
    if isinstance(req, str):
        req = {"method": "GET", "url": req}

    name = str(item.get("name") or "")
    url = _build_url(req.get("url"))
    if not url:
        raise SchemaError(f"Postman request {name!r} has no URL")

    headers = [
        Header(key=str(h["key"]), value=_text(h.get("value")))
        for h in req.get("header") or []
        if isinstance(h, dict) and h.get("key") and _enabled(h)
    ]
    body = _build_body(req.get("body"), headers)

    request = Request(
        method=str(req.get("method") or "GET").upper(),
        url=fold_url(url),
        headers=headers,
        body=body,
    )
    return Block(
        comments=[*comment_lines(name), *comment_lines(_description(req.get("description")))],
        metadata=[Metadata(key="name", value=metadata_name(name))] if name else [],
        request=request,
    )


def _build_body(body: dict | None, headers: list[Header]) -> str | None:
    """Return the body text, adding a Content-Type header when missing."""
    if not body:
        return None
    mode = body.get("mode")

    if mode == "raw":
        raw = body.get("raw") or ""
        if not raw.strip():
            return None
        language = str(((body.get("options") or {}).get("raw") or {}).get("language") or "text")
        _set_default_header(headers, "Content-Type", RAW_CONTENT_TYPES.get(language.lower(), "text/plain"))
        return raw

    if mode == "urlencoded":
        pairs = [
            f"{p['key']}={_text(p.get('value'))}"
            for p in body.get("urlencoded") or []
            if isinstance(p, dict) and p.get("key") and _enabled(p)
        ]
        if not pairs:
            return None
        _set_default_header(headers, "Content-Type", "application/x-www-form-urlencoded")
        return "&".join(pairs)

    if mode == "graphql":
        graphql = body.get("graphql") or {}
        query = str(graphql.get("query") or "").strip()
        if not query:
            return None
        variables = graphql.get("variables")
        if isinstance(variables, dict):
            variables = json.dumps(variables)
        if variables and str(variables).strip():
            query += "\n\n" + str(variables).strip()
        _set_default_header(headers, "X-Request-Type", "GraphQL")
        _set_default_header(headers, "Content-Type", "application/json")
        return query

    if mode:
        logger.warning("Unsupported Postman body mode %r, body dropped", mode)
    return None


def _build_url(url) -> str:
    if isinstance(url, str):
        return url.strip()
    if not isinstance(url, dict):
        return ""
    if url.get("raw"):
        return str(url["raw"]).strip()

    host = url.get("host") or []
    host = ".".join(host) if isinstance(host, list) else str(host)
    path = url.get("path") or []
    path = "/".join(path) if isinstance(path, list) else str(path).lstrip("/")
    built = f"{url['protocol']}://{host}" if url.get("protocol") else host
    if path:
        built += f"/{path}"
    query = [
        f"{q['key']}={_text(q.get('value'))}"
        for q in url.get("query") or []
        if isinstance(q, dict) and q.get("key") and _enabled(q)
    ]
    if query:
        built += "?" + "&".join(query)
    return built


def _description(description) -> str:
    if isinstance(description, dict):
        return str(description.get("content") or "")
    return str(description or "")


def _enabled(entry: dict) -> bool:
    return entry.get("enabled") is not False and not entry.get("disabled")


def _set_default_header(headers: list[Header], key: str, value: str) -> None:
    if not any(h.key.lower() == key.lower() for h in headers):
        headers.append(Header(key=key, value=value))


def _text(value) -> str:
    return "" if value is None else str(value)
