"""Document extractor: syntax tree -> :class:`Document`.

Walks the tree produced by :mod:`http_fmt.parser.syntax`. Variables are
collected from the whole tree in document order; every section becomes a
:class:`Block` unless it carries nothing (no URL, no metadata, no comments).
"""

import logging
import textwrap
from pathlib import Path

from lark import Token, Tree

from http_fmt.parser.base import (
    DEFAULT_HTTP_VERSION,
    DEFAULT_METHOD,
    Block,
    BodyKind,
    Document,
    Header,
    Metadata,
    Request,
    ScriptRef,
    Variable,
)
from http_fmt.parser.syntax import get_parser
from http_fmt.parser.urls import fold_url

logger = logging.getLogger(__name__)

SECTION_NODES = ("head", "section")

BODY_KINDS = {
    "JSON_BODY": BodyKind.JSON,
    "GRAPHQL_BODY": BodyKind.GRAPHQL,
    "FORM_BODY": BodyKind.FORM,
    "XML_BODY": BodyKind.XML,
    "EXTERNAL_BODY": BodyKind.EXTERNAL,
    "RAW_BODY": BodyKind.RAW,
}


def parse_document(
    text: str,
    source: str = "<text>",
    default_method: str = DEFAULT_METHOD,
    default_http_version: str = DEFAULT_HTTP_VERSION,
) -> Document:
    """Parse .http text into a Document.

    Raises:
        ParseFailure: If the grammar rejects the text.
    """
    tree = get_parser().parse(text, source=source)
    return extract_document(tree, default_method, default_http_version)


def parse_file(path: Path, **defaults) -> Document:
    """Parse a .http/.rest file into a Document."""
    return parse_document(path.read_text(encoding="utf-8"), source=str(path), **defaults)


def extract_document(
    tree: Tree,
    default_method: str = DEFAULT_METHOD,
    default_http_version: str = DEFAULT_HTTP_VERSION,
) -> Document:
    variables = [
        _build_variable(node)
        for node in tree.iter_subtrees_topdown()
        if node.data == "variable_declaration"
    ]

    blocks = []
    for section in tree.children:
        if not isinstance(section, Tree) or section.data not in SECTION_NODES:
            continue
        block = _build_block(section, default_method, default_http_version)
        if block.is_empty():
            continue
        blocks.append(block)

    return Document(variables=variables, blocks=blocks)


def _build_variable(node: Tree) -> Variable:
    return Variable(
        key=_token_text(node, "IDENTIFIER"),
        value=_token_text(node, "VALUE"),
    )


def _build_block(section: Tree, default_method: str, default_http_version: str) -> Block:
    separator_text = None
    comments: list[str] = []
    metadata: list[Metadata] = []
    pre_request_scripts: list[ScriptRef] = []
    request = None
    post_request_scripts: list[ScriptRef] = []
    response_redirect = None

    for child in section.children:
        if not isinstance(child, Tree):
            continue
        if child.data == "request_separator":
            separator_text = _token_text(child, "SEPARATOR_TEXT") or None
        elif child.data == "comment":
            comments.append(_token_text(child, "COMMENT"))
        elif child.data == "metadata":
            metadata.append(
                Metadata(
                    key=_token_text(child, "IDENTIFIER"),
                    value=_token_text(child, "VALUE"),
                )
            )
        elif child.data == "pre_request_script":
            pre_request_scripts.append(_build_script(child))
        elif child.data == "request":
            request, post_request_scripts, response_redirect = _build_request(
                child, default_method, default_http_version
            )

    return Block(
        request_separator_text=separator_text,
        comments=comments,
        metadata=metadata,
        request=request,
        pre_request_scripts=pre_request_scripts,
        post_request_scripts=post_request_scripts,
        response_redirect=response_redirect,
    )


def _build_request(
    node: Tree, default_method: str, default_http_version: str
) -> tuple[Request, list[ScriptRef], str | None]:
    method = default_method
    url = ""
    http_version = default_http_version
    headers: list[Header] = []
    body = None
    body_kind = BodyKind.NONE
    post_request_scripts: list[ScriptRef] = []
    response_redirect = None

    for child in node.children:
        if isinstance(child, Token):
            if child.type == "METHOD":
                method = str(child)
            elif child.type == "TARGET_URL":
                url = fold_url(str(child))
            elif child.type == "HTTP_VERSION":
                http_version = str(child)
            elif child.type in BODY_KINDS:
                if body is not None:
                    # The grammar allows a single body per request.
                    logger.warning("Request at line %s has more than one body, keeping the last", child.line)
                body = str(child)
                body_kind = BODY_KINDS[child.type]
        elif child.data == "header":
            headers.append(_split_header(_token_text(child, "HEADER")))
        elif child.data == "res_handler_script":
            post_request_scripts.append(_build_script(child))
        elif child.data == "res_redirect":
            response_redirect = _token_text(child, "REDIRECT")

    request = Request(
        method=method,
        url=url,
        http_version=http_version,
        headers=headers,
        body=body,
        body_kind=body_kind,
    )
    return request, post_request_scripts, response_redirect


def _split_header(line: str) -> Header:
    key, _, value = line.partition(":")
    return Header(key=key.strip(), value=value.strip())


def _build_script(node: Tree) -> ScriptRef:
    for child in node.children:
        if isinstance(child, Token) and child.type == "SCRIPT":
            return ScriptRef(script=unwrap_script(str(child)), inline=True)
        if isinstance(child, Token) and child.type == "PATH":
            return ScriptRef(script=str(child).strip(), inline=False)
    raise ValueError(f"{node.data} node without script or path")


def unwrap_script(script: str) -> str:
    """Strip the ``{% ... %}`` delimiters and the common indentation."""
    inner = script.strip()
    if inner.startswith("{%"):
        inner = inner[2:]
    if inner.endswith("%}"):
        inner = inner[:-2]
    return textwrap.dedent(inner.strip("\n")).strip()


def _token_text(node: Tree, token_type: str) -> str:
    for child in node.children:
        if isinstance(child, Token) and child.type == token_type:
            return str(child).strip()
    return ""
