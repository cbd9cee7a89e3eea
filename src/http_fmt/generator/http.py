"""Document serializer: :class:`Document` -> canonical .http text.

Layout of the output::

    @key = value

    ### separator text

    # comment
    < pre-request script
    # @key value
    METHOD URL VERSION
    Header: value

    body

    > post-request script

    >> response redirect

Serializing an extracted canonical document reproduces it byte for byte.
"""

import textwrap

from http_fmt.generator.body import format_body
from http_fmt.parser.base import Block, Document, Header, Request, ScriptRef

PASCAL_CASE_VERSIONS = {"HTTP/1.0", "HTTP/1.1"}
LOWER_CASE_VERSIONS = {"HTTP/2", "HTTP/2.0", "HTTP/3", "HTTP/3.0"}
SCRIPT_INDENT = "  "


def build_document(document: Document, reformat_body: bool = True) -> str:
    """Render a Document as canonical text ending in exactly one newline.

    Raises:
        FormatError: If a body cannot be reformatted (only with ``reformat_body``).
    """
    lines = [f"@{variable.key} = {variable.value}".rstrip() for variable in document.variables]
    if lines:
        lines.append("")
    for block in document.blocks:
        lines.extend(render_block(block, reformat_body))
        lines.append("")
    return "\n".join(lines).strip() + "\n"


def render_block(block: Block, reformat_body: bool = True) -> list[str]:
    separator = "###"
    if block.request_separator_text:
        separator += f" {block.request_separator_text}"
    lines = [separator, ""]

    lines.extend(normalize_comment(comment) for comment in block.comments)
    lines.extend(f"< {render_script(script)}" for script in block.pre_request_scripts)
    lines.extend(f"# @{entry.key} {entry.value}".rstrip() for entry in block.metadata)

    if block.request:
        lines.extend(render_request(block.request, reformat_body))

    for script in block.post_request_scripts:
        lines.extend(["", f"> {render_script(script)}"])
    if block.response_redirect:
        lines.extend(["", block.response_redirect.strip()])
    return lines


def render_request(request: Request, reformat_body: bool = True) -> list[str]:
    lines = [f"{request.method} {request.url} {request.http_version}"]
    lines.extend(render_header(header, request.http_version) for header in request.headers)
    body = format_body(request) if reformat_body else (request.body or "").strip()
    if body:
        lines.extend(["", body])
    return lines


def render_header(header: Header, http_version: str) -> str:
    return f"{header_key(header.key, http_version)}: {header.value}".rstrip()


def header_key(key: str, http_version: str) -> str:
    """Apply the header-name casing policy of an HTTP version.

    HTTP/1.x capitalizes each ``-`` segment (``content-type`` ->
    ``Content-Type``), HTTP/2 and HTTP/3 lower-case the whole name.
    """
    if http_version in PASCAL_CASE_VERSIONS:
        return "-".join(segment[:1].upper() + segment[1:] for segment in key.split("-"))
    if http_version in LOWER_CASE_VERSIONS:
        return key.lower()
    return key


def normalize_comment(comment: str) -> str:
    comment = comment.strip()
    if comment.startswith("//"):
        return "#" + comment[2:]
    return comment


def render_script(script: ScriptRef) -> str:
    if not script.inline:
        return script.script.strip()
    code = textwrap.indent(script.script.strip("\n"), SCRIPT_INDENT)
    return "{%\n" + code + "\n%}"
