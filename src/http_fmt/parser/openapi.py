"""OpenAPI / Swagger document converter.

Converts OpenAPI 3.x (and Swagger 2.0) documents into one Document per
declared server, or a single Document with path-relative URLs when no
server is declared.
"""

import json
import logging
import re
from pathlib import Path

import yaml

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
)

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "delete", "patch")
MAX_REF_DEPTH = 16
DEFAULT_SERVER_ID = "default"

# `{name}` server template variables, but not `{{name}}` placeholders.
SERVER_TEMPLATE = re.compile(r"(?<!\{)\{([^{}]+)\}(?!\})")


def parse_openapi(file_path: Path) -> list[NamedDocument]:
    """Parse an OpenAPI/Swagger file into one named Document per server."""
    spec = load_spec(file_path)
    return [
        NamedDocument(name=f"{file_path.stem}.{server_id}", document=document)
        for server_id, document in build_documents(spec)
    ]


def load_spec(file_path: Path) -> dict:
    text = file_path.read_text(encoding="utf-8")
    try:
        spec = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SchemaError(f"{file_path}: not valid YAML/JSON: {e}") from e
    if not isinstance(spec, dict):
        raise SchemaError(f"{file_path}: an OpenAPI document must be a mapping")
    return spec


def build_documents(spec: dict) -> list[tuple[str, Document]]:
    """Build ``(server identifier, Document)`` pairs from a loaded spec."""
    if not isinstance(spec.get("paths"), dict):
        raise SchemaError("OpenAPI document has no paths")
    if "swagger" in spec:
        spec = _normalize_swagger2(spec)

    servers = [s for s in spec.get("servers") or [] if isinstance(s, dict) and s.get("url")]
    if not servers:
        return [(DEFAULT_SERVER_ID, _build_document(spec))]

    results = []
    used_ids: set[str] = set()
    for index, server in enumerate(servers):
        server_id = server_identifier(server) or f"server{index}"
        if server_id in used_ids:
            server_id = f"{server_id}-{index}"
        used_ids.add(server_id)
        results.append((server_id, _build_document(spec, server, index)))
    return results


def server_identifier(server: dict) -> str:
    """Host part of a server URL, with template variables set to their defaults."""
    identifier = re.sub(r"^https?://", "", server["url"])
    for name, variable in (server.get("variables") or {}).items():
        default = (variable or {}).get("default")
        identifier = identifier.replace(f"{{{name}}}", str(default) if default is not None else f"[{name}]")
    return identifier.split(":")[0].split("/")[0]


def _build_document(spec: dict, server: dict | None = None, index: int | None = None) -> Document:
    variables = []
    base_variable = None
    server_comments = []

    if server is not None:
        base_variable = f"baseUrl{index}"
        server_url = SERVER_TEMPLATE.sub(r"{{\1}}", server["url"].rstrip("/"))
        variables.append(Variable(key=base_variable, value=server_url))
        for name, variable in (server.get("variables") or {}).items():
            default = (variable or {}).get("default")
            variables.append(Variable(key=name, value=_scalar_text(default) if default is not None else ""))
        if server.get("description"):
            server_comments = comment_lines(f"Server: {server['description']}")

    blocks = []
    for path, path_item in spec["paths"].items():
        path_item = _resolve(spec, path_item)
        if not isinstance(path_item, dict):
            continue
        url = _build_url(path, base_variable)
        shared_parameters = path_item.get("parameters") or []
        for method, operation in path_item.items():
            if method not in HTTP_METHODS or not isinstance(operation, dict):
                continue
            blocks.append(_build_block(spec, url, method, operation, shared_parameters, server_comments))

    return Document(variables=variables, blocks=blocks)


def _build_url(path: str, base_variable: str | None) -> str:
    if base_variable is None:
        return path
    clean_path = path[1:] if path.startswith("/") else path
    return f"{{{{{base_variable}}}}}/{clean_path}"


def _build_block(
    spec: dict,
    url: str,
    method: str,
    operation: dict,
    shared_parameters: list,
    server_comments: list[str],
) -> Block:
    comments = [
        *server_comments,
        *comment_lines(operation.get("summary")),
        *comment_lines(operation.get("description")),
    ]
    metadata = []
    if operation.get("operationId"):
        metadata.append(Metadata(key="name", value=str(operation["operationId"])))

    headers = []
    body = None
    request_body = _resolve(spec, operation.get("requestBody"))
    content = (request_body or {}).get("content")
    if isinstance(content, dict) and content:
        content_type, media = next(iter(content.items()))
        headers.append(Header(key="Content-Type", value=content_type))
        body = _example_body(spec, _resolve(spec, media) or {})

    for param in _merge_parameters(spec, shared_parameters, operation.get("parameters") or []):
        if param.get("in") == "header" and not any(h.key.lower() == param["name"].lower() for h in headers):
            headers.append(Header(key=param["name"], value=_parameter_value(param)))

    request = Request(method=method.upper(), url=url, headers=headers, body=body)
    return Block(comments=comments, metadata=metadata, request=request)


def _merge_parameters(spec: dict, shared: list, own: list) -> list[dict]:
    """Path-level parameters overridden by operation-level ones (same name and location)."""
    merged: dict[tuple, dict] = {}
    for param in [*shared, *own]:
        param = _resolve(spec, param)
        if isinstance(param, dict) and param.get("name"):
            merged[(param["name"], param.get("in"))] = param
    return list(merged.values())


def _parameter_value(param: dict) -> str:
    if param.get("example") is not None:
        return _scalar_text(param["example"])
    schema = param.get("schema") or {}
    if isinstance(schema, dict) and schema.get("example") is not None:
        return _scalar_text(schema["example"])
    return f"{{{{{param['name']}}}}}"


def _example_body(spec: dict, media: dict) -> str | None:
    if "example" in media:
        return _dump_example(media["example"])
    examples = media.get("examples")
    if isinstance(examples, dict):
        for example in examples.values():
            example = _resolve(spec, example)
            if isinstance(example, dict) and "value" in example:
                return _dump_example(example["value"])
    schema = _resolve(spec, media.get("schema"))
    if isinstance(schema, dict):
        return _dump_example(example_from_schema(spec, schema))
    return None


def example_from_schema(spec: dict, schema: dict) -> dict:
    """Build an example object from the schema's top-level properties."""
    example = {}
    for key, prop in (schema.get("properties") or {}).items():
        prop = _resolve(spec, prop) or {}
        if prop.get("example") is not None:
            example[key] = prop["example"]
        else:
            example[key] = default_for_type(prop.get("type"))
    return example


def default_for_type(schema_type: str | None):
    if schema_type == "string":
        return "string"
    if schema_type in ("number", "integer"):
        return 0
    if schema_type == "boolean":
        return False
    if schema_type == "array":
        return []
    if schema_type == "object":
        return {}
    return None


def _dump_example(value) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, indent=2, ensure_ascii=False)


def _scalar_text(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _resolve(spec: dict, node, depth: int = 0):
    """Follow local ``$ref`` pointers (``#/components/...``, ``#/definitions/...``)."""
    while isinstance(node, dict) and "$ref" in node:
        if depth >= MAX_REF_DEPTH:
            raise SchemaError(f"$ref chain too deep at {node['$ref']}")
        ref = node["$ref"]
        if not isinstance(ref, str) or not ref.startswith("#/"):
            logger.warning("Skipping non-local $ref %s", ref)
            return None
        target = spec
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            target = target.get(part) if isinstance(target, dict) else None
        if target is None:
            raise SchemaError(f"Unresolvable $ref {ref}")
        node = target
        depth += 1
    return node


def _normalize_swagger2(spec: dict) -> dict:
    """Map Swagger 2.0 host/basePath and body parameters onto OpenAPI 3 fields."""
    spec = dict(spec)
    if not spec.get("servers") and spec.get("host"):
        scheme = (spec.get("schemes") or ["https"])[0]
        spec["servers"] = [{"url": f"{scheme}://{spec['host']}{spec.get('basePath', '')}"}]

    default_media_type = (spec.get("consumes") or ["application/json"])[0]
    paths = {}
    for path, path_item in spec["paths"].items():
        if not isinstance(path_item, dict):
            paths[path] = path_item
            continue
        path_item = dict(path_item)
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, dict) or "requestBody" in operation:
                continue
            parameters = [_resolve(spec, p) or {} for p in operation.get("parameters") or []]
            body_param = next((p for p in parameters if p.get("in") == "body"), None)
            if body_param is None:
                continue
            media_type = (operation.get("consumes") or [default_media_type])[0]
            operation = dict(operation)
            operation["requestBody"] = {"content": {media_type: {"schema": body_param.get("schema") or {}}}}
            path_item[method] = operation
        paths[path] = path_item
    spec["paths"] = paths
    return spec
