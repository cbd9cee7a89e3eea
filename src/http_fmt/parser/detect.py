"""Auto-detect the format of a conversion source."""

import json
from pathlib import Path

import yaml

from http_fmt.errors import SchemaError

POSTMAN_SCHEMA_HOST = "schema.getpostman.com"


def detect_format(path: Path) -> str:
    """Detect the format of a conversion source.

    Returns: 'openapi', 'postman', or 'bruno'.
    """
    if path.is_dir():
        if (path / "bruno.json").is_file():
            return "bruno"
        raise SchemaError(f"{path}: directory is not a Bruno collection (no bruno.json)")

    text = path.read_text(encoding="utf-8")

    # Try YAML/JSON parsing
    try:
        fmt = _format_of(yaml.safe_load(text))
        if fmt:
            return fmt
    except yaml.YAMLError:
        pass

    # Try JSON specifically (for files not parseable as YAML)
    try:
        fmt = _format_of(json.loads(text))
        if fmt:
            return fmt
    except (json.JSONDecodeError, ValueError):
        pass

    raise SchemaError(f"{path}: cannot detect the source format, use --from")


def _format_of(data) -> str | None:
    if not isinstance(data, dict):
        return None
    if "openapi" in data or "swagger" in data:
        return "openapi"
    info = data.get("info")
    if isinstance(info, dict) and (
        "_postman_id" in info or POSTMAN_SCHEMA_HOST in str(info.get("schema", ""))
    ):
        return "postman"
    return None
