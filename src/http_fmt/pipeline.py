"""Check / format / convert drivers.

Files are processed one at a time in walker order. A file that cannot be
read or parsed is reported as errored and the run continues; a body that
cannot be reformatted raises :class:`~http_fmt.errors.FormatError` and
stops the run before anything else is written.
"""

import logging
from collections.abc import Iterator
from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from http_fmt.config import Config
from http_fmt.errors import ParseFailure
from http_fmt.generator.http import build_document
from http_fmt.parser.bruno import parse_bruno
from http_fmt.parser.detect import detect_format
from http_fmt.parser.document import parse_document
from http_fmt.parser.openapi import parse_openapi
from http_fmt.parser.postman import parse_postman
from http_fmt.walker import collect_files

logger = logging.getLogger(__name__)

OUTPUT_EXTENSION = ".http"

CONVERTERS = {
    "openapi": parse_openapi,
    "postman": parse_postman,
    "bruno": parse_bruno,
}


class FileStatus(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    FORMATTED = "formatted"
    ERROR = "error"


class FileResult(BaseModel):
    """Outcome of checking or formatting one file."""

    path: Path
    status: FileStatus
    current: str = ""
    canonical: str = ""
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.status in (FileStatus.INVALID, FileStatus.ERROR)


class ConvertedFile(BaseModel):
    source: Path
    output: Path


def canonicalize(
    text: str,
    config: Config | None = None,
    reformat_body: bool = True,
    source: str = "<text>",
) -> str:
    """Return the canonical form of .http text.

    Raises:
        ParseFailure: If the text does not parse.
        FormatError: If a body cannot be reformatted.
    """
    config = config or Config()
    document = parse_document(
        text,
        source=source,
        default_method=config.defaults.http_method,
        default_http_version=config.defaults.http_version,
    )
    return build_document(document, reformat_body=reformat_body)


def check_file(path: Path, config: Config | None = None, reformat_body: bool = True) -> FileResult:
    try:
        current = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        return FileResult(path=path, status=FileStatus.ERROR, error=str(e))
    try:
        canonical = canonicalize(current, config, reformat_body, source=str(path))
    except ParseFailure as e:
        logger.debug("Parse failure in %s: %s", path, e)
        return FileResult(path=path, status=FileStatus.ERROR, current=current, error=str(e))

    status = FileStatus.VALID if current == canonical else FileStatus.INVALID
    return FileResult(path=path, status=status, current=current, canonical=canonical)


def format_file(path: Path, config: Config | None = None, reformat_body: bool = True) -> FileResult:
    result = check_file(path, config, reformat_body)
    if result.status != FileStatus.INVALID:
        return result
    try:
        path.write_text(result.canonical, encoding="utf-8")
    except OSError as e:
        return result.model_copy(update={"status": FileStatus.ERROR, "error": str(e)})
    return result.model_copy(update={"status": FileStatus.FORMATTED})


def check_files(paths: list[Path], config: Config | None = None, reformat_body: bool = True) -> Iterator[FileResult]:
    for path in collect_files(paths):
        yield check_file(path, config, reformat_body)


def format_files(paths: list[Path], config: Config | None = None, reformat_body: bool = True) -> Iterator[FileResult]:
    for path in collect_files(paths):
        yield format_file(path, config, reformat_body)


def convert_source(source: Path, source_format: str = "auto", output_dir: Path | None = None) -> list[ConvertedFile]:
    """Convert an OpenAPI file, Postman collection or Bruno directory to .http files.

    Raises:
        SchemaError: If the source is not a usable collection.
        FormatError: If a converted body cannot be reformatted.
    """
    if source_format == "auto":
        source_format = detect_format(source)
    logger.info("Converting %s as %s", source, source_format)

    named_documents = CONVERTERS[source_format](source)
    if output_dir is not None:
        target_dir = output_dir
    elif source.is_dir():
        target_dir = source.resolve().parent
    else:
        target_dir = source.parent
    target_dir.mkdir(parents=True, exist_ok=True)

    # All outputs are rendered before the first one is written.
    rendered = [(target_dir / f"{item.name}{OUTPUT_EXTENSION}", build_document(item.document)) for item in named_documents]
    converted = []
    for output, content in rendered:
        output.write_text(content, encoding="utf-8")
        converted.append(ConvertedFile(source=source, output=output))
    return converted
