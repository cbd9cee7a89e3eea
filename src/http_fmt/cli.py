"""CLI entry point for http-fmt."""

import functools
import logging
import sys
from pathlib import Path

import click

from http_fmt.config import CONFIG_FILENAME, load_config, write_default_config
from http_fmt.diff import render_diff
from http_fmt.errors import EXIT_FAILURE, HttpFmtError, ParseFailure
from http_fmt.pipeline import (
    FileResult,
    FileStatus,
    canonicalize,
    check_files,
    convert_source,
    format_files,
)

LOG_FORMAT = "%(levelname)s: %(message)s"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]
SOURCE_FORMATS = ["auto", "openapi", "postman", "bruno"]


def _handle_errors(func):
    """Report fatal http-fmt errors on stderr and exit with their code."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except HttpFmtError as e:
            click.secho(f"Error: {e}", fg="red", err=True)
            sys.exit(e.exit_code)

    return wrapper


def _report(result: FileResult, verbose: bool = False) -> None:
    if result.status == FileStatus.VALID:
        click.secho(f"Valid file: {result.path}", fg="green")
    elif result.status == FileStatus.INVALID:
        click.secho(f"Invalid file: {result.path}", fg="yellow")
        if verbose:
            click.echo(render_diff(result.current, result.canonical), err=True)
    elif result.status == FileStatus.FORMATTED:
        click.secho(f"Formatted file: {result.path}", fg="yellow")
    else:
        click.secho(f"Error in file: {result.path}: {result.error}", fg="red", err=True)


def _read_stdin(config, body: bool) -> tuple[str, str]:
    text = click.get_text_stream("stdin").read()
    return text, canonicalize(text, config, reformat_body=body, source="<stdin>")


@click.group()
@click.version_option(package_name="http-fmt", prog_name="http-fmt")
@click.option("--log-level", default="WARNING", type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Logging level.")
@click.pass_context
def main(ctx: click.Context, log_level: str):
    """http-fmt: an opinionated formatter and linter for .http and .rest files."""
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)
    if ctx.invoked_subcommand == "init":
        return
    try:
        ctx.obj = load_config()
    except HttpFmtError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(e.exit_code)


@main.command("format")
@click.argument("paths", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option("--body/--no-body", default=True, help="Reformat JSON, GraphQL and form bodies.")
@click.option("--stdin", "use_stdin", is_flag=True, help="Read from stdin and write the result to stdout.")
@click.pass_obj
@_handle_errors
def format_command(config, paths: tuple[Path, ...], body: bool, use_stdin: bool):
    """Format files in place."""
    if use_stdin:
        try:
            _, canonical = _read_stdin(config, body)
        except ParseFailure as e:
            click.secho(f"Error in file: {e}", fg="red", err=True)
            sys.exit(EXIT_FAILURE)
        click.echo(canonical, nl=False)
        return

    failed = False
    for result in format_files(list(paths) or [Path(".")], config, body):
        _report(result)
        failed = failed or result.status == FileStatus.ERROR
    if failed:
        sys.exit(EXIT_FAILURE)


@main.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, path_type=Path))
@click.option("-v", "--verbose", is_flag=True, help="Show a diff for files that are not formatted.")
@click.option("--body/--no-body", default=True, help="Reformat JSON, GraphQL and form bodies.")
@click.option("--stdin", "use_stdin", is_flag=True, help="Check text read from stdin.")
@click.pass_obj
@_handle_errors
def check(config, paths: tuple[Path, ...], verbose: bool, body: bool, use_stdin: bool):
    """Check if files are well formatted."""
    if use_stdin:
        try:
            text, canonical = _read_stdin(config, body)
        except ParseFailure as e:
            click.secho(f"Error in file: {e}", fg="red", err=True)
            sys.exit(EXIT_FAILURE)
        result = FileResult(
            path=Path("<stdin>"),
            status=FileStatus.VALID if text == canonical else FileStatus.INVALID,
            current=text,
            canonical=canonical,
        )
        _report(result, verbose)
        if result.failed:
            sys.exit(EXIT_FAILURE)
        return

    failed = False
    for result in check_files(list(paths) or [Path(".")], config, body):
        _report(result, verbose)
        failed = failed or result.failed
    if failed:
        sys.exit(EXIT_FAILURE)


@main.command()
@click.argument("sources", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@click.option("--from", "source_format", default="auto", type=click.Choice(SOURCE_FORMATS), help="Source format.")
@click.option("--to", "target_format", default="http", type=click.Choice(["http"]), help="Destination format.")
@click.option("-o", "--output", "output_dir", default=None, type=click.Path(file_okay=False, path_type=Path), help="Output directory (default: next to each source).")
@_handle_errors
def convert(sources: tuple[Path, ...], source_format: str, target_format: str, output_dir: Path | None):
    """Convert OpenAPI, Postman or Bruno sources to .http files."""
    failed = False
    for source in sources:
        try:
            converted = convert_source(source, source_format, output_dir)
        except OSError as e:
            click.secho(f"Error in file: {source}: {e}", fg="red", err=True)
            failed = True
            continue
        for item in converted:
            click.secho(f"Converted file: {item.source} --> {item.output}", fg="green")
    if failed:
        sys.exit(EXIT_FAILURE)


@main.command()
def init():
    """Create a default http-fmt.yaml in the current directory."""
    path = Path(CONFIG_FILENAME)
    if path.exists() and not click.confirm(f"{path} already exists. Overwrite?", default=False):
        click.echo("Aborted, configuration left untouched.")
        return
    write_default_config(path)
    click.secho(f"Created {path}", fg="green")


if __name__ == "__main__":
    main()
