"""Lark-based syntax tree provider for .http files.

Loads the grammar shipped next to this module and turns raw text into a
concrete syntax tree. Anything the grammar rejects becomes a
:class:`~http_fmt.errors.ParseFailure`; no partial tree is ever returned.
"""

from functools import lru_cache
from pathlib import Path

from lark import Lark, Tree
from lark.exceptions import LarkError, UnexpectedInput

from http_fmt.errors import ParseFailure

GRAMMAR_PATH = Path(__file__).parent / "grammar" / "http.lark"


class LarkParserConfig:
    """Settings for the LALR parser."""

    START = "start"
    PARSER = "lalr"
    LEXER = "contextual"
    PROPAGATE_POSITIONS = True


@lru_cache(maxsize=1)
def load_grammar() -> str:
    """Read the grammar file once per process."""
    if not GRAMMAR_PATH.exists():
        raise FileNotFoundError(f"Grammar file not found: {GRAMMAR_PATH}")
    return GRAMMAR_PATH.read_text(encoding="utf-8")


def normalize_text(text: str) -> str:
    """Unify line endings and make sure the text ends with a newline.

    The grammar is strictly line based, every line (including the last
    one) must be terminated.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    if not text.endswith("\n"):
        text += "\n"
    return text


class HttpFileParser:
    """Parser for .http files built on Lark."""

    def __init__(self):
        self._parser = Lark(
            load_grammar(),
            start=LarkParserConfig.START,
            parser=LarkParserConfig.PARSER,
            lexer=LarkParserConfig.LEXER,
            propagate_positions=LarkParserConfig.PROPAGATE_POSITIONS,
        )

    def parse(self, text: str, source: str = "<text>") -> Tree:
        """Parse text to a syntax tree.

        Raises:
            ParseFailure: If the text does not match the grammar.
        """
        try:
            return self._parser.parse(normalize_text(text))
        except UnexpectedInput as e:
            raise ParseFailure(_describe(e), source=source, line=e.line, column=e.column) from e
        except LarkError as e:
            raise ParseFailure(str(e), source=source) from e


def _describe(error: UnexpectedInput) -> str:
    # Lark messages span several lines, the first one is enough for a status line.
    message = str(error).strip().splitlines()
    return message[0] if message else type(error).__name__


@lru_cache(maxsize=1)
def get_parser() -> HttpFileParser:
    """Return the shared parser instance (the grammar is compiled once)."""
    return HttpFileParser()
