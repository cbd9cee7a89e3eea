"""Exception hierarchy for http-fmt.

All exceptions inherit from :class:`HttpFmtError`, which carries an
``exit_code`` attribute. The CLI catches ``HttpFmtError`` raised by fatal
failures and exits with that code.

Subclass hierarchy::

    HttpFmtError       (exit 1)
    +-- ParseFailure   (exit 1)  isolated per file
    +-- ConfigError    (exit 2)
    +-- FormatError    (exit 3)  aborts the whole run
    +-- SchemaError    (exit 4)  aborts the conversion
"""

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2
EXIT_FORMAT_ERROR = 3
EXIT_SCHEMA_ERROR = 4


class HttpFmtError(Exception):
    """Base exception for all http-fmt errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ParseFailure(HttpFmtError):
    """Raised when the grammar rejects a document.

    ``line`` and ``column`` are 1-based and set when the parser reports them.
    """

    def __init__(self, message: str, source: str = "<text>", line: int | None = None, column: int | None = None):
        location = f"{source}:{line}:{column}" if line is not None else source
        super().__init__(f"{location}: {message}")
        self.source = source
        self.line = line
        self.column = column


class ConfigError(HttpFmtError):
    """Raised for an unreadable or invalid configuration file."""

    exit_code = EXIT_CONFIG_ERROR


class FormatError(HttpFmtError):
    """Raised when a body cannot be reformatted as its content kind."""

    exit_code = EXIT_FORMAT_ERROR

    def __init__(self, message: str, content_kind: str):
        super().__init__(f"invalid {content_kind} body: {message}")
        self.content_kind = content_kind


class SchemaError(HttpFmtError):
    """Raised when a foreign collection lacks a field needed to build a request."""

    exit_code = EXIT_SCHEMA_ERROR
