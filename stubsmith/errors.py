"""Exception hierarchy shared by the parser, loader, config and CLI."""

from __future__ import annotations


class StubsmithError(Exception):
    """Base class for every error raised by stubsmith itself."""


class ParseError(StubsmithError):
    """Ruby source could not be turned into nodes.

    The parser fails fast: no partial result is returned alongside this.
    """

    def __init__(self, message: str, filename: str | None = None, line: int | None = None):
        super().__init__(message)
        self.message = message
        self.filename = filename
        self.line = line

    def __str__(self) -> str:
        if self.filename and self.line:
            return f"{self.filename}:{self.line}: {self.message}"
        if self.filename:
            return f"{self.filename}: {self.message}"
        return self.message


class ConfigError(StubsmithError):
    """The project configuration file is missing or malformed."""
