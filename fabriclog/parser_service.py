"""The parser service: validates requests and hands them to a parsing engine."""

from __future__ import annotations

import logging
from typing import Protocol

from fabriclog.errors import BadArgumentsError, UnavailableError
from fabriclog.parsed import ParsedLog


class ParseEngine(Protocol):
    """Anything that can turn a requested path into a parsed log."""

    def parse(self, path: str) -> ParsedLog:
        """Parse the log source at the given path."""
        ...


class ParserService:
    """Front of the parser: checks arguments and delegates to the engine."""

    def __init__(self, logger: logging.Logger, engine: ParseEngine) -> None:
        self._logger = logger
        self._engine = engine

    def ping(self) -> None:
        """Check that the service can serve requests; raise if it has no engine."""
        if self._engine is None:
            raise UnavailableError()

    def parse(self, path: str) -> ParsedLog:
        """Parse a log source, refusing a blank path."""
        if not path.strip():
            raise BadArgumentsError()
        return self._engine.parse(path)