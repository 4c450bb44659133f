"""Error types shared by the parser and the API service."""

from __future__ import annotations


class FabricLogError(Exception):
    """Base class for every error raised by the package."""

    message = "fabric log error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        text = f"{self.message}: {detail}" if detail else self.message
        super().__init__(text)


class BadArgumentsError(FabricLogError):
    """The arguments of a call are not acceptable."""

    message = "arguments are not acceptable"


class NotFoundError(FabricLogError):
    """The requested resource does not exist."""

    message = "resource is not found"


class UnavailableError(FabricLogError):
    """A dependency could not be reached."""

    message = "dependency unavailable"


class ConflictError(FabricLogError):
    """The resource is in a state that conflicts with the request."""

    message = "resource conflict"


class UnsupportedFormatError(FabricLogError):
    """The log is in a format the parser does not understand."""

    message = "unsupported log format"


class ParseError(FabricLogError):
    """The log content could not be parsed."""

    message = "parse error"