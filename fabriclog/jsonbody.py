"""Decoding of JSON request bodies and encoding of JSON responses."""

from __future__ import annotations

import dataclasses
import json
from typing import Any, TypeVar

from werkzeug.wrappers import Request, Response

_T = TypeVar("_T")

_JSON_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)

_WHITESPACE = " \t\r\n"

_JSON_KINDS = {
    dict: "object",
    list: "array",
    str: "string",
    bool: "bool",
    int: "number",
    float: "number",
}

_NAMED_TYPES = {"str": str, "int": int, "bool": bool, "float": float}


class DecodeError(ValueError):
    """A request body is not a single acceptable JSON value."""


class EmptyBodyError(DecodeError):
    """A request body holds no JSON value at all."""

    def __init__(self) -> None:
        super().__init__("empty request body")


class RequestBodyError(Exception):
    """A request body was refused; carries the HTTP status and a ready response."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.response = json_response({"error": message}, status_code)


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _WHITESPACE:
        pos += 1
    return pos


def _kind(value: Any) -> str:
    return _JSON_KINDS.get(type(value), "value")


def _field_type(field: dataclasses.Field) -> Any:
    hint = field.type
    if isinstance(hint, str):
        return _NAMED_TYPES.get(hint.strip())
    return hint


def _accepts(hint: Any, value: Any) -> bool:
    if hint is str:
        return isinstance(value, str)
    if hint is bool:
        return isinstance(value, bool)
    if hint is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if hint is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    return True


def _build(payload_type: type[_T], value: Any) -> _T:
    if value is None:
        return payload_type()
    if not isinstance(value, dict):
        raise DecodeError(f"cannot unmarshal {_kind(value)} into {payload_type.__name__}")

    fields = {f.name: f for f in dataclasses.fields(payload_type) if f.init}
    folded = {name.lower(): name for name in fields}

    values: dict[str, Any] = {}
    for key, item in value.items():
        name = key if key in fields else folded.get(key.lower())
        if name is None:
            raise DecodeError(f'unknown field "{key}"')
        if item is None:
            continue
        if not _accepts(_field_type(fields[name]), item):
            raise DecodeError(
                f"cannot unmarshal {_kind(item)} into field {payload_type.__name__}.{name}"
            )
        values[name] = item
    return payload_type(**values)


def decode(body: bytes | str, payload_type: type[_T]) -> _T:
    """Decode exactly one JSON object into a dataclass, refusing unknown fields."""
    if isinstance(body, bytes):
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"invalid utf-8 in request body: {exc}") from exc
    else:
        text = body

    decoder = json.JSONDecoder()
    start = _skip_whitespace(text, 0)
    if start == len(text):
        raise EmptyBodyError()

    try:
        value, end = decoder.raw_decode(text, start)
    except json.JSONDecodeError as exc:
        raise DecodeError(str(exc)) from exc

    rest = _skip_whitespace(text, end)
    if rest < len(text):
        try:
            decoder.raw_decode(text, rest)
        except json.JSONDecodeError as exc:
            raise DecodeError(str(exc)) from exc
        raise DecodeError("request body must contain only one JSON value")

    return _build(payload_type, value)


def read_body(request: Request, payload_type: type[_T], max_bytes: int | None) -> _T:
    """Read and decode a request body, refusing one larger than max_bytes."""
    if max_bytes is None:
        data = request.stream.read()
    else:
        data = request.stream.read(max_bytes + 1)
        if len(data) > max_bytes:
            raise RequestBodyError(413, "request body is too large")

    try:
        return decode(data, payload_type)
    except DecodeError as exc:
        raise RequestBodyError(400, "invalid request body") from exc


def _encode(data: Any) -> bytes:
    if hasattr(data, "to_dict"):
        data = data.to_dict()
    text = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    for char, escape in _JSON_ESCAPES:
        text = text.replace(char, escape)
    return (text + "\n").encode("utf-8")


def json_response(data: Any, status_code: int) -> Response:
    """Build a JSON response from plain data or an object with to_dict()."""
    response = Response(_encode(data), status=status_code)
    response.headers["Content-Type"] = "application/json"
    return response