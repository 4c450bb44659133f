"""Configuration of the API service."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Callable, TypeVar

import yaml

_SUPPORTED_EXTENSIONS = (".yaml", ".yml", ".json")

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_T = TypeVar("_T")


def parse_duration(text: str) -> float:
    """Parse a duration such as '5s', '1m30s' or '250ms' into seconds."""
    original = text
    body = text
    sign = 1.0
    if body and body[0] in "+-":
        sign = -1.0 if body[0] == "-" else 1.0
        body = body[1:]
    if body == "0":
        return 0.0
    if not body:
        raise ValueError(f"time: invalid duration {original!r}")

    total = 0.0
    pos = 0
    while pos < len(body):
        match = _PART.match(body, pos)
        if match is None:
            raise ValueError(f"time: invalid duration {original!r}")
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()
    return sign * total


@dataclass(frozen=True)
class HTTPConfig:
    """Settings of the HTTP server; durations are in seconds."""

    address: str = "localhost:8080"
    port: str = ""
    timeout: float = 5.0
    read_header_timeout: float = 5.0
    shutdown_timeout: float = 10.0


@dataclass(frozen=True)
class AppConfig:
    """Settings of the API service."""

    log_level: str = "DEBUG"
    log_file_path: str = "logs/app.log"
    http: HTTPConfig = field(default_factory=HTTPConfig)
    parser_address: str = "localhost:8081"
    repository_address: str = "localhost:8082"
    topology_address: str = "localhost:8083"


def _read_file(path: str) -> dict:
    ext = os.path.splitext(path)[1].lower()
    if ext not in _SUPPORTED_EXTENSIONS:
        raise ValueError(f"cannot read config {path!r}: file format {ext!r} is not supported")
    try:
        with open(path, encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except (OSError, yaml.YAMLError) as exc:
        raise ValueError(f"cannot read config {path!r}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"cannot read config {path!r}: top level must be a mapping")
    return data


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _setting(
    data: dict,
    key: str,
    env: str | None,
    default: str,
    convert: Callable[[str], _T],
) -> _T:
    if env is not None:
        from_env = os.environ.get(env)
        if from_env is not None:
            return convert(from_env)
    value = convert(_text(data.get(key)))
    if not value and default:
        return convert(default)
    return value


def _duration(text: str) -> float:
    return parse_duration(text) if text else 0.0


def load_config(path: str | os.PathLike[str]) -> AppConfig:
    """Read the config file, apply environment overrides and the PORT shortcut."""
    path = os.fspath(path)
    data = _read_file(path)

    server = data.get("api_server") or {}
    if not isinstance(server, dict):
        raise ValueError(f"cannot read config {path!r}: api_server must be a mapping")

    try:
        address = _setting(server, "address", "APP_ADDRESS", "localhost:8080", str)
        port = _setting(server, "port", "PORT", "", str)
        http = HTTPConfig(
            address=address,
            port=port,
            timeout=_setting(server, "timeout", "APP_TIMEOUT", "5s", _duration),
            read_header_timeout=_setting(
                server, "read_header_timeout", "APP_READ_HEADER_TIMEOUT", "5s", _duration
            ),
            shutdown_timeout=_setting(
                server, "shutdown_timeout", "APP_SHUTDOWN_TIMEOUT", "10s", _duration
            ),
        )
    except ValueError as exc:
        raise ValueError(f"cannot read config {path!r}: {exc}") from exc

    if port.strip():
        http = HTTPConfig(
            address=":" + port.strip(),
            port=http.port,
            timeout=http.timeout,
            read_header_timeout=http.read_header_timeout,
            shutdown_timeout=http.shutdown_timeout,
        )

    return AppConfig(
        log_level=_setting(data, "log_level", "LOG_LEVEL", "DEBUG", str),
        log_file_path=_setting(data, "log_file_path", "LOG_FILE_PATH", "logs/app.log", str),
        http=http,
        parser_address=_setting(
            data, "parser_address", "PARSER_GRPC_ADDRESS", "localhost:8081", str
        ),
        repository_address=_setting(
            data, "repository_address", "REPOSITORY_GRPC_ADDRESS", "localhost:8082", str
        ),
        topology_address=_setting(
            data, "topology_address", "TOPOLOGY_GRPC_ADDRESS", "localhost:8083", str
        ),
    )