"""Configuration of the parser service."""

from __future__ import annotations

import os
from dataclasses import dataclass

import yaml

_SUPPORTED_EXTENSIONS = (".yaml", ".yml", ".json")


@dataclass(frozen=True)
class ParserConfig:
    """Settings of the parser service."""

    log_level: str = "DEBUG"
    address: str = "localhost:8081"
    data_dir: str = "../data"


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


def _setting(data: dict, key: str, env: str, default: str) -> str:
    from_env = os.environ.get(env)
    if from_env is not None:
        return from_env
    return _text(data.get(key)) or default


def load_parser_config(path: str | os.PathLike[str]) -> ParserConfig:
    """Read the config file, then let environment variables override it."""
    path = os.fspath(path)
    data = _read_file(path)
    defaults = ParserConfig()
    return ParserConfig(
        log_level=_setting(data, "log_level", "LOG_LEVEL", defaults.log_level),
        address=_setting(data, "parser_address", "PARSER_ADDRESS", defaults.address),
        data_dir=_setting(data, "data_dir", "DATA_DIR", defaults.data_dir),
    )