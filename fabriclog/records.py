"""Helpers for working with raw key/value records read from logs."""

from __future__ import annotations

import json
from collections.abc import Mapping

_KEY_NOISE = str.maketrans("", "", "_- ./\\")

_JSON_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


def normalize_key(key: str) -> str:
    """Lower-case a key and drop separators so spelling variants compare equal."""
    return key.strip().lower().translate(_KEY_NOISE)


def normalize_record(record: Mapping[str, str]) -> dict[str, str]:
    """Return the record with normalized keys and trimmed values."""
    return {normalize_key(key): value.strip() for key, value in record.items()}


def get_field(record: Mapping[str, str], *keys: str) -> str:
    """Return the value of the first key present in a normalized record, or ''."""
    for key in keys:
        normalized = normalize_key(key)
        if normalized in record:
            return record[normalized]
    return ""


def has_any(record: Mapping[str, str], *keys: str) -> bool:
    """Tell whether any of the keys is present in a normalized record."""
    return any(normalize_key(key) in record for key in keys)


def raw_json(record: Mapping[str, str]) -> str:
    """Serialize a record as compact JSON with sorted keys and HTML-safe escapes."""
    try:
        text = json.dumps(dict(record), sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return ""
    for char, escape in _JSON_ESCAPES:
        text = text.replace(char, escape)
    return text


def first_non_empty_line(data: bytes | str) -> str:
    """Return the first line that is not blank, trimmed, or '' if there is none."""
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    for line in text.split("\n"):
        stripped = line.strip()
        if stripped:
            return stripped
    return ""


def derive_node_kind(kind: str, desc: str, node_type: int) -> str:
    """Work out whether a node is a switch or a host from what is known of it."""
    kind = kind.strip().lower()
    if kind:
        return kind

    desc = desc.lower()
    if "switch" in desc or "sw" in desc:
        return "switch"
    if "host" in desc or "hca" in desc or "ca" in desc:
        return "host"
    if node_type == 2:
        return "switch"
    if node_type == 1:
        return "host"
    return "unknown"