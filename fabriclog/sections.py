"""Parsing of key/value section logs and consolidation of parsed records."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import TypeVar

from fabriclog.errors import ParseError
from fabriclog.parsed import ParsedLog, ParsedNode, ParsedNodeInfo, ParsedPort
from fabriclog.records import (
    derive_node_kind,
    get_field,
    has_any,
    normalize_key,
    normalize_record,
    raw_json,
)

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1
_DIGITS = re.compile(r"[0-9a-zA-Z_]+")
_BASE_PREFIXES = {"0x": 16, "0o": 8, "0b": 2}

_PORT_INT_FIELDS = (
    ("port_num", ("portnum", "portnumber", "port")),
    ("lid", ()),
    ("local_port_num", ("localportnum", "localportnumber")),
    ("port_state", ("portstate", "state")),
    ("port_phy_state", ("portphystate", "phystate", "physicalstate")),
    ("link_width_active", ("linkwidthactive", "linkwidthactv", "linkwidth")),
    ("link_speed_active", ("linkspeedactive", "linkspeedactv", "linkspeed")),
)

_NODE_INT_FIELDS = (
    ("node_type", ("nodetype", "type")),
    ("num_ports", ("numports", "ports", "portcount")),
    ("class_version", ("classversion",)),
    ("base_version", ("baseversion",)),
)

_T = TypeVar("_T")


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def parse_key_value_sections(name: str, data: bytes) -> ParsedLog:
    """Parse blocks of 'key: value' or 'key=value' lines separated by blank lines."""
    text = data.decode("utf-8", errors="replace")
    records: list[dict[str, str]] = []
    current: dict[str, str] = {}

    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line or line.startswith("---"):
            if current:
                records.append(current)
                current = {}
            continue
        if line.startswith("#"):
            continue

        pair = split_key_value(line)
        if pair is None:
            raise ParseError(f"malformed key-value line {_quote(line)}")
        key, value = pair
        current[key] = value

    if current:
        records.append(current)

    return records_to_parsed_log(name, records)


def split_key_value(line: str) -> tuple[str, str] | None:
    """Split a line at the first ':' (or, failing that, '='); None if it is not a pair."""
    if line.startswith("#"):
        return None

    for sep in (":", "="):
        if sep not in line:
            continue
        left, right = line.split(sep, 1)
        key = left.strip()
        if not key:
            return None
        return key, right.strip().strip("\"'")

    return None


def _parse_int32(text: str) -> int:
    sign = 1
    body = text
    if body[:1] in ("+", "-"):
        sign = -1 if body[0] == "-" else 1
        body = body[1:]

    prefix = body[:2].lower()
    if prefix in _BASE_PREFIXES:
        base, digits, prefixed = _BASE_PREFIXES[prefix], body[2:], True
    elif len(body) > 1 and body[0] == "0":
        base, digits, prefixed = 8, body[1:], True
    else:
        base, digits, prefixed = 10, body, False

    if prefixed and digits.startswith("_"):
        digits = digits[1:]
    if not digits or not _DIGITS.fullmatch(digits):
        raise ValueError(text)

    value = sign * int(digits, base)
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ValueError(text)
    return value


def parse_optional_int32(record: Mapping[str, str], field: str, *keys: str) -> int:
    """Read a 32-bit integer from the first present key; 0 when absent or blank."""
    for key in keys:
        normalized = normalize_key(key)
        if normalized in record:
            value = record[normalized]
            break
    else:
        return 0

    raw = value.strip()
    if not raw:
        return 0

    try:
        return _parse_int32(raw.strip("\"'"))
    except ValueError:
        raise ParseError(f"malformed numeric field {field}={_quote(value)}") from None


def _int_fields(record: Mapping[str, str], spec) -> dict[str, int]:
    return {
        name: parse_optional_int32(record, name, name, *aliases) for name, aliases in spec
    }


def records_to_parsed_log(file_name: str, records: Iterable[Mapping[str, str]]) -> ParsedLog:
    """Turn raw records into nodes, ports and node info according to their kind."""
    parsed = ParsedLog()

    for rec in records:
        normalized = normalize_record(rec)
        raw = raw_json(rec)
        kind = classify_record(file_name, normalized)

        if kind == "port":
            numbers = _int_fields(normalized, _PORT_INT_FIELDS)
            parsed.ports.append(
                ParsedPort(
                    node_guid=get_field(normalized, "nodeguid", "nodeid", "node"),
                    port_guid=get_field(normalized, "portguid", "portid"),
                    raw_json=raw,
                    **numbers,
                )
            )
        elif kind == "info":
            parsed.nodes_info.append(
                ParsedNodeInfo(
                    node_guid=get_field(normalized, "nodeguid", "nodeid", "node"),
                    serial_number=get_field(normalized, "serialnumber", "serial", "sn"),
                    part_number=get_field(normalized, "partnumber", "part", "pn"),
                    revision=get_field(normalized, "revision", "rev"),
                    product_name=get_field(normalized, "productname", "product", "description"),
                    raw_json=raw,
                )
            )
        elif kind == "node":
            node_desc = get_field(normalized, "nodedesc", "description", "desc", "name")
            numbers = _int_fields(normalized, _NODE_INT_FIELDS)
            parsed.nodes.append(
                ParsedNode(
                    node_guid=get_field(normalized, "nodeguid", "nodeid", "node", "guid"),
                    node_desc=node_desc,
                    node_kind=derive_node_kind(
                        get_field(normalized, "nodekind", "kind"), node_desc, numbers["node_type"]
                    ),
                    system_image_guid=get_field(normalized, "systemimageguid", "systemimage"),
                    port_guid=get_field(normalized, "portguid"),
                    raw_json=raw,
                    **numbers,
                )
            )

    return parsed


def classify_record(file_name: str, record: Mapping[str, str]) -> str:
    """Return 'port', 'info', 'node' or '' for a normalized record."""
    name = normalize_key(file_name)

    if (
        has_any(
            record,
            "portnum",
            "portnumber",
            "localportnum",
            "localportnumber",
            "lid",
            "portstate",
            "portphystate",
            "phystate",
            "linkwidthactive",
            "linkspeedactive",
        )
        or "port" in name
    ):
        return "port"

    if has_any(record, "serialnumber", "partnumber", "revision", "productname") or any(
        marker in name for marker in ("nodeinfo", "nodesinfo", "sharpaninfo")
    ):
        return "info"

    if has_any(record, "nodeguid", "nodeid", "guid") or "node" in name:
        return "node"

    return ""


def _merge_into(index: dict, key, item: _T, merge) -> None:
    index[key] = merge(index[key], item) if key in index else item


def finalize_parsed_log(parsed: ParsedLog) -> ParsedLog:
    """Drop records without a node GUID, merge duplicates and add missing nodes."""
    nodes: dict[str, ParsedNode] = {}

    def ensure_node(guid: str) -> None:
        if guid and guid not in nodes:
            nodes[guid] = ParsedNode(node_guid=guid, node_kind="unknown")

    for node in parsed.nodes:
        guid = node.node_guid.strip()
        if guid:
            _merge_into(nodes, guid, replace(node, node_guid=guid), merge_node)

    infos: dict[str, ParsedNodeInfo] = {}
    for info in parsed.nodes_info:
        guid = info.node_guid.strip()
        if not guid:
            continue
        ensure_node(guid)
        _merge_into(infos, guid, replace(info, node_guid=guid), merge_node_info)

    ports: dict[tuple[str, str, int], ParsedPort] = {}
    for port in parsed.ports:
        guid = port.node_guid.strip()
        if not guid:
            continue
        ensure_node(guid)
        key = (guid, port.port_guid, port.port_num)
        _merge_into(ports, key, replace(port, node_guid=guid), merge_port)

    return ParsedLog(
        nodes=list(nodes.values()),
        ports=list(ports.values()),
        nodes_info=list(infos.values()),
    )


def _overlay(base: _T, patch: _T, names: Iterable[str]) -> _T:
    changes = {name: getattr(patch, name) for name in names if getattr(patch, name)}
    return replace(base, **changes)


def merge_node(base: ParsedNode, patch: ParsedNode) -> ParsedNode:
    """Overwrite the base node with every non-empty field of the patch."""
    merged = _overlay(
        base,
        patch,
        (
            "node_desc",
            "node_type",
            "num_ports",
            "class_version",
            "base_version",
            "system_image_guid",
            "port_guid",
            "raw_json",
        ),
    )
    if patch.node_kind and patch.node_kind != "unknown":
        merged = replace(merged, node_kind=patch.node_kind)
    return merged


def merge_node_info(base: ParsedNodeInfo, patch: ParsedNodeInfo) -> ParsedNodeInfo:
    """Overwrite the base node info with every non-empty field of the patch."""
    return _overlay(
        base, patch, ("serial_number", "part_number", "revision", "product_name", "raw_json")
    )


def merge_port(base: ParsedPort, patch: ParsedPort) -> ParsedPort:
    """Overwrite the base port with every non-empty field of the patch."""
    return _overlay(
        base,
        patch,
        (
            "port_guid",
            "port_num",
            "lid",
            "local_port_num",
            "port_state",
            "port_phy_state",
            "link_width_active",
            "link_speed_active",
            "raw_json",
        ),
    )