"""Parsing of plain CSV tables and sectioned db_csv dumps."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Sequence
from dataclasses import dataclass, field

from fabriclog.errors import ParseError
from fabriclog.parsed import ParsedLog
from fabriclog.records import first_non_empty_line
from fabriclog.sections import records_to_parsed_log

_META_MARKERS = frozenset({"", "#", "comment", "comments"})


@dataclass
class DbCsvSection:
    """A named table found between START_<name> and END_<name> markers."""

    name: str
    records: list[dict[str, str]] = field(default_factory=list)


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _decode(data: bytes | str) -> str:
    return data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data


def parse_csv(name: str, data: bytes) -> ParsedLog:
    """Parse a CSV table whose first non-blank row is the header."""
    try:
        rows = read_delimited_rows(data)
    except csv.Error as exc:
        raise ParseError(f"csv read failed: {exc}") from exc

    if len(rows) < 2:
        return ParsedLog()

    headers, *body = rows
    records: list[dict[str, str]] = []
    for row in body:
        try:
            record = row_to_record(headers, row)
        except ValueError as exc:
            raise ParseError(f"csv row is malformed: {exc}") from exc
        if record:
            records.append(record)

    return records_to_parsed_log(name, records)


def parse_db_csv(name: str, data: bytes) -> ParsedLog:
    """Parse a db_csv dump; without section markers it is read as plain CSV."""
    try:
        rows = read_delimited_rows(data)
    except csv.Error as exc:
        raise ParseError(f"db_csv read failed: {exc}") from exc

    sections = split_db_csv_sections(rows)
    if not sections:
        return parse_csv(name, data)

    parsed = ParsedLog()
    for section in sections:
        parsed.extend(records_to_parsed_log(f"{name}/{section.name}", section.records))
    return parsed


def _trim_row(row: Sequence[str]) -> list[str]:
    cleaned = [value.strip() for value in row]
    return cleaned if any(cleaned) else []


def read_delimited_rows(data: bytes | str) -> list[list[str]]:
    """Read comma- or semicolon-separated rows, dropping rows with no values."""
    text = _decode(data)
    first = first_non_empty_line(text)
    delimiter = ";" if first.count(";") > first.count(",") else ","

    reader = csv.reader(
        io.StringIO(text, newline=""),
        delimiter=delimiter,
        skipinitialspace=True,
        strict=False,
    )
    return [cleaned for cleaned in map(_trim_row, reader) if cleaned]


def _normalize_marker(value: str) -> str:
    return value.strip().strip("\"'").upper()


def _is_meta_row(row: Sequence[str]) -> bool:
    if not row:
        return True
    first = row[0].strip().lower()
    return first in _META_MARKERS or first.startswith("#")


def split_db_csv_sections(rows: Sequence[Sequence[str]]) -> list[DbCsvSection]:
    """Group rows into sections delimited by START_<name> and END_<name> markers."""
    sections: list[DbCsvSection] = []
    name = ""
    header: Sequence[str] | None = None
    records: list[dict[str, str]] = []

    for row in rows:
        if not row:
            continue

        marker = _normalize_marker(row[0])

        if marker.startswith("START_"):
            if name and records:
                sections.append(DbCsvSection(name, records))
            name = marker[len("START_"):].lower()
            header, records = None, []
            continue

        if marker.startswith("END_"):
            if not name:
                raise ParseError(f"unexpected section end {_quote(row[0])}")
            end_name = marker[len("END_"):].lower()
            if end_name != name:
                raise ParseError(
                    f"section end {_quote(end_name)} does not match start {_quote(name)}"
                )
            if records:
                sections.append(DbCsvSection(name, records))
            name = ""
            header, records = None, []
            continue

        if not name or _is_meta_row(row):
            continue

        if header is None:
            header = row
            continue

        try:
            record = row_to_record(header, row)
        except ValueError as exc:
            raise ParseError(f"section {name} row is malformed: {exc}") from exc
        if record:
            records.append(record)

    if name:
        raise ParseError(f"section {name} is not closed")

    return sections


def row_to_record(headers: Sequence[str], row: Sequence[str]) -> dict[str, str]:
    """Pair a row with its headers; a non-empty value past the last header is an error."""
    record: dict[str, str] = {}
    for header, value in zip(headers, row):
        key = header.strip()
        if key:
            record[key] = value.strip()

    for extra in row[len(headers):]:
        if extra.strip():
            raise ValueError(f"extra value {_quote(extra)} without header")

    return record