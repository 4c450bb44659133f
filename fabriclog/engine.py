"""The parsing engine: resolves a requested path and parses every file in it."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable

from fabriclog.archive import SourceFile, read_source
from fabriclog.dbcsv import parse_csv, parse_db_csv
from fabriclog.errors import BadArgumentsError, FabricLogError, ParseError
from fabriclog.parsed import ParsedLog
from fabriclog.sections import finalize_parsed_log, parse_key_value_sections

_DOCKER_DATA_ROOT = "/data"


class Engine:
    """Parses log sources found under a data directory."""

    def __init__(self, data_dir: str | os.PathLike[str], logger: logging.Logger) -> None:
        self.data_dir = os.fspath(data_dir)
        self._logger = logger

    def parse(self, requested_path: str) -> ParsedLog:
        """Parse the source at a path relative to (or inside) the data directory."""
        path = self.resolve_path(requested_path)
        files = read_source(path)
        parsed = finalize_parsed_log(parse_files(files))

        if not parsed.nodes:
            raise ParseError("no nodes found")

        self._logger.info(
            "log parsed path=%s files=%d nodes=%d ports=%d nodes_info=%d",
            requested_path,
            len(files),
            len(parsed.nodes),
            len(parsed.ports),
            len(parsed.nodes_info),
        )
        return parsed

    def resolve_path(self, requested_path: str) -> str:
        """Return the absolute path of a request, refusing anything outside the data dir."""
        if not requested_path.strip():
            raise BadArgumentsError()

        data_abs = os.path.abspath(self.data_dir)
        clean = os.path.normpath(requested_path)

        if os.path.isabs(clean):
            if clean == _DOCKER_DATA_ROOT or clean.startswith(_DOCKER_DATA_ROOT + "/"):
                rel = clean[len(_DOCKER_DATA_ROOT):].lstrip("/")
                candidate = os.path.join(data_abs, rel)
            else:
                candidate = clean
        else:
            candidate = os.path.join(data_abs, clean)

        candidate_abs = os.path.abspath(candidate)
        try:
            rel = os.path.relpath(candidate_abs, data_abs)
        except ValueError:
            raise BadArgumentsError("path must be inside data dir") from None

        if rel == os.pardir or rel.startswith(os.pardir + os.sep) or os.path.isabs(rel):
            raise BadArgumentsError("path must be inside data dir")

        return candidate_abs


def parse_files(files: Iterable[SourceFile]) -> ParsedLog:
    """Parse each non-blank file and collect everything found."""
    parsed = ParsedLog()
    for file in files:
        if not file.data.strip():
            continue
        try:
            parsed.extend(parse_file(file))
        except FabricLogError as exc:
            detail = f"parse file {file.name}"
            if exc.detail:
                detail = f"{detail}: {exc.detail}"
            raise type(exc)(detail) from exc
    return parsed


def parse_file(file: SourceFile) -> ParsedLog:
    """Parse one file with the parser its name calls for."""
    name = file.name.lower()
    if name.endswith(".db_csv") or "db_csv" in name:
        return parse_db_csv(file.name, file.data)
    if name.endswith(".csv"):
        return parse_csv(file.name, file.data)
    return parse_key_value_sections(file.name, file.data)