"""Interfaces the API service depends on and offers."""

from __future__ import annotations

from typing import Protocol

from fabriclog.models import (
    Node,
    ParseLogResult,
    Port,
    SaveParsedLogResult,
    StoredLog,
    Topology,
)
from fabriclog.parsed import ParsedLog


class Pinger(Protocol):
    """A dependency that can be checked for liveness."""

    def ping(self) -> None:
        """Raise if the dependency cannot be reached."""
        ...


class Parser(Pinger, Protocol):
    """The remote log parser."""

    def parse(self, path: str) -> ParsedLog:
        """Parse the log at a path."""
        ...


class Repository(Pinger, Protocol):
    """Storage of logs and their parsed contents."""

    def create_log(self, file_path: str) -> int:
        """Register a log being processed and return its id."""
        ...

    def save_parsed_log(self, log_id: int, parsed: ParsedLog) -> SaveParsedLogResult:
        """Store what was parsed from a log."""
        ...

    def fail_log(self, log_id: int, error_text: str, *, timeout: float | None = None) -> None:
        """Mark a log as failed, within an optional timeout in seconds."""
        ...

    def get_log(self, log_id: int) -> StoredLog:
        """Return a stored log."""
        ...

    def get_node(self, node_id: int) -> Node:
        """Return a stored node."""
        ...

    def get_ports_by_node(self, node_id: int) -> list[Port]:
        """Return the ports of a node."""
        ...

    def get_nodes_by_log(self, log_id: int) -> list[Node]:
        """Return the nodes of a log."""
        ...

    def get_ports_by_log(self, log_id: int) -> list[Port]:
        """Return the ports of a log."""
        ...


class TopologyProvider(Pinger, Protocol):
    """The remote topology builder."""

    def get_topology(self, log_id: int) -> Topology:
        """Return the topology of a log."""
        ...


class LogParser(Protocol):
    """Something that parses and stores a log."""

    def parse_log(self, path: str) -> ParseLogResult:
        """Parse and store the log at a path."""
        ...


class TopologyViewer(Protocol):
    """Something that shows the topology of a log."""

    def get_topology(self, log_id: int) -> Topology:
        """Return the topology of a log."""
        ...


class LogReader(Protocol):
    """Read access to stored logs, nodes and ports."""

    def get_log(self, log_id: int) -> StoredLog:
        """Return a stored log."""
        ...

    def get_node(self, node_id: int) -> Node:
        """Return a stored node."""
        ...

    def get_ports_by_node(self, node_id: int) -> list[Port]:
        """Return the ports of a node."""
        ...

    def get_nodes_by_log(self, log_id: int) -> list[Node]:
        """Return the nodes of a log."""
        ...

    def get_ports_by_log(self, log_id: int) -> list[Port]:
        """Return the ports of a log."""
        ...