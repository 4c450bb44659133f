"""The API service: coordinates the parser, the repository and the topology builder."""

from __future__ import annotations

import logging

from fabriclog.errors import BadArgumentsError, ConflictError
from fabriclog.models import LogStatus, Node, ParseLogResult, Port, StoredLog, Topology
from fabriclog.ports import Parser, Repository, TopologyProvider

FAIL_LOG_TIMEOUT = 5.0


def _require_positive(value: int) -> None:
    if value <= 0:
        raise BadArgumentsError()


class AppService:
    """Business logic behind the HTTP API."""

    def __init__(
        self,
        logger: logging.Logger,
        repository: Repository,
        parser: Parser,
        topology: TopologyProvider,
    ) -> None:
        self._logger = logger
        self._repository = repository
        self._parser = parser
        self._topology = topology

    def parse_log(self, path: str) -> ParseLogResult:
        """Register a log, parse it and store the result; mark it failed on error."""
        path = path.strip()
        if not path:
            raise BadArgumentsError()

        log_id = self._repository.create_log(path)

        try:
            parsed = self._parser.parse(path)
        except Exception as exc:
            self.mark_failed(log_id, exc)
            raise

        try:
            saved = self._repository.save_parsed_log(log_id, parsed)
        except Exception as exc:
            self.mark_failed(log_id, exc)
            raise

        return ParseLogResult(
            log_id=saved.log_id,
            status=LogStatus.PARSED,
            nodes_count=saved.nodes_count,
            ports_count=saved.ports_count,
            nodes_info_count=len(parsed.nodes_info),
        )

    def get_log(self, log_id: int) -> StoredLog:
        """Return a stored log."""
        _require_positive(log_id)
        return self._repository.get_log(log_id)

    def get_node(self, node_id: int) -> Node:
        """Return a stored node."""
        _require_positive(node_id)
        return self._repository.get_node(node_id)

    def get_nodes_by_log(self, log_id: int) -> list[Node]:
        """Return the nodes of an existing log."""
        _require_positive(log_id)
        self._repository.get_log(log_id)
        return self._repository.get_nodes_by_log(log_id)

    def get_ports_by_log(self, log_id: int) -> list[Port]:
        """Return the ports of an existing log."""
        _require_positive(log_id)
        self._repository.get_log(log_id)
        return self._repository.get_ports_by_log(log_id)

    def get_ports_by_node(self, node_id: int) -> list[Port]:
        """Return the ports of an existing node."""
        _require_positive(node_id)
        self._repository.get_node(node_id)
        return self._repository.get_ports_by_node(node_id)

    def get_topology(self, log_id: int) -> Topology:
        """Return the topology built from a log."""
        _require_positive(log_id)
        return self._topology.get_topology(log_id)

    def mark_failed(self, log_id: int, cause: BaseException | None) -> None:
        """Record a failure on a log; problems doing so are logged, not raised."""
        if log_id <= 0 or cause is None:
            return

        try:
            self._repository.fail_log(log_id, str(cause), timeout=FAIL_LOG_TIMEOUT)
        except ConflictError as exc:
            self._logger.debug(
                "log was already finalized while marking as failed "
                "log_id=%d original_error=%s fail_error=%s",
                log_id,
                cause,
                exc,
            )
        except Exception as exc:
            self._logger.warning(
                "failed to mark log as failed log_id=%d original_error=%s fail_error=%s",
                log_id,
                cause,
                exc,
            )