"""HTTP handlers of the API: health, parsing, stored data and topology."""

from __future__ import annotations

import logging
import re
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar

from werkzeug.wrappers import Request, Response

from fabriclog.errors import (
    BadArgumentsError,
    ConflictError,
    NotFoundError,
    UnavailableError,
)
from fabriclog.jsonbody import RequestBodyError, json_response, read_body
from fabriclog.models import Port
from fabriclog.payloads import (
    ParseLogRequest,
    ParseLogResponse,
    StoredLogResponse,
    StoredNodeResponse,
    StoredNodesResponse,
    StoredPortResponse,
    StoredPortsResponse,
    TopologyResponse,
)
from fabriclog.ports import LogParser, LogReader, Pinger, TopologyViewer

DEFAULT_PORTS_LIMIT = 100
MAX_PORTS_LIMIT = 500
PARSE_REQUEST_BODY_LIMIT = 1 << 20

_MAX_INT64 = (1 << 63) - 1
_INTEGER = re.compile(r"[+-]?\d+")

_T = TypeVar("_T")

Handler = Callable[..., Response]


def _call(fn: Callable[[], _T], timeout: float | None) -> _T:
    """Run fn, raising UnavailableError if it does not finish within timeout seconds."""
    if timeout is None:
        return fn()
    if timeout <= 0:
        raise UnavailableError("deadline exceeded")

    outcome: dict[str, Any] = {}

    def run() -> None:
        try:
            outcome["value"] = fn()
        except BaseException as exc:  # handed back to the caller below
            outcome["error"] = exc

    worker = threading.Thread(target=run, daemon=True)
    worker.start()
    worker.join(timeout)
    if worker.is_alive():
        raise UnavailableError("deadline exceeded")
    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]


def _elapsed(start: float) -> str:
    return f"{time.perf_counter() - start:.6f}s"


def http_status_from_error(error: BaseException) -> int:
    """Map an error to the HTTP status that reports it."""
    if isinstance(error, BadArgumentsError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ConflictError):
        return 409
    if isinstance(error, UnavailableError):
        return 503
    return 500


def _error_response(error: BaseException, status_code: int | None = None) -> Response:
    code = http_status_from_error(error) if status_code is None else status_code
    return json_response({"error": str(error)}, code)


def include_raw(args: Mapping[str, str]) -> bool:
    """Tell whether the query asks for raw JSON to be included."""
    return (args.get("include_raw") or "").strip().lower() == "true"


def _parse_int(raw: str) -> int | None:
    return int(raw) if _INTEGER.fullmatch(raw) else None


def parse_pagination(args: Mapping[str, str]) -> tuple[int, int]:
    """Read limit and offset from a query, applying defaults and bounds."""
    limit = DEFAULT_PORTS_LIMIT
    raw = (args.get("limit") or "").strip()
    if raw:
        value = _parse_int(raw)
        if value is None or value <= 0:
            raise BadArgumentsError("limit must be positive integer")
        if value > MAX_PORTS_LIMIT:
            raise BadArgumentsError(f"limit must not exceed {MAX_PORTS_LIMIT}")
        limit = value

    offset = 0
    raw = (args.get("offset") or "").strip()
    if raw:
        value = _parse_int(raw)
        if value is None or value < 0:
            raise BadArgumentsError("offset must be non-negative integer")
        offset = value

    return limit, offset


def paginate_ports(ports: Sequence[Port], limit: int, offset: int) -> list[Port]:
    """Return one page of ports."""
    if offset >= len(ports):
        return []
    return list(ports[offset : offset + limit])


def parse_positive_id(value: str | None, name: str) -> int:
    """Parse a path identifier that must be a positive 64-bit integer."""
    raw = (value or "").strip()
    if not raw:
        raise BadArgumentsError(f"{name} is required")
    number = _parse_int(raw)
    if number is None or number > _MAX_INT64 or number <= 0:
        raise BadArgumentsError(f"{name} must be positive integer")
    return number


def health_handler(
    logger: logging.Logger, pingers: Mapping[str, Pinger], timeout: float | None
) -> Handler:
    """Build the handler that pings every dependency and reports each one."""

    def handle(request: Request) -> Response:
        start = time.perf_counter()
        deadline = None if timeout is None else time.monotonic() + timeout

        replies: dict[str, str] = {}
        status_code = 200
        for name, pinger in pingers.items():
            remaining = None if deadline is None else deadline - time.monotonic()
            try:
                _call(pinger.ping, remaining)
            except Exception as exc:
                replies[name] = "unavailable"
                status_code = 503
                logger.warning("ping failed service=%s error=%s", name, exc)
                continue
            replies[name] = "ok"

        response = json_response({"replies": replies}, status_code)
        logger.info("healthz handled replies=%s duration=%s", replies, _elapsed(start))
        return response

    return handle


def parse_log_handler(
    logger: logging.Logger, service: LogParser, timeout: float | None
) -> Handler:
    """Build the handler that parses and stores the log named in the body."""

    def handle(request: Request) -> Response:
        start = time.perf_counter()
        try:
            payload = read_body(request, ParseLogRequest, PARSE_REQUEST_BODY_LIMIT)
        except RequestBodyError as exc:
            return exc.response

        try:
            result = _call(lambda: service.parse_log(payload.path), timeout)
        except Exception as exc:
            status_code = http_status_from_error(exc)
            logger.warning(
                "parse log failed path=%s status_code=%d error=%s",
                payload.path,
                status_code,
                exc,
            )
            return _error_response(exc, status_code)

        response = json_response(ParseLogResponse.from_result(result), 200)
        logger.info(
            "parse log handled log_id=%d path=%s nodes=%d ports=%d nodes_info=%d duration=%s",
            result.log_id,
            payload.path,
            result.nodes_count,
            result.ports_count,
            result.nodes_info_count,
            _elapsed(start),
        )
        return response

    return handle


def get_log_handler(
    logger: logging.Logger, service: LogReader, timeout: float | None
) -> Handler:
    """Build the handler that returns one stored log."""

    def handle(request: Request, log_id: str | None = None) -> Response:
        start = time.perf_counter()
        try:
            ident = parse_positive_id(log_id, "log_id")
        except BadArgumentsError as exc:
            return _error_response(exc)

        try:
            item = _call(lambda: service.get_log(ident), timeout)
        except Exception as exc:
            return _error_response(exc)

        response = json_response(StoredLogResponse.from_log(item), 200)
        logger.info("get log handled log_id=%d duration=%s", ident, _elapsed(start))
        return response

    return handle


def get_nodes_by_log_handler(
    logger: logging.Logger, service: LogReader, timeout: float | None
) -> Handler:
    """Build the handler that returns every node of a log."""

    def handle(request: Request, log_id: str | None = None) -> Response:
        start = time.perf_counter()
        raw = include_raw(request.args)
        try:
            ident = parse_positive_id(log_id, "log_id")
        except BadArgumentsError as exc:
            return _error_response(exc)

        try:
            nodes = _call(lambda: service.get_nodes_by_log(ident), timeout)
        except Exception as exc:
            return _error_response(exc)

        body = StoredNodesResponse(
            count=len(nodes),
            nodes=[StoredNodeResponse.from_node(node, raw) for node in nodes],
        )
        response = json_response(body, 200)
        logger.info(
            "get nodes by log handled log_id=%d count=%d duration=%s",
            ident,
            len(nodes),
            _elapsed(start),
        )
        return response

    return handle


def _ports_page(ports: Sequence[Port], limit: int, offset: int, raw: bool) -> StoredPortsResponse:
    page = paginate_ports(ports, limit, offset)
    return StoredPortsResponse(
        count=len(page),
        total=len(ports),
        limit=limit,
        offset=offset,
        ports=[StoredPortResponse.from_port(port, raw) for port in page],
    )


def get_ports_by_log_handler(
    logger: logging.Logger, service: LogReader, timeout: float | None
) -> Handler:
    """Build the handler that returns one page of the ports of a log."""

    def handle(request: Request, log_id: str | None = None) -> Response:
        start = time.perf_counter()
        raw = include_raw(request.args)
        try:
            limit, offset = parse_pagination(request.args)
            ident = parse_positive_id(log_id, "log_id")
        except BadArgumentsError as exc:
            return _error_response(exc)

        try:
            ports = _call(lambda: service.get_ports_by_log(ident), timeout)
        except Exception as exc:
            return _error_response(exc)

        response = json_response(_ports_page(ports, limit, offset, raw), 200)
        logger.info(
            "get ports by log handled log_id=%d count=%d duration=%s",
            ident,
            len(ports),
            _elapsed(start),
        )
        return response

    return handle


def get_node_handler(
    logger: logging.Logger, service: LogReader, timeout: float | None
) -> Handler:
    """Build the handler that returns one stored node."""

    def handle(request: Request, node_id: str | None = None) -> Response:
        start = time.perf_counter()
        raw = include_raw(request.args)
        try:
            ident = parse_positive_id(node_id, "node_id")
        except BadArgumentsError as exc:
            return _error_response(exc)

        try:
            node = _call(lambda: service.get_node(ident), timeout)
        except Exception as exc:
            return _error_response(exc)

        response = json_response(StoredNodeResponse.from_node(node, raw), 200)
        logger.info("get node handled node_id=%d duration=%s", ident, _elapsed(start))
        return response

    return handle


def get_ports_by_node_handler(
    logger: logging.Logger, service: LogReader, timeout: float | None
) -> Handler:
    """Build the handler that returns one page of the ports of a node."""

    def handle(request: Request, node_id: str | None = None) -> Response:
        start = time.perf_counter()
        raw = include_raw(request.args)
        try:
            limit, offset = parse_pagination(request.args)
            ident = parse_positive_id(node_id, "node_id")
        except BadArgumentsError as exc:
            return _error_response(exc)

        try:
            ports = _call(lambda: service.get_ports_by_node(ident), timeout)
        except Exception as exc:
            return _error_response(exc)

        response = json_response(_ports_page(ports, limit, offset, raw), 200)
        logger.info(
            "get ports by node handled node_id=%d count=%d duration=%s",
            ident,
            len(ports),
            _elapsed(start),
        )
        return response

    return handle


def get_topology_handler(
    logger: logging.Logger, service: TopologyViewer, timeout: float | None
) -> Handler:
    """Build the handler that returns the topology of a log."""

    def handle(request: Request, log_id: str | None = None) -> Response:
        start = time.perf_counter()
        try:
            ident = parse_positive_id(log_id, "log_id")
        except BadArgumentsError as exc:
            return _error_response(exc)

        try:
            topology = _call(lambda: service.get_topology(ident), timeout)
        except Exception as exc:
            status_code = http_status_from_error(exc)
            logger.warning(
                "get topology failed log_id=%d status_code=%d error=%s",
                ident,
                status_code,
                exc,
            )
            return _error_response(exc, status_code)

        response = json_response(TopologyResponse.from_topology(topology), 200)
        logger.info(
            "get topology handled log_id=%d nodes=%d ports=%d edges=%d duration=%s",
            ident,
            topology.summary.nodes_count,
            topology.summary.ports_count,
            topology.summary.edges_count,
            _elapsed(start),
        )
        return response

    return handle