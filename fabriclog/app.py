"""The HTTP API application: routing, middleware and the server loop."""

from __future__ import annotations

import logging
import signal
import socket
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from werkzeug.exceptions import HTTPException, MethodNotAllowed, NotFound
from werkzeug.routing import Map, Rule
from werkzeug.serving import WSGIRequestHandler, make_server
from werkzeug.wrappers import Request, Response

from fabriclog.config import AppConfig
from fabriclog.handlers import (
    get_log_handler,
    get_node_handler,
    get_nodes_by_log_handler,
    get_ports_by_log_handler,
    get_ports_by_node_handler,
    get_topology_handler,
    health_handler,
    parse_log_handler,
)
from fabriclog.middleware import chain, cors, logging_middleware, recover
from fabriclog.ports import Pinger

_POLL_INTERVAL = 0.5


def _plain(text: str, status_code: int) -> Response:
    response = Response(text, status=status_code)
    response.headers["Content-Type"] = "text/plain; charset=utf-8"
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


def create_app(
    logger: logging.Logger,
    service: Any,
    pingers: Mapping[str, Pinger],
    config: AppConfig,
) -> Callable[[dict, Callable[..., Any]], Iterable[bytes]]:
    """Build the WSGI application serving the API, wrapped in its middleware."""
    timeout = config.http.timeout

    url_map = Map(
        [
            Rule("/healthz", methods=["GET"], endpoint=health_handler(logger, pingers, timeout)),
            Rule(
                "/api/v1/parse",
                methods=["POST"],
                endpoint=parse_log_handler(logger, service, timeout),
            ),
            Rule(
                "/api/v1/log/<log_id>",
                methods=["GET"],
                endpoint=get_log_handler(logger, service, timeout),
            ),
            Rule(
                "/api/v1/node/<node_id>",
                methods=["GET"],
                endpoint=get_node_handler(logger, service, timeout),
            ),
            Rule(
                "/api/v1/port/<node_id>",
                methods=["GET"],
                endpoint=get_ports_by_node_handler(logger, service, timeout),
            ),
            Rule(
                "/api/v1/topology/<log_id>",
                methods=["GET"],
                endpoint=get_topology_handler(logger, service, timeout),
            ),
            Rule(
                "/api/v1/log/<log_id>/nodes",
                methods=["GET"],
                endpoint=get_nodes_by_log_handler(logger, service, timeout),
            ),
            Rule(
                "/api/v1/log/<log_id>/ports",
                methods=["GET"],
                endpoint=get_ports_by_log_handler(logger, service, timeout),
            ),
        ],
        merge_slashes=False,
    )

    def router(environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
        adapter = url_map.bind_to_environ(environ)
        try:
            handler, values = adapter.match()
        except NotFound:
            response = _plain("404 page not found\n", 404)
        except MethodNotAllowed as exc:
            response = _plain("Method Not Allowed\n", 405)
            if exc.valid_methods:
                response.headers["Allow"] = ", ".join(exc.valid_methods)
        except HTTPException as exc:
            return exc(environ, start_response)
        else:
            response = handler(Request(environ), **values)
        return response(environ, start_response)

    stack = chain(recover(logger), logging_middleware(logger), cors)
    return stack(router)


def _split_address(address: str) -> tuple[str, int]:
    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise ValueError(f"address {address}: missing port in address")
    host = host.strip("[]") or "0.0.0.0"
    port = int(port_text) if port_text else 80
    if not 0 <= port <= 65535:
        raise ValueError(f"address {address}: invalid port")
    return host, port


def _handler_class(read_timeout: float) -> type[WSGIRequestHandler]:
    header_timeout = read_timeout if read_timeout > 0 else None

    class _QuietHandler(WSGIRequestHandler):
        timeout = header_timeout

        def log_request(self, code: Any = "-", size: Any = "-") -> None:
            return None

    return _QuietHandler


def _install_signal_handlers(handler: Callable[..., None]) -> dict[int, Any]:
    previous: dict[int, Any] = {}
    if threading.current_thread() is not threading.main_thread():
        return previous
    for name in ("SIGINT", "SIGTERM"):
        signum = getattr(signal, name, None)
        if signum is not None:
            previous[signum] = signal.signal(signum, handler)
    return previous


def _restore_signal_handlers(previous: Mapping[int, Any]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def serve(
    config: AppConfig,
    logger: logging.Logger,
    service: Any,
    pingers: Mapping[str, Pinger],
) -> None:
    """Serve the API until SIGINT or SIGTERM, then shut down within the configured time."""
    logger.info("starting app server")
    logger.debug("debug messages are enabled")

    app = create_app(logger, service, pingers, config)

    wake = threading.Event()
    requested = threading.Event()

    def on_signal(signum: int, frame: Any) -> None:
        requested.set()
        wake.set()

    previous = _install_signal_handlers(on_signal)
    try:
        try:
            host, port = _split_address(config.http.address)
            family = socket.AF_INET6 if ":" in host else socket.AF_INET
            listener = socket.create_server((host, port), family=family)
        except (OSError, ValueError) as exc:
            raise RuntimeError(f"server stopped unexpectedly: {exc}") from exc

        try:
            server = make_server(
                host,
                port,
                app,
                threaded=True,
                request_handler=_handler_class(config.http.read_header_timeout),
                fd=listener.fileno(),
            )
        finally:
            listener.close()

        failures: list[BaseException] = []

        def run() -> None:
            try:
                server.serve_forever(poll_interval=_POLL_INTERVAL)
            except Exception as exc:
                failures.append(exc)
            finally:
                wake.set()

        worker = threading.Thread(target=run, name="fabriclog-http", daemon=True)
        worker.start()

        logger.info(
            "app server started address=%s parser_address=%s repository_address=%s "
            "topology_address=%s log_level=%s log_file_path=%s",
            config.http.address,
            config.parser_address,
            config.repository_address,
            config.topology_address,
            config.log_level,
            config.log_file_path,
        )

        while not wake.wait(_POLL_INTERVAL):
            pass

        if requested.is_set():
            logger.info("shutdown requested")
        elif failures:
            raise RuntimeError(f"server stopped unexpectedly: {failures[0]}") from failures[0]

        deadline = time.monotonic() + max(config.http.shutdown_timeout, 0.0)
        stopper = threading.Thread(target=server.shutdown, daemon=True)
        stopper.start()
        stopper.join(max(deadline - time.monotonic(), 0.0))
        if stopper.is_alive():
            raise RuntimeError("server shutdown: context deadline exceeded")
        worker.join(max(deadline - time.monotonic(), 0.0))
        if worker.is_alive():
            raise RuntimeError("server shutdown: context deadline exceeded")

        logger.info("app server stopped")
    finally:
        _restore_signal_handlers(previous)