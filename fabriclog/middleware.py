"""WSGI middleware for the HTTP API: chaining, CORS, request logging, recovery."""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any

WSGIApp = Callable[[dict, Callable[..., Any]], Iterable[bytes]]
Middleware = Callable[[WSGIApp], WSGIApp]

_DEFAULT_LOGGER = "fabriclog"

_PREFLIGHT_HEADERS = [
    ("Access-Control-Allow-Methods", "GET, POST, DELETE, OPTIONS"),
    ("Access-Control-Allow-Headers", "Content-Type, Content-Length"),
    ("Access-Control-Max-Age", "86400"),
]


def chain(*middlewares: Middleware) -> Middleware:
    """Combine middlewares so that the first one given is the outermost."""

    def apply(app: WSGIApp) -> WSGIApp:
        for middleware in reversed(middlewares):
            app = middleware(app)
        return app

    return apply


def cors(app: WSGIApp) -> WSGIApp:
    """Allow cross-origin requests from whatever origin the request names."""

    def wrapped(environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
        origin = environ.get("HTTP_ORIGIN", "")
        if not origin:
            return app(environ, start_response)

        cors_headers = [
            ("Access-Control-Allow-Origin", origin),
            ("Access-Control-Allow-Credentials", "true"),
        ]

        if environ.get("REQUEST_METHOD", "").upper() == "OPTIONS":
            start_response("204 No Content", cors_headers + _PREFLIGHT_HEADERS)
            return []

        def start_with_cors(status, headers, exc_info=None):
            present = {name.lower() for name, _ in headers}
            extra = [item for item in cors_headers if item[0].lower() not in present]
            return start_response(status, list(headers) + extra, exc_info)

        return app(environ, start_with_cors)

    return wrapped


@dataclass
class _Recorder:
    status_code: int = 200
    bytes: int = 0
    started: bool = False


def _format_duration(seconds: float) -> str:
    if seconds < 1e-3:
        return f"{seconds * 1e6:.3f}µs"
    if seconds < 1:
        return f"{seconds * 1e3:.3f}ms"
    return f"{seconds:.3f}s"


def _status_code(status: str) -> int:
    return int(status.split(None, 1)[0])


def _close(result: Iterable[bytes]) -> None:
    close = getattr(result, "close", None)
    if close is not None:
        close()


def logging_middleware(logger: logging.Logger | None = None) -> Middleware:
    """Log every request with its status, size and duration once it is answered."""
    log = logger if logger is not None else logging.getLogger(_DEFAULT_LOGGER)

    def report(recorder: _Recorder, environ: dict, start: float) -> None:
        attrs = [
            ("status", recorder.status_code),
            ("method", environ.get("REQUEST_METHOD", "")),
            ("path", environ.get("PATH_INFO", "")),
            ("bytes", recorder.bytes),
            ("duration", _format_duration(time.perf_counter() - start)),
        ]
        query = environ.get("QUERY_STRING", "")
        if query:
            attrs.append(("query", query))
        text = " ".join(f"{key}={value}" for key, value in attrs)

        if recorder.status_code >= 500:
            log.error("http request failed %s", text)
        elif recorder.status_code >= 400:
            log.warning("http request failed %s", text)
        else:
            log.info("http request succeeded %s", text)

    def middleware(app: WSGIApp) -> WSGIApp:
        def stream(result, recorder, environ, start) -> Iterator[bytes]:
            failed = False
            try:
                for chunk in result:
                    recorder.bytes += len(chunk)
                    yield chunk
            except Exception:
                failed = True
                raise
            finally:
                _close(result)
                if not failed:
                    report(recorder, environ, start)

        def wrapped(environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
            start = time.perf_counter()
            recorder = _Recorder()

            def recording_start(status, headers, exc_info=None):
                if not recorder.started or exc_info is not None:
                    recorder.status_code = _status_code(status)
                    recorder.started = True
                write = start_response(status, headers, exc_info)

                def counting_write(data: bytes) -> None:
                    recorder.bytes += len(data)
                    write(data)

                return counting_write

            result = app(environ, recording_start)
            return stream(result, recorder, environ, start)

        return wrapped

    return middleware


def recover(logger: logging.Logger | None = None) -> Middleware:
    """Turn an exception escaping the application into a 500 response."""
    log = logger if logger is not None else logging.getLogger(_DEFAULT_LOGGER)

    def middleware(app: WSGIApp) -> WSGIApp:
        def wrapped(environ: dict, start_response: Callable[..., Any]) -> Iterable[bytes]:
            started = False

            def tracking_start(status, headers, exc_info=None):
                nonlocal started
                started = True
                return start_response(status, headers, exc_info)

            try:
                result = app(environ, tracking_start)
                try:
                    return list(result)
                finally:
                    _close(result)
            except Exception as exc:
                log.error(
                    "panic recovered recover=%s method=%s path=%s",
                    exc,
                    environ.get("REQUEST_METHOD", ""),
                    environ.get("PATH_INFO", ""),
                    exc_info=True,
                )
                start_response(
                    "500 Internal Server Error",
                    [
                        ("Content-Type", "text/plain; charset=utf-8"),
                        ("X-Content-Type-Options", "nosniff"),
                    ],
                    sys.exc_info() if started else None,
                )
                return [b"internal server error\n"]

        return wrapped

    return middleware