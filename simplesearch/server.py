"""HTTP server exposing the search endpoint."""

from __future__ import annotations

import json
import logging
import threading
from socketserver import ThreadingMixIn
from typing import Any, Dict, List, Optional, Protocol, Tuple
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from flask import Flask, Response, current_app, request

from .api import SearchRequest, SearchResponse
from .config import Config
from .elastic import NoHitsError, Product
from .jsonutil import json_encode

_OP = "app.SimpleSearch."

DEFAULT_PRICE_TOP = 10_000_000.0

_access_log = logging.getLogger(__name__ + ".access")


class _Searcher(Protocol):
    def make_search(self, request: SearchRequest) -> List[Product]:
        ...


def _json(payload: Any) -> Response:
    body = json_encode(payload).rstrip(b"\n")
    return current_app.response_class(body, status=200, mimetype="application/json")


def _error_body(code: int, message: str) -> Dict[str, Any]:
    return {"code": code, "message": message}


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _parse_request() -> SearchRequest:
    if not request.mimetype.endswith("json"):
        raise ValueError(f"unsupported content type {request.mimetype!r}")
    text = request.get_data().decode("utf-8")
    data = json.loads(text, parse_constant=_reject_constant)
    return SearchRequest.from_dict(data)


def create_app(searcher: _Searcher, service_name: str = "") -> Flask:
    """Build the WSGI application serving ``POST /search``."""
    app = Flask(__name__)
    app.config["SERVICE_NAME"] = service_name

    @app.errorhandler(Exception)
    def _handle_error(exc: Exception) -> Response:
        code = getattr(exc, "code", None)
        name = getattr(exc, "name", None)
        if code in (404, 405):
            return _json(_error_body(404, f"Cannot {request.method} {request.path}"))
        if isinstance(code, int) and isinstance(name, str):
            return _json(_error_body(code, name))
        return _json(_error_body(500, "Internal Server Error"))

    @app.post("/search")
    def _search() -> Response:
        try:
            search = _parse_request()
        except ValueError:
            return _json(_error_body(400, "Bad Request"))

        if not search.search_for:
            return _json(
                SearchResponse(message="you must provide the desired search").to_dict()
            )

        if search.filters.price_bottom == 0 and search.filters.price_top == 0:
            search.filters.price_top = DEFAULT_PRICE_TOP

        try:
            result = searcher.make_search(search)
        except NoHitsError:
            return _json(SearchResponse(message="none found").to_dict())
        except Exception:
            return _json(_error_body(500, "Internal Server Error"))

        return _json(SearchResponse(message="results", result=result).to_dict())

    return app


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


class _LoggingHandler(WSGIRequestHandler):
    """Sends access lines to a debug logger instead of standard error."""

    def log_message(self, format: str, *args: Any) -> None:
        _access_log.debug("%s - " + format, self.address_string(), *args)


def _split_address(address: str) -> Tuple[str, int]:
    if not address:
        return "", 0
    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise ValueError(f"address {address!r}: missing port in address")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_text) if port_text else 0
    except ValueError:
        raise ValueError(f"address {address!r}: invalid port") from None
    if not 0 <= port <= 65535:
        raise ValueError(f"address {address!r}: invalid port")
    return host, port


class SearchServer:
    """Serves the search application on the configured address."""

    def __init__(
        self,
        config: Config,
        searcher: _Searcher,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.log = log or logging.getLogger(__name__)
        self.app = create_app(searcher, config.service_name)
        self._server: Optional[WSGIServer] = None
        self._lock = threading.Lock()

    def _handler_class(self) -> type:
        timeout = self.config.read_timeout or None
        return type("_TimedHandler", (_LoggingHandler,), {"timeout": timeout})

    def run(self) -> None:
        """Listen on the configured address and serve until shut down."""
        fu = "Run()"
        try:
            host, port = _split_address(self.config.address)
            server = make_server(
                host,
                port,
                self.app,
                server_class=_ThreadingWSGIServer,
                handler_class=self._handler_class(),
            )
        except (OSError, ValueError):
            self.log.warning("listening error", extra={"op": _OP + fu})
            raise

        with self._lock:
            self._server = server
        try:
            server.serve_forever()
        finally:
            with self._lock:
                self._server = None
            server.server_close()

    def shutdown(self) -> None:
        """Stop serving; does nothing when the server is not running."""
        fu = "Shutdown()"
        with self._lock:
            server = self._server
        if server is None:
            return
        try:
            server.shutdown()
        except Exception:
            self.log.warning("shutdown error", extra={"op": _OP + fu})
            raise