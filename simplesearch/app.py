"""Application lifecycle: start-up, signal handling and shutdown."""

from __future__ import annotations

import logging
import os
import queue
import signal
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from .config import DEFAULT_CONFIG_PATH, Config, load_config
from .logger import new_logger
from .server import SearchServer
from .service import SimpleSearchService

_OP = "app."

# Each setting is read from the environment variable of the same name in upper case.
_ENV_KEYS = ("env", "address", "es_address", "es_username", "es_password")

_SIGNALS = (signal.SIGTERM, signal.SIGINT)


def read_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Collect the settings the application reads from the environment."""
    source = os.environ if environ is None else environ
    return {key: source.get(key.upper(), "") for key in _ENV_KEYS}


class App:
    """The whole application: the search server and its lifecycle."""

    def __init__(self, server: Any, log: logging.Logger, config: Config) -> None:
        self.server = server
        self.log = log
        self.config = config

    @classmethod
    def create(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        config_path: Union[str, Path] = DEFAULT_CONFIG_PATH,
    ) -> "App":
        """Load configuration and build the logger, service and server."""
        envs = read_env(environ)
        config = load_config(envs, config_path)
        log = new_logger(envs)
        service = SimpleSearchService.from_config(config, log)
        server = SearchServer(config, service, log)
        return cls(server, log, config)

    def run(self) -> None:
        """Serve until the server fails or SIGTERM/SIGINT arrives, then shut down."""
        fu = "Run()"
        events: "queue.SimpleQueue[Any]" = queue.SimpleQueue()

        previous = {}
        for sig in _SIGNALS:
            try:
                previous[sig] = signal.signal(
                    sig, lambda signum, frame: events.put(signum)
                )
            except ValueError:
                break

        def serve() -> None:
            try:
                self.server.run()
            except Exception as exc:
                events.put(exc)

        threading.Thread(target=serve, name="simplesearch-server", daemon=True).start()

        try:
            event = self._wait(events)
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler if handler is not None else signal.SIG_DFL)

        if isinstance(event, BaseException):
            self.log.error(
                "will shutdown, because an error occurred while running",
                extra={"op": _OP + fu, "error": str(event)},
            )
        else:
            self.log.info("signaled to shutdown", extra={"op": _OP + fu})

        self._shutdown()

    @staticmethod
    def _wait(events: "queue.SimpleQueue[Any]") -> Any:
        while True:
            try:
                return events.get(timeout=0.5)
            except queue.Empty:
                continue

    def _shutdown(self) -> None:
        fu = "shutdown()"
        try:
            self.server.shutdown()
        except Exception as exc:
            self.log.error(
                "error occurred while trying to shutdown gracefully",
                extra={"op": _OP + fu, "error": str(exc)},
            )
            raise


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the application from the process environment."""
    App.create().run()
    return 0