"""Startup sequence: configuration, connection, readiness.

The sequence runs once per process before the HTTP server accepts requests:

    NOT_STARTED --config ok--> CONNECTING --connect ok--> READY

Any failure moves the sequencer to FAILED, which is terminal. `run_or_exit`
turns either failure into a logged error and exit status 1.
"""
import logging
import sys
from enum import Enum
from typing import Callable, Mapping, Optional

from staffdb.config import Settings, load_configuration
from staffdb.connect_db import ConnectionHandle, connect
from staffdb.errors import ConfigError, ConnectError

logger = logging.getLogger(__name__)


class ReadinessState(str, Enum):
    NOT_STARTED = "not_started"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"


_TRANSITIONS = {
    ReadinessState.NOT_STARTED: {ReadinessState.CONNECTING, ReadinessState.FAILED},
    ReadinessState.CONNECTING: {ReadinessState.READY, ReadinessState.FAILED},
    ReadinessState.READY: set(),
    ReadinessState.FAILED: set(),
}


class BootstrapSequencer:
    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        loader: Callable[..., Settings] = load_configuration,
        connector: Callable[[Settings], ConnectionHandle] = connect,
    ):
        self._environ = environ
        self._loader = loader
        self._connector = connector
        self.state = ReadinessState.NOT_STARTED
        self.settings: Optional[Settings] = None
        self.handle: Optional[ConnectionHandle] = None

    def _advance(self, new_state: ReadinessState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"invalid readiness transition {self.state.value} -> {new_state.value}")
        logger.debug("Readiness %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def load_configuration(self) -> Settings:
        try:
            settings = self._loader(self._environ)
        except Exception:
            self._advance(ReadinessState.FAILED)
            raise
        self.settings = settings
        self._advance(ReadinessState.CONNECTING)
        return settings

    def connect(self, settings: Settings) -> ConnectionHandle:
        logger.info("Connecting to %s", settings.redacted_uri)
        try:
            handle = self._connector(settings)
        except Exception:
            self._advance(ReadinessState.FAILED)
            raise
        self.handle = handle
        self._advance(ReadinessState.READY)
        return handle

    def run(self, on_ready: Callable[[ConnectionHandle], None]) -> ConnectionHandle:
        """Load configuration, connect, then call `on_ready` once.

        Raises ConfigError or ConnectError; `on_ready` is not called in
        either case. A sequencer can only be run once.
        """
        if self.state is not ReadinessState.NOT_STARTED:
            raise RuntimeError("bootstrap sequence has already run")
        settings = self.load_configuration()
        handle = self.connect(settings)
        on_ready(handle)
        return handle

    def run_or_exit(self, on_ready: Callable[[ConnectionHandle], None]) -> None:
        """Like `run`, but log the cause and exit with status 1 on failure.

        The handle is closed once `on_ready` returns.
        """
        try:
            self.run(on_ready)
        except ConfigError as e:
            logger.error("Configuration error: %s", e)
            sys.exit(1)
        except ConnectError as e:
            logger.error("MongoDB connection error: %s", e.cause)
            sys.exit(1)
        finally:
            if self.handle is not None:
                self.handle.close()
