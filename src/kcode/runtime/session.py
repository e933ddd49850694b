"""Session wiring: one command stream over a configured backend."""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock
from types import TracebackType

from kcode.commands.executor import CommandExecutor
from kcode.commands.parser import CommandParser
from kcode.commands.registry import CommandRegistry
from kcode.commands.types import CommandExecutionResult
from kcode.config import KcodeConfig
from kcode.machine.status_cache import StatusCache
from kcode.runtime.cancellation import CancellationToken
from kcode.transport.base import Transport
from kcode.transport.factory import build_transport

_LOGGER = logging.getLogger(__name__)


class KcodeSession:
    """Processes one input line to completion before accepting the next."""

    def __init__(
        self,
        config: KcodeConfig,
        *,
        transport: Transport | None = None,
        observe_status: bool = True,
    ) -> None:
        """Build registry, parser, executor and status cache from config.

        Args:
            config: Root config.
            transport: Optional backend override; defaults to the configured one.
            observe_status: Whether to run the background status cache.

        Raises:
            ConfigurationError: If the command vocabulary or transport is invalid.
        """
        self._config = config
        self._lane = Lock()
        self.registry = CommandRegistry.from_config(config)
        self.parser = CommandParser(self.registry)
        self.transport = transport or build_transport(config)
        self.status_cache = (
            StatusCache(self.transport, endpoint=config.transport.status_endpoint)
            if observe_status
            else None
        )
        self.executor = CommandExecutor(
            registry=self.registry,
            transport=self.transport,
            status_cache=self.status_cache,
            log_file=Path(config.app.log_file),
            timeout_seconds=config.transport.timeout_ms / 1000,
            status_endpoint=config.transport.status_endpoint,
        )

    @property
    def config(self) -> KcodeConfig:
        """Config the session was built from."""
        return self._config

    def start(self) -> None:
        """Start background status observation."""
        if self.status_cache is not None:
            self.status_cache.start()

    def close(self) -> None:
        """Stop background status observation."""
        if self.status_cache is not None:
            self.status_cache.stop()

    def __enter__(self) -> KcodeSession:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def handle_input(
        self, text: str, *, cancel: CancellationToken | None = None
    ) -> CommandExecutionResult | None:
        """Parse and execute one line under the session lane.

        Args:
            text: Raw operator input.
            cancel: Optional cancellation token for this command.

        Returns:
            Execution result, or None for blank input.
        """
        with self._lane:
            command = self.parser.parse(text)
            if command is None:
                return None
            _LOGGER.info("session.command kind=%s name=%s", command.kind, command.name)
            return self.executor.execute(command, cancel=cancel)
