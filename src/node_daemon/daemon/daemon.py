from __future__ import annotations

import os
import time
from typing import Any

import uvicorn
from loguru import logger

from node_daemon.runtime.forwarder import parse_address
from node_daemon.runtime.logging_setup import LoggingFacade
from node_daemon.runtime.utils import bridge_uvicorn_logs
from node_daemon.shared.config import ResolvedConfig

from .app import CommandExecutor, create_app


class Daemon:
    """Long-running service process serving the control channel."""

    def __init__(self, config: ResolvedConfig, facade: LoggingFacade) -> None:
        self._config = config
        self._facade = facade
        self._address = parse_address(config.get_arg("rpc-bind-ip"), config.get_arg("rpc-bind-port"))
        self._server: uvicorn.Server | None = None
        self._stop_requested = False
        self._started_at = time.monotonic()

    def build_server(self) -> uvicorn.Server:
        app = create_app(CommandExecutor(self, self._facade))
        server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=self._address.ip,
                port=self._address.port,
                server_header=False,
                access_log=False,
                log_config=None,
            )
        )
        return server

    def run(self) -> int:
        bridge_uvicorn_logs()
        self._server = self.build_server()
        if self._stop_requested:
            self._server.should_exit = True
        logger.info("Control channel listening on {}", self._address)
        try:
            self._server.run()
        except SystemExit as exc:
            # uvicorn exits the process when it cannot bind
            logger.error("Control channel failed to start on {}", self._address)
            return int(exc.code or 1)
        logger.info("Daemon stopped")
        return 0

    def stop(self) -> None:
        self._stop_requested = True
        if self._server is not None:
            self._server.should_exit = True

    def status(self) -> dict[str, Any]:
        return {
            "pid": os.getpid(),
            "uptime": int(time.monotonic() - self._started_at),
            "address": str(self._address),
            "log_level": self._facade.level,
            "launch_state": self._config.launch_state.value,
            "data_dir": str(self._config.data_dir),
        }
