from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any, Protocol

from fastapi import FastAPI
from loguru import logger

from node_daemon import __version__
from node_daemon.runtime.logging_setup import LEVEL_MAX, LEVEL_MIN, LoggingFacade
from node_daemon.shared.basic_dir import APP_NAME
from node_daemon.shared.control_client import COMMAND_PATH
from node_daemon.shared.models import CommandReply, CommandRequest


class DaemonHandle(Protocol):
    def status(self) -> dict[str, Any]: ...

    def stop(self) -> None: ...


class CommandExecutor:
    """Runs control commands received over the control channel."""

    def __init__(self, daemon: DaemonHandle, facade: LoggingFacade) -> None:
        self._daemon = daemon
        self._facade = facade
        self._handlers: dict[str, tuple[Callable[[list[str]], CommandReply], str]] = {
            "help": (self._help, "Show this help"),
            "version": (self._version, "Show daemon version"),
            "status": (self._status, "Show daemon status"),
            "set_log": (self._set_log, f"set_log <level>: change log verbosity ({LEVEL_MIN}-{LEVEL_MAX})"),
            "exit": (self._exit, "Stop the daemon"),
        }

    def execute(self, tokens: Sequence[str]) -> CommandReply:
        if not tokens:
            return CommandReply(accepted=False, output="empty command")
        name, *args = tokens
        entry = self._handlers.get(name)
        if entry is None:
            logger.debug("Rejected unknown command: {}", name)
            return CommandReply(accepted=False, output=f"unknown command '{name}'")
        handler, _ = entry
        return handler(args)

    def _help(self, args: list[str]) -> CommandReply:
        lines = [f"{name:<10} {text}" for name, (_, text) in sorted(self._handlers.items())]
        return CommandReply(accepted=True, output="\n".join(lines))

    def _version(self, args: list[str]) -> CommandReply:
        return CommandReply(accepted=True, output=f"{APP_NAME} v{__version__}")

    def _status(self, args: list[str]) -> CommandReply:
        st = self._daemon.status()
        return CommandReply(accepted=True, output="\n".join(f"{k}: {v}" for k, v in st.items()))

    def _set_log(self, args: list[str]) -> CommandReply:
        if len(args) != 1 or not args[0].lstrip("-").isdigit():
            return CommandReply(accepted=False, output="usage: set_log <level>")
        if not self._facade.set_level(int(args[0])):
            return CommandReply(accepted=False, output=f"log level must be between {LEVEL_MIN} and {LEVEL_MAX}")
        return CommandReply(accepted=True, output=f"log level is {self._facade.level}")

    def _exit(self, args: list[str]) -> CommandReply:
        logger.info("Stop requested over control channel")
        self._daemon.stop()
        return CommandReply(accepted=True, output="stopping")


def create_app(executor: CommandExecutor) -> FastAPI:
    app = FastAPI(title=APP_NAME, version=__version__, docs_url=None, redoc_url=None)

    @app.post(COMMAND_PATH, response_model=CommandReply)
    def daemon_command(body: CommandRequest) -> CommandReply:
        return executor.execute(body.command)

    return app
