from __future__ import annotations

import importlib
import os
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any, Protocol

from loguru import logger

from node_daemon import __version__
from node_daemon.shared.basic_dir import APP_NAME, DISPLAY_NAME
from node_daemon.shared.config import LaunchState, ResolvedConfig
from node_daemon.shared.errors import InstallFailure, ServiceError, StartFailure

from . import posix_fork
from .logging_setup import LogTarget
from .mode import ModeKind, RunMode

SERVICE_NAME = "NodeDaemonService"
SERVICE_MARKER = "--run-as-service"


class Runnable(Protocol):
    def run(self) -> int: ...

    def stop(self) -> None: ...


DaemonFactory = Callable[[ResolvedConfig], Runnable]


class ServiceInstallOutcome(Enum):
    NOT_ATTEMPTED = "not-attempted"
    INSTALLED_AND_STARTED = "installed-and-started"
    INSTALLED_NOT_STARTED = "installed-not-started"


class LaunchStrategy(ABC):
    def __init__(self, daemon_factory: DaemonFactory) -> None:
        self._daemon_factory = daemon_factory

    @abstractmethod
    def launch(self, config: ResolvedConfig, log_target: LogTarget) -> int: ...

    def _build_daemon(self, config: ResolvedConfig) -> Runnable:
        logger.info("{} v{}", APP_NAME, __version__)
        return self._daemon_factory(config)


class ForegroundStrategy(LaunchStrategy):
    def launch(self, config: ResolvedConfig, log_target: LogTarget) -> int:
        return self._build_daemon(config).run()


class PosixForkStrategy(LaunchStrategy):
    def launch(self, config: ResolvedConfig, log_target: LogTarget) -> int:
        posix_fork.detach(log_target.directory)
        logger.info("Detached into background, pid {}", os.getpid())
        return self._build_daemon(config).run()


def service_arguments(argv: Sequence[str]) -> str:
    """Command line the service manager uses to relaunch this process under supervision."""
    args = ["-m", "node_daemon", *argv]
    if SERVICE_MARKER not in args:
        args.append(SERVICE_MARKER)
    return subprocess.list2cmdline(args)


def _default_manager() -> Any:
    module = importlib.import_module("node_daemon.shared.service_manager")
    return module.WindowsServiceManager


class WindowsServiceStrategy(LaunchStrategy):
    def __init__(
        self,
        daemon_factory: DaemonFactory,
        manager: Any | None = None,
        service_name: str = SERVICE_NAME,
    ) -> None:
        super().__init__(daemon_factory)
        self._manager = manager
        self.service_name = service_name

    @property
    def manager(self) -> Any:
        if self._manager is None:
            self._manager = _default_manager()
        return self._manager

    def install_and_start(self, arguments: str) -> ServiceInstallOutcome:
        try:
            self.manager.install(
                self.service_name,
                arguments,
                display_name=DISPLAY_NAME,
                description=f"{DISPLAY_NAME} background service",
            )
        except InstallFailure as err:
            logger.error("Service install failed: {}", err)
            return ServiceInstallOutcome.NOT_ATTEMPTED

        try:
            self.manager.start(self.service_name)
        except StartFailure as err:
            logger.error("Service start failed, uninstalling: {}", err)
            try:
                self.manager.remove(self.service_name)
            except ServiceError as remove_err:
                logger.error("Service rollback failed: {}", remove_err)
            if self.manager.exists(self.service_name):
                logger.warning("Service {} is still registered after rollback, remove it manually", self.service_name)
            return ServiceInstallOutcome.INSTALLED_NOT_STARTED

        logger.info("Service {} installed and started", self.service_name)
        return ServiceInstallOutcome.INSTALLED_AND_STARTED

    def launch(self, config: ResolvedConfig, log_target: LogTarget) -> int:
        if config.launch_state is LaunchState.SUPERVISED:
            daemon = self._build_daemon(config)
            self.manager.run_as_service(
                self.service_name,
                on_start=daemon.run,
                on_stop=daemon.stop,
                display_name=DISPLAY_NAME,
            )
            return 0

        outcome = self.install_and_start(service_arguments(config.argv))
        return 0 if outcome is ServiceInstallOutcome.INSTALLED_AND_STARTED else 1


_STRATEGIES: dict[ModeKind, type[LaunchStrategy]] = {
    ModeKind.FOREGROUND: ForegroundStrategy,
    ModeKind.DETACH_POSIX: PosixForkStrategy,
    ModeKind.DETACH_SERVICE: WindowsServiceStrategy,
}


def select_strategy(mode: RunMode, daemon_factory: DaemonFactory, manager: Any | None = None) -> LaunchStrategy:
    try:
        strategy_cls = _STRATEGIES[mode.kind]
    except KeyError:
        raise ValueError(f"no launch strategy for {mode.kind.value}") from None
    if strategy_cls is WindowsServiceStrategy:
        return WindowsServiceStrategy(daemon_factory, manager=manager)
    return strategy_cls(daemon_factory)
