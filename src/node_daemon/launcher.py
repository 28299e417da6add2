from __future__ import annotations

import platform
import sys
from collections.abc import Callable, Sequence

from loguru import logger

from node_daemon import __version__
from node_daemon.daemon import Daemon
from node_daemon.runtime.forwarder import forward
from node_daemon.runtime.logging_setup import LoggingFacade, init_logging
from node_daemon.runtime.mode import ModeKind, select_mode
from node_daemon.runtime.strategies import Runnable, select_strategy
from node_daemon.runtime.utils import install_global_handlers
from node_daemon.shared.basic_dir import APP_NAME
from node_daemon.shared.config import CommandLine, ResolvedConfig, build_options, build_parser, parse_command_line, resolve
from node_daemon.shared.errors import ConfigError


def query_system_info(command_line: CommandLine) -> bool:
    """Print the requested environment details; True when anything was printed."""
    shown = False
    if command_line.explicit.get("version"):
        print(f"{APP_NAME} v{__version__}")
        shown = True
    if command_line.explicit.get("os-version"):
        print(f"OS: {platform.system()} {platform.release()} ({platform.machine()})")
        shown = True
    return shown


def main(
    argv: Sequence[str] | None = None,
    *,
    daemon_factory: Callable[[ResolvedConfig], Runnable] | None = None,
    facade: LoggingFacade | None = None,
) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        options = build_options()
        parser = build_parser(options)
        try:
            command_line = parse_command_line(parser, options, argv)
        except ConfigError as err:
            print(f"Error: {err}", file=sys.stderr)
            return 1

        if command_line.explicit.get("help"):
            print(parser.format_help())
            return 0
        if query_system_info(command_line):
            return 0

        try:
            config = resolve(command_line, options)
        except ConfigError as err:
            print(f"Error: {err}", file=sys.stderr)
            return 1

        mode = select_mode(config)
        if mode.kind is ModeKind.REMOTE_COMMAND:
            return forward(mode.tokens, config)

        facade = facade or LoggingFacade()
        target = init_logging(config, mode.interactive, facade)
        install_global_handlers()

        factory = daemon_factory or (lambda cfg: Daemon(cfg, facade))
        return select_strategy(mode, factory).launch(config, target)
    except Exception as err:
        logger.error("Exception in main! {}", err)
    return 1


def run() -> None:
    sys.exit(main())
