from __future__ import annotations

import os
import sys
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path

from loguru import logger

from node_daemon.shared.basic_dir import APP_NAME, DEFAULT_LOG_FOLDER, default_log_file
from node_daemon.shared.config import ResolvedConfig

LEVEL_MIN = 0
LEVEL_MAX = 4

# loguru level numbers shown at each verbosity
_THRESHOLDS = {0: 20, 1: 10, 2: 5, 3: 3, 4: 1}

FORMAT = (
    "<blue>{time:YYYY-MM-DD HH:mm:ss}</blue> | "
    "<level>{level: <7}</level> | "
    "<magenta>{name}</magenta>:<cyan>{function}</cyan> | "
    "{message}"
)


@dataclass(frozen=True)
class LogTarget:
    path: Path
    directory: Path
    level: int
    console: bool = False


class LoggingFacade:
    """Owns the process-wide loguru sinks and the verbosity they filter on.

    Created once by the launcher and handed to whoever needs to change the
    level later. ``configure`` only takes effect the first time.
    """

    def __init__(self, level: int = LEVEL_MIN) -> None:
        self.level = level
        self.target: LogTarget | None = None
        self._sink_ids: list[int] = []

    @property
    def configured(self) -> bool:
        return self.target is not None

    def _filter(self, record) -> bool:
        return record["level"].no >= _THRESHOLDS[self.level]

    def set_level(self, level: int) -> bool:
        if level < LEVEL_MIN or level > LEVEL_MAX:
            logger.warning("Wrong log level value: {}", level)
            return False
        if level != self.level:
            self.level = level
            logger.info("LOG_LEVEL set to {}", level)
        return True

    def _add_file_sink(self, path: Path) -> int:
        return logger.add(
            str(path),
            level=0,
            format=FORMAT,
            filter=self._filter,
            encoding="utf-8",
            colorize=False,
            enqueue=False,
            backtrace=False,
            diagnose=False,
        )

    def _open_file_sink(self, target: LogTarget) -> LogTarget:
        for candidate in (target.path, default_log_file()):
            try:
                self._sink_ids.append(self._add_file_sink(candidate))
            except OSError as err:
                logger.warning("Cannot open log file {}: {}", candidate, err)
                continue
            return replace(target, path=candidate, directory=candidate.parent)
        # both taken, a fresh file in the temp dir is always creatable
        fd, name = tempfile.mkstemp(prefix=f"{APP_NAME}-", suffix=".log", dir=DEFAULT_LOG_FOLDER)
        os.close(fd)
        fallback = Path(name)
        self._sink_ids.append(self._add_file_sink(fallback))
        return replace(target, path=fallback, directory=fallback.parent)

    def configure(self, target: LogTarget, requested_level: int | None = None) -> LogTarget:
        if self.target is not None:
            return self.target

        logger.remove()
        target = self._open_file_sink(target)
        if target.console:
            self._sink_ids.append(
                logger.add(sys.stdout, level=0, format=FORMAT, filter=self._filter, enqueue=False, diagnose=False)
            )

        if requested_level is not None:
            self.set_level(requested_level)
        self.target = replace(target, level=self.level)
        return self.target

    def shutdown(self) -> None:
        for sink_id in self._sink_ids:
            logger.remove(sink_id)
        self._sink_ids.clear()
        self.target = None


def resolve_log_path(config: ResolvedConfig) -> Path:
    path = Path(config.get_arg("log-file")).expanduser()
    if not path.is_absolute():
        path = config.data_dir / path
    try:
        usable = path.parent.is_dir()
    except OSError:
        usable = False
    if not usable:
        path = default_log_file()
    return path


def init_logging(config: ResolvedConfig, is_foreground: bool, facade: LoggingFacade) -> LogTarget:
    path = resolve_log_path(config)
    target = LogTarget(path=path, directory=path.parent, level=facade.level, console=is_foreground)
    return facade.configure(target, requested_level=config.get_arg("log-level"))
