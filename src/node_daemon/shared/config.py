from __future__ import annotations

import argparse
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from loguru import logger
from pydantic import ConfigDict, TypeAdapter, ValidationError

from .basic_dir import APP_NAME, DEFAULT_CONFIG_FILE, DEFAULT_LOG_FILE, default_data_dir, ensure_dir
from .errors import ConfigError

COMMAND = "daemon_command"
USAGE = f"{APP_NAME} [options|settings] [daemon_command...]"

_ADAPTERS: dict[type, TypeAdapter] = {
    str: TypeAdapter(str, config=ConfigDict(coerce_numbers_to_str=True)),
    int: TypeAdapter(int),
    bool: TypeAdapter(bool),
    list: TypeAdapter(list[str]),
}


class Source(Enum):
    DEFAULT = "default"
    FILE = "file"
    COMMAND_LINE = "command-line"


class LaunchState(Enum):
    FIRST_RUN = "first-run"
    SUPERVISED = "supervised"


@dataclass(frozen=True)
class Option:
    name: str
    type: type
    default: Any = None
    help: str = ""
    hidden: bool = False
    setting: bool = False

    @property
    def dest(self) -> str:
        return self.name.replace("-", "_")

    def coerce(self, value: Any) -> Any:
        try:
            return _ADAPTERS[self.type].validate_python(value)
        except ValidationError as err:
            raise ConfigError(f"invalid value for '{self.name}': {value!r}") from err


@dataclass(frozen=True)
class CommandLine:
    explicit: Mapping[str, Any]
    command: tuple[str, ...]
    argv: tuple[str, ...]


def build_options() -> tuple[Option, ...]:
    """All recognised options, visible and hidden, with declared types and defaults."""
    return (
        Option("help", bool, False, "Produce help message"),
        Option("version", bool, False, "Output version information"),
        Option("os-version", bool, False, "OS for which this executable was compiled"),
        Option("data-dir", str, str(default_data_dir().absolute()), "Specify data directory"),
        Option(
            "config-file",
            str,
            DEFAULT_CONFIG_FILE,
            "Specify configuration file.  This can either be an absolute path or a path relative to the data directory",
        ),
        Option("detach", bool, False, "Run as daemon"),
        Option(
            "log-file",
            str,
            DEFAULT_LOG_FILE,
            "Specify log file.  This can either be an absolute path or a path relative to the data directory",
            setting=True,
        ),
        Option("log-level", int, 0, "Verbosity of the log, 0 (least) to 4 (most)", setting=True),
        Option("rpc-bind-ip", str, "127.0.0.1", "IP the control channel listens on", setting=True),
        Option("rpc-bind-port", str, "18081", "Port the control channel listens on", setting=True),
        Option("run-as-service", bool, False, "true if running as a supervised service", hidden=True),
    )


class _Parser(argparse.ArgumentParser):
    def error(self, message: str):
        raise ConfigError(message)


def build_parser(options: Sequence[Option]) -> argparse.ArgumentParser:
    p = _Parser(prog=APP_NAME, usage=USAGE, add_help=False)
    visible = p.add_argument_group("Options")
    settings = p.add_argument_group("Settings")
    for opt in options:
        group = settings if opt.setting else visible
        help_text = argparse.SUPPRESS if opt.hidden else opt.help
        flag = f"--{opt.name}"
        if opt.type is bool:
            group.add_argument(flag, dest=opt.dest, action="store_true", default=None, help=help_text)
        else:
            group.add_argument(
                flag,
                dest=opt.dest,
                type=opt.type,
                default=None,
                metavar=opt.type.__name__.upper(),
                help=help_text,
            )
    p.add_argument(COMMAND, nargs="*", default=[], help=argparse.SUPPRESS)
    return p


def parse_command_line(
    parser: argparse.ArgumentParser, options: Sequence[Option], argv: Sequence[str]
) -> CommandLine:
    ns = parser.parse_intermixed_args(list(argv))
    explicit = {}
    for opt in options:
        value = getattr(ns, opt.dest, None)
        if value is not None:
            explicit[opt.name] = value
    command = tuple(getattr(ns, COMMAND, None) or ())
    return CommandLine(explicit=MappingProxyType(explicit), command=command, argv=tuple(argv))


class ResolvedConfig(Mapping[str, Any]):
    """Option values after default, config file and command line have been layered."""

    def __init__(
        self,
        values: Mapping[str, Any],
        sources: Mapping[str, Source],
        command: Sequence[str] = (),
        argv: Sequence[str] = (),
    ) -> None:
        self._values = MappingProxyType(dict(values))
        self._sources = MappingProxyType(dict(sources))
        self._command = tuple(command)
        self._argv = tuple(argv)

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ResolvedConfig({dict(self._values)!r}, command={self._command!r})"

    def get_arg(self, name: str) -> Any:
        try:
            return self._values[name]
        except KeyError:
            raise ConfigError(f"option '{name}' was never declared") from None

    def source(self, name: str) -> Source:
        return self._sources.get(name, Source.DEFAULT)

    @property
    def command(self) -> tuple[str, ...]:
        return self._command

    @property
    def argv(self) -> tuple[str, ...]:
        return self._argv

    @property
    def data_dir(self) -> Path:
        return Path(self._values["data-dir"])

    @property
    def launch_state(self) -> LaunchState:
        if self._values.get("run-as-service"):
            return LaunchState.SUPERVISED
        return LaunchState.FIRST_RUN


def _parse_lines(text: str, path: Path) -> list[tuple[str, str]]:
    pairs = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigError(f"failed to parse config file {path}: line {lineno}: expected key=value")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        pairs.append((key, value))
    return pairs


def load_config_file(path: Path, options: Sequence[Option]) -> dict[str, Any]:
    """Read ``key=value`` lines; blank lines and ``#`` comments are skipped."""
    settings = {opt.name: opt for opt in options if opt.setting}
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise ConfigError(f"failed to parse config file {path}: {err}") from err

    values: dict[str, Any] = {}
    for key, raw in _parse_lines(text, path):
        opt = settings.get(key)
        if opt is None:
            raise ConfigError(f"unrecognised option '{key}' in config file {path}")
        if key in values:
            raise ConfigError(f"option '{key}' given more than once in config file {path}")
        try:
            values[key] = opt.coerce(raw)
        except ConfigError as err:
            raise ConfigError(f"{err} in config file {path}") from err
    return values


def resolve(command_line: CommandLine, options: Sequence[Option]) -> ResolvedConfig:
    values = {opt.name: opt.default for opt in options}
    sources = dict.fromkeys(values, Source.DEFAULT)
    for name, value in command_line.explicit.items():
        values[name] = value
        sources[name] = Source.COMMAND_LINE

    data_dir = Path(values["data-dir"]).expanduser().absolute()
    values["data-dir"] = str(data_dir)
    try:
        ensure_dir(data_dir)
    except OSError as err:
        logger.error("Failed to create data directory {}: {}", data_dir, err)

    config_path = Path(values["config-file"]).expanduser()
    if not config_path.is_absolute():
        config_path = data_dir / config_path

    if config_path.exists():
        for name, value in load_config_file(config_path, options).items():
            if sources[name] is Source.COMMAND_LINE:
                continue
            values[name] = value
            sources[name] = Source.FILE

    return ResolvedConfig(values, sources, command=command_line.command, argv=command_line.argv)


def resolve_config(argv: Sequence[str], options: Sequence[Option] | None = None) -> ResolvedConfig:
    opts = tuple(options) if options is not None else build_options()
    command_line = parse_command_line(build_parser(opts), opts, argv)
    return resolve(command_line, opts)
