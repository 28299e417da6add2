from __future__ import annotations

import platform
from dataclasses import dataclass
from enum import Enum

from node_daemon.shared.config import LaunchState, ResolvedConfig


class ModeKind(Enum):
    REMOTE_COMMAND = "remote-command"
    FOREGROUND = "foreground"
    DETACH_POSIX = "detach-posix"
    DETACH_SERVICE = "detach-service"


@dataclass(frozen=True)
class RunMode:
    kind: ModeKind
    tokens: tuple[str, ...] = ()

    @property
    def interactive(self) -> bool:
        return self.kind is ModeKind.FOREGROUND


def select_mode(config: ResolvedConfig, system: str | None = None) -> RunMode:
    if config.command:
        return RunMode(ModeKind.REMOTE_COMMAND, config.command)
    if config.launch_state is LaunchState.SUPERVISED:
        return RunMode(ModeKind.DETACH_SERVICE)
    if config.get_arg("detach"):
        system = system or platform.system()
        if system == "Windows":
            return RunMode(ModeKind.DETACH_SERVICE)
        return RunMode(ModeKind.DETACH_POSIX)
    return RunMode(ModeKind.FOREGROUND)
