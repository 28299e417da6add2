"""Double-fork detach for posix hosts."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from node_daemon.shared.basic_dir import DAEMON_STDIO_FILE
from node_daemon.shared.errors import ForkFailure


def _fork_and_exit_parent() -> None:
    try:
        pid = os.fork()
    except OSError as err:
        raise ForkFailure(f"fork failed: {err}") from err
    if pid > 0:
        os._exit(0)


def _flush_std_streams() -> None:
    for stream in (sys.stdout, sys.stderr):
        if stream is not None:
            stream.flush()


def _redirect_stdio(output: Path) -> None:
    _flush_std_streams()
    devnull = os.open(os.devnull, os.O_RDONLY)
    out = os.open(output, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
    # fixed descriptors, the sys streams may be None or replaced
    try:
        os.dup2(devnull, 0)
        os.dup2(out, 1)
        os.dup2(out, 2)
    finally:
        os.close(devnull)
        os.close(out)


def detach(log_dir: Path) -> None:
    """Return only in the detached grandchild; every parent leaves with status 0.

    Logging sinks opened before the call stay valid since the descriptors are inherited.
    """
    _flush_std_streams()
    _fork_and_exit_parent()
    os.setsid()
    _fork_and_exit_parent()
    os.umask(0o022)
    os.chdir("/")
    _redirect_stdio(log_dir / DAEMON_STDIO_FILE)
