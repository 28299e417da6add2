import sys
from pathlib import Path

import pytest

from node_daemon.runtime.logging_setup import LoggingFacade
from node_daemon.shared.config import resolve_config


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def make_config(data_dir):
    """Resolve a config rooted in the per-test data dir."""

    def _make(*argv: str):
        return resolve_config(["--data-dir", str(data_dir), *argv])

    return _make


@pytest.fixture
def facade():
    f = LoggingFacade()
    yield f
    f.shutdown()


@pytest.fixture(autouse=True)
def _restore_excepthook(monkeypatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)


class FakeDaemon:
    def __init__(self, config, status: int = 0):
        self.config = config
        self.status_code = status
        self.ran = False
        self.stopped = False

    def run(self) -> int:
        self.ran = True
        return self.status_code

    def stop(self) -> None:
        self.stopped = True


@pytest.fixture
def fake_daemons():
    """Factory recording every daemon it builds."""
    built: list[FakeDaemon] = []

    def _factory(config, status: int = 0):
        d = FakeDaemon(config, status)
        built.append(d)
        return d

    _factory.built = built
    return _factory
