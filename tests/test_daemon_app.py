import pytest
from fastapi.testclient import TestClient

from node_daemon import __version__
from node_daemon.daemon import CommandExecutor, Daemon, create_app
from node_daemon.shared.control_client import COMMAND_PATH
from node_daemon.shared.errors import AddressParseError


class StubDaemon:
    def __init__(self):
        self.stopped = False

    def status(self):
        return {"pid": 1, "uptime": 7}

    def stop(self):
        self.stopped = True


@pytest.fixture
def daemon():
    return StubDaemon()


@pytest.fixture
def client(daemon, facade):
    return TestClient(create_app(CommandExecutor(daemon, facade)))


def _send(client, *tokens):
    resp = client.post(COMMAND_PATH, json={"command": list(tokens)})
    assert resp.status_code == 200
    return resp.json()


def test_status(client):
    body = _send(client, "status")
    assert body["accepted"] is True
    assert "uptime: 7" in body["output"]


def test_version(client):
    assert _send(client, "version")["output"].endswith(__version__)


def test_help_lists_commands(client):
    out = _send(client, "help")["output"]
    for name in ("exit", "help", "set_log", "status", "version"):
        assert name in out


def test_unknown_and_empty_commands_rejected(client):
    assert _send(client, "frobnicate")["accepted"] is False
    assert _send(client)["accepted"] is False


def test_set_log(client, facade):
    assert _send(client, "set_log", "2")["accepted"] is True
    assert facade.level == 2
    assert _send(client, "set_log", "9")["accepted"] is False
    assert facade.level == 2
    assert _send(client, "set_log")["accepted"] is False


def test_exit_stops_daemon(client, daemon):
    assert _send(client, "exit")["accepted"] is True
    assert daemon.stopped


def test_bad_body_is_422(client):
    assert client.post(COMMAND_PATH, json={"cmd": "status"}).status_code == 422


def test_daemon_status_and_stop_before_run(make_config, facade):
    d = Daemon(make_config("--rpc-bind-port", "18090"), facade)
    st = d.status()
    assert st["address"] == "127.0.0.1:18090"
    assert st["launch_state"] == "first-run"
    d.stop()
    server = d.build_server()
    assert server.config.port == 18090


def test_daemon_rejects_bad_address(make_config, facade):
    with pytest.raises(AddressParseError):
        Daemon(make_config("--rpc-bind-ip", "nowhere"), facade)
