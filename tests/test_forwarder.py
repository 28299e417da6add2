import json

import httpx
import pytest

from node_daemon.runtime.forwarder import ControlAddress, forward, parse_address
from node_daemon.shared.control_client import COMMAND_PATH, ControlClient
from node_daemon.shared.errors import AddressParseError, RemoteRejection, TransportFailure


def _client_factory(handler, seen=None):
    def _factory(address: ControlAddress) -> ControlClient:
        if seen is not None:
            seen.append(address)
        return ControlClient(address.ip, address.port, transport=httpx.MockTransport(handler))

    return _factory


def _reply(accepted: bool, output: str = ""):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"accepted": accepted, "output": output})

    return handler


def test_parse_address():
    addr = parse_address("127.0.0.1", "18081")
    assert addr.host == 0x7F000001
    assert addr.port == 18081
    assert str(addr) == "127.0.0.1:18081"


@pytest.mark.parametrize("ip", ["", "localhost", "256.1.1.1", "1.2.3"])
def test_parse_address_bad_ip(ip):
    with pytest.raises(AddressParseError, match="Invalid IP"):
        parse_address(ip, "18081")


@pytest.mark.parametrize("port", ["", "abc", "-1", "65536"])
def test_parse_address_bad_port(port):
    with pytest.raises(AddressParseError, match="Invalid port"):
        parse_address("127.0.0.1", port)


def test_accepted_command_exits_zero(make_config, capsys):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"accepted": True, "output": "height: 10"})

    seen = []
    code = forward(("status", "now"), make_config(), client_factory=_client_factory(handler, seen))
    assert code == 0
    assert seen == [ControlAddress(0x7F000001, 18081)]
    assert requests[0].url.path == COMMAND_PATH
    assert json.loads(requests[0].content) == {"command": ["status", "now"]}
    assert "height: 10" in capsys.readouterr().out


def test_rejected_command_exits_one(make_config, capsys):
    code = forward(("status",), make_config(), client_factory=_client_factory(_reply(False)))
    assert code == 1
    assert "Unknown command" in capsys.readouterr().err


def test_transport_failure_exits_one(make_config, capsys):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    code = forward(("status",), make_config(), client_factory=_client_factory(handler))
    assert code == 1
    assert "unreachable" in capsys.readouterr().err


def test_malformed_address_makes_no_request(make_config, capsys):
    def factory(address):
        raise AssertionError("no client expected")

    code = forward(("status",), make_config("--rpc-bind-port", "http"), client_factory=factory)
    assert code == 1
    assert "Invalid port: http" in capsys.readouterr().err


def test_client_raises_on_rejection_and_bad_replies():
    with ControlClient("127.0.0.1", 1, transport=httpx.MockTransport(_reply(False, "nope"))) as client:
        with pytest.raises(RemoteRejection, match="nope"):
            client.send_command(["x"])

    def server_error(request):
        return httpx.Response(500)

    with ControlClient("127.0.0.1", 1, transport=httpx.MockTransport(server_error)) as client:
        with pytest.raises(TransportFailure):
            client.send_command(["x"])

    def garbage(request):
        return httpx.Response(200, text="not json")

    with ControlClient("127.0.0.1", 1, transport=httpx.MockTransport(garbage)) as client:
        with pytest.raises(TransportFailure, match="malformed"):
            client.send_command(["x"])
