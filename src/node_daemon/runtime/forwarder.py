from __future__ import annotations

import ipaddress
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from node_daemon.shared.config import ResolvedConfig
from node_daemon.shared.control_client import ControlClient
from node_daemon.shared.errors import AddressParseError, RemoteRejection, TransportFailure

PORT_MAX = 0xFFFF


@dataclass(frozen=True)
class ControlAddress:
    host: int
    port: int

    @property
    def ip(self) -> str:
        return str(ipaddress.IPv4Address(self.host))

    def __str__(self) -> str:
        return f"{self.ip}:{self.port}"


def parse_address(ip: str, port: str) -> ControlAddress:
    try:
        host = int(ipaddress.IPv4Address(str(ip).strip()))
    except ValueError:
        raise AddressParseError(f"Invalid IP: {ip}") from None
    text = str(port).strip()
    if not text.isdigit() or int(text) > PORT_MAX:
        raise AddressParseError(f"Invalid port: {port}")
    return ControlAddress(host=host, port=int(text))


def _default_client(address: ControlAddress) -> ControlClient:
    return ControlClient(address.ip, address.port)


def forward(
    tokens: Sequence[str],
    config: ResolvedConfig,
    client_factory: Callable[[ControlAddress], ControlClient] = _default_client,
) -> int:
    """Send a one-shot command to the running daemon and map the outcome to an exit code."""
    try:
        address = parse_address(config.get_arg("rpc-bind-ip"), config.get_arg("rpc-bind-port"))
    except AddressParseError as err:
        print(err, file=sys.stderr)
        return 1

    with client_factory(address) as client:
        try:
            reply = client.send_command(tokens)
        except RemoteRejection as err:
            print("Unknown command", file=sys.stderr)
            if str(err):
                print(err, file=sys.stderr)
            return 1
        except TransportFailure as err:
            print(f"Unknown command: daemon unreachable at {address} ({err})", file=sys.stderr)
            return 1
    if reply.output:
        print(reply.output)
    return 0
