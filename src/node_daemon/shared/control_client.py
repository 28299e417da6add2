from __future__ import annotations

from collections.abc import Sequence

import httpx
from pydantic import ValidationError

from .errors import RemoteRejection, TransportFailure
from .models import CommandReply, CommandRequest

COMMAND_PATH = "/daemon_command"
CLIENT_TIMEOUT = httpx.Timeout(connect=1.0, read=30.0, write=3.0, pool=10.0)


class ControlClient:
    """Short-lived client for a running daemon's control channel."""

    def __init__(
        self,
        ip: str,
        port: int,
        timeout: httpx.Timeout = CLIENT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = f"http://{ip}:{port}"
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def __enter__(self) -> ControlClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def send_command(self, tokens: Sequence[str]) -> CommandReply:
        body = CommandRequest(command=list(tokens))
        try:
            resp = self._client.post(COMMAND_PATH, json=body.model_dump())
            resp.raise_for_status()
        except httpx.HTTPError as err:
            raise TransportFailure(f"{self.base_url}: {err}") from err
        try:
            reply = CommandReply.model_validate(resp.json())
        except (ValueError, ValidationError) as err:
            raise TransportFailure(f"{self.base_url}: malformed reply") from err
        if not reply.accepted:
            raise RemoteRejection(reply.output)
        return reply
