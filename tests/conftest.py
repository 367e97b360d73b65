# tests/conftest.py
import asyncio
from typing import Any

import pytest

from orka_client.api.request import Request


class RecordingConnection:
    """Stands in for OrkaConnection: records requests, replays canned bodies."""

    def __init__(self, responses: dict[str, Any] | None = None, delay: float = 0) -> None:
        self.responses = responses or {}
        self.delay = delay
        self.requests: list[Request] = []

    async def send(self, request: Request) -> dict[str, Any]:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.get(request.path, {})
        if isinstance(response, Exception):
            raise response
        return response

    def calls(self, path: str) -> int:
        return sum(1 for r in self.requests if r.path == path)


@pytest.fixture
def conn():
    return RecordingConnection()


@pytest.fixture
def vm_payload():
    return {
        "virtual_machine_id": "a1b2c3",
        "virtual_machine_name": "ci-runner",
        "node_location": "macpro-1",
        "node_status": "READY",
        "virtual_machine_ip": "10.221.188.11",
        "vnc_port": "6000",
        "screen_sharing_port": "5900",
        "ssh_port": "8822",
        "cpu": 6,
        "vcpu": 6,
        "RAM": "16G",
        "base_image": "monterey-base.img",
        "image": "ci-runner-config",
        "configuration_template": "default",
        "vm_status": "running",
        "io_boost": True,
        "use_saved_state": False,
        "reserved_ports": [
            {"host_port": 2222, "guest_port": 22, "protocol": "tcp"},
            {"host_port": 5900, "guest_port": 5900, "protocol": "tcp"},
        ],
        "creation_timestamp": "2022-03-14T09:26:53.000Z",
        "owner": "jane@example.com",
    }
