"""
ServiceWatch - Shared Test Fixtures

A scripted in-memory gateway that records every call and tracks how many
calls of each kind are in flight at once.
"""

import asyncio
import copy
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from servicewatch.api.gateway import ApplicationError, AuthorizationError, TransportError


class FakeGateway:
    """
    Stand-in for AsyncGatewayClient.

    Every call returns a fresh deep copy of the scripted payload, so object
    identity between two results means the second came from the cache.
    """

    def __init__(
        self,
        services: Optional[List[Dict[str, Any]]] = None,
        details: Optional[Dict[Any, Dict[str, Any]]] = None,
        ports: Optional[Dict[Tuple[Any, str], Any]] = None,
        users: Optional[Dict[Tuple[Any, str], Any]] = None,
        delay: float = 0.01
    ):
        self.services = services or []
        self.details = details or {}
        self.ports = ports or {}
        self.users = users or {}
        self.delay = delay
        self.failures: Dict[Tuple, Exception] = {}
        self.calls: List[Tuple] = []
        self.in_flight: Dict[str, int] = defaultdict(int)
        self.max_in_flight: Dict[str, int] = defaultdict(int)
        self.deleted: Set[Any] = set()
        self.renames: List[Tuple] = []

    def fail(self, call: Tuple, error: Optional[Exception] = None) -> None:
        """Make one call signature raise instead of answering."""
        self.failures[call] = error or TransportError("connection refused")

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)

    async def _answer(self, call: Tuple, payload: Any) -> Any:
        kind = call[0]
        self.calls.append(call)
        self.in_flight[kind] += 1
        self.max_in_flight[kind] = max(self.max_in_flight[kind], self.in_flight[kind])
        try:
            await asyncio.sleep(self.delay)
            if call in self.failures:
                raise self.failures[call]
            if payload is None:
                raise ApplicationError(f"{kind} not found")
            return copy.deepcopy(payload)
        finally:
            self.in_flight[kind] -= 1

    async def get_services(self):
        return await self._answer(("services",), self.services)

    async def get_service_detail(self, service_id, window_days=7):
        return await self._answer(
            ("service", service_id, window_days), self.details.get(service_id)
        )

    async def get_port_detail(self, service_id, tag, window_days=7):
        return await self._answer(
            ("port", service_id, tag, window_days), self.ports.get((service_id, tag))
        )

    async def get_user_detail(self, service_id, email, window_days=7):
        return await self._answer(
            ("user", service_id, email, window_days), self.users.get((service_id, email))
        )

    async def delete_service(self, service_id):
        await self._answer(("delete", service_id), True)
        self.deleted.add(service_id)

    async def update_service_custom_name(self, service_id, custom_name):
        await self._answer(("rename-service", service_id), True)
        self.renames.append(("service", service_id, custom_name))

    async def update_inbound_custom_name(self, service_id, tag, custom_name):
        await self._answer(("rename-inbound", service_id, tag), True)
        self.renames.append(("inbound", service_id, tag, custom_name))

    async def update_client_custom_name(self, service_id, email, custom_name):
        await self._answer(("rename-client", service_id, email), True)
        self.renames.append(("client", service_id, email, custom_name))


def build_dashboard_gateway() -> FakeGateway:
    """
    Two services: service 1 with two ports and one client, service 2 with
    one port and two clients.
    """
    services = [
        {"id": 1, "name": "edge-tokyo", "custom_name": "Tokyo"},
        {"id": 2, "name": "edge-frankfurt", "custom_name": ""},
    ]
    details = {
        1: {
            "id": 1,
            "total_up": 1000,
            "total_down": 4000,
            "inbound_traffics": [{"tag": "tag-a", "up": 600}, {"tag": "tag-b", "up": 400}],
            "client_traffics": [{"email": "alice@example.com", "up": 1000}],
        },
        2: {
            "id": 2,
            "total_up": 50,
            "total_down": 70,
            "inbound_traffics": [{"tag": "tag-c", "up": 50}],
            "client_traffics": [
                {"email": "bob@example.com", "up": 20},
                {"email": "carol@example.com", "up": 30},
            ],
        },
    }
    ports = {
        (1, "tag-a"): {"tag": "tag-a", "history": [1, 2, 3]},
        (1, "tag-b"): {"tag": "tag-b", "history": [4, 5]},
        (2, "tag-c"): {"tag": "tag-c", "history": [6]},
    }
    users = {
        (1, "alice@example.com"): {"email": "alice@example.com", "history": [7]},
        (2, "bob@example.com"): {"email": "bob@example.com", "history": [8]},
        (2, "carol@example.com"): {"email": "carol@example.com", "history": [9]},
    }
    return FakeGateway(services=services, details=details, ports=ports, users=users)


@pytest.fixture
def gateway():
    """Scripted gateway with two services."""
    return build_dashboard_gateway()


@pytest.fixture
def unauthorized_error():
    return AuthorizationError("authentication required", status=401)
