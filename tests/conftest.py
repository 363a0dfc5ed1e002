"""
conftest.py — Shared Test Helpers
===================================
"""

from typing import List, Optional

import httpx
import pytest

from wayfinder.models import GatewayDescriptor, GatewayStatus, RegistryPage


def make_gateway(
    name: str,
    status: GatewayStatus = GatewayStatus.JOINED,
    operator_stake: int = 0,
    total_delegated_stake: int = 0,
    start_timestamp: int = 0,
    protocol: str = "https",
    port: int = 443,
) -> GatewayDescriptor:
    """Build a descriptor for ``{name}.example`` with address ``addr-{name}``."""
    return GatewayDescriptor(
        address=f"addr-{name}",
        fqdn=f"{name}.example",
        protocol=protocol,
        port=port,
        status=status,
        operator_stake=operator_stake,
        total_delegated_stake=total_delegated_stake,
        start_timestamp=start_timestamp,
    )


def mock_client(handler) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class ScriptedRegistry:
    """
    Registry stub replaying a script of pages and failures.

    Each script entry is either a RegistryPage or an Exception to raise.
    Every call is recorded as (limit, cursor, sort_by, sort_order).
    """

    def __init__(self, script: List):
        self.script = list(script)
        self.calls = []

    async def list_gateways(
        self,
        limit: int,
        cursor: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> RegistryPage:
        self.calls.append((limit, cursor, sort_by, sort_order))
        if not self.script:
            raise AssertionError("Registry called more times than scripted")
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return step


class StubProvider:
    """Gateways provider returning a fixed list (or raising)."""

    def __init__(self, gateways=None, error: Optional[Exception] = None):
        self.gateways = list(gateways or [])
        self.error = error
        self.calls = 0

    async def get_gateways(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.gateways)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateways():
    """Three joined gateways with distinct stakes and start times."""
    return [
        make_gateway("alpha", operator_stake=100, total_delegated_stake=5, start_timestamp=3),
        make_gateway("beta", operator_stake=300, total_delegated_stake=1, start_timestamp=1),
        make_gateway("gamma", operator_stake=200, total_delegated_stake=9, start_timestamp=2),
    ]
