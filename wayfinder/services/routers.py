"""
routers.py — Gateway Routers
===============================
A router turns a routing strategy, fed by a gateway provider unless the
strategy carries its own gateways, into a target gateway for a request.
``SimpleCacheRouter`` pins the chosen gateway for a session so
multi-request work keeps gateway affinity.
"""

import logging
from typing import Callable, Optional, Protocol

from wayfinder.core.cache import SimpleCache
from wayfinder.services.gateways import GatewaysProvider
from wayfinder.services.strategies import RoutingStrategy

logger = logging.getLogger(__name__)


class WayfinderRouter(Protocol):
    async def get_target_gateway(self, tx_id: Optional[str] = None) -> str:
        ...


class GatewayRouter:
    """Fetch candidates from a provider and let a strategy pick one."""

    def __init__(self, gateways_provider: GatewaysProvider, strategy: RoutingStrategy):
        self.gateways_provider = gateways_provider
        self.strategy = strategy

    @property
    def name(self) -> str:
        return getattr(self.strategy, "name", type(self.strategy).__name__)

    async def get_target_gateway(self, tx_id: Optional[str] = None) -> str:
        gateways = await self.gateways_provider.get_gateways()
        target = await self.strategy.select_gateway(gateways, tx_id=tx_id)
        logger.debug(
            "Routed to %s via %s (%d candidates)", target, self.name, len(gateways)
        )
        return target


class StrategyRouter:
    """
    Route with a strategy that needs no candidate set.

    Static and round-robin strategies carry their own gateways, so no
    provider (and no registry) is consulted.
    """

    def __init__(self, strategy: RoutingStrategy):
        self.strategy = strategy

    @property
    def name(self) -> str:
        return getattr(self.strategy, "name", type(self.strategy).__name__)

    async def get_target_gateway(self, tx_id: Optional[str] = None) -> str:
        target = await self.strategy.select_gateway([], tx_id=tx_id)
        logger.debug("Routed to %s via %s", target, self.name)
        return target


class SimpleCacheRouter:
    """
    Reuse one routing decision for ``ttl_seconds``.

    Within the TTL the wrapped router is not consulted, so random and
    round-robin strategies keep returning the same gateway. The pinned
    gateway is independent of the tx id being requested.
    """

    def __init__(
        self,
        router: WayfinderRouter,
        ttl_seconds: float = 5 * 60,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.router = router
        kwargs = {"clock": clock} if clock is not None else {}
        self._cache = SimpleCache(
            router.get_target_gateway,
            ttl_seconds=ttl_seconds,
            name="router-cache",
            **kwargs,
        )

    @property
    def name(self) -> str:
        return f"simple-cache({getattr(self.router, 'name', type(self.router).__name__)})"

    async def get_target_gateway(self, tx_id: Optional[str] = None) -> str:
        return await self._cache.get()

    def invalidate(self) -> None:
        """Forget the pinned gateway, e.g. after it failed a request."""
        self._cache.invalidate()
