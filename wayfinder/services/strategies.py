"""
strategies.py — Gateway Routing Strategies
=============================================
Each strategy picks one target gateway URL for a request.

    RandomRoutingStrategy              — uniform, cryptographically secure
    RoundRobinRoutingStrategy          — rotates through its own fixed list
    PriorityRoutingStrategy            — uniform pick among the top-N by a field
    FastestPingRoutingStrategy         — lowest-latency healthy gateway
    StaticRoutingStrategy              — always the same configured URL
    PreferredWithFallbackRoutingStrategy — preferred URL while it is alive,
                                           otherwise another strategy
"""

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Union

import httpx

from wayfinder.errors import NoGatewaysAvailable, NoHealthyGateways, validate_gateway_url
from wayfinder.models import GatewayDescriptor, sort_attribute

logger = logging.getLogger(__name__)

Candidates = Sequence[GatewayDescriptor]


class RoutingStrategy(Protocol):
    async def select_gateway(
        self, gateways: Candidates, tx_id: Optional[str] = None
    ) -> str:
        ...


def secure_random_index(n: int) -> int:
    """Uniform integer in [0, n) from the OS CSPRNG."""
    if n <= 0:
        raise NoGatewaysAvailable("No gateways to choose from")
    return secrets.randbelow(n)


def _to_url(gateway: Union[GatewayDescriptor, str]) -> str:
    if isinstance(gateway, GatewayDescriptor):
        return gateway.url
    return validate_gateway_url(gateway)


class RandomRoutingStrategy:
    """Pick uniformly at random among the candidates."""

    name = "random"

    def __init__(self, blocklist: Sequence[str] = ()):
        """
        Args:
            blocklist: FQDNs never selected.
        """
        self.blocklist = set(blocklist)

    async def select_gateway(
        self, gateways: Candidates, tx_id: Optional[str] = None
    ) -> str:
        candidates = [g for g in gateways if g.fqdn not in self.blocklist]
        if not candidates:
            raise NoGatewaysAvailable("No gateways available for random selection")
        return candidates[secure_random_index(len(candidates))].url


class RoundRobinRoutingStrategy:
    """
    Rotate through a fixed list, ignoring the candidates passed in.

    The cursor is a plain attribute with no lock. Sequential calls visit
    every gateway exactly once per cycle; concurrent callers may observe
    a skipped or repeated index.
    """

    name = "round-robin"

    def __init__(self, gateways: Sequence[Union[GatewayDescriptor, str]]):
        if not gateways:
            raise ValueError("RoundRobinRoutingStrategy requires at least one gateway")
        self.gateways: List[str] = [_to_url(g) for g in gateways]
        self.current_index = 0

    async def select_gateway(
        self, gateways: Optional[Candidates] = None, tx_id: Optional[str] = None
    ) -> str:
        gateway = self.gateways[self.current_index]
        self.current_index = (self.current_index + 1) % len(self.gateways)
        return gateway


class PriorityRoutingStrategy:
    """
    Rank candidates by a registry field and pick among the top ``limit``.

    The pick within the top slice is uniform: stake only decides who
    makes the slice, it does not weight the draw.
    """

    name = "priority"

    def __init__(
        self,
        sort_by: str = "operatorStake",
        sort_order: str = "desc",
        limit: int = 1,
        blocklist: Sequence[str] = (),
    ):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if sort_order not in ("asc", "desc"):
            raise ValueError(f"Unsupported sort order {sort_order!r}")
        self.sort_by = sort_by
        self._attribute = sort_attribute(sort_by)
        self.sort_order = sort_order
        self.limit = limit
        self.blocklist = set(blocklist)

    def rank(self, gateways: Candidates) -> List[GatewayDescriptor]:
        """Top ``limit`` candidates in priority order."""
        ranked = sorted(
            (g for g in gateways if g.fqdn not in self.blocklist),
            key=lambda g: getattr(g, self._attribute),
            reverse=self.sort_order == "desc",
        )
        return ranked[: self.limit]

    async def select_gateway(
        self, gateways: Candidates, tx_id: Optional[str] = None
    ) -> str:
        top = self.rank(gateways)
        if not top:
            raise NoGatewaysAvailable("No gateways available for priority selection")
        return top[secure_random_index(len(top))].url


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of probing one gateway."""

    gateway: str
    status_code: Optional[int]
    duration: float
    error: Optional[str] = None

    @property
    def healthy(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300


async def probe_gateway(
    client: httpx.AsyncClient, url: str, timeout: float
) -> ProbeResult:
    """
    HEAD a URL and time it, following redirects to the final response.
    Never raises: failures and timeouts are reported in the result with
    an infinite duration.
    """
    start = time.monotonic()
    try:
        response = await asyncio.wait_for(
            client.head(url, follow_redirects=True, timeout=timeout),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        return ProbeResult(url, None, float("inf"), "timeout")
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        return ProbeResult(url, None, float("inf"), f"{type(e).__name__}: {e}")
    return ProbeResult(url, response.status_code, time.monotonic() - start)


class FastestPingRoutingStrategy:
    """
    Probe every candidate concurrently and pick the fastest healthy one.

    Each probe carries its own timeout, so a hung gateway only loses its
    own race. Timed-out probes are not retried.
    """

    name = "fastest-ping"

    def __init__(
        self,
        timeout: float = 0.5,
        client: Optional[httpx.AsyncClient] = None,
        probe_path: str = "",
    ):
        """
        Args:
            timeout: Per-probe deadline in seconds.
            client: Shared HTTP client (a temporary one is used if None).
            probe_path: Path probed when no tx id is given.
        """
        self.timeout = timeout
        self._client = client
        self.probe_path = probe_path.lstrip("/")

    def _probe_url(self, gateway: GatewayDescriptor, tx_id: Optional[str]) -> str:
        path = tx_id if tx_id else self.probe_path
        return f"{gateway.url}/{path}"

    async def _probe_all(
        self, client: httpx.AsyncClient, gateways: Candidates, tx_id: Optional[str]
    ) -> List[ProbeResult]:
        return await asyncio.gather(
            *(
                probe_gateway(client, self._probe_url(g, tx_id), self.timeout)
                for g in gateways
            )
        )

    async def select_gateway(
        self, gateways: Candidates, tx_id: Optional[str] = None
    ) -> str:
        if not gateways:
            raise NoGatewaysAvailable("No gateways provided")

        if self._client is not None:
            results = await self._probe_all(self._client, gateways, tx_id)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                results = await self._probe_all(client, gateways, tx_id)

        healthy = sorted(
            (
                (result, gateway)
                for result, gateway in zip(results, gateways)
                if result.healthy
            ),
            key=lambda pair: pair[0].duration,
        )
        logger.debug(
            "Ping results: %d gateways probed, %d healthy (tx_id=%s)",
            len(results),
            len(healthy),
            tx_id,
        )
        for result in results:
            if not result.healthy:
                logger.debug(
                    "Probe failed for %s: status=%s error=%s",
                    result.gateway,
                    result.status_code,
                    result.error,
                )

        if not healthy:
            raise NoHealthyGateways(
                f"No healthy gateways among {len(gateways)} probed"
            )

        best, gateway = healthy[0]
        logger.debug("Selected gateway %s (%.1f ms)", gateway.url, best.duration * 1000)
        return gateway.url


class StaticRoutingStrategy:
    """Always route to one configured gateway."""

    name = "static"

    def __init__(self, gateway: str):
        self.gateway = validate_gateway_url(gateway)

    async def select_gateway(
        self, gateways: Optional[Candidates] = None, tx_id: Optional[str] = None
    ) -> str:
        return self.gateway


class PreferredWithFallbackRoutingStrategy:
    """
    Use a preferred gateway while it answers a liveness probe.

    Any probe failure (timeout, network error, non-2xx) hands selection
    to the fallback strategy; only the fallback's own failure is raised.
    """

    name = "preferred-with-fallback"

    def __init__(
        self,
        preferred_gateway: str,
        fallback_strategy: Optional[RoutingStrategy] = None,
        timeout: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.preferred_gateway = validate_gateway_url(preferred_gateway)
        self.fallback_strategy = fallback_strategy or FastestPingRoutingStrategy(
            client=client
        )
        self.timeout = timeout
        self._client = client

    async def _probe(self) -> ProbeResult:
        if self._client is not None:
            return await probe_gateway(self._client, self.preferred_gateway, self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await probe_gateway(client, self.preferred_gateway, self.timeout)

    async def select_gateway(
        self, gateways: Candidates = (), tx_id: Optional[str] = None
    ) -> str:
        logger.debug("Probing preferred gateway %s", self.preferred_gateway)
        result = await self._probe()
        if result.healthy:
            logger.debug("Preferred gateway %s is healthy", self.preferred_gateway)
            return self.preferred_gateway

        logger.warning(
            "Preferred gateway %s unavailable (status=%s, error=%s), "
            "falling back to %s",
            self.preferred_gateway,
            result.status_code,
            result.error,
            type(self.fallback_strategy).__name__,
        )
        return await self.fallback_strategy.select_gateway(gateways, tx_id=tx_id)
