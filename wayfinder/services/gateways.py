"""
gateways.py — Gateway Providers
==================================
Sources of candidate gateways for routing.

    NetworkGatewaysProvider      — pages through the gateway registry
    StaticGatewaysProvider       — fixed in-memory list
    SimpleCacheGatewaysProvider  — TTL cache around another provider
"""

import logging
from typing import Callable, Iterable, List, Optional, Protocol, Sequence, Union

from wayfinder.core.cache import SimpleCache
from wayfinder.errors import RegistryUnavailable
from wayfinder.models import SORT_FIELDS, GatewayDescriptor, GatewayStatus
from wayfinder.services.registry_client import GatewayRegistrySource

logger = logging.getLogger(__name__)

GatewayFilter = Callable[[GatewayDescriptor], bool]

PAGE_SIZE = 1000
MAX_CONSECUTIVE_FAILURES = 3


def is_joined(gateway: GatewayDescriptor) -> bool:
    """Default candidate filter: only gateways that have joined the network."""
    return gateway.status == GatewayStatus.JOINED


def dedupe_by_address(gateways: Iterable[GatewayDescriptor]) -> List[GatewayDescriptor]:
    """Drop repeated addresses, keeping the first occurrence and order."""
    seen = set()
    unique = []
    for gateway in gateways:
        if gateway.address in seen:
            continue
        seen.add(gateway.address)
        unique.append(gateway)
    return unique


class GatewaysProvider(Protocol):
    async def get_gateways(self) -> List[GatewayDescriptor]:
        ...


class NetworkGatewaysProvider:
    """
    Fetches the candidate set from the gateway registry.

    Pagination tolerates a degraded registry: a failed page read is
    retried on the same cursor, and after MAX_CONSECUTIVE_FAILURES
    consecutive failures the gateways accumulated so far are returned
    instead of an error.
    """

    def __init__(
        self,
        registry: GatewayRegistrySource,
        sort_by: str = "operatorStake",
        sort_order: str = "desc",
        limit: Optional[int] = None,
        filter: GatewayFilter = is_joined,
        blocklist: Sequence[str] = (),
        page_size: int = PAGE_SIZE,
        max_attempts: int = MAX_CONSECUTIVE_FAILURES,
    ):
        """
        Args:
            registry: Paginated registry source.
            sort_by: Registry sort field (operatorStake,
                totalDelegatedStake or startTimestamp).
            sort_order: "asc" or "desc".
            limit: Keep at most this many gateways after filtering.
            filter: Predicate a gateway must satisfy to be a candidate.
            blocklist: FQDNs that are never candidates.
            page_size: Records requested per page.
            max_attempts: Consecutive failed reads before giving up.
        """
        if sort_by not in SORT_FIELDS:
            raise ValueError(f"Unsupported sort field {sort_by!r}")
        if sort_order not in ("asc", "desc"):
            raise ValueError(f"Unsupported sort order {sort_order!r}")
        self.registry = registry
        self.sort_by = sort_by
        self.sort_order = sort_order
        self.limit = limit
        self.filter = filter
        self.blocklist = set(blocklist)
        self.page_size = page_size
        self.max_attempts = max_attempts

    async def get_gateways(self) -> List[GatewayDescriptor]:
        """
        Page through the registry and return the filtered candidate set.

        Raises:
            RegistryUnavailable: If the retry budget ran out before a
                single page was read.
        """
        gateways: List[GatewayDescriptor] = []
        cursor: Optional[str] = None
        failures = 0
        pages_read = 0
        last_error: Optional[Exception] = None

        while True:
            try:
                page = await self.registry.list_gateways(
                    limit=self.page_size,
                    cursor=cursor,
                    sort_by=self.sort_by,
                    sort_order=self.sort_order,
                )
            except Exception as e:
                failures += 1
                last_error = e
                logger.warning(
                    "Error fetching gateways (cursor=%s, attempt %d/%d): %s",
                    cursor,
                    failures,
                    self.max_attempts,
                    e,
                )
                if failures >= self.max_attempts:
                    break
                continue

            failures = 0
            pages_read += 1
            gateways.extend(page.items)
            cursor = page.next_cursor
            if cursor is None:
                break

        if failures >= self.max_attempts:
            if not pages_read:
                raise RegistryUnavailable(
                    f"Gateway registry unavailable after {failures} attempts: {last_error}"
                ) from last_error
            logger.warning(
                "Registry pagination stopped early, returning %d partial results",
                len(gateways),
            )

        candidates = [
            g for g in dedupe_by_address(gateways)
            if self.filter(g) and g.fqdn not in self.blocklist
        ]
        if self.limit is not None:
            candidates = candidates[: self.limit]

        logger.info(
            "Fetched %d gateways from registry, %d candidates",
            len(gateways),
            len(candidates),
        )
        return candidates


class StaticGatewaysProvider:
    """Serves a fixed gateway list; bare URLs are accepted too."""

    def __init__(
        self,
        gateways: Sequence[Union[GatewayDescriptor, str]],
        filter: GatewayFilter = is_joined,
    ):
        self._gateways = dedupe_by_address(
            g if isinstance(g, GatewayDescriptor) else GatewayDescriptor.from_url(g)
            for g in gateways
        )
        self.filter = filter

    async def get_gateways(self) -> List[GatewayDescriptor]:
        return [g for g in self._gateways if self.filter(g)]


class SimpleCacheGatewaysProvider:
    """
    Caches another provider's candidate set for ``ttl_seconds``.

    If a refresh fails the previous candidate set keeps being served.
    """

    def __init__(
        self,
        gateways_provider: GatewaysProvider,
        ttl_seconds: float = 60 * 60,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.gateways_provider = gateways_provider
        kwargs = {"clock": clock} if clock is not None else {}
        self._cache = SimpleCache(
            gateways_provider.get_gateways,
            ttl_seconds=ttl_seconds,
            name="gateways-cache",
            **kwargs,
        )

    async def get_gateways(self) -> List[GatewayDescriptor]:
        return list(await self._cache.get())

    def invalidate(self) -> None:
        self._cache.invalidate()
