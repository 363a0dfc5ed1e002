"""
trusted.py — Trusted Gateway Hash Provider
=============================================
Obtains the reference digest (or data root) for a transaction from a
set of trusted gateways and only accepts it when every one of them
reports the same value.

There is no quorum: a single unreachable trusted gateway, a missing
header or a single disagreeing value fails the whole lookup.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

import httpx

from wayfinder.errors import InconsistentTrustedHashes, TrustedHashUnavailable
from wayfinder.models import ConsensusDigest, GatewayDescriptor, HashSample
from wayfinder.services.gateways import GatewaysProvider

logger = logging.getLogger(__name__)

# Response headers set by gateways
DIGEST_HEADER = "x-ar-io-digest"
RESOLVED_TX_ID_HEADER = "x-arns-resolved-tx-id"


class TrustedGatewaysHashProvider:
    """Queries every trusted gateway concurrently and requires unanimity."""

    def __init__(
        self,
        gateways_provider: GatewaysProvider,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5,
    ):
        """
        Args:
            gateways_provider: Source of the trusted gateway set.
            client: Shared HTTP client (a temporary one is used if None).
            timeout: Per-gateway deadline in seconds.
        """
        self.gateways_provider = gateways_provider
        self._client = client
        self.timeout = timeout

    async def get_hash(self, tx_id: str) -> ConsensusDigest:
        """
        Get the consensus content digest for ``tx_id``.

        Sends ``HEAD {gateway}/{tx_id}`` to each trusted gateway and reads
        the digest header.

        Raises:
            TrustedHashUnavailable: No trusted gateways, or any of them
                failed or omitted the header.
            InconsistentTrustedHashes: The gateways disagree.
        """
        return await self._consensus(tx_id, self._fetch_digest)

    async def get_data_root(self, tx_id: str) -> ConsensusDigest:
        """
        Get the consensus data root for ``tx_id``.

        Sends ``GET {gateway}/tx/{tx_id}/data_root`` to each trusted gateway.
        """
        return await self._consensus(tx_id, self._fetch_data_root)

    async def _fetch_digest(
        self, client: httpx.AsyncClient, gateway: GatewayDescriptor, tx_id: str
    ) -> HashSample:
        response = await client.head(
            f"{gateway.url}/{tx_id}", follow_redirects=True, timeout=self.timeout
        )
        if not response.is_success:
            raise TrustedHashUnavailable(
                tx_id, gateway.fqdn, f"HTTP {response.status_code}"
            )
        digest = response.headers.get(DIGEST_HEADER)
        if not digest:
            raise TrustedHashUnavailable(
                tx_id, gateway.fqdn, f"missing {DIGEST_HEADER} header"
            )
        return HashSample(gateway=gateway.fqdn, hash=digest)

    async def _fetch_data_root(
        self, client: httpx.AsyncClient, gateway: GatewayDescriptor, tx_id: str
    ) -> HashSample:
        response = await client.get(
            f"{gateway.url}/tx/{tx_id}/data_root", timeout=self.timeout
        )
        if not response.is_success:
            raise TrustedHashUnavailable(
                tx_id, gateway.fqdn, f"HTTP {response.status_code}"
            )
        data_root = response.text.strip()
        if not data_root:
            raise TrustedHashUnavailable(tx_id, gateway.fqdn, "empty data root")
        return HashSample(gateway=gateway.fqdn, hash=data_root)

    async def _sample(
        self,
        fetch: Callable[..., Awaitable[HashSample]],
        client: httpx.AsyncClient,
        gateway: GatewayDescriptor,
        tx_id: str,
    ) -> HashSample:
        try:
            return await asyncio.wait_for(fetch(client, gateway, tx_id), self.timeout)
        except asyncio.TimeoutError as e:
            raise TrustedHashUnavailable(tx_id, gateway.fqdn, "timeout") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise TrustedHashUnavailable(
                tx_id, gateway.fqdn, f"{type(e).__name__}: {e}"
            ) from e

    async def _gather(
        self,
        fetch: Callable[..., Awaitable[HashSample]],
        client: httpx.AsyncClient,
        gateways: List[GatewayDescriptor],
        tx_id: str,
    ) -> list:
        return await asyncio.gather(
            *(self._sample(fetch, client, g, tx_id) for g in gateways),
            return_exceptions=True,
        )

    async def _consensus(
        self, tx_id: str, fetch: Callable[..., Awaitable[HashSample]]
    ) -> ConsensusDigest:
        gateways = await self.gateways_provider.get_gateways()
        if not gateways:
            raise TrustedHashUnavailable(tx_id, None, "no trusted gateways configured")

        if self._client is not None:
            results = await self._gather(fetch, self._client, gateways, tx_id)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                results = await self._gather(fetch, client, gateways, tx_id)

        for result in results:
            if isinstance(result, BaseException):
                logger.warning("Trusted gateway lookup failed: %s", result)
                raise result

        samples: List[HashSample] = list(results)
        if len({s.hash for s in samples}) > 1:
            logger.error(
                "Inconsistent trusted values for %s: %s",
                tx_id,
                [(s.gateway, s.hash) for s in samples],
            )
            raise InconsistentTrustedHashes(tx_id, samples)

        logger.debug(
            "Trusted consensus for %s from %d gateways: %s...",
            tx_id,
            len(samples),
            samples[0].hash[:16],
        )
        return ConsensusDigest(tx_id=tx_id, hash=samples[0].hash, samples=samples)
