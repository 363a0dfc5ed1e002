"""
verification.py — Data Verification
=====================================
Checks that content fetched from an arbitrary gateway matches the value
trusted gateways agree on.

    HashVerifier       — SHA-256 digest of the content
    DataRootVerifier   — merkle data root of the transaction data
    CompositeVerifier  — several verifiers over one payload, in parallel

The local computation runs concurrently with the trusted lookup and
both are joined before comparing.
"""

import asyncio
import logging
from typing import Any, List, Optional, Protocol, Sequence

from wayfinder.core.hashing import DataPayload, digest_stream, is_buffer, iter_chunks
from wayfinder.core.merkle import compute_data_root
from wayfinder.errors import VerificationMismatch
from wayfinder.models import ConsensusDigest

logger = logging.getLogger(__name__)


class DataVerifier(Protocol):
    async def verify_data(self, data: DataPayload, tx_id: str) -> None:
        ...


class DataHashProvider(Protocol):
    async def get_hash(self, tx_id: str) -> ConsensusDigest:
        ...


class DataRootProvider(Protocol):
    async def get_data_root(self, tx_id: str) -> ConsensusDigest:
        ...


async def run_together(*aws) -> List[Any]:
    """
    Await several awaitables concurrently.

    Unlike a bare ``asyncio.gather`` the remaining ones are cancelled as
    soon as one fails, so an abandoned stream consumer does not keep
    running in the background.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise


class HashVerifier:
    """Compare the content's SHA-256 digest with the trusted digest."""

    hash_type = "digest"

    def __init__(self, trusted_hash_provider: DataHashProvider):
        self.trusted_hash_provider = trusted_hash_provider

    async def verify_data(self, data: DataPayload, tx_id: str) -> None:
        """
        Raises:
            VerificationMismatch: The digests differ.
            TrustedHashUnavailable, InconsistentTrustedHashes: No
                trusted digest could be established.
        """
        computed, trusted = await run_together(
            digest_stream(data),
            self.trusted_hash_provider.get_hash(tx_id),
        )
        if computed != trusted.hash:
            logger.warning(
                "Digest mismatch for %s: computed=%s trusted=%s",
                tx_id,
                computed[:16],
                trusted.hash[:16],
            )
            raise VerificationMismatch(tx_id, computed, trusted.hash, self.hash_type)
        logger.debug("Digest verified for %s: %s...", tx_id, computed[:16])


class DataRootVerifier:
    """Compare the content's data root with the trusted data root."""

    hash_type = "data-root"

    def __init__(self, trusted_data_root_provider: DataRootProvider):
        self.trusted_data_root_provider = trusted_data_root_provider

    async def verify_data(self, data: DataPayload, tx_id: str) -> None:
        computed, trusted = await run_together(
            compute_data_root(data),
            self.trusted_data_root_provider.get_data_root(tx_id),
        )
        if computed != trusted.hash:
            logger.warning(
                "Data root mismatch for %s: computed=%s trusted=%s",
                tx_id,
                computed[:16],
                trusted.hash[:16],
            )
            raise VerificationMismatch(tx_id, computed, trusted.hash, self.hash_type)
        logger.debug("Data root verified for %s: %s...", tx_id, computed[:16])


_END = object()


class StreamFanout:
    """
    Copy one byte stream to several consumers through bounded queues.

    The producer only runs ahead of the slowest consumer by
    ``max_pending`` chunks, so the payload is never held in full.
    """

    def __init__(self, source: DataPayload, consumers: int, max_pending: int = 8):
        self._source = source
        self._queues = [asyncio.Queue(maxsize=max_pending) for _ in range(consumers)]
        self._error: Optional[BaseException] = None

    def _abort(self) -> None:
        # Make room and wake every consumer; pending chunks are discarded
        for queue in self._queues:
            while not queue.empty():
                queue.get_nowait()
            queue.put_nowait(_END)

    async def pump(self) -> None:
        try:
            async for chunk in iter_chunks(self._source):
                for queue in self._queues:
                    await queue.put(chunk)
        except BaseException as e:
            self._error = e
            self._abort()
            raise
        for queue in self._queues:
            await queue.put(_END)

    async def consume(self, index: int):
        queue = self._queues[index]
        while True:
            chunk = await queue.get()
            if chunk is _END:
                if self._error is not None:
                    raise RuntimeError("Source stream failed") from self._error
                return
            yield chunk


class CompositeVerifier:
    """
    Apply several verifiers to the same payload in parallel.

    The first failure is raised unchanged and cancels the others.
    """

    def __init__(self, verifiers: Sequence[DataVerifier]):
        if not verifiers:
            raise ValueError("At least one verifier must be provided")
        self.verifiers = list(verifiers)

    @property
    def hash_type(self) -> str:
        return "+".join(getattr(v, "hash_type", type(v).__name__) for v in self.verifiers)

    async def _verify_one(self, verifier: DataVerifier, data: DataPayload, tx_id: str) -> None:
        try:
            await verifier.verify_data(data, tx_id)
        except Exception as e:
            logger.warning(
                "Verification failed in %s for %s: %s", type(verifier).__name__, tx_id, e
            )
            raise

    async def verify_data(self, data: DataPayload, tx_id: str) -> None:
        if is_buffer(data):
            await run_together(
                *(self._verify_one(v, data, tx_id) for v in self.verifiers)
            )
            return

        fanout = StreamFanout(data, len(self.verifiers))
        await run_together(
            fanout.pump(),
            *(
                self._verify_one(v, fanout.consume(i), tx_id)
                for i, v in enumerate(self.verifiers)
            ),
        )
