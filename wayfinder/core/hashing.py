"""
hashing.py — SHA-256 Digest Module
=====================================
Computes the base64url SHA-256 digest that gateways report for
transaction data, over in-memory buffers or byte streams.

A payload may be:
    - bytes / bytearray / memoryview
    - a synchronous iterable of byte chunks (file object, generator)
    - an asynchronous iterable of byte chunks (httpx aiter_bytes())
"""

import asyncio
import base64
import hashlib
import logging
from typing import AsyncIterable, AsyncIterator, Iterable, Union

logger = logging.getLogger(__name__)

DataPayload = Union[bytes, bytearray, memoryview, Iterable[bytes], AsyncIterable[bytes]]


def b64url_encode(raw: bytes) -> str:
    """Base64url-encode without padding."""
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def sha256_b64url(data: bytes) -> str:
    """
    Compute the base64url SHA-256 digest of a buffer.

    Args:
        data: Raw bytes to hash.

    Returns:
        Unpadded base64url string of the digest (43 characters).

    Raises:
        TypeError: If data is not bytes-like.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"Expected bytes, got {type(data).__name__}")

    digest = b64url_encode(hashlib.sha256(data).digest())
    logger.debug("SHA-256: %s... (%d bytes)", digest[:16], len(data))
    return digest


def is_buffer(data) -> bool:
    return isinstance(data, (bytes, bytearray, memoryview))


async def iter_chunks(data: DataPayload) -> AsyncIterator[bytes]:
    """Normalize any supported payload into an async iterator of chunks."""
    if is_buffer(data):
        yield bytes(data)
    elif hasattr(data, "__aiter__"):
        async for chunk in data:
            yield chunk
    elif hasattr(data, "__iter__"):
        for chunk in data:
            yield chunk
    else:
        raise TypeError(f"Unsupported data type for hashing: {type(data).__name__}")


async def digest_stream(data: DataPayload) -> str:
    """
    Compute the base64url SHA-256 digest of a payload incrementally.

    Buffers are hashed in a worker thread so the caller's event loop
    keeps serving network I/O. Streams are hashed chunk by chunk and
    never held in memory as a whole.
    """
    if is_buffer(data):
        return await asyncio.to_thread(sha256_b64url, bytes(data))

    hasher = hashlib.sha256()
    total = 0
    async for chunk in iter_chunks(data):
        hasher.update(chunk)
        total += len(chunk)

    digest = b64url_encode(hasher.digest())
    logger.debug("SHA-256 (stream): %s... (%d bytes)", digest[:16], total)
    return digest
