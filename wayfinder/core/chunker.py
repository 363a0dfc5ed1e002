"""
chunker.py — Transaction Data Chunking
========================================
Splits transaction data into the chunks used to build its data root,
working incrementally over a stream.

Chunk sizes:
    MAX_CHUNK_SIZE = 256 KB
    MIN_CHUNK_SIZE = 32 KB

While at least MAX_CHUNK_SIZE bytes remain, a full chunk is cut, unless
that would leave a remainder smaller than MIN_CHUNK_SIZE, in which case
the remaining bytes are split into two halves (first half rounded up).
The final remainder is always emitted as the last chunk, even when it
is empty.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import AsyncIterator

from wayfinder.core.hashing import DataPayload, iter_chunks

logger = logging.getLogger(__name__)

MAX_CHUNK_SIZE = 256 * 1024
MIN_CHUNK_SIZE = 32 * 1024


@dataclass(frozen=True)
class Chunk:
    """Hash and byte range of one chunk."""

    data_hash: bytes
    min_byte_range: int
    max_byte_range: int

    @property
    def size(self) -> int:
        return self.max_byte_range - self.min_byte_range


def _make_chunk(data: bytearray, cursor: int) -> Chunk:
    return Chunk(
        data_hash=hashlib.sha256(data).digest(),
        min_byte_range=cursor,
        max_byte_range=cursor + len(data),
    )


async def chunk_stream(data: DataPayload) -> AsyncIterator[Chunk]:
    """
    Cut a payload into data-root chunks.

    The result does not depend on how the incoming stream is split into
    pieces. A full chunk is only cut early once enough bytes are pending
    that no later data can change the split decision, so at most
    MAX_CHUNK_SIZE + MIN_CHUNK_SIZE bytes (plus one incoming piece) are
    buffered.

    Args:
        data: Buffer or (async) iterable of byte chunks.

    Yields:
        Chunk records in byte order.

    Raises:
        ValueError: If the payload is empty.
    """
    pending = bytearray()
    cursor = 0
    count = 0

    async for piece in iter_chunks(data):
        pending += piece
        while len(pending) >= MAX_CHUNK_SIZE + MIN_CHUNK_SIZE:
            yield _make_chunk(pending[:MAX_CHUNK_SIZE], cursor)
            cursor += MAX_CHUNK_SIZE
            count += 1
            del pending[:MAX_CHUNK_SIZE]

    if cursor == 0 and not pending:
        raise ValueError("Cannot chunk empty data")

    # End of stream: the remaining length is now known
    while len(pending) >= MAX_CHUNK_SIZE:
        chunk_size = MAX_CHUNK_SIZE
        remainder = len(pending) - MAX_CHUNK_SIZE
        if 0 < remainder < MIN_CHUNK_SIZE:
            chunk_size = -(-len(pending) // 2)
        yield _make_chunk(pending[:chunk_size], cursor)
        cursor += chunk_size
        count += 1
        del pending[:chunk_size]

    yield _make_chunk(pending, cursor)
    cursor += len(pending)
    count += 1

    logger.debug("Chunked %d bytes into %d chunks", cursor, count)
