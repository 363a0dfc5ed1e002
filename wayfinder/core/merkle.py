"""
merkle.py — Transaction Data Root
===================================
Builds the merkle tree whose root ("data root") commits a transaction's
data, so locally fetched content can be checked against the data root
reported by trusted gateways.

Hash function: SHA-256
Leaf nodes:     H( H(chunk_hash) || H(note(max_byte_range)) )
Internal nodes: H( H(left.id) || H(right.id) || H(note(left.max_byte_range)) )

note(n) is n as a 32-byte big-endian integer. When a level has an odd
number of nodes the last node is promoted to the next level unchanged.
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import List

from wayfinder.core.chunker import Chunk, chunk_stream
from wayfinder.core.hashing import DataPayload, b64url_encode

logger = logging.getLogger(__name__)

NOTE_SIZE = 32


def _hash(*parts: bytes) -> bytes:
    return hashlib.sha256(b"".join(parts)).digest()


def int_to_note(value: int) -> bytes:
    """Encode an integer as a 32-byte big-endian note."""
    return value.to_bytes(NOTE_SIZE, "big")


@dataclass(frozen=True)
class MerkleNode:
    """A tree node: its id and the highest byte offset it covers."""

    id: bytes
    max_byte_range: int


def leaf_for_chunk(chunk: Chunk) -> MerkleNode:
    """Create the leaf node committing one chunk."""
    return MerkleNode(
        id=_hash(_hash(chunk.data_hash), _hash(int_to_note(chunk.max_byte_range))),
        max_byte_range=chunk.max_byte_range,
    )


def _hash_branch(left: MerkleNode, right: MerkleNode) -> MerkleNode:
    """Combine two sibling nodes into their parent."""
    return MerkleNode(
        id=_hash(
            _hash(left.id),
            _hash(right.id),
            _hash(int_to_note(left.max_byte_range)),
        ),
        max_byte_range=right.max_byte_range,
    )


class DataRootTree:
    """
    Merkle tree over the leaves of a transaction's chunks.

    Attributes:
        leaves: Leaf nodes, one per chunk, in byte order.
        levels: All levels of the tree, from leaves (index 0) to root.
    """

    def __init__(self, leaves: List[MerkleNode]):
        """
        Build the tree.

        Raises:
            ValueError: If there are no leaves.
        """
        if not leaves:
            raise ValueError("Cannot build data root from empty leaf list")

        self.leaves: List[MerkleNode] = list(leaves)
        self.levels: List[List[MerkleNode]] = []
        self._build_tree()

    def _build_tree(self) -> None:
        current_level = list(self.leaves)
        self.levels.append(current_level)

        while len(current_level) > 1:
            next_level = []
            for i in range(0, len(current_level), 2):
                if i + 1 < len(current_level):
                    next_level.append(
                        _hash_branch(current_level[i], current_level[i + 1])
                    )
                else:
                    # Odd node out moves up as-is
                    next_level.append(current_level[i])
            current_level = next_level
            self.levels.append(current_level)

    @property
    def root(self) -> MerkleNode:
        return self.levels[-1][0]

    @property
    def data_root(self) -> str:
        """The root id, base64url-encoded."""
        return b64url_encode(self.root.id)


async def compute_data_root(data: DataPayload) -> str:
    """
    Compute the base64url data root of a payload.

    Chunks are hashed as the stream is consumed; only the 32-byte leaf
    ids are retained to build the tree.

    Raises:
        ValueError: If the payload is empty.
    """
    leaves = [leaf_for_chunk(chunk) async for chunk in chunk_stream(data)]
    tree = DataRootTree(leaves)
    logger.debug(
        "Computed data root %s... over %d chunks",
        tree.data_root[:16],
        len(leaves),
    )
    return tree.data_root
