"""
test_hashing.py — Unit Tests for SHA-256 Digests
==================================================
"""

import pytest

from wayfinder.core.hashing import digest_stream, iter_chunks, sha256_b64url

EMPTY_DIGEST = "47DEQpj8HBSa-_TImW-5JCeuQeRkm5NMpJWZG3hSuFU"
HELLO_DIGEST = "LPJNul-wow4m6DsqxbninhsWHlwfp0JecwQzYpOLmCQ"


async def _agen(pieces):
    for piece in pieces:
        yield piece


class TestSha256B64Url:
    """Tests for the buffer digest."""

    def test_known_vectors(self):
        """Digests match known SHA-256 values, base64url without padding."""
        assert sha256_b64url(b"") == EMPTY_DIGEST
        assert sha256_b64url(b"hello") == HELLO_DIGEST

    def test_digest_length(self):
        """Unpadded base64url of 32 bytes is 43 characters."""
        assert len(sha256_b64url(b"some data")) == 43

    def test_bytearray_accepted(self):
        assert sha256_b64url(bytearray(b"hello")) == HELLO_DIGEST

    def test_non_bytes_raises(self):
        with pytest.raises(TypeError, match="Expected bytes"):
            sha256_b64url("hello")


class TestDigestStream:
    """Tests for incremental digests over streams."""

    @pytest.mark.asyncio
    async def test_buffer(self):
        assert await digest_stream(b"hello") == HELLO_DIGEST

    @pytest.mark.asyncio
    async def test_async_stream_matches_buffer(self):
        """Splitting the payload does not change the digest."""
        assert await digest_stream(_agen([b"he", b"ll", b"o"])) == HELLO_DIGEST

    @pytest.mark.asyncio
    async def test_sync_iterable(self):
        assert await digest_stream(iter([b"hel", b"lo"])) == HELLO_DIGEST

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        assert await digest_stream(_agen([])) == EMPTY_DIGEST

    @pytest.mark.asyncio
    async def test_unsupported_type_raises(self):
        with pytest.raises(TypeError, match="Unsupported data type"):
            await digest_stream(12345)


class TestIterChunks:

    @pytest.mark.asyncio
    async def test_buffer_is_single_chunk(self):
        chunks = [c async for c in iter_chunks(b"abc")]
        assert chunks == [b"abc"]

    @pytest.mark.asyncio
    async def test_async_iterable_passthrough(self):
        chunks = [c async for c in iter_chunks(_agen([b"a", b"b"]))]
        assert chunks == [b"a", b"b"]
