"""
test_trusted.py — Unit Tests for Trusted Gateway Consensus
============================================================
"""

import asyncio

import httpx
import pytest

from conftest import StubProvider, make_gateway, mock_client
from wayfinder.errors import InconsistentTrustedHashes, TrustedHashUnavailable
from wayfinder.services.trusted import DIGEST_HEADER, TrustedGatewaysHashProvider

TX_ID = "a" * 43


def trusted(*names):
    return StubProvider([make_gateway(n) for n in names])


def digest_handler(digests, delays=None):
    """HEAD handler answering each host with its digest (None = omit header)."""
    delays = delays or {}

    async def handler(request: httpx.Request) -> httpx.Response:
        host = request.url.host.split(".")[0]
        await asyncio.sleep(delays.get(host, 0))
        value = digests.get(host)
        if isinstance(value, int):
            return httpx.Response(value)
        headers = {DIGEST_HEADER: value} if value else {}
        return httpx.Response(200, headers=headers)

    return handler


class TestDigestConsensus:

    @pytest.mark.asyncio
    async def test_unanimous_digest_returned(self):
        requests = []

        def handler(request):
            requests.append((request.method, request.url.path))
            return httpx.Response(200, headers={DIGEST_HEADER: "abc"})

        async with mock_client(handler) as client:
            provider = TrustedGatewaysHashProvider(trusted("t1", "t2", "t3"), client=client)
            digest = await provider.get_hash(TX_ID)

        assert digest.hash == "abc"
        assert digest.tx_id == TX_ID
        assert [s.gateway for s in digest.samples] == [
            "t1.example",
            "t2.example",
            "t3.example",
        ]
        assert requests == [("HEAD", f"/{TX_ID}")] * 3

    @pytest.mark.asyncio
    async def test_single_gateway(self):
        async with mock_client(digest_handler({"t1": "abc"})) as client:
            provider = TrustedGatewaysHashProvider(trusted("t1"), client=client)
            assert (await provider.get_hash(TX_ID)).hash == "abc"

    @pytest.mark.asyncio
    async def test_disagreement_raises_inconsistent(self):
        handler = digest_handler({"t1": "abc", "t2": "abc", "t3": "xyz"})
        async with mock_client(handler) as client:
            provider = TrustedGatewaysHashProvider(trusted("t1", "t2", "t3"), client=client)
            with pytest.raises(InconsistentTrustedHashes) as excinfo:
                await provider.get_hash(TX_ID)

        assert excinfo.value.tx_id == TX_ID
        assert {(s.gateway, s.hash) for s in excinfo.value.samples} == {
            ("t1.example", "abc"),
            ("t2.example", "abc"),
            ("t3.example", "xyz"),
        }

    @pytest.mark.asyncio
    async def test_missing_header_raises_unavailable(self):
        handler = digest_handler({"t1": "abc", "t2": None})
        async with mock_client(handler) as client:
            provider = TrustedGatewaysHashProvider(trusted("t1", "t2"), client=client)
            with pytest.raises(TrustedHashUnavailable) as excinfo:
                await provider.get_hash(TX_ID)
        assert excinfo.value.gateway == "t2.example"

    @pytest.mark.asyncio
    async def test_error_status_raises_unavailable(self):
        handler = digest_handler({"t1": "abc", "t2": 404})
        async with mock_client(handler) as client:
            provider = TrustedGatewaysHashProvider(trusted("t1", "t2"), client=client)
            with pytest.raises(TrustedHashUnavailable, match="HTTP 404"):
                await provider.get_hash(TX_ID)

    @pytest.mark.asyncio
    async def test_timeout_raises_unavailable(self):
        handler = digest_handler({"t1": "abc", "t2": "abc"}, delays={"t2": 5})
        async with mock_client(handler) as client:
            provider = TrustedGatewaysHashProvider(
                trusted("t1", "t2"), client=client, timeout=0.1
            )
            with pytest.raises(TrustedHashUnavailable, match="timeout"):
                await provider.get_hash(TX_ID)

    @pytest.mark.asyncio
    async def test_network_error_raises_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with mock_client(handler) as client:
            provider = TrustedGatewaysHashProvider(trusted("t1"), client=client)
            with pytest.raises(TrustedHashUnavailable, match="ConnectError"):
                await provider.get_hash(TX_ID)

    @pytest.mark.asyncio
    async def test_unavailable_takes_precedence_over_disagreement(self):
        handler = digest_handler({"t1": "abc", "t2": "xyz", "t3": 500})
        async with mock_client(handler) as client:
            provider = TrustedGatewaysHashProvider(trusted("t1", "t2", "t3"), client=client)
            with pytest.raises(TrustedHashUnavailable):
                await provider.get_hash(TX_ID)

    @pytest.mark.asyncio
    async def test_no_trusted_gateways(self):
        provider = TrustedGatewaysHashProvider(StubProvider([]))
        with pytest.raises(TrustedHashUnavailable, match="no trusted gateways"):
            await provider.get_hash(TX_ID)


class TestDataRootConsensus:

    @pytest.mark.asyncio
    async def test_reads_data_root_endpoint(self):
        paths = []

        def handler(request):
            paths.append((request.method, request.url.path))
            return httpx.Response(200, text="root-value\n")

        async with mock_client(handler) as client:
            provider = TrustedGatewaysHashProvider(trusted("t1", "t2"), client=client)
            digest = await provider.get_data_root(TX_ID)

        assert digest.hash == "root-value"
        assert paths == [("GET", f"/tx/{TX_ID}/data_root")] * 2

    @pytest.mark.asyncio
    async def test_data_root_disagreement(self):
        def handler(request):
            return httpx.Response(200, text=request.url.host)

        async with mock_client(handler) as client:
            provider = TrustedGatewaysHashProvider(trusted("t1", "t2"), client=client)
            with pytest.raises(InconsistentTrustedHashes):
                await provider.get_data_root(TX_ID)

    @pytest.mark.asyncio
    async def test_empty_body_raises_unavailable(self):
        async with mock_client(lambda request: httpx.Response(200, text="")) as client:
            provider = TrustedGatewaysHashProvider(trusted("t1"), client=client)
            with pytest.raises(TrustedHashUnavailable, match="empty data root"):
                await provider.get_data_root(TX_ID)
