"""
test_models.py — Unit Tests for Gateway Records and URL Validation
====================================================================
"""

import pytest

from wayfinder.errors import InvalidGatewayURL, validate_gateway_url
from wayfinder.models import GatewayDescriptor, GatewayStatus, sort_attribute


class TestValidateGatewayUrl:

    def test_trailing_slash_stripped(self):
        assert validate_gateway_url("https://arweave.net/") == "https://arweave.net"

    def test_port_kept(self):
        assert validate_gateway_url("http://localhost:3000") == "http://localhost:3000"

    @pytest.mark.parametrize("url", ["", "   ", "arweave.net", "ws://arweave.net", "https://"])
    def test_invalid(self, url):
        with pytest.raises(InvalidGatewayURL) as excinfo:
            validate_gateway_url(url)
        assert isinstance(excinfo.value, ValueError)


class TestGatewayDescriptor:

    def test_from_registry_record(self):
        record = {
            "gatewayAddress": "addr-1",
            "settings": {"fqdn": "gw.example", "protocol": "https", "port": 443},
            "status": "joined",
            "operatorStake": 5000,
            "totalDelegatedStake": 10,
            "startTimestamp": 1700000000,
        }
        gateway = GatewayDescriptor.from_dict(record)
        assert gateway.url == "https://gw.example:443"
        assert gateway.status is GatewayStatus.JOINED
        assert gateway.operator_stake == 5000
        assert GatewayDescriptor.from_dict(gateway.to_dict()) == gateway

    def test_unknown_status_maps_to_other(self):
        gateway = GatewayDescriptor.from_dict(
            {"gatewayAddress": "a", "settings": {"fqdn": "f"}, "status": "banned"}
        )
        assert gateway.status is GatewayStatus.OTHER

    def test_record_without_fqdn_rejected(self):
        with pytest.raises(ValueError):
            GatewayDescriptor.from_dict({"gatewayAddress": "a", "settings": {}})

    def test_from_url_defaults_port(self):
        assert GatewayDescriptor.from_url("https://permagate.io").url == "https://permagate.io:443"
        assert GatewayDescriptor.from_url("http://localhost").url == "http://localhost:80"
        assert GatewayDescriptor.from_url("http://localhost:1984").port == 1984


def test_sort_attribute():
    assert sort_attribute("operatorStake") == "operator_stake"
    with pytest.raises(ValueError):
        sort_attribute("fqdn")
