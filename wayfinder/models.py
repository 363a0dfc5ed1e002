"""
models.py — Gateway Data Model
================================
Immutable snapshots of gateway registry records and the values
produced by trusted-gateway consensus.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx

from wayfinder.errors import validate_gateway_url


class GatewayStatus(str, Enum):
    """Registry status of a gateway."""

    JOINED = "joined"
    LEAVING = "leaving"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "GatewayStatus":
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


# Fields a candidate set may be ranked by
SORT_FIELDS = ("operatorStake", "totalDelegatedStake", "startTimestamp")

_SORT_ATTRIBUTES = {
    "operatorStake": "operator_stake",
    "totalDelegatedStake": "total_delegated_stake",
    "startTimestamp": "start_timestamp",
}


def sort_attribute(sort_by: str) -> str:
    """Map a registry sort field name to the descriptor attribute."""
    if sort_by not in _SORT_ATTRIBUTES:
        raise ValueError(
            f"Unsupported sort field {sort_by!r}, expected one of {SORT_FIELDS}"
        )
    return _SORT_ATTRIBUTES[sort_by]


@dataclass(frozen=True)
class GatewayDescriptor:
    """A single gateway as reported by the registry."""

    address: str          # Network identity of the operator
    fqdn: str
    protocol: str = "https"
    port: int = 443
    status: GatewayStatus = GatewayStatus.JOINED
    operator_stake: int = 0
    total_delegated_stake: int = 0
    start_timestamp: int = 0

    @property
    def url(self) -> str:
        """Target URL: protocol://fqdn:port."""
        return f"{self.protocol}://{self.fqdn}:{self.port}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GatewayDescriptor":
        """
        Build a descriptor from a registry record.

        Accepts the registry's camelCase shape, where endpoint details
        live under ``settings``.

        Raises:
            ValueError: If the record has no address or fqdn.
        """
        settings = data.get("settings") or {}
        address = data.get("gatewayAddress") or data.get("address")
        fqdn = settings.get("fqdn") or data.get("fqdn")
        if not address or not fqdn:
            raise ValueError(f"Gateway record missing address or fqdn: {data!r}")

        return cls(
            address=address,
            fqdn=fqdn,
            protocol=settings.get("protocol") or data.get("protocol") or "https",
            port=int(settings.get("port") or data.get("port") or 443),
            status=GatewayStatus.parse(data.get("status")),
            operator_stake=int(data.get("operatorStake", 0)),
            total_delegated_stake=int(data.get("totalDelegatedStake", 0)),
            start_timestamp=int(data.get("startTimestamp", 0)),
        )

    @classmethod
    def from_url(cls, url: str) -> "GatewayDescriptor":
        """Build a joined descriptor for a bare gateway URL."""
        parsed = httpx.URL(validate_gateway_url(url))
        port = parsed.port or (443 if parsed.scheme == "https" else 80)
        return cls(
            address=parsed.host,
            fqdn=parsed.host,
            protocol=parsed.scheme,
            port=port,
        )

    def to_dict(self) -> dict:
        """Serialize to the registry's camelCase shape."""
        return {
            "gatewayAddress": self.address,
            "settings": {
                "fqdn": self.fqdn,
                "protocol": self.protocol,
                "port": self.port,
            },
            "status": self.status.value,
            "operatorStake": self.operator_stake,
            "totalDelegatedStake": self.total_delegated_stake,
            "startTimestamp": self.start_timestamp,
        }


@dataclass(frozen=True)
class RegistryPage:
    """One page of registry results; next_cursor None means end of data."""

    items: List[GatewayDescriptor]
    next_cursor: Optional[str] = None


@dataclass(frozen=True)
class HashSample:
    """A value reported by one trusted gateway."""

    gateway: str
    hash: str


@dataclass(frozen=True)
class ConsensusDigest:
    """A value every queried trusted gateway agreed on."""

    tx_id: str
    hash: str
    samples: List[HashSample] = field(default_factory=list)
    algorithm: str = "sha256"
