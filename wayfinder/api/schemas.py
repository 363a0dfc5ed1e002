"""
schemas.py — Pydantic Response Models
========================================
Data models for the Wayfinder REST API.
"""

from typing import List, Optional

from pydantic import BaseModel

from wayfinder.models import ConsensusDigest, GatewayDescriptor


class GatewayResponse(BaseModel):
    """A candidate gateway."""

    address: str
    fqdn: str
    protocol: str
    port: int
    status: str
    operator_stake: int
    total_delegated_stake: int
    start_timestamp: int
    url: str

    @classmethod
    def from_descriptor(cls, gateway: GatewayDescriptor) -> "GatewayResponse":
        return cls(
            address=gateway.address,
            fqdn=gateway.fqdn,
            protocol=gateway.protocol,
            port=gateway.port,
            status=gateway.status.value,
            operator_stake=gateway.operator_stake,
            total_delegated_stake=gateway.total_delegated_stake,
            start_timestamp=gateway.start_timestamp,
            url=gateway.url,
        )


class GatewayListResponse(BaseModel):
    """Response listing the current candidate set."""

    total_gateways: int
    gateways: List[GatewayResponse]


class RouteResponse(BaseModel):
    """The gateway selected for a request."""

    gateway: str
    strategy: str
    tx_id: Optional[str] = None


class ResolveResponse(BaseModel):
    original_url: str
    resolved_url: str


class HashSampleResponse(BaseModel):
    gateway: str
    hash: str


class TrustedHashResponse(BaseModel):
    """Consensus value reported by the trusted gateways."""

    tx_id: str
    hash: str
    hash_type: str
    algorithm: str
    samples: List[HashSampleResponse]

    @classmethod
    def from_consensus(
        cls, digest: ConsensusDigest, hash_type: str
    ) -> "TrustedHashResponse":
        return cls(
            tx_id=digest.tx_id,
            hash=digest.hash,
            hash_type=hash_type,
            algorithm=digest.algorithm,
            samples=[
                HashSampleResponse(gateway=s.gateway, hash=s.hash)
                for s in digest.samples
            ],
        )


class HealthResponse(BaseModel):
    """Service health check response."""

    status: str
    service: str
    strategy: str
    verification: str
    candidate_gateways: int
