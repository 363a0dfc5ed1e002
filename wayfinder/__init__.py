"""
Wayfinder — gateway discovery, routing and data verification.
"""

from wayfinder.client import Wayfinder, WayfinderEmitter, resolve_wayfinder_url
from wayfinder.errors import (
    InconsistentTrustedHashes,
    InvalidGatewayURL,
    NoGatewaysAvailable,
    NoHealthyGateways,
    RegistryUnavailable,
    TrustedHashUnavailable,
    VerificationFailed,
    VerificationMismatch,
    WayfinderError,
)
from wayfinder.models import ConsensusDigest, GatewayDescriptor, GatewayStatus
from wayfinder.services.gateways import (
    NetworkGatewaysProvider,
    SimpleCacheGatewaysProvider,
    StaticGatewaysProvider,
)
from wayfinder.services.registry_client import HTTPGatewayRegistry
from wayfinder.services.routers import GatewayRouter, SimpleCacheRouter, StrategyRouter
from wayfinder.services.strategies import (
    FastestPingRoutingStrategy,
    PreferredWithFallbackRoutingStrategy,
    PriorityRoutingStrategy,
    RandomRoutingStrategy,
    RoundRobinRoutingStrategy,
    StaticRoutingStrategy,
)
from wayfinder.services.trusted import TrustedGatewaysHashProvider
from wayfinder.services.verification import (
    CompositeVerifier,
    DataRootVerifier,
    HashVerifier,
)

__version__ = "1.0.0"
