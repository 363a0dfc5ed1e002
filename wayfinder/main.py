"""
main.py — Wayfinder Service Entrypoint
========================================
Composition root: turns settings into gateway providers, a router and
a verifier, and runs the FastAPI service exposing them.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI

from wayfinder.api.routes import router
from wayfinder.client import Wayfinder
from wayfinder.config import Settings, settings
from wayfinder.services.gateways import (
    GatewaysProvider,
    NetworkGatewaysProvider,
    SimpleCacheGatewaysProvider,
    StaticGatewaysProvider,
)
from wayfinder.services.registry_client import HTTPGatewayRegistry
from wayfinder.services.routers import (
    GatewayRouter,
    SimpleCacheRouter,
    StrategyRouter,
    WayfinderRouter,
)
from wayfinder.services.strategies import (
    FastestPingRoutingStrategy,
    PreferredWithFallbackRoutingStrategy,
    PriorityRoutingStrategy,
    RandomRoutingStrategy,
    RoundRobinRoutingStrategy,
    RoutingStrategy,
    StaticRoutingStrategy,
)
from wayfinder.services.trusted import TrustedGatewaysHashProvider
from wayfinder.services.verification import (
    CompositeVerifier,
    DataRootVerifier,
    DataVerifier,
    HashVerifier,
)

logger = logging.getLogger("wayfinder")


@dataclass
class Components:
    """Everything the API needs, wired together."""

    gateways_provider: GatewaysProvider
    router: WayfinderRouter
    hash_provider: TrustedGatewaysHashProvider
    verifier: Optional[DataVerifier]
    wayfinder: Wayfinder
    verification: str


def build_strategy(config: Settings, client: httpx.AsyncClient) -> RoutingStrategy:
    """
    Create the routing strategy named by ``ROUTING_STRATEGY``.

    Raises:
        ValueError: Unknown strategy name.
        InvalidGatewayURL: Malformed static or preferred gateway URL.
    """
    name = config.ROUTING_STRATEGY
    if name == "random":
        return RandomRoutingStrategy(blocklist=config.BLOCKLIST)
    if name == "round-robin":
        return RoundRobinRoutingStrategy(config.TRUSTED_GATEWAYS)
    if name == "priority":
        return PriorityRoutingStrategy(
            sort_by=config.PRIORITY_SORT_BY,
            sort_order=config.PRIORITY_SORT_ORDER,
            limit=config.PRIORITY_LIMIT,
            blocklist=config.BLOCKLIST,
        )
    if name == "fastest-ping":
        return FastestPingRoutingStrategy(timeout=config.PING_TIMEOUT, client=client)
    if name == "static":
        return StaticRoutingStrategy(config.STATIC_GATEWAY)
    if name == "preferred":
        return PreferredWithFallbackRoutingStrategy(
            config.PREFERRED_GATEWAY,
            fallback_strategy=FastestPingRoutingStrategy(
                timeout=config.PING_TIMEOUT, client=client
            ),
            timeout=config.PREFERRED_TIMEOUT,
            client=client,
        )
    raise ValueError(f"Unknown routing strategy {name!r}")


# Strategies that carry their own gateways and ignore registry candidates
SELF_CONTAINED_STRATEGIES = ("static", "round-robin")


def build_router(
    config: Settings, gateways_provider: GatewaysProvider, strategy: RoutingStrategy
) -> WayfinderRouter:
    """Skip the registry for strategies that never look at candidates."""
    if config.ROUTING_STRATEGY in SELF_CONTAINED_STRATEGIES:
        return StrategyRouter(strategy)
    return GatewayRouter(gateways_provider, strategy)


def build_verifier(
    config: Settings, hash_provider: TrustedGatewaysHashProvider
) -> Optional[DataVerifier]:
    mode = config.VERIFICATION
    if mode == "none":
        return None
    if mode == "digest":
        return HashVerifier(hash_provider)
    if mode == "data-root":
        return DataRootVerifier(hash_provider)
    if mode == "all":
        return CompositeVerifier([HashVerifier(hash_provider), DataRootVerifier(hash_provider)])
    raise ValueError(f"Unknown verification mode {mode!r}")


def build_components(config: Settings, client: httpx.AsyncClient) -> Components:
    """Wire providers, router, verifier and client from settings."""
    registry = HTTPGatewayRegistry(
        config.REGISTRY_URL, client=client, timeout=config.REGISTRY_TIMEOUT
    )
    gateways_provider = SimpleCacheGatewaysProvider(
        NetworkGatewaysProvider(registry, blocklist=config.BLOCKLIST),
        ttl_seconds=config.GATEWAYS_CACHE_TTL,
    )
    strategy = build_strategy(config, client)
    gateway_router = SimpleCacheRouter(
        build_router(config, gateways_provider, strategy),
        ttl_seconds=config.ROUTER_CACHE_TTL,
    )

    hash_provider = TrustedGatewaysHashProvider(
        StaticGatewaysProvider(config.TRUSTED_GATEWAYS),
        client=client,
        timeout=config.TRUSTED_TIMEOUT,
    )
    verifier = build_verifier(config, hash_provider)
    wayfinder = Wayfinder(
        gateway_router,
        verifier=verifier,
        client=client,
        strict=config.STRICT_VERIFICATION,
    )
    return Components(
        gateways_provider=gateways_provider,
        router=gateway_router,
        hash_provider=hash_provider,
        verifier=verifier,
        wayfinder=wayfinder,
        verification=config.VERIFICATION,
    )


def create_app(
    components: Optional[Components] = None, config: Settings = settings
) -> FastAPI:
    """Build the FastAPI app; pre-built components skip settings wiring."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        if components is None:
            client = httpx.AsyncClient(timeout=config.REGISTRY_TIMEOUT)
            app.state.components = build_components(config, client)
        else:
            app.state.components = components

        logger.info("Wayfinder starting on %s:%d", config.HOST, config.PORT)
        logger.info("Registry:     %s", config.REGISTRY_URL)
        logger.info("Strategy:     %s", config.ROUTING_STRATEGY)
        logger.info("Verification: %s", app.state.components.verification)
        yield
        if client is not None:
            await client.aclose()
        logger.info("Wayfinder shutting down")

    app = FastAPI(
        title="Wayfinder — Gateway Routing API",
        description=(
            "Discovers content gateways, routes requests to one of them "
            "and checks content against trusted gateways.\n\n"
            "**Routing:** registry → cached candidates → strategy → gateway\n\n"
            "**Verification:** trusted gateways → consensus digest → compare"
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.include_router(router)
    return app


def run() -> None:
    """Console entrypoint: configure logging and serve the API."""
    # ── Logging Configuration ─────────────────────────────
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    uvicorn.run(create_app(), host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
