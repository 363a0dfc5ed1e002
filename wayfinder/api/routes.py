"""
routes.py — Wayfinder REST API Endpoints
==========================================
HTTP front-end over gateway discovery, routing and trusted hashes.

Endpoints:
    GET /health              — Service health check
    GET /gateways            — Current candidate gateways
    GET /route               — Select a target gateway
    GET /resolve?url=ar://…  — Resolve a wayfinder URL
    GET /ar/{path}           — Redirect to the routed URL
    GET /verify/{tx_id}      — Trusted consensus digest or data root
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse

from wayfinder.api.schemas import (
    GatewayListResponse,
    GatewayResponse,
    HealthResponse,
    ResolveResponse,
    RouteResponse,
    TrustedHashResponse,
)
from wayfinder.errors import (
    InconsistentTrustedHashes,
    NoGatewaysAvailable,
    NoHealthyGateways,
    RegistryUnavailable,
    TrustedHashUnavailable,
    WayfinderError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

ROUTING_ERRORS = (RegistryUnavailable, NoGatewaysAvailable, NoHealthyGateways)
TRUST_ERRORS = (InconsistentTrustedHashes, TrustedHashUnavailable)


def get_components(request: Request):
    """Components built by the application's composition root."""
    return request.app.state.components


def _router_name(components) -> str:
    router_ = components.router
    return getattr(router_, "name", type(router_).__name__)


@router.get("/health", response_model=HealthResponse)
async def health(components=Depends(get_components)):
    """Report whether any candidate gateways are currently obtainable."""
    try:
        gateways = await components.gateways_provider.get_gateways()
        status = "healthy" if gateways else "degraded"
        count = len(gateways)
    except WayfinderError as e:
        logger.warning("Health check could not load gateways: %s", e)
        status, count = "degraded", 0

    return HealthResponse(
        status=status,
        service="wayfinder",
        strategy=_router_name(components),
        verification=components.verification,
        candidate_gateways=count,
    )


@router.get("/gateways", response_model=GatewayListResponse)
async def list_gateways(components=Depends(get_components)):
    try:
        gateways = await components.gateways_provider.get_gateways()
    except RegistryUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))

    return GatewayListResponse(
        total_gateways=len(gateways),
        gateways=[GatewayResponse.from_descriptor(g) for g in gateways],
    )


@router.get("/route", response_model=RouteResponse)
async def route(
    tx_id: Optional[str] = Query(None, description="Transaction the request is for"),
    components=Depends(get_components),
):
    """Select a target gateway with the configured strategy."""
    try:
        gateway = await components.router.get_target_gateway(tx_id=tx_id)
    except ROUTING_ERRORS as e:
        logger.warning("Routing failed: %s", e)
        raise HTTPException(status_code=503, detail=str(e))

    return RouteResponse(gateway=gateway, strategy=_router_name(components), tx_id=tx_id)


@router.get("/resolve", response_model=ResolveResponse)
async def resolve(
    url: str = Query(..., description="Wayfinder URL, e.g. ar://name/path"),
    components=Depends(get_components),
):
    try:
        resolved = await components.wayfinder.resolve_url(url)
    except ROUTING_ERRORS as e:
        raise HTTPException(status_code=503, detail=str(e))
    except WayfinderError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return ResolveResponse(original_url=url, resolved_url=resolved)


@router.get("/ar/{path:path}")
async def redirect(path: str, request: Request, components=Depends(get_components)):
    """Redirect ``/ar/<path>`` to the routed gateway URL for ``ar://<path>``."""
    original = f"ar://{path}"
    if request.url.query:
        original = f"{original}?{request.url.query}"
    try:
        resolved = await components.wayfinder.resolve_url(original)
    except ROUTING_ERRORS as e:
        raise HTTPException(status_code=503, detail=str(e))
    except WayfinderError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("Redirecting %s to %s", original, resolved)
    return RedirectResponse(resolved, status_code=307)


@router.get("/verify/{tx_id}", response_model=TrustedHashResponse)
async def trusted_hash(
    tx_id: str,
    hash_type: str = Query("digest", pattern="^(digest|data-root)$"),
    components=Depends(get_components),
):
    """Return the value every trusted gateway agrees on for ``tx_id``."""
    provider = components.hash_provider
    try:
        if hash_type == "data-root":
            digest = await provider.get_data_root(tx_id)
        else:
            digest = await provider.get_hash(tx_id)
    except TRUST_ERRORS as e:
        logger.warning("Trusted %s lookup failed for %s: %s", hash_type, tx_id, e)
        raise HTTPException(status_code=502, detail=str(e))

    return TrustedHashResponse.from_consensus(digest, hash_type)
