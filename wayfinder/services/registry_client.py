"""
registry_client.py — Gateway Registry Client
===============================================
Read-only access to the paginated gateway registry. The registry
returns pages of gateway records plus an opaque cursor; a missing
cursor marks the end of the data.
"""

import logging
from typing import Optional, Protocol

import httpx

from wayfinder.models import GatewayDescriptor, RegistryPage

logger = logging.getLogger(__name__)


class GatewayRegistrySource(Protocol):
    """Anything that can list gateway records page by page."""

    async def list_gateways(
        self,
        limit: int,
        cursor: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> RegistryPage:
        ...


class HTTPGatewayRegistry:
    """
    Client for a registry exposing ``GET /gateways``.

    Expected response body::

        {"items": [...gateway records...], "nextCursor": "..."}
    """

    def __init__(
        self,
        registry_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10,
    ):
        """
        Args:
            registry_url: Base URL of the registry read API.
            client: Shared HTTP client; a short-lived one is opened per
                request when omitted.
            timeout: Per-request timeout in seconds.
        """
        self.registry_url = registry_url.rstrip("/")
        self._client = client
        self._timeout = timeout
        logger.info("HTTPGatewayRegistry initialized with registry at %s", self.registry_url)

    async def list_gateways(
        self,
        limit: int,
        cursor: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> RegistryPage:
        """
        Fetch one page of gateway records.

        Raises:
            httpx.HTTPError: On network failure or a non-2xx response.
            ValueError: If the body is not a registry page.
        """
        params = {"limit": limit}
        if cursor is not None:
            params["cursor"] = cursor
        if sort_by is not None:
            params["sortBy"] = sort_by
        if sort_order is not None:
            params["sortOrder"] = sort_order

        if self._client is not None:
            response = await self._client.get(
                f"{self.registry_url}/gateways", params=params, timeout=self._timeout
            )
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(f"{self.registry_url}/gateways", params=params)
        response.raise_for_status()

        body = response.json()
        if not isinstance(body, dict):
            raise ValueError("Registry response is not an object")

        items = []
        for record in body.get("items") or []:
            try:
                items.append(GatewayDescriptor.from_dict(record))
            except ValueError as e:
                logger.warning("Skipping malformed gateway record: %s", e)

        logger.debug(
            "Fetched %d gateways (cursor=%s, next=%s)",
            len(items),
            cursor,
            body.get("nextCursor"),
        )
        return RegistryPage(items=items, next_cursor=body.get("nextCursor"))
