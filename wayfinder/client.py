"""
client.py — Wayfinder Client
==============================
Routes ``ar://`` URLs to a gateway chosen by a router, performs the
request with httpx and optionally verifies the returned data against
trusted gateways.

URL forms:
    ar:///info            → {gateway}/info
    ar://<tx id>/path     → {gateway}/<tx id>/path
    ar://<name>/path      → {scheme}://<name>.{gateway host}/path
    anything else         → unchanged
"""

import asyncio
import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional, Set

import httpx

from wayfinder.errors import VerificationFailed, WayfinderError
from wayfinder.services.routers import WayfinderRouter
from wayfinder.services.trusted import RESOLVED_TX_ID_HEADER
from wayfinder.services.verification import DataVerifier

logger = logging.getLogger(__name__)

AR_SCHEME = "ar://"
TX_ID_RE = re.compile(r"^[A-Za-z0-9_-]{43}$")
ARNS_NAME_RE = re.compile(r"^[a-z0-9_-]{1,51}$")

VERIFICATION_PASSED = "verification-passed"
VERIFICATION_FAILED = "verification-failed"


def _gateway_origin(gateway: httpx.URL, subdomain: Optional[str] = None) -> str:
    host = f"{subdomain}.{gateway.host}" if subdomain else gateway.host
    port = f":{gateway.port}" if gateway.port else ""
    return f"{gateway.scheme}://{host}{port}"


def parse_tx_id(url: str) -> Optional[str]:
    """Return the tx id addressed by an ``ar://<tx id>`` URL, if any."""
    if not url.startswith(AR_SCHEME):
        return None
    first = url[len(AR_SCHEME):].split("?", 1)[0].split("/", 1)[0]
    return first if TX_ID_RE.match(first) else None


async def resolve_wayfinder_url(
    original_url: str, target_gateway: Callable[[], Awaitable[str]]
) -> str:
    """
    Resolve a wayfinder URL against a routed gateway.

    Args:
        original_url: ``ar://`` URL (or any other URL, returned as-is).
        target_gateway: Coroutine function returning the gateway to use;
            only called for ``ar://`` URLs.

    Returns:
        The URL to request.
    """
    original_url = str(original_url)
    if not original_url.startswith(AR_SCHEME):
        logger.debug("No wayfinder routing applied to %s", original_url)
        return original_url

    gateway = httpx.URL(await target_gateway())
    path, sep, query = original_url[len(AR_SCHEME):].partition("?")
    suffix = f"?{query}" if sep else ""

    if path.startswith("/"):
        resolved = f"{_gateway_origin(gateway)}/{path.lstrip('/')}{suffix}"
    else:
        name, _, rest = path.partition("/")
        if TX_ID_RE.match(name):
            tail = f"/{rest}" if rest else ""
            resolved = f"{_gateway_origin(gateway)}/{name}{tail}{suffix}"
        elif ARNS_NAME_RE.match(name):
            resolved = f"{_gateway_origin(gateway, subdomain=name)}/{rest}{suffix}"
        else:
            raise WayfinderError(f"Unresolvable wayfinder URL: {original_url}")

    logger.debug("Resolved %s to %s", original_url, resolved)
    return resolved


class WayfinderEmitter:
    """Minimal event emitter for verification outcomes."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable[[dict], None]]] = {}

    def on(self, event: str, listener: Callable[[dict], None]) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def off(self, event: str, listener: Callable[[dict], None]) -> None:
        if listener in self._listeners.get(event, []):
            self._listeners[event].remove(listener)

    def emit(self, event: str, payload: dict) -> None:
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(payload)
            except Exception:
                logger.exception("Listener for %s raised", event)


class Wayfinder:
    """
    HTTP client front-end that understands ``ar://`` URLs.

    In strict mode (the default) a routed GET is verified before it is
    returned and a verification failure is raised to the caller. With
    ``strict=False`` verification runs in the background and its outcome
    is only reported through ``emitter`` events.
    """

    def __init__(
        self,
        router: WayfinderRouter,
        verifier: Optional[DataVerifier] = None,
        client: Optional[httpx.AsyncClient] = None,
        strict: bool = True,
        emitter: Optional[WayfinderEmitter] = None,
    ):
        self.router = router
        self.verifier = verifier
        self.strict = strict
        self.emitter = emitter or WayfinderEmitter()
        self._client = client
        self._background: Set[asyncio.Task] = set()
        logger.debug(
            "Wayfinder initialized with %s routing", getattr(router, "name", type(router).__name__)
        )

    async def resolve_url(self, original_url: str) -> str:
        tx_id = parse_tx_id(str(original_url))
        return await resolve_wayfinder_url(
            original_url, lambda: self.router.get_target_gateway(tx_id=tx_id)
        )

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Route and perform a request.

        Raises:
            WayfinderError: Routing failed, or (strict mode) the data
                could not be verified.
            httpx.HTTPError: The request itself failed.
        """
        redirect_url = await self.resolve_url(url)
        logger.debug("Redirecting request for %s to %s", url, redirect_url)

        if self._client is not None:
            response = await self._client.request(method, redirect_url, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=30) as client:
                response = await client.request(method, redirect_url, **kwargs)

        if (
            self.verifier is not None
            and redirect_url != str(url)
            and method.upper() == "GET"
            and response.is_success
        ):
            await self._handle_verification(str(url), redirect_url, response)
        return response

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def _handle_verification(
        self, original_url: str, redirect_url: str, response: httpx.Response
    ) -> None:
        # tx id comes from the gateway's header, or the first path segment
        tx_id = response.headers.get(RESOLVED_TX_ID_HEADER)
        if not tx_id:
            first = httpx.URL(redirect_url).path.lstrip("/").split("/", 1)[0]
            tx_id = first if TX_ID_RE.match(first) else None

        if not tx_id:
            if self.strict:
                raise WayfinderError(
                    f"Cannot verify {original_url}: no tx id in response from {redirect_url}"
                )
            logger.debug("No tx id for %s, skipping verification", redirect_url)
            return

        if self.strict:
            await self._verify(original_url, redirect_url, response.content, tx_id)
            return

        task = asyncio.ensure_future(
            self._verify(original_url, redirect_url, response.content, tx_id)
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _verify(
        self, original_url: str, redirect_url: str, data: bytes, tx_id: str
    ) -> None:
        hash_type = getattr(self.verifier, "hash_type", None)
        event = {
            "original_url": original_url,
            "redirect_url": redirect_url,
            "tx_id": tx_id,
            "hash_type": hash_type,
        }
        try:
            await self.verifier.verify_data(data, tx_id)
        except Exception as e:
            logger.warning("Verification failed for %s (%s): %s", tx_id, redirect_url, e)
            self.emitter.emit(
                VERIFICATION_FAILED,
                {
                    **event,
                    "error": e,
                    "computed_hash": getattr(e, "computed_hash", None),
                    "trusted_hash": getattr(e, "trusted_hash", None),
                },
            )
            if not self.strict:
                return
            if isinstance(e, WayfinderError):
                raise
            raise VerificationFailed(tx_id, f"{type(e).__name__}: {e}") from e

        logger.debug("Verification passed for %s", tx_id)
        self.emitter.emit(VERIFICATION_PASSED, event)

    async def wait_for_verifications(self) -> None:
        """Wait for background (non-strict) verifications to finish."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
