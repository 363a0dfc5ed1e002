"""
errors.py — Wayfinder Error Types
===================================
Typed failures raised by gateway discovery, routing and data
verification. Every error carries the values needed to diagnose it.
"""

from typing import List, Optional

import httpx


class WayfinderError(Exception):
    """Base class for all wayfinder failures."""


class RegistryUnavailable(WayfinderError):
    """No gateway data could be obtained from the registry at all."""


class NoGatewaysAvailable(WayfinderError):
    """The candidate set handed to a routing strategy was empty."""


class NoHealthyGateways(WayfinderError):
    """Every probed gateway failed, timed out or returned a non-2xx status."""


class InvalidGatewayURL(WayfinderError, ValueError):
    """A configured gateway URL is not a well-formed http(s) URL."""

    def __init__(self, url: str, reason: str = "not a valid http(s) URL"):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid gateway URL {url!r}: {reason}")


class InconsistentTrustedHashes(WayfinderError):
    """Trusted gateways reported different values for the same tx id."""

    def __init__(self, tx_id: str, samples: List):
        self.tx_id = tx_id
        self.samples = list(samples)
        detail = ", ".join(f"{s.gateway}={s.hash}" for s in self.samples)
        super().__init__(
            f"Trusted gateways disagree on {tx_id}: {detail}"
        )


class TrustedHashUnavailable(WayfinderError):
    """A trusted gateway was unreachable or omitted the expected value."""

    def __init__(self, tx_id: str, gateway: Optional[str], reason: str):
        self.tx_id = tx_id
        self.gateway = gateway
        self.reason = reason
        where = f" from {gateway}" if gateway else ""
        super().__init__(
            f"Trusted hash for {tx_id} unavailable{where}: {reason}"
        )


class VerificationMismatch(WayfinderError):
    """Locally computed value differs from the trusted consensus value."""

    def __init__(
        self,
        tx_id: str,
        computed_hash: str,
        trusted_hash: str,
        hash_type: str = "digest",
    ):
        self.tx_id = tx_id
        self.computed_hash = computed_hash
        self.trusted_hash = trusted_hash
        self.hash_type = hash_type
        super().__init__(
            f"{hash_type} mismatch for {tx_id}: "
            f"computed={computed_hash} trusted={trusted_hash}"
        )


class VerificationFailed(WayfinderError):
    """Verification could not be completed; the cause is chained."""

    def __init__(self, tx_id: str, reason: str):
        self.tx_id = tx_id
        self.reason = reason
        super().__init__(f"Verification of {tx_id} failed: {reason}")


def validate_gateway_url(url: str) -> str:
    """
    Validate a gateway URL and return it normalized (no trailing slash).

    Raises:
        InvalidGatewayURL: If the URL cannot be parsed, is not http(s)
            or has no host.
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidGatewayURL(str(url), "empty URL")
    try:
        parsed = httpx.URL(url.strip())
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise InvalidGatewayURL(url, str(e)) from e

    if parsed.scheme not in ("http", "https"):
        raise InvalidGatewayURL(url, f"unsupported scheme {parsed.scheme!r}")
    if not parsed.host:
        raise InvalidGatewayURL(url, "missing host")
    return str(parsed).rstrip("/")
