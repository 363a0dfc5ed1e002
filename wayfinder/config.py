"""
config.py — Wayfinder Configuration
=====================================
"""

import os
from typing import List


def _csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Wayfinder configuration from environment."""

    HOST: str = os.getenv("WAYFINDER_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("WAYFINDER_PORT", "8000"))
    LOG_LEVEL: str = os.getenv("WAYFINDER_LOG_LEVEL", "INFO")

    # Gateway registry (paginated read-only source of gateway records)
    REGISTRY_URL: str = os.getenv(
        "WAYFINDER_REGISTRY_URL", "https://cu.ardrive.io/ar-io"
    )
    REGISTRY_TIMEOUT: float = float(os.getenv("WAYFINDER_REGISTRY_TIMEOUT", "10"))
    GATEWAYS_CACHE_TTL: int = int(os.getenv("WAYFINDER_GATEWAYS_CACHE_TTL", "3600"))  # 1 hour

    # Routing
    # One of: random, round-robin, priority, fastest-ping, static, preferred
    ROUTING_STRATEGY: str = os.getenv("WAYFINDER_ROUTING_STRATEGY", "random")
    ROUTER_CACHE_TTL: int = int(os.getenv("WAYFINDER_ROUTER_CACHE_TTL", "300"))  # 5 minutes
    STATIC_GATEWAY: str = os.getenv("WAYFINDER_STATIC_GATEWAY", "https://arweave.net")
    PREFERRED_GATEWAY: str = os.getenv("WAYFINDER_PREFERRED_GATEWAY", "https://arweave.net")
    PING_TIMEOUT: float = float(os.getenv("WAYFINDER_PING_TIMEOUT", "0.5"))
    PREFERRED_TIMEOUT: float = float(os.getenv("WAYFINDER_PREFERRED_TIMEOUT", "1.0"))
    PRIORITY_SORT_BY: str = os.getenv("WAYFINDER_PRIORITY_SORT_BY", "operatorStake")
    PRIORITY_SORT_ORDER: str = os.getenv("WAYFINDER_PRIORITY_SORT_ORDER", "desc")
    PRIORITY_LIMIT: int = int(os.getenv("WAYFINDER_PRIORITY_LIMIT", "10"))
    BLOCKLIST: List[str] = _csv(os.getenv("WAYFINDER_BLOCKLIST", ""))

    # Verification: digest, data-root, all or none
    VERIFICATION: str = os.getenv("WAYFINDER_VERIFICATION", "digest")
    TRUSTED_GATEWAYS: List[str] = _csv(
        os.getenv("WAYFINDER_TRUSTED_GATEWAYS", "https://permagate.io")
    )
    TRUSTED_TIMEOUT: float = float(os.getenv("WAYFINDER_TRUSTED_TIMEOUT", "5"))
    STRICT_VERIFICATION: bool = (
        os.getenv("WAYFINDER_STRICT_VERIFICATION", "true").lower() == "true"
    )


settings = Settings()
