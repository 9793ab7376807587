from .cache import CidCache
from .endpoints import GatewayEndpoint, build_endpoints, dedupe_endpoints
from .resolver import FailureTier, Fetcher, GatewayResolver, ResolutionTier

__all__ = [
    "CidCache",
    "FailureTier",
    "Fetcher",
    "GatewayEndpoint",
    "GatewayResolver",
    "ResolutionTier",
    "build_endpoints",
    "dedupe_endpoints",
]
