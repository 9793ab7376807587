"""Gateway endpoint list: optional primary from the environment, then fallbacks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlsplit

from parcelgraph.shared.config import GatewayConfig, Settings
from parcelgraph.shared.observability import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class GatewayEndpoint:
    """A retrieval gateway. `url` is a base that the CID is appended to."""

    url: str
    token: Optional[str] = None
    token_param: str = "token"

    def url_for(self, cid: str) -> str:
        return f"{self.url.rstrip('/')}/{cid}"

    def params(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {self.token_param: self.token}

    @property
    def key(self) -> str:
        return normalize_base_url(self.url)


def normalize_base_url(url: str) -> str:
    """Comparison key for endpoint deduplication (scheme/host case-folded)."""
    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/")
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}{path}"


def dedupe_endpoints(endpoints: Iterable[GatewayEndpoint]) -> List[GatewayEndpoint]:
    """Keep the first occurrence of every base URL, preserving order."""
    seen = set()
    unique: List[GatewayEndpoint] = []
    for endpoint in endpoints:
        if endpoint.key in seen:
            continue
        seen.add(endpoint.key)
        unique.append(endpoint)
    return unique


def build_endpoints(
    gateway_config: GatewayConfig, settings: Optional[Settings] = None
) -> List[GatewayEndpoint]:
    """
    Assemble the ordered endpoint list.

    The environment-configured primary gateway (IPFS_GATEWAY_URL) comes first;
    a fallback with the same base URL is dropped in its favour.
    """
    endpoints: List[GatewayEndpoint] = []
    if settings is not None and settings.ipfs_gateway_url:
        endpoints.append(
            GatewayEndpoint(
                url=settings.ipfs_gateway_url.strip(),
                token=settings.ipfs_gateway_token or None,
                token_param=settings.ipfs_gateway_token_param,
            )
        )
    for entry in gateway_config.endpoints:
        endpoints.append(
            GatewayEndpoint(
                url=entry.url, token=entry.token or None, token_param=entry.token_param
            )
        )

    unique = dedupe_endpoints(endpoints)
    logger.debug(
        "gateway_endpoints_built",
        endpoints=[e.url for e in unique],
        primary=bool(settings is not None and settings.ipfs_gateway_url),
    )
    return unique
