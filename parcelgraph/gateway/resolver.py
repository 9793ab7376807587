"""
Multi-gateway resolution with tiered retry.

A pass tries every endpoint back-to-back. A failure on one endpoint never
aborts the pass; only when the whole pass fails does the resolver sleep for
the inter-pass delay and start over. Metadata lookups get a small pass cap,
relationship and leaf objects a very large one.

Failure tiers:
- tier1: transport failures (connect, DNS, timeout) and HTTP 429/502/504
- tier2: any other non-2xx, a non-JSON body, or a validator rejection
Both tiers are retried; the split drives logging and metrics.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence

import httpx

from parcelgraph.gateway.cache import CidCache
from parcelgraph.gateway.endpoints import GatewayEndpoint, build_endpoints
from parcelgraph.shared.config import Config, Settings
from parcelgraph.shared.errors import (
    ConfigurationError,
    GatewayExhaustedError,
    ShapeMismatchError,
    TransientFetchError,
)
from parcelgraph.shared.observability import get_logger
from parcelgraph.shared.observability.metrics import (
    gateway_exhausted_total,
    gateway_failed_passes_total,
    gateway_fetch_attempts_total,
)

logger = get_logger(__name__)

Validator = Callable[[Any], Any]
SleepFn = Callable[[float], Awaitable[None]]


class ResolutionTier(str, Enum):
    """Pass budget class for a resolution."""

    METADATA = "metadata"  # small cap, event fails when exhausted
    CONTENT = "content"  # relationship/leaf objects, effectively unbounded


class FailureTier(str, Enum):
    NETWORK = "tier1"
    CONTENT = "tier2"


# Gateway-side congestion; retried like a connection failure
TIER1_STATUS_CODES = frozenset({429, 502, 504})


class Fetcher(Protocol):
    """Anything that can turn a CID into a validated payload."""

    async def resolve(
        self,
        cid: str,
        validator: Optional[Validator] = None,
        tier: "ResolutionTier" = ResolutionTier.CONTENT,
    ) -> Any: ...


class GatewayResolver:
    """
    Resolve CIDs to JSON payloads across redundant gateways.

    Features:
    - Ordered endpoints, primary first
    - Injectable sleep so tests never wait on inter-pass delays
    - Per-CID payload cache shared across events
    """

    DEFAULT_REQUEST_TIMEOUT = 30.0
    DEFAULT_INTER_PASS_DELAY = 10.0
    DEFAULT_METADATA_MAX_PASSES = 3
    DEFAULT_CONTENT_MAX_PASSES = 100_000

    def __init__(
        self,
        endpoints: Sequence[GatewayEndpoint],
        *,
        client: Optional[httpx.AsyncClient] = None,
        cache: Optional[CidCache] = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        inter_pass_delay: float = DEFAULT_INTER_PASS_DELAY,
        metadata_max_passes: int = DEFAULT_METADATA_MAX_PASSES,
        content_max_passes: int = DEFAULT_CONTENT_MAX_PASSES,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if not endpoints:
            raise ConfigurationError("GatewayResolver requires at least one endpoint")
        if metadata_max_passes < 1 or content_max_passes < 1:
            raise ConfigurationError("pass budgets must be at least 1")

        self._endpoints: List[GatewayEndpoint] = list(endpoints)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=request_timeout, follow_redirects=True
        )
        self._cache = cache if cache is not None else CidCache()
        self._inter_pass_delay = inter_pass_delay
        self._max_passes = {
            ResolutionTier.METADATA: metadata_max_passes,
            ResolutionTier.CONTENT: content_max_passes,
        }
        self._sleep = sleep

    @classmethod
    def from_config(
        cls, config: Config, settings: Optional[Settings] = None, **kwargs: Any
    ) -> "GatewayResolver":
        gateway = config.gateway
        kwargs.setdefault("cache", CidCache(max_size=gateway.cache_max_size))
        return cls(
            build_endpoints(gateway, settings),
            request_timeout=gateway.request_timeout_seconds,
            inter_pass_delay=gateway.inter_pass_delay_seconds,
            metadata_max_passes=gateway.metadata_max_passes,
            content_max_passes=gateway.content_max_passes,
            **kwargs,
        )

    @property
    def endpoints(self) -> List[GatewayEndpoint]:
        return list(self._endpoints)

    @property
    def cache(self) -> CidCache:
        return self._cache

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "GatewayResolver":
        return self

    async def __aexit__(self, exc_type, exc, traceback) -> None:
        await self.aclose()

    async def resolve(
        self,
        cid: str,
        validator: Optional[Validator] = None,
        tier: ResolutionTier = ResolutionTier.CONTENT,
    ) -> Any:
        """
        Fetch and validate the payload addressed by `cid`.

        Returns the validator's result (the raw JSON when no validator is
        given). Raises GatewayExhaustedError once the tier's pass budget is
        used up.
        """
        cached = self._cache.get(cid)
        if cached is not None:
            try:
                return self._validate(cached, validator, cid, "cache")
            except ShapeMismatchError as exc:
                logger.warning("cached_payload_rejected", cid=cid, error=str(exc))

        max_passes = self._max_passes[tier]
        last_error: Optional[TransientFetchError] = None

        for pass_number in range(1, max_passes + 1):
            for endpoint in self._endpoints:
                try:
                    payload = await self._attempt(endpoint, cid)
                    result = self._validate(payload, validator, cid, endpoint.url)
                except TransientFetchError as exc:
                    last_error = exc
                    gateway_fetch_attempts_total.labels(
                        endpoint=endpoint.url, outcome=exc.failure_tier
                    ).inc()
                    logger.warning(
                        "gateway_fetch_failed",
                        cid=cid,
                        endpoint=endpoint.url,
                        failure_tier=exc.failure_tier,
                        status_code=exc.status_code,
                        error=str(exc),
                        attempt_pass=pass_number,
                    )
                    continue

                gateway_fetch_attempts_total.labels(
                    endpoint=endpoint.url, outcome="success"
                ).inc()
                self._cache.set(cid, payload)
                logger.debug(
                    "gateway_fetch_succeeded",
                    cid=cid,
                    endpoint=endpoint.url,
                    attempt_pass=pass_number,
                )
                return result

            gateway_failed_passes_total.labels(tier=tier.value).inc()
            if pass_number < max_passes:
                logger.info(
                    "gateway_pass_failed",
                    cid=cid,
                    tier=tier.value,
                    attempt_pass=pass_number,
                    max_passes=max_passes,
                    delay_sec=self._inter_pass_delay,
                )
                await self._sleep(self._inter_pass_delay)

        gateway_exhausted_total.labels(tier=tier.value).inc()
        logger.error(
            "gateway_resolution_exhausted",
            cid=cid,
            tier=tier.value,
            passes=max_passes,
            last_error=str(last_error) if last_error else None,
        )
        raise GatewayExhaustedError(cid, max_passes, last_error)

    async def _attempt(self, endpoint: GatewayEndpoint, cid: str) -> Any:
        """One GET against one endpoint; any failure is a TransientFetchError."""
        try:
            response = await self._client.get(
                endpoint.url_for(cid), params=endpoint.params()
            )
        except httpx.TimeoutException as exc:
            raise TransientFetchError(
                f"timeout: {exc!r}",
                cid=cid,
                endpoint=endpoint.url,
                failure_tier=FailureTier.NETWORK.value,
            ) from exc
        except httpx.TransportError as exc:
            # ConnectError covers refused connections and DNS failures
            raise TransientFetchError(
                f"transport error: {exc!r}",
                cid=cid,
                endpoint=endpoint.url,
                failure_tier=FailureTier.NETWORK.value,
            ) from exc
        except httpx.DecodingError as exc:
            # Corrupt Content-Encoding body
            raise ShapeMismatchError(
                f"undecodable body: {exc!r}",
                cid=cid,
                endpoint=endpoint.url,
                failure_tier=FailureTier.CONTENT.value,
            ) from exc
        except httpx.RequestError as exc:
            # TooManyRedirects and anything else raised while sending
            raise TransientFetchError(
                f"request error: {exc!r}",
                cid=cid,
                endpoint=endpoint.url,
                failure_tier=FailureTier.NETWORK.value,
            ) from exc

        status = response.status_code
        if status in TIER1_STATUS_CODES:
            raise TransientFetchError(
                f"gateway busy (HTTP {status})",
                cid=cid,
                endpoint=endpoint.url,
                failure_tier=FailureTier.NETWORK.value,
                status_code=status,
            )
        if not response.is_success:
            raise TransientFetchError(
                f"HTTP {status}",
                cid=cid,
                endpoint=endpoint.url,
                failure_tier=FailureTier.CONTENT.value,
                status_code=status,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ShapeMismatchError(
                f"body is not JSON: {exc}",
                cid=cid,
                endpoint=endpoint.url,
                failure_tier=FailureTier.CONTENT.value,
                status_code=status,
            ) from exc

    @staticmethod
    def _validate(
        payload: Any, validator: Optional[Validator], cid: str, source: str
    ) -> Any:
        if validator is None:
            return payload
        try:
            return validator(payload)
        except (ValueError, TypeError) as exc:
            raise ShapeMismatchError(
                f"payload failed validation: {exc}",
                cid=cid,
                endpoint=source,
                failure_tier=FailureTier.CONTENT.value,
            ) from exc
