"""
Unit tests for GatewayResolver pass/rotation/retry behaviour.

Gateways are simulated with httpx.MockTransport; inter-pass sleeps are
captured instead of awaited.
"""

from __future__ import annotations

import httpx
import pytest

from parcelgraph.gateway import CidCache, GatewayEndpoint, GatewayResolver, ResolutionTier
from parcelgraph.shared.errors import (
    ConfigurationError,
    GatewayExhaustedError,
    ShapeMismatchError,
)

CID = "bafkreitestcid"
PAYLOAD = {"label": "County"}


def make_endpoints(count: int):
    return [GatewayEndpoint(url=f"https://gw{i}.test/ipfs") for i in range(count)]


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_resolver(handler, endpoints, **kwargs):
    sleep = kwargs.pop("sleep", SleepRecorder())
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), follow_redirects=True
    )
    resolver = GatewayResolver(endpoints, client=client, sleep=sleep, **kwargs)
    return resolver, sleep


def require_label(payload):
    if not isinstance(payload, dict) or not payload.get("label"):
        raise ValueError("label missing")
    return payload


class TestResolverInit:
    def test_requires_endpoints(self):
        with pytest.raises(ConfigurationError):
            GatewayResolver([])

    def test_rejects_zero_pass_budget(self):
        with pytest.raises(ConfigurationError):
            GatewayResolver(make_endpoints(1), metadata_max_passes=0)


class TestSinglePass:
    @pytest.mark.asyncio
    async def test_first_endpoint_success(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=PAYLOAD)

        resolver, sleep = make_resolver(handler, make_endpoints(3))
        assert await resolver.resolve(CID) == PAYLOAD
        assert len(requests) == 1
        assert str(requests[0].url) == f"https://gw0.test/ipfs/{CID}"
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_rotates_until_last_endpoint_succeeds(self):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            if request.url.host == "gw4.test":
                return httpx.Response(200, json=PAYLOAD)
            return httpx.Response(502)

        resolver, sleep = make_resolver(handler, make_endpoints(5))
        assert await resolver.resolve(CID) == PAYLOAD
        assert hosts == [f"gw{i}.test" for i in range(5)]
        assert sleep.delays == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "failure",
        [
            "connect",
            "timeout",
            429,
            502,
            504,
            404,
            500,
            "not-json",
            "invalid",
            "bad-encoding",
            "redirect-loop",
        ],
    )
    async def test_any_failure_moves_to_next_endpoint(self, failure):
        def handler(request):
            if request.url.host == "gw1.test":
                return httpx.Response(200, json=PAYLOAD)
            if failure == "connect":
                raise httpx.ConnectError("connection refused", request=request)
            if failure == "timeout":
                raise httpx.ReadTimeout("timed out", request=request)
            if failure == "not-json":
                return httpx.Response(200, content=b"<html>gateway</html>")
            if failure == "invalid":
                return httpx.Response(200, json={"other": 1})
            if failure == "bad-encoding":
                return httpx.Response(
                    200, headers={"Content-Encoding": "gzip"}, content=b"not gzip at all"
                )
            if failure == "redirect-loop":
                return httpx.Response(302, headers={"Location": str(request.url)})
            return httpx.Response(failure)

        resolver, _ = make_resolver(handler, make_endpoints(2))
        assert await resolver.resolve(CID, require_label) == PAYLOAD

    @pytest.mark.asyncio
    async def test_token_query_parameter(self):
        seen = []

        def handler(request):
            seen.append(dict(request.url.params))
            return httpx.Response(200, json=PAYLOAD)

        endpoints = [
            GatewayEndpoint(
                url="https://pinata.test/ipfs",
                token="secret",
                token_param="pinataGatewayToken",
            )
        ]
        resolver, _ = make_resolver(handler, endpoints)
        await resolver.resolve(CID)
        assert seen == [{"pinataGatewayToken": "secret"}]


class TestPasses:
    @pytest.mark.asyncio
    async def test_sleeps_between_passes_then_succeeds(self):
        attempts = {"count": 0}

        def handler(request):
            attempts["count"] += 1
            # First full pass (3 endpoints) fails, second pass succeeds at once
            if attempts["count"] <= 3:
                raise httpx.ConnectError("dns failure", request=request)
            return httpx.Response(200, json=PAYLOAD)

        resolver, sleep = make_resolver(
            handler, make_endpoints(3), inter_pass_delay=10.0
        )
        assert await resolver.resolve(CID) == PAYLOAD
        assert attempts["count"] == 4
        assert sleep.delays == [10.0]

    @pytest.mark.asyncio
    async def test_metadata_tier_is_capped(self):
        attempts = {"count": 0}

        def handler(request):
            attempts["count"] += 1
            return httpx.Response(504)

        resolver, sleep = make_resolver(
            handler, make_endpoints(2), metadata_max_passes=3, inter_pass_delay=5.0
        )
        with pytest.raises(GatewayExhaustedError) as exc_info:
            await resolver.resolve(CID, tier=ResolutionTier.METADATA)

        assert exc_info.value.passes == 3
        assert exc_info.value.cid == CID
        assert attempts["count"] == 6
        # No sleep after the final pass
        assert sleep.delays == [5.0, 5.0]

    @pytest.mark.asyncio
    async def test_content_tier_uses_its_own_budget(self):
        attempts = {"count": 0}

        def handler(request):
            attempts["count"] += 1
            if attempts["count"] < 8:
                return httpx.Response(404)
            return httpx.Response(200, json=PAYLOAD)

        resolver, sleep = make_resolver(
            handler, make_endpoints(1), metadata_max_passes=3, content_max_passes=50
        )
        assert await resolver.resolve(CID, tier=ResolutionTier.CONTENT) == PAYLOAD
        assert attempts["count"] == 8
        assert len(sleep.delays) == 7

    @pytest.mark.asyncio
    async def test_exhausted_error_carries_last_failure(self):
        def handler(request):
            return httpx.Response(200, json=[1, 2, 3])

        resolver, _ = make_resolver(handler, make_endpoints(1), content_max_passes=2)
        with pytest.raises(GatewayExhaustedError) as exc_info:
            await resolver.resolve(CID, require_label)
        assert isinstance(exc_info.value.last_error, ShapeMismatchError)


    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "failure, tier",
        [("bad-encoding", "tier2"), ("redirect-loop", "tier1")],
    )
    async def test_request_errors_are_classified(self, failure, tier):
        def handler(request):
            if failure == "bad-encoding":
                return httpx.Response(
                    200, headers={"Content-Encoding": "gzip"}, content=b"\x00\x01"
                )
            return httpx.Response(302, headers={"Location": str(request.url)})

        resolver, _ = make_resolver(handler, make_endpoints(1), content_max_passes=1)
        with pytest.raises(GatewayExhaustedError) as exc_info:
            await resolver.resolve(CID)
        assert exc_info.value.last_error.failure_tier == tier


class TestCache:
    @pytest.mark.asyncio
    async def test_second_resolve_served_from_cache(self):
        attempts = {"count": 0}

        def handler(request):
            attempts["count"] += 1
            return httpx.Response(200, json=PAYLOAD)

        cache = CidCache(max_size=10)
        resolver, _ = make_resolver(handler, make_endpoints(1), cache=cache)
        await resolver.resolve(CID)
        assert await resolver.resolve(CID) == PAYLOAD
        assert attempts["count"] == 1
        assert cache.stats()["hits"] == 1

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self):
        attempts = {"count": 0}

        def handler(request):
            attempts["count"] += 1
            return httpx.Response(404)

        cache = CidCache()
        resolver, _ = make_resolver(
            handler, make_endpoints(1), cache=cache, metadata_max_passes=1
        )
        with pytest.raises(GatewayExhaustedError):
            await resolver.resolve(CID, tier=ResolutionTier.METADATA)
        assert CID not in cache


class TestCidCache:
    def test_evicts_least_recently_used(self):
        cache = CidCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)
        assert "a" in cache
        assert "b" not in cache
        assert len(cache) == 2

    def test_miss_counts(self):
        cache = CidCache()
        assert cache.get("missing") is None
        assert cache.stats()["misses"] == 1
