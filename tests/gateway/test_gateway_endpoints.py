"""Tests for endpoint list assembly."""

from parcelgraph.gateway import GatewayEndpoint, build_endpoints, dedupe_endpoints
from parcelgraph.shared.config import GatewayConfig, GatewayEndpointConfig, Settings


def fallback_config():
    return GatewayConfig(
        endpoints=[
            GatewayEndpointConfig(url="https://ipfs.io/ipfs"),
            GatewayEndpointConfig(url="https://dweb.link/ipfs"),
            GatewayEndpointConfig(
                url="https://gateway.pinata.cloud/ipfs", token_param="pinataGatewayToken"
            ),
        ]
    )


class TestGatewayEndpoint:
    def test_url_for_strips_trailing_slash(self):
        endpoint = GatewayEndpoint(url="https://ipfs.io/ipfs/")
        assert endpoint.url_for("bafkabc") == "https://ipfs.io/ipfs/bafkabc"

    def test_params_only_with_token(self):
        assert GatewayEndpoint(url="https://ipfs.io/ipfs").params() == {}
        endpoint = GatewayEndpoint(url="https://x.test/ipfs", token="t", token_param="tk")
        assert endpoint.params() == {"tk": "t"}


class TestBuildEndpoints:
    def test_fallbacks_only(self, monkeypatch):
        monkeypatch.delenv("IPFS_GATEWAY_URL", raising=False)
        endpoints = build_endpoints(fallback_config(), Settings(_env_file=None))
        assert [e.url for e in endpoints] == [
            "https://ipfs.io/ipfs",
            "https://dweb.link/ipfs",
            "https://gateway.pinata.cloud/ipfs",
        ]
        assert endpoints[2].token_param == "pinataGatewayToken"

    def test_primary_first(self):
        settings = Settings(
            _env_file=None,
            IPFS_GATEWAY_URL="https://primary.example/ipfs",
            IPFS_GATEWAY_TOKEN="abc",
        )
        endpoints = build_endpoints(fallback_config(), settings)
        assert endpoints[0].url == "https://primary.example/ipfs"
        assert endpoints[0].params() == {"token": "abc"}
        assert len(endpoints) == 4

    def test_primary_replaces_matching_fallback(self):
        settings = Settings(
            _env_file=None,
            IPFS_GATEWAY_URL="https://DWEB.link/ipfs/",
            IPFS_GATEWAY_TOKEN="abc",
        )
        endpoints = build_endpoints(fallback_config(), settings)
        assert [e.key for e in endpoints] == [
            "https://dweb.link/ipfs",
            "https://ipfs.io/ipfs",
            "https://gateway.pinata.cloud/ipfs",
        ]
        assert endpoints[0].token == "abc"

    def test_dedupe_preserves_first(self):
        endpoints = dedupe_endpoints(
            [
                GatewayEndpoint(url="https://a.test/ipfs", token="1"),
                GatewayEndpoint(url="https://a.test/ipfs/", token="2"),
                GatewayEndpoint(url="https://b.test/ipfs"),
            ]
        )
        assert [e.token for e in endpoints] == ["1", None]
