"""
Unit tests for API version resolution.
"""

import pytest

from service_proxy.app.versioning import (
    VersionConfig,
    VersionResolver,
    build_version_config,
    parse_gateway_version_map,
    parse_supported_versions,
)
from shared.errors import UnsupportedVersionError, VersionRequiredError


class TestBuildVersionConfig:
    """Configuration parsing."""

    def test_defaults_to_v1(self):
        config = build_version_config()
        assert config.supported_versions == ("v1",)
        assert config.default_version == "v1"
        assert dict(config.gateway_version_map) == {"v1": "v1"}

    def test_parses_and_normalizes_list(self):
        assert parse_supported_versions(" V1, v2 ,beta, v3x") == ("v1", "v2")

    def test_all_invalid_entries_fall_back(self):
        assert parse_supported_versions("beta,latest") == ("v1",)

    def test_default_is_first_supported(self):
        config = build_version_config("v2,v3")
        assert config.default_version == "v2"

    def test_unsupported_default_falls_back_to_v1(self):
        config = build_version_config("v1,v2", "v9")
        assert config.default_version == "v1"

    def test_gateway_map_overlays_identity_map(self):
        mapping = parse_gateway_version_map('{"V2": "v3", "bad": "v1", "v1": "x"}', ("v1", "v2"))
        assert mapping == {"v1": "v1", "v2": "v3"}

    def test_invalid_gateway_map_json_is_ignored(self):
        assert parse_gateway_version_map("{not json", ("v1",)) == {"v1": "v1"}
        assert parse_gateway_version_map('["v1"]', ("v1",)) == {"v1": "v1"}

    def test_config_is_immutable(self):
        config = build_version_config("v1")
        with pytest.raises(Exception):
            config.default_version = "v2"
        with pytest.raises(TypeError):
            config.gateway_version_map["v1"] = "v9"

    def test_dataclass_enforces_default_membership(self):
        config = VersionConfig(supported_versions=("v2",), default_version="v7")
        assert config.default_version == "v1"


class TestVersionResolver:
    """Path resolution and rewriting."""

    @pytest.fixture
    def resolver(self):
        return VersionResolver(build_version_config("v1,v2,v3", "v1", '{"v2": "v5"}'))

    @pytest.mark.parametrize("version", ["v1", "v2", "v3"])
    def test_rewrites_every_supported_version(self, resolver, version):
        resolved = resolver.resolve(f"/{version}/rest")
        expected = {"v1": "v1", "v2": "v5", "v3": "v3"}[version]
        assert resolved.requested == version
        assert resolved.gateway == expected
        assert resolved.path == f"/{expected}/rest"

    def test_version_only_path(self, resolver):
        assert resolver.resolve("/v1").path == "/v1"

    def test_version_without_leading_slash(self, resolver):
        assert resolver.resolve("v1/copy-bots").path == "/v1/copy-bots"

    def test_uppercase_token_is_normalized(self, resolver):
        resolved = resolver.resolve("/V2/copy-bots/7")
        assert resolved.requested == "v2"
        assert resolved.path == "/v5/copy-bots/7"

    def test_missing_version(self, resolver):
        with pytest.raises(VersionRequiredError) as exc_info:
            resolver.resolve("/products")
        assert "API version required" in exc_info.value.message
        assert exc_info.value.supported_versions == ["/v1", "/v2", "/v3"]
        assert exc_info.value.status_code == 400

    def test_version_must_be_whole_segment(self, resolver):
        with pytest.raises(VersionRequiredError):
            resolver.resolve("/v1beta/products")

    def test_unsupported_version(self):
        resolver = VersionResolver(build_version_config("v1"))
        with pytest.raises(UnsupportedVersionError) as exc_info:
            resolver.resolve("/v99/products")
        assert exc_info.value.version == "v99"
        assert exc_info.value.to_content() == {
            "message": "Unsupported API version 'v99'.",
            "supportedVersions": ["/v1"],
        }

    def test_resolve_gateway_version_never_fails(self, resolver):
        assert resolver.resolve_gateway_version("v2") == "v5"
        assert resolver.resolve_gateway_version("v99") == "v1"
        assert resolver.resolve_gateway_version("") == "v1"

    def test_get_supported_versions(self, resolver):
        assert resolver.get_supported_versions() == ("v1", "v2", "v3")
        assert resolver.format_supported_versions() == ["/v1", "/v2", "/v3"]
