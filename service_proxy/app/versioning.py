"""
Path-based API versioning for the proxy.

Partners address the proxy as ``/v{N}/...``. The version token is checked
against the configured supported set and translated into the version the
upstream gateway exposes before the request is signed.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from shared.errors import UnsupportedVersionError, VersionRequiredError
from shared.logging import get_logger

FALLBACK_VERSION = "v1"

_VERSION_TOKEN = re.compile(r"^v\d+$")
_VERSION_PREFIX = re.compile(r"^/?(v[0-9]+)(/.*)?$", re.IGNORECASE | re.DOTALL)

logger = get_logger("proxy.versioning")


@dataclass(frozen=True)
class VersionConfig:
    """Immutable versioning table, built once at startup."""

    supported_versions: Tuple[str, ...] = (FALLBACK_VERSION,)
    default_version: str = FALLBACK_VERSION
    gateway_version_map: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({FALLBACK_VERSION: FALLBACK_VERSION})
    )

    def __post_init__(self) -> None:
        if self.default_version not in self.supported_versions:
            object.__setattr__(self, "default_version", FALLBACK_VERSION)
        if not isinstance(self.gateway_version_map, MappingProxyType):
            object.__setattr__(
                self, "gateway_version_map", MappingProxyType(dict(self.gateway_version_map))
            )


@dataclass(frozen=True)
class ResolvedVersion:
    """Outcome of resolving an inbound path."""

    requested: str
    gateway: str
    path: str


def parse_supported_versions(value: Optional[str]) -> Tuple[str, ...]:
    """Parse a comma separated version list, dropping malformed entries."""
    if not value:
        return (FALLBACK_VERSION,)

    versions: List[str] = []
    for entry in value.split(","):
        token = entry.strip().lower()
        if _VERSION_TOKEN.match(token) and token not in versions:
            versions.append(token)

    if not versions:
        logger.warning("No valid supported versions configured, using fallback", value=value)
        return (FALLBACK_VERSION,)
    return tuple(versions)


def parse_gateway_version_map(value: Optional[str], supported_versions: Tuple[str, ...]) -> dict:
    """Identity map over ``supported_versions`` overlaid with a JSON object."""
    mapping = {version: version for version in supported_versions}
    if not value:
        return mapping

    try:
        parsed = json.loads(value)
    except ValueError:
        logger.warning("Gateway version map is not valid JSON, ignoring", value=value)
        return mapping

    if not isinstance(parsed, dict):
        logger.warning("Gateway version map must be a JSON object, ignoring", value=value)
        return mapping

    for source, target in parsed.items():
        if not isinstance(target, str):
            continue
        source, target = source.lower(), target.lower()
        if _VERSION_TOKEN.match(source) and _VERSION_TOKEN.match(target):
            mapping[source] = target
    return mapping


def build_version_config(
    supported: Optional[str] = None,
    default: Optional[str] = None,
    gateway_map: Optional[str] = None,
) -> VersionConfig:
    """Build a :class:`VersionConfig` from raw configuration strings."""
    supported_versions = parse_supported_versions(supported)
    default_version = (default or "").strip().lower() or supported_versions[0]
    if default_version not in supported_versions:
        logger.warning(
            "Default version is not supported, falling back",
            default_version=default_version,
            fallback=FALLBACK_VERSION,
        )
        default_version = FALLBACK_VERSION

    return VersionConfig(
        supported_versions=supported_versions,
        default_version=default_version,
        gateway_version_map=parse_gateway_version_map(gateway_map, supported_versions),
    )


def format_supported_versions(versions) -> List[str]:
    return [f"/{version}" for version in versions]


class VersionResolver:
    """Validates the version prefix of a path and rewrites it for upstream."""

    def __init__(self, config: VersionConfig):
        self._config = config

    @property
    def config(self) -> VersionConfig:
        return self._config

    def get_supported_versions(self) -> Tuple[str, ...]:
        return self._config.supported_versions

    def format_supported_versions(self) -> List[str]:
        return format_supported_versions(self._config.supported_versions)

    def resolve_gateway_version(self, version: str) -> str:
        """Map a partner version onto the upstream one; unknown input yields the default."""
        return self._config.gateway_version_map.get(version, self._config.default_version)

    def resolve(self, path: str) -> ResolvedVersion:
        """Resolve ``path`` into the upstream path.

        Raises:
            VersionRequiredError: the path carries no ``v{N}`` prefix.
            UnsupportedVersionError: the prefix is not in the supported set.
        """
        match = _VERSION_PREFIX.match(path)
        if not match:
            raise VersionRequiredError(
                self.format_supported_versions(), self._config.default_version
            )

        requested = match.group(1).lower()
        remainder = match.group(2) or ""

        if requested not in self._config.supported_versions:
            raise UnsupportedVersionError(requested, self.format_supported_versions())

        gateway = self.resolve_gateway_version(requested)
        return ResolvedVersion(requested=requested, gateway=gateway, path=f"/{gateway}{remainder}")
