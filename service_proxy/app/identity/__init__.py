"""
Pluggable caller identity resolution.

One provider is selected at startup by ``PROXY_IDENTITY_PROVIDER``:

- header: trusts the ``X-Partner-User-Id`` header (default).
- jwt: verifies a bearer JWT and reads the user id claim.
- api_key: maps a partner API key to a user id.
- session: reads the user id from the signed session cookie.
"""

from __future__ import annotations

import json
from typing import Callable, Dict

from shared.config import ServiceConfig
from shared.errors import ConfigurationError

from .api_key import ApiKeyIdentityProvider
from .base import IdentityProvider, IdentityResult
from .bearer import JwtIdentityProvider
from .header import HeaderIdentityProvider
from .session import SessionIdentityProvider


def _header_provider(config: ServiceConfig) -> IdentityProvider:
    return HeaderIdentityProvider(config.identity_header)


def _jwt_provider(config: ServiceConfig) -> IdentityProvider:
    secret = config.jwt_secret.get_secret_value()
    if not secret:
        raise ConfigurationError("PROXY_JWT_SECRET is required for the jwt identity provider")
    algorithms = [alg.strip() for alg in config.jwt_algorithms.split(",") if alg.strip()]
    return JwtIdentityProvider(
        secret,
        algorithms=algorithms or ["HS256"],
        audience=config.jwt_audience,
        issuer=config.jwt_issuer,
    )


def _api_key_provider(config: ServiceConfig) -> IdentityProvider:
    try:
        api_keys = json.loads(config.api_keys or "{}")
    except ValueError as exc:
        raise ConfigurationError("PROXY_API_KEYS must be a JSON object") from exc
    if not isinstance(api_keys, dict):
        raise ConfigurationError("PROXY_API_KEYS must be a JSON object")
    return ApiKeyIdentityProvider({str(k): str(v) for k, v in api_keys.items()})


def _session_provider(config: ServiceConfig) -> IdentityProvider:
    if not config.session_secret.get_secret_value():
        raise ConfigurationError("PROXY_SESSION_SECRET is required for the session identity provider")
    return SessionIdentityProvider()


PROVIDER_FACTORIES: Dict[str, Callable[[ServiceConfig], IdentityProvider]] = {
    "header": _header_provider,
    "jwt": _jwt_provider,
    "api_key": _api_key_provider,
    "session": _session_provider,
}


def create_identity_provider(config: ServiceConfig) -> IdentityProvider:
    """Build the provider named by ``config.identity_provider``."""
    name = config.identity_provider.strip().lower()
    factory = PROVIDER_FACTORIES.get(name)
    if factory is None:
        raise ConfigurationError(
            f"Unknown identity provider '{config.identity_provider}'",
            details={"available": sorted(PROVIDER_FACTORIES)},
        )
    return factory(config)


__all__ = [
    "ApiKeyIdentityProvider",
    "HeaderIdentityProvider",
    "IdentityProvider",
    "IdentityResult",
    "JwtIdentityProvider",
    "SessionIdentityProvider",
    "create_identity_provider",
]
