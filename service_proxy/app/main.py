"""
Partner signing proxy service.
"""

import time
from typing import Callable, Optional

from fastapi import FastAPI, Request

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config

from .adapters.gateway_client import GatewayClient
from .domain.proxy_pipeline import ProxyPipeline
from .identity import IdentityProvider, SessionIdentityProvider, create_identity_provider
from .signing import Credentials, SignatureEngine
from .versioning import VersionResolver, build_version_config

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

EXCLUDED_PATHS = frozenset({"/", "/heartbeat", "/metrics"})
EXCLUDED_PREFIXES = ("/health-check", "/api-json", "/api-yaml", "/_swagger")


def is_excluded_path(path: str) -> bool:
    """Paths served by the service itself, never proxied."""
    return path in EXCLUDED_PATHS or path.startswith(EXCLUDED_PREFIXES)


class ProxyService(BaseService):
    """Signing proxy service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        identity_provider: Optional[IdentityProvider] = None,
        gateway_client: Optional[GatewayClient] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        super().__init__("proxy", config)

        self.version_config = build_version_config(
            self.config.supported_versions,
            self.config.default_version,
            self.config.gateway_version_map,
        )
        self.resolver = VersionResolver(self.version_config)
        self.identity_provider = identity_provider or create_identity_provider(self.config)

        credentials = Credentials(
            api_key=self.config.api_key,
            api_secret=self.config.api_secret.get_secret_value(),
        )
        if not credentials.api_key or not credentials.api_secret:
            self.logger.warning("Upstream API credentials are not configured")

        self.signer = SignatureEngine(credentials, clock=clock or time.time)
        self.gateway_client = gateway_client or GatewayClient(
            self.config.upstream_url,
            credentials.api_key,
            timeout=self.config.upstream_timeout_seconds,
            metrics=self.metrics,
        )
        self.pipeline = ProxyPipeline(
            self.resolver,
            self.identity_provider,
            self.signer,
            self.gateway_client,
            identity_failure_status=self.config.identity_failure_status,
            max_body_bytes=self.config.max_body_bytes,
        )

        if isinstance(self.identity_provider, SessionIdentityProvider):
            self._setup_session_middleware()

        self._setup_proxy_routes()

        self.app.state.proxy_service = self

        self.logger.info(
            "Proxy configured",
            upstream_url=self.config.upstream_url,
            supported_versions=list(self.version_config.supported_versions),
            default_version=self.version_config.default_version,
            identity_provider=type(self.identity_provider).__name__,
        )

    async def shutdown(self) -> None:
        await self.gateway_client.close()

    def _setup_session_middleware(self):
        from starlette.middleware.sessions import SessionMiddleware

        self.app.add_middleware(
            SessionMiddleware,
            secret_key=self.config.session_secret.get_secret_value(),
            https_only=self.config.env == "production",
        )

    def _setup_proxy_routes(self):
        """Health endpoints first, then the catch-all proxy route."""

        @self.app.get("/", tags=["Health Check"])
        async def root():
            return {"status": "ok"}

        @self.app.get("/heartbeat", tags=["Health Check"])
        async def heartbeat():
            """Minimal liveness probe."""
            return {"status": "ok"}

        @self.app.get("/health-check", tags=["Health Check"])
        async def health_check():
            """Service health along with API versioning information."""
            return {
                "status": "ok",
                "versions": {
                    "supported": list(self.version_config.supported_versions),
                    "default": self.version_config.default_version,
                    "gatewayMap": dict(self.version_config.gateway_version_map),
                },
            }

        @self.app.api_route("/{full_path:path}", methods=PROXY_METHODS, include_in_schema=False)
        async def proxy(request: Request, full_path: str):
            if is_excluded_path(request.url.path):
                return {"status": "ok"}
            return await self.pipeline.handle(request)


def create_app(config: Optional[ServiceConfig] = None, **kwargs) -> FastAPI:
    """Create FastAPI application."""
    service = ProxyService(config=config, **kwargs)
    return service.app


def run() -> None:
    """Console entrypoint."""
    ProxyService(get_config("proxy")).run()


if __name__ == "__main__":
    run()
