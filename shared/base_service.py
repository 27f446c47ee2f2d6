"""
FastAPI service scaffolding for the Partner Signing Proxy.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST

from shared.config import ServiceConfig, get_config
from shared.errors import ProxyError
from shared.logging import clear_context, configure_logging, get_logger, set_request_id
from shared.metrics import get_metrics_collector

REQUEST_ID_HEADER = "X-Request-ID"

CORS_METHODS = ["GET", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"]
CORS_ALLOW_HEADERS = ["Content-Type", "Authorization", "Preload", "Fields", "X-Partner-Id", "x-partner-user-id"]
CORS_EXPOSE_HEADERS = ["Link", REQUEST_ID_HEADER]

# Swagger UI needs inline styles and scripts.
CONTENT_SECURITY_POLICY = "; ".join(
    [
        "default-src 'self'",
        "base-uri 'self'",
        "font-src 'self' https: data:",
        "form-action 'self'",
        "frame-ancestors 'self'",
        "img-src 'self' data: https:",
        "object-src 'none'",
        "script-src 'self' 'unsafe-inline'",
        "script-src-attr 'none'",
        "style-src 'self' 'unsafe-inline'",
        "upgrade-insecure-requests",
    ]
)

SECURITY_HEADERS = {
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-site",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


class BaseService:
    """Application, middleware and error handling shared by every service.

    Subclasses register their routes after ``super().__init__`` and may
    override ``startup``/``shutdown`` to manage long-lived resources.
    """

    def __init__(self, service_name: str, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.config = config or get_config(service_name)

        configure_logging(service_name, self.config.log_level)
        self.logger = get_logger(service_name)
        self.metrics = get_metrics_collector(service_name)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()
        self._setup_exception_handlers()

    def _create_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            await self.startup()
            try:
                yield
            finally:
                await self.shutdown()

        title = self.service_name.title()
        return FastAPI(
            title=f"Partner Signing {title}",
            description="Signs partner requests and forwards them to the upstream gateway",
            version="1.0.0",
            docs_url="/_swagger",
            redoc_url=None,
            openapi_url="/api-json",
            lifespan=lifespan,
        )

    def _setup_middleware(self):
        cors_origin = self.config.cors_allow_origin
        if cors_origin in (None, "(.*)", ".*") and self.config.env == "production":
            self.logger.warning("CORS allows every origin in production")

        self.app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=cors_origin or ".*",
            allow_credentials=True,
            allow_methods=CORS_METHODS,
            allow_headers=CORS_ALLOW_HEADERS,
            expose_headers=CORS_EXPOSE_HEADERS,
        )

        @self.app.middleware("http")
        async def security_headers(request: Request, call_next):
            response = await call_next(request)
            for name, value in SECURITY_HEADERS.items():
                response.headers.setdefault(name, value)
            return response

        @self.app.middleware("http")
        async def request_context(request: Request, call_next):
            request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
            started = time.perf_counter()

            response = await call_next(request)

            elapsed = time.perf_counter() - started
            self.metrics.record_http_request(request.method, request.url.path, response.status_code, elapsed)
            self.logger.info(
                "Request completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(elapsed * 1000, 2),
            )

            response.headers[REQUEST_ID_HEADER] = request_id
            clear_context()
            return response

    def _setup_routes(self):
        @self.app.get("/metrics", include_in_schema=False)
        async def metrics_endpoint():
            return Response(content=self.metrics.export(), media_type=CONTENT_TYPE_LATEST)

    def _setup_exception_handlers(self):
        @self.app.exception_handler(ProxyError)
        async def proxy_error_handler(request: Request, exc: ProxyError):
            log = self.logger.error if exc.status_code >= 500 else self.logger.warning
            log("Request failed", code=exc.code, message=exc.message, details=exc.details)
            self.metrics.record_error(exc.code)
            return JSONResponse(status_code=exc.status_code, content=exc.to_content())

        @self.app.exception_handler(Exception)
        async def unhandled_error_handler(request: Request, exc: Exception):
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            self.metrics.record_error("INTERNAL_ERROR")
            return JSONResponse(
                status_code=500,
                content={"code": "INTERNAL_ERROR", "message": "Internal server error", "details": {}},
            )

    async def startup(self) -> None:
        """Acquire long-lived resources."""

    async def shutdown(self) -> None:
        """Release long-lived resources."""

    def run(self):
        """Serve the application with uvicorn."""
        import uvicorn

        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower(),
        )
