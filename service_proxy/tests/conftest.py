"""
Shared fixtures for proxy service tests.
"""

from typing import Dict, List, Optional

import httpx
import pytest
from starlette.requests import Request

from service_proxy.app.adapters.gateway_client import GatewayClient
from service_proxy.app.signing import Credentials, SignatureEngine

FIXED_NOW = 1700000000.0
FIXED_TIMESTAMP = 1700000000000
UPSTREAM_URL = "http://copy-gateway.test"
API_KEY = "test-api-key"
API_SECRET = "test-api-secret"


def make_request(
    headers: Optional[Dict[str, str]] = None,
    query_string: str = "",
    method: str = "GET",
    path: str = "/",
    session: Optional[dict] = None,
) -> Request:
    """Build a bare Starlette request from an ASGI scope."""
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query_string.encode(),
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    if session is not None:
        scope["session"] = session
    return Request(scope)


class UpstreamRecorder:
    """Mock upstream gateway recording every request it receives."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.response = httpx.Response(200, json={"success": True})
        self.error: Optional[Exception] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def signer():
    return SignatureEngine(Credentials(API_KEY, API_SECRET), clock=lambda: FIXED_NOW)


@pytest.fixture
def upstream():
    return UpstreamRecorder()


@pytest.fixture
def gateway_client(upstream):
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    return GatewayClient(UPSTREAM_URL, API_KEY, client=client)
