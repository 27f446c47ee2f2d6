"""
Adapters package for the proxy service.

Contains the HTTP client wrapper for the upstream gateway. The adapter
encapsulates:

- Base URL, timeout and outbound header layout
- Hop-by-hop header stripping on relay
- Error handling that maps transport failures to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .gateway_client import GatewayClient, UpstreamResponse, encode_identity, relay_headers

__all__ = [
    "GatewayClient",
    "UpstreamResponse",
    "encode_identity",
    "relay_headers",
]
